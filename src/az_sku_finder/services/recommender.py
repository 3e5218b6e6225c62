"""Recommendation ranker – closest deployable substitutes for a target SKU.

Pipeline:
    1. drop candidates classified ``Unavailable``
    2. score the rest against the target (``scoring.similarity``)
    3. set aside candidates below the optional vCPU / memory floor
    4. sort by score ↓, region-wide restriction last, status rank ↑,
       OK-zone count ↓
    5. keep the best occurrence of each SKU name across regions
    6. truncate to *top_n*
    7. if nothing in the top N is ``Available``, surface up to three
       ``Available`` below-floor candidates as smaller alternatives
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from az_sku_finder.errors import MalformedInputError
from az_sku_finder.models.availability import (
    ClassifiedResource,
    RankingCandidate,
    RecommendationResult,
    ResourceProfile,
    ScanReport,
    ScoredCandidate,
    Status,
    TargetProfile,
)
from az_sku_finder.scoring.restrictions import has_location_restriction
from az_sku_finder.scoring.similarity import similarity_score
from az_sku_finder.sku_names import sku_name_matches

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 5
SMALLER_ALTERNATIVES_LIMIT = 3

# Lower is better.  The three partial states rank together as "constrained".
STATUS_RANK: dict[Status, int] = {
    Status.available: 0,
    Status.subscription_limited: 1,
    Status.zone_constrained: 1,
    Status.partial_zone: 1,
    Status.unavailable: 2,
}
_UNKNOWN_STATUS_RANK = 3


def _is_below_spec(
    profile: ResourceProfile,
    min_vcpus: int | None,
    min_memory_gb: float | None,
) -> bool:
    if min_vcpus is not None and profile.vcpus < min_vcpus:
        return True
    return min_memory_gb is not None and profile.memory_gb < min_memory_gb


def _sort_key(candidate: ScoredCandidate) -> tuple[int, bool, int, int]:
    rank = STATUS_RANK.get(candidate.availability.status, _UNKNOWN_STATUS_RANK)
    return (-candidate.score, candidate.locationRestricted, rank, -candidate.okZoneCount)


def _dedupe_by_name(candidates: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
    """Keep the first (best-ranked) occurrence of each SKU name."""
    seen: set[str] = set()
    unique: list[ScoredCandidate] = []
    for candidate in candidates:
        key = candidate.name.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def _score(target: TargetProfile, candidate: RankingCandidate) -> ScoredCandidate:
    return ScoredCandidate(
        name=candidate.name,
        region=candidate.region,
        profile=candidate.profile,
        score=similarity_score(target, candidate.profile),
        availability=candidate.availability,
        okZoneCount=len(candidate.availability.zones_ok),
        price=candidate.price,
        locationRestricted=candidate.location_restricted,
    )


def rank_candidates(
    target: TargetProfile,
    candidates: Iterable[RankingCandidate],
    *,
    target_name: str = "",
    top_n: int = DEFAULT_TOP_N,
    min_vcpus: int | None = None,
    min_memory_gb: float | None = None,
) -> RecommendationResult:
    """Rank *candidates* as substitutes for *target*."""
    if top_n < 1:
        raise MalformedInputError(f"top_n must be at least 1, got {top_n}")

    scored: list[ScoredCandidate] = []
    below_spec: list[ScoredCandidate] = []
    for candidate in candidates:
        if candidate.availability.status == Status.unavailable:
            continue
        entry = _score(target, candidate)
        if _is_below_spec(candidate.profile, min_vcpus, min_memory_gb):
            below_spec.append(entry)
        else:
            scored.append(entry)

    top = _dedupe_by_name(sorted(scored, key=_sort_key))[:top_n]

    smaller: list[ScoredCandidate] = []
    if not any(c.availability.status == Status.available for c in top):
        available_below = [c for c in below_spec if c.availability.status == Status.available]
        smaller = _dedupe_by_name(sorted(available_below, key=_sort_key))
        smaller = smaller[:SMALLER_ALTERNATIVES_LIMIT]

    logger.debug(
        "Ranked %s candidates for %s: %s kept, %s below spec, %s smaller alternatives",
        len(scored) + len(below_spec),
        target_name or "target",
        len(top),
        len(below_spec),
        len(smaller),
    )
    return RecommendationResult(
        target=target_name,
        targetProfile=target,
        recommendations=top,
        smallerAlternatives=smaller,
        belowSpecCount=len(below_spec),
        minVcpus=min_vcpus,
        minMemoryGB=min_memory_gb,
    )


def find_target(name: str, resources: Iterable[ClassifiedResource]) -> ClassifiedResource:
    """Resolve *name* to a scanned SKU.

    Exact (case-insensitive) matches win.  Otherwise a fuzzy match is
    accepted when it points at a single SKU name.  Raises
    :class:`MalformedInputError` when nothing, or more than one SKU, matches.
    """
    wanted = name.strip().lower()
    if not wanted:
        raise MalformedInputError("A target SKU name is required")

    resources = list(resources)
    for resource in resources:
        if resource.spec.name.lower() == wanted:
            return resource

    fuzzy = [r for r in resources if sku_name_matches(wanted, r.spec.name.lower())]
    names = sorted({r.spec.name for r in fuzzy})
    if len(names) == 1:
        return fuzzy[0]
    if names:
        raise MalformedInputError(
            f"Target SKU '{name}' is ambiguous, matches: {', '.join(names[:10])}"
        )
    raise MalformedInputError(f"Target SKU '{name}' was not found in any scanned region")


def candidates_from_resources(
    resources: Iterable[ClassifiedResource],
    prices: Mapping[tuple[str, str], float | None] | None = None,
) -> list[RankingCandidate]:
    """Flatten classified resources into ranker input."""
    prices = prices or {}
    return [
        RankingCandidate(
            name=r.spec.name,
            region=r.region,
            profile=r.spec.profile(),
            availability=r.availability,
            price=prices.get((r.region, r.spec.name)),
            location_restricted=has_location_restriction(r.spec),
        )
        for r in resources
    ]


def recommend_from_report(
    target_name: str,
    report: ScanReport,
    *,
    top_n: int = DEFAULT_TOP_N,
    min_vcpus: int | None = None,
    min_memory_gb: float | None = None,
) -> RecommendationResult:
    """Recommend substitutes for *target_name* among everything in *report*.

    Fails fast with :class:`MalformedInputError` when the target is not part
    of the scan; no partial result is produced in that case.
    """
    target = find_target(target_name, report.resources)
    prices = {(d.region, d.name): d.price for d in report.details}
    return rank_candidates(
        target.spec.profile(),
        candidates_from_resources(report.resources, prices),
        target_name=target.spec.name,
        top_n=top_n,
        min_vcpus=min_vcpus,
        min_memory_gb=min_memory_gb,
    )
