"""Similarity score between a target SKU profile and a candidate – 0..100.

Six independent terms are computed and summed, then clamped to 100:

    vcpu           25    25 * (1 - |Δ| / max(target, candidate)), 0 if either is 0
    memory         25    same ratio on memory GB
    family         20    exact code 20, same category 15, same first letter 10
    generation     13    Hyper-V generation sets intersect
    architecture   12    CPU architectures equal
    premiumIO       5    target does not need premium IO, or candidate has it

The score is symmetric in the ratio terms and order-independent; a profile
scored against itself is 100 whenever vCPU and memory are non-zero.
"""

from __future__ import annotations

import re
from types import MappingProxyType

from az_sku_finder.models.availability import CandidateProfile, TargetProfile

WEIGHTS: MappingProxyType[str, int] = MappingProxyType(
    {
        "vcpu": 25,
        "memory": 25,
        "family": 20,
        "generation": 13,
        "architecture": 12,
        "premiumIO": 5,
    }
)

_FAMILY_SAME_CATEGORY = 15
_FAMILY_SAME_LETTER = 10

# Family code → workload category.  Fixed table, not inferred.
FAMILY_CATEGORIES: MappingProxyType[str, str] = MappingProxyType(
    {
        "A": "Basic",
        "B": "Basic",
        "D": "General",
        "DC": "General",
        "DS": "General",
        "E": "Memory",
        "EC": "Memory",
        "G": "Memory",
        "GS": "Memory",
        "M": "Memory",
        "F": "Compute",
        "FS": "Compute",
        "FX": "Compute",
        "NC": "GPU",
        "ND": "GPU",
        "NG": "GPU",
        "NP": "GPU",
        "NV": "GPU",
        "H": "HPC",
        "HB": "HPC",
        "HC": "HPC",
        "HX": "HPC",
        "L": "Storage",
    }
)

_SKU_PREFIXES = ("standard_", "basic_")
_FAMILY_CODE_RE = re.compile(r"[A-Za-z]+")


def family_code_from_name(sku_name: str) -> str:
    """Return the series code of an ARM SKU name.

    ``Standard_E64s_v5`` → ``E``, ``Standard_NC24ads_A100_v4`` → ``NC``,
    ``Standard_DS3_v2`` → ``DS``.  Trailing feature letters after the size
    number are not part of the code.  Unknown shapes return ``""``.
    """
    name = sku_name.strip()
    lowered = name.lower()
    for prefix in _SKU_PREFIXES:
        if lowered.startswith(prefix):
            name = name[len(prefix) :]
            break
    match = _FAMILY_CODE_RE.match(name)
    if not match:
        return ""
    code = match.group(0).upper()
    # Known two-letter series first, then fall back to the first letter
    if code[:2] in FAMILY_CATEGORIES:
        return code[:2]
    return code[:1]


def family_category(family: str) -> str | None:
    return FAMILY_CATEGORIES.get(family.upper())


def _closeness(weight: int, target: float, candidate: float) -> float:
    if target <= 0 or candidate <= 0:
        return 0.0
    return weight * (1 - abs(target - candidate) / max(target, candidate))


def _family_points(target: str, candidate: str) -> int:
    t, c = target.upper(), candidate.upper()
    if not t or not c:
        return 0
    if t == c:
        return WEIGHTS["family"]
    t_cat, c_cat = family_category(t), family_category(c)
    if t_cat is not None and t_cat == c_cat:
        return _FAMILY_SAME_CATEGORY
    if t[0] == c[0]:
        return _FAMILY_SAME_LETTER
    return 0


def score_components(target: TargetProfile, candidate: CandidateProfile) -> dict[str, float]:
    """Return each weighted term, keyed like :data:`WEIGHTS`."""
    generation_overlap = bool(set(target.generations) & set(candidate.generations))
    # Neither side reports generations: nothing to conflict on
    if not target.generations and not candidate.generations:
        generation_overlap = True
    same_arch = target.architecture.lower() == candidate.architecture.lower()
    premium_ok = not target.premium_io or candidate.premium_io
    return {
        "vcpu": _closeness(WEIGHTS["vcpu"], target.vcpus, candidate.vcpus),
        "memory": _closeness(WEIGHTS["memory"], target.memory_gb, candidate.memory_gb),
        "family": _family_points(target.family, candidate.family),
        "generation": WEIGHTS["generation"] if generation_overlap else 0,
        "architecture": WEIGHTS["architecture"] if same_arch else 0,
        "premiumIO": WEIGHTS["premiumIO"] if premium_ok else 0,
    }


def similarity_score(target: TargetProfile, candidate: CandidateProfile) -> int:
    """Score how closely *candidate* matches *target*, as an int in 0..100."""
    total = sum(score_components(target, candidate).values())
    return max(0, min(100, round(total)))
