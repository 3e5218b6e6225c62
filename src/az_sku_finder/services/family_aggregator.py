"""Family rollups and per-resource detail rows for comparison views.

Works purely on classified resources: the status of a family is the status
the classifier gave its representative SKU (largest vCPU count), never a
separate derivation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from az_sku_finder.models.availability import (
    ClassifiedResource,
    FamilyRollup,
    QuotaUsage,
    ResourceDetail,
)
from az_sku_finder.scoring.restrictions import has_location_restriction

QuotaMap = Mapping[str, Mapping[str, QuotaUsage]]
PriceMap = Mapping[tuple[str, str], float | None]

_UNKNOWN_QUOTA = QuotaUsage()


def family_key(resource: ClassifiedResource) -> str:
    return resource.spec.family or resource.spec.family_code or "Unknown"


def group_by_family(
    resources: Iterable[ClassifiedResource],
) -> dict[tuple[str, str], list[ClassifiedResource]]:
    """Group resources by ``(region, family)``, preserving input order."""
    groups: dict[tuple[str, str], list[ClassifiedResource]] = {}
    for resource in resources:
        groups.setdefault((resource.region, family_key(resource)), []).append(resource)
    return groups


def select_representative(resources: list[ClassifiedResource]) -> ClassifiedResource:
    """Pick the largest SKU by vCPU count (memory breaks ties)."""
    return max(resources, key=lambda r: (r.spec.vcpus, r.spec.memory_gb))


def _quota_for(quotas: QuotaMap | None, region: str, family: str) -> QuotaUsage:
    if not quotas:
        return _UNKNOWN_QUOTA
    return quotas.get(region, {}).get(family, _UNKNOWN_QUOTA)


def build_family_rollups(
    resources: Iterable[ClassifiedResource],
    quotas: QuotaMap | None = None,
    prices: PriceMap | None = None,
) -> list[FamilyRollup]:
    """Return one rollup row per region and family, sorted by region then family."""
    prices = prices or {}
    rows: list[FamilyRollup] = []
    for (region, family), members in group_by_family(resources).items():
        rep = select_representative(members)
        quota = _quota_for(quotas, region, family)
        availability = rep.availability
        rows.append(
            FamilyRollup(
                family=family,
                region=region,
                totalCount=len(members),
                availableCount=sum(1 for m in members if not m.spec.restrictions),
                representative=rep.spec.name,
                representativeVcpus=rep.spec.vcpus,
                representativeMemoryGB=rep.spec.memory_gb,
                status=availability.status,
                zonesOkCount=len(availability.zones_ok),
                zonesLimitedCount=len(availability.zones_limited),
                zonesRestrictedCount=len(availability.zones_restricted),
                quotaLimit=quota.limit,
                quotaUsed=quota.used,
                quotaAvailable=quota.available,
                price=prices.get((region, rep.spec.name)),
            )
        )
    return sorted(rows, key=lambda r: (r.region, r.family.lower()))


def build_resource_details(
    resources: Iterable[ClassifiedResource],
    quotas: QuotaMap | None = None,
    prices: PriceMap | None = None,
) -> list[ResourceDetail]:
    """Return one detail row per classified resource."""
    prices = prices or {}
    rows: list[ResourceDetail] = []
    for resource in resources:
        spec, availability = resource.spec, resource.availability
        rows.append(
            ResourceDetail(
                name=spec.name,
                family=family_key(resource),
                region=resource.region,
                vcpus=spec.vcpus,
                memoryGB=spec.memory_gb,
                status=availability.status,
                zonesOk=list(availability.zones_ok),
                zonesLimited=list(availability.zones_limited),
                zonesRestricted=list(availability.zones_restricted),
                nonZonal=availability.non_zonal,
                locationRestricted=has_location_restriction(spec),
                quotaAvailable=_quota_for(quotas, resource.region, family_key(resource)).available,
                price=prices.get((resource.region, spec.name)),
                generations=list(spec.generations),
                architecture=spec.architecture,
                imageCompatible=spec.image_compatible,
            )
        )
    return rows
