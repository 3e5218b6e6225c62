"""Restriction classifier – raw ARM restriction records → availability status.

This is the only place a SKU's status is derived.  The family rollups and
the recommendation ranker both consume its output and never re-derive it.

Classification rule
-------------------
Zone-scoped restrictions with reason ``NotAvailableForSubscription`` put
their zones in *limited*; every other zone-scoped reason puts them in
*restricted*.  When a zone shows up under both, *restricted* wins whatever
the record order.  Zones not declared for the region are ignored so that
``ok | limited | restricted`` is exactly the declared zone set.

    restricted and not ok    → Unavailable
    restricted and ok        → PartialZone
    limited and not ok       → SubscriptionLimited
    limited and ok           → ZoneConstrained
    otherwise                → Available

Non-zone restrictions (``type == "Location"``) never change the status;
they are surfaced through ``location_restricted`` on the detail rows.
"""

from __future__ import annotations

from collections.abc import Iterable

from az_sku_finder.models.availability import (
    AvailabilityStatus,
    ClassifiedResource,
    ResourceSpec,
    RestrictionRecord,
    Status,
)


def derive_status(ok_count: int, limited_count: int, restricted_count: int) -> Status:
    """Map zone-set sizes to a status.  Only emptiness matters."""
    if restricted_count:
        return Status.partial_zone if ok_count else Status.unavailable
    if limited_count:
        return Status.zone_constrained if ok_count else Status.subscription_limited
    return Status.available


def classify_restrictions(
    zones: Iterable[str],
    restrictions: Iterable[RestrictionRecord],
) -> AvailabilityStatus:
    """Classify a SKU from its declared zones and restriction records."""
    declared = set(zones)
    records = list(restrictions)

    if not records:
        return AvailabilityStatus(
            status=Status.available,
            zones_ok=tuple(sorted(declared)),
            non_zonal=not declared,
        )

    limited: set[str] = set()
    restricted: set[str] = set()
    for record in records:
        if not record.is_zone_scoped:
            continue
        target = limited if record.is_subscription_limited else restricted
        target.update(z for z in record.zones if z in declared)

    limited -= restricted
    ok = declared - limited - restricted

    return AvailabilityStatus(
        status=derive_status(len(ok), len(limited), len(restricted)),
        zones_ok=tuple(sorted(ok)),
        zones_limited=tuple(sorted(limited)),
        zones_restricted=tuple(sorted(restricted)),
        non_zonal=not declared,
    )


def classify_resource(spec: ResourceSpec) -> AvailabilityStatus:
    return classify_restrictions(spec.zones, spec.restrictions)


def has_location_restriction(spec: ResourceSpec) -> bool:
    """Return True if any restriction applies to the whole region."""
    return any(not r.is_zone_scoped for r in spec.restrictions)


def classify_region(region: str, specs: Iterable[ResourceSpec]) -> list[ClassifiedResource]:
    """Classify every SKU fetched for *region*."""
    return [
        ClassifiedResource(region=region, spec=spec, availability=classify_resource(spec))
        for spec in specs
    ]
