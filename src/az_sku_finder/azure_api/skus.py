"""SKU listing and parsing into :class:`ResourceSpec` records."""

from __future__ import annotations

import logging

from az_sku_finder.azure_api._auth import (
    AZURE_API_VERSION,
    AZURE_MGMT_URL,
    _get_headers,
)
from az_sku_finder.azure_api._pagination import _paginate
from az_sku_finder.models.availability import ResourceSpec, RestrictionRecord
from az_sku_finder.scoring.similarity import family_code_from_name
from az_sku_finder.sku_names import sku_name_matches

logger = logging.getLogger(__name__)


def _parse_capability_value(value: str) -> str | bool | int | float:
    """Convert an ARM capability string to an appropriate Python type."""
    if value in ("True", "False"):
        return value == "True"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _as_int(value: object) -> int:
    try:
        return int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0


def _as_float(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


def _parse_generations(value: object) -> tuple[str, ...]:
    """``"V1,V2"`` → ``("V1", "V2")``."""
    if not isinstance(value, str) or not value:
        return ()
    return tuple(sorted({g.strip().upper() for g in value.split(",") if g.strip()}))


def parse_resource_spec(sku: dict, region: str) -> ResourceSpec:
    """Build a :class:`ResourceSpec` from one raw ``Microsoft.Compute/skus`` item."""
    zones: list[str] = []
    for loc_info in sku.get("locationInfo", []):
        if loc_info.get("location", "").lower() == region.lower():
            zones = loc_info.get("zones", []) or []
            break

    capabilities: dict[str, str | bool | int | float] = {}
    for cap in sku.get("capabilities", []):
        cap_name = cap.get("name", "")
        if cap_name:
            capabilities[cap_name] = _parse_capability_value(str(cap.get("value", "")))

    restrictions = tuple(
        RestrictionRecord(
            type=r.get("type") or "",
            reason_code=r.get("reasonCode"),
            zones=tuple(r.get("restrictionInfo", {}).get("zones", []) or []),
        )
        for r in sku.get("restrictions", [])
    )

    name = sku.get("name") or ""
    return ResourceSpec(
        name=name,
        family=sku.get("family") or "",
        family_code=family_code_from_name(name),
        vcpus=_as_int(capabilities.get("vCPUs")),
        memory_gb=_as_float(capabilities.get("MemoryGB")),
        generations=_parse_generations(capabilities.get("HyperVGenerations")),
        architecture=str(capabilities.get("CpuArchitectureType") or "x64"),
        premium_io=capabilities.get("PremiumIO") is True,
        zones=tuple(sorted(zones)),
        restrictions=restrictions,
    )


def list_raw_skus(
    region: str,
    subscription_id: str,
    tenant_id: str | None = None,
) -> list[dict]:
    """Return every raw SKU item ARM lists for *region* (all resource types)."""
    headers = _get_headers(tenant_id)
    url = (
        f"{AZURE_MGMT_URL}/subscriptions/{subscription_id}/providers/"
        f"Microsoft.Compute/skus?api-version={AZURE_API_VERSION}"
        f"&$filter=location eq '{region}'"
    )
    return _paginate(url, headers, timeout=60)


def get_resource_specs(
    region: str,
    subscription_id: str,
    tenant_id: str | None = None,
    resource_type: str = "virtualMachines",
    *,
    name: str | None = None,
    family: str | None = None,
) -> list[ResourceSpec]:
    """Return parsed VM SKUs for *region*, sorted by name.

    * *name* – fuzzy SKU name filter (``"E64-v5"`` matches ``Standard_E64s_v5``).
    * *family* – case-insensitive substring match on the ARM family or
      exact match on the family code (``"E"``).
    """
    name_lower = name.lower() if name else None
    family_lower = family.lower() if family else None

    specs: list[ResourceSpec] = []
    for sku in list_raw_skus(region, subscription_id, tenant_id):
        if sku.get("resourceType") != resource_type:
            continue
        if name_lower and not sku_name_matches(name_lower, (sku.get("name") or "").lower()):
            continue
        spec = parse_resource_spec(sku, region)
        if family_lower and not (
            family_lower in spec.family.lower() or family_lower == spec.family_code.lower()
        ):
            continue
        specs.append(spec)

    logger.debug("Fetched %s %s SKUs for %s", len(specs), resource_type, region)
    return sorted(specs, key=lambda s: s.name)


class AzureResourceProvider:
    """Resource provider backed by the ARM ``Microsoft.Compute/skus`` API."""

    def __init__(
        self,
        subscription_id: str,
        tenant_id: str | None = None,
        *,
        name: str | None = None,
        family: str | None = None,
    ) -> None:
        self.subscription_id = subscription_id
        self.tenant_id = tenant_id
        self.name = name
        self.family = family

    def fetch(self, region: str) -> list[ResourceSpec]:
        return get_resource_specs(
            region,
            self.subscription_id,
            self.tenant_id,
            name=self.name,
            family=self.family,
        )
