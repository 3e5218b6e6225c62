"""Compute resource usage (vCPU quota) queries."""

from __future__ import annotations

import logging
import threading

import requests

from az_sku_finder.azure_api._auth import AZURE_MGMT_URL, _get_headers
from az_sku_finder.models.availability import QuotaUsage

logger = logging.getLogger(__name__)

COMPUTE_API_VERSION = "2024-11-01"


def _normalize_family(family: str) -> str:
    """Normalize a SKU family string for matching against usage ``name.value``."""
    return family.replace(" ", "").replace("-", "").replace("_", "").lower()


def get_compute_usages(
    region: str,
    subscription_id: str,
    tenant_id: str | None = None,
) -> list[dict]:
    """Return Compute resource usages (vCPU quotas) for *region*.

    Each entry has the shape::

        {"name": {"value": ..., "localizedValue": ...},
         "currentValue": int, "limit": int, "unit": str}

    HTTP 403 is treated as "quota unknown" and returns an empty list; any
    other error status raises :class:`requests.HTTPError`.
    """
    headers = _get_headers(tenant_id)
    url = (
        f"{AZURE_MGMT_URL}/subscriptions/{subscription_id}/providers/"
        f"Microsoft.Compute/locations/{region}/usages?api-version={COMPUTE_API_VERSION}"
    )
    resp = requests.get(url, headers=headers, timeout=30)
    if resp.status_code == 403:
        logger.warning(
            "Access denied (403) for compute usages: %s / %s",
            subscription_id,
            region,
        )
        return []
    resp.raise_for_status()
    result: list[dict] = resp.json().get("value", [])
    return result


def usage_map(usages: list[dict]) -> dict[str, QuotaUsage]:
    """Index raw usages by normalised family name."""
    result: dict[str, QuotaUsage] = {}
    for u in usages:
        name_obj = u.get("name")
        if not isinstance(name_obj, dict):
            continue
        name_value = name_obj.get("value", "")
        if name_value:
            result[_normalize_family(name_value)] = QuotaUsage(
                limit=u.get("limit", 0),
                used=u.get("currentValue", 0),
            )
    return result


class AzureQuotaProvider:
    """Quota provider backed by the Compute usages API.

    Usages are fetched once per region and kept for the lifetime of the
    provider instance, which is one scan.
    """

    def __init__(self, subscription_id: str, tenant_id: str | None = None) -> None:
        self.subscription_id = subscription_id
        self.tenant_id = tenant_id
        self._usages: dict[str, dict[str, QuotaUsage]] = {}
        self._lock = threading.Lock()

    def _region_usages(self, region: str) -> dict[str, QuotaUsage]:
        with self._lock:
            cached = self._usages.get(region)
        if cached is not None:
            return cached
        usages = usage_map(get_compute_usages(region, self.subscription_id, self.tenant_id))
        with self._lock:
            self._usages[region] = usages
        return usages

    def fetch(self, region: str, family: str) -> QuotaUsage:
        key = _normalize_family(family)
        return self._region_usages(region).get(key, QuotaUsage())
