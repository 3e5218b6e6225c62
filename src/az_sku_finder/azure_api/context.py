"""Subscription / tenant context resolution before any scan starts."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from az_sku_finder.azure_api._auth import (
    AZURE_API_VERSION,
    AZURE_MGMT_URL,
    _get_default_tenant_id,
    _get_headers,
)
from az_sku_finder.azure_api._pagination import _paginate
from az_sku_finder.errors import ContextResolutionError
from az_sku_finder.retry import RetryPolicy, execute_with_retry

logger = logging.getLogger(__name__)


class ScanContext(BaseModel):
    """Identity and scope every fetch of one run is made against."""

    subscription_id: str
    tenant_id: str | None = None
    regions: list[str] = Field(default_factory=list)


def normalize_regions(regions: list[str] | None) -> list[str]:
    """Lower-case, strip and de-duplicate region names, keeping order.

    Comma-separated entries are split so ``["eastus,westus2"]`` works.
    """
    seen: set[str] = set()
    result: list[str] = []
    for entry in regions or []:
        for raw in entry.split(","):
            region = raw.strip().lower().replace(" ", "")
            if region and region not in seen:
                seen.add(region)
                result.append(region)
    return result


def list_subscriptions(
    tenant_id: str | None = None,
    policy: RetryPolicy | None = None,
) -> list[dict]:
    """Return enabled subscriptions as ``[{"id": ..., "name": ...}, ...]``."""
    headers = _get_headers(tenant_id)
    url = f"{AZURE_MGMT_URL}/subscriptions?api-version={AZURE_API_VERSION}"
    all_subs = execute_with_retry(
        lambda: _paginate(url, headers),
        operation_name="Subscription listing",
        policy=policy,
    )
    subs = [
        {"id": s["subscriptionId"], "name": s.get("displayName") or s["subscriptionId"]}
        for s in all_subs
        if s.get("state") == "Enabled"
    ]
    return sorted(subs, key=lambda x: x["name"].lower())


def resolve_context(
    subscription_id: str | None,
    tenant_id: str | None,
    regions: list[str] | None,
    policy: RetryPolicy | None = None,
) -> ScanContext:
    """Establish the ambient subscription, tenant and region scope.

    When *subscription_id* is empty the first enabled subscription visible
    to the credential is used.  Raises :class:`ContextResolutionError` when
    no region is requested or no subscription can be resolved; no SKU fetch
    is attempted in that case.
    """
    region_list = normalize_regions(regions)
    if not region_list:
        raise ContextResolutionError("At least one region is required")

    try:
        tenant = tenant_id or _get_default_tenant_id()
        sub_id = subscription_id
        if not sub_id:
            subs = list_subscriptions(tenant, policy)
            if not subs:
                raise ContextResolutionError("No enabled subscriptions found")
            sub_id = subs[0]["id"]
            logger.info("Using subscription %s (%s)", subs[0]["name"], sub_id)
    except ContextResolutionError:
        raise
    except Exception as exc:
        raise ContextResolutionError(f"Could not resolve Azure context: {exc}") from exc

    return ScanContext(subscription_id=sub_id, tenant_id=tenant, regions=region_list)
