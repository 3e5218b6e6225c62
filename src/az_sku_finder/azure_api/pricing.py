"""VM pricing – negotiated price sheet with fallback to public retail prices.

Two backends:

* **negotiated** – the subscription's Consumption price sheet (contract
  rates).  Needs billing read access and is frequently denied.
* **retail** – the unauthenticated Azure Retail Prices API.

:class:`PricingResolver` tries negotiated first and falls back to retail on
any failure (permission denied, not found, empty sheet, or anything else),
reporting which source was used.  Prices are hourly PayGo Linux rates.

Nothing is cached at module level: callers pass a :class:`PriceCache` whose
lifetime is one run.
"""

from __future__ import annotations

import logging
import re

import requests

from az_sku_finder.azure_api._auth import AZURE_MGMT_URL, _get_headers
from az_sku_finder.errors import PermissionDeniedError, PricingNotFoundError
from az_sku_finder.models.availability import PricingResult
from az_sku_finder.retry import RetryPolicy, execute_with_retry

logger = logging.getLogger(__name__)

RETAIL_PRICES_URL = "https://prices.azure.com/api/retail/prices"
RETAIL_PRICES_API_VERSION = "2023-01-01-preview"
CONSUMPTION_API_VERSION = "2023-05-01"

SOURCE_NEGOTIATED = "negotiated"
SOURCE_RETAIL = "retail"
SOURCE_NONE = "none"

# Geography prefixes used in price sheet meter locations ("EU West", "US East 2").
_METER_GEO_NAMES: dict[str, str] = {
    "ae": "uae",
    "ap": "asia",
    "au": "australia",
    "br": "brazil",
    "ca": "canada",
    "ch": "switzerland",
    "de": "germany",
    "es": "spain",
    "eu": "europe",
    "fr": "france",
    "in": "india",
    "it": "italy",
    "ja": "japan",
    "kr": "korea",
    "no": "norway",
    "pl": "poland",
    "se": "sweden",
    "za": "southafrica",
}

_NON_PAYGO_MARKERS = ("windows", "spot", "low priority")


class PriceCache:
    """Explicit price cache scoped to a single run."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, float]] = {}

    def get(self, key: str) -> dict[str, float] | None:
        return self._entries.get(key)

    def set(self, key: str, prices: dict[str, float]) -> None:
        self._entries[key] = prices

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Retail prices
# ---------------------------------------------------------------------------


def _fetch_retail_items(region: str, currency_code: str = "USD") -> list[dict]:
    """Fetch all VM consumption price items for *region* (all pages)."""
    odata_filter = (
        f"armRegionName eq '{region}' "
        f"and serviceName eq 'Virtual Machines' "
        f"and priceType eq 'Consumption'"
    )
    items: list[dict] = []
    url: str | None = RETAIL_PRICES_URL
    params: dict[str, str] | None = {
        "api-version": RETAIL_PRICES_API_VERSION,
        "$filter": odata_filter,
        "currencyCode": currency_code,
    }
    while url:
        resp = requests.get(url, params=params, timeout=30)
        resp.raise_for_status()
        data = resp.json()
        items.extend(data.get("Items", []))
        url = data.get("NextPageLink")
        params = None  # NextPageLink already includes query parameters
    return items


def _is_paygo_linux(item: dict) -> bool:
    text = " ".join(
        (item.get("productName") or "", item.get("skuName") or "", item.get("meterName") or "")
    ).lower()
    return not any(marker in text for marker in _NON_PAYGO_MARKERS)


def _select_price_line(lines: list[dict]) -> dict | None:
    """Pick the cheapest ``retailPrice`` line, or ``None`` when empty."""
    if not lines:
        return None
    return min(lines, key=lambda item: item.get("retailPrice", float("inf")))


def get_retail_prices(
    region: str,
    currency_code: str = "USD",
    *,
    policy: RetryPolicy | None = None,
    cache: PriceCache | None = None,
) -> dict[str, float]:
    """Return ``{armSkuName: hourly PayGo Linux price}`` for *region*."""
    cache_key = f"retail:{region}:{currency_code}"
    if cache is not None and (cached := cache.get(cache_key)) is not None:
        return cached

    items = execute_with_retry(
        lambda: _fetch_retail_items(region, currency_code),
        operation_name=f"Retail prices for {region}",
        policy=policy,
    )

    by_sku: dict[str, list[dict]] = {}
    for item in items:
        sku_name = item.get("armSkuName", "")
        if sku_name and _is_paygo_linux(item):
            by_sku.setdefault(sku_name, []).append(item)

    result: dict[str, float] = {}
    for sku_name, lines in by_sku.items():
        line = _select_price_line(lines)
        if line is not None and line.get("retailPrice") is not None:
            result[sku_name] = float(line["retailPrice"])

    if cache is not None:
        cache.set(cache_key, result)
    return result


# ---------------------------------------------------------------------------
# Negotiated prices (Consumption price sheet)
# ---------------------------------------------------------------------------


def meter_location_matches(meter_location: str, region: str) -> bool:
    """Return True if a price sheet ``meterLocation`` denotes ARM *region*.

    ``"EU West"`` matches ``westeurope`` and ``"US East 2"`` matches
    ``eastus2``: every expanded word must occur in the region name and the
    words must account for all of it.
    """
    words = [_METER_GEO_NAMES.get(w, w) for w in meter_location.lower().split()]
    if not words:
        return False
    region = region.lower()
    if sum(len(w) for w in words) != len(region):
        return False
    return all(w in region for w in words)


def arm_sku_from_meter(meter_name: str) -> str:
    """``"D2s v3"`` → ``"Standard_D2s_v3"``."""
    return "Standard_" + "_".join(meter_name.split())


def _fetch_price_sheet(subscription_id: str, tenant_id: str | None = None) -> list[dict]:
    """Fetch every price sheet line of the subscription's current billing period."""
    headers = _get_headers(tenant_id)
    url: str | None = (
        f"{AZURE_MGMT_URL}/subscriptions/{subscription_id}/providers/"
        f"Microsoft.Consumption/pricesheets/default?api-version={CONSUMPTION_API_VERSION}"
        f"&$expand=properties/meterDetails"
    )
    lines: list[dict] = []
    while url:
        resp = requests.get(url, headers=headers, timeout=60)
        if resp.status_code in (401, 403):
            raise PermissionDeniedError(
                f"Access denied ({resp.status_code}) to the price sheet of {subscription_id}"
            )
        if resp.status_code == 404:
            raise PricingNotFoundError(f"No price sheet found for {subscription_id}")
        resp.raise_for_status()
        props = resp.json().get("properties", {})
        lines.extend(props.get("pricesheets", []))
        url = props.get("nextLink")
    return lines


def get_negotiated_prices(
    region: str,
    subscription_id: str,
    tenant_id: str | None = None,
    *,
    policy: RetryPolicy | None = None,
    cache: PriceCache | None = None,
) -> dict[str, float]:
    """Return ``{armSkuName: hourly negotiated price}`` for *region*.

    The price sheet covers the whole subscription and is fetched once per
    cache.  Raises :class:`PermissionDeniedError` or
    :class:`PricingNotFoundError` when the sheet cannot be read.
    """
    sheet_key = f"negotiated-sheet:{subscription_id}"
    region_key = f"negotiated:{subscription_id}:{region}"
    if cache is not None and (cached := cache.get(region_key)) is not None:
        return cached

    sheet = cache.get(sheet_key) if cache is not None else None
    if sheet is None:
        lines = execute_with_retry(
            lambda: _fetch_price_sheet(subscription_id, tenant_id),
            operation_name="Negotiated price sheet",
            policy=policy,
        )
        sheet = _index_price_sheet(lines)
        if cache is not None:
            cache.set(sheet_key, sheet)

    result: dict[str, float] = {}
    for key, price in sheet.items():
        sku_name, _, location = key.partition("|")
        if meter_location_matches(location, region):
            result[sku_name] = min(price, result.get(sku_name, price))

    if cache is not None:
        cache.set(region_key, result)
    return result


_HOURLY_UNIT_RE = re.compile(r"^\s*(\d+)\s+hours?\s*$", re.IGNORECASE)


def _hours_per_unit(unit: str) -> int | None:
    """``"1 Hour"`` → 1, ``"100 Hours"`` → 100; ``None`` for non-hourly units."""
    match = _HOURLY_UNIT_RE.match(unit)
    if not match:
        return None
    hours = int(match.group(1))
    return hours or None


def _index_price_sheet(lines: list[dict]) -> dict[str, float]:
    """Flatten price sheet lines into ``{"<armSku>|<meter location>": hourly price}``."""
    index: dict[str, float] = {}
    for line in lines:
        details = line.get("meterDetails") or {}
        if details.get("meterCategory") != "Virtual Machines":
            continue
        meter_name = details.get("meterName") or ""
        sub_category = details.get("meterSubCategory") or ""
        label = f"{meter_name} {sub_category}".lower()
        if not meter_name or any(marker in label for marker in _NON_PAYGO_MARKERS):
            continue
        hours = _hours_per_unit(line.get("unitOfMeasure") or "1 Hour")
        if hours is None:
            continue
        price = line.get("unitPrice")
        if price is None:
            continue
        hourly = float(price) / hours
        location = details.get("meterLocation") or ""
        key = f"{arm_sku_from_meter(meter_name)}|{location.lower()}"
        index[key] = min(hourly, index.get(key, float("inf")))
    return index


# ---------------------------------------------------------------------------
# Source selection
# ---------------------------------------------------------------------------


class PricingResolver:
    """Pricing provider that prefers negotiated rates and falls back to retail.

    A failure of the negotiated backend never fails the run: the reason is
    logged, recorded as ``warning`` on the result, and retail prices are
    used.  Once the negotiated sheet has failed it is not retried for the
    other regions of the same run.
    """

    def __init__(
        self,
        subscription_id: str,
        tenant_id: str | None = None,
        currency_code: str = "USD",
        *,
        prefer_negotiated: bool = True,
        policy: RetryPolicy | None = None,
        cache: PriceCache | None = None,
    ) -> None:
        self.subscription_id = subscription_id
        self.tenant_id = tenant_id
        self.currency_code = currency_code
        self.prefer_negotiated = prefer_negotiated
        self.policy = policy
        self.cache = cache if cache is not None else PriceCache()
        self._negotiated_failure: str | None = None

    def _try_negotiated(self, region: str) -> tuple[dict[str, float], str | None]:
        if self._negotiated_failure is not None:
            return {}, self._negotiated_failure
        try:
            prices = get_negotiated_prices(
                region,
                self.subscription_id,
                self.tenant_id,
                policy=self.policy,
                cache=self.cache,
            )
        except PermissionDeniedError as exc:
            self._negotiated_failure = f"negotiated pricing denied ({exc})"
        except PricingNotFoundError as exc:
            self._negotiated_failure = f"negotiated pricing not found ({exc})"
        except Exception as exc:
            self._negotiated_failure = f"negotiated pricing failed ({exc})"
        else:
            if prices:
                return prices, None
            return {}, f"no negotiated rates for {region}"
        return {}, self._negotiated_failure

    def get_prices(self, region: str) -> PricingResult:
        """Return prices for *region* and the source they came from."""
        warning: str | None = None
        if self.prefer_negotiated:
            prices, warning = self._try_negotiated(region)
            if prices:
                return PricingResult(
                    region=region,
                    source=SOURCE_NEGOTIATED,
                    currency=self.currency_code,
                    prices=prices,
                )
            logger.warning("Falling back to retail prices for %s: %s", region, warning)

        try:
            prices = get_retail_prices(
                region, self.currency_code, policy=self.policy, cache=self.cache
            )
        except Exception as exc:
            logger.warning("Failed to fetch retail prices for %s: %s", region, exc)
            reason = f"retail pricing failed ({exc})"
            return PricingResult(
                region=region,
                source=SOURCE_NONE,
                currency=self.currency_code,
                warning=f"{warning}; {reason}" if warning else reason,
            )
        return PricingResult(
            region=region,
            source=SOURCE_RETAIL,
            currency=self.currency_code,
            prices=prices,
            warning=warning,
        )
