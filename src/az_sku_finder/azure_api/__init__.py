"""Azure ARM / Retail Prices collaborators.

Pure-data fetchers that turn Azure API responses into the models consumed
by the scanning core.  Every remote call made from here is wrapped in
:func:`az_sku_finder.retry.execute_with_retry`, either directly or by the
region workers.

This package re-exports all public names so that callers can use
``from az_sku_finder import azure_api``.
"""

import requests as requests  # noqa: F401  # re-export for mock patching

# -- Auth & constants -------------------------------------------------------
from az_sku_finder.azure_api._auth import (  # noqa: F401
    AZURE_API_VERSION,
    AZURE_MGMT_URL,
    _get_default_tenant_id,
    _get_headers,
    credential,
)

# -- Pagination --------------------------------------------------------------
from az_sku_finder.azure_api._pagination import _paginate  # noqa: F401

# -- Context -----------------------------------------------------------------
from az_sku_finder.azure_api.context import (  # noqa: F401
    ScanContext,
    list_subscriptions,
    normalize_regions,
    resolve_context,
)

# -- Pricing -----------------------------------------------------------------
from az_sku_finder.azure_api.pricing import (  # noqa: F401
    RETAIL_PRICES_API_VERSION,
    RETAIL_PRICES_URL,
    SOURCE_NEGOTIATED,
    SOURCE_NONE,
    SOURCE_RETAIL,
    PriceCache,
    PricingResolver,
    arm_sku_from_meter,
    get_negotiated_prices,
    get_retail_prices,
    meter_location_matches,
)

# -- Quotas ------------------------------------------------------------------
from az_sku_finder.azure_api.quotas import (  # noqa: F401
    COMPUTE_API_VERSION,
    AzureQuotaProvider,
    _normalize_family,
    get_compute_usages,
    usage_map,
)

# -- SKUs --------------------------------------------------------------------
from az_sku_finder.azure_api.skus import (  # noqa: F401
    AzureResourceProvider,
    _parse_capability_value,
    get_resource_specs,
    list_raw_skus,
    parse_resource_spec,
)
