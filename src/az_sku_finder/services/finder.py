"""Azure-backed scan and recommendation entry points.

Resolves the subscription context, wires the Azure collaborators into the
region scanner and hands the merged report to the recommender.  Used by
both the web API and the CLI.
"""

from __future__ import annotations

import logging

from az_sku_finder import azure_api
from az_sku_finder.models.availability import RecommendationResult, ScanReport
from az_sku_finder.models.scan import RecommendRequest, ScanRequest
from az_sku_finder.services.recommender import recommend_from_report
from az_sku_finder.services.region_scanner import run_scan
from az_sku_finder.settings import FinderSettings, get_settings

logger = logging.getLogger(__name__)


def scan(request: ScanRequest, settings: FinderSettings | None = None) -> ScanReport:
    """Scan the requested regions and return the classified report.

    Raises :class:`~az_sku_finder.errors.ContextResolutionError` before any
    fetch when no subscription or region can be resolved.
    """
    settings = settings or get_settings()
    policy = settings.retry_policy()

    context = azure_api.resolve_context(
        request.subscriptionId or settings.subscription_id or None,
        request.tenantId or settings.tenant_id or None,
        request.regions or settings.regions,
        policy,
    )

    include_prices = (
        request.includePrices if request.includePrices is not None else settings.include_prices
    )
    pricing = None
    if include_prices:
        pricing = azure_api.PricingResolver(
            context.subscription_id,
            context.tenant_id,
            request.currencyCode or settings.currency_code,
            policy=policy,
            cache=azure_api.PriceCache(),
        )

    logger.info(
        "Scanning %s regions in subscription %s",
        len(context.regions),
        context.subscription_id,
    )
    return run_scan(
        context.regions,
        azure_api.AzureResourceProvider(
            context.subscription_id,
            context.tenant_id,
            name=request.name,
            family=request.family,
        ),
        azure_api.AzureQuotaProvider(context.subscription_id, context.tenant_id),
        pricing,
        max_workers=request.maxConcurrency or settings.max_concurrency,
        policy=policy,
    )


def recommend(
    request: RecommendRequest,
    settings: FinderSettings | None = None,
) -> RecommendationResult:
    """Scan every SKU in the requested regions and rank substitutes for the target.

    Name / family filters are ignored so that every SKU is a candidate.
    Raises :class:`~az_sku_finder.errors.MalformedInputError` when the
    target is not found in any scanned region.
    """
    settings = settings or get_settings()
    report = scan(request.model_copy(update={"name": None, "family": None}), settings)
    result = recommend_from_report(
        request.targetSku,
        report,
        top_n=request.topN or settings.top_n,
        min_vcpus=request.minVcpus if request.minVcpus is not None else settings.min_vcpus,
        min_memory_gb=(
            request.minMemoryGB if request.minMemoryGB is not None else settings.min_memory_gb
        ),
    )
    return result.model_copy(update={"errors": dict(report.errors)})
