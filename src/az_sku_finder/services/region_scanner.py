"""Parallel region scans with fail-soft partial results.

Each region is fetched by one worker of a bounded thread pool.  A worker
builds its own :class:`RegionScanResult` and shares nothing with its
siblings; a failing region is recorded on its result and never aborts the
others.  Once all workers have joined, a single merge step classifies the
resources, attaches prices and builds the rollup / detail rows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from az_sku_finder.errors import RegionFetchError
from az_sku_finder.models.availability import (
    ClassifiedResource,
    PricingResult,
    QuotaUsage,
    RegionScanResult,
    ResourceSpec,
    ScanReport,
)
from az_sku_finder.retry import RetryPolicy, execute_with_retry
from az_sku_finder.scoring.restrictions import classify_region
from az_sku_finder.services.family_aggregator import (
    build_family_rollups,
    build_resource_details,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class ResourceProvider(Protocol):
    def fetch(self, region: str) -> list[ResourceSpec]: ...


class QuotaProvider(Protocol):
    def fetch(self, region: str, family: str) -> QuotaUsage: ...


class PricingProvider(Protocol):
    def get_prices(self, region: str) -> PricingResult: ...


def fetch_region(
    region: str,
    resource_provider: ResourceProvider,
    quota_provider: QuotaProvider | None = None,
    policy: RetryPolicy | None = None,
) -> RegionScanResult:
    """Fetch resources and quotas for one region.  Never raises.

    A resource listing failure marks the region as errored.  A quota
    failure only leaves that family's quota unknown.
    """
    try:
        resources = execute_with_retry(
            lambda: resource_provider.fetch(region),
            operation_name=f"SKU listing for {region}",
            policy=policy,
        )
    except Exception as exc:
        error = RegionFetchError(region, exc)
        logger.warning("Region fetch failed: %s", error)
        return RegionScanResult(
            region=region,
            error=str(exc) or type(exc).__name__,
            failure=error,
        )

    quotas: dict[str, QuotaUsage] = {}
    if quota_provider is not None:
        for family in sorted({r.family for r in resources if r.family}):
            try:
                quotas[family] = execute_with_retry(
                    lambda f=family: quota_provider.fetch(region, f),
                    operation_name=f"Quota for {family} in {region}",
                    policy=policy,
                )
            except Exception as exc:
                logger.warning("Quota unknown for %s in %s: %s", family, region, exc)

    return RegionScanResult(region=region, resources=list(resources), quotas=quotas)


def scan_regions(
    regions: Iterable[str],
    resource_provider: ResourceProvider,
    quota_provider: QuotaProvider | None = None,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    policy: RetryPolicy | None = None,
) -> list[RegionScanResult]:
    """Fetch *regions* with at most *max_workers* concurrent workers.

    Results come back in the order the regions were given.
    """
    region_list = list(regions)
    if not region_list:
        return []
    workers = max(1, min(max_workers, len(region_list)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(
            pool.map(
                lambda region: fetch_region(region, resource_provider, quota_provider, policy),
                region_list,
            )
        )


def build_scan_report(
    results: Iterable[RegionScanResult],
    pricing: Iterable[PricingResult] = (),
) -> ScanReport:
    """Merge worker results into one report.  Single-threaded."""
    results = list(results)
    resources: list[ClassifiedResource] = []
    quotas: dict[str, dict[str, QuotaUsage]] = {}
    errors: dict[str, str] = {}

    for result in results:
        if result.error is not None:
            errors[result.region] = result.error
            continue
        resources.extend(classify_region(result.region, result.resources))
        quotas[result.region] = dict(result.quotas)

    prices: dict[tuple[str, str], float | None] = {}
    sources: dict[str, str] = {}
    warnings: list[str] = []
    for priced in pricing:
        sources[priced.region] = priced.source
        if priced.warning:
            warnings.append(f"{priced.region}: {priced.warning}")
        for sku_name, price in priced.prices.items():
            prices[(priced.region, sku_name)] = price

    return ScanReport(
        regions=[r.region for r in results],
        resources=resources,
        rollups=build_family_rollups(resources, quotas, prices),
        details=build_resource_details(resources, quotas, prices),
        errors=errors,
        pricingSource=sources,
        warnings=warnings,
    )


def run_scan(
    regions: Iterable[str],
    resource_provider: ResourceProvider,
    quota_provider: QuotaProvider | None = None,
    pricing_provider: PricingProvider | None = None,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    policy: RetryPolicy | None = None,
) -> ScanReport:
    """Scan *regions* in parallel, then price successful regions one by one."""
    results = scan_regions(
        regions,
        resource_provider,
        quota_provider,
        max_workers=max_workers,
        policy=policy,
    )
    pricing: list[PricingResult] = []
    if pricing_provider is not None:
        for result in results:
            if not result.ok:
                continue
            try:
                pricing.append(pricing_provider.get_prices(result.region))
            except Exception as exc:
                logger.warning("Pricing unavailable for %s: %s", result.region, exc)
                pricing.append(
                    PricingResult(region=result.region, warning=f"pricing failed ({exc})")
                )

    report = build_scan_report(results, pricing)
    logger.info(
        "Scanned %s regions: %s resources, %s errors",
        len(report.regions),
        len(report.resources),
        len(report.errors),
    )
    return report
