"""Unified CLI for az-sku-finder.

Provides three subcommands:
    az-sku-finder scan       – scan regions and print rollups / details as JSON
    az-sku-finder recommend  – rank substitutes for a SKU and print them as JSON
    az-sku-finder web        – run the web API (FastAPI + uvicorn)
"""

import json
import logging
import sys

import click

from az_sku_finder import __version__
from az_sku_finder.errors import ContextResolutionError, MalformedInputError


def _configure_logging(verbose: bool) -> None:
    from az_sku_finder.app import _setup_logging

    _setup_logging(level=logging.DEBUG if verbose else logging.WARNING)


def _echo_json(data: object) -> None:
    click.echo(json.dumps(data, indent=2))


_region_option = click.option(
    "--region",
    "-r",
    "regions",
    multiple=True,
    help="Region to scan (repeatable or comma-separated).",
)
_subscription_option = click.option("--subscription", "subscription_id", help="Subscription ID.")
_tenant_option = click.option("--tenant", "tenant_id", help="Tenant ID.")
_prices_option = click.option(
    "--prices/--no-prices", "include_prices", default=None, help="Fetch hourly prices."
)
_currency_option = click.option("--currency", default=None, help="ISO 4217 currency code.")
_verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose logging.",
)


@click.group()
@click.version_option(version=__version__, prog_name="az-sku-finder")
def cli() -> None:
    """Azure SKU Finder."""


@cli.command()
@_region_option
@_subscription_option
@_tenant_option
@click.option("--name", default=None, help="Fuzzy SKU name filter (e.g. E64-v5).")
@click.option("--family", default=None, help="SKU family filter (e.g. E or ESv5).")
@_prices_option
@_currency_option
@click.option(
    "--details/--rollups",
    default=False,
    show_default=True,
    help="Print per-SKU detail rows instead of family rollups.",
)
@_verbose_option
def scan(
    regions: tuple[str, ...],
    subscription_id: str | None,
    tenant_id: str | None,
    name: str | None,
    family: str | None,
    include_prices: bool | None,
    currency: str | None,
    details: bool,
    verbose: bool,
) -> None:
    """Scan regions for SKU availability."""
    from az_sku_finder.models.scan import ScanRequest
    from az_sku_finder.services import finder

    _configure_logging(verbose)
    request = ScanRequest(
        subscriptionId=subscription_id,
        tenantId=tenant_id,
        regions=list(regions),
        name=name,
        family=family,
        includePrices=include_prices,
        currencyCode=currency,
    )
    try:
        report = finder.scan(request)
    except ContextResolutionError as exc:
        raise click.ClickException(str(exc)) from exc

    payload = report.model_dump(mode="json")
    _echo_json(
        {
            "regions": payload["regions"],
            "rows": payload["details"] if details else payload["rollups"],
            "errors": payload["errors"],
            "pricingSource": payload["pricingSource"],
            "warnings": payload["warnings"],
        }
    )
    for region, error in report.errors.items():
        click.echo(click.style(f"✗ {region}: {error}", fg="red"), err=True)


@cli.command()
@click.argument("target_sku")
@_region_option
@_subscription_option
@_tenant_option
@click.option("--top", "top_n", type=int, default=None, help="Number of results (default 5).")
@click.option("--min-vcpus", type=int, default=None, help="Minimum vCPU count.")
@click.option("--min-memory", "min_memory_gb", type=float, default=None, help="Minimum GB.")
@_prices_option
@_currency_option
@_verbose_option
def recommend(
    target_sku: str,
    regions: tuple[str, ...],
    subscription_id: str | None,
    tenant_id: str | None,
    top_n: int | None,
    min_vcpus: int | None,
    min_memory_gb: float | None,
    include_prices: bool | None,
    currency: str | None,
    verbose: bool,
) -> None:
    """Recommend substitutes for TARGET_SKU."""
    from az_sku_finder.models.scan import RecommendRequest
    from az_sku_finder.services import finder

    _configure_logging(verbose)
    request = RecommendRequest(
        targetSku=target_sku,
        subscriptionId=subscription_id,
        tenantId=tenant_id,
        regions=list(regions),
        topN=top_n,
        minVcpus=min_vcpus,
        minMemoryGB=min_memory_gb,
        includePrices=include_prices,
        currencyCode=currency,
    )
    try:
        result = finder.recommend(request)
    except (ContextResolutionError, MalformedInputError) as exc:
        raise click.ClickException(str(exc)) from exc

    _echo_json(result.model_dump(mode="json"))
    if result.smallerAlternatives:
        click.echo(
            click.style(
                f"No available match at the requested size; "
                f"{len(result.smallerAlternatives)} smaller alternative(s) listed.",
                fg="yellow",
            ),
            err=True,
        )
    if not result.recommendations and not result.smallerAlternatives:
        sys.exit(1)


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Host to bind to.")
@click.option("--port", default=5001, show_default=True, help="Port to listen on.")
@_verbose_option
def web(host: str, port: int, verbose: bool) -> None:
    """Run the web API."""
    import uvicorn

    from az_sku_finder.app import app

    _configure_logging(verbose)
    url = f"http://{host}:{port}"
    click.echo(f"✦ az-sku-finder running at {click.style(url, fg='cyan', bold=True)}")
    click.echo("  Press Ctrl+C to stop.\n")
    uvicorn.run(app, host=host, port=port, log_level="info" if verbose else "warning")
