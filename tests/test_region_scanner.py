"""Tests for parallel region scanning and the merge step."""

import threading
from unittest.mock import MagicMock

import requests

from az_sku_finder.errors import RegionFetchError
from az_sku_finder.models.availability import (
    PricingResult,
    QuotaUsage,
    RegionScanResult,
    ResourceSpec,
    RestrictionRecord,
    Status,
)
from az_sku_finder.retry import RetryPolicy
from az_sku_finder.services.region_scanner import (
    build_scan_report,
    fetch_region,
    run_scan,
    scan_regions,
)

ZONES = ("1", "2", "3")


def _spec(name: str, family: str = "standardESv5Family", **kwargs) -> ResourceSpec:
    return ResourceSpec(name=name, family=family, family_code="E", vcpus=4, zones=ZONES, **kwargs)


def _throttled() -> requests.HTTPError:
    resp = requests.Response()
    resp.status_code = 429
    return requests.HTTPError("429", response=resp)


class FakeResourceProvider:
    def __init__(self, data: dict[str, list[ResourceSpec] | Exception]) -> None:
        self.data = data
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def fetch(self, region: str) -> list[ResourceSpec]:
        with self._lock:
            self.calls.append(region)
        value = self.data[region]
        if isinstance(value, Exception):
            raise value
        return value


class FakeQuotaProvider:
    def fetch(self, region: str, family: str) -> QuotaUsage:
        return QuotaUsage(limit=100, used=10)


class TestFetchRegion:
    def test_success(self) -> None:
        provider = FakeResourceProvider({"eastus": [_spec("Standard_E4s_v5")]})
        result = fetch_region("eastus", provider, FakeQuotaProvider())
        assert result.ok
        assert [r.name for r in result.resources] == ["Standard_E4s_v5"]
        assert result.quotas["standardESv5Family"].available == 90

    def test_failure_recorded_not_raised(self) -> None:
        provider = FakeResourceProvider({"eastus": RuntimeError("boom")})
        result = fetch_region("eastus", provider)
        assert not result.ok
        assert result.error == "boom"
        assert provider.calls == ["eastus"]

    def test_failure_keeps_typed_error(self) -> None:
        cause = RuntimeError("boom")
        result = fetch_region("eastus", FakeResourceProvider({"eastus": cause}))
        assert isinstance(result.failure, RegionFetchError)
        assert result.failure.region == "eastus"
        assert result.failure.cause is cause
        assert "failure" not in result.model_dump()

    def test_success_has_no_failure(self) -> None:
        provider = FakeResourceProvider({"eastus": [_spec("Standard_E4s_v5")]})
        assert fetch_region("eastus", provider).failure is None

    def test_transient_failure_retried(self) -> None:
        provider = MagicMock()
        provider.fetch.side_effect = [_throttled(), [_spec("Standard_E4s_v5")]]
        result = fetch_region("eastus", provider, policy=RetryPolicy(max_retries=2))
        assert result.ok
        assert provider.fetch.call_count == 2

    def test_retry_exhaustion_becomes_region_error(self) -> None:
        provider = MagicMock()
        provider.fetch.side_effect = _throttled()
        result = fetch_region("eastus", provider, policy=RetryPolicy(max_retries=1))
        assert result.error == "429"
        assert provider.fetch.call_count == 2

    def test_quota_failure_leaves_quota_unknown(self) -> None:
        quota = MagicMock()
        quota.fetch.side_effect = ValueError("denied")
        provider = FakeResourceProvider({"eastus": [_spec("Standard_E4s_v5")]})
        result = fetch_region("eastus", provider, quota)
        assert result.ok
        assert result.quotas == {}


class TestScanRegions:
    def test_preserves_region_order(self) -> None:
        provider = FakeResourceProvider(
            {r: [_spec(f"Standard_E{i}s_v5")] for i, r in enumerate(["a", "b", "c", "d", "e"])}
        )
        results = scan_regions(["a", "b", "c", "d", "e"], provider)
        assert [r.region for r in results] == ["a", "b", "c", "d", "e"]

    def test_failing_region_does_not_abort_siblings(self) -> None:
        provider = FakeResourceProvider(
            {"eastus": [_spec("Standard_E4s_v5")], "westus": RuntimeError("down")}
        )
        results = scan_regions(["eastus", "westus"], provider)
        assert results[0].ok
        assert results[1].error == "down"

    def test_bounded_concurrency(self) -> None:
        active = 0
        peak = 0
        lock = threading.Lock()

        class SlowProvider:
            def fetch(self, region: str) -> list[ResourceSpec]:
                nonlocal active, peak
                with lock:
                    active += 1
                    peak = max(peak, active)
                threading.Event().wait(0.02)
                with lock:
                    active -= 1
                return []

        scan_regions([f"r{i}" for i in range(10)], SlowProvider(), max_workers=3)
        assert 1 <= peak <= 3

    def test_empty(self) -> None:
        assert scan_regions([], FakeResourceProvider({})) == []


class TestBuildScanReport:
    def test_merge(self) -> None:
        restricted = RestrictionRecord(type="Zone", reason_code="QuotaId", zones=ZONES)
        results = [
            RegionScanResult(
                region="eastus",
                resources=[
                    _spec("Standard_E4s_v5"),
                    _spec("Standard_E8s_v5", restrictions=(restricted,)),
                ],
                quotas={"standardESv5Family": QuotaUsage(limit=50, used=0)},
            ),
            RegionScanResult(region="westus", error="down"),
        ]
        pricing = [
            PricingResult(
                region="eastus",
                source="retail",
                prices={"Standard_E4s_v5": 0.25},
                warning="negotiated pricing denied",
            )
        ]
        report = build_scan_report(results, pricing)

        assert report.regions == ["eastus", "westus"]
        assert report.errors == {"westus": "down"}
        assert [r.availability.status for r in report.resources] == [
            Status.available,
            Status.unavailable,
        ]
        assert report.pricingSource == {"eastus": "retail"}
        assert report.warnings == ["eastus: negotiated pricing denied"]
        detail = next(d for d in report.details if d.name == "Standard_E4s_v5")
        assert detail.price == 0.25
        assert detail.quotaAvailable == 50
        assert len(report.rollups) == 1


class TestRunScan:
    def test_prices_only_successful_regions(self) -> None:
        provider = FakeResourceProvider(
            {"eastus": [_spec("Standard_E4s_v5")], "westus": RuntimeError("down")}
        )
        pricing = MagicMock()
        pricing.get_prices.return_value = PricingResult(
            region="eastus", source="negotiated", prices={"Standard_E4s_v5": 0.2}
        )
        report = run_scan(["eastus", "westus"], provider, FakeQuotaProvider(), pricing)
        pricing.get_prices.assert_called_once_with("eastus")
        assert report.pricingSource == {"eastus": "negotiated"}
        assert report.errors == {"westus": "down"}

    def test_pricing_failure_is_soft(self) -> None:
        provider = FakeResourceProvider({"eastus": [_spec("Standard_E4s_v5")]})
        pricing = MagicMock()
        pricing.get_prices.side_effect = RuntimeError("no prices")
        report = run_scan(["eastus"], provider, pricing_provider=pricing)
        assert report.pricingSource == {"eastus": "none"}
        assert report.details[0].price is None
        assert report.errors == {}
