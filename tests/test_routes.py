"""Tests for the FastAPI routes."""

from unittest.mock import patch

from az_sku_finder.errors import ContextResolutionError, MalformedInputError
from az_sku_finder.models.availability import (
    AvailabilityStatus,
    FamilyRollup,
    RecommendationResult,
    ResourceProfile,
    ScanReport,
    ScoredCandidate,
    Status,
)


def _report() -> ScanReport:
    return ScanReport(
        regions=["eastus", "westus"],
        rollups=[
            FamilyRollup(
                family="standardESv5Family",
                region="eastus",
                totalCount=2,
                availableCount=1,
                representative="Standard_E64s_v5",
                representativeVcpus=64,
                representativeMemoryGB=512.0,
                status=Status.zone_constrained,
                zonesOkCount=2,
                zonesLimitedCount=1,
                zonesRestrictedCount=0,
            )
        ],
        errors={"westus": "HTTP 500"},
        pricingSource={"eastus": "retail"},
    )


def _result() -> RecommendationResult:
    profile = ResourceProfile(vcpus=64, memory_gb=512, family="E")
    return RecommendationResult(
        target="Standard_E64s_v5",
        targetProfile=profile,
        recommendations=[
            ScoredCandidate(
                name="Standard_E64as_v5",
                region="eastus",
                profile=profile,
                score=92,
                availability=AvailabilityStatus(
                    status=Status.available, zones_ok=("1", "2", "3")
                ),
                okZoneCount=3,
            )
        ],
    )


class TestVersion:
    def test_returns_version(self, client) -> None:
        resp = client.get("/api/version")
        assert resp.status_code == 200
        assert "version" in resp.json()


class TestScan:
    def test_returns_rollups_and_errors(self, client) -> None:
        with patch("az_sku_finder.app.finder.scan", return_value=_report()) as scan:
            resp = client.post("/api/scan", json={"regions": ["eastus", "westus"]})
        assert resp.status_code == 200
        data = resp.json()
        assert "resources" not in data
        assert data["rollups"][0]["status"] == "ZoneConstrained"
        assert data["errors"] == {"westus": "HTTP 500"}
        assert data["pricingSource"] == {"eastus": "retail"}
        assert scan.call_args.args[0].regions == ["eastus", "westus"]

    def test_context_error_is_400(self, client) -> None:
        with patch(
            "az_sku_finder.app.finder.scan",
            side_effect=ContextResolutionError("At least one region is required"),
        ):
            resp = client.post("/api/scan", json={})
        assert resp.status_code == 400
        assert "region" in resp.json()["error"]

    def test_unexpected_error_is_500(self, client) -> None:
        with patch("az_sku_finder.app.finder.scan", side_effect=RuntimeError("boom")):
            resp = client.post("/api/scan", json={"regions": ["eastus"]})
        assert resp.status_code == 500
        assert resp.json()["error"] == "boom"

    def test_invalid_concurrency_rejected(self, client) -> None:
        resp = client.post("/api/scan", json={"regions": ["eastus"], "maxConcurrency": 0})
        assert resp.status_code == 422


class TestRecommend:
    def test_returns_recommendations(self, client) -> None:
        with patch("az_sku_finder.app.finder.recommend", return_value=_result()) as rec:
            resp = client.post(
                "/api/recommend",
                json={"targetSku": "Standard_E64s_v5", "regions": ["eastus"], "topN": 3},
            )
        assert resp.status_code == 200
        data = resp.json()
        assert data["target"] == "Standard_E64s_v5"
        assert data["recommendations"][0]["score"] == 92
        assert data["recommendations"][0]["availability"]["status"] == "Available"
        assert rec.call_args.args[0].topN == 3

    def test_target_required(self, client) -> None:
        resp = client.post("/api/recommend", json={"regions": ["eastus"]})
        assert resp.status_code == 422

    def test_unknown_target_is_404(self, client) -> None:
        with patch(
            "az_sku_finder.app.finder.recommend",
            side_effect=MalformedInputError("SKU 'Standard_Z1' not found"),
        ):
            resp = client.post(
                "/api/recommend", json={"targetSku": "Standard_Z1", "regions": ["eastus"]}
            )
        assert resp.status_code == 404

    def test_context_error_is_400(self, client) -> None:
        with patch(
            "az_sku_finder.app.finder.recommend",
            side_effect=ContextResolutionError("No enabled subscriptions found"),
        ):
            resp = client.post(
                "/api/recommend", json={"targetSku": "Standard_E64s_v5", "regions": ["eastus"]}
            )
        assert resp.status_code == 400


class TestClassify:
    def test_no_restrictions(self, client) -> None:
        resp = client.post("/api/classify", json={"zones": ["1", "2", "3"]})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "Available"
        assert data["zones_ok"] == ["1", "2", "3"]

    def test_subscription_limited_zone(self, client) -> None:
        body = {
            "zones": ["1", "2", "3"],
            "restrictions": [
                {"type": "Zone", "reason_code": "NotAvailableForSubscription", "zones": ["3"]}
            ],
        }
        data = client.post("/api/classify", json=body).json()
        assert data["status"] == "ZoneConstrained"
        assert data["zones_limited"] == ["3"]

    def test_all_zones_restricted(self, client) -> None:
        body = {
            "zones": ["1", "2"],
            "restrictions": [{"type": "Zone", "reason_code": "Other", "zones": ["1", "2"]}],
        }
        assert client.post("/api/classify", json=body).json()["status"] == "Unavailable"
