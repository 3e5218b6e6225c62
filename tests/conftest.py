"""Shared test fixtures for az-sku-finder tests."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from az_sku_finder.app import app


@pytest.fixture()
def client():
    """Create a FastAPI test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def _mock_credential():
    """Prevent real Azure credential calls in every test."""
    mock_token = MagicMock()
    mock_token.token = "fake-token"
    with patch("az_sku_finder.azure_api._auth.credential") as cred:
        cred.get_token.return_value = mock_token
        yield cred


@pytest.fixture(autouse=True)
def _no_sleep():
    """Retry backoff never really sleeps in tests."""
    with patch("az_sku_finder.retry.time.sleep") as sleep:
        yield sleep
