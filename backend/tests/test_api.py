"""
Tests for FastAPI endpoints
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from wbtc_race.api.rest_api import app, get_services
from wbtc_race.config.settings import Settings
from wbtc_race.core.data_models import Chain, Snapshot, TokenSupply
from wbtc_race.storage.cache_manager import CacheManager


def make_snapshot() -> Snapshot:
    return Snapshot(
        ethereum_tokens=[
            TokenSupply(symbol="wBTC", chain=Chain.ETHEREUM, source_address="0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", supply="150000"),
            TokenSupply(symbol="renBTC", chain=Chain.ETHEREUM, source_address="0xeb4c2781e4eba804ce9a9803c67d0893436bb27d", error="primary and fallback RPC failed: HTTP 502"),
        ],
        solana_tokens=[
            TokenSupply(symbol="cbBTC", chain=Chain.SOLANA, source_address="cbbtcf3aa214zXHbiAZQwf4122FBYbraNdFqgw4iMij", supply="5000.5"),
        ],
        ethereum_total="150000.00000000",
        solana_total="5000.50000000",
        grand_total="155000.50000000",
        reference_btc_supply="19,876,543",
        price_quote=0.0021,
        generated_at=datetime(2025, 4, 20, 12, 0, tzinfo=timezone.utc)
    )


class FakeServices:
    """Service container with a stubbed aggregator"""

    def __init__(self, cache_enabled: bool = True):
        self.settings = Settings(CACHE_ENABLED=cache_enabled, CACHE_TTL_SECONDS=120)
        self.cache_manager = CacheManager(default_ttl=120)
        self.aggregator = AsyncMock()
        self.aggregator.produce_snapshot = AsyncMock(return_value=make_snapshot())


@pytest.fixture
def services():
    """Install fake services for the duration of a test"""
    fake = FakeServices()
    app.dependency_overrides[get_services] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client(services):
    """Create test client"""
    return TestClient(app)


def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert "version" in data


def test_get_snapshot_json(client):
    """Test any non-dashboard path returns the JSON snapshot"""
    response = client.get("/api/supply")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["cache-control"] == "public, max-age=120, s-maxage=120"

    data = response.json()
    assert data["ethereumTotal"] == "150000.00000000"
    assert data["solanaTotal"] == "5000.50000000"
    assert data["grandTotal"] == "155000.50000000"
    assert data["currentlyMintedBTC"] == "19,876,543"
    assert data["solBtcPrice"] == 0.0021
    assert data["lastUpdated"] == "2025-04-20T12:00:00+00:00"
    assert data["ethereum"][1] == {
        "symbol": "renBTC",
        "supply": "0",
        "address": "0xeb4c2781e4eba804ce9a9803c67d0893436bb27d",
        "error": "primary and fallback RPC failed: HTTP 502"
    }
    assert data["solana"][0]["mint"] == "cbbtcf3aa214zXHbiAZQwf4122FBYbraNdFqgw4iMij"


def test_snapshot_is_cached_per_url(client, services):
    """Test repeated requests for the same URL reuse the cached body"""
    first = client.get("/api/supply")
    second = client.get("/api/supply")
    other = client.get("/api/supply?fresh=1")

    assert first.headers["x-cache"] == "MISS"
    assert second.headers["x-cache"] == "HIT"
    assert second.json() == first.json()
    # A new URL renders again from the shared snapshot
    assert other.headers["x-cache"] == "MISS"
    assert other.json() == first.json()
    assert services.aggregator.produce_snapshot.await_count == 1


def test_distinct_urls_keep_cache_bounded():
    """Test a flood of unique query strings neither grows memory nor refetches per URL"""
    fake = FakeServices()
    fake.cache_manager = CacheManager(default_ttl=120, max_entries=8)
    app.dependency_overrides[get_services] = lambda: fake
    try:
        client = TestClient(app)
        for i in range(200):
            assert client.get(f"/anything?bust={i}").status_code == 200
    finally:
        app.dependency_overrides.clear()

    assert fake.cache_manager.get_stats()["memory_cache_size"] <= 8
    # The shared snapshot is only refetched after being evicted
    assert fake.aggregator.produce_snapshot.await_count < 200 // 4


def test_request_id_is_echoed(client):
    """Test a caller-supplied request id is returned, and one is generated otherwise"""
    traced = client.get("/api/health", headers={"X-Request-ID": "trace-123"})
    untraced = client.get("/api/health")

    assert traced.headers["x-request-id"] == "trace-123"
    assert len(untraced.headers["x-request-id"]) == 32
    assert untraced.headers["x-content-type-options"] == "nosniff"


def test_cache_can_be_disabled():
    """Test every request produces a fresh snapshot when caching is off"""
    fake = FakeServices(cache_enabled=False)
    app.dependency_overrides[get_services] = lambda: fake
    try:
        client = TestClient(app)
        client.get("/api/supply")
        client.get("/api/supply")
    finally:
        app.dependency_overrides.clear()

    assert fake.aggregator.produce_snapshot.await_count == 2


@pytest.mark.parametrize("path", ["/", "/ui"])
def test_dashboard(client, path):
    """Test the HTML dashboard routes"""
    response = client.get(path)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Wrapped BTC Race" in response.text
    assert "Ethereum: 150,000 BTC (96.8%)" in response.text


def test_race_projection(client):
    """Test the catch-up projection endpoint"""
    response = client.get("/api/race?mint_rate=100&staked_sol=0")

    assert response.status_code == 200
    data = response.json()
    assert data["difference"] == pytest.approx(144999.5)
    assert data["days_to_catch_up"] == 1450
    assert data["already_caught_up"] is False


def test_race_projection_rejects_negative_inputs(client):
    """Test API with invalid parameters"""
    response = client.get("/api/race?mint_rate=-1")

    assert response.status_code == 422


def test_unexpected_failure_returns_generic_error(client, services):
    """Test an aggregation crash becomes a 500 with a generic body"""
    services.aggregator.produce_snapshot = AsyncMock(side_effect=RuntimeError("bug"))

    response = client.get("/api/supply")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert response.headers["access-control-allow-origin"] == "*"
