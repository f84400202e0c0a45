"""
Tests for supply aggregation and race projection
"""
import pytest
import base64
from decimal import Decimal
from unittest.mock import AsyncMock

from pydantic import ValidationError

from wbtc_race.analytics.supply_aggregator import AggregatorConfig, SupplyAggregator, calculate_total
from wbtc_race.analytics.race_calculator import project_catch_up, project_from_snapshot
from wbtc_race.api.dashboard import race_percentages, render_dashboard
from wbtc_race.config.constants import (
    ETHEREUM_TOKENS,
    SOLANA_TOKENS,
    TOTAL_SUPPLY_SELECTOR,
    FALLBACK_SOL_BTC_PRICE
)
from wbtc_race.config.settings import Settings
from wbtc_race.core.data_models import Chain, TokenSupply
from wbtc_race.core.exceptions import ConnectionError, DataValidationError


def word(value: int) -> bytes:
    return value.to_bytes(32, "big")


def mint_account(supply: int, decimals: int) -> dict:
    data = bytes(36) + supply.to_bytes(8, "little") + bytes([decimals]) + bytes(37)
    return {"data": [base64.b64encode(data).decode(), "base64"]}


@pytest.fixture
def config():
    """Aggregator config pointing at unroutable test endpoints with instant retries"""
    return AggregatorConfig(
        ethereum_rpc_url="https://primary.eth.test",
        ethereum_fallback_rpc_url="https://fallback.eth.test",
        solana_rpc_url="https://solana.test",
        bitcoin_stats_url="https://stats.test",
        price_api_url="https://price.test",
        retry_attempts=2,
        retry_base_delay=0
    )


def stub_sources(aggregator, eth_handler=None, sol_response=None, btc_response=None, price_response=None):
    """Replace each reader's HTTP layer with canned responses"""
    async def default_eth(rpc_url, address, selector):
        return word(100_00000000) if selector == TOTAL_SUPPLY_SELECTOR else word(8)

    # Six mints worth 50 BTC each, with differing native precision
    default_accounts = [
        mint_account(50_00000000, 8),
        mint_account(50_000000, 6),
        mint_account(50_00000000, 8),
        mint_account(50_000_000_000, 9),
        mint_account(50_00000000, 8),
        mint_account(50_00000000, 8),
    ]

    aggregator.ethereum_reader._eth_call = eth_handler or default_eth
    aggregator.solana_reader._make_request = AsyncMock(return_value=sol_response or {
        "jsonrpc": "2.0", "id": 1, "result": {"context": {"slot": 1}, "value": default_accounts}
    })
    aggregator.bitcoin_reader._make_request = AsyncMock(
        return_value=btc_response or {"data": {"circulation": 1_987_654_321_000_000}}
    )
    aggregator.price_reader._make_request = AsyncMock(
        return_value=price_response or {"solana": {"btc": 0.0021}}
    )


def test_aggregator_config_is_immutable(config):
    """Test configuration cannot be mutated after construction"""
    with pytest.raises(ValidationError):
        config.retry_attempts = 10

    assert config.ethereum_tokens == ETHEREUM_TOKENS
    assert config.solana_tokens == SOLANA_TOKENS


def test_aggregator_config_from_settings():
    """Test the retry policy reaches the Ethereum reader"""
    config = AggregatorConfig.from_settings(Settings(RETRY_ATTEMPTS=4, ETHEREUM_FALLBACK_RETRY_ATTEMPTS=2))
    aggregator = SupplyAggregator(config)

    assert aggregator.ethereum_reader.retry_attempts == 4
    assert aggregator.ethereum_reader.fallback_attempts == 2
    assert AggregatorConfig.from_settings(Settings()).fallback_attempts == 1


def test_calculate_total_rounds_once():
    """Test totals sum at full precision before rounding to 8 places"""
    tokens = [
        TokenSupply(symbol="a", chain=Chain.ETHEREUM, source_address="0x0", supply="0.000000004"),
        TokenSupply(symbol="b", chain=Chain.ETHEREUM, source_address="0x1", supply="0.000000004"),
        TokenSupply(symbol="c", chain=Chain.ETHEREUM, source_address="0x2", supply="1.5"),
    ]

    assert calculate_total(tokens) == Decimal("1.50000001")
    assert calculate_total([]) == Decimal("0E-8")


@pytest.mark.asyncio
async def test_produce_snapshot_end_to_end(config):
    """Test five 100 BTC Ethereum tokens and six 50 BTC Solana mints"""
    aggregator = SupplyAggregator(config)
    stub_sources(aggregator)

    snapshot = await aggregator.produce_snapshot()

    assert len(snapshot.ethereum_tokens) == 5
    assert len(snapshot.solana_tokens) == 6
    assert snapshot.ethereum_total == "500.00000000"
    assert snapshot.solana_total == "300.00000000"
    assert snapshot.grand_total == "800.00000000"
    assert snapshot.reference_btc_supply == "19,876,543"
    assert snapshot.price_quote == 0.0021
    assert snapshot.generated_at.tzinfo is not None


@pytest.mark.asyncio
async def test_produce_snapshot_degrades_instead_of_failing(config):
    """Test every source failing still yields a complete, zeroed snapshot"""
    aggregator = SupplyAggregator(config)
    failing = AsyncMock(side_effect=ConnectionError("network unreachable"))
    aggregator.ethereum_reader._eth_call = failing
    aggregator.solana_reader._make_request = failing
    aggregator.bitcoin_reader._make_request = failing
    aggregator.price_reader._make_request = failing

    snapshot = await aggregator.produce_snapshot()

    assert [t.symbol for t in snapshot.ethereum_tokens] == [t.symbol for t in ETHEREUM_TOKENS]
    assert [t.symbol for t in snapshot.solana_tokens] == [t.symbol for t in SOLANA_TOKENS]
    assert all(t.supply == "0" for t in snapshot.ethereum_tokens + snapshot.solana_tokens)
    assert snapshot.grand_total == "0.00000000"
    assert snapshot.reference_btc_supply == "0"
    assert snapshot.price_quote == FALLBACK_SOL_BTC_PRICE


@pytest.mark.asyncio
async def test_produce_snapshot_keeps_high_precision_supplies(config):
    """Test 18-decimal supplies are summed before rounding"""
    async def eighteen_decimals(rpc_url, address, selector):
        return word(1_000000000000000005) if selector == TOTAL_SUPPLY_SELECTOR else word(18)

    aggregator = SupplyAggregator(config)
    stub_sources(aggregator, eth_handler=eighteen_decimals)

    snapshot = await aggregator.produce_snapshot()

    assert snapshot.ethereum_tokens[0].supply == "1.000000000000000005"
    assert snapshot.ethereum_total == "5.00000000"
    assert snapshot.grand_total == "305.00000000"


@pytest.mark.asyncio
async def test_snapshot_payload_wire_format(config):
    """Test the JSON payload keeps the public key names"""
    aggregator = SupplyAggregator(config)
    stub_sources(aggregator)

    payload = (await aggregator.produce_snapshot()).to_payload()

    assert set(payload) == {
        "ethereum", "solana", "ethereumTotal", "solanaTotal", "grandTotal",
        "currentlyMintedBTC", "lastUpdated", "solBtcPrice"
    }
    assert payload["ethereum"][0] == {
        "symbol": "wBTC", "supply": "100", "address": ETHEREUM_TOKENS[0].address
    }
    assert payload["solana"][0] == {
        "symbol": "wBTC", "supply": "50", "mint": SOLANA_TOKENS[0].address
    }


@pytest.mark.asyncio
async def test_aggregator_context_manager_opens_sessions(config):
    """Test readers share the aggregator's lifecycle"""
    async with SupplyAggregator(config) as aggregator:
        assert all(reader.is_connected for reader in aggregator.readers)

    assert not any(reader.is_connected for reader in aggregator.readers)


# ===== Race projection =====

def test_project_catch_up():
    """Test days to catch up with minting and staking combined"""
    projection = project_catch_up(
        ethereum_total=1000.0,
        solana_total=100.0,
        mint_rate=10.0,
        staked_sol=365000.0,
        sol_btc_price=0.002
    )

    # 365000 SOL at 10% APY earns 100 SOL/day, i.e. 0.2 BTC/day
    assert projection.daily_sol_rewards == pytest.approx(100.0)
    assert projection.staking_btc_per_day == pytest.approx(0.2)
    assert projection.total_btc_per_day == pytest.approx(10.2)
    assert projection.days_to_catch_up == 89
    assert projection.required_staked_sol == pytest.approx(18_250_000.0)
    assert not projection.already_caught_up


def test_project_catch_up_edge_cases():
    """Test already caught up, zero growth and invalid inputs"""
    ahead = project_catch_up(100.0, 200.0, mint_rate=1.0, staked_sol=0.0, sol_btc_price=0.002)
    assert ahead.already_caught_up
    assert ahead.days_to_catch_up is None

    stalled = project_catch_up(200.0, 100.0, mint_rate=0.0, staked_sol=0.0, sol_btc_price=0.002)
    assert stalled.days_to_catch_up is None

    with pytest.raises(DataValidationError):
        project_catch_up(200.0, 100.0, mint_rate=-1.0, staked_sol=0.0, sol_btc_price=0.002)


@pytest.mark.asyncio
async def test_project_from_snapshot(config):
    """Test the projection reads totals and price from a snapshot"""
    aggregator = SupplyAggregator(config)
    stub_sources(aggregator)
    snapshot = await aggregator.produce_snapshot()

    projection = project_from_snapshot(snapshot, mint_rate=20.0, staked_sol=0.0)

    assert projection.difference == pytest.approx(200.0)
    assert projection.days_to_catch_up == 10


# ===== Dashboard =====

def test_race_percentages():
    """Test chain shares for the progress bar"""
    assert race_percentages(0.0, 0.0) == ("50", "50")
    assert race_percentages(300.0, 100.0) == ("75.0", "25.0")


@pytest.mark.asyncio
async def test_render_dashboard(config):
    """Test the dashboard embeds snapshot figures"""
    aggregator = SupplyAggregator(config)
    stub_sources(aggregator)
    snapshot = await aggregator.produce_snapshot()

    html = render_dashboard(snapshot)

    assert html.startswith("<!DOCTYPE html>")
    assert "Ethereum: 500 BTC (62.5%)" in html
    assert "Solana: 300 BTC (37.5%)" in html
    assert "Currently minted BTC: 19,876,543" in html
    assert "const solBtcPrice = 0.0021;" in html
