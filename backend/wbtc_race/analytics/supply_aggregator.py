"""
Supply Aggregator - Combines all chain readers into one snapshot
Runs every source concurrently and totals supplies at 8 decimal places
"""
import asyncio
import time
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from wbtc_race.config.settings import Settings
from wbtc_race.config.constants import ETHEREUM_TOKENS, SOLANA_TOKENS, FALLBACK_SOL_BTC_PRICE
from wbtc_race.connectors.ethereum import EthereumSupplyReader
from wbtc_race.connectors.solana import SolanaSupplyReader
from wbtc_race.connectors.bitcoin import BitcoinStatsReader
from wbtc_race.connectors.pricing import PriceReader
from wbtc_race.core.data_models import Snapshot, TokenDescriptor, TokenSupply
from wbtc_race.utils.helpers import format_fixed_8, get_utc_now, parse_decimal, quantize_8
import logging


logger = logging.getLogger(__name__)


class AggregatorConfig(BaseModel):
    """Fixed inputs of the aggregation pipeline"""
    ethereum_tokens: Tuple[TokenDescriptor, ...] = ETHEREUM_TOKENS
    solana_tokens: Tuple[TokenDescriptor, ...] = SOLANA_TOKENS
    ethereum_rpc_url: str
    ethereum_fallback_rpc_url: Optional[str] = None
    solana_rpc_url: str
    bitcoin_stats_url: str
    price_api_url: str
    fallback_price: float = Field(FALLBACK_SOL_BTC_PRICE, gt=0)
    retry_attempts: int = Field(3, ge=1)
    fallback_attempts: int = Field(1, ge=1)
    retry_base_delay: float = Field(1.0, ge=0)
    timeout_seconds: float = Field(5.0, gt=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AggregatorConfig":
        return cls(
            ethereum_rpc_url=settings.ETHEREUM_RPC_URL,
            ethereum_fallback_rpc_url=settings.ETHEREUM_FALLBACK_RPC_URL or None,
            solana_rpc_url=settings.SOLANA_RPC_URL,
            bitcoin_stats_url=settings.BITCOIN_STATS_URL,
            price_api_url=settings.PRICE_API_URL,
            retry_attempts=settings.RETRY_ATTEMPTS,
            fallback_attempts=settings.ETHEREUM_FALLBACK_RETRY_ATTEMPTS,
            retry_base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS
        )

    class Config:
        frozen = True


def calculate_total(tokens: Sequence[TokenSupply]) -> Decimal:
    """Sum supplies at full precision, then round once to 8 places"""
    return quantize_8(sum((parse_decimal(token.supply) for token in tokens), Decimal(0)))


class SupplyAggregator:
    """
    Produces wrapped-BTC supply snapshots

    Every reader absorbs its own failures into sentinel values, so producing a
    snapshot has no failure path beyond programming errors.
    """

    def __init__(
        self,
        config: AggregatorConfig,
        ethereum_reader: Optional[EthereumSupplyReader] = None,
        solana_reader: Optional[SolanaSupplyReader] = None,
        bitcoin_reader: Optional[BitcoinStatsReader] = None,
        price_reader: Optional[PriceReader] = None
    ):
        self.config = config
        policy = {
            "timeout_seconds": config.timeout_seconds,
            "retry_attempts": config.retry_attempts,
            "retry_base_delay": config.retry_base_delay
        }

        self.ethereum_reader = ethereum_reader or EthereumSupplyReader(
            config.ethereum_tokens,
            config.ethereum_rpc_url,
            config.ethereum_fallback_rpc_url,
            fallback_attempts=config.fallback_attempts,
            **policy
        )
        self.solana_reader = solana_reader or SolanaSupplyReader(
            config.solana_tokens,
            config.solana_rpc_url,
            **policy
        )
        self.bitcoin_reader = bitcoin_reader or BitcoinStatsReader(config.bitcoin_stats_url, **policy)
        self.price_reader = price_reader or PriceReader(
            config.price_api_url,
            fallback_price=config.fallback_price,
            **policy
        )

    @property
    def readers(self):
        return (self.ethereum_reader, self.solana_reader, self.bitcoin_reader, self.price_reader)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self) -> None:
        for reader in self.readers:
            await reader.connect()

    async def disconnect(self) -> None:
        for reader in self.readers:
            await reader.disconnect()

    async def produce_snapshot(self) -> Snapshot:
        """Read all sources concurrently and assemble one snapshot"""
        start = time.perf_counter()

        ethereum_tokens, solana_tokens, btc_supply, sol_btc_price = await asyncio.gather(
            self.ethereum_reader.fetch(),
            self.solana_reader.fetch(),
            self.bitcoin_reader.fetch(),
            self.price_reader.fetch()
        )

        ethereum_total = calculate_total(ethereum_tokens)
        solana_total = calculate_total(solana_tokens)
        grand_total = ethereum_total + solana_total

        snapshot = Snapshot(
            ethereum_tokens=ethereum_tokens,
            solana_tokens=solana_tokens,
            ethereum_total=format_fixed_8(ethereum_total),
            solana_total=format_fixed_8(solana_total),
            grand_total=format_fixed_8(grand_total),
            reference_btc_supply=btc_supply,
            price_quote=sol_btc_price,
            generated_at=get_utc_now()
        )

        failed = sum(1 for token in ethereum_tokens + solana_tokens if not token.ok)
        logger.info(
            f"Snapshot produced: eth={snapshot.ethereum_total} sol={snapshot.solana_total} "
            f"total={snapshot.grand_total} failed_tokens={failed}",
            extra={"duration_ms": round((time.perf_counter() - start) * 1000, 2)}
        )
        return snapshot
