"""
SOL/BTC spot price reader (CoinGecko simple price API)
"""
from typing import Any

from wbtc_race.core.base_connector import BaseConnector
from wbtc_race.core.data_models import ReadResult
from wbtc_race.core.exceptions import WrappedBtcRaceException
from wbtc_race.config.constants import FALLBACK_SOL_BTC_PRICE
from wbtc_race.utils.validators import RangeValidator
import logging


logger = logging.getLogger(__name__)


def parse_sol_btc_price(response: Any) -> ReadResult[float]:
    quote = response.get("solana") if isinstance(response, dict) else None
    price = quote.get("btc") if isinstance(quote, dict) else None

    if not RangeValidator.validate_positive(price) or price == float("inf"):
        return ReadResult.failure(f"invalid SOL/BTC price: {price!r}")
    return ReadResult.success(float(price))


class PriceReader(BaseConnector):
    """Reads the SOL/BTC spot price, falling back to a fixed estimate"""

    def __init__(self, price_url: str, fallback_price: float = FALLBACK_SOL_BTC_PRICE, **kwargs):
        super().__init__(source_name="CoinGecko", rate_limit=2, **kwargs)
        self.price_url = price_url
        self.fallback_price = fallback_price

    async def fetch(self) -> float:
        try:
            response = await self._with_retry(
                lambda: self._make_request("GET", self.price_url),
                "SOL/BTC price"
            )
        except WrappedBtcRaceException as e:
            logger.error(f"Failed to fetch SOL/BTC price: {str(e)}", extra={"source": self.source_name})
            return self.fallback_price

        result = parse_sol_btc_price(response)
        if not result.ok:
            logger.error(f"Failed to fetch SOL/BTC price: {result.error}", extra={"source": self.source_name})
            return self.fallback_price
        return result.value
