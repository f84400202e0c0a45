"""
Bitcoin circulating supply reader (Blockchair stats API)
"""
from decimal import Decimal
from typing import Any

from wbtc_race.core.base_connector import BaseConnector
from wbtc_race.core.data_models import ReadResult
from wbtc_race.core.exceptions import WrappedBtcRaceException
from wbtc_race.config.constants import SATOSHIS_PER_BTC, MAX_BTC_SUPPLY_SATOSHIS
from wbtc_race.utils.helpers import to_display_integer
from wbtc_race.utils.validators import RangeValidator
import logging


logger = logging.getLogger(__name__)


def parse_circulation(response: Any) -> ReadResult[str]:
    """Validate a stats response and format circulation as whole BTC"""
    data = response.get("data") if isinstance(response, dict) else None
    satoshis = data.get("circulation") if isinstance(data, dict) else None

    if not RangeValidator.validate_in_range(satoshis, 0, MAX_BTC_SUPPLY_SATOSHIS):
        return ReadResult.failure(f"invalid Bitcoin supply: {satoshis!r}")

    btc = Decimal(str(satoshis)) / SATOSHIS_PER_BTC
    return ReadResult.success(to_display_integer(btc))


class BitcoinStatsReader(BaseConnector):
    """Reads the currently minted BTC figure; advisory, never load-bearing"""

    def __init__(self, stats_url: str, **kwargs):
        super().__init__(source_name="Blockchair", rate_limit=2, **kwargs)
        self.stats_url = stats_url

    async def fetch(self) -> str:
        """Return circulating BTC as a grouped integer string, or "0" on failure"""
        try:
            response = await self._with_retry(
                lambda: self._make_request("GET", self.stats_url),
                "bitcoin stats"
            )
        except WrappedBtcRaceException as e:
            logger.error(f"Failed to fetch Bitcoin supply: {str(e)}", extra={"source": self.source_name})
            return "0"

        result = parse_circulation(response)
        if not result.ok:
            logger.error(f"Failed to fetch Bitcoin supply: {result.error}", extra={"source": self.source_name})
            return "0"
        return result.value
