"""
Solana wrapped-BTC supply reader
Reads all SPL mint accounts in one getMultipleAccounts call and decodes them
"""
import base64
import binascii
import time
from typing import Any, List, Optional, Sequence

from wbtc_race.core.base_connector import BaseConnector
from wbtc_race.core.data_models import ReadResult, TokenDescriptor, TokenSupply
from wbtc_race.core.exceptions import RPCError, WrappedBtcRaceException
from wbtc_race.config.constants import MINT_SUPPLY_OFFSET, MINT_DECIMALS_OFFSET, DEFAULT_DECIMALS
from wbtc_race.utils.helpers import to_decimal_string
import logging


logger = logging.getLogger(__name__)


def read_u64_le(data: bytes, offset: int) -> ReadResult[int]:
    """Bounds-checked little-endian u64 read"""
    end = offset + 8
    if offset < 0 or end > len(data):
        return ReadResult.failure(f"need {end} bytes for u64 at offset {offset}, got {len(data)}")
    return ReadResult.success(int.from_bytes(data[offset:end], "little", signed=False))


def read_u8(data: bytes, offset: int) -> ReadResult[int]:
    """Bounds-checked u8 read"""
    if offset < 0 or offset >= len(data):
        return ReadResult.failure(f"need {offset + 1} bytes for u8 at offset {offset}, got {len(data)}")
    return ReadResult.success(data[offset])


def decode_account_data(account: Any) -> ReadResult[bytes]:
    """Extract the raw bytes of a base64-encoded account from a getMultipleAccounts entry"""
    if account is None:
        return ReadResult.failure("account not found")
    if not isinstance(account, dict):
        return ReadResult.failure(f"unexpected account entry {type(account).__name__}")

    data = account.get("data")
    if not isinstance(data, (list, tuple)) or not data or not isinstance(data[0], str):
        return ReadResult.failure("account has no base64 data")
    if len(data) > 1 and data[1] != "base64":
        return ReadResult.failure(f"unexpected account encoding {data[1]!r}")

    try:
        return ReadResult.success(base64.b64decode(data[0], validate=True))
    except (binascii.Error, ValueError) as e:
        return ReadResult.failure(f"invalid base64 payload: {str(e)}")


def decode_mint_account(account: Any) -> ReadResult[str]:
    """
    Decode an SPL token mint account into a decimal supply string

    Layout: mint authority (36 bytes), supply u64 LE at 36, decimals u8 at 44.
    Decimals default to 8 when the byte is missing.
    """
    raw = decode_account_data(account)
    if not raw.ok:
        return ReadResult.failure(raw.error)

    supply = read_u64_le(raw.value, MINT_SUPPLY_OFFSET)
    if not supply.ok:
        return ReadResult.failure(f"malformed mint: {supply.error}")

    decimals = read_u8(raw.value, MINT_DECIMALS_OFFSET)
    return ReadResult.success(
        to_decimal_string(supply.value, decimals.value if decimals.ok else DEFAULT_DECIMALS)
    )


class SolanaSupplyReader(BaseConnector):
    """Reads wrapped-BTC SPL mint supplies with one batched account read"""

    def __init__(self, tokens: Sequence[TokenDescriptor], rpc_url: str, **kwargs):
        super().__init__(source_name="Solana", rate_limit=5, **kwargs)
        self.tokens = list(tokens)
        self.rpc_url = rpc_url

    async def fetch(self) -> List[TokenSupply]:
        """Read every configured mint; output order matches configuration"""
        start = time.perf_counter()

        try:
            accounts = await self._with_retry(self._get_multiple_accounts, "getMultipleAccounts")
        except WrappedBtcRaceException as e:
            logger.error(f"Solana RPC failed: {str(e)}", extra={"source": self.source_name})
            return [
                TokenSupply.from_result(token, ReadResult.failure(f"batch read failed: {str(e)}"))
                for token in self.tokens
            ]

        supplies = []
        for idx, token in enumerate(self.tokens):
            # Entries are positionally aligned with the requested mints
            account = accounts[idx] if idx < len(accounts) else None
            result = decode_mint_account(account)
            if not result.ok:
                logger.warning(
                    f"Solana supply for {token.symbol} unavailable: {result.error}",
                    extra={"source": self.source_name, "symbol": token.symbol}
                )
            supplies.append(TokenSupply.from_result(token, result))

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            f"Solana fetch took {duration_ms}ms",
            extra={"source": self.source_name, "duration_ms": duration_ms}
        )
        return supplies

    async def _get_multiple_accounts(self) -> List[Optional[dict]]:
        mints = [token.address for token in self.tokens]
        result = await self._rpc_call(
            self.rpc_url,
            "getMultipleAccounts",
            [mints, {"encoding": "base64"}]
        )

        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, list):
            raise RPCError(f"getMultipleAccounts returned no account list: {result!r}")
        return value
