"""
Ethereum wrapped-BTC supply reader
Reads ERC-20 totalSupply/decimals through web3 with a fallback RPC
"""
import asyncio
import time
from typing import Dict, List, Optional, Sequence, Tuple

import aiohttp
from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import AsyncWeb3, AsyncHTTPProvider, Web3
from web3.exceptions import Web3Exception

from wbtc_race.core.base_connector import BaseConnector
from wbtc_race.core.data_models import ReadResult, TokenDescriptor, TokenSupply
from wbtc_race.core.exceptions import (
    ConnectionError,
    RequestTimeoutError,
    RPCError,
    WrappedBtcRaceException
)
from wbtc_race.config.constants import TOTAL_SUPPLY_SELECTOR, DECIMALS_SELECTOR, DEFAULT_DECIMALS
from wbtc_race.utils.helpers import to_decimal_string
import logging


logger = logging.getLogger(__name__)


def decode_uint256(raw: Optional[bytes]) -> ReadResult[int]:
    """ABI-decode an eth_call return value as a single uint256"""
    if not raw:
        return ReadResult.failure("empty result")

    try:
        (value,) = abi_decode(["uint256"], bytes(raw))
    except DecodingError as e:
        return ReadResult.failure(f"undecodable uint256: {str(e)}")
    return ReadResult.success(value)


def decode_token_supply(raw_supply: Optional[bytes], raw_decimals: Optional[bytes]) -> ReadResult[str]:
    """
    Turn raw totalSupply/decimals return data into a decimal supply string

    Empty decimals data defaults to 8; empty supply data is a failure.
    """
    supply = decode_uint256(raw_supply)
    if not supply.ok:
        return ReadResult.failure(f"totalSupply: {supply.error}")

    if not raw_decimals:
        decimals = DEFAULT_DECIMALS
    else:
        decoded = decode_uint256(raw_decimals)
        if not decoded.ok:
            return ReadResult.failure(f"decimals: {decoded.error}")
        decimals = decoded.value

    # decimals() is a uint8
    if decimals > 255:
        return ReadResult.failure(f"decimals out of range: {decimals}")

    return ReadResult.success(to_decimal_string(supply.value, decimals))


class EthereumSupplyReader(BaseConnector):
    """Reads wrapped-BTC ERC-20 supplies, one token at a time, concurrently"""

    def __init__(
        self,
        tokens: Sequence[TokenDescriptor],
        rpc_url: str,
        fallback_rpc_url: Optional[str] = None,
        fallback_attempts: int = 1,
        **kwargs
    ):
        super().__init__(source_name="Ethereum", rate_limit=20, **kwargs)
        self.tokens = list(tokens)
        self.rpc_url = rpc_url
        self.fallback_rpc_url = fallback_rpc_url
        self.fallback_attempts = fallback_attempts
        self._clients: Dict[str, AsyncWeb3] = {}

    @property
    def endpoints(self) -> List[str]:
        return [url for url in (self.rpc_url, self.fallback_rpc_url) if url]

    async def connect(self) -> None:
        """Create one web3 client per RPC endpoint"""
        for url in self.endpoints:
            self._client(url)
        self._is_connected = True
        logger.info(f"Connected to {self.source_name} ({len(self._clients)} endpoints)")

    async def disconnect(self) -> None:
        """Close every web3 provider session"""
        for w3 in self._clients.values():
            await w3.provider.disconnect()
        if self._clients:
            logger.info(f"Disconnected from {self.source_name}")
        self._clients.clear()
        self._is_connected = False

    def _client(self, rpc_url: str) -> AsyncWeb3:
        if rpc_url not in self._clients:
            # Retries are driven by the reader's own policy
            self._clients[rpc_url] = AsyncWeb3(
                AsyncHTTPProvider(rpc_url, exception_retry_configuration=None)
            )
        return self._clients[rpc_url]

    async def fetch(self) -> List[TokenSupply]:
        """Read every configured token; output order matches configuration"""
        start = time.perf_counter()

        supplies = await asyncio.gather(*(self.get_token_supply(token) for token in self.tokens))

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            f"Ethereum fetch took {duration_ms}ms",
            extra={"source": self.source_name, "duration_ms": duration_ms}
        )
        return list(supplies)

    async def get_token_supply(self, token: TokenDescriptor) -> TokenSupply:
        result = await self.read_token(token)
        if not result.ok:
            logger.warning(
                f"Ethereum supply for {token.symbol} unavailable: {result.error}",
                extra={"source": self.source_name, "symbol": token.symbol}
            )
        return TokenSupply.from_result(token, result)

    async def read_token(self, token: TokenDescriptor) -> ReadResult[str]:
        """
        Read one token from the primary RPC, then the fallback RPC

        The primary gets retry_attempts tries and the fallback gets
        fallback_attempts tries. Decode failures are returned as-is: retrying
        or switching endpoints does not fix bad data.
        """
        try:
            raw_supply, raw_decimals = await self._with_retry(
                lambda: self._call_supply_and_decimals(self.rpc_url, token),
                f"{token.symbol} read via primary RPC"
            )
        except WrappedBtcRaceException as primary_error:
            if not self.fallback_rpc_url:
                return ReadResult.failure(f"primary RPC failed: {str(primary_error)}")

            logger.warning(f"Primary RPC failed for {token.symbol}, trying fallback: {str(primary_error)}")
            try:
                raw_supply, raw_decimals = await self._with_retry(
                    lambda: self._call_supply_and_decimals(self.fallback_rpc_url, token),
                    f"{token.symbol} read via fallback RPC",
                    max_attempts=self.fallback_attempts
                )
            except WrappedBtcRaceException as fallback_error:
                return ReadResult.failure(f"primary and fallback RPC failed: {str(fallback_error)}")

        return decode_token_supply(raw_supply, raw_decimals)

    async def _call_supply_and_decimals(self, rpc_url: str, token: TokenDescriptor) -> Tuple[bytes, bytes]:
        """Issue the totalSupply and decimals calls concurrently; both must succeed"""
        supply, decimals = await asyncio.gather(
            self._eth_call(rpc_url, token.address, TOTAL_SUPPLY_SELECTOR),
            self._eth_call(rpc_url, token.address, DECIMALS_SELECTOR)
        )
        return supply, decimals

    async def _eth_call(self, rpc_url: str, address: str, selector: str) -> bytes:
        """One eth_call at the latest block, bounded by timeout_seconds"""
        w3 = self._client(rpc_url)
        transaction = {"to": Web3.to_checksum_address(address), "data": selector}

        async with self._rate_limiter:
            try:
                return await asyncio.wait_for(w3.eth.call(transaction), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                raise RequestTimeoutError(
                    f"{self.source_name} eth_call to {rpc_url} timed out after {self.timeout_seconds}s"
                )
            except aiohttp.ClientError as e:
                raise ConnectionError(f"Connection error to {self.source_name}: {str(e)}")
            # web3 surfaces JSON-RPC errors and unreadable responses as these
            except (Web3Exception, ValueError) as e:
                raise RPCError(f"eth_call error from {self.source_name}: {str(e)}")
