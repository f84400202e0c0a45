"""
Base connector class for RPC and REST data sources
Provides session lifecycle, per-call timeouts and retry with backoff
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional, Any, Awaitable, Callable, TypeVar
import asyncio
import json
import aiohttp
import logging

from wbtc_race.core.exceptions import (
    ConnectionError,
    RequestTimeoutError,
    APIError,
    RateLimitError,
    RPCError
)
from wbtc_race.utils.helpers import with_retry


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseConnector(ABC):
    """Base class for all data source connectors"""

    def __init__(
        self,
        source_name: str,
        timeout_seconds: float = 5.0,
        retry_attempts: int = 3,
        retry_base_delay: float = 1.0,
        rate_limit: int = 10
    ):
        self.source_name = source_name
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self.rate_limit = rate_limit
        self.session: Optional[aiohttp.ClientSession] = None
        self._rate_limiter = asyncio.Semaphore(rate_limit)
        self._is_connected = False

        logger.info(f"Initialized {source_name} connector")

    async def __aenter__(self):
        """Async context manager entry"""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.disconnect()

    async def connect(self) -> None:
        """Open the HTTP session"""
        if not self.session:
            timeout = aiohttp.ClientTimeout(total=30)
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._is_connected = True
            logger.info(f"Connected to {self.source_name}")

    async def disconnect(self) -> None:
        """Close the HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None
            self._is_connected = False
            logger.info(f"Disconnected from {self.source_name}")

    @abstractmethod
    async def fetch(self) -> Any:
        """Read this source, absorbing failures into sentinel values"""
        pass

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[Dict] = None,
        data: Optional[Any] = None,
        headers: Optional[Dict] = None
    ) -> Any:
        """
        Make a single HTTP request and return the decoded JSON body

        The call is cancelled once timeout_seconds elapse; the timeout applies
        to this call only.
        """
        if not self.session:
            await self.connect()

        async with self._rate_limiter:
            try:
                return await asyncio.wait_for(
                    self._send(method, url, params=params, data=data, headers=headers),
                    timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError:
                raise RequestTimeoutError(
                    f"{self.source_name} request to {url} timed out after {self.timeout_seconds}s"
                )

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict] = None,
        data: Optional[Any] = None,
        headers: Optional[Dict] = None
    ) -> Any:
        try:
            async with self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                headers=headers or {}
            ) as response:
                if response.status == 429:
                    raise RateLimitError(f"Rate limit exceeded for {self.source_name}")

                body = await response.read()

                if response.status >= 400:
                    error_text = body[:200].decode("utf-8", errors="replace")
                    raise APIError(
                        f"API error from {self.source_name}: {response.status} - {error_text}"
                    )

                # Covers JSONDecodeError and UnicodeDecodeError
                try:
                    return json.loads(body)
                except ValueError as e:
                    raise APIError(f"Malformed JSON from {self.source_name}: {str(e)}")

        except aiohttp.ClientError as e:
            raise ConnectionError(f"Connection error to {self.source_name}: {str(e)}")

    async def _rpc_call(
        self,
        url: str,
        method: str,
        params: list,
        request_id: Any = 1
    ) -> Any:
        """Issue a JSON-RPC 2.0 call and return its result member"""
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params
        }
        response = await self._make_request(
            "POST",
            url,
            data=payload,
            headers={"Content-Type": "application/json"}
        )

        if not isinstance(response, dict):
            raise RPCError(f"Unexpected {method} response from {self.source_name}: {response!r}")

        if response.get("error"):
            raise RPCError(f"{method} error from {self.source_name}: {response['error']}")

        return response.get("result")

    async def _with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str,
        max_attempts: Optional[int] = None
    ) -> T:
        """Run operation through the connector's retry policy"""
        return await with_retry(
            operation,
            max_attempts=max_attempts or self.retry_attempts,
            base_delay=self.retry_base_delay,
            description=f"{self.source_name} {description}"
        )

    @property
    def is_connected(self) -> bool:
        """Check if connector is connected"""
        return self._is_connected
