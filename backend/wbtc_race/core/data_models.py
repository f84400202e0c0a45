"""
Data models for the Wrapped BTC Race service
Uses Pydantic for validation and serialization
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any, Generic, TypeVar
from datetime import datetime
from enum import Enum

from wbtc_race.utils.validators import AddressValidator


T = TypeVar("T")


class Chain(str, Enum):
    """Blockchain enumeration"""
    ETHEREUM = "ethereum"
    SOLANA = "solana"

    @property
    def address_key(self) -> str:
        """Key used for the token's on-chain identifier in API payloads"""
        return "address" if self is Chain.ETHEREUM else "mint"


class TokenDescriptor(BaseModel):
    """Static configuration entry for one wrapped-BTC token on one chain"""
    symbol: str
    chain: Chain
    address: str

    @validator('address')
    def validate_address(cls, v, values):
        chain = values.get('chain')
        if chain == Chain.ETHEREUM and not AddressValidator.validate_ethereum_address(v):
            raise ValueError(f'Invalid Ethereum contract address: {v}')
        if chain == Chain.SOLANA and not AddressValidator.validate_solana_address(v):
            raise ValueError(f'Invalid Solana mint address: {v}')
        return v

    class Config:
        frozen = True


class ReadResult(BaseModel, Generic[T]):
    """
    Outcome of a single read or decode step.

    Carries either a value or the reason it could not be produced, so that
    failures can be logged and reported without being raised.
    """
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ReadResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "ReadResult[T]":
        return cls(error=error)

    class Config:
        frozen = True


class TokenSupply(BaseModel):
    """Supply of one token as read for a single snapshot"""
    symbol: str
    chain: Chain
    source_address: str
    supply: str = "0"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def from_result(cls, token: TokenDescriptor, result: ReadResult[str]) -> "TokenSupply":
        """Collapse a read result to the sentinel "0" when it failed"""
        return cls(
            symbol=token.symbol,
            chain=token.chain,
            source_address=token.address,
            supply=result.value if result.ok else "0",
            error=result.error
        )

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "symbol": self.symbol,
            "supply": self.supply,
            self.chain.address_key: self.source_address
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload

    class Config:
        frozen = True


class Snapshot(BaseModel):
    """One complete aggregation result, never mutated after construction"""
    ethereum_tokens: List[TokenSupply]
    solana_tokens: List[TokenSupply]
    ethereum_total: str
    solana_total: str
    grand_total: str
    reference_btc_supply: str
    price_quote: float = Field(gt=0)
    generated_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        """Render the snapshot in the public JSON wire format"""
        return {
            "ethereum": [token.to_payload() for token in self.ethereum_tokens],
            "solana": [token.to_payload() for token in self.solana_tokens],
            "ethereumTotal": self.ethereum_total,
            "solanaTotal": self.solana_total,
            "grandTotal": self.grand_total,
            "currentlyMintedBTC": self.reference_btc_supply,
            "lastUpdated": self.generated_at.isoformat(),
            "solBtcPrice": self.price_quote
        }

    class Config:
        frozen = True


class RaceProjection(BaseModel):
    """How long Solana needs to match Ethereum's wrapped-BTC supply"""
    ethereum_total: float
    solana_total: float
    difference: float
    mint_rate: float = Field(ge=0)
    staked_sol: float = Field(ge=0)
    sol_btc_price: float
    daily_sol_rewards: float
    staking_btc_per_day: float
    total_btc_per_day: float
    already_caught_up: bool
    days_to_catch_up: Optional[int] = None
    required_staked_sol: Optional[float] = None
