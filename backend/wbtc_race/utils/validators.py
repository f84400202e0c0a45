"""
Input validation utilities
"""
from typing import Any
import re

from web3 import Web3


BASE58_PATTERN = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')


class AddressValidator:
    """Validate blockchain addresses"""

    @staticmethod
    def validate_ethereum_address(address: str) -> bool:
        """Validate Ethereum address format"""
        if not address:
            return False

        # Mixed-case addresses must also pass the EIP-55 checksum
        return Web3.is_address(address)

    @staticmethod
    def validate_solana_address(address: str) -> bool:
        """Validate Solana (base58) address format"""
        if not address:
            return False

        return bool(BASE58_PATTERN.match(address))


class RangeValidator:
    """Validate numeric ranges"""

    @staticmethod
    def is_number(value: Any) -> bool:
        """True for int/float values, excluding bools and NaN"""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return value == value

    @staticmethod
    def validate_positive(value: Any) -> bool:
        """Validate positive number"""
        return RangeValidator.is_number(value) and value > 0

    @staticmethod
    def validate_in_range(value: Any, min_val: float, max_val: float) -> bool:
        """Validate number within an inclusive range"""
        return RangeValidator.is_number(value) and min_val <= value <= max_val
