"""
Utility helper functions
Unit conversion, fixed-point formatting and retry with backoff
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar
from decimal import Decimal, ROUND_HALF_EVEN, ROUND_HALF_UP
from datetime import datetime, timezone


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Totals are reported with Bitcoin's 8 fractional digits
EIGHT_PLACES = Decimal("0.00000001")


def to_decimal_string(raw: int, decimals: int) -> str:
    """
    Render raw / 10**decimals as a minimal decimal string

    Uses integer arithmetic only, so values beyond 64 bits keep full precision.

    Examples:
        to_decimal_string(150000000, 8) -> '1.5'
        to_decimal_string(0, 8) -> '0'
        to_decimal_string(10**30, 18) -> '1000000000000'
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    if raw < 0:
        raise ValueError(f"raw amount must be non-negative, got {raw}")

    digits = str(raw).rjust(decimals + 1, "0")
    split = len(digits) - decimals
    int_part = digits[:split]
    frac_part = digits[split:].rstrip("0")
    return f"{int_part}.{frac_part}" if frac_part else int_part


def to_display_integer(value: Any) -> str:
    """
    Format a number as a thousands-grouped integer for display

    Examples:
        19876543.21 -> '19,876,543'
        0.5 -> '1'
    """
    rounded = Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return f"{int(rounded):,}"


def quantize_8(value: Decimal) -> Decimal:
    """Round a decimal to 8 fractional digits"""
    return value.quantize(EIGHT_PLACES, rounding=ROUND_HALF_EVEN)


def format_fixed_8(value: Decimal) -> str:
    """Render a decimal with exactly 8 fractional digits, never in exponent form"""
    return format(quantize_8(value), "f")


def parse_decimal(value: str, default: Decimal = Decimal(0)) -> Decimal:
    """Parse a decimal string, falling back to default for unparseable input"""
    try:
        parsed = Decimal(value)
    except (ArithmeticError, TypeError, ValueError):
        return default
    return parsed if parsed.is_finite() else default


def get_utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def exponential_backoff(attempt: int, base_delay: float = 1.0, max_delay: Optional[float] = None) -> float:
    """Calculate exponential backoff delay"""
    delay = base_delay * (2 ** attempt)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    description: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
) -> T:
    """
    Run an async operation, retrying failures with exponential backoff

    Args:
        operation: Zero-argument coroutine function, called once per attempt
        max_attempts: Total number of attempts
        base_delay: Delay in seconds before the first retry; doubles each retry
        description: Label used in log messages
        sleep: Awaitable sleep function (injectable for tests)

    Raises:
        The exception of the final attempt once all attempts have failed
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            if attempt == max_attempts - 1:
                logger.warning(f"{description} failed after {max_attempts} attempts: {str(e)}")
                raise

            delay = exponential_backoff(attempt, base_delay)
            logger.warning(
                f"{description} failed (attempt {attempt + 1}/{max_attempts}), "
                f"retrying in {delay:.2f}s: {str(e)}"
            )
            await sleep(delay)


def format_number(value: float, max_fraction_digits: int = 2) -> str:
    """
    Format a number with thousands separators and at most max_fraction_digits

    Examples:
        1234.5 -> '1,234.5'
        1234.567 -> '1,234.57'
        1000.0 -> '1,000'
    """
    text = f"{value:,.{max_fraction_digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
