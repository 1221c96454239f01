"""Exchange-specific type definitions and utility functions.

All monetary values use Decimal. Never use float for prices, quantities, or fees.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal


@dataclass
class InstrumentInfo:
    """Trading constraints and assets for a spot pair.

    Built from ccxt market metadata. Used by LiveExecutor to round order
    quantities and reject orders below the exchange's minimum notional.
    """

    symbol: str
    base: str
    quote: str
    min_qty: Decimal
    max_qty: Decimal
    qty_step: Decimal
    min_notional: Decimal = Decimal("0")
    tick_size: Decimal = Decimal("0.01")


def round_to_step(value: Decimal, step: Decimal) -> Decimal:
    """Round a value down to the nearest step increment.

    Uses integer division to ensure we always round DOWN (never up),
    which prevents exceeding available balance or lot limits.

    Args:
        value: The raw quantity to round.
        step: The minimum increment (e.g., 0.01 for BNB).

    Returns:
        The value rounded down to the nearest step. A zero step leaves the
        value unchanged.
    """
    if step <= 0:
        return value
    return (value // step) * step


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert an exchange millisecond epoch timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def to_decimal(value: object) -> Decimal:
    """Convert a ccxt numeric field to Decimal via its string form."""
    return Decimal(str(value))
