"""Currency-safe cost arithmetic.

Energy and rate are scaled to integers by a constant factor (COST_SCALE,
i.e. 4 decimals), multiplied as integers and divided back down, so repeated
sums never drift. Amounts are plain ints in scaled units until display.
Missing operands propagate as None; zero is never substituted.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Iterable, Optional

from . import canon

COST_SCALE = canon.COST_SCALE

Number = int | float | Decimal


def to_fixed(value: Number, scale: int = COST_SCALE) -> int:
    # via str() so 0.1 scales to exactly 1000, not 999.99...
    d = value if isinstance(value, Decimal) else Decimal(str(value))
    return int((d * scale).to_integral_value(rounding=ROUND_HALF_EVEN))


def _div_trunc(numerator: int, denominator: int) -> int:
    q = abs(numerator) // denominator
    return q if numerator >= 0 else -q


def cost(
    energy: Optional[Number], rate: Optional[Number], scale: int = COST_SCALE
) -> Optional[int]:
    """energy (kWh) x rate (per kWh) as a scaled int, truncated toward zero."""
    if energy is None or rate is None:
        return None
    return _div_trunc(to_fixed(energy, scale) * to_fixed(rate, scale), scale)


def total(amounts: Iterable[Optional[int]]) -> Optional[int]:
    """Sum of the known amounts; None when none are known."""
    known = [a for a in amounts if a is not None]
    return sum(known) if known else None


def to_decimal(amount: Optional[int], scale: int = COST_SCALE) -> Optional[Decimal]:
    if amount is None:
        return None
    return Decimal(amount) / Decimal(scale)


def format_amount(
    amount: Optional[int], places: int = 2, scale: int = COST_SCALE
) -> Optional[str]:
    """Scaled amount -> display string, e.g. 105000 -> '10.50'."""
    value = to_decimal(amount, scale)
    if value is None:
        return None
    return str(value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN))


def wh_to_kwh(wh: Optional[int]) -> Optional[Decimal]:
    return None if wh is None else Decimal(wh) / Decimal(canon.WH_PER_KWH)


def milli_to_display(milli: Optional[int]) -> Optional[Decimal]:
    """Milli-unit cost (e.g. milli-pence) -> display units (pence)."""
    return None if milli is None else Decimal(milli) / Decimal(canon.MILLI)
