"""Money helpers: minor-unit conversion and currency rendering."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from config import CURRENCY_SYMBOL, NUMBER_GROUPING

MINOR_UNITS = 100

Number = Union[int, float, str, Decimal]


def to_minor(amount: Number) -> int:
    """Convert a major-unit amount (e.g. rupees) into integer minor units (paise)."""
    value = Decimal(str(amount)) * MINOR_UNITS
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor(amount_minor: int) -> Decimal:
    return Decimal(amount_minor) / MINOR_UNITS


def _group_western(digits: str) -> str:
    return f"{int(digits):,}"


def _group_indian(digits: str) -> str:
    # 12,34,567: last three digits, then pairs
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_number(amount_minor: int, grouping: str = NUMBER_GROUPING) -> str:
    """
    Render minor units with thousands separators.

    Fraction digits appear only when the amount has them and trailing zeros
    are dropped, so 123400 -> '1,234' and 123450 -> '1,234.5'.
    """
    sign = "-" if amount_minor < 0 else ""
    whole, fraction = divmod(abs(int(amount_minor)), MINOR_UNITS)
    group = _group_indian if grouping == "indian" else _group_western
    text = group(str(whole))
    if fraction:
        text += "." + f"{fraction:02d}".rstrip("0")
    return sign + text


def format_currency(amount_minor: int, symbol: str = CURRENCY_SYMBOL, grouping: str = NUMBER_GROUPING) -> str:
    return f"{symbol}{format_number(amount_minor, grouping)}"
