"""
extraction.money — Strict price tokens and exact decimal arithmetic.

A *strict* price is an optional currency marker followed by digits
(optionally grouped with thousands commas) and exactly two decimal
places.  Fragments of longer numbers, dates written with dots and
percentages are rejected:

    "TOTAL $42.50"   -> 42.50 (symbol "$")
    "1,234.56"       -> 1234.56
    "12.03.24"       -> no match
    "8.25%"          -> no match

Values are :class:`decimal.Decimal`; floats never enter the money path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional, Union

CURRENCY_SYMBOLS = "$₹€£¥₩₪₦₨₱₡₽₴₫₿"

MAX_PRICE = Decimal("100000")
CENT = Decimal("0.01")

_PRICE_RE = re.compile(
    r"""
    (?P<neg>-(?=[\d""" + CURRENCY_SYMBOLS + r"""R]))?
    (?P<sym>[""" + CURRENCY_SYMBOLS + r"""]|Rs\.?)?\s*
    (?<![\d.,])
    (?P<num>\d{1,3}(?:,\d{3})+|\d+)
    \.(?P<dec>\d{2})
    (?!\.?\d|\s*%)
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class PriceMatch:
    raw: str
    value: Decimal
    symbol: Optional[str]
    start: int
    end: int

    @property
    def is_valid(self) -> bool:
        return is_valid_price(self.value)


def find_prices(text: str) -> List[PriceMatch]:
    """All strict price tokens in *text*, left to right."""
    out: List[PriceMatch] = []
    for m in _PRICE_RE.finditer(text):
        value = Decimal(m.group("num").replace(",", "") + "." + m.group("dec"))
        if m.group("neg"):
            value = -value
        out.append(PriceMatch(
            raw=m.group(0).strip(),
            value=value,
            symbol=m.group("sym"),
            start=m.start(),
            end=m.end(),
        ))
    return out


def is_valid_price(value: Decimal) -> bool:
    return Decimal("0") < value < MAX_PRICE


def to_decimal(value: Union[str, int, Decimal, None]) -> Optional[Decimal]:
    """Parse a serialised money value; ``None`` and blanks stay ``None``."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("money values must not be floats")
    s = str(value).strip()
    if not s:
        return None
    try:
        return Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal amount: {value!r}") from exc


def fmt_money(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
