"""
Rupiah formatting helpers for the presentation layer.

Follows id-ID conventions: "." groups thousands, "," marks decimals,
amounts are shown without cents.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[Decimal, int, float, str]

# (threshold, suffix) for compact notation, largest first
_COMPACT_UNITS = (
    (Decimal("1000000000000"), "T"),
    (Decimal("1000000000"), "M"),
    (Decimal("1000000"), "jt"),
)


def _group(digits: str) -> str:
    return re.sub(r"\B(?=(\d{3})+(?!\d))", ".", digits)


def group_digits(text: str) -> str:
    """Format typed input as it is entered: "1500000" -> "1.500.000"."""
    text = (text or "").strip()
    sign = "-" if text.startswith("-") else ""
    return sign + _group(re.sub(r"\D", "", text))


def format_idr(value: Number, compact: bool = False) -> str:
    """
    Format an amount as Rupiah.

    Args:
        value: Amount to format
        compact: Abbreviate values of one million or more (Rp 1,5 jt)

    Returns:
        e.g. "Rp 1.250.000", "-Rp 20.000", "Rp 2,3 M"
    """
    amount = Decimal(str(value))
    sign = "-" if amount < 0 else ""
    magnitude = abs(amount)

    if compact:
        for threshold, suffix in _COMPACT_UNITS:
            if magnitude >= threshold:
                scaled = (magnitude / threshold).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
                text = f"{scaled:f}".rstrip("0").rstrip(".").replace(".", ",")
                return f"{sign}Rp {text} {suffix}"

    whole = magnitude.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{sign}Rp {_group(f'{whole:f}')}"


def format_percent(value: Number) -> str:
    """Whole-number percentage, e.g. "85%"."""
    pct = Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{pct:f}%"
