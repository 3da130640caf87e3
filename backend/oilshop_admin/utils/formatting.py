"""Invoice formatting utilities (money, IBAN, dates).

Rules:
- Money is fixed-point with half-up rounding, symbol prefixed, no grouping
- Prices per litre use three decimals, all other amounts two
- IBANs are displayed in blocks of four; formatting an already grouped IBAN is a no-op

Examples:
>>> format_money(1234.5, "€")
'€1234.50'
>>> format_money(Decimal("0.9875"), "€", decimals=3)
'€0.988'
>>> format_iban("de89370400440532013000")
'DE89 3704 0044 0532 0130 00'
>>> format_iban("DE89 3704 0044 0532 0130 00")
'DE89 3704 0044 0532 0130 00'
"""
from __future__ import annotations
import re
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]

__all__ = [
    "to_decimal",
    "format_amount",
    "format_money",
    "currency_symbol",
    "normalize_iban",
    "format_iban",
    "format_date",
]

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "PLN": "zł",
    "CHF": "CHF ",
    "GBP": "£",
    "USD": "$",
}

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def to_decimal(value: Number | str | None) -> Decimal:
    """Coerce ORM / JSON numerics to Decimal (floats go through str to avoid binary noise)."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_amount(value: Number | str | None, decimals: int = 2) -> str:
    quant = Decimal(1).scaleb(-decimals)
    return format(to_decimal(value).quantize(quant, rounding=ROUND_HALF_UP), "f")


def format_money(value: Number | str | None, symbol: str = "€", decimals: int = 2) -> str:
    amount = format_amount(value, decimals)
    if amount.startswith("-"):
        return f"-{symbol}{amount[1:]}"
    return f"{symbol}{amount}"


def currency_symbol(code: str | None) -> str:
    """Display symbol for an ISO currency code; unknown codes are shown as given."""
    if not code:
        return CURRENCY_SYMBOLS["EUR"]
    code = code.upper()
    return CURRENCY_SYMBOLS.get(code, f"{code} ")


def normalize_iban(iban: str) -> str:
    """Compact IBAN: upper-case letters and digits only."""
    return _NON_ALNUM.sub("", (iban or "").upper())


def format_iban(iban: str) -> str:
    compact = "".join((iban or "").split()).upper()
    return " ".join(compact[i:i + 4] for i in range(0, len(compact), 4))


def format_date(value: date | datetime, language: str) -> str:
    """Locale-style short date: US order for English, dotted day-first otherwise."""
    if isinstance(value, datetime):
        value = value.date()
    if language == "en":
        return value.strftime("%m/%d/%Y")
    return value.strftime("%d.%m.%Y")
