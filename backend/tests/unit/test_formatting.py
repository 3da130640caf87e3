from datetime import date, datetime
from decimal import Decimal

import pytest

from oilshop_admin.utils.formatting import (
    currency_symbol,
    format_amount,
    format_date,
    format_iban,
    format_money,
    normalize_iban,
    to_decimal,
)

pytestmark = pytest.mark.unit


def test_money_two_decimals_half_up():
    assert format_money(Decimal("2962.505"), "€") == "€2962.51"
    assert format_money(29.9, "€") == "€29.90"
    assert format_money(None, "€") == "€0.00"


def test_price_per_liter_three_decimals():
    assert format_money(Decimal("0.9875"), "€", decimals=3) == "€0.988"


def test_negative_amount_sign_before_symbol():
    assert format_money(Decimal("-5"), "€") == "-€5.00"


def test_float_goes_through_str():
    assert to_decimal(0.1) == Decimal("0.1")
    assert format_amount(1.005) == "1.01"


def test_currency_symbol():
    assert currency_symbol("eur") == "€"
    assert currency_symbol(None) == "€"
    assert currency_symbol("PLN") == "zł"
    assert currency_symbol("SEK") == "SEK "


def test_iban_grouping_is_idempotent():
    grouped = format_iban("de89370400440532013000")
    assert grouped == "DE89 3704 0044 0532 0130 00"
    assert format_iban(grouped) == grouped


def test_normalize_iban_strips_separators():
    assert normalize_iban(" de89-3704 0044.0532 0130 00 ") == "DE89370400440532013000"


def test_format_date_per_language():
    assert format_date(date(2024, 3, 5), "de") == "05.03.2024"
    assert format_date(datetime(2024, 3, 5, 14, 30), "en") == "03/05/2024"
