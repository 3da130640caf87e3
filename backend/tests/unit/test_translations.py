import pytest

from oilshop_admin.models.database import Shop
from oilshop_admin.services.translations import (
    INVOICE_TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    get_translations,
    product_name,
    resolve_language,
)

pytestmark = pytest.mark.unit


def test_all_languages_share_the_same_keys():
    keys = set(INVOICE_TRANSLATIONS["de"])
    for language in SUPPORTED_LANGUAGES:
        assert set(INVOICE_TRANSLATIONS[language]) == keys, language


def test_unknown_language_falls_back_to_german():
    assert get_translations("xx")["invoice"] == "Rechnung"
    assert get_translations(None)["invoice"] == "Rechnung"


def test_due_days_is_templated():
    assert get_translations("de")["due_days"].format(days=14) == "14 Tage"
    assert get_translations("en")["due_days"].format(days=7) == "7 days"


@pytest.mark.parametrize("requested,shop_language,country,expected", [
    ("en", "de", "DE", "en"),
    ("EN", "de", "DE", "en"),
    ("xx", "fr", "DE", "fr"),
    (None, None, "PL", "pl"),
    (None, "zz", "AT", "de"),
    (None, None, None, "de"),
])
def test_resolve_language_order(requested, shop_language, country, expected):
    shop = Shop(language=shop_language, country_code=country)
    assert resolve_language(requested, shop) == expected


def test_resolve_language_without_shop_uses_default():
    assert resolve_language(None, None, default="en") == "en"
    assert resolve_language(None, None, default="xx") == "de"


def test_product_names():
    assert product_name("premium_heizoel", "en") is not None
    assert product_name(None, "de") is None
    assert product_name("unknown", "de") is None
