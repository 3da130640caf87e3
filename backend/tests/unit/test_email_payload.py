from decimal import Decimal
import threading
import time
import uuid

import pytest
import resend

from oilshop_admin.models.database import EmailConfig, Order, Shop
from oilshop_admin.services.email_service import (
    INSTANT_CONFIRMATION,
    MANUAL_CONFIRMATION,
    attachment_filename,
    build_email_payload,
    send_via_resend,
)
from oilshop_admin.utils.errors import EmailDeliveryError

pytestmark = pytest.mark.unit


def _fixtures():
    shop = Shop(id=uuid.uuid4(), company_name="Heizöl Nord GmbH",
                company_email="info@heizoel-nord.de", currency="EUR")
    order = Order(
        id=uuid.uuid4(), order_number="HO-2024/0042", customer_name="Erika <b>Mustermann</b>",
        customer_email="erika@example.com", delivery_street="Lindenweg 5",
        delivery_postcode="22085", delivery_city="Hamburg", product="heating_oil",
        liters=Decimal("3000"), total_amount=Decimal("2992.40"),
    )
    config = EmailConfig(config_name="Standard", resend_api_key="re_shop",
                         from_email="bestellung@heizoel-nord.de", from_name="Heizöl Nord")
    return shop, order, config


def test_instant_payload_subject_and_sender():
    shop, order, config = _fixtures()
    payload = build_email_payload(order, shop, config, INSTANT_CONFIRMATION, "de")

    assert payload["from"] == "Heizöl Nord <bestellung@heizoel-nord.de>"
    assert payload["to"] == ["erika@example.com"]
    assert payload["subject"] == "Bestellbestätigung HO-2024/0042"
    assert "€2992.40" in payload["html"]
    assert "attachments" not in payload


def test_manual_payload_uses_received_wording():
    shop, order, config = _fixtures()
    payload = build_email_payload(order, shop, config, MANUAL_CONFIRMATION, "en")
    assert payload["subject"] == "Order received HO-2024/0042"
    assert "Order received" in payload["html"]


def test_html_escapes_customer_input():
    shop, order, config = _fixtures()
    payload = build_email_payload(order, shop, config, INSTANT_CONFIRMATION, "de")
    assert "<b>Mustermann</b>" not in payload["html"]
    assert "&lt;b&gt;" in payload["html"]


def test_attachment_filename_prefers_invoice_number():
    _, order, _ = _fixtures()
    assert attachment_filename(order) == "Rechnung-HO-2024/0042.pdf"
    order.invoice_number = "2024-0007"
    assert attachment_filename(order) == "Rechnung-2024-0007.pdf"


def test_send_via_resend_restores_global_key(monkeypatch):
    seen = {}

    def fake_send(payload):
        seen["key"] = resend.api_key
        return {"id": "email_123"}

    monkeypatch.setattr(resend.Emails, "send", fake_send)
    monkeypatch.setattr(resend, "api_key", "re_global")

    assert send_via_resend({"to": ["a@example.com"]}, "re_shop") == "email_123"
    assert seen["key"] == "re_shop"
    assert resend.api_key == "re_global"


def test_send_via_resend_wraps_provider_errors(monkeypatch):
    def failing_send(payload):
        raise RuntimeError("domain not verified")

    monkeypatch.setattr(resend.Emails, "send", failing_send)
    monkeypatch.setattr(resend, "api_key", None)

    with pytest.raises(EmailDeliveryError) as exc_info:
        send_via_resend({}, "re_shop")
    assert "domain not verified" in exc_info.value.message
    assert resend.api_key is None


def test_send_via_resend_requires_message_id(monkeypatch):
    monkeypatch.setattr(resend.Emails, "send", lambda payload: {})
    with pytest.raises(EmailDeliveryError):
        send_via_resend({}, "re_shop")


def test_concurrent_sends_keep_their_own_api_key(monkeypatch):
    seen = {}

    def slow_send(payload):
        recipient = payload["to"][0]
        seen[recipient] = resend.api_key
        time.sleep(0.05)
        # The key must still be ours after the other thread had its chance
        seen[recipient + ":after"] = resend.api_key
        return {"id": f"email_{recipient}"}

    monkeypatch.setattr(resend.Emails, "send", slow_send)
    monkeypatch.setattr(resend, "api_key", None)

    def send(recipient, key):
        send_via_resend({"to": [recipient], "subject": "Bestellbestätigung"}, key)

    threads = [
        threading.Thread(target=send, args=("a@shop-a.de", "re_key_a")),
        threading.Thread(target=send, args=("b@shop-b.de", "re_key_b")),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert seen == {
        "a@shop-a.de": "re_key_a",
        "a@shop-a.de:after": "re_key_a",
        "b@shop-b.de": "re_key_b",
        "b@shop-b.de:after": "re_key_b",
    }
    assert resend.api_key is None
