"""End-to-end processing of an order through the admin API.

Covers temporary bank accounts feeding the invoice, the instant flow
(invoice + e-mail with attachment) and the manual flow, including the
cases where the e-mail step fails but the call still succeeds.
"""
from __future__ import annotations

import base64

import pytest
import resend

from oilshop_admin.models.database import Order, Shop


@pytest.mark.integration
@pytest.mark.asyncio
async def test_instant_flow_uses_temporary_account(auth_client, order, sent_emails, invoice_storage, db_session):  # noqa: D401
    # 1. Operator adds a single-use account for this order
    created = await auth_client.post(f"/api/v1/orders/{order.id}/temporary-bank-account", json={
        "account_name": "Einmalkonto",
        "account_holder": "Jan Petersen",
        "bank_name": "Deutsche Bank",
        "iban": "DE44500105175407324931",
        "use_anyname": True,
    })
    assert created.status_code == 201, created.text
    temp_id = created.json()["data"]["id"]

    # 2. Instant processing generates the invoice and mails it
    response = await auth_client.post(f"/api/v1/orders/{order.id}/process-instant")
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["order_number"] == "HO-2024/0042"
    assert data["email_sent"] is True

    invoice = data["invoice"]
    assert invoice["bank_account"]["id"] == temp_id
    assert invoice["bank_account"]["source"] == "temporary"
    # use_anyname prints the company instead of the private holder
    assert invoice["bank_account"]["recipient"] == "Heizöl Nord GmbH"

    # 3. The mailed attachment is the stored PDF
    payload = sent_emails[0]["payload"]
    pdf = await invoice_storage.download(invoice["filename"])
    assert base64.b64decode(payload["attachments"][0]["content"]) == pdf
    assert payload["attachments"][0]["filename"] == f"Rechnung-{invoice['invoice_number']}.pdf"

    # 4. Order reflects the whole flow
    fresh = await db_session.get(Order, order.id, populate_existing=True)
    assert fresh.processing_mode == "instant"
    assert fresh.status == "invoice_sent"
    assert fresh.invoice_sent is True
    assert fresh.invoice_pdf_url == invoice["invoice_url"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_instant_flow_survives_email_failure(auth_client, order, monkeypatch, db_session):  # noqa: D401
    def failing_send(payload):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(resend.Emails, "send", failing_send)

    response = await auth_client.post(f"/api/v1/orders/{order.id}/process-instant")

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["invoice_generated"] is True
    assert data["email_sent"] is False

    fresh = await db_session.get(Order, order.id, populate_existing=True)
    assert fresh.invoice_pdf_generated is True
    assert fresh.invoice_sent is False
    assert fresh.status == "pending"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_manual_flow_then_invoice_uses_selected_account(auth_client, order, shop, sent_emails, db_session):  # noqa: D401
    # Temporary account exists, but the operator explicitly picks the shop default
    await auth_client.post(f"/api/v1/orders/{order.id}/temporary-bank-account", json={
        "account_name": "Einmalkonto",
        "account_holder": "Jan Petersen",
        "bank_name": "Deutsche Bank",
        "iban": "DE44500105175407324931",
    })

    manual = await auth_client.post(f"/api/v1/orders/{order.id}/process-manual", json={
        "temp_order_number": "T-2024-9",
        "bank_account_id": str(shop.bank_account_id),
    })
    assert manual.status_code == 200, manual.text
    assert manual.json()["data"]["email_sent"] is True
    assert sent_emails[0]["payload"]["subject"] == "Bestelleingang HO-2024/0042"

    generated = await auth_client.post("/api/v1/invoices/generate", json={
        "order_id": str(order.id), "language": "en"})
    assert generated.status_code == 200
    bank_account = generated.json()["data"]["bank_account"]
    assert bank_account["source"] == "selected"
    assert bank_account["id"] == str(shop.bank_account_id)

    fresh = await db_session.get(Order, order.id, populate_existing=True)
    assert fresh.processing_mode == "manual"
    assert fresh.temp_order_number == "T-2024-9"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_manual_flow_without_email_config(auth_client, order, shop, sent_emails, db_session):  # noqa: D401
    fresh_shop = await db_session.get(Shop, shop.id)
    fresh_shop.resend_config_id = None
    await db_session.commit()

    response = await auth_client.post(f"/api/v1/orders/{order.id}/process-manual", json={})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email_sent"] is False
    assert data["temp_order_number"] == "HO-2024/0042"
    assert sent_emails == []
