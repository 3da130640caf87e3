"""Test configuration and fixtures.

Environment Variables:
    TESTING=true      -> file-based SQLite (aiosqlite) instead of Postgres
    FAST_TESTS=1      -> any bearer token is accepted; observability setup is skipped

Tables are created once per session from the model metadata; after every
test all rows except users are deleted so each test starts from a clean shop.
"""

from contextlib import suppress
from decimal import Decimal
import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from passlib.context import CryptContext
from sqlalchemy import text

# Flag test mode before the application modules read the environment
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("FAST_TESTS", "1")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("INVOICE_STORAGE_BACKEND", "local")

from oilshop_admin.config.database import (  # noqa: E402
    AsyncSessionLocal,
    SessionLocal,
    create_database_tables,
    drop_database_tables,
)
from oilshop_admin.main import app  # noqa: E402
from oilshop_admin.models.database import (  # noqa: E402
    Base,
    BankAccount,
    EmailConfig,
    Order,
    Shop,
    User,
)
from oilshop_admin.services.storage_service import (  # noqa: E402
    LocalInvoiceStorage,
    get_invoice_storage,
)

TEST_BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "4"))
pwd_ctx = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=TEST_BCRYPT_ROUNDS)


def _seed_test_users_sync():
    """Seed the users the auth tests log in with (idempotent)."""
    with SessionLocal() as session:
        if not session.query(User).filter_by(username="test_admin").first():
            session.add(User(
                username="test_admin",
                email="test_admin@example.com",
                password_hash=pwd_ctx.hash("secure_password"),
                full_name="Test Admin",
                is_active=True,
                is_admin=True
            ))
        if not session.query(User).filter_by(username="disabled_operator").first():
            session.add(User(
                username="disabled_operator",
                email="disabled@example.com",
                password_hash=pwd_ctx.hash("secure_password"),
                full_name="Disabled Operator",
                is_active=False,
                is_admin=False
            ))
        session.commit()


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_db():  # noqa: D401
    """Recreate the SQLite schema and seed users once per session."""
    drop_database_tables()
    create_database_tables()
    _seed_test_users_sync()
    yield


def pytest_configure(config):  # noqa: D401
    markers = [
        ("contract", "mark test as a contract test"),
        ("integration", "mark test as an integration test"),
        ("unit", "mark test as a unit test"),
        ("slow", "mark test as slow running"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest_asyncio.fixture
async def db_session():  # noqa: D401
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            with suppress(Exception):
                await session.rollback()


@pytest_asyncio.fixture(autouse=True)
async def _sqlite_function_isolation(db_session):  # noqa: D401
    """Delete every non-user row after each test."""
    yield
    preserve = {"users", "alembic_version"}
    with suppress(Exception):
        await db_session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        if table.name in preserve:
            continue
        with suppress(Exception):
            await db_session.execute(text(f'DELETE FROM "{table.name}"'))
    with suppress(Exception):
        await db_session.commit()


@pytest.fixture
def invoice_storage(tmp_path) -> LocalInvoiceStorage:
    return LocalInvoiceStorage(tmp_path / "invoices", "http://test/invoices")


@pytest.fixture(autouse=True)
def _storage_override(invoice_storage):
    app.dependency_overrides[get_invoice_storage] = lambda: invoice_storage
    yield
    app.dependency_overrides.pop(get_invoice_storage, None)


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:  # noqa: D401
    """Async HTTP client for tests (no auth)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_client() -> AsyncGenerator[AsyncClient, None]:  # noqa: D401
    """Async client carrying the FAST_TESTS bearer token."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        client.headers.update({
            "Authorization": "Bearer test.fast.token",
            "Content-Type": "application/json"
        })
        yield client


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture payloads handed to the Resend SDK instead of sending them."""
    import resend

    outbox = []

    def fake_send(payload):
        outbox.append({"payload": payload, "api_key": resend.api_key})
        return {"id": f"email_{len(outbox)}"}

    monkeypatch.setattr(resend.Emails, "send", fake_send)
    return outbox


@pytest_asyncio.fixture
async def shop(db_session) -> Shop:
    """Active German shop with a default bank account and a Resend configuration."""
    config = EmailConfig(
        config_name="Standard",
        resend_api_key="re_test_key",
        from_email="bestellung@heizoel-nord.de",
        from_name="Heizöl Nord",
        active=True,
    )
    account = BankAccount(
        account_name="Hauptkonto",
        account_holder="Heizöl Nord GmbH",
        bank_name="Hamburger Sparkasse",
        iban="DE89 3704 0044 0532 0130 00",
        bic="HASPDEHHXXX",
        active=True,
        is_temporary=False,
    )
    db_session.add_all([config, account])
    await db_session.flush()
    shop = Shop(
        name="heizoel-nord",
        company_name="Heizöl Nord GmbH",
        company_address="Hafenstraße 12",
        company_postcode="20457",
        company_city="Hamburg",
        company_phone="040 123456",
        company_email="info@heizoel-nord.de",
        company_website="https://heizoel-nord.de",
        vat_number="DE123456789",
        business_owner="Jan Petersen",
        court_name="Amtsgericht Hamburg",
        registration_number="HRB 12345",
        language="de",
        currency="EUR",
        vat_rate=Decimal("19"),
        checkout_mode="manual",
        country_code="DE",
        active=True,
        bank_account_id=account.id,
        resend_config_id=config.id,
    )
    db_session.add(shop)
    await db_session.commit()
    await db_session.refresh(shop)
    return shop


def make_order(shop: Shop, **overrides) -> Order:
    values = dict(
        order_number="HO-2024/0042",
        shop_id=shop.id,
        customer_name="Erika Mustermann",
        customer_email="erika@example.com",
        customer_phone="0151 2345678",
        delivery_first_name="Erika",
        delivery_last_name="Mustermann",
        delivery_street="Lindenweg 5",
        delivery_postcode="22085",
        delivery_city="Hamburg",
        use_same_address=True,
        product="heating_oil",
        liters=Decimal("3000"),
        price_per_liter=Decimal("0.9875"),
        base_price=Decimal("2962.50"),
        delivery_fee=Decimal("29.90"),
        total_amount=Decimal("2992.40"),
        payment_method="vorkasse",
        status="pending",
    )
    values.update(overrides)
    return Order(**values)


@pytest_asyncio.fixture
async def order(db_session, shop) -> Order:
    order = make_order(shop)
    db_session.add(order)
    await db_session.commit()
    await db_session.refresh(order)
    return order


@pytest.fixture
def order_factory(db_session, shop):
    """Create further orders for the ``shop`` fixture."""
    async def create(**overrides) -> Order:
        order = make_order(shop, **overrides)
        db_session.add(order)
        await db_session.commit()
        await db_session.refresh(order)
        return order
    return create
