"""
Database models for the heating-oil shop administration backend.
"""

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean, Date, DateTime, String, Text, Numeric, Uuid,
    ForeignKey, Column, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base, validates
from sqlalchemy.sql import func


Base = declarative_base()


class OrderStatus(str, Enum):
    """Order workflow status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    INVOICE_SENT = "invoice_sent"
    PAID = "paid"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class CheckoutMode(str, Enum):
    """Per-shop checkout behaviour."""
    MANUAL = "manual"
    INSTANT = "instant"


class User(Base):
    """Back-office operator account."""
    __tablename__ = 'users'

    id = Column(Uuid, primary_key=True, default=uuid4)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(
    ), onupdate=func.now(), nullable=False)

    @validates('email')
    def validate_email(self, key, email):
        """Validate email format."""
        import re
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(pattern, email):
            raise ValueError(f"Invalid email format: {email}")
        return email.lower()


class EmailConfig(Base):
    """Transactional e-mail provider credentials (one per sending identity)."""
    __tablename__ = 'resend_configs'

    id = Column(Uuid, primary_key=True, default=uuid4)
    config_name = Column(String(100), nullable=False)
    resend_api_key = Column(String(255), nullable=False)
    from_email = Column(String(255), nullable=False)
    from_name = Column(String(100), nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)


class BankAccount(Base):
    """Payment routing target shown on invoices.

    Temporary accounts are created for exactly one order (``used_for_order_id``)
    and are never reused.
    """
    __tablename__ = 'bank_accounts'

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_name = Column(String(100), nullable=False)
    account_holder = Column(String(150), nullable=False)
    bank_name = Column(String(150), nullable=False)
    iban = Column(String(42), nullable=False)
    bic = Column(String(11))
    country = Column(String(2), default='DE', nullable=False)
    currency = Column(String(3), default='EUR', nullable=False)
    daily_limit = Column(Numeric(12, 2))
    active = Column(Boolean, default=True, nullable=False)
    is_temporary = Column(Boolean, default=False, nullable=False)
    temp_order_number = Column(String(50))
    use_anyname = Column(Boolean, default=False, nullable=False)
    used_for_order_id = Column(
        Uuid, ForeignKey('orders.id', use_alter=True,
                         name='fk_bank_accounts_used_for_order'))
    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('daily_limit IS NULL OR daily_limit >= 0',
                        name='check_daily_limit_positive'),
        Index('idx_bank_accounts_temp_order',
              'used_for_order_id', 'is_temporary'),
    )

    @validates('iban')
    def validate_iban(self, key, iban):
        """Store IBANs compact and upper-case."""
        compact = "".join(iban.split()).upper()
        if not compact:
            raise ValueError("IBAN must not be empty")
        return compact


class Shop(Base):
    """Tenant configuration: company identity, branding, invoice defaults."""
    __tablename__ = 'shops'

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    company_name = Column(String(150), nullable=False)
    company_address = Column(String(255), nullable=False)
    company_postcode = Column(String(20), nullable=False)
    company_city = Column(String(100), nullable=False)
    company_phone = Column(String(50))
    company_email = Column(String(255), nullable=False)
    company_website = Column(String(255))
    vat_number = Column(String(50))
    business_owner = Column(String(150))
    court_name = Column(String(150))
    registration_number = Column(String(100))
    language = Column(String(5), default='de', nullable=False)
    currency = Column(String(3), default='EUR', nullable=False)
    vat_rate = Column(Numeric(5, 2), default=19, nullable=False)
    logo_url = Column(Text)
    accent_color = Column(String(7))
    support_phone = Column(String(50))
    checkout_mode = Column(String(20), default=CheckoutMode.MANUAL.value,
                           nullable=False)
    country_code = Column(String(2))
    active = Column(Boolean, default=True, nullable=False)
    bank_account_id = Column(Uuid, ForeignKey('bank_accounts.id'))
    resend_config_id = Column(Uuid, ForeignKey('resend_configs.id'))
    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(
    ), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('vat_rate >= 0 AND vat_rate <= 100',
                        name='check_shop_vat_rate_range'),
        CheckConstraint("checkout_mode IN ('manual', 'instant')",
                        name='check_shop_checkout_mode'),
    )


class Order(Base):
    """Heating-oil order placed through a shop.

    Business facts are written once at checkout; the workflow columns
    (status, bank selection, invoice fields) are updated in place by the
    back-office.
    """
    __tablename__ = 'orders'

    id = Column(Uuid, primary_key=True, default=uuid4)
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    shop_id = Column(Uuid, ForeignKey('shops.id'), nullable=False)

    customer_name = Column(String(150), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50))

    delivery_first_name = Column(String(100))
    delivery_last_name = Column(String(100))
    delivery_street = Column(String(255), nullable=False)
    delivery_postcode = Column(String(20), nullable=False)
    delivery_city = Column(String(100), nullable=False)
    delivery_phone = Column(String(50))

    use_same_address = Column(Boolean, default=True, nullable=False)
    billing_first_name = Column(String(100))
    billing_last_name = Column(String(100))
    billing_street = Column(String(255))
    billing_postcode = Column(String(20))
    billing_city = Column(String(100))

    product = Column(String(100), default='heating_oil', nullable=False)
    liters = Column(Numeric(10, 2), nullable=False)
    price_per_liter = Column(Numeric(10, 4), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    delivery_fee = Column(Numeric(12, 2), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(50), default='vorkasse', nullable=False)
    temp_order_number = Column(String(50))
    processing_mode = Column(String(20))

    status = Column(String(20), default=OrderStatus.PENDING.value,
                    nullable=False, index=True)
    selected_bank_account_id = Column(Uuid, ForeignKey('bank_accounts.id'))
    invoice_number = Column(String(50), index=True)
    invoice_date = Column(Date)
    invoice_generation_date = Column(DateTime(timezone=True))
    invoice_pdf_generated = Column(Boolean, default=False, nullable=False)
    invoice_pdf_url = Column(Text)
    invoice_sent = Column(Boolean, default=False, nullable=False)
    bank_details_shown = Column(Boolean, default=False, nullable=False)
    hidden = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(
    ), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('liters > 0', name='check_order_liters_positive'),
        CheckConstraint('total_amount >= 0',
                        name='check_order_total_non_negative'),
        CheckConstraint('delivery_fee >= 0',
                        name='check_order_delivery_fee_non_negative'),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'invoice_sent', 'paid', 'delivered', 'cancelled')",
            name='check_order_status'),
        Index('idx_orders_shop_status', 'shop_id', 'status'),
    )

    @validates('status')
    def validate_status(self, key, status):
        """Reject statuses outside the known workflow values."""
        value = status.value if isinstance(status, OrderStatus) else status
        if value not in {s.value for s in OrderStatus}:
            raise ValueError(f"Invalid order status: {status}")
        return value
