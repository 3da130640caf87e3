"""initial schema

Revision ID: 20241001_0001
Revises:
Create Date: 2024-10-01 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20241001_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
                    sa.Column('id', sa.Uuid(), primary_key=True),
                    sa.Column('username', sa.String(length=50), nullable=False),
                    sa.Column('email', sa.String(length=255), nullable=False),
                    sa.Column('password_hash', sa.String(
                        length=255), nullable=False),
                    sa.Column('full_name', sa.String(
                        length=100), nullable=False),
                    sa.Column('is_active', sa.Boolean(), nullable=False,
                              server_default=sa.true()),
                    sa.Column('is_admin', sa.Boolean(), nullable=False,
                              server_default=sa.false()),
                    sa.Column('last_login', sa.DateTime(timezone=True)),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.Column('updated_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False)
                    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('resend_configs',
                    sa.Column('id', sa.Uuid(), primary_key=True),
                    sa.Column('config_name', sa.String(length=100), nullable=False),
                    sa.Column('resend_api_key', sa.String(length=255), nullable=False),
                    sa.Column('from_email', sa.String(length=255), nullable=False),
                    sa.Column('from_name', sa.String(length=100), nullable=False),
                    sa.Column('active', sa.Boolean(), nullable=False,
                              server_default=sa.true()),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False)
                    )

    # used_for_order_id references orders; its FK is added once orders exists
    op.create_table('bank_accounts',
                    sa.Column('id', sa.Uuid(), primary_key=True),
                    sa.Column('account_name', sa.String(length=100), nullable=False),
                    sa.Column('account_holder', sa.String(length=150), nullable=False),
                    sa.Column('bank_name', sa.String(length=150), nullable=False),
                    sa.Column('iban', sa.String(length=42), nullable=False),
                    sa.Column('bic', sa.String(length=11)),
                    sa.Column('country', sa.String(length=2), nullable=False,
                              server_default='DE'),
                    sa.Column('currency', sa.String(length=3), nullable=False,
                              server_default='EUR'),
                    sa.Column('daily_limit', sa.Numeric(12, 2)),
                    sa.Column('active', sa.Boolean(), nullable=False,
                              server_default=sa.true()),
                    sa.Column('is_temporary', sa.Boolean(), nullable=False,
                              server_default=sa.false()),
                    sa.Column('temp_order_number', sa.String(length=50)),
                    sa.Column('use_anyname', sa.Boolean(), nullable=False,
                              server_default=sa.false()),
                    sa.Column('used_for_order_id', sa.Uuid()),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.CheckConstraint('daily_limit IS NULL OR daily_limit >= 0',
                                       name='check_daily_limit_positive')
                    )
    op.create_index('idx_bank_accounts_temp_order', 'bank_accounts',
                    ['used_for_order_id', 'is_temporary'])

    op.create_table('shops',
                    sa.Column('id', sa.Uuid(), primary_key=True),
                    sa.Column('name', sa.String(length=100), nullable=False),
                    sa.Column('company_name', sa.String(length=150), nullable=False),
                    sa.Column('company_address', sa.String(length=255), nullable=False),
                    sa.Column('company_postcode', sa.String(length=20), nullable=False),
                    sa.Column('company_city', sa.String(length=100), nullable=False),
                    sa.Column('company_phone', sa.String(length=50)),
                    sa.Column('company_email', sa.String(length=255), nullable=False),
                    sa.Column('company_website', sa.String(length=255)),
                    sa.Column('vat_number', sa.String(length=50)),
                    sa.Column('business_owner', sa.String(length=150)),
                    sa.Column('court_name', sa.String(length=150)),
                    sa.Column('registration_number', sa.String(length=100)),
                    sa.Column('language', sa.String(length=5), nullable=False,
                              server_default='de'),
                    sa.Column('currency', sa.String(length=3), nullable=False,
                              server_default='EUR'),
                    sa.Column('vat_rate', sa.Numeric(5, 2), nullable=False,
                              server_default='19'),
                    sa.Column('logo_url', sa.Text()),
                    sa.Column('accent_color', sa.String(length=7)),
                    sa.Column('support_phone', sa.String(length=50)),
                    sa.Column('checkout_mode', sa.String(length=20), nullable=False,
                              server_default='manual'),
                    sa.Column('country_code', sa.String(length=2)),
                    sa.Column('active', sa.Boolean(), nullable=False,
                              server_default=sa.true()),
                    sa.Column('bank_account_id', sa.Uuid(),
                              sa.ForeignKey('bank_accounts.id')),
                    sa.Column('resend_config_id', sa.Uuid(),
                              sa.ForeignKey('resend_configs.id')),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.Column('updated_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.CheckConstraint('vat_rate >= 0 AND vat_rate <= 100',
                                       name='check_shop_vat_rate_range'),
                    sa.CheckConstraint("checkout_mode IN ('manual', 'instant')",
                                       name='check_shop_checkout_mode')
                    )

    op.create_table('orders',
                    sa.Column('id', sa.Uuid(), primary_key=True),
                    sa.Column('order_number', sa.String(length=50), nullable=False),
                    sa.Column('shop_id', sa.Uuid(), sa.ForeignKey(
                        'shops.id'), nullable=False),
                    sa.Column('customer_name', sa.String(length=150), nullable=False),
                    sa.Column('customer_email', sa.String(length=255), nullable=False),
                    sa.Column('customer_phone', sa.String(length=50)),
                    sa.Column('delivery_first_name', sa.String(length=100)),
                    sa.Column('delivery_last_name', sa.String(length=100)),
                    sa.Column('delivery_street', sa.String(length=255), nullable=False),
                    sa.Column('delivery_postcode', sa.String(length=20), nullable=False),
                    sa.Column('delivery_city', sa.String(length=100), nullable=False),
                    sa.Column('delivery_phone', sa.String(length=50)),
                    sa.Column('use_same_address', sa.Boolean(), nullable=False,
                              server_default=sa.true()),
                    sa.Column('billing_first_name', sa.String(length=100)),
                    sa.Column('billing_last_name', sa.String(length=100)),
                    sa.Column('billing_street', sa.String(length=255)),
                    sa.Column('billing_postcode', sa.String(length=20)),
                    sa.Column('billing_city', sa.String(length=100)),
                    sa.Column('product', sa.String(length=100), nullable=False,
                              server_default='heating_oil'),
                    sa.Column('liters', sa.Numeric(10, 2), nullable=False),
                    sa.Column('price_per_liter', sa.Numeric(10, 4), nullable=False),
                    sa.Column('base_price', sa.Numeric(12, 2), nullable=False),
                    sa.Column('delivery_fee', sa.Numeric(12, 2), nullable=False,
                              server_default='0'),
                    sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
                    sa.Column('payment_method', sa.String(length=50), nullable=False,
                              server_default='vorkasse'),
                    sa.Column('temp_order_number', sa.String(length=50)),
                    sa.Column('processing_mode', sa.String(length=20)),
                    sa.Column('status', sa.String(length=20), nullable=False,
                              server_default='pending'),
                    sa.Column('selected_bank_account_id', sa.Uuid(),
                              sa.ForeignKey('bank_accounts.id')),
                    sa.Column('invoice_number', sa.String(length=50)),
                    sa.Column('invoice_date', sa.Date()),
                    sa.Column('invoice_generation_date', sa.DateTime(timezone=True)),
                    sa.Column('invoice_pdf_generated', sa.Boolean(), nullable=False,
                              server_default=sa.false()),
                    sa.Column('invoice_pdf_url', sa.Text()),
                    sa.Column('invoice_sent', sa.Boolean(), nullable=False,
                              server_default=sa.false()),
                    sa.Column('bank_details_shown', sa.Boolean(), nullable=False,
                              server_default=sa.false()),
                    sa.Column('hidden', sa.Boolean(), nullable=False,
                              server_default=sa.false()),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.Column('updated_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.CheckConstraint('liters > 0', name='check_order_liters_positive'),
                    sa.CheckConstraint('total_amount >= 0',
                                       name='check_order_total_non_negative'),
                    sa.CheckConstraint('delivery_fee >= 0',
                                       name='check_order_delivery_fee_non_negative'),
                    sa.CheckConstraint(
                        "status IN ('pending', 'confirmed', 'invoice_sent', 'paid', 'delivered', 'cancelled')",
                        name='check_order_status')
                    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_invoice_number', 'orders', ['invoice_number'])
    op.create_index('idx_orders_shop_status', 'orders', ['shop_id', 'status'])

    # SQLite cannot add a constraint to an existing table
    if op.get_bind().dialect.name != 'sqlite':
        op.create_foreign_key('fk_bank_accounts_used_for_order', 'bank_accounts',
                              'orders', ['used_for_order_id'], ['id'])


def downgrade() -> None:
    if op.get_bind().dialect.name != 'sqlite':
        op.drop_constraint('fk_bank_accounts_used_for_order',
                           'bank_accounts', type_='foreignkey')
    op.drop_index('idx_orders_shop_status', table_name='orders')
    op.drop_index('ix_orders_invoice_number', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_order_number', table_name='orders')
    op.drop_table('orders')
    op.drop_table('shops')
    op.drop_index('idx_bank_accounts_temp_order', table_name='bank_accounts')
    op.drop_table('bank_accounts')
    op.drop_table('resend_configs')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
