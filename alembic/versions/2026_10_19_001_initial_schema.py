"""Initial schema: shops, settings, users and shop-owned tables

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_initial_schema'
down_revision = None


def _timestamps(updated=True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.current_timestamp())]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True))
    return columns


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(10, 2), nullable=nullable)


def upgrade():
    # Shops (primary key is the identity provider organization id)
    op.create_table(
        'shops',
        sa.Column('id', sa.String(255), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, index=True),
        sa.Column('slug', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('type', sa.String(20), nullable=False, server_default='LOCAL'),
        sa.Column('description', sa.String(2000), nullable=True),
        sa.Column('plan_id', sa.String(50), nullable=True),
        sa.Column('plan_status', sa.String(50), nullable=True),
        sa.Column('subscription_id', sa.String(255), nullable=True),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'shop_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('shop_id', sa.String(255), sa.ForeignKey('shops.id'), nullable=False, unique=True, index=True),
        sa.Column('default_currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('enable_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('auto_price_sync', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('enable_store_credit', sa.Boolean(), nullable=False, server_default=sa.true()),
        _money('min_credit_amount'),
        _money('max_credit_amount'),
        *_timestamps(),
    )

    # Users (membership = shop_id + raw provider role)
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('external_id', sa.String(255), nullable=True, unique=True, index=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('shop_id', sa.String(255), sa.ForeignKey('shops.id'), nullable=True, index=True),
        sa.Column('role', sa.String(100), nullable=True),
        *_timestamps(),
    )

    # Shop-owned tables
    op.create_table(
        'customers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('shop_id', sa.String(255), sa.ForeignKey('shops.id'), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('notes', sa.String(2000), nullable=True),
        _money('current_credit'),
        _money('total_earned'),
        sa.Column('last_visit', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('shop_id', 'phone', name='uq_customer_shop_phone'),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('shop_id', sa.String(255), sa.ForeignKey('shops.id'), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('tcg_line', sa.String(100), nullable=True),
        sa.Column('set_code', sa.String(50), nullable=True),
        sa.Column('card_number', sa.String(50), nullable=True),
        sa.Column('rarity', sa.String(50), nullable=True),
        _money('market_price', nullable=True),
        sa.Column('last_price_update', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('shop_id', sa.String(255), sa.ForeignKey('shops.id'), nullable=False, index=True),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id'), nullable=False, index=True),
        sa.Column('condition', sa.String(50), nullable=False, server_default='near_mint'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        _money('sell_price'),
        _money('buy_price', nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('shop_id', sa.String(255), sa.ForeignKey('shops.id'), nullable=False, index=True),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey('customers.id'), nullable=True, index=True),
        sa.Column('type', sa.String(20), nullable=False, server_default='CHECKOUT'),
        _money('total_amount'),
        sa.Column('payment_method', sa.String(50), nullable=True),
        *_timestamps(updated=False),
    )

    op.create_table(
        'transaction_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('transaction_id', sa.Uuid(), sa.ForeignKey('transactions.id'), nullable=False, index=True),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id'), nullable=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        _money('unit_price'),
    )

    op.create_table(
        'buylists',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('shop_id', sa.String(255), sa.ForeignKey('shops.id'), nullable=False, index=True),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey('customers.id'), nullable=True, index=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        _money('total_offer'),
        *_timestamps(),
    )

    op.create_table(
        'buylist_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('buylist_id', sa.Uuid(), sa.ForeignKey('buylists.id'), nullable=False, index=True),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id'), nullable=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('condition', sa.String(50), nullable=False, server_default='near_mint'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        _money('offer_price'),
    )

    op.create_table(
        'store_credit_transactions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('shop_id', sa.String(255), sa.ForeignKey('shops.id'), nullable=False, index=True),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey('customers.id'), nullable=False, index=True),
        sa.Column('transaction_id', sa.Uuid(), sa.ForeignKey('transactions.id'), nullable=True, index=True),
        sa.Column('type', sa.String(20), nullable=False),
        _money('amount'),
        sa.Column('reason', sa.String(500), nullable=True),
        *_timestamps(updated=False),
    )


def downgrade():
    # Child tables first
    op.drop_table('store_credit_transactions')
    op.drop_table('buylist_items')
    op.drop_table('buylists')
    op.drop_table('transaction_items')
    op.drop_table('transactions')
    op.drop_table('inventory_items')
    op.drop_table('products')
    op.drop_table('customers')
    op.drop_table('users')
    op.drop_table('shop_settings')
    op.drop_table('shops')
