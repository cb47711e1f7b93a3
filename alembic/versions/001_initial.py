"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def status_column(name: str, constraint: str, values, default=None, nullable=False) -> list:
    """String status column plus the CHECK constraint listing its values"""
    allowed = ", ".join(f"'{value}'" for value in values)
    return [
        sa.Column(name, sa.String(32), nullable=nullable, server_default=default),
        sa.CheckConstraint(f"{name} IN ({allowed})", name=constraint),
    ]


def upgrade() -> None:
    # Create organizations table
    op.create_table(
        'organizations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('timezone', sa.String(50), default='America/New_York'),
        sa.Column('currency', sa.String(3), default='USD'),
        sa.Column('tax_rate', sa.Numeric(6, 4), nullable=False, server_default='0'),
        sa.Column('service_charge_rate', sa.Numeric(6, 4), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100)),
        sa.Column('last_name', sa.String(100)),
        sa.Column('phone', sa.String(20)),
        *status_column('role', 'user_role', [
            'super_admin', 'admin', 'manager', 'cashier', 'waiter', 'kitchen', 'bartender',
        ], default='waiter'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create customers table
    op.create_table(
        'customers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100)),
        sa.Column('phone', sa.String(20)),
        sa.Column('email', sa.String(255)),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create categories table
    op.create_table(
        'categories',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('color', sa.String(7)),
        sa.Column('sort_order', sa.Integer(), default=0),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create products table
    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('category_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('categories.id')),
        sa.Column('sku', sa.String(64)),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        *status_column('type', 'product_type', ['food', 'beverage', 'combo', 'service'], default='food'),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('cost_cents', sa.Integer()),
        sa.Column('prep_time', sa.Integer()),
        sa.Column('calories', sa.Integer()),
        sa.Column('allergens', postgresql.JSON(), default=[]),
        sa.Column('is_spicy', sa.Boolean(), default=False),
        sa.Column('is_vegetarian', sa.Boolean(), default=False),
        sa.Column('is_vegan', sa.Boolean(), default=False),
        sa.Column('is_gluten_free', sa.Boolean(), default=False),
        sa.Column('image_url', sa.String(500)),
        *status_column('status', 'product_status', ['available', 'unavailable', 'withdrawn'], default='available'),
        sa.Column('sort_order', sa.Integer(), default=0),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create modifier tables
    op.create_table(
        'product_modifiers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('type', sa.String(20), default='single'),
        sa.Column('is_required', sa.Boolean(), default=False),
        sa.Column('min_selections', sa.Integer(), default=0),
        sa.Column('max_selections', sa.Integer(), default=1),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    op.create_table(
        'modifier_options',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('modifier_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('product_modifiers.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('price_adjustment_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_default', sa.Boolean(), default=False),
        sa.Column('sort_order', sa.Integer(), default=0),
        sa.Column('is_active', sa.Boolean(), default=True),
    )

    op.create_table(
        'product_modifier_groups',
        sa.Column('product_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('products.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('modifier_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('product_modifiers.id'), primary_key=True),
        sa.Column('sort_order', sa.Integer(), default=0),
    )

    # Create tables table
    op.create_table(
        'tables',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('number', sa.String(20), nullable=False),
        sa.Column('name', sa.String(100)),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='4'),
        *status_column('status', 'table_status', [
            'available', 'occupied', 'reserved', 'cleaning', 'out_of_order',
        ], default='available'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('organization_id', 'number', name='uq_tables_organization_number'),
    )

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('order_number', sa.String(32), nullable=False),
        sa.Column('table_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tables.id')),
        sa.Column('waiter_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id')),
        *status_column('type', 'order_type', ['dine_in', 'takeout', 'delivery', 'drive_thru'], default='dine_in'),
        *status_column('status', 'order_status', [
            'pending', 'confirmed', 'preparing', 'ready', 'served', 'paid', 'cancelled',
        ], default='pending'),
        sa.Column('guest_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('service_charge_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text()),
        sa.Column('estimated_ready_time', sa.DateTime()),
        sa.Column('confirmed_at', sa.DateTime()),
        sa.Column('ready_at', sa.DateTime()),
        sa.Column('served_at', sa.DateTime()),
        sa.Column('paid_at', sa.DateTime()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('organization_id', 'order_number', name='uq_orders_organization_number'),
    )

    op.create_table(
        'order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_price_cents', sa.Integer(), nullable=False),
        *status_column('status', 'order_item_status', ['pending', 'preparing', 'ready'], default='pending'),
        sa.Column('notes', sa.Text()),
        sa.Column('started_at', sa.DateTime()),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'order_item_modifiers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_item_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('order_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('modifier_option_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('modifier_options.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_price_cents', sa.Integer(), nullable=False),
    )

    op.create_table(
        'order_number_sequences',
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), primary_key=True),
        sa.Column('business_date', sa.Date(), primary_key=True),
        sa.Column('last_value', sa.Integer(), nullable=False),
    )

    # Create payments table
    op.create_table(
        'payments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cashier_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        *status_column('method', 'payment_method', ['cash', 'card', 'mobile', 'gift_card']),
        *status_column('status', 'payment_status', ['completed', 'refunded'], default='completed'),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('tip_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('change_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reference_number', sa.String(100)),
        sa.Column('processed_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create indexes
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])
    op.create_index('ix_customers_organization_id', 'customers', ['organization_id'])
    op.create_index('ix_categories_organization_id', 'categories', ['organization_id'])
    op.create_index('ix_products_organization_id', 'products', ['organization_id'])
    op.create_index('ix_product_modifiers_organization_id', 'product_modifiers', ['organization_id'])
    op.create_index('ix_modifier_options_modifier_id', 'modifier_options', ['modifier_id'])
    op.create_index('ix_tables_organization_id', 'tables', ['organization_id'])
    op.create_index('ix_orders_organization_id', 'orders', ['organization_id'])
    op.create_index('ix_orders_table_id', 'orders', ['table_id'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])
    op.create_index('ix_order_item_modifiers_order_item_id', 'order_item_modifiers', ['order_item_id'])
    op.create_index('ix_payments_order_id', 'payments', ['order_id'])


def downgrade() -> None:
    op.drop_table('payments')
    op.drop_table('order_number_sequences')
    op.drop_table('order_item_modifiers')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('tables')
    op.drop_table('product_modifier_groups')
    op.drop_table('modifier_options')
    op.drop_table('product_modifiers')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_table('customers')
    op.drop_table('users')
    op.drop_table('organizations')
