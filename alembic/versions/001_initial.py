"""Initial migration

Revision ID: 001
Revises:
Create Date: 2025-01-15 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create restaurants table
    op.create_table(
        'restaurants',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('phone', sa.String(20)),
        sa.Column('address', sa.String(500)),
        sa.Column('city', sa.String(100)),
        sa.Column('state', sa.String(50)),
        sa.Column('zip_code', sa.String(20)),
        sa.Column('website', sa.String(500)),
        sa.Column('description', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('restaurant_id', sa.String(64), sa.ForeignKey('restaurants.id')),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(16), nullable=False, server_default='STAFF'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_restaurant_id', 'users', ['restaurant_id'])

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('restaurant_id', sa.String(64), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('customer_name', sa.String(100), nullable=False),
        sa.Column('customer_email', sa.String(255)),
        sa.Column('customer_phone', sa.String(20)),
        sa.Column('order_details', sa.Text()),
        sa.Column('total_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('order_type', sa.String(20), nullable=False, server_default='TAKEOUT'),
        sa.Column('status', sa.String(32), nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text()),
        sa.Column('special_requests', sa.Text()),
        sa.Column('delivery_address', sa.Text()),
        sa.Column('driver_name', sa.String(100)),
        sa.Column('delivery_company', sa.String(100)),
        sa.Column('estimated_time', sa.DateTime()),
        sa.Column('actual_time', sa.DateTime()),
        sa.Column('created_by_id', sa.String(64), sa.ForeignKey('users.id')),
        sa.Column('updated_by_id', sa.String(64), sa.ForeignKey('users.id')),
        sa.Column('preparing_at', sa.DateTime()),
        sa.Column('ready_at', sa.DateTime()),
        sa.Column('out_for_delivery_at', sa.DateTime()),
        sa.Column('picked_up_at', sa.DateTime()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('restaurant_id', 'order_number', name='uq_orders_restaurant_order_number'),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'])
    op.create_index('ix_orders_restaurant_id', 'orders', ['restaurant_id'])
    op.create_index('ix_orders_created_by_id', 'orders', ['created_by_id'])
    op.create_index('ix_orders_updated_by_id', 'orders', ['updated_by_id'])

    # Create order_items table
    op.create_table(
        'order_items',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('order_id', sa.String(64), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('notes', sa.String(200)),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])


def downgrade() -> None:
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('users')
    op.drop_table('restaurants')
