"""initial schema

Revision ID: 7f3a9c1d2e4b
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '7f3a9c1d2e4b'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

master_role = sa.Enum('admin', 'director', 'master', name='masterrole')
order_status = sa.Enum('pending', 'in_progress', 'completed', 'cancelled', name='orderstatus')
item_kind = sa.Enum('labor', 'material', 'part', name='itemkind')
bonus_source = sa.Enum('allocation', 'manual', name='bonussource')


def upgrade() -> None:
    op.create_table(
        'masters',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('full_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', master_role, nullable=False, server_default='master'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('client_name', sa.String(100), nullable=False),
        sa.Column('client_phone', sa.String(20), nullable=False),
        sa.Column('car_model', sa.String(100), nullable=False),
        sa.Column('car_number', sa.String(20), nullable=False),
        sa.Column('car_year', sa.Integer(), nullable=True),
        sa.Column('problem_description', sa.Text(), nullable=True),
        sa.Column('status', order_status, nullable=False, server_default='pending'),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('masters.id'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_by', 'orders', ['created_by'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', item_kind, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Numeric(10, 3), nullable=False, server_default='1'),
        sa.Column('seller_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('masters.id'), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'order_assignments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('master_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('masters.id'), nullable=False),
        sa.Column('work_percentage', sa.Numeric(5, 2), nullable=False),
        sa.UniqueConstraint('order_id', 'master_id'),
    )
    op.create_index('ix_order_assignments_order_id', 'order_assignments', ['order_id'])
    op.create_index('ix_order_assignments_master_id', 'order_assignments', ['master_id'])

    op.create_table(
        'bonuses',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('master_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('masters.id'), nullable=False),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('percentage', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('work_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('source', bonus_source, nullable=False, server_default='manual'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_bonuses_master_id', 'bonuses', ['master_id'])
    op.create_index('ix_bonuses_order_id', 'bonuses', ['order_id'])
    op.create_index('ix_bonuses_date', 'bonuses', ['date'])
    op.create_index(
        'uq_bonuses_allocation_order_master', 'bonuses', ['order_id', 'master_id'],
        unique=True, postgresql_where=sa.text("source = 'allocation'"),
    )

    op.create_table(
        'owner_shares',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id'), nullable=False, unique=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_percentage', sa.Numeric(5, 2), nullable=False, server_default='50'),
        sa.Column('company_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('company_address', sa.String(), nullable=False, server_default=''),
        sa.Column('company_phone', sa.String(20), nullable=False, server_default=''),
        sa.Column('currency', sa.String(3), nullable=False, server_default='RUB'),
        sa.Column('work_time_start', sa.String(5), nullable=False, server_default='09:00'),
        sa.Column('work_time_end', sa.String(5), nullable=False, server_default='18:00'),
        sa.Column('working_days', postgresql.JSONB(), nullable=False, server_default='[1, 2, 3, 4, 5]'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('owner_percentage >= 0 AND owner_percentage <= 100', name='ck_settings_owner_percentage'),
    )


def downgrade() -> None:
    op.drop_table('settings')
    op.drop_table('owner_shares')
    op.drop_index('uq_bonuses_allocation_order_master', table_name='bonuses')
    op.drop_table('bonuses')
    op.drop_table('order_assignments')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('masters')
    for enum_type in (bonus_source, item_kind, order_status, master_role):
        enum_type.drop(op.get_bind(), checkfirst=True)
