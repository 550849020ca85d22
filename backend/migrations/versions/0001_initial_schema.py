"""Initial schema: users, products, orders, logistics, product change requests

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('avatar', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('MANUFACTURER', 'SUPPLIER', 'PLATFORM', 'GENERAL_MANAGER')", name='user_role_check'),
        sa.CheckConstraint("status IN ('ACTIVE', 'DISABLED')", name='user_status_check'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone', 'role', name='unique_phone_per_role')
    )

    op.create_table('products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('supplier_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('material', sa.String(length=200), nullable=False),
        sa.Column('spec', sa.String(length=200), nullable=False),
        sa.Column('image', sa.Text(), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('units_per_package', sa.Integer(), nullable=True),
        sa.Column('package_count', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='stock_non_negative_check'),
        sa.CheckConstraint('units_per_package IS NULL OR units_per_package >= 1', name='units_per_package_check'),
        sa.CheckConstraint('package_count IS NULL OR package_count >= 0', name='package_count_check'),
        sa.CheckConstraint("status IN ('ACTIVE', 'INACTIVE', 'DELISTED')", name='product_status_check'),
        sa.ForeignKeyConstraint(['supplier_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_products_supplier_status', 'products', ['supplier_id', 'status'])

    op.create_table('orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('manufacturer_id', sa.Uuid(), nullable=False),
        sa.Column('manufacturer_name', sa.String(length=200), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('request_date', sa.Date(), nullable=False),
        sa.Column('expected_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('reject_reason', sa.Text(), nullable=True),
        sa.Column('approved_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('design_file_url', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('quantity > 0', name='quantity_positive_check'),
        sa.CheckConstraint("status IN ('PENDING', 'APPROVED', 'REJECTED', 'SHIPPED', 'COMPLETED')", name='order_status_check'),
        sa.ForeignKeyConstraint(['manufacturer_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('logistics',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('company', sa.String(length=100), nullable=False),
        sa.Column('tracking_number', sa.String(length=100), nullable=False),
        sa.Column('shipped_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('estimated_arrival_date', sa.Date(), nullable=False),
        sa.Column('batch_code', sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id')
    )

    op.create_table('product_change_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=True),
        sa.Column('supplier_id', sa.Uuid(), nullable=False),
        sa.Column('change_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('pending_changes', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=False),
        sa.Column('reviewed_by', sa.Uuid(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reject_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("change_type IN ('CREATE', 'UPDATE')", name='change_type_check'),
        sa.CheckConstraint("status IN ('PENDING', 'APPROVED', 'REJECTED')", name='change_request_status_check'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_change_requests_supplier_status', 'product_change_requests', ['supplier_id', 'status'])


def downgrade():
    op.drop_index('ix_change_requests_supplier_status', table_name='product_change_requests')
    op.drop_table('product_change_requests')
    op.drop_table('logistics')
    op.drop_table('orders')
    op.drop_index('ix_products_supplier_status', table_name='products')
    op.drop_table('products')
    op.drop_table('users')
