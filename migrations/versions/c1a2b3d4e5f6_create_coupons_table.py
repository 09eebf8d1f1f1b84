"""Create coupons table

Revision ID: c1a2b3d4e5f6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c1a2b3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'coupons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('created_date', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('used_date', sa.DateTime(), nullable=True),
        sa.Column('scratched_date', sa.DateTime(), nullable=True),
        sa.Column('employee_code', sa.String(length=100), nullable=True),
        sa.Column('store_location', sa.String(length=100), nullable=True),
        sa.Column('order_reference', sa.String(length=100), nullable=True),
        sa.Column('is_scratched', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('shopify_discount_id', sa.String(length=255), nullable=True),
        sa.Column('shopify_synced', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('shopify_status', sa.String(length=20), nullable=False, server_default='active'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('coupons', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_coupons_code'), ['code'], unique=True)
        batch_op.create_index(batch_op.f('ix_coupons_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_coupons_shopify_discount_id'), ['shopify_discount_id'], unique=False)


def downgrade():
    with op.batch_alter_table('coupons', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_coupons_shopify_discount_id'))
        batch_op.drop_index(batch_op.f('ix_coupons_status'))
        batch_op.drop_index(batch_op.f('ix_coupons_code'))

    op.drop_table('coupons')
