"""initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

Creates all tables for the vendor bidding platform. Enumerated values
(roles, statuses, units) are stored as strings.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Users
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.JSON()),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_documents', sa.JSON()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime(timezone=True)),
    )

    op.create_table('user_reviews',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('reviewer_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Requirements (awarded_bid_id FK is added once bids exists)
    op.create_table('requirements',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('budget_min', sa.Float(), nullable=False),
        sa.Column('budget_max', sa.Float(), nullable=False),
        sa.Column('delivery_address', sa.String(500)),
        sa.Column('delivery_city', sa.String(100)),
        sa.Column('delivery_state', sa.String(100)),
        sa.Column('delivery_pincode', sa.String(20)),
        sa.Column('delivery_locality', sa.String(255), index=True),
        sa.Column('delivery_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('bidding_end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='open', index=True),
        sa.Column('total_bids', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('awarded_to_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('awarded_bid_id', sa.Integer(), nullable=True),
        sa.Column('tags', sa.JSON()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )

    op.create_table('requirement_materials',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('requirement_id', sa.Integer(), sa.ForeignKey('requirements.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(255), nullable=False, index=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('specifications', sa.Text()),
    )

    # Bids
    op.create_table('bids',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('requirement_id', sa.Integer(), sa.ForeignKey('requirements.id'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('delivery_time', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('photos', sa.JSON()),
        sa.Column('terms', sa.JSON()),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending', index=True),
        sa.Column('is_winning', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('requirement_id', 'supplier_id', name='uq_bid_requirement_supplier'),
    )
    op.create_index('ix_bids_requirement_amount', 'bids', ['requirement_id', 'amount'])

    with op.batch_alter_table('requirements') as batch_op:
        batch_op.create_foreign_key('fk_requirements_awarded_bid', 'bids', ['awarded_bid_id'], ['id'])

    op.create_table('bid_materials',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('bid_id', sa.Integer(), sa.ForeignKey('bids.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('quality', sa.String(20), nullable=False, server_default='standard'),
    )

    op.create_table('bid_reviews',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('bid_id', sa.Integer(), sa.ForeignKey('bids.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('reviewer_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Analytics
    op.create_table('vendor_analytics',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('users.id'), unique=True, nullable=False),
        sa.Column('insights', sa.JSON()),
        sa.Column('last_updated', sa.DateTime(timezone=True)),
    )

    op.create_table('sales_entries',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('analytics_id', sa.Integer(), sa.ForeignKey('vendor_analytics.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('revenue', sa.Float(), nullable=False),
        sa.Column('cost', sa.Float(), nullable=False),
        sa.Column('profit', sa.Float(), nullable=False),
    )

    op.create_table('material_usage_entries',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('analytics_id', sa.Integer(), sa.ForeignKey('vendor_analytics.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('material_name', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False),
        sa.Column('cost', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
    )

    # Audit log
    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(100), index=True),
        sa.Column('entity_id', sa.Integer()),
        sa.Column('details', sa.JSON()),
        sa.Column('ip_address', sa.String(50)),
    )


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign keys)
    op.drop_table('audit_logs')
    op.drop_table('material_usage_entries')
    op.drop_table('sales_entries')
    op.drop_table('vendor_analytics')
    op.drop_table('bid_reviews')
    op.drop_table('bid_materials')
    with op.batch_alter_table('requirements') as batch_op:
        batch_op.drop_constraint('fk_requirements_awarded_bid', type_='foreignkey')
    op.drop_index('ix_bids_requirement_amount', table_name='bids')
    op.drop_table('bids')
    op.drop_table('requirement_materials')
    op.drop_table('requirements')
    op.drop_table('user_reviews')
    op.drop_table('users')
