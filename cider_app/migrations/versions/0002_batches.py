"""create batches table

Revision ID: 0002_batches
Revises: 0001_initial
Create Date: 2026-09-16 09:30:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002_batches'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'batches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'organization_id', sa.Integer(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('variety', sa.String(length=200), nullable=False),
        sa.Column('volume', sa.Numeric(10, 2), nullable=False),
        sa.Column('current_stage', sa.String(length=16), nullable=False, server_default='pressing'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "current_stage IN ('pressing', 'fermenting', 'aging', 'bottled')", name='ck_batches_current_stage'
        ),
        sa.CheckConstraint('volume > 0', name='ck_batches_volume_positive'),
    )
    op.create_index('ix_batches_organization_id', 'batches', ['organization_id'], unique=False)
    op.create_index('ix_batches_created_by', 'batches', ['created_by'], unique=False)


def downgrade():
    op.drop_index('ix_batches_created_by', table_name='batches')
    op.drop_index('ix_batches_organization_id', table_name='batches')
    op.drop_table('batches')
