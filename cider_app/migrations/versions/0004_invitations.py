"""create invitations table

Revision ID: 0004_invitations
Revises: 0003_production_records
Create Date: 2026-10-02 11:05:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = '0004_invitations'
down_revision = '0003_production_records'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'invitations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'organization_id', sa.Integer(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('invited_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("role IN ('admin', 'member')", name='ck_invitations_role'),
    )
    op.create_index('ix_invitations_organization_id', 'invitations', ['organization_id'], unique=False)
    op.create_index('ix_invitations_email', 'invitations', ['email'], unique=False)


def downgrade():
    op.drop_index('ix_invitations_email', table_name='invitations')
    op.drop_index('ix_invitations_organization_id', table_name='invitations')
    op.drop_table('invitations')
