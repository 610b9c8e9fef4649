"""initial schema: users, organizations and memberships

Revision ID: 0001_initial
Revises: 
Create Date: 2026-09-14 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=False)

    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('team_size', sa.String(length=16), nullable=False, server_default='small'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("team_size IN ('small', 'medium', 'large')", name='ck_organizations_team_size'),
    )
    op.create_index('ix_organizations_owner_id', 'organizations', ['owner_id'], unique=False)

    op.create_table(
        'organization_members',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column(
            'organization_id', sa.Integer(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), primary_key=True
        ),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', name='uq_organization_members_user_id'),
        sa.CheckConstraint("role IN ('owner', 'admin', 'member')", name='ck_organization_members_role'),
    )
    op.create_index(
        'ix_organization_members_organization_id', 'organization_members', ['organization_id'], unique=False
    )


def downgrade():
    op.drop_index('ix_organization_members_organization_id', table_name='organization_members')
    op.drop_table('organization_members')
    op.drop_index('ix_organizations_owner_id', table_name='organizations')
    op.drop_table('organizations')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
