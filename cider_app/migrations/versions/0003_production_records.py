"""fermentation logs, tasting notes and packaging schedules

Revision ID: 0003_production_records
Revises: 0002_batches
Create Date: 2026-09-21 14:10:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0003_production_records'
down_revision = '0002_batches'
branch_labels = None
depends_on = None


def _batch_fk():
    return sa.Column('batch_id', sa.Integer(), sa.ForeignKey('batches.id', ondelete='CASCADE'), nullable=False)


def _created_by():
    return sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)


def upgrade():
    op.create_table(
        'fermentation_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        _batch_fk(),
        sa.Column('recorded_at', sa.Date(), nullable=False),
        sa.Column('temperature', sa.Numeric(5, 2), nullable=True),
        sa.Column('specific_gravity', sa.Numeric(6, 3), nullable=True),
        sa.Column('ph', sa.Numeric(4, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_by(),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_fermentation_logs_batch_id', 'fermentation_logs', ['batch_id'], unique=False)

    op.create_table(
        'tasting_notes',
        sa.Column('id', sa.Integer(), primary_key=True),
        _batch_fk(),
        sa.Column('recorded_at', sa.Date(), nullable=False),
        sa.Column('sweetness', sa.Integer(), nullable=True),
        sa.Column('acidity', sa.Integer(), nullable=True),
        sa.Column('body', sa.Integer(), nullable=True),
        sa.Column('aroma', sa.Text(), nullable=True),
        sa.Column('flavor', sa.Text(), nullable=True),
        sa.Column('finish', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_by(),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('sweetness BETWEEN 1 AND 5', name='ck_tasting_notes_sweetness'),
        sa.CheckConstraint('acidity BETWEEN 1 AND 5', name='ck_tasting_notes_acidity'),
        sa.CheckConstraint('body BETWEEN 1 AND 5', name='ck_tasting_notes_body'),
    )
    op.create_index('ix_tasting_notes_batch_id', 'tasting_notes', ['batch_id'], unique=False)

    op.create_table(
        'packaging_schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        _batch_fk(),
        sa.Column('target_date', sa.Date(), nullable=False),
        sa.Column('format', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(), nullable=True),
        _created_by(),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "format IN ('bottle', 'can', 'keg', 'bag-in-box', 'growler', 'other')",
            name='ck_packaging_schedules_format',
        ),
        sa.CheckConstraint('quantity >= 0', name='ck_packaging_schedules_quantity'),
    )
    op.create_index('ix_packaging_schedules_batch_id', 'packaging_schedules', ['batch_id'], unique=False)
    op.create_index('ix_packaging_schedules_target_date', 'packaging_schedules', ['target_date'], unique=False)


def downgrade():
    op.drop_index('ix_packaging_schedules_target_date', table_name='packaging_schedules')
    op.drop_index('ix_packaging_schedules_batch_id', table_name='packaging_schedules')
    op.drop_table('packaging_schedules')
    op.drop_index('ix_tasting_notes_batch_id', table_name='tasting_notes')
    op.drop_table('tasting_notes')
    op.drop_index('ix_fermentation_logs_batch_id', table_name='fermentation_logs')
    op.drop_table('fermentation_logs')
