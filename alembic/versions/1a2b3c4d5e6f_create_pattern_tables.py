"""create_pattern_tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19

Adds:
- users and sessions tables (identity only)
- flare_entries table (journal entries read by the pattern engine)
- pattern_runs table (one row per pattern learning run)
- correlations table (discovered patterns, unique by natural key)
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sessions_token'), 'sessions', ['token'], unique=True)

    op.create_table(
        'flare_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('entry_type', sa.String(32), nullable=False),
        sa.Column('severity', sa.String(16), nullable=True),
        sa.Column('symptoms', postgresql.JSONB(), nullable=True),
        sa.Column('triggers', postgresql.JSONB(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('environmental_data', postgresql.JSONB(), nullable=True),
        sa.Column('physiological_data', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_flare_entries_user_timestamp', 'flare_entries', ['user_id', 'timestamp'])
    op.create_index('idx_flare_entries_entry_type', 'flare_entries', ['entry_type'])

    op.create_table(
        'pattern_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='fetching'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('entries_analyzed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('outcomes_analyzed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correlations_found', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('persisted_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_pattern_runs_id'), 'pattern_runs', ['id'])
    op.create_index(op.f('ix_pattern_runs_user_id'), 'pattern_runs', ['user_id'])
    op.create_index(op.f('ix_pattern_runs_started_at'), 'pattern_runs', ['started_at'])

    op.create_table(
        'correlations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('trigger_type', sa.String(32), nullable=False),
        sa.Column('trigger_value', sa.String(255), nullable=False),
        sa.Column('outcome_type', sa.String(32), nullable=False),
        sa.Column('outcome_value', sa.String(255), nullable=False),
        sa.Column('occurrence_count', sa.Integer(), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('avg_delay_minutes', sa.Float(), nullable=False, server_default='0'),
        sa.Column('last_occurred', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_run_id', sa.Integer(), nullable=True),
        sa.Column('last_computed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['last_run_id'], ['pattern_runs.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'trigger_type', 'trigger_value', 'outcome_type', 'outcome_value',
            name='uq_correlations_natural_key',
        ),
    )
    op.create_index(op.f('ix_correlations_id'), 'correlations', ['id'])
    op.create_index(op.f('ix_correlations_user_id'), 'correlations', ['user_id'])
    op.create_index(op.f('ix_correlations_last_run_id'), 'correlations', ['last_run_id'])


def downgrade() -> None:
    op.drop_table('correlations')
    op.drop_table('pattern_runs')
    op.drop_table('flare_entries')
    op.drop_index(op.f('ix_sessions_token'), table_name='sessions')
    op.drop_table('sessions')
    op.drop_table('users')
