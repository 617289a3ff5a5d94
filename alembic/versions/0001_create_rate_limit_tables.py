"""Create rate limit rule and API log tables

Revision ID: 0001_create_rate_limit_tables
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_create_rate_limit_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create rate_limit_rules and api_logs."""
    op.create_table(
        'rate_limit_rules',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=255), nullable=False, server_default='All'),
        sa.Column('ip_address', sa.String(length=64), nullable=False, server_default='All'),
        sa.Column('max_requests', sa.Integer(), nullable=False),
        sa.Column('rule_type', sa.String(length=16), nullable=False, server_default='block'),
        sa.Column('block_duration_seconds', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_rate_limit_rules_user_id', 'rate_limit_rules', ['user_id'], unique=False)

    op.create_table(
        'api_logs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('http_method', sa.String(length=16), nullable=False),
        sa.Column('path', sa.String(length=2048), nullable=False),
        sa.Column('controller', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('stop_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_ms', sa.Float(), nullable=False),
        sa.Column('outcome', sa.String(length=16), nullable=False, server_default='allowed'),
        sa.Column('message', sa.String(length=512), nullable=True),
    )
    op.create_index('ix_api_logs_user_id', 'api_logs', ['user_id'], unique=False)
    op.create_index('ix_api_logs_start_time', 'api_logs', ['start_time'], unique=False)


def downgrade() -> None:
    """Drop api_logs and rate_limit_rules."""
    op.drop_index('ix_api_logs_start_time', table_name='api_logs')
    op.drop_index('ix_api_logs_user_id', table_name='api_logs')
    op.drop_table('api_logs')
    op.drop_index('ix_rate_limit_rules_user_id', table_name='rate_limit_rules')
    op.drop_table('rate_limit_rules')
