"""create_xero_sync_tables

Revision ID: 4c2f8a1d9e07
Revises:
Create Date: 2026-03-01 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '4c2f8a1d9e07'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Apply migration: create_xero_sync_tables"""
    op.create_table('businesses',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('owner_id', sa.UUID(), nullable=True),
        sa.Column('assigned_coach_id', sa.UUID(), nullable=True),
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_businesses_owner_id', 'businesses', ['owner_id'], unique=False)
    op.create_index('ix_businesses_assigned_coach_id', 'businesses', ['assigned_coach_id'], unique=False)

    # OAuth connections (tokens are Fernet-encrypted)
    op.create_table('xero_connections',
        sa.Column('business_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=True),
        sa.Column('tenant_id', sa.String(length=255), nullable=False, comment="Xero's internal organization identifier"),
        sa.Column('tenant_name', sa.String(length=255), nullable=True, comment='Xero organization/company name'),
        sa.Column('access_token', sa.Text(), nullable=False, comment='Encrypted access token'),
        sa.Column('refresh_token', sa.Text(), nullable=False, comment='Encrypted refresh token'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='When access_token expires'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('token_refreshing_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_xero_connections_business_id', 'xero_connections', ['business_id'], unique=False)
    op.create_index('ix_xero_connections_is_active', 'xero_connections', ['is_active'], unique=False)

    # Normalized P&L lines, replaced wholesale on every sync
    op.create_table('xero_pl_lines',
        sa.Column('business_id', sa.UUID(), nullable=False),
        sa.Column('account_name', sa.String(length=255), nullable=False),
        sa.Column('account_type', sa.String(length=20), nullable=False),
        sa.Column('section', sa.String(length=255), nullable=False, comment='Xero report section title'),
        sa.Column('monthly_values', postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment='Month key (YYYY-MM) to amount'),
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_xero_pl_lines_business_id', 'xero_pl_lines', ['business_id'], unique=False)


def downgrade() -> None:
    """Revert migration: create_xero_sync_tables"""
    op.drop_index('ix_xero_pl_lines_business_id', table_name='xero_pl_lines')
    op.drop_table('xero_pl_lines')

    op.drop_index('ix_xero_connections_is_active', table_name='xero_connections')
    op.drop_index('ix_xero_connections_business_id', table_name='xero_connections')
    op.drop_table('xero_connections')

    op.drop_index('ix_businesses_assigned_coach_id', table_name='businesses')
    op.drop_index('ix_businesses_owner_id', table_name='businesses')
    op.drop_table('businesses')
