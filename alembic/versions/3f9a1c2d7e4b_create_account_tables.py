"""create_account_tables

Creates the credential, account info and login attempt tables.

Revision ID: 3f9a1c2d7e4b
Revises:
Create Date: 2026-10-19 10:12:41.204518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e4b'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create account tables."""
    op.create_table(
        'credentials',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('password', sa.Text(), nullable=False),
        sa.Column('first_name', sa.Text(), nullable=False),
        sa.Column('last_name', sa.Text(), nullable=False),
        sa.Column('cpf', sa.Text(), nullable=False),
        sa.Column('phone', sa.Text(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('address2', sa.Text(), nullable=False),
        sa.Column('city', sa.Text(), nullable=False),
        sa.Column('state', sa.Text(), nullable=False),
        sa.Column('zip_code', sa.Text(), nullable=False),
        sa.Column('country', sa.Text(), nullable=False),
        sa.Column('birthdate', sa.Text(), nullable=False),
        sa.Column('company', sa.Text(), nullable=False),
        sa.Column('reset_token', sa.String(), nullable=True),
        sa.Column('reset_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_credentials_id', 'credentials', ['id'])
    op.create_index('ix_credentials_email', 'credentials', ['email'], unique=True)
    op.create_index('ix_credentials_reset_token', 'credentials', ['reset_token'])

    op.create_table(
        'account_info',
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('credentials.id', ondelete='CASCADE'), primary_key=True, nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('devices', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'login_attempts',
        sa.Column('ip_address', sa.String(45), primary_key=True, nullable=False),
        sa.Column('email', sa.String(320), nullable=False, server_default=''),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('locked_until', sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    """Drop account tables."""
    op.drop_table('login_attempts')
    op.drop_table('account_info')
    op.drop_index('ix_credentials_reset_token', 'credentials')
    op.drop_index('ix_credentials_email', 'credentials')
    op.drop_index('ix_credentials_id', 'credentials')
    op.drop_table('credentials')
