"""user tokens

Revision ID: 001
Revises: 
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Partner-bank OAuth tokens; revoked rows stay with is_deleted = 1
    op.create_table(
        'user_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('access_token', sa.String(length=2048), nullable=False),
        sa.Column('token_type', sa.String(length=32), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('refresh_token', sa.String(length=2048), nullable=True),
        sa.Column('scope', sa.String(length=512), nullable=True),
        sa.Column('bank_id', sa.String(length=16), nullable=True),
        sa.Column('mobile_number', sa.String(length=20), nullable=False),
        sa.Column('channel', sa.String(length=32), nullable=True),
        sa.Column('creation_date', sa.DateTime(), nullable=False),
        sa.Column('authorities', sa.JSON(), nullable=True),
        sa.Column('deposits', sa.JSON(), nullable=True),
        sa.Column('jti', sa.String(length=128), nullable=True),
        sa.Column('csrf_token', sa.String(length=256), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_tokens_mobile_number'), 'user_tokens', ['mobile_number'], unique=False)
    op.create_index(op.f('ix_user_tokens_is_deleted'), 'user_tokens', ['is_deleted'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_user_tokens_is_deleted'), table_name='user_tokens')
    op.drop_index(op.f('ix_user_tokens_mobile_number'), table_name='user_tokens')
    op.drop_table('user_tokens')
