"""create user profile, auth_session and global_stats tables

Revision ID: 5c2e8a91d7b4
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e8a91d7b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('subject', sa.String(length=255), nullable=False),
            sa.Column('display_name', sa.String(length=64), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('total_profit', sa.Float(), nullable=False, server_default='0'),
            sa.Column('games_played', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('best_session', sa.Float(), nullable=True),
            sa.Column('worst_session', sa.Float(), nullable=True),
            sa.Column('total_buy_ins_amount', sa.Float(), nullable=False, server_default='0'),
            sa.Column('total_rebuys_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_played', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_user_subject', 'user', ['subject'], unique=True)

    if 'auth_session' not in existing_tables:
        op.create_table(
            'auth_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('token', sa.String(length=128), nullable=False),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_auth_session_token', 'auth_session', ['token'], unique=True)

    if 'global_stats' not in existing_tables:
        op.create_table(
            'global_stats',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('total_rooms_created', sa.Integer(), nullable=False, server_default='0'),
        )


def downgrade():
    op.drop_table('global_stats')
    op.drop_index('ix_auth_session_token', table_name='auth_session')
    op.drop_table('auth_session')
    op.drop_index('ix_user_subject', table_name='user')
    op.drop_table('user')
