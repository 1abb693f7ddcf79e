"""create game_session, player, player_score and round tables

Revision ID: 3b7c1e9a2f10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b7c1e9a2f10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('current_round', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('game_type', sa.String(length=32), nullable=False, server_default='FREE_FORM'),
            sa.Column('timestamp', sa.Float(), nullable=False),
        )

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.String(length=64), primary_key=True),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('current_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('round_number', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('seq', sa.Integer(), nullable=False, server_default='0'),
        )
        op.create_index('ix_player_round_number', 'player', ['round_number'])

    # History rows have no FK to player: deleting a player keeps its history
    if 'player_score' not in existing_tables:
        op.create_table(
            'player_score',
            sa.Column('player_id', sa.String(length=64), nullable=False),
            sa.Column('round_number', sa.Integer(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('timestamp', sa.Float(), nullable=False),
            sa.PrimaryKeyConstraint('player_id', 'round_number'),
        )

    if 'round' not in existing_tables:
        op.create_table(
            'round',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('round_number', sa.Integer(), nullable=False),
            sa.Column('game_type', sa.String(length=32), nullable=False),
            sa.Column('timestamp', sa.Float(), nullable=False),
        )


def downgrade():
    op.drop_table('round')
    op.drop_table('player_score')
    op.drop_index('ix_player_round_number', table_name='player')
    op.drop_table('player')
    op.drop_table('game_session')
