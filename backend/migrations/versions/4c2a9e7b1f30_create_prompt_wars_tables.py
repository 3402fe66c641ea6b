"""create game, team, submission, score, challenge and twist tables

Revision ID: 4c2a9e7b1f30
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2a9e7b1f30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_code', sa.String(length=8), nullable=True),
        sa.Column('rounds', sa.Integer(), nullable=False),
        sa.Column('current_round', sa.Integer(), nullable=False),
        sa.Column('mode', sa.String(length=32), nullable=False),
        sa.Column('round_length', sa.Integer(), nullable=False),
        sa.Column('twist_enabled', sa.Boolean(), nullable=False),
        sa.Column('phase', sa.String(length=16), nullable=False),
        sa.Column('time_left', sa.Integer(), nullable=False),
        sa.Column('is_running', sa.Boolean(), nullable=False),
        sa.Column('current_challenge', sa.Text(), nullable=True),
        sa.Column('current_twist', sa.Text(), nullable=True),
        sa.Column('finalized_round', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_game_game_code'), 'game', ['game_code'], unique=True)

    op.create_table(
        'team',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_team_game_id'), 'team', ['game_id'], unique=False)

    for table, columns in (
        ('submission', [sa.Column('prompt', sa.Text(), nullable=False),
                        sa.Column('output', sa.Text(), nullable=False),
                        sa.Column('notes', sa.Text(), nullable=False)]),
        ('score', [sa.Column('creativity', sa.Integer(), nullable=False),
                   sa.Column('clarity', sa.Integer(), nullable=False),
                   sa.Column('power', sa.Integer(), nullable=False)]),
    ):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('game_id', sa.Integer(), nullable=False),
            sa.Column('team_id', sa.Integer(), nullable=False),
            sa.Column('round', sa.Integer(), nullable=False),
            *columns,
            sa.ForeignKeyConstraint(['game_id'], ['game.id']),
            sa.ForeignKeyConstraint(['team_id'], ['team.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('team_id', 'round', name=f'uq_{table}_team_round'),
        )
        op.create_index(op.f(f'ix_{table}_game_id'), table, ['game_id'], unique=False)

    op.create_table(
        'challenge',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('mode', sa.String(length=32), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_challenge_game_id'), 'challenge', ['game_id'], unique=False)

    op.create_table(
        'twist',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_twist_game_id'), 'twist', ['game_id'], unique=False)


def downgrade():
    # Children before parents
    for table in ('twist', 'challenge', 'score', 'submission', 'team'):
        op.drop_index(op.f(f'ix_{table}_game_id'), table_name=table)
        op.drop_table(table)
    op.drop_index(op.f('ix_game_game_code'), table_name='game')
    op.drop_table('game')
