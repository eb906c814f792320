"""create vote_record and leaderboard_entry

Revision ID: 5a7c1d9e2b40
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a7c1d9e2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    tables = set(insp.get_table_names())
    if 'vote_record' not in tables:
        op.create_table(
            'vote_record',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('category', sa.String(length=16), nullable=False),
            sa.Column('username', sa.String(length=16), nullable=False),
            sa.Column('ip', sa.String(length=64), nullable=False),
            sa.Column('timestamp', sa.BigInteger(), nullable=False),
            sa.UniqueConstraint('category', 'username', name='uq_vote_record_category_username'),
        )
        op.create_index('ix_vote_record_category', 'vote_record', ['category'])
    if 'leaderboard_entry' not in tables:
        op.create_table(
            'leaderboard_entry',
            sa.Column('username', sa.String(length=16), primary_key=True),
            sa.Column('total_votes', sa.Integer(), nullable=False, server_default='0'),
        )


def downgrade():
    op.drop_table('leaderboard_entry')
    op.drop_index('ix_vote_record_category', table_name='vote_record')
    op.drop_table('vote_record')
