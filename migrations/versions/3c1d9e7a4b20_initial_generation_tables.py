"""Initial generation tables: market snapshots, tokens, paintings

Revision ID: 3c1d9e7a4b20
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c1d9e7a4b20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'market_snapshots',
        sa.Column('hour_bucket', sa.String(length=16), nullable=False),
        sa.Column('total_market_cap_usd', sa.Float(), nullable=False),
        sa.Column('total_volume_usd', sa.Float(), nullable=False),
        sa.Column('market_cap_change_pct_24h', sa.Float(), nullable=False),
        sa.Column('btc_dominance', sa.Float(), nullable=False),
        sa.Column('eth_dominance', sa.Float(), nullable=False),
        sa.Column('active_cryptocurrencies', sa.Integer(), nullable=False),
        sa.Column('markets', sa.Integer(), nullable=False),
        sa.Column('fear_greed_index', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('hour_bucket'),
    )
    op.create_index('ix_market_snapshots_created_at', 'market_snapshots', ['created_at'])

    op.create_table(
        'tokens',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('symbol', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('categories', sa.JSON(), nullable=False),
        sa.Column('short_context', sa.Text(), nullable=True),
        sa.Column('last_selected_at', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tokens_symbol', 'tokens', ['symbol'])
    op.create_index('ix_tokens_last_selected_at', 'tokens', ['last_selected_at'])

    op.create_table(
        'paintings',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('ts', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.String(length=32), nullable=False),
        sa.Column('minute_bucket', sa.String(length=16), nullable=False),
        sa.Column('bucket', sa.String(length=16), nullable=False),
        sa.Column('params_hash', sa.String(length=8), nullable=False),
        sa.Column('seed', sa.String(length=12), nullable=False),
        sa.Column('storage_key', sa.String(length=255), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('visual_params_json', sa.Text(), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('negative', sa.Text(), nullable=False),
        sa.Column('token_id', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bucket'),
        sa.UniqueConstraint('storage_key'),
    )
    op.create_index('ix_paintings_ts_id', 'paintings', ['ts', 'id'])
    op.create_index('ix_paintings_params_hash', 'paintings', ['params_hash'])
    op.create_index('ix_paintings_seed', 'paintings', ['seed'])


def downgrade():
    op.drop_index('ix_paintings_seed', table_name='paintings')
    op.drop_index('ix_paintings_params_hash', table_name='paintings')
    op.drop_index('ix_paintings_ts_id', table_name='paintings')
    op.drop_table('paintings')
    op.drop_index('ix_tokens_last_selected_at', table_name='tokens')
    op.drop_index('ix_tokens_symbol', table_name='tokens')
    op.drop_table('tokens')
    op.drop_index('ix_market_snapshots_created_at', table_name='market_snapshots')
    op.drop_table('market_snapshots')
