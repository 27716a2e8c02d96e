"""Create transactions, strategies and trading_history tables

Revision ID: 4f1c2a9d7e10
Revises:
Create Date: 2024-12-02 10:12:41.530114

"""
from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

# revision identifiers, used by Alembic.
revision: str = '4f1c2a9d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the transaction ledger, the strategy tags and the logged trades
    that may reference a strategy.
    """
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Numeric(24, 8), nullable=False),
        sa.Column('price_per_unit', sa.Numeric(24, 8), nullable=False),
        sa.Column('type', sa.String(length=4), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'])
    op.create_index('ix_transactions_name', 'transactions', ['name'])
    op.create_index('ix_transactions_date', 'transactions', ['date'])

    op.create_table(
        'strategies',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_references', sa.Text(), nullable=True),
    )
    op.create_index('ix_strategies_id', 'strategies', ['id'])

    op.create_table(
        'trading_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('open_date', sa.String(length=50), nullable=False),
        sa.Column('close_date', sa.String(length=50), nullable=True),
        sa.Column('open_price', sa.Numeric(18, 8), nullable=False),
        sa.Column('close_price', sa.Numeric(18, 8), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('source', sa.String(length=255), nullable=True),
        sa.Column('order_type', sa.String(length=16), nullable=True),
        sa.Column('direction', sa.String(length=5), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('volume', sa.Float(), nullable=False),
        sa.Column(
            'strategy_id',
            sa.Integer(),
            sa.ForeignKey('strategies.id', ondelete='SET NULL'),
            nullable=True
        ),
        sa.Column('reference_images', sa.Text(), nullable=True),
    )
    op.create_index('ix_trading_history_id', 'trading_history', ['id'])
    op.create_index('ix_trading_history_name', 'trading_history', ['name'])


def downgrade() -> None:
    """
    Drop the three tables, logged trades first since they reference strategies.
    """
    op.drop_index('ix_trading_history_name', table_name='trading_history')
    op.drop_index('ix_trading_history_id', table_name='trading_history')
    op.drop_table('trading_history')

    op.drop_index('ix_strategies_id', table_name='strategies')
    op.drop_table('strategies')

    op.drop_index('ix_transactions_date', table_name='transactions')
    op.drop_index('ix_transactions_name', table_name='transactions')
    op.drop_index('ix_transactions_id', table_name='transactions')
    op.drop_table('transactions')
