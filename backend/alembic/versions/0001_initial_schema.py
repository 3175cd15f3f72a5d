"""Initial schema - portfolios, currency ledgers and transactions

Revision ID: 0001
Revises: None
Create Date: 2026-10-18

Each portfolio is bound to exactly one currency ledger. Ledger entries
derived from a trade reference it and go away with it.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


currency_transaction_type = sa.Enum(
    'EXCHANGE_BUY', 'EXCHANGE_SELL', 'DEPOSIT', 'WITHDRAW', 'INTEREST', 'SPEND',
    'INITIAL_BALANCE', 'OTHER_INCOME', 'OTHER_EXPENSE',
    name='currencytransactiontype',
)
stock_transaction_type = sa.Enum('BUY', 'SELL', name='stocktransactiontype')
stock_market = sa.Enum('US', 'TW', 'UK', 'EU', name='stockmarket')
balance_action = sa.Enum('NONE', 'MARGIN', name='balanceaction')


def upgrade() -> None:
    """Create all tables."""

    # ===========================================
    # 1. CURRENCY_LEDGERS TABLE
    # ===========================================
    op.create_table(
        'currency_ledgers',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), nullable=False, index=True),
        sa.Column('currency_code', sa.String(3), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('home_currency', sa.String(3), nullable=False, server_default='TWD'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # ===========================================
    # 2. PORTFOLIOS TABLE
    # ===========================================
    op.create_table(
        'portfolios',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.String(1000), nullable=True),
        sa.Column('base_currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('home_currency', sa.String(3), nullable=False, server_default='TWD'),
        sa.Column(
            'bound_currency_ledger_id', sa.Integer(),
            sa.ForeignKey('currency_ledgers.id', ondelete='RESTRICT'),
            nullable=False, unique=True,
        ),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # ===========================================
    # 3. STOCK_TRANSACTIONS TABLE
    # ===========================================
    op.create_table(
        'stock_transactions',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column(
            'portfolio_id', sa.Integer(),
            sa.ForeignKey('portfolios.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('transaction_date', sa.Date(), nullable=False, index=True),
        sa.Column('ticker', sa.String(20), nullable=False, index=True),
        sa.Column('transaction_type', stock_transaction_type, nullable=False),
        sa.Column('shares', sa.Numeric(18, 4), nullable=False),
        sa.Column('price_per_share', sa.Numeric(18, 4), nullable=False),
        sa.Column('fees', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('exchange_rate', sa.Numeric(18, 6), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('market', stock_market, nullable=False, server_default='US'),
        sa.Column('balance_action', balance_action, nullable=False, server_default='NONE'),
        sa.Column('realized_pnl_home', sa.Numeric(18, 2), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # ===========================================
    # 4. CURRENCY_TRANSACTIONS TABLE
    # ===========================================
    op.create_table(
        'currency_transactions',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column(
            'currency_ledger_id', sa.Integer(),
            sa.ForeignKey('currency_ledgers.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('transaction_date', sa.Date(), nullable=False, index=True),
        sa.Column('transaction_type', currency_transaction_type, nullable=False),
        sa.Column('foreign_amount', sa.Numeric(18, 4), nullable=False),
        sa.Column('home_amount', sa.Numeric(18, 2), nullable=True),
        sa.Column('exchange_rate', sa.Numeric(18, 6), nullable=True),
        sa.Column(
            'related_stock_transaction_id', sa.Integer(),
            sa.ForeignKey('stock_transactions.id', ondelete='CASCADE'),
            nullable=True, index=True,
        ),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table('currency_transactions')
    op.drop_table('stock_transactions')
    op.drop_table('portfolios')
    op.drop_table('currency_ledgers')

    bind = op.get_bind()
    for enum in (currency_transaction_type, stock_transaction_type, stock_market, balance_action):
        enum.drop(bind, checkfirst=True)
