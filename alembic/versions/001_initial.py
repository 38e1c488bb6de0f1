# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


investment_type = sa.Enum('bond', 'fd', 'mf', 'etf', 'other', name='investment_type')
risk_level = sa.Enum('low', 'moderate', 'high', name='risk_level')
compound_frequency = sa.Enum('daily', 'monthly', 'quarterly', 'annually', name='compound_frequency')
investment_status = sa.Enum('active', 'matured', 'cancelled', name='investment_status')
ledger_transaction_type = sa.Enum('investment', 'refund', 'compensation', name='ledger_transaction_type')
ledger_direction = sa.Enum('debit', 'credit', name='ledger_direction')


def upgrade():
    # Create users table
    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=True),
        sa.Column('account_balance', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('account_balance >= 0', name='ck_users_balance_non_negative'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Create investment_products table
    op.create_table('investment_products',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('investment_type', investment_type, nullable=False),
        sa.Column('tenure_months', sa.Integer(), nullable=False),
        sa.Column('annual_yield', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('risk_level', risk_level, nullable=False),
        sa.Column('min_investment', sa.Numeric(precision=15, scale=2), nullable=False, server_default='1000'),
        sa.Column('max_investment', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('compound_frequency', compound_frequency, nullable=False, server_default='annually'),
        sa.Column('early_withdrawal_penalty', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_investment_products_investment_type', 'investment_products', ['investment_type'])
    op.create_index('ix_investment_products_risk_level', 'investment_products', ['risk_level'])
    op.create_index('ix_investment_products_is_active', 'investment_products', ['is_active'])

    # Create investments table
    op.create_table('investments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('tenure_months', sa.Integer(), nullable=False),
        sa.Column('expected_return', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('current_value', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('maturity_date', sa.Date(), nullable=False),
        sa.Column('status', investment_status, nullable=False, server_default='active'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('auto_reinvest', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('matured_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['product_id'], ['investment_products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='ck_investments_amount_positive'),
    )
    op.create_index('ix_investments_user_id', 'investments', ['user_id'])
    op.create_index('ix_investments_product_id', 'investments', ['product_id'])
    op.create_index('ix_investments_status', 'investments', ['status'])
    op.create_index('ix_investments_user_status', 'investments', ['user_id', 'status'])
    op.create_index('ix_investments_maturity', 'investments', ['status', 'maturity_date'])

    # Create balance_transactions table
    op.create_table('balance_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('investment_id', sa.String(length=36), nullable=True),
        sa.Column('transaction_type', ledger_transaction_type, nullable=False),
        sa.Column('direction', ledger_direction, nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('balance_after', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_balance_transactions_user_id', 'balance_transactions', ['user_id'])
    op.create_index('ix_balance_transactions_investment_id', 'balance_transactions', ['investment_id'])
    op.create_index(
        'ix_balance_transactions_user_created', 'balance_transactions', ['user_id', 'created_at']
    )


def downgrade():
    op.drop_table('balance_transactions')
    op.drop_table('investments')
    op.drop_table('investment_products')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (
        ledger_direction,
        ledger_transaction_type,
        investment_status,
        compound_frequency,
        risk_level,
        investment_type,
    ):
        enum_type.drop(bind, checkfirst=True)
