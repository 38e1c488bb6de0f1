"""
Database Models (SQLAlchemy ORM)
Investments are never hard-deleted; balance_transactions is insert-only
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime,
    Boolean, ForeignKey, Text, Enum as SQLEnum, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
import enum

from app.infrastructure.db.database import Base
from app.utils.time import now_ist_naive


# Enums
class InvestmentStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    MATURED = "matured"
    CANCELLED = "cancelled"


class InvestmentTypeEnum(str, enum.Enum):
    BOND = "bond"
    FD = "fd"
    MF = "mf"
    ETF = "etf"
    OTHER = "other"


class RiskLevelEnum(str, enum.Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class CompoundFrequencyEnum(str, enum.Enum):
    DAILY = "daily"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class LedgerDirectionEnum(str, enum.Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class LedgerTransactionTypeEnum(str, enum.Enum):
    INVESTMENT = "investment"
    REFUND = "refund"
    COMPENSATION = "compensation"


def _values(enum_cls):
    return [member.value for member in enum_cls]


# Tables

class UserModel(Base):
    """User directory (owned elsewhere; balance mutated only by the ledger)"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=True)
    account_balance = Column(Numeric(15, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=now_ist_naive)
    updated_at = Column(DateTime, nullable=False, default=now_ist_naive)

    investments = relationship("InvestmentModel", back_populates="user")

    __table_args__ = (
        CheckConstraint("account_balance >= 0", name="ck_users_balance_non_negative"),
    )


class InvestmentProductModel(Base):
    """Product catalog (owned elsewhere)"""
    __tablename__ = "investment_products"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    investment_type = Column(
        SQLEnum(InvestmentTypeEnum, values_callable=_values, name="investment_type"),
        nullable=False,
        index=True,
    )
    tenure_months = Column(Integer, nullable=False)
    annual_yield = Column(Numeric(5, 2), nullable=False)
    risk_level = Column(
        SQLEnum(RiskLevelEnum, values_callable=_values, name="risk_level"),
        nullable=False,
        index=True,
    )
    min_investment = Column(Numeric(15, 2), nullable=False, default=1000)
    max_investment = Column(Numeric(15, 2), nullable=True)
    compound_frequency = Column(
        SQLEnum(CompoundFrequencyEnum, values_callable=_values, name="compound_frequency"),
        nullable=False,
        default=CompoundFrequencyEnum.ANNUALLY,
    )
    early_withdrawal_penalty = Column(Numeric(5, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, default=now_ist_naive)
    updated_at = Column(DateTime, nullable=False, default=now_ist_naive)

    investments = relationship("InvestmentModel", back_populates="product")


class InvestmentModel(Base):
    """Investment position - owned by the lifecycle core"""
    __tablename__ = "investments"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("investment_products.id"), nullable=False, index=True)

    amount = Column(Numeric(15, 2), nullable=False)
    tenure_months = Column(Integer, nullable=False)
    expected_return = Column(Numeric(15, 2), nullable=False)
    current_value = Column(Numeric(15, 2), nullable=False)
    maturity_date = Column(Date, nullable=False)

    status = Column(
        SQLEnum(InvestmentStatusEnum, values_callable=_values, name="investment_status"),
        nullable=False,
        default=InvestmentStatusEnum.ACTIVE,
        index=True,
    )
    notes = Column(Text, nullable=True)
    auto_reinvest = Column(Boolean, nullable=False, default=False)

    matured_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_ist_naive)
    updated_at = Column(DateTime, nullable=False, default=now_ist_naive)

    # Relationships
    user = relationship("UserModel", back_populates="investments")
    product = relationship("InvestmentProductModel", back_populates="investments")

    # Indexes
    __table_args__ = (
        Index("ix_investments_user_status", "user_id", "status"),
        Index("ix_investments_maturity", "status", "maturity_date"),
        CheckConstraint("amount > 0", name="ck_investments_amount_positive"),
    )


class BalanceTransactionModel(Base):
    """Ledger journal - one row per balance mutation - AUDIT RECORD"""
    __tablename__ = "balance_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    investment_id = Column(String(36), nullable=True, index=True)

    transaction_type = Column(
        SQLEnum(LedgerTransactionTypeEnum, values_callable=_values, name="ledger_transaction_type"),
        nullable=False,
    )
    direction = Column(
        SQLEnum(LedgerDirectionEnum, values_callable=_values, name="ledger_direction"),
        nullable=False,
    )
    amount = Column(Numeric(15, 2), nullable=False)
    balance_after = Column(Numeric(15, 2), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_ist_naive)

    __table_args__ = (
        Index("ix_balance_transactions_user_created", "user_id", "created_at"),
    )
