"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class InvestmentStatus(str, Enum):
    """Investment lifecycle status"""
    ACTIVE = "active"
    MATURED = "matured"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not InvestmentStatus.ACTIVE


class CompoundFrequency(str, Enum):
    """How often interest is compounded per year"""
    DAILY = "daily"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]

    @classmethod
    def parse(cls, value) -> "CompoundFrequency":
        """Lenient lookup; unknown values compound annually."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ANNUALLY


_PERIODS_PER_YEAR = {
    CompoundFrequency.DAILY: 365,
    CompoundFrequency.MONTHLY: 12,
    CompoundFrequency.QUARTERLY: 4,
    CompoundFrequency.ANNUALLY: 1,
}


class RiskLevel(str, Enum):
    """Risk level of a product"""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class InvestmentType(str, Enum):
    """Product category"""
    BOND = "bond"
    FD = "fd"
    MUTUAL_FUND = "mf"
    ETF = "etf"
    OTHER = "other"


class LedgerDirection(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class LedgerTransactionType(str, Enum):
    """Why a balance moved"""
    INVESTMENT = "investment"
    REFUND = "refund"
    COMPENSATION = "compensation"


@dataclass(frozen=True)
class UserAccount:
    """User Directory view consumed by the lifecycle"""
    id: str
    account_balance: Decimal
    is_active: bool


@dataclass(frozen=True)
class InvestmentProduct:
    """Product Catalog view consumed by the lifecycle"""
    id: str
    name: str
    investment_type: InvestmentType
    min_investment: Decimal
    max_investment: Optional[Decimal]
    annual_yield: Decimal
    tenure_months: int
    compound_frequency: CompoundFrequency
    risk_level: RiskLevel
    is_active: bool
    early_withdrawal_penalty: Decimal = Decimal("0")

    def accepts_amount(self, amount: Decimal) -> bool:
        """Check min/max bounds; a null maximum is unbounded"""
        if amount < self.min_investment:
            return False
        if self.max_investment is not None and amount > self.max_investment:
            return False
        return True


@dataclass(frozen=True)
class ProductBrief:
    """Product details carried alongside a listed investment"""
    name: str
    investment_type: InvestmentType
    annual_yield: Decimal
    risk_level: RiskLevel
    tenure_months: int


@dataclass(frozen=True)
class Investment:
    """A held investment position - owned by the Record Store"""
    id: str
    user_id: str
    product_id: str
    amount: Decimal
    status: InvestmentStatus
    expected_return: Decimal
    current_value: Decimal
    maturity_date: date
    tenure_months: int
    notes: Optional[str]
    auto_reinvest: bool
    created_at: datetime
    updated_at: datetime
    matured_at: Optional[datetime] = None
    product: Optional[ProductBrief] = None

    @property
    def is_active(self) -> bool:
        return self.status == InvestmentStatus.ACTIVE


@dataclass(frozen=True)
class MonthlyProjection:
    month: int
    value: Decimal
    returns: Decimal
    return_percentage: Decimal


@dataclass(frozen=True)
class InvestmentProjection:
    """Compound interest projection - all money values rounded to 2dp"""
    principal: Decimal
    final_amount: Decimal
    total_returns: Decimal
    return_percentage: Decimal
    monthly_projections: Tuple[MonthlyProjection, ...] = ()


@dataclass(frozen=True)
class LedgerEntry:
    """One journaled balance mutation"""
    id: int
    user_id: str
    investment_id: Optional[str]
    transaction_type: LedgerTransactionType
    direction: LedgerDirection
    amount: Decimal
    balance_after: Decimal
    description: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class InvestmentOptions:
    """Optional knobs for createInvestment"""
    custom_tenure: Optional[int] = None
    notes: Optional[str] = None
    auto_reinvest: bool = False


@dataclass(frozen=True)
class InvestmentPatch:
    """Mutable fields of an active investment; None leaves a field unchanged"""
    notes: Optional[str] = None
    auto_reinvest: Optional[bool] = None

    @property
    def is_empty(self) -> bool:
        return self.notes is None and self.auto_reinvest is None


@dataclass(frozen=True)
class InvestmentFilters:
    status: Optional[InvestmentStatus] = None
    product_id: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class InvestmentPage:
    items: Tuple[Investment, ...]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass(frozen=True)
class PortfolioSummary:
    """Aggregate over a user's active investments"""
    total_investments: int
    total_invested: Decimal
    current_value: Decimal
    total_returns: Decimal
    returns_percentage: Decimal
    risk_score: Decimal = Decimal("0.00")

    @classmethod
    def empty(cls) -> "PortfolioSummary":
        zero = Decimal("0.00")
        return cls(
            total_investments=0,
            total_invested=zero,
            current_value=zero,
            total_returns=zero,
            returns_percentage=zero,
            risk_score=zero,
        )


@dataclass(frozen=True)
class DistributionBucket:
    key: str
    count: int
    amount: Decimal


@dataclass(frozen=True)
class PortfolioDistribution:
    by_type: Tuple[DistributionBucket, ...] = ()
    by_risk: Tuple[DistributionBucket, ...] = ()


@dataclass(frozen=True)
class Portfolio:
    summary: PortfolioSummary
    distribution: PortfolioDistribution
    investments: InvestmentPage = field(
        default_factory=lambda: InvestmentPage(items=(), total=0, page=1, limit=10)
    )
