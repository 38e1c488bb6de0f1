"""
PORTFOLIO AGGREGATOR - ASYNC
Read-side summary and distribution over a user's investments

RESPONSIBILITIES:
- Summary: count / invested / current value / returns over ACTIVE investments
- Risk score: amount-weighted average of risk weights (low=1, moderate=2, high=3)
- Distribution by product type and by risk level over ACTIVE investments
- Zeroed structures for users with nothing active

RULES:
❌ No writes
❌ No caching (results are as fresh as the underlying read)
✅ Matured and cancelled investments excluded from current views
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Protocol, Tuple

from app.domain.models import (
    DistributionBucket,
    PortfolioDistribution,
    PortfolioSummary,
    RiskLevel,
)

RISK_WEIGHTS = {
    RiskLevel.LOW.value: Decimal("1"),
    RiskLevel.MODERATE.value: Decimal("2"),
    RiskLevel.HIGH.value: Decimal("3"),
}

# Unknown risk levels count as moderate
DEFAULT_RISK_WEIGHT = Decimal("2")


class InvestmentReadRepository(Protocol):
    """Protocol for aggregate reads over investments - ASYNC"""

    async def get_active_totals(self, user_id: str) -> Tuple[int, Decimal, Decimal]:
        """(count, total_invested, current_value) over active investments"""
        ...

    async def get_active_distribution(
        self, user_id: str
    ) -> Tuple[List[DistributionBucket], List[DistributionBucket]]:
        """(by_type, by_risk) buckets over active investments"""
        ...


class PortfolioAggregator:
    """
    Portfolio Aggregator
    Computed on demand against the Record Store
    """

    def __init__(self, investment_repo: InvestmentReadRepository):
        """Initialize with repository dependency"""
        self.investment_repo = investment_repo

    async def summary(self, user_id: str) -> PortfolioSummary:
        """
        Summarize a user's active investments

        Args:
            user_id: Owner

        Returns:
            PortfolioSummary (zeroed when nothing is active)
        """
        count, invested, current = await self.investment_repo.get_active_totals(user_id)
        if count == 0:
            return PortfolioSummary.empty()

        _, by_risk = await self.investment_repo.get_active_distribution(user_id)

        returns = current - invested
        return PortfolioSummary(
            total_investments=count,
            total_invested=invested,
            current_value=current,
            total_returns=returns,
            returns_percentage=self._percentage(returns, invested),
            risk_score=self.risk_score(by_risk),
        )

    async def distribution(self, user_id: str) -> PortfolioDistribution:
        """
        Group a user's active investments by product type and risk level

        Returns:
            PortfolioDistribution (empty tuples when nothing is active)
        """
        by_type, by_risk = await self.investment_repo.get_active_distribution(user_id)
        return PortfolioDistribution(by_type=tuple(by_type), by_risk=tuple(by_risk))

    @staticmethod
    def _percentage(part: Decimal, whole: Decimal) -> Decimal:
        if whole <= 0:
            return Decimal("0.00")
        return (part / whole * Decimal("100")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @staticmethod
    def risk_score(by_risk: Iterable[DistributionBucket]) -> Decimal:
        """
        Amount-weighted average risk weight, 2dp

        1.00 is an all-low portfolio, 3.00 all-high, 0.00 when nothing is invested.
        """
        weighted = Decimal("0")
        invested = Decimal("0")
        for bucket in by_risk:
            weighted += RISK_WEIGHTS.get(bucket.key, DEFAULT_RISK_WEIGHT) * bucket.amount
            invested += bucket.amount
        if invested <= 0:
            return Decimal("0.00")
        return (weighted / invested).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
