"""
Unit Tests for PortfolioAggregator
"""

import pytest
from decimal import Decimal
from typing import Dict, List, Tuple

from app.domain.models import DistributionBucket, PortfolioSummary
from app.domain.services.portfolio_aggregator import PortfolioAggregator


# Mock Repository for Testing
class MockInvestmentReadRepository:
    """In-memory active investments keyed by user"""

    def __init__(self):
        self.active: Dict[str, List[dict]] = {}

    def add(self, user_id: str, amount: str, current: str, kind: str, risk: str):
        """Helper to add an active investment"""
        self.active.setdefault(user_id, []).append(
            {
                "amount": Decimal(amount),
                "current": Decimal(current),
                "type": kind,
                "risk": risk,
            }
        )

    async def get_active_totals(self, user_id: str) -> Tuple[int, Decimal, Decimal]:
        rows = self.active.get(user_id, [])
        return (
            len(rows),
            sum((r["amount"] for r in rows), Decimal("0")),
            sum((r["current"] for r in rows), Decimal("0")),
        )

    async def get_active_distribution(self, user_id: str):
        def group(key):
            buckets: Dict[str, List[dict]] = {}
            for row in self.active.get(user_id, []):
                buckets.setdefault(row[key], []).append(row)
            return [
                DistributionBucket(
                    key=k,
                    count=len(v),
                    amount=sum((r["amount"] for r in v), Decimal("0")),
                )
                for k, v in sorted(buckets.items())
            ]

        return group("type"), group("risk")


@pytest.fixture
def repo():
    return MockInvestmentReadRepository()


@pytest.fixture
def aggregator(repo):
    return PortfolioAggregator(repo)


@pytest.mark.asyncio
async def test_summary_for_user_without_investments_is_zeroed(aggregator):
    summary = await aggregator.summary("nobody")

    assert summary == PortfolioSummary.empty()
    assert summary.total_investments == 0
    assert summary.returns_percentage == Decimal("0.00")


@pytest.mark.asyncio
async def test_summary_totals_and_returns(repo, aggregator):
    repo.add("user-1", "10000", "11000", "bond", "low")
    repo.add("user-1", "5000", "5250", "fd", "low")

    summary = await aggregator.summary("user-1")

    assert summary.total_investments == 2
    assert summary.total_invested == Decimal("15000")
    assert summary.current_value == Decimal("16250")
    assert summary.total_returns == Decimal("1250")
    assert summary.returns_percentage == Decimal("8.33")


@pytest.mark.asyncio
async def test_summary_is_scoped_to_user(repo, aggregator):
    repo.add("user-1", "10000", "10000", "bond", "low")
    repo.add("user-2", "99999", "99999", "etf", "high")

    summary = await aggregator.summary("user-1")

    assert summary.total_invested == Decimal("10000")


@pytest.mark.asyncio
async def test_distribution_groups_by_type_and_risk(repo, aggregator):
    repo.add("user-1", "10000", "10000", "bond", "low")
    repo.add("user-1", "2000", "2000", "bond", "moderate")
    repo.add("user-1", "3000", "3000", "mf", "high")

    distribution = await aggregator.distribution("user-1")

    by_type = {b.key: (b.count, b.amount) for b in distribution.by_type}
    by_risk = {b.key: (b.count, b.amount) for b in distribution.by_risk}
    assert by_type == {"bond": (2, Decimal("12000")), "mf": (1, Decimal("3000"))}
    assert by_risk == {
        "high": (1, Decimal("3000")),
        "low": (1, Decimal("10000")),
        "moderate": (1, Decimal("2000")),
    }


@pytest.mark.asyncio
async def test_distribution_empty_for_user_without_investments(aggregator):
    distribution = await aggregator.distribution("nobody")

    assert distribution.by_type == ()
    assert distribution.by_risk == ()


@pytest.mark.asyncio
async def test_risk_score_is_amount_weighted(repo, aggregator):
    repo.add("user-1", "10000", "10000", "bond", "low")
    repo.add("user-1", "5000", "5000", "bond", "moderate")
    repo.add("user-1", "5000", "5000", "mf", "high")

    summary = await aggregator.summary("user-1")

    # (1*10000 + 2*5000 + 3*5000) / 20000
    assert summary.risk_score == Decimal("1.75")


@pytest.mark.asyncio
async def test_risk_score_bounds(repo, aggregator):
    repo.add("user-1", "10000", "10000", "bond", "low")
    repo.add("user-2", "3000", "3000", "etf", "high")

    assert (await aggregator.summary("user-1")).risk_score == Decimal("1.00")
    assert (await aggregator.summary("user-2")).risk_score == Decimal("3.00")
    assert (await aggregator.summary("nobody")).risk_score == Decimal("0.00")


def test_unknown_risk_level_weighs_as_moderate():
    buckets = [
        DistributionBucket(key="low", count=1, amount=Decimal("1000")),
        DistributionBucket(key="speculative", count=1, amount=Decimal("1000")),
    ]

    assert PortfolioAggregator.risk_score(buckets) == Decimal("1.50")
    assert PortfolioAggregator.risk_score([]) == Decimal("0.00")
