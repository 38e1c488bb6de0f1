from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.domain.models import InvestmentStatus
from app.infrastructure.db.repositories.balance_ledger_repository import BalanceLedger
from app.infrastructure.db.repositories.investment_repository import InvestmentRepository
from app.scheduler.maturity_sweep import MaturityScheduler, run_maturity_sweep
from app.services.investment_lifecycle_service import InvestmentLifecycleService


def _service_at(session_factory, now: datetime) -> InvestmentLifecycleService:
    return InvestmentLifecycleService(session_factory, clock=lambda: now)


async def _status(session_factory, investment_id: str) -> InvestmentStatus:
    async with session_factory() as session:
        investment = await InvestmentRepository(session).find_by_id(investment_id)
    return investment.status


@pytest.fixture
async def funded(make_user, make_product):
    await make_user("user-1", Decimal("100000"))
    await make_product("fd-6m", tenure_months=6)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sweep_matures_due_investments_only(session_factory, funded):
    early = await _service_at(session_factory, datetime(2026, 1, 10, 9, 0)).create_investment(
        "user-1", "fd-6m", Decimal("10000")
    )
    late = await _service_at(session_factory, datetime(2026, 3, 1, 9, 0)).create_investment(
        "user-1", "fd-6m", Decimal("10000")
    )

    result = await run_maturity_sweep(session_factory, as_of=date(2026, 7, 10))

    assert result.matured == [early.id]
    assert result.skipped == []
    assert await _status(session_factory, early.id) == InvestmentStatus.MATURED
    assert await _status(session_factory, late.id) == InvestmentStatus.ACTIVE

    async with session_factory() as session:
        matured = await InvestmentRepository(session).find_by_id(early.id)
    assert matured.matured_at is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sweep_does_not_touch_balances_or_cancelled(session_factory, funded):
    service = _service_at(session_factory, datetime(2026, 1, 10, 9, 0))
    kept = await service.create_investment("user-1", "fd-6m", Decimal("10000"))
    cancelled = await service.create_investment("user-1", "fd-6m", Decimal("5000"))
    await service.cancel_investment("user-1", cancelled.id)

    result = await run_maturity_sweep(session_factory, as_of=date(2027, 1, 1))

    assert result.matured == [kept.id]
    assert await _status(session_factory, cancelled.id) == InvestmentStatus.CANCELLED
    async with session_factory() as session:
        assert await BalanceLedger(session).get_balance("user-1") == Decimal("90000")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sweep_walks_every_batch(session_factory, funded):
    service = _service_at(session_factory, datetime(2026, 1, 10, 9, 0))
    created = [
        (await service.create_investment("user-1", "fd-6m", Decimal("1000"))).id
        for _ in range(5)
    ]

    result = await run_maturity_sweep(session_factory, as_of=date(2026, 7, 10), batch_size=2)

    assert sorted(result.matured) == sorted(created)
    second = await run_maturity_sweep(session_factory, as_of=date(2026, 7, 10), batch_size=2)
    assert second.matured == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_concurrently_cancelled_investment_is_skipped(session_factory, funded, monkeypatch):
    service = _service_at(session_factory, datetime(2026, 1, 10, 9, 0))
    investment = await service.create_investment("user-1", "fd-6m", Decimal("10000"))

    original = InvestmentRepository.find_due_for_maturity

    async def due_then_cancelled(self, as_of, limit=500):
        due = await original(self, as_of, limit)
        if due:
            await service.cancel_investment("user-1", investment.id)
        return due

    monkeypatch.setattr(InvestmentRepository, "find_due_for_maturity", due_then_cancelled)

    result = await run_maturity_sweep(session_factory, as_of=date(2026, 7, 10), batch_size=10)

    assert result.matured == []
    assert result.skipped == [investment.id]
    assert await _status(session_factory, investment.id) == InvestmentStatus.CANCELLED


@pytest.mark.asyncio
@pytest.mark.integration
async def test_storage_failure_on_one_investment_does_not_stop_sweep(
    session_factory, funded, monkeypatch
):
    service = _service_at(session_factory, datetime(2026, 1, 10, 9, 0))
    created = [
        (await service.create_investment("user-1", "fd-6m", Decimal("1000"))).id
        for _ in range(5)
    ]
    broken = sorted(created)[0]

    update_status = InvestmentRepository.update_status

    async def fail_for_broken(self, investment_id, expected_from, to):
        if investment_id == broken:
            raise OperationalError("UPDATE investments", {}, Exception("row lock timeout"))
        return await update_status(self, investment_id, expected_from, to)

    monkeypatch.setattr(InvestmentRepository, "update_status", fail_for_broken)

    result = await run_maturity_sweep(session_factory, as_of=date(2026, 7, 10), batch_size=2)

    assert result.failed == [broken]
    assert sorted(result.matured) == sorted(i for i in created if i != broken)
    assert await _status(session_factory, broken) == InvestmentStatus.ACTIVE


@pytest.mark.asyncio
async def test_scheduler_registers_daily_job(session_factory):
    scheduler = MaturityScheduler(session_factory)
    scheduler.start()
    try:
        job = scheduler.scheduler.get_job("maturity_sweep")
        assert job is not None
        assert job.name == "Daily Maturity Sweep"
    finally:
        scheduler.stop()
