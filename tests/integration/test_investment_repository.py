from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from app.domain.errors import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    NotFoundError,
    StateError,
    ValidationError,
)
from app.domain.models import (
    Investment,
    InvestmentFilters,
    InvestmentPatch,
    InvestmentStatus,
    InvestmentType,
    PageRequest,
    RiskLevel,
)
from app.infrastructure.db.models import InvestmentTypeEnum, RiskLevelEnum
from app.infrastructure.db.repositories.investment_repository import InvestmentRepository


def _draft(
    investment_id: str,
    user_id: str = "user-1",
    product_id: str = "bond-12",
    amount: str = "10000",
    created_at: datetime = datetime(2026, 1, 10, 9, 30),
    maturity_date: date = date(2028, 1, 10),
) -> Investment:
    return Investment(
        id=investment_id,
        user_id=user_id,
        product_id=product_id,
        amount=Decimal(amount),
        status=InvestmentStatus.ACTIVE,
        expected_return=Decimal(amount) * Decimal("1.2544"),
        current_value=Decimal(amount),
        maturity_date=maturity_date,
        tenure_months=24,
        notes=None,
        auto_reinvest=False,
        created_at=created_at,
        updated_at=created_at,
    )


async def _insert(session_factory, *drafts: Investment):
    async with session_factory() as session:
        async with session.begin():
            repo = InvestmentRepository(session)
            for draft in drafts:
                await repo.create(draft)


@pytest.fixture
async def seeded(make_user, make_product):
    await make_user("user-1")
    await make_user("user-2")
    await make_product("bond-12")
    await make_product(
        "mf-growth",
        investment_type=InvestmentTypeEnum.MF,
        risk_level=RiskLevelEnum.HIGH,
        max_investment=None,
    )
    await make_product("closed", is_active=False)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_inserts_active_record(session_factory, seeded):
    await _insert(session_factory, _draft("inv-1"))

    async with session_factory() as session:
        stored = await InvestmentRepository(session).find_by_id("inv-1")

    assert stored is not None
    assert stored.status == InvestmentStatus.ACTIVE
    assert stored.amount == Decimal("10000")
    assert stored.expected_return == Decimal("12544.00")
    assert stored.maturity_date == date(2028, 1, 10)
    assert stored.matured_at is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_revalidates_product(session_factory, seeded):
    async with session_factory() as session:
        repo = InvestmentRepository(session)

        with pytest.raises(NotFoundError):
            await repo.create(_draft("inv-x", product_id="missing"))
        with pytest.raises(StateError):
            await repo.create(_draft("inv-y", product_id="closed"))
        with pytest.raises(StateError):
            await repo.create(_draft("inv-z", amount="999"))
        with pytest.raises(StateError):
            await repo.create(_draft("inv-w", amount="100000.01"))

        # null maximum is unbounded
        created = await repo.create(_draft("inv-big", product_id="mf-growth", amount="5000000"))
        assert created.amount == Decimal("5000000")
        await session.rollback()


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("target", [InvestmentStatus.MATURED, InvestmentStatus.CANCELLED])
async def test_active_moves_to_terminal_state(session_factory, seeded, target):
    await _insert(session_factory, _draft("inv-1"))

    async with session_factory() as session:
        async with session.begin():
            updated = await InvestmentRepository(session).update_status(
                "inv-1", InvestmentStatus.ACTIVE, target
            )

    assert updated.status == target
    if target == InvestmentStatus.MATURED:
        assert updated.matured_at is not None
    else:
        assert updated.matured_at is None


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "from_status,to_status",
    [
        (InvestmentStatus.CANCELLED, InvestmentStatus.ACTIVE),
        (InvestmentStatus.MATURED, InvestmentStatus.CANCELLED),
        (InvestmentStatus.CANCELLED, InvestmentStatus.MATURED),
        (InvestmentStatus.ACTIVE, InvestmentStatus.ACTIVE),
    ],
)
async def test_edges_outside_transition_table_rejected(session_factory, seeded, from_status, to_status):
    await _insert(session_factory, _draft("inv-1"))

    async with session_factory() as session:
        with pytest.raises(InvalidTransitionError):
            await InvestmentRepository(session).update_status("inv-1", from_status, to_status)

        stored = await InvestmentRepository(session).find_by_id("inv-1")
        assert stored.status == InvestmentStatus.ACTIVE


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stale_expected_status_is_a_conflict(session_factory, seeded):
    await _insert(session_factory, _draft("inv-1"))

    async with session_factory() as session:
        async with session.begin():
            await InvestmentRepository(session).update_status(
                "inv-1", InvestmentStatus.ACTIVE, InvestmentStatus.CANCELLED
            )

    async with session_factory() as session:
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await InvestmentRepository(session).update_status(
                "inv-1", InvestmentStatus.ACTIVE, InvestmentStatus.MATURED
            )

    assert exc_info.value.current_status == "cancelled"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_status_unknown_investment(session_factory, seeded):
    async with session_factory() as session:
        with pytest.raises(NotFoundError):
            await InvestmentRepository(session).update_status(
                "nope", InvestmentStatus.ACTIVE, InvestmentStatus.CANCELLED
            )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mutable_fields_only_while_active(session_factory, seeded):
    await _insert(session_factory, _draft("inv-1"))

    async with session_factory() as session:
        async with session.begin():
            repo = InvestmentRepository(session)
            updated = await repo.update_mutable_fields(
                "inv-1", InvestmentPatch(notes="retirement", auto_reinvest=True)
            )
            assert updated.notes == "retirement"
            assert updated.auto_reinvest is True
            assert updated.amount == Decimal("10000")

            await repo.update_status("inv-1", InvestmentStatus.ACTIVE, InvestmentStatus.MATURED)

            with pytest.raises(StateError):
                await repo.update_mutable_fields("inv-1", InvestmentPatch(notes="too late"))

    async with session_factory() as session:
        repo = InvestmentRepository(session)
        with pytest.raises(ValidationError):
            await repo.update_mutable_fields("inv-1", InvestmentPatch())
        with pytest.raises(NotFoundError):
            await repo.update_mutable_fields("nope", InvestmentPatch(notes="x"))


@pytest.mark.asyncio
@pytest.mark.integration
async def test_find_by_user_filters_and_paginates(session_factory, seeded):
    base = datetime(2026, 1, 1, 10, 0)
    drafts = [
        _draft(f"inv-{i}", created_at=base + timedelta(days=i))
        for i in range(1, 6)
    ]
    drafts.append(_draft("inv-mf", product_id="mf-growth", created_at=base + timedelta(days=10)))
    drafts.append(_draft("other-user", user_id="user-2", created_at=base))
    await _insert(session_factory, *drafts)

    async with session_factory() as session:
        async with session.begin():
            await InvestmentRepository(session).update_status(
                "inv-2", InvestmentStatus.ACTIVE, InvestmentStatus.CANCELLED
            )

    async with session_factory() as session:
        repo = InvestmentRepository(session)

        everything = await repo.find_by_user("user-1")
        assert everything.total == 6
        assert [i.id for i in everything.items] == [
            "inv-mf", "inv-5", "inv-4", "inv-3", "inv-2", "inv-1",
        ]
        mf = everything.items[0].product
        assert mf is not None
        assert mf.name == "Product mf-growth"
        assert mf.investment_type == InvestmentType.MUTUAL_FUND
        assert mf.risk_level == RiskLevel.HIGH
        assert mf.annual_yield == Decimal("12.00")
        assert mf.tenure_months == 24
        assert everything.items[-1].product.investment_type == InvestmentType.BOND

        page_two = await repo.find_by_user("user-1", page=PageRequest(page=2, limit=4))
        assert [i.id for i in page_two.items] == ["inv-2", "inv-1"]
        assert page_two.total_pages == 2
        assert page_two.has_previous is True
        assert page_two.has_next is False

        cancelled = await repo.find_by_user(
            "user-1", InvestmentFilters(status=InvestmentStatus.CANCELLED)
        )
        assert [i.id for i in cancelled.items] == ["inv-2"]

        by_product = await repo.find_by_user("user-1", InvestmentFilters(product_id="mf-growth"))
        assert [i.id for i in by_product.items] == ["inv-mf"]

        in_range = await repo.find_by_user(
            "user-1",
            InvestmentFilters(from_date=date(2026, 1, 3), to_date=date(2026, 1, 4)),
        )
        assert [i.id for i in in_range.items] == ["inv-3", "inv-2"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_active_aggregates_exclude_terminal_records(session_factory, seeded):
    await _insert(
        session_factory,
        _draft("inv-1", amount="10000"),
        _draft("inv-2", amount="5000"),
        _draft("inv-3", product_id="mf-growth", amount="2000"),
    )
    async with session_factory() as session:
        async with session.begin():
            await InvestmentRepository(session).update_status(
                "inv-2", InvestmentStatus.ACTIVE, InvestmentStatus.CANCELLED
            )

    async with session_factory() as session:
        repo = InvestmentRepository(session)
        count, invested, current = await repo.get_active_totals("user-1")
        by_type, by_risk = await repo.get_active_distribution("user-1")

    assert (count, invested, current) == (2, Decimal("12000"), Decimal("12000"))
    assert [(b.key, b.count, b.amount) for b in by_type] == [
        ("bond", 1, Decimal("10000")),
        ("mf", 1, Decimal("2000")),
    ]
    assert [(b.key, b.count) for b in by_risk] == [("high", 1), ("low", 1)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_find_due_for_maturity(session_factory, seeded):
    await _insert(
        session_factory,
        _draft("due-early", maturity_date=date(2026, 5, 1)),
        _draft("due-today", maturity_date=date(2026, 6, 1)),
        _draft("not-due", maturity_date=date(2026, 6, 2)),
    )

    async with session_factory() as session:
        due = await InvestmentRepository(session).find_due_for_maturity(date(2026, 6, 1))

    assert [i.id for i in due] == ["due-early", "due-today"]


def test_repository_has_no_delete():
    assert not any(name.startswith("delete") for name in dir(InvestmentRepository))
