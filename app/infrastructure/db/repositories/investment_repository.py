"""
Investment Repository (Record Store)
Persists Investment entities and owns the status transition table

Status edges are validated here and nowhere else:
    active -> matured
    active -> cancelled
Both targets are terminal. Records are never hard-deleted.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from datetime import date, datetime
from decimal import Decimal
from typing import FrozenSet, List, Optional, Tuple

from app.domain.errors import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    NotFoundError,
    StateError,
    ValidationError,
)
from app.domain.models import (
    DistributionBucket,
    Investment,
    InvestmentFilters,
    InvestmentPage,
    InvestmentPatch,
    InvestmentStatus,
    InvestmentType,
    PageRequest,
    ProductBrief,
    RiskLevel,
)
from app.infrastructure.db.models import (
    InvestmentModel,
    InvestmentProductModel,
    InvestmentStatusEnum,
)
from app.utils.time import now_ist_naive

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: FrozenSet[Tuple[InvestmentStatus, InvestmentStatus]] = frozenset({
    (InvestmentStatus.ACTIVE, InvestmentStatus.MATURED),
    (InvestmentStatus.ACTIVE, InvestmentStatus.CANCELLED),
})

ZERO = Decimal("0.00")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


class InvestmentRepository:
    """Repository for Investment records"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, investment: Investment) -> Investment:
        """
        Insert a new investment with status=active

        Re-validates the product independently of the caller: it must
        exist, be active, and accept the amount.

        Args:
            investment: Investment draft (id assigned by caller)

        Returns:
            Persisted Investment

        Raises:
            NotFoundError: Product missing
            StateError: Product inactive or amount out of bounds
        """
        product = await self.session.get(InvestmentProductModel, investment.product_id)
        if product is None:
            raise NotFoundError("Product", investment.product_id)
        if not product.is_active:
            raise StateError(f"Investment product is not currently active: {product.id}")

        amount = investment.amount
        if amount < Decimal(str(product.min_investment)):
            raise StateError(f"Minimum investment amount is {product.min_investment}")
        if product.max_investment is not None and amount > Decimal(str(product.max_investment)):
            raise StateError(f"Maximum investment amount is {product.max_investment}")

        now = now_ist_naive()
        model = InvestmentModel(
            id=investment.id,
            user_id=investment.user_id,
            product_id=investment.product_id,
            amount=amount,
            tenure_months=investment.tenure_months,
            expected_return=investment.expected_return,
            current_value=investment.current_value,
            maturity_date=investment.maturity_date,
            status=InvestmentStatusEnum.ACTIVE,
            notes=investment.notes,
            auto_reinvest=bool(investment.auto_reinvest),
            created_at=investment.created_at or now,
            updated_at=investment.updated_at or now,
        )

        self.session.add(model)
        await self.session.flush()

        logger.info(
            "Investment created | id=%s | user=%s | product=%s | amount=%s",
            model.id, model.user_id, model.product_id, amount,
        )
        return self._to_domain(model, product)

    async def update_status(
        self,
        investment_id: str,
        expected_from: InvestmentStatus,
        to: InvestmentStatus,
    ) -> Investment:
        """
        Move an investment along one edge of the transition table

        The UPDATE is conditional on the stored status still being
        expected_from, so it doubles as an optimistic concurrency check.

        Raises:
            InvalidTransitionError: (expected_from, to) is not an allowed edge
            NotFoundError: Unknown investment
            ConcurrencyConflictError: Stored status is no longer expected_from
        """
        expected_from = InvestmentStatus(expected_from)
        to = InvestmentStatus(to)
        if (expected_from, to) not in ALLOWED_TRANSITIONS:
            raise InvalidTransitionError(investment_id, expected_from.value, to.value)

        now = now_ist_naive()
        values = {"status": InvestmentStatusEnum(to.value), "updated_at": now}
        if to == InvestmentStatus.MATURED:
            values["matured_at"] = now

        result = await self.session.execute(
            update(InvestmentModel)
            .where(
                InvestmentModel.id == investment_id,
                InvestmentModel.status == InvestmentStatusEnum(expected_from.value),
            )
            .values(**values)
            .returning(InvestmentModel.id)
            .execution_options(synchronize_session=False)
        )
        if result.scalar_one_or_none() is None:
            current = await self.find_by_id(investment_id)
            if current is None:
                raise NotFoundError("Investment", investment_id)
            raise ConcurrencyConflictError(
                f"Investment {investment_id} is {current.status.value}, "
                f"expected {expected_from.value}",
                current_status=current.status.value,
            )

        logger.info(
            "Investment status changed | id=%s | %s -> %s",
            investment_id, expected_from.value, to.value,
        )
        return await self._require(investment_id)

    async def update_mutable_fields(
        self,
        investment_id: str,
        patch: InvestmentPatch,
    ) -> Investment:
        """
        Update notes / auto_reinvest on an active investment

        Raises:
            ValidationError: Empty patch
            NotFoundError: Unknown investment
            StateError: Investment is matured or cancelled
        """
        if patch.is_empty:
            raise ValidationError("No valid fields to update")

        values = {"updated_at": now_ist_naive()}
        if patch.notes is not None:
            values["notes"] = patch.notes
        if patch.auto_reinvest is not None:
            values["auto_reinvest"] = bool(patch.auto_reinvest)

        result = await self.session.execute(
            update(InvestmentModel)
            .where(
                InvestmentModel.id == investment_id,
                InvestmentModel.status == InvestmentStatusEnum.ACTIVE,
            )
            .values(**values)
            .returning(InvestmentModel.id)
            .execution_options(synchronize_session=False)
        )
        if result.scalar_one_or_none() is None:
            current = await self.find_by_id(investment_id)
            if current is None:
                raise NotFoundError("Investment", investment_id)
            raise StateError(
                f"Only active investments can be updated (investment is {current.status.value})"
            )

        return await self._require(investment_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_id(self, investment_id: str) -> Optional[Investment]:
        """
        Get investment by ID

        Returns:
            Investment or None
        """
        result = await self.session.execute(
            self._with_product()
            .where(InvestmentModel.id == investment_id)
            .execution_options(populate_existing=True)
        )
        row = result.one_or_none()

        return self._to_domain(*row) if row else None

    async def find_by_user(
        self,
        user_id: str,
        filters: Optional[InvestmentFilters] = None,
        page: Optional[PageRequest] = None,
    ) -> InvestmentPage:
        """
        List a user's investments, newest first

        Args:
            user_id: Owner
            filters: status / product / created_at range
            page: Page number and size

        Returns:
            InvestmentPage with total count for the filter
        """
        filters = filters or InvestmentFilters()
        page = page or PageRequest()

        conditions = [InvestmentModel.user_id == user_id]
        if filters.status is not None:
            conditions.append(InvestmentModel.status == InvestmentStatusEnum(filters.status.value))
        if filters.product_id:
            conditions.append(InvestmentModel.product_id == filters.product_id)
        if filters.from_date is not None:
            conditions.append(InvestmentModel.created_at >= _as_datetime(filters.from_date))
        if filters.to_date is not None:
            conditions.append(InvestmentModel.created_at <= _as_datetime(filters.to_date, end=True))

        total = await self.session.scalar(
            select(func.count(InvestmentModel.id)).where(*conditions)
        )

        result = await self.session.execute(
            self._with_product()
            .where(*conditions)
            .order_by(InvestmentModel.created_at.desc(), InvestmentModel.id.desc())
            .limit(page.limit)
            .offset(page.offset)
            .execution_options(populate_existing=True)
        )

        return InvestmentPage(
            items=tuple(self._to_domain(model, product) for model, product in result.all()),
            total=int(total or 0),
            page=page.page,
            limit=page.limit,
        )

    async def find_due_for_maturity(self, as_of: date, limit: int = 500) -> List[Investment]:
        """
        Active investments whose maturity date is on or before as_of
        """
        result = await self.session.execute(
            select(InvestmentModel)
            .where(
                InvestmentModel.status == InvestmentStatusEnum.ACTIVE,
                InvestmentModel.maturity_date <= as_of,
            )
            .order_by(InvestmentModel.maturity_date, InvestmentModel.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get_active_totals(self, user_id: str) -> Tuple[int, Decimal, Decimal]:
        """
        Count, principal sum and current value sum over active investments

        Returns:
            (count, total_invested, current_value)
        """
        result = await self.session.execute(
            select(
                func.count(InvestmentModel.id),
                func.coalesce(func.sum(InvestmentModel.amount), 0),
                func.coalesce(func.sum(InvestmentModel.current_value), 0),
            )
            .where(
                InvestmentModel.user_id == user_id,
                InvestmentModel.status == InvestmentStatusEnum.ACTIVE,
            )
        )
        count, invested, current = result.one()
        return int(count or 0), _money(invested), _money(current)

    async def get_active_distribution(
        self,
        user_id: str,
    ) -> Tuple[List[DistributionBucket], List[DistributionBucket]]:
        """
        Active investments grouped by product type and by risk level

        Returns:
            (by_type, by_risk) bucket lists, each sorted by key
        """
        by_type = await self._group_active_by(user_id, InvestmentProductModel.investment_type)
        by_risk = await self._group_active_by(user_id, InvestmentProductModel.risk_level)
        return by_type, by_risk

    async def _group_active_by(self, user_id: str, column) -> List[DistributionBucket]:
        result = await self.session.execute(
            select(
                column.label("key"),
                func.count(InvestmentModel.id).label("count"),
                func.coalesce(func.sum(InvestmentModel.amount), 0).label("amount"),
            )
            .join(InvestmentProductModel, InvestmentModel.product_id == InvestmentProductModel.id)
            .where(
                InvestmentModel.user_id == user_id,
                InvestmentModel.status == InvestmentStatusEnum.ACTIVE,
            )
            .group_by(column)
        )

        buckets = [
            DistributionBucket(
                key=row.key.value if hasattr(row.key, "value") else str(row.key),
                count=int(row.count),
                amount=_money(row.amount),
            )
            for row in result
        ]
        return sorted(buckets, key=lambda b: b.key)

    async def _require(self, investment_id: str) -> Investment:
        investment = await self.find_by_id(investment_id)
        if investment is None:
            raise NotFoundError("Investment", investment_id)
        return investment

    @staticmethod
    def _with_product():
        return select(InvestmentModel, InvestmentProductModel).outerjoin(
            InvestmentProductModel, InvestmentModel.product_id == InvestmentProductModel.id
        )

    @staticmethod
    def _to_domain(
        model: InvestmentModel,
        product: Optional[InvestmentProductModel] = None,
    ) -> Investment:
        """Convert database model (and its product, when joined) to domain entity"""
        return Investment(
            id=model.id,
            user_id=model.user_id,
            product_id=model.product_id,
            amount=_money(model.amount),
            status=InvestmentStatus(model.status.value),
            expected_return=_money(model.expected_return),
            current_value=_money(model.current_value),
            maturity_date=model.maturity_date,
            tenure_months=int(model.tenure_months),
            notes=model.notes,
            auto_reinvest=bool(model.auto_reinvest),
            created_at=model.created_at,
            updated_at=model.updated_at,
            matured_at=model.matured_at,
            product=_product_brief(product) if product is not None else None,
        )


def _product_brief(product: InvestmentProductModel) -> ProductBrief:
    return ProductBrief(
        name=product.name,
        investment_type=InvestmentType(product.investment_type.value),
        annual_yield=Decimal(str(product.annual_yield)),
        risk_level=RiskLevel(product.risk_level.value),
        tenure_months=int(product.tenure_months),
    )


def _as_datetime(value, end: bool = False) -> datetime:
    """Dates in filters cover the whole day"""
    if isinstance(value, datetime):
        return value
    if end:
        return datetime.combine(value, datetime.max.time())
    return datetime.combine(value, datetime.min.time())
