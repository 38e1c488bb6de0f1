# app/services/investment_lifecycle_service.py

"""
SERVICE - INVESTMENT LIFECYCLE ORCHESTRATOR

Coordinates product catalog, user directory, compound interest engine,
balance ledger and investment record store into:

• create_investment   (debit + insert, one atomic unit)
• cancel_investment   (active -> cancelled + refund, one atomic unit)
• update_investment   (notes / auto_reinvest while active)
• get_investment / get_portfolio (reads)

Atomicity strategies (settings.LEDGER_ATOMICITY):
• transaction  - balance and record mutation share one DB transaction
• compensating - create commits the debit first and issues the inverse
                 credit if the insert fails; cancel commits the guarded
                 status change first and only then credits the refund
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import AsyncIterator, Awaitable, Callable, Optional, Tuple, TypeVar
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.domain.errors import (
    ConcurrencyConflictError,
    InsufficientBalanceError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
)
from app.domain.models import (
    Investment,
    InvestmentFilters,
    InvestmentOptions,
    InvestmentPatch,
    InvestmentProduct,
    InvestmentProjection,
    InvestmentStatus,
    LedgerTransactionType,
    PageRequest,
    Portfolio,
)
from app.domain.services.compound_interest_engine import CompoundInterestEngine
from app.domain.services.portfolio_aggregator import PortfolioAggregator
from app.domain.validation import parse_money, validate_identifier
from app.infrastructure.db.repositories.balance_ledger_repository import BalanceLedger
from app.infrastructure.db.repositories.investment_repository import InvestmentRepository
from app.infrastructure.db.repositories.product_repository import ProductCatalogRepository
from app.infrastructure.db.repositories.user_repository import UserDirectoryRepository
from app.utils.time import now_ist_naive

logger = logging.getLogger(__name__)

T = TypeVar("T")

ATOMICITY_TRANSACTION = "transaction"
ATOMICITY_COMPENSATING = "compensating"


class InvestmentLifecycleService:
    """
    Investment Lifecycle Orchestrator

    Owns its transaction boundaries: every unit of work opens its own
    session from the factory, so instances are safe to share across
    concurrent requests.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        calculator: Optional[CompoundInterestEngine] = None,
        atomicity: Optional[str] = None,
        max_retries: Optional[int] = None,
        default_page_limit: Optional[int] = None,
        max_page_limit: Optional[int] = None,
        investment_repo_factory: Callable[[AsyncSession], InvestmentRepository] = InvestmentRepository,
        ledger_factory: Callable[[AsyncSession], BalanceLedger] = BalanceLedger,
        product_repo_factory: Callable[[AsyncSession], ProductCatalogRepository] = ProductCatalogRepository,
        user_repo_factory: Callable[[AsyncSession], UserDirectoryRepository] = UserDirectoryRepository,
        clock: Callable[[], object] = now_ist_naive,
    ):
        self.session_factory = session_factory
        self.calculator = calculator or CompoundInterestEngine()
        self.atomicity = atomicity or settings.LEDGER_ATOMICITY
        if self.atomicity not in (ATOMICITY_TRANSACTION, ATOMICITY_COMPENSATING):
            raise ValueError(f"Unknown ledger atomicity mode: {self.atomicity}")
        self.max_retries = settings.LIFECYCLE_MAX_RETRIES if max_retries is None else max_retries
        self.default_page_limit = default_page_limit or settings.PAGINATION_DEFAULT_LIMIT
        self.max_page_limit = max_page_limit or settings.PAGINATION_MAX_LIMIT
        self.investment_repo_factory = investment_repo_factory
        self.ledger_factory = ledger_factory
        self.product_repo_factory = product_repo_factory
        self.user_repo_factory = user_repo_factory
        self.clock = clock

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_investment(
        self,
        user_id: str,
        product_id: str,
        amount,
        options: Optional[InvestmentOptions] = None,
    ) -> Investment:
        """
        Create an investment and debit its principal

        Raises:
            ValidationError: malformed ids / amount / tenure
            NotFoundError: product or user missing, user inactive
            StateError: product inactive, amount outside product bounds
            InsufficientBalanceError: balance below amount
            ConcurrencyConflictError / PersistenceError: storage failures
        """
        options = options or InvestmentOptions()

        # ----------------------------
        # Shape validation
        # ----------------------------
        user_id = validate_identifier(user_id, "user_id")
        product_id = validate_identifier(product_id, "product_id")
        amount = parse_money(amount)
        if options.custom_tenure is not None:
            self._validate_tenure(options.custom_tenure)

        logger.info(
            "Create investment requested | user=%s | product=%s | amount=%s",
            user_id, product_id, amount,
        )

        return await self._with_retries(
            "create_investment",
            lambda: self._create_once(user_id, product_id, amount, options),
        )

    async def _create_once(
        self,
        user_id: str,
        product_id: str,
        amount: Decimal,
        options: InvestmentOptions,
    ) -> Investment:
        # ----------------------------
        # Product + user checks
        # ----------------------------
        async with self._unit_of_work() as session:
            product = await self._load_investable_product(session, product_id, amount)

            user = await self.user_repo_factory(session).get_by_id(user_id)
            if user is None or not user.is_active:
                raise NotFoundError("User", user_id)

            # Pre-check only; the ledger's conditional debit is the real guard
            if user.account_balance < amount:
                raise InsufficientBalanceError(user_id, amount, user.account_balance)

        # ----------------------------
        # Projection
        # ----------------------------
        tenure = options.custom_tenure or product.tenure_months
        projection = self.calculator.calculate(
            amount,
            product.annual_yield,
            tenure,
            product.compound_frequency,
            include_monthly=False,
        )

        now = self.clock()
        draft = Investment(
            id=str(uuid4()),
            user_id=user_id,
            product_id=product_id,
            amount=amount,
            status=InvestmentStatus.ACTIVE,
            expected_return=projection.final_amount,
            current_value=amount,
            maturity_date=self.calculator.maturity_date(now.date(), tenure),
            tenure_months=tenure,
            notes=options.notes,
            auto_reinvest=bool(options.auto_reinvest),
            created_at=now,
            updated_at=now,
        )

        # ----------------------------
        # Debit + insert
        # ----------------------------
        if self.atomicity == ATOMICITY_COMPENSATING:
            return await self._create_compensating(draft)
        return await self._create_transactional(draft)

    async def _create_transactional(self, draft: Investment) -> Investment:
        async with self._unit_of_work() as session:
            await self.ledger_factory(session).debit(
                draft.user_id,
                draft.amount,
                transaction_type=LedgerTransactionType.INVESTMENT,
                investment_id=draft.id,
                description=f"Investment in product {draft.product_id}",
            )
            investment = await self.investment_repo_factory(session).create(draft)

        logger.info("Investment created | id=%s | user=%s", investment.id, investment.user_id)
        return investment

    async def _create_compensating(self, draft: Investment) -> Investment:
        async with self._unit_of_work() as session:
            await self.ledger_factory(session).debit(
                draft.user_id,
                draft.amount,
                transaction_type=LedgerTransactionType.INVESTMENT,
                investment_id=draft.id,
                description=f"Investment in product {draft.product_id}",
            )

        try:
            async with self._unit_of_work() as session:
                investment = await self.investment_repo_factory(session).create(draft)
        except Exception as exc:
            await self._compensate(draft.user_id, draft.amount, draft.id, cause=exc)
            raise

        logger.info("Investment created | id=%s | user=%s", investment.id, investment.user_id)
        return investment

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    async def cancel_investment(self, user_id: str, investment_id: str) -> Investment:
        """
        Cancel an active investment and refund the full principal

        Raises:
            ValidationError: malformed ids
            NotFoundError: missing or not owned by user
            StateError: investment is not active
        """
        user_id = validate_identifier(user_id, "user_id")
        investment_id = validate_identifier(investment_id, "investment_id")

        logger.info("Cancel investment requested | user=%s | id=%s", user_id, investment_id)

        return await self._with_retries(
            "cancel_investment",
            lambda: self._cancel_once(user_id, investment_id),
        )

    async def _cancel_once(self, user_id: str, investment_id: str) -> Investment:
        if self.atomicity == ATOMICITY_COMPENSATING:
            return await self._cancel_compensating(user_id, investment_id)

        async with self._unit_of_work() as session:
            records = self.investment_repo_factory(session)
            investment = await self._load_owned(records, user_id, investment_id)
            self._require_active(investment, "cancelled")

            cancelled = await records.update_status(
                investment_id, InvestmentStatus.ACTIVE, InvestmentStatus.CANCELLED
            )
            await self.ledger_factory(session).credit(
                user_id,
                investment.amount,
                transaction_type=LedgerTransactionType.REFUND,
                investment_id=investment_id,
                description="Refund of cancelled investment",
            )

        logger.info("Investment cancelled | id=%s | refund=%s", investment_id, investment.amount)
        return cancelled

    async def _cancel_compensating(self, user_id: str, investment_id: str) -> Investment:
        # The conditional status update is the guard against a second refund
        async with self._unit_of_work() as session:
            records = self.investment_repo_factory(session)
            investment = await self._load_owned(records, user_id, investment_id)
            self._require_active(investment, "cancelled")

            cancelled = await records.update_status(
                investment_id, InvestmentStatus.ACTIVE, InvestmentStatus.CANCELLED
            )

        try:
            async with self._unit_of_work() as session:
                await self.ledger_factory(session).credit(
                    user_id,
                    investment.amount,
                    transaction_type=LedgerTransactionType.REFUND,
                    investment_id=investment_id,
                    description="Refund of cancelled investment",
                )
        except Exception as exc:
            logger.critical(
                "REFUND FAILED - investment cancelled without credit | user=%s | "
                "investment=%s | amount=%s | cause=%s",
                user_id, investment_id, investment.amount, exc.__class__.__name__,
            )
            raise PersistenceError(
                f"Refund failed for cancelled investment {investment_id}"
            ) from exc

        logger.info("Investment cancelled | id=%s | refund=%s", investment_id, investment.amount)
        return cancelled

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update_investment(
        self,
        user_id: str,
        investment_id: str,
        patch: InvestmentPatch,
    ) -> Investment:
        """
        Update notes / auto_reinvest on an active investment

        Raises:
            ValidationError: malformed ids or empty patch
            NotFoundError: missing or not owned by user
            StateError: investment is not active
        """
        user_id = validate_identifier(user_id, "user_id")
        investment_id = validate_identifier(investment_id, "investment_id")
        if patch is None or patch.is_empty:
            raise ValidationError("No valid fields to update")

        async def attempt() -> Investment:
            async with self._unit_of_work() as session:
                records = self.investment_repo_factory(session)
                investment = await self._load_owned(records, user_id, investment_id)
                self._require_active(investment, "updated")
                return await records.update_mutable_fields(investment_id, patch)

        return await self._with_retries("update_investment", attempt)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_investment(self, user_id: str, investment_id: str) -> Investment:
        """Single investment owned by user; NotFoundError otherwise"""
        user_id = validate_identifier(user_id, "user_id")
        investment_id = validate_identifier(investment_id, "investment_id")

        async with self._unit_of_work() as session:
            return await self._load_owned(
                self.investment_repo_factory(session), user_id, investment_id
            )

    async def get_portfolio(
        self,
        user_id: str,
        filters: Optional[InvestmentFilters] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Portfolio:
        """
        Summary + distribution over active investments, plus a filtered,
        paginated listing of all the user's investments
        """
        user_id = validate_identifier(user_id, "user_id")
        page_request = self.page_request(page, limit)

        async with self._unit_of_work() as session:
            records = self.investment_repo_factory(session)
            aggregator = PortfolioAggregator(records)

            summary = await aggregator.summary(user_id)
            distribution = await aggregator.distribution(user_id)
            investments = await records.find_by_user(user_id, filters, page_request)

        return Portfolio(summary=summary, distribution=distribution, investments=investments)

    async def preview_investment(
        self,
        product_id: str,
        amount=None,
        tenure_months: Optional[int] = None,
    ) -> Tuple[InvestmentProduct, InvestmentProjection, date]:
        """
        Projection for a prospective investment in a product

        Amount defaults to the product minimum, tenure to the product tenure.
        """
        product_id = validate_identifier(product_id, "product_id")
        if tenure_months is not None:
            self._validate_tenure(tenure_months)

        async with self._unit_of_work() as session:
            product = await self.product_repo_factory(session).get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        principal = parse_money(amount) if amount is not None else product.min_investment
        tenure = tenure_months or product.tenure_months
        projection = self.calculator.calculate(
            principal, product.annual_yield, tenure, product.compound_frequency
        )
        maturity = self.calculator.maturity_date(self.clock().date(), tenure)
        return product, projection, maturity

    def page_request(self, page: Optional[int], limit: Optional[int]) -> PageRequest:
        """Clamp page >= 1 and 1 <= limit <= max_page_limit"""
        page = max(1, int(page or 1))
        limit = int(limit or self.default_page_limit)
        limit = min(self.max_page_limit, max(1, limit))
        return PageRequest(page=page, limit=limit)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[AsyncSession]:
        """
        One session + transaction; commits on success, rolls back on any
        exception. Storage exceptions are mapped into the domain taxonomy.
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as exc:
            logger.warning("Integrity conflict: %s", exc.__class__.__name__)
            raise ConcurrencyConflictError("Conflicting concurrent write") from exc
        except SQLAlchemyError as exc:
            logger.error("Storage failure: %s", exc.__class__.__name__)
            raise PersistenceError(f"Storage unavailable: {exc.__class__.__name__}") from exc

    async def _with_retries(self, operation: str, attempt_fn: Callable[[], Awaitable[T]]) -> T:
        attempts = max(1, self.max_retries + 1)
        attempt = 1
        while True:
            try:
                return await attempt_fn()
            except ConcurrencyConflictError as exc:
                if attempt >= attempts:
                    logger.error(
                        "%s gave up after %d attempts: %s", operation, attempt, exc.message
                    )
                    raise
                logger.warning(
                    "%s lost a concurrent update (attempt %d/%d): %s",
                    operation, attempt, attempts, exc.message,
                )
                attempt += 1

    async def _compensate(
        self,
        user_id: str,
        amount: Decimal,
        investment_id: str,
        cause: Exception,
    ) -> None:
        """
        Credit back a committed debit after the investment insert failed
        """
        logger.warning(
            "Record write failed after debit; compensating | user=%s | "
            "investment=%s | amount=%s | cause=%s",
            user_id, investment_id, amount, cause.__class__.__name__,
        )
        try:
            async with self._unit_of_work() as session:
                await self.ledger_factory(session).credit(
                    user_id, amount,
                    transaction_type=LedgerTransactionType.COMPENSATION,
                    investment_id=investment_id,
                    description="Compensation for failed investment creation",
                )
        except Exception as exc:
            logger.critical(
                "COMPENSATION FAILED - ledger and records diverge | user=%s | "
                "investment=%s | amount=%s",
                user_id, investment_id, amount,
            )
            raise PersistenceError(
                f"Compensation failed for investment {investment_id}"
            ) from exc

    async def _load_investable_product(
        self,
        session: AsyncSession,
        product_id: str,
        amount: Decimal,
    ) -> InvestmentProduct:
        product = await self.product_repo_factory(session).get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        if not product.is_active:
            raise StateError(f"Investment product is not currently active: {product_id}")
        if not product.accepts_amount(amount):
            if amount < product.min_investment:
                raise StateError(f"Minimum investment amount is {product.min_investment}")
            raise StateError(f"Maximum investment amount is {product.max_investment}")
        return product

    @staticmethod
    async def _load_owned(
        records: InvestmentRepository,
        user_id: str,
        investment_id: str,
    ) -> Investment:
        investment = await records.find_by_id(investment_id)
        if investment is None or investment.user_id != user_id:
            raise NotFoundError("Investment", investment_id)
        return investment

    @staticmethod
    def _require_active(investment: Investment, action: str) -> None:
        if not investment.is_active:
            raise StateError(
                f"Only active investments can be {action} "
                f"(investment {investment.id} is {investment.status.value})"
            )

    @staticmethod
    def _validate_tenure(tenure) -> None:
        if isinstance(tenure, bool) or not isinstance(tenure, int) or tenure <= 0:
            raise ValidationError("Tenure must be a positive whole number of months", field="tenure")
