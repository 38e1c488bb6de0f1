"""
Balance Ledger Repository
Atomic debit/credit of a user's spendable balance + insert-only journal

Every mutation is a single conditional UPDATE keyed by user id:

    UPDATE users SET account_balance = account_balance - :amount
    WHERE id = :user_id AND account_balance >= :amount
    RETURNING account_balance

so two concurrent debits can never both pass a stale balance check.
The journal row is written in the caller's transaction.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.errors import InsufficientBalanceError, NotFoundError
from app.domain.models import LedgerDirection, LedgerEntry, LedgerTransactionType
from app.domain.validation import parse_money
from app.infrastructure.db.models import (
    BalanceTransactionModel,
    LedgerDirectionEnum,
    LedgerTransactionTypeEnum,
    UserModel,
)
from app.utils.time import now_ist_naive

logger = logging.getLogger(__name__)


class BalanceLedger:
    """Per-user spendable balance, mutated only through debit/credit"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def debit(
        self,
        user_id: str,
        amount: Decimal,
        transaction_type: LedgerTransactionType = LedgerTransactionType.INVESTMENT,
        investment_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Decimal:
        """
        Decrement balance if it covers the amount

        Args:
            user_id: Owner of the balance
            amount: Positive amount to debit
            transaction_type: Journal classification
            investment_id: Investment this debit funds, if any
            description: Free-text journal note

        Returns:
            New balance

        Raises:
            ValidationError: amount <= 0
            InsufficientBalanceError: balance < amount (nothing is changed)
            NotFoundError: unknown user
        """
        amount = parse_money(amount)

        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.account_balance >= amount)
            .values(
                account_balance=UserModel.account_balance - amount,
                updated_at=now_ist_naive(),
            )
            .returning(UserModel.account_balance)
            .execution_options(synchronize_session=False)
        )
        new_balance = result.scalar_one_or_none()

        if new_balance is None:
            available = await self._current_balance(user_id)
            if available is None:
                raise NotFoundError("User", user_id)
            logger.warning(
                "Debit rejected | user=%s | amount=%s | available=%s",
                user_id, amount, available,
            )
            raise InsufficientBalanceError(user_id, amount, available)

        new_balance = Decimal(str(new_balance))
        await self._journal(
            user_id, LedgerDirection.DEBIT, transaction_type,
            amount, new_balance, investment_id, description,
        )
        logger.info(
            "Debit applied | user=%s | amount=%s | balance=%s | investment=%s",
            user_id, amount, new_balance, investment_id,
        )
        return new_balance

    async def credit(
        self,
        user_id: str,
        amount: Decimal,
        transaction_type: LedgerTransactionType = LedgerTransactionType.REFUND,
        investment_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Decimal:
        """
        Increment balance

        Returns:
            New balance

        Raises:
            ValidationError: amount <= 0
            NotFoundError: unknown user
        """
        amount = parse_money(amount)

        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(
                account_balance=UserModel.account_balance + amount,
                updated_at=now_ist_naive(),
            )
            .returning(UserModel.account_balance)
            .execution_options(synchronize_session=False)
        )
        new_balance = result.scalar_one_or_none()
        if new_balance is None:
            raise NotFoundError("User", user_id)

        new_balance = Decimal(str(new_balance))
        await self._journal(
            user_id, LedgerDirection.CREDIT, transaction_type,
            amount, new_balance, investment_id, description,
        )
        logger.info(
            "Credit applied | user=%s | amount=%s | balance=%s | investment=%s",
            user_id, amount, new_balance, investment_id,
        )
        return new_balance

    async def get_balance(self, user_id: str) -> Decimal:
        """Current balance; NotFoundError for unknown users"""
        balance = await self._current_balance(user_id)
        if balance is None:
            raise NotFoundError("User", user_id)
        return balance

    async def get_journal(self, user_id: str, limit: int = 50) -> List[LedgerEntry]:
        """
        Journal entries for a user, newest first
        """
        result = await self.session.execute(
            select(BalanceTransactionModel)
            .where(BalanceTransactionModel.user_id == user_id)
            .order_by(BalanceTransactionModel.id.desc())
            .limit(limit)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def _current_balance(self, user_id: str) -> Optional[Decimal]:
        result = await self.session.execute(
            select(UserModel.account_balance).where(UserModel.id == user_id)
        )
        balance = result.scalar_one_or_none()
        return Decimal(str(balance)) if balance is not None else None

    async def _journal(
        self,
        user_id: str,
        direction: LedgerDirection,
        transaction_type: LedgerTransactionType,
        amount: Decimal,
        balance_after: Decimal,
        investment_id: Optional[str],
        description: Optional[str],
    ) -> None:
        self.session.add(
            BalanceTransactionModel(
                user_id=user_id,
                investment_id=investment_id,
                transaction_type=LedgerTransactionTypeEnum(transaction_type.value),
                direction=LedgerDirectionEnum(direction.value),
                amount=amount,
                balance_after=balance_after,
                description=description,
                created_at=now_ist_naive(),
            )
        )
        await self.session.flush()

    @staticmethod
    def _to_domain(model: BalanceTransactionModel) -> LedgerEntry:
        """Convert database model to domain entity"""
        return LedgerEntry(
            id=model.id,
            user_id=model.user_id,
            investment_id=model.investment_id,
            transaction_type=LedgerTransactionType(model.transaction_type.value),
            direction=LedgerDirection(model.direction.value),
            amount=Decimal(str(model.amount)),
            balance_after=Decimal(str(model.balance_after)),
            description=model.description,
            created_at=model.created_at,
        )
