"""
User Directory Repository
Read-only view of user accounts consumed by the investment lifecycle
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from decimal import Decimal
from typing import Optional

from app.infrastructure.db.models import UserModel
from app.domain.models import UserAccount


class UserDirectoryRepository:
    """Repository for UserAccount lookups"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def get_by_id(self, user_id: str) -> Optional[UserAccount]:
        """
        Get a user account

        Args:
            user_id: User ID

        Returns:
            UserAccount or None
        """
        # populate_existing: the ledger updates balances with core-level
        # statements, so identity-mapped rows must be refreshed on read
        result = await self.session.execute(
            select(UserModel)
            .where(UserModel.id == user_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()

        return self._to_domain(model) if model else None

    @staticmethod
    def _to_domain(model: UserModel) -> UserAccount:
        """Convert database model to domain entity"""
        return UserAccount(
            id=model.id,
            account_balance=Decimal(str(model.account_balance)),
            is_active=bool(model.is_active),
        )
