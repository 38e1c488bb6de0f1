"""
Product Catalog Repository
Read-only view of investment products consumed by the investment lifecycle
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from decimal import Decimal
from typing import Optional

from app.infrastructure.db.models import InvestmentProductModel
from app.domain.models import (
    CompoundFrequency,
    InvestmentProduct,
    InvestmentType,
    RiskLevel,
)


class ProductCatalogRepository:
    """Repository for InvestmentProduct lookups"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def get_by_id(self, product_id: str) -> Optional[InvestmentProduct]:
        """
        Get a product by ID (active or not)

        Args:
            product_id: Product ID

        Returns:
            InvestmentProduct or None
        """
        result = await self.session.execute(
            select(InvestmentProductModel).where(InvestmentProductModel.id == product_id)
        )
        model = result.scalar_one_or_none()

        return self.to_domain(model) if model else None

    @staticmethod
    def to_domain(model: InvestmentProductModel) -> InvestmentProduct:
        """Convert database model to domain entity"""
        return InvestmentProduct(
            id=model.id,
            name=model.name,
            investment_type=InvestmentType(model.investment_type.value),
            min_investment=Decimal(str(model.min_investment)),
            max_investment=(
                Decimal(str(model.max_investment)) if model.max_investment is not None else None
            ),
            annual_yield=Decimal(str(model.annual_yield)),
            tenure_months=int(model.tenure_months),
            compound_frequency=CompoundFrequency.parse(model.compound_frequency.value),
            risk_level=RiskLevel(model.risk_level.value),
            is_active=bool(model.is_active),
            early_withdrawal_penalty=Decimal(str(model.early_withdrawal_penalty or 0)),
        )
