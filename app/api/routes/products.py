"""
Product API Routes
Compound interest projections for catalog products
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.domain.schemas.investment import ProjectionResponse
from app.services.investment_lifecycle_service import InvestmentLifecycleService
from app.api.routes.investments import get_lifecycle_service

router = APIRouter()


@router.get("/{product_id}/projection", response_model=ProjectionResponse)
async def get_projection(
    product_id: str,
    amount: Optional[Decimal] = Query(None, description="Principal in ₹ (default: product minimum)"),
    tenure_months: Optional[int] = Query(None, description="Tenure override in months"),
    service: InvestmentLifecycleService = Depends(get_lifecycle_service),
):
    """Month-by-month projection for investing in a product today"""
    product, projection, maturity = await service.preview_investment(
        product_id, amount=amount, tenure_months=tenure_months
    )
    return ProjectionResponse.from_domain(
        product,
        projection,
        tenure_months or product.tenure_months,
        maturity,
    )
