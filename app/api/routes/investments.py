"""
Investment API Routes
Thin adapter over the investment lifecycle orchestrator

Caller identity arrives in the X-User-Id header; authentication is
handled upstream of this service.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.domain.errors import ValidationError
from app.domain.models import InvestmentFilters, InvestmentOptions, InvestmentPatch, InvestmentStatus
from app.domain.schemas.investment import (
    CreateInvestmentRequest,
    InvestmentResponse,
    PortfolioResponse,
    UpdateInvestmentRequest,
)
from app.infrastructure.db.database import get_session_factory
from app.services.investment_lifecycle_service import InvestmentLifecycleService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_lifecycle_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> InvestmentLifecycleService:
    return InvestmentLifecycleService(session_factory)


def _parse_status(value: Optional[str]) -> Optional[InvestmentStatus]:
    if value is None or value == "":
        return None
    try:
        return InvestmentStatus(value.strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid status filter: {value}", field="status")


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.post("", response_model=InvestmentResponse, status_code=201)
async def create_investment(
    request: CreateInvestmentRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InvestmentLifecycleService = Depends(get_lifecycle_service),
):
    """
    Invest in a product

    Debits the user's balance by the principal and records an active
    investment with its projected return and maturity date.
    """
    investment = await service.create_investment(
        user_id,
        request.product_id,
        request.amount,
        InvestmentOptions(
            custom_tenure=request.custom_tenure,
            notes=request.notes,
            auto_reinvest=request.auto_reinvest,
        ),
    )
    return InvestmentResponse.from_domain(investment)


@router.get("/portfolio", response_model=PortfolioResponse)
async def get_portfolio(
    user_id: str = Header(..., alias="X-User-Id"),
    status: Optional[str] = Query(None, description="active / matured / cancelled"),
    product_id: Optional[str] = Query(None),
    from_date: Optional[date] = Query(None, description="Created on or after (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, description="Created on or before (YYYY-MM-DD)"),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    service: InvestmentLifecycleService = Depends(get_lifecycle_service),
):
    """Summary, distribution and a paginated listing of the caller's investments"""
    filters = InvestmentFilters(
        status=_parse_status(status),
        product_id=product_id or None,
        from_date=from_date,
        to_date=to_date,
    )
    portfolio = await service.get_portfolio(user_id, filters, page=page, limit=limit)
    return PortfolioResponse.from_domain(portfolio)


@router.get("/{investment_id}", response_model=InvestmentResponse)
async def get_investment(
    investment_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InvestmentLifecycleService = Depends(get_lifecycle_service),
):
    investment = await service.get_investment(user_id, investment_id)
    return InvestmentResponse.from_domain(investment)


@router.patch("/{investment_id}", response_model=InvestmentResponse)
async def update_investment(
    investment_id: str,
    request: UpdateInvestmentRequest,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InvestmentLifecycleService = Depends(get_lifecycle_service),
):
    """Update notes / auto_reinvest while the investment is active"""
    investment = await service.update_investment(
        user_id,
        investment_id,
        InvestmentPatch(notes=request.notes, auto_reinvest=request.auto_reinvest),
    )
    return InvestmentResponse.from_domain(investment)


@router.post("/{investment_id}/cancel", response_model=InvestmentResponse)
async def cancel_investment(
    investment_id: str,
    user_id: str = Header(..., alias="X-User-Id"),
    service: InvestmentLifecycleService = Depends(get_lifecycle_service),
):
    """Cancel an active investment; the full principal is refunded"""
    investment = await service.cancel_investment(user_id, investment_id)
    return InvestmentResponse.from_domain(investment)
