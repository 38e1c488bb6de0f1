from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.models import (
    Investment,
    InvestmentPage,
    InvestmentProduct,
    InvestmentProjection,
    Portfolio,
    PortfolioDistribution,
    PortfolioSummary,
    ProductBrief,
)
from app.utils.time import to_ist_iso_db


# -------------------------------------------------------------------
# Requests
# -------------------------------------------------------------------

class CreateInvestmentRequest(BaseModel):
    """Request to invest in a product"""
    product_id: str = Field(..., description="Investment product id")
    amount: Decimal = Field(..., description="Principal in ₹ (max 2 decimals)")
    custom_tenure: Optional[int] = Field(None, description="Tenure override in months")
    notes: Optional[str] = Field(None, max_length=1000)
    auto_reinvest: bool = False


class UpdateInvestmentRequest(BaseModel):
    """Only notes and auto_reinvest are mutable"""
    notes: Optional[str] = Field(None, max_length=1000)
    auto_reinvest: Optional[bool] = None


# -------------------------------------------------------------------
# Responses
# -------------------------------------------------------------------

class ProductBriefResponse(BaseModel):
    name: str
    investment_type: str
    annual_yield: float
    risk_level: str
    tenure_months: int

    @classmethod
    def from_domain(cls, product: ProductBrief) -> "ProductBriefResponse":
        return cls(
            name=product.name,
            investment_type=product.investment_type.value,
            annual_yield=float(product.annual_yield),
            risk_level=product.risk_level.value,
            tenure_months=product.tenure_months,
        )


class InvestmentResponse(BaseModel):
    id: str
    user_id: str
    product_id: str
    amount: float
    status: str
    expected_return: float
    current_value: float
    maturity_date: str
    tenure_months: int
    notes: Optional[str] = None
    auto_reinvest: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    matured_at: Optional[str] = None
    product: Optional[ProductBriefResponse] = None

    @classmethod
    def from_domain(cls, investment: Investment) -> "InvestmentResponse":
        return cls(
            id=investment.id,
            user_id=investment.user_id,
            product_id=investment.product_id,
            amount=float(investment.amount),
            status=investment.status.value,
            expected_return=float(investment.expected_return),
            current_value=float(investment.current_value),
            maturity_date=investment.maturity_date.isoformat(),
            tenure_months=investment.tenure_months,
            notes=investment.notes,
            auto_reinvest=investment.auto_reinvest,
            created_at=to_ist_iso_db(investment.created_at) if investment.created_at else None,
            updated_at=to_ist_iso_db(investment.updated_at) if investment.updated_at else None,
            matured_at=to_ist_iso_db(investment.matured_at) if investment.matured_at else None,
            product=(
                ProductBriefResponse.from_domain(investment.product)
                if investment.product
                else None
            ),
        )


class PortfolioSummaryResponse(BaseModel):
    total_investments: int
    total_invested: float
    current_value: float
    total_returns: float
    returns_percentage: float
    risk_score: float

    @classmethod
    def from_domain(cls, summary: PortfolioSummary) -> "PortfolioSummaryResponse":
        return cls(
            total_investments=summary.total_investments,
            total_invested=float(summary.total_invested),
            current_value=float(summary.current_value),
            total_returns=float(summary.total_returns),
            returns_percentage=float(summary.returns_percentage),
            risk_score=float(summary.risk_score),
        )


class DistributionBucketResponse(BaseModel):
    key: str
    count: int
    amount: float


class PortfolioDistributionResponse(BaseModel):
    by_type: List[DistributionBucketResponse]
    by_risk: List[DistributionBucketResponse]

    @classmethod
    def from_domain(cls, distribution: PortfolioDistribution) -> "PortfolioDistributionResponse":
        def buckets(items):
            return [
                DistributionBucketResponse(key=b.key, count=b.count, amount=float(b.amount))
                for b in items
            ]

        return cls(by_type=buckets(distribution.by_type), by_risk=buckets(distribution.by_risk))


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_page(cls, page: InvestmentPage) -> "PaginationResponse":
        return cls(
            page=page.page,
            limit=page.limit,
            total=page.total,
            total_pages=page.total_pages,
            has_next=page.has_next,
            has_previous=page.has_previous,
        )


class PortfolioResponse(BaseModel):
    summary: PortfolioSummaryResponse
    distribution: PortfolioDistributionResponse
    investments: List[InvestmentResponse]
    pagination: PaginationResponse

    @classmethod
    def from_domain(cls, portfolio: Portfolio) -> "PortfolioResponse":
        return cls(
            summary=PortfolioSummaryResponse.from_domain(portfolio.summary),
            distribution=PortfolioDistributionResponse.from_domain(portfolio.distribution),
            investments=[InvestmentResponse.from_domain(i) for i in portfolio.investments.items],
            pagination=PaginationResponse.from_page(portfolio.investments),
        )


class MonthlyProjectionResponse(BaseModel):
    month: int
    value: float
    returns: float
    return_percentage: float


class ProjectionResponse(BaseModel):
    product_id: str
    product_name: str
    principal: float
    annual_yield: float
    compound_frequency: str
    tenure_months: int
    maturity_date: str
    final_amount: float
    total_returns: float
    return_percentage: float
    monthly_projections: List[MonthlyProjectionResponse]

    @classmethod
    def from_domain(
        cls,
        product: InvestmentProduct,
        projection: InvestmentProjection,
        tenure_months: int,
        maturity_date: date,
    ) -> "ProjectionResponse":
        return cls(
            product_id=product.id,
            product_name=product.name,
            principal=float(projection.principal),
            annual_yield=float(product.annual_yield),
            compound_frequency=product.compound_frequency.value,
            tenure_months=tenure_months,
            maturity_date=maturity_date.isoformat(),
            final_amount=float(projection.final_amount),
            total_returns=float(projection.total_returns),
            return_percentage=float(projection.return_percentage),
            monthly_projections=[
                MonthlyProjectionResponse(
                    month=p.month,
                    value=float(p.value),
                    returns=float(p.returns),
                    return_percentage=float(p.return_percentage),
                )
                for p in projection.monthly_projections
            ],
        )
