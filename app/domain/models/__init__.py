"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    CompoundFrequency,
    InvestmentStatus,
    InvestmentType,
    LedgerDirection,
    LedgerTransactionType,
    RiskLevel,

    # Entities
    DistributionBucket,
    Investment,
    InvestmentFilters,
    InvestmentOptions,
    InvestmentPage,
    InvestmentPatch,
    InvestmentProduct,
    InvestmentProjection,
    LedgerEntry,
    MonthlyProjection,
    PageRequest,
    Portfolio,
    PortfolioDistribution,
    PortfolioSummary,
    ProductBrief,
    UserAccount,
)

__all__ = [
    # Enums
    "CompoundFrequency",
    "InvestmentStatus",
    "InvestmentType",
    "LedgerDirection",
    "LedgerTransactionType",
    "RiskLevel",

    # Entities
    "DistributionBucket",
    "Investment",
    "InvestmentFilters",
    "InvestmentOptions",
    "InvestmentPage",
    "InvestmentPatch",
    "InvestmentProduct",
    "InvestmentProjection",
    "LedgerEntry",
    "MonthlyProjection",
    "PageRequest",
    "Portfolio",
    "PortfolioDistribution",
    "PortfolioSummary",
    "ProductBrief",
    "UserAccount",
]
