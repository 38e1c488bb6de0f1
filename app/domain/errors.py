"""
Domain errors for the investment lifecycle and balance ledger.

Every failure that leaves the domain layer is one of these types.
They are mapped to HTTP responses in app.api.errors.
No framework imports allowed.
"""

from decimal import Decimal
from typing import Optional


class InvestmentDomainError(Exception):
    """Base error for all investment/ledger domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(InvestmentDomainError):
    """Malformed id, amount or request shape."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(InvestmentDomainError):
    """Product, user or investment does not exist (or is not visible to the caller)."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class StateError(InvestmentDomainError):
    """Operation is illegal in the current state of a product, user or investment."""


class InvalidTransitionError(StateError):
    """Requested status edge is not in the investment transition table."""

    def __init__(self, investment_id: str, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Invalid status transition for investment {investment_id}: "
            f"{from_status} -> {to_status}"
        )
        self.investment_id = investment_id
        self.from_status = from_status
        self.to_status = to_status


class InsufficientBalanceError(InvestmentDomainError):
    """Spendable balance is lower than the requested debit."""

    def __init__(self, user_id: str, required: Decimal, available: Optional[Decimal]) -> None:
        super().__init__(
            f"Insufficient balance: required {required}, available {available}"
        )
        self.user_id = user_id
        self.required = required
        self.available = available


class ConcurrencyConflictError(InvestmentDomainError):
    """An optimistic check lost against a concurrent writer. Safe to retry."""

    def __init__(self, message: str, current_status: Optional[str] = None) -> None:
        super().__init__(message)
        self.current_status = current_status


class PersistenceError(InvestmentDomainError):
    """Storage is unavailable or failed mid-operation."""
