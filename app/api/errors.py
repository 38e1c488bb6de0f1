"""
Centralized error handlers for FastAPI.

Maps investment domain errors to HTTP responses.
No stack traces or storage internals are exposed to clients.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.domain.errors import (
    ConcurrencyConflictError,
    InsufficientBalanceError,
    InvestmentDomainError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_404 = 404
HTTP_409 = 409
HTTP_500 = 500
HTTP_503 = 503


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application."""

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed request bodies / query params are validation errors too."""
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        logger.warning("Request validation failed: %s %s", location, message)
        return _error_response(HTTP_400, "Validation failed", f"{location}: {message}" if location else message)

    @app.exception_handler(ValidationError)
    async def handle_validation(_request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning("Validation failed: %s", exc.message)
        return _error_response(HTTP_400, "Validation failed", exc.message)

    @app.exception_handler(InsufficientBalanceError)
    async def handle_insufficient_balance(
        _request: Request, exc: InsufficientBalanceError
    ) -> JSONResponse:
        logger.warning("Insufficient balance | user=%s", exc.user_id)
        return _error_response(HTTP_400, "Insufficient balance", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        logger.info("%s not found: %s", exc.entity, exc.entity_id)
        return _error_response(HTTP_404, f"{exc.entity} not found")

    @app.exception_handler(StateError)
    async def handle_state(_request: Request, exc: StateError) -> JSONResponse:
        logger.warning("Illegal state: %s", exc.message)
        return _error_response(HTTP_409, "Invalid state", exc.message)

    @app.exception_handler(ConcurrencyConflictError)
    async def handle_conflict(
        _request: Request, exc: ConcurrencyConflictError
    ) -> JSONResponse:
        logger.warning("Concurrent update conflict: %s", exc.message)
        return _error_response(HTTP_503, "Concurrent update, please retry")

    @app.exception_handler(PersistenceError)
    async def handle_persistence(_request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Persistence failure: %s", exc.message)
        return _error_response(HTTP_503, "Service temporarily unavailable")

    @app.exception_handler(InvestmentDomainError)
    async def handle_domain(_request: Request, exc: InvestmentDomainError) -> JSONResponse:
        """Catch-all for unmapped domain errors."""
        logger.error("Unhandled domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
