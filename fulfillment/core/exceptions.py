"""
Global exception handling for the application.
Standardizes error responses using Problem Details for HTTP APIs (RFC 7807).

Billing and stock errors are raised inside a transaction and propagate to
the caller unchanged; the transaction helper rolls back before re-raising.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for all application exceptions."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class EntityNotFoundException(AppError):
    """Resource not found error."""
    def __init__(self, message: str = "Entity not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class BusinessRuleViolationException(AppError):
    """Business logic violation error."""
    def __init__(self, message: str = "Business rule violation", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)


class UnauthorizedException(AppError):
    """Authentication failure error."""
    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, details)


class ForbiddenException(AppError):
    """Authorization failure error."""
    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_403_FORBIDDEN, details)


class DuplicateEntityException(AppError):
    """Unique resource already exists."""
    def __init__(self, message: str = "Entity already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_409_CONFLICT, details)


# --- Billing / stock domain errors ---


class InvalidPeriod(AppError):
    """Malformed year/month or YYYY-MM period."""
    def __init__(self, message: str = "Período inválido", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class NoKitComponents(BusinessRuleViolationException):
    """A kit SKU has no configured child SKUs."""
    def __init__(self, kit_sku: str):
        super().__init__(
            f"Kit {kit_sku} não possui componentes filhos configurados.",
            {"kit_sku": kit_sku},
        )


class InsufficientStock(BusinessRuleViolationException):
    """Not enough stock on a SKU to cover the requested quantity."""
    def __init__(self, sku: str, available: int, required: int):
        self.sku = sku
        self.available = available
        self.required = required
        super().__init__(
            f"Estoque insuficiente do SKU {sku}. Disponível: {available}, Necessário: {required}",
            {"sku": sku, "available": available, "required": required},
        )


class NoMatchingTier(BusinessRuleViolationException):
    """No pricing band covers the requested quantity."""
    def __init__(self, quantity: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Nenhuma faixa de preço configurada para a quantidade {quantity}.",
            {"quantity": quantity, **(details or {})},
        )


class AlreadyProcessed(AppError):
    """A sale was already dispatched and its stock already deducted."""
    def __init__(self, sale_id: int, sku: str):
        super().__init__(
            "Venda já processada.",
            status.HTTP_409_CONFLICT,
            {"sale_id": sale_id, "sku": sku},
        )


class TransactionConflict(AppError):
    """Row-lock contention, deadlock or serialization failure."""

    retryable = True

    def __init__(self, message: str = "Conflito de concorrência. Tente novamente.", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_409_CONFLICT, details)


class BillingTimeout(AppError):
    """The billing transaction exceeded its deadline and was rolled back."""

    retryable = True

    def __init__(self, message: str = "Tempo limite excedido ao calcular a fatura.", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE, details)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions globally."""

    if isinstance(exc, AppError):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.__class__.__name__,
                    "message": exc.message,
                    "details": exc.details,
                    "retryable": exc.retryable,
                    "path": request.url.path,
                }
            },
        )

    logger.exception("Unexpected error occurred", path=request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "InternalServerError",
                "message": "An unexpected error occurred. Please try again later.",
                "path": request.url.path,
            }
        },
    )
