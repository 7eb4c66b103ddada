# marketplace/domain/errors.py
"""
Domain errors of the order core.

Every error carries the HTTP status it maps to and a stable ``code`` so the
API layer can render it without knowing the concrete class.
"""
from typing import Any, Dict


class MarketplaceError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details


# validation
class ValidationError(MarketplaceError):
    status_code = 422
    code = "validation_error"


class InvalidVariant(ValidationError):
    code = "invalid_variant"


# not found / ownership
class NotFoundError(MarketplaceError):
    status_code = 404
    code = "not_found"


class ProductNotFound(NotFoundError):
    code = "product_not_found"


class ItemNotFound(NotFoundError):
    code = "item_not_found"


class OrderNotFound(NotFoundError):
    code = "order_not_found"


class PaymentNotFound(NotFoundError):
    code = "payment_not_found"


class ReviewNotFound(NotFoundError):
    code = "review_not_found"


class ForbiddenError(MarketplaceError):
    status_code = 403
    code = "forbidden"


class NotOwner(ForbiddenError):
    code = "not_owner"


class NotEligible(ForbiddenError):
    code = "not_eligible"


# conflicts
class ConflictError(MarketplaceError):
    status_code = 409
    code = "conflict"


class InsufficientStock(ConflictError):
    status_code = 422
    code = "insufficient_stock"

    def __init__(self, product_id: int, requested: int, available: int | None = None, name: str | None = None):
        label = name or f"#{product_id}"
        super().__init__(
            f"Insufficient stock for product: {label}",
            product_id=product_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id


class ProductUnavailable(ConflictError):
    status_code = 422
    code = "product_unavailable"


class CartEmpty(ConflictError):
    status_code = 422
    code = "cart_empty"


class CheckoutInProgress(ConflictError):
    code = "checkout_in_progress"


class InvalidStatusTransition(ConflictError):
    status_code = 422
    code = "invalid_status_transition"


class DuplicatePayment(ConflictError):
    code = "duplicate_payment"


class AmountExceedsTotal(ConflictError):
    status_code = 422
    code = "amount_exceeds_total"


class PaymentNotPending(ConflictError):
    status_code = 422
    code = "payment_not_pending"


class AlreadyReviewed(ConflictError):
    code = "already_reviewed"


# infrastructure
class TransactionFailure(MarketplaceError):
    status_code = 500
    code = "transaction_failure"
