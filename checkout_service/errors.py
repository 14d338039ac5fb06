"""
errors.py — Error Types of the Checkout Service

Every failure a client can see is a `CheckoutError` carrying a stable code,
an HTTP status and a short message. The API layer renders them as
`{"error": message, "code": code}` and never leaks internal details.
"""


class CheckoutError(Exception):
    """Base class for all user-facing errors."""

    code = "CHECKOUT_ERROR"
    status_code = 400
    message = "Checkout error"

    def __init__(self, message: str = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class NotFoundError(CheckoutError):
    code = "NOT_FOUND"
    status_code = 404
    message = "Not found"


class ProductNotFound(NotFoundError):
    code = "PRODUCT_NOT_FOUND"
    message = "Product not found"


class CartNotFound(NotFoundError):
    code = "CART_NOT_FOUND"
    message = "Cart not found"


class OrderNotFound(NotFoundError):
    code = "ORDER_NOT_FOUND"
    message = "Order not found"


class InvalidOrderState(CheckoutError):
    code = "INVALID_ORDER_STATE"
    message = "Order is not pending payment"


class InvalidSize(CheckoutError):
    code = "INVALID_SIZE"
    message = "Size is not available for this product"


class EmptyCart(CheckoutError):
    code = "EMPTY_CART"
    message = "Cart is empty"


class MissingFields(CheckoutError):
    code = "MISSING_FIELDS"
    message = "Missing required fields"


class InvalidHash(CheckoutError):
    code = "INVALID_HASH"
    message = "Invalid checkout session"


class SessionExpired(CheckoutError):
    code = "SESSION_EXPIRED"
    message = "Checkout session expired"


class InvalidOrder(CheckoutError):
    code = "INVALID_ORDER"
    message = "Invalid order"


class ProcessorCommunicationFailure(CheckoutError):
    """Timeout, transport error or non-2xx answer from the payment processor."""

    code = "PROCESSOR_COMMUNICATION_FAILURE"
    status_code = 502
    message = "Payment processor unavailable"


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing."""
