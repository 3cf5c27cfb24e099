"""
Loopcraft - Custom Exceptions
==============================
Business-level exceptions that are caught at the HTTP boundary and converted
to {"success": false, "message": ...} responses (see main.py).
"""


class ShopError(Exception):
    """Base exception for all business logic errors."""
    status_code = 500

    def __init__(self, message: str = "Something went wrong."):
        self.message = message
        super().__init__(self.message)


class ValidationError(ShopError):
    """Raised for missing or malformed input and business-rule violations."""
    status_code = 400


class NotFoundError(ShopError):
    """Raised when a requested resource doesn't exist."""
    status_code = 404


class AuthenticationError(ShopError):
    """Raised when a credential is missing, invalid or expired."""
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(ShopError):
    """Raised when user lacks permission."""
    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class ConflictError(ShopError):
    """Raised for unique constraint violations at the business level."""
    status_code = 409


class InsufficientStockError(ValidationError):
    """Raised when product stock is not enough for the requested quantity."""
    def __init__(self, product_name: str = "", available: int = None):
        if product_name and available is not None:
            msg = f"Only {available} left in stock for {product_name}"
        elif product_name:
            msg = f"Not enough stock for {product_name}"
        else:
            msg = "Not enough stock."
        super().__init__(msg)


class PaymentError(ShopError):
    """Raised when a payment cannot be confirmed (e.g. signature mismatch)."""
    status_code = 400


class ExternalServiceError(ShopError):
    """Raised when the payment gateway or another provider fails."""
    status_code = 500


class RateLimitedError(ShopError):
    """Raised when a client exceeds the request rate limit."""
    status_code = 429

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Too many requests. Try again in {retry_after} seconds.")
