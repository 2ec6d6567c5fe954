"""Business-rule failures of the checkout pipeline.

Malformed caller data is reported with Protean's ``ValidationError``. The
errors below cover the remaining expected outcomes; each carries the HTTP
status it maps to and whatever data the caller needs to take corrective
action. The API layer translates them in one place (``ordering.api.errors``).
"""


class OrderingError(Exception):
    """Base class for expected, typed pipeline failures."""

    status_code = 400
    code = "ordering_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ProductNotFound(OrderingError):
    status_code = 404
    code = "product_not_found"

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}")
        self.product_id = str(product_id)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "product_id": self.product_id}


class OutOfStock(OrderingError):
    status_code = 409
    code = "out_of_stock"

    def __init__(self, product_id: str, available: int, requested: int | None = None) -> None:
        super().__init__(f"Not enough inventory for product {product_id}. Available: {available}")
        self.product_id = str(product_id)
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "product_id": self.product_id,
            "available": self.available,
            "requested": self.requested,
        }


class OrderNotFound(OrderingError):
    status_code = 404
    code = "order_not_found"

    def __init__(self, order_id: str) -> None:
        super().__init__("Order not found")
        self.order_id = str(order_id)


class NotOrderOwner(OrderingError):
    status_code = 403
    code = "not_order_owner"

    def __init__(self, order_id: str) -> None:
        super().__init__("Not authorized to access this order")
        self.order_id = str(order_id)


class AlreadyPaid(OrderingError):
    status_code = 409
    code = "already_paid"

    def __init__(self, order_id: str) -> None:
        super().__init__("Order is already paid")
        self.order_id = str(order_id)


class PaymentNotCompleted(OrderingError):
    status_code = 402
    code = "payment_not_completed"

    def __init__(self, status: str) -> None:
        super().__init__("Payment could not be completed")
        self.status = status

    def to_dict(self) -> dict:
        return {**super().to_dict(), "status": self.status}


class ProviderUnavailable(OrderingError):
    """The payment provider timed out or could not be reached. Safe to retry."""

    status_code = 503
    code = "provider_unavailable"

    def __init__(self, operation: str) -> None:
        super().__init__("Payment could not be completed")
        self.operation = operation


class InvalidSignature(OrderingError):
    status_code = 400
    code = "invalid_signature"

    def __init__(self, reason: str = "signature mismatch") -> None:
        super().__init__("Webhook rejected")
        self.reason = reason
