"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and StripeGateway
(production) without changing any domain or application code.

Amounts cross this boundary in minor currency units (cents).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

SUCCEEDED = "succeeded"

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


@dataclass(frozen=True)
class IntentHandle:
    """A newly created payment intent, as handed to the client."""

    id: str
    client_secret: str


@dataclass(frozen=True)
class IntentStatus:
    """The provider's current view of a payment intent."""

    id: str
    status: str
    amount: int | None = None
    payment_method_ref: str | None = None
    receipt_email: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


@dataclass(frozen=True)
class SavedPaymentMethod:
    """A card saved against a provider customer."""

    id: str
    type: str = "card"
    brand: str | None = None
    last4: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None


@dataclass(frozen=True)
class WebhookEvent:
    """A verified webhook event, reduced to what reconciliation needs."""

    id: str
    type: str
    intent_id: str | None = None
    order_id: str | None = None
    status: str | None = None
    payment_method_ref: str | None = None
    receipt_email: str | None = None
    failure_message: str | None = None


def to_minor_units(amount: float) -> int:
    """Convert a currency amount to integer cents, rounding half-up."""
    return int((Decimal(repr(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def webhook_event_from_dict(data: dict) -> WebhookEvent:
    """Build a WebhookEvent from a provider event body (``data.object`` is the intent)."""
    intent = (data.get("data") or {}).get("object") or {}
    metadata = intent.get("metadata") or {}
    last_error = intent.get("last_payment_error") or {}
    return WebhookEvent(
        id=data.get("id", ""),
        type=data.get("type", ""),
        intent_id=intent.get("id"),
        order_id=metadata.get("order_id"),
        status=intent.get("status"),
        payment_method_ref=intent.get("payment_method"),
        receipt_email=intent.get("receipt_email"),
        failure_message=last_error.get("message"),
    )


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_customer(
        self,
        account_id: str,
        email: str | None = None,
        name: str | None = None,
        idempotency_key: str | None = None,
    ) -> str:
        """Create a customer record at the provider and return its reference.

        Repeating a call with the same ``idempotency_key`` returns the customer
        created by the first call.
        """
        ...

    @abstractmethod
    def create_intent(
        self,
        amount: int,
        currency: str,
        customer_ref: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ) -> IntentHandle:
        """Create a payment intent for ``amount`` minor units."""
        ...

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> IntentStatus:
        """Fetch the current status of an intent from the provider."""
        ...

    @abstractmethod
    def create_setup_intent(self, customer_ref: str, metadata: dict) -> IntentHandle:
        """Start saving a card for later payments, confirmed on the client."""
        ...

    @abstractmethod
    def list_payment_methods(self, customer_ref: str) -> list[SavedPaymentMethod]:
        """List the cards saved against a customer."""
        ...

    @abstractmethod
    def set_default_payment_method(self, customer_ref: str, payment_method_ref: str) -> None:
        """Attach a payment method to the customer and make it the default."""
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> WebhookEvent:
        """Verify a webhook's signature and parse it.

        Raises:
            InvalidSignature: The signature is missing, malformed or does not
                match the payload.
        """
        ...
