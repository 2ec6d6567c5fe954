"""Order aggregate (CQRS): an immutable snapshot of a purchase.

An order is persisted as a single document: ordered line items, shipping
address and pricing are captured once at placement and never change, even if
the catalog does. Only the payment and delivery status fields move afterwards.

Payment State Machine:
    PENDING -> INTENT_CREATED -> PAID (terminal)
    PENDING/INTENT_CREATED -> FAILED
    FAILED -> INTENT_CREATED (a new intent restarts the attempt)

``mark_paid`` is the only way into PAID. It is a compare-and-set transition:
an order that is already paid is left untouched and the call reports False,
so client confirmation and webhook delivery can race without double-applying
side effects.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import AlreadyPaid
from ordering.order.events import (
    OrderDelivered,
    OrderPaid,
    OrderPlaced,
    PaymentAttemptFailed,
    PaymentIntentCreated,
)

# Pricing components must add up to the total within half a cent
PRICE_TOLERANCE = 0.005


class PaymentStatus(Enum):
    PENDING = "Pending"
    INTENT_CREATED = "Intent_Created"
    PAID = "Paid"
    FAILED = "Failed"


class PaymentSource(Enum):
    CLIENT_CONFIRMATION = "client_confirmation"
    WEBHOOK = "webhook"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.INTENT_CREATED, PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.INTENT_CREATED: {PaymentStatus.INTENT_CREATED, PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.INTENT_CREATED, PaymentStatus.PAID},
    PaymentStatus.PAID: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships. Captured at placement and never updated."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@ordering.value_object(part_of="Order")
class PaymentResult:
    """The provider's record of the successful payment."""

    id = String(required=True, max_length=255)
    status = String(required=True, max_length=50)
    update_time = DateTime(required=True)
    email_address = String(max_length=254)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A purchased line, copied from the cart and catalog at placement time."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    size = String(required=True, max_length=50)
    color = String(required=True, max_length=50)
    image = String(max_length=1024)

    def to_dict(self):
        return {
            "product_id": str(self.product_id),
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "size": self.size,
            "color": self.color,
            "image": self.image,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    owner_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(required=True, max_length=50)

    items_price = Float(required=True, min_value=0.0)
    tax_price = Float(required=True, min_value=0.0)
    shipping_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)

    is_paid = Boolean(default=False)
    paid_at = DateTime()
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_intent_id = String(max_length=255)
    payment_result = ValueObject(PaymentResult)
    payment_method_ref = String(max_length=255)
    last_payment_error = String(max_length=500)

    is_delivered = Boolean(default=False)
    delivered_at = DateTime()

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_equal_sum_of_components(self):
        if self.total_price is None:
            return
        expected = (self.items_price or 0.0) + (self.tax_price or 0.0) + (self.shipping_price or 0.0)
        if abs(self.total_price - expected) > PRICE_TOLERANCE:
            raise ValidationError({"total_price": ["Total price must equal items, tax and shipping combined"]})

    @invariant.post
    def paid_order_must_record_payment_time(self):
        if self.is_paid and self.paid_at is None:
            raise ValidationError({"paid_at": ["A paid order must record when it was paid"]})

    @invariant.post
    def delivery_requires_payment(self):
        if self.is_delivered and not self.is_paid:
            raise ValidationError({"is_delivered": ["Only paid orders can be delivered"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, owner_id, items, shipping_address, payment_method, pricing):
        """Create a new, unpaid order.

        Args:
            owner_id: Account placing the order.
            items: List of dicts with product_id, name, price, quantity,
                size, color and optional image.
            shipping_address: Dict of ShippingAddress fields.
            payment_method: Payment method kind chosen by the customer.
            pricing: ``PriceBreakdown`` computed by the server.
        """
        if not items:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            owner_id=owner_id,
            shipping_address=ShippingAddress(**shipping_address),
            payment_method=payment_method,
            items_price=pricing.items_price,
            tax_price=pricing.tax_price,
            shipping_price=pricing.shipping_price,
            total_price=pricing.total_price,
            is_paid=False,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_items(OrderItem(**item))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                owner_id=str(owner_id),
                items=json.dumps([item.to_dict() for item in order.items]),
                payment_method=payment_method,
                items_price=pricing.items_price,
                tax_price=pricing.tax_price,
                shipping_price=pricing.shipping_price,
                total_price=pricing.total_price,
                placed_at=now,
            )
        )

        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate that the current payment state allows transition to target."""
        current = PaymentStatus(self.payment_status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"payment_status": [f"Cannot transition from {current.value} to {target_status.value}"]}
            )

    def is_owned_by(self, account_id):
        return str(self.owner_id) == str(account_id)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_intent(self, intent_id, currency):
        """Track a newly issued payment intent. Only the latest intent is kept."""
        if self.is_paid:
            raise AlreadyPaid(self.id)
        self._assert_can_transition(PaymentStatus.INTENT_CREATED)

        previous_intent_id = self.payment_intent_id
        with atomic_change(self):
            self.payment_intent_id = intent_id
            self.payment_status = PaymentStatus.INTENT_CREATED.value
            self.last_payment_error = None
            self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentIntentCreated(
                order_id=str(self.id),
                intent_id=intent_id,
                previous_intent_id=previous_intent_id,
                amount=self.total_price,
                currency=currency,
            )
        )

    def mark_paid(self, intent_id, provider_status, source, email_address=None, payment_method_ref=None):
        """Move the order to PAID unless it already is.

        Returns:
            True when this call performed the transition, False when the order
            was already paid (nothing is changed).
        """
        if self.is_paid:
            return False
        self._assert_can_transition(PaymentStatus.PAID)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.paid_at = now
            self.is_paid = True
            self.payment_status = PaymentStatus.PAID.value
            self.payment_intent_id = intent_id
            self.payment_result = PaymentResult(
                id=intent_id,
                status=provider_status,
                update_time=now,
                email_address=email_address,
            )
            self.payment_method_ref = payment_method_ref
            self.last_payment_error = None
            self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                owner_id=str(self.owner_id),
                intent_id=intent_id,
                total_price=self.total_price,
                paid_at=now,
                source=PaymentSource(source).value,
            )
        )
        return True

    def record_payment_failure(self, intent_id, reason=None):
        """Note a failed attempt on the current intent.

        Failures for a superseded intent, or for an order that is already paid,
        are ignored. Never touches ``is_paid``, ``paid_at`` or ``payment_result``.

        Returns:
            True when the failure was recorded.
        """
        if self.is_paid or intent_id != self.payment_intent_id:
            return False
        self._assert_can_transition(PaymentStatus.FAILED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.payment_status = PaymentStatus.FAILED.value
            self.last_payment_error = (reason or "Payment failed")[:500]
            self.updated_at = now

        self.raise_(
            PaymentAttemptFailed(
                order_id=str(self.id),
                intent_id=intent_id,
                reason=reason,
                failed_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def mark_delivered(self):
        if not self.is_paid:
            raise ValidationError({"is_delivered": ["Only paid orders can be delivered"]})
        if self.is_delivered:
            raise ValidationError({"is_delivered": ["Order is already delivered"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.delivered_at = now
            self.is_delivered = True
            self.updated_at = now

        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                delivered_at=now,
            )
        )
