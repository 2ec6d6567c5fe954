"""Domain events for the Order aggregate.

Events are immutable facts raised when an order is placed and whenever one of
its payment or delivery status fields changes. Subscribers (confirmation
email, analytics) rely on ``OrderPaid`` being raised exactly once per order.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """An order was created from a cart snapshot and its inventory reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    payment_method = String(required=True)
    items_price = Float(required=True)
    tax_price = Float(required=True)
    shipping_price = Float(required=True)
    total_price = Float(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentIntentCreated:
    """A payment intent was issued for the order; it replaces any earlier one."""

    __version__ = 1

    order_id = Identifier(required=True)
    intent_id = String(required=True)
    previous_intent_id = String()
    amount = Float(required=True)
    currency = String(required=True)


@ordering.event(part_of="Order")
class OrderPaid:
    """The payment provider confirmed that the order's payment succeeded."""

    __version__ = 1

    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    intent_id = String(required=True)
    total_price = Float(required=True)
    paid_at = DateTime(required=True)
    source = String(required=True)  # "client_confirmation" or "webhook"


@ordering.event(part_of="Order")
class PaymentAttemptFailed:
    """The provider reported a failed attempt for the order's current intent."""

    __version__ = 1

    order_id = Identifier(required=True)
    intent_id = String(required=True)
    reason = String()
    failed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    """A paid order was marked as delivered."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)
