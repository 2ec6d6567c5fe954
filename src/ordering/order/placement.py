"""Order placement: turns a cart snapshot into a persisted, unpaid order.

Placement runs in a fixed sequence and either completes or leaves nothing
behind:

1. validate the request shape (lines, shipping address, payment method)
2. resolve every product from the catalog (name, price and image are copied
   from the catalog, never from the client)
3. reserve inventory for all lines through the inventory guard
4. price the lines on the server; client-supplied totals are only compared
5. persist the order

Steps 4 and 5 run as the ``PlaceOrder`` command inside a unit of work. If that
fails for any reason, including the commit itself, the reservation from step 3
is released before the error propagates.
"""

import json
from dataclasses import asdict, dataclass

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import validate_line
from ordering.catalog import get_catalog
from ordering.domain import ordering
from ordering.errors import ProductNotFound
from ordering.inventory.guard import release, reserve
from ordering.order.order import Order, ShippingAddress
from ordering.order.pricing import discrepancies, price

logger = structlog.get_logger(__name__)

_ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")
_REQUIRED_ADDRESS_FIELDS = ("street", "city", "zip_code", "country")


@dataclass(frozen=True)
class OrderLine:
    """A cart line resolved against the catalog."""

    product_id: str
    quantity: int
    size: str
    color: str
    name: str
    price: float
    image: str | None = None


@ordering.command(part_of="Order")
class PlaceOrder:
    owner_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of resolved OrderLine dicts
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = String(required=True, max_length=50)
    client_prices = Text()  # JSON: client-computed price fields, if any


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = [OrderLine(**line) for line in json.loads(command.items)]
        pricing = price(lines)

        if command.client_prices:
            mismatches = discrepancies(json.loads(command.client_prices), pricing)
            if mismatches:
                logger.warning(
                    "client_price_mismatch",
                    owner_id=str(command.owner_id),
                    mismatches=mismatches,
                )

        order = Order.place(
            owner_id=command.owner_id,
            items=[asdict(line) for line in lines],
            shipping_address=json.loads(command.shipping_address),
            payment_method=command.payment_method,
            pricing=pricing,
        )
        current_domain.repository_for(Order).add(order)

        return str(order.id)


def validate_request(lines, shipping_address, payment_method):
    """Reject malformed placement input before any product or stock is touched."""
    if not lines:
        raise ValidationError({"items": ["Order must contain at least one item"]})
    for line in lines:
        validate_line(line.get("product_id"), line.get("quantity"), line.get("size"), line.get("color"))

    if not shipping_address:
        raise ValidationError({"shipping_address": ["Shipping address is required"]})
    missing = [name for name in _REQUIRED_ADDRESS_FIELDS if not shipping_address.get(name)]
    if missing:
        raise ValidationError({f"shipping_address.{name}": ["This field is required"] for name in missing})

    if not payment_method:
        raise ValidationError({"payment_method": ["Payment method is required"]})


def resolve_lines(lines, catalog=None) -> list[OrderLine]:
    """Copy current name, price and image from the catalog onto each line."""
    catalog = catalog or get_catalog()
    resolved = []
    for line in lines:
        product = catalog.get_product(line["product_id"])
        if product is None or not product.is_active:
            raise ProductNotFound(line["product_id"])
        resolved.append(
            OrderLine(
                product_id=str(line["product_id"]),
                quantity=line["quantity"],
                size=line["size"],
                color=line["color"],
                name=product.name,
                price=product.price,
                image=product.image,
            )
        )
    return resolved


def place_order(owner_id, lines, shipping_address, payment_method, client_prices=None) -> str:
    """Place an order for ``owner_id`` and return its id.

    Args:
        owner_id: Account placing the order.
        lines: List of dicts with product_id, quantity, size and color.
        shipping_address: Dict with street, city, state, zip_code, country.
        payment_method: Payment method kind, e.g. "card".
        client_prices: Optional dict of client-computed items_price,
            tax_price, shipping_price and total_price. Compared, never trusted.

    Raises:
        ValidationError: Malformed request.
        ProductNotFound: A line names an unknown or inactive product.
        OutOfStock: Stock cannot cover a product; nothing is reserved.
    """
    validate_request(lines, shipping_address, payment_method)
    address = {name: shipping_address.get(name) for name in _ADDRESS_FIELDS}
    ShippingAddress(**address)

    resolved = resolve_lines(lines)
    reserve(resolved)

    command = PlaceOrder(
        owner_id=owner_id,
        items=json.dumps([asdict(line) for line in resolved]),
        shipping_address=json.dumps(address),
        payment_method=payment_method,
        client_prices=json.dumps(client_prices) if client_prices else None,
    )
    try:
        order_id = current_domain.process(command, asynchronous=False)
    except Exception:
        logger.warning("order_placement_rolled_back", owner_id=str(owner_id))
        release(resolved)
        raise

    logger.info("order_placed", order_id=order_id, owner_id=str(owner_id), lines=len(resolved))
    return order_id
