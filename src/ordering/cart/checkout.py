"""Checkout from the account's server cart.

The server cart is the authority at checkout: the order is built from a
snapshot of its lines, not from anything the client sends. Once the order has
been placed, exactly the snapshotted quantities are taken out of the cart, so
anything added while the order was being placed is still there afterwards.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.cart.items import load_or_create_cart
from ordering.domain import ordering
from ordering.order.placement import place_order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class RemoveCheckedOutLines:
    account_id = Identifier(required=True)
    lines = Text(required=True)  # JSON array of the checkout snapshot


@ordering.command_handler(part_of=Cart)
class CheckoutCartHandler:
    @handle(RemoveCheckedOutLines)
    def remove_checked_out_lines(self, command):
        cart = load_or_create_cart(command.account_id)
        cart.remove_checked_out(json.loads(command.lines))
        current_domain.repository_for(Cart).add(cart)
        return cart


def checkout_cart(account_id, shipping_address, payment_method, client_prices=None) -> str:
    """Place an order from the account's cart and remove what was ordered. Returns the order id."""
    cart: Cart = load_or_create_cart(account_id)
    lines = cart.snapshot()
    if not lines:
        raise ValidationError({"cart": ["Cart is empty"]})

    order_id = place_order(
        owner_id=account_id,
        lines=lines,
        shipping_address=shipping_address,
        payment_method=payment_method,
        client_prices=client_prices,
    )

    command = RemoveCheckedOutLines(account_id=account_id, lines=json.dumps(lines))
    current_domain.process(command, asynchronous=False)
    logger.info("cart_checked_out", account_id=str(account_id), order_id=order_id)
    return order_id
