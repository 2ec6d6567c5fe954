"""Client cart sync: merges a client-held cart into the account's server cart.

After a successful merge the server cart is the only authority; the client is
expected to discard its local copy and render the returned cart.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.cart.items import load_or_create_cart
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class MergeClientCart:
    account_id = Identifier(required=True)
    lines = Text(required=True)  # JSON array of {product_id, quantity, size, color}


@ordering.command_handler(part_of=Cart)
class SyncClientCartHandler:
    @handle(MergeClientCart)
    def merge_client_cart(self, command):
        client_lines = json.loads(command.lines)

        cart = load_or_create_cart(command.account_id)
        cart.merge(client_lines)
        current_domain.repository_for(Cart).add(cart)

        logger.info(
            "client_cart_merged",
            account_id=str(command.account_id),
            client_lines=len(client_lines),
            cart_lines=len(cart.lines),
        )
        return cart
