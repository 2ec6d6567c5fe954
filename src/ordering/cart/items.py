"""Cart line management: commands and handler.

The first add for an account creates its cart. Adds are checked against the
catalog so a customer cannot hold more units of a selection than are in stock;
later stock changes are caught at checkout by the inventory guard.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.catalog import get_catalog
from ordering.domain import ordering
from ordering.errors import OutOfStock, ProductNotFound

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class AddToCart:
    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    size = String(required=True, max_length=50)
    color = String(required=True, max_length=50)


@ordering.command(part_of="Cart")
class UpdateCartQuantity:
    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True, max_length=50)
    color = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=0)


@ordering.command(part_of="Cart")
class RemoveFromCart:
    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True, max_length=50)
    color = String(required=True, max_length=50)


@ordering.command(part_of="Cart")
class ClearCart:
    account_id = Identifier(required=True)


def load_or_create_cart(account_id):
    """Return the account's cart, creating an empty one on first use."""
    repo = current_domain.repository_for(Cart)
    try:
        return repo.get(account_id)
    except ObjectNotFoundError:
        logger.debug("cart_created", account_id=str(account_id))
        return Cart.create(account_id=account_id)


@ordering.command_handler(part_of=Cart)
class ManageCartLinesHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = get_catalog().get_product(command.product_id)
        if product is None or not product.is_active:
            raise ProductNotFound(command.product_id)

        cart = load_or_create_cart(command.account_id)
        resulting = cart.quantity_of(command.product_id, command.size, command.color) + command.quantity
        if resulting > product.inventory:
            raise OutOfStock(command.product_id, product.inventory, resulting)

        cart.add_line(
            product_id=command.product_id,
            quantity=command.quantity,
            size=command.size,
            color=command.color,
        )
        current_domain.repository_for(Cart).add(cart)
        return cart

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = load_or_create_cart(command.account_id)
        cart.update_quantity(
            product_id=command.product_id,
            size=command.size,
            color=command.color,
            quantity=command.quantity,
        )
        current_domain.repository_for(Cart).add(cart)
        return cart

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_or_create_cart(command.account_id)
        cart.remove_line(product_id=command.product_id, size=command.size, color=command.color)
        current_domain.repository_for(Cart).add(cart)
        return cart

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_or_create_cart(command.account_id)
        cart.clear()
        current_domain.repository_for(Cart).add(cart)
        return cart
