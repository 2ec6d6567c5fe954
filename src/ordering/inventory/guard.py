"""Inventory Guard: all-or-nothing stock reservation for an order.

Stock is drawn through the Catalog's atomic decrement-if-sufficient
operation, one product at a time. Several lines of the same product (different
sizes or colors) draw from one stock counter, so demand is summed per product
first. When any product cannot be satisfied, every decrement already applied in
the same call is restocked before ``OutOfStock`` is raised, leaving inventory
exactly as it was.
"""

from collections import OrderedDict

import structlog

from ordering.catalog import get_catalog
from ordering.catalog.port import Catalog
from ordering.errors import OutOfStock

logger = structlog.get_logger(__name__)


def _demand(lines) -> "OrderedDict[str, int]":
    demand: OrderedDict[str, int] = OrderedDict()
    for line in lines:
        product_id = str(line.product_id)
        demand[product_id] = demand.get(product_id, 0) + int(line.quantity)
    return demand


def reserve(lines, catalog: Catalog | None = None) -> None:
    """Decrement stock for every line, or for none of them.

    Args:
        lines: Iterable of objects exposing ``product_id`` and ``quantity``.
        catalog: Catalog to draw from. Defaults to the active catalog.

    Raises:
        OutOfStock: The first product whose stock could not cover the demand,
            with the units available at the time of the check.
    """
    catalog = catalog or get_catalog()
    reserved: list[tuple[str, int]] = []

    try:
        for product_id, quantity in _demand(lines).items():
            if not catalog.decrement_inventory_if_sufficient(product_id, quantity):
                product = catalog.get_product(product_id)
                available = product.inventory if product else 0
                logger.info(
                    "inventory_reservation_rejected",
                    product_id=product_id,
                    requested=quantity,
                    available=available,
                )
                raise OutOfStock(product_id, available, quantity)
            reserved.append((product_id, quantity))
    except Exception:
        _restock(reserved, catalog)
        raise

    logger.debug("inventory_reserved", products=len(reserved))


def release(lines, catalog: Catalog | None = None) -> None:
    """Return previously reserved quantities to stock."""
    catalog = catalog or get_catalog()
    _restock(list(_demand(lines).items()), catalog)


def _restock(reserved: list[tuple[str, int]], catalog: Catalog) -> None:
    for product_id, quantity in reserved:
        catalog.restock(product_id, quantity)
        logger.info("inventory_restocked", product_id=product_id, quantity=quantity)
