"""Catalog port (abstract interface).

The product catalog is owned elsewhere; checkout only needs to read a product
and to adjust its stock count. Implementations must make
``decrement_inventory_if_sufficient`` a single conditional update so that two
concurrent reservations can never both pass the check and overdraw stock.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductInfo:
    """Read-only view of a catalog product as seen by checkout."""

    id: str
    name: str
    price: float
    inventory: int
    is_active: bool = True
    image: str | None = None


class Catalog(ABC):
    """Abstract catalog interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductInfo | None:
        """Return the product, or None when it does not exist."""
        ...

    @abstractmethod
    def decrement_inventory_if_sufficient(self, product_id: str, quantity: int) -> bool:
        """Atomically take ``quantity`` units if at least that many are in stock.

        Returns False, and changes nothing, when stock is insufficient or the
        product does not exist.
        """
        ...

    @abstractmethod
    def restock(self, product_id: str, quantity: int) -> None:
        """Return ``quantity`` units to stock."""
        ...

    @abstractmethod
    def add_product(self, product: ProductInfo) -> None:
        """Insert ``product``, replacing any existing product with the same id."""
        ...
