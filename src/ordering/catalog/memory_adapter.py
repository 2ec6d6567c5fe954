"""In-memory catalog for development and testing.

A single lock covers every stock mutation, which makes the check and the
decrement one indivisible step.
"""

import threading
from dataclasses import replace

from ordering.catalog.port import Catalog, ProductInfo


class InMemoryCatalog(Catalog):
    def __init__(self, products: list[ProductInfo] | None = None) -> None:
        self._lock = threading.Lock()
        self._products: dict[str, ProductInfo] = {}
        for product in products or []:
            self.add_product(product)

    def add_product(self, product: ProductInfo) -> None:
        with self._lock:
            self._products[str(product.id)] = product

    def get_product(self, product_id: str) -> ProductInfo | None:
        with self._lock:
            return self._products.get(str(product_id))

    def decrement_inventory_if_sufficient(self, product_id: str, quantity: int) -> bool:
        with self._lock:
            product = self._products.get(str(product_id))
            if product is None or not product.is_active or product.inventory < quantity:
                return False
            self._products[str(product_id)] = replace(product, inventory=product.inventory - quantity)
            return True

    def restock(self, product_id: str, quantity: int) -> None:
        with self._lock:
            product = self._products.get(str(product_id))
            if product is not None:
                self._products[str(product_id)] = replace(product, inventory=product.inventory + quantity)
