"""Load catalog products from a JSON file.

The file holds a list of objects with ``id``, ``name``, ``price`` and
``inventory``, plus optional ``is_active`` and ``image``.
"""

import json
from pathlib import Path

import structlog

from ordering.catalog.port import Catalog, ProductInfo

logger = structlog.get_logger(__name__)


def load_products(path) -> list[ProductInfo]:
    with Path(path).open(encoding="utf-8") as fh:
        records = json.load(fh)

    return [
        ProductInfo(
            id=str(record["id"]),
            name=record["name"],
            price=float(record["price"]),
            inventory=int(record["inventory"]),
            is_active=bool(record.get("is_active", True)),
            image=record.get("image"),
        )
        for record in records
    ]


def seed_catalog(catalog: Catalog, products: list[ProductInfo]) -> int:
    """Upsert ``products`` into ``catalog``. Returns how many were written."""
    for product in products:
        catalog.add_product(product)
    logger.info("catalog_seeded", products=len(products), catalog=type(catalog).__name__)
    return len(products)
