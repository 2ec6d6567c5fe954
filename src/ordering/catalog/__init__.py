"""Catalog factory.

Provides get_catalog() / set_catalog() to swap implementations:
- InMemoryCatalog for development and testing, optionally seeded from
  CATALOG_SEED_FILE
- MongoCatalog when CATALOG_BACKEND=mongo
"""

from ordering import settings
from ordering.catalog.memory_adapter import InMemoryCatalog
from ordering.catalog.port import Catalog
from ordering.catalog.seed import load_products

_current_catalog: Catalog | None = None


def _build_catalog() -> Catalog:
    if settings.catalog_backend() == "mongo":
        from ordering.catalog.mongo_adapter import MongoCatalog

        return MongoCatalog(settings.mongodb_uri(), settings.mongodb_database())

    seed_file = settings.catalog_seed_file()
    return InMemoryCatalog(products=load_products(seed_file) if seed_file else None)


def get_catalog() -> Catalog:
    """Return the current catalog. Defaults to the configured backend."""
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = _build_catalog()
    return _current_catalog


def set_catalog(catalog: Catalog) -> None:
    """Override the active catalog (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to default catalog."""
    global _current_catalog
    _current_catalog = None
