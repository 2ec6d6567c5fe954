"""Storefront checkout management CLI.

Usage:
    python src/manage.py seed-catalog                      # data/products.json
    python src/manage.py seed-catalog --file my-products.json
    python src/manage.py show-product 65f1c0ffee0000000000a001

Seeding writes to the configured catalog backend. With the default in-memory
backend nothing outlives the command; point the API at the same file with
CATALOG_SEED_FILE instead.
"""

import argparse
import sys
from pathlib import Path

DEFAULT_PRODUCTS_FILE = Path(__file__).resolve().parent.parent / "data" / "products.json"


def seed(path):
    from ordering import settings
    from ordering.catalog import get_catalog
    from ordering.catalog.seed import load_products, seed_catalog

    products = load_products(path)
    count = seed_catalog(get_catalog(), products)
    print(f"Seeded {count} products into the {settings.catalog_backend()} catalog.")
    if settings.catalog_backend() == "memory":
        print(f"  In-memory catalog is not persisted; start the API with CATALOG_SEED_FILE={path}")


def show(product_id):
    from ordering.catalog import get_catalog

    product = get_catalog().get_product(product_id)
    if product is None:
        print(f"Product not found: {product_id}")
        return 1

    status = "active" if product.is_active else "inactive"
    print(f"{product.id}  {product.name}  {product.price:.2f}  stock={product.inventory}  ({status})")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Storefront checkout management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed_parser = subparsers.add_parser("seed-catalog", help="Load products from a JSON file")
    seed_parser.add_argument(
        "--file",
        default=str(DEFAULT_PRODUCTS_FILE),
        help="Product file to load (default: data/products.json)",
    )

    show_parser = subparsers.add_parser("show-product", help="Print a catalog product and its stock")
    show_parser.add_argument("product_id")

    args = parser.parse_args()

    if args.command == "seed-catalog":
        seed(args.file)
    elif args.command == "show-product":
        return show(args.product_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
