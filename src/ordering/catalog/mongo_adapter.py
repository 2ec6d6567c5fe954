"""MongoDB-backed catalog adapter.

Reads the storefront's ``products`` collection. Stock is decremented with one
``find_one_and_update`` whose filter requires ``inventory >= quantity``, so the
check and the write happen inside a single document update on the server.
"""

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient, ReturnDocument

from ordering.catalog.port import Catalog, ProductInfo


def _product_key(product_id: str):
    try:
        return ObjectId(str(product_id))
    except InvalidId:
        return str(product_id)


class MongoCatalog(Catalog):
    def __init__(self, uri: str, database: str, collection: str = "products") -> None:
        self._client = MongoClient(uri)
        self._collection = self._client[database][collection]

    def get_product(self, product_id: str) -> ProductInfo | None:
        doc = self._collection.find_one({"_id": _product_key(product_id)})
        if not doc:
            return None
        images = doc.get("images") or []
        return ProductInfo(
            id=str(doc["_id"]),
            name=doc.get("name", ""),
            price=float(doc.get("price", 0.0)),
            inventory=int(doc.get("inventory", 0)),
            is_active=bool(doc.get("isActive", True)),
            image=images[0].get("url") if images else None,
        )

    def decrement_inventory_if_sufficient(self, product_id: str, quantity: int) -> bool:
        updated = self._collection.find_one_and_update(
            {
                "_id": _product_key(product_id),
                "isActive": {"$ne": False},
                "inventory": {"$gte": quantity},
            },
            {"$inc": {"inventory": -quantity}},
            return_document=ReturnDocument.AFTER,
        )
        return updated is not None

    def restock(self, product_id: str, quantity: int) -> None:
        self._collection.update_one(
            {"_id": _product_key(product_id)},
            {"$inc": {"inventory": quantity}},
        )

    def add_product(self, product: ProductInfo) -> None:
        self._collection.update_one(
            {"_id": _product_key(product.id)},
            {
                "$set": {
                    "name": product.name,
                    "price": product.price,
                    "inventory": product.inventory,
                    "isActive": product.is_active,
                    "images": [{"url": product.image}] if product.image else [],
                }
            },
            upsert=True,
        )
