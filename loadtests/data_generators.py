"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names of the API's Pydantic request schemas. Product
ids come from the same file the API loads with CATALOG_SEED_FILE, so every
generated line names a real, active product.
"""

import json
import os
import random
import time
import uuid
from pathlib import Path

from faker import Faker
from ordering.api.auth import issue_token
from ordering.catalog.seed import load_products
from ordering.payment.gateway.fake_adapter import FakeGateway
from ordering.payment.gateway.port import PAYMENT_SUCCEEDED, SUCCEEDED

fake = Faker()

PRODUCTS_FILE = os.getenv(
    "LOADTEST_PRODUCTS_FILE",
    str(Path(__file__).resolve().parent.parent / "data" / "products.json"),
)

_products = [product for product in load_products(PRODUCTS_FILE) if product.is_active]

# The scarcest product; contention scenarios all chase it
SCARCE_PRODUCT_ID = min(_products, key=lambda product: product.inventory).id

SIZES = ["XS", "S", "M", "L", "XL"]
COLORS = ["Black", "White", "Navy", "Olive", "Natural"]

# Signs webhook bodies with the secret the API verifies against
_signer = FakeGateway(webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", "whsec_dev"))


# ---------- Identity ----------


def account_id() -> str:
    return f"acct-lt-{uuid.uuid4().hex[:10]}"


def auth_headers(account: str) -> dict:
    """Bearer headers for ``account``. JWT_SECRET must match the API's."""
    token = issue_token(account, email=fake.free_email(), name=fake.name())
    return {"Authorization": f"Bearer {token}"}


# ---------- Cart ----------


def cart_line(product_id: str | None = None, quantity: int | None = None) -> dict:
    """Generate a CartLineSchema payload."""
    return {
        "product_id": product_id or random.choice(_products).id,
        "quantity": quantity or random.randint(1, 2),
        "size": random.choice(SIZES),
        "color": random.choice(COLORS),
    }


def client_cart(num_lines: int = 2) -> dict:
    """Generate a SyncCartRequest payload: the cart a guest built offline."""
    return {"lines": [cart_line() for _ in range(num_lines)]}


# ---------- Orders ----------


def shipping_address() -> dict:
    """Generate an AddressSchema payload."""
    return {
        "street": fake.street_address()[:255],
        "city": fake.city()[:100],
        "state": fake.state_abbr(),
        "zip_code": fake.zipcode()[:20],
        "country": "US",
    }


def checkout_data() -> dict:
    """Generate a CheckoutRequest payload."""
    return {
        "shipping_address": shipping_address(),
        "payment_method": random.choice(["card", "wallet"]),
    }


def order_data(num_lines: int = 2) -> dict:
    """Generate a PlaceOrderRequest payload."""
    return {
        "items": [cart_line() for _ in range(num_lines)],
        "shipping_address": shipping_address(),
        "payment_method": "card",
    }


# ---------- Payments ----------


def signed_success_webhook(intent_id: str, order_id: str) -> tuple[bytes, dict]:
    """Body and headers of a provider ``payment_intent.succeeded`` callback."""
    body = {
        "id": f"evt_lt_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "created": int(time.time()),
        "type": PAYMENT_SUCCEEDED,
        "data": {
            "object": {
                "id": intent_id,
                "object": "payment_intent",
                "status": SUCCEEDED,
                "payment_method": "pm_fake_visa",
                "receipt_email": fake.free_email(),
                "metadata": {"order_id": order_id},
            }
        },
    }
    payload = json.dumps(body).encode("utf-8")
    headers = {"Content-Type": "application/json", "Stripe-Signature": _signer.sign(payload)}
    return payload, headers
