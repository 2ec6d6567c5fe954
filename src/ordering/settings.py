"""Environment-driven settings for the Ordering service.

Values are read on access so tests and process managers can override them
through the environment without re-importing modules.
"""

import os


def environment() -> str:
    return (os.getenv("PROTEAN_ENV") or "development").lower()


def is_production() -> bool:
    return environment() == "production"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
def jwt_secret() -> str:
    return os.getenv("JWT_SECRET", "dev-only-jwt-secret-change-me-before-deploying")


def jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


# ---------------------------------------------------------------------------
# Payment provider
# ---------------------------------------------------------------------------
def payment_gateway() -> str:
    """`fake` (default) or `stripe`."""
    return os.getenv("PAYMENT_GATEWAY", "fake").lower()


def stripe_secret_key() -> str | None:
    return os.getenv("STRIPE_SECRET_KEY")


def webhook_secret() -> str:
    return os.getenv("STRIPE_WEBHOOK_SECRET", "whsec_dev")


def payment_currency() -> str:
    return os.getenv("PAYMENT_CURRENCY", "usd").lower()


def provider_timeout_seconds() -> float:
    return float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10"))


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
def catalog_backend() -> str:
    """`memory` (default) or `mongo`."""
    return os.getenv("CATALOG_BACKEND", "memory").lower()


def mongodb_uri() -> str:
    return os.getenv("MONGODB_URI", "mongodb://localhost:27017")


def mongodb_database() -> str:
    return os.getenv("MONGODB_DATABASE", "storefront")


def catalog_seed_file() -> str | None:
    """JSON product file loaded into the in-memory catalog at startup."""
    return os.getenv("CATALOG_SEED_FILE")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
def log_level() -> str | None:
    return os.getenv("LOG_LEVEL")


def log_file() -> str | None:
    """Rotating log file path; stdout only when unset."""
    return os.getenv("LOG_FILE")
