"""Storefront checkout FastAPI application.

Serves the cart, order and payment endpoints of the Ordering domain. Commands
are processed synchronously within each request.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the configuration overlay (see domain.toml, if present).
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import ordering.catalog  # noqa: F401  # import the package before domain traversal loads its submodules
from ordering.domain import ordering  # noqa: E402
from ordering.utils.logging import configure_logging

configure_logging()
ordering.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Checkout API",
    description="Cart, order placement and payment reconciliation",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api import cart_router, order_router, payment_router  # noqa: E402
from ordering.api.errors import install_error_handlers  # noqa: E402
from ordering.api.middleware import install_request_middleware  # noqa: E402

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(payment_router)
install_error_handlers(app)
install_request_middleware(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": ordering.name})
