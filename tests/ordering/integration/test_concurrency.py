"""The API keeps serving other requests while one waits on the payment provider."""

import asyncio
import time

import httpx
import pytest
from fastapi import FastAPI
from ordering.api.auth import issue_token
from ordering.api.errors import install_error_handlers
from ordering.api.routes import order_router, payment_router
from ordering.domain import ordering

ADDRESS = {"street": "1 Main St", "city": "Springfield", "state": "IL", "zip_code": "62701", "country": "US"}


@pytest.fixture()
def app():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(payment_router)
    install_error_handlers(app)

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    return app


def _auth(account_id="acct-slow-001"):
    return {"Authorization": f"Bearer {issue_token(account_id)}"}


@pytest.mark.anyio
async def test_slow_provider_call_does_not_stall_other_requests(app, gateway):
    with ordering.domain_context():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            placed = await client.post(
                "/orders",
                json={
                    "items": [{"product_id": "P1", "quantity": 1, "size": "M", "color": "Black"}],
                    "shipping_address": ADDRESS,
                    "payment_method": "card",
                },
                headers=_auth(),
            )
            assert placed.status_code == 201
            gateway.configure(latency=1.5)

            intent_request = asyncio.create_task(
                client.post("/payments/intent", json={"order_id": placed.json()["id"]}, headers=_auth())
            )
            await asyncio.sleep(0.1)

            started = time.monotonic()
            ping = await client.get("/ping")
            elapsed = time.monotonic() - started

            intent = await intent_request

    assert ping.status_code == 200
    assert elapsed < 0.5
    assert intent.status_code == 200
    assert intent.json()["payment_intent_id"].startswith("pi_fake_")
