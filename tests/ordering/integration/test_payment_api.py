"""Integration tests for the payment API (intents, confirmation, webhook, saved cards) via TestClient."""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.auth import issue_token
from ordering.api.errors import install_error_handlers
from ordering.api.routes import order_router, payment_router

ADDRESS = {"street": "1 Main St", "city": "Springfield", "state": "IL", "zip_code": "62701", "country": "US"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(payment_router)
    install_error_handlers(app)
    return TestClient(app)


def _auth(account_id="acct-pay-001", is_admin=False):
    return {"Authorization": f"Bearer {issue_token(account_id, is_admin=is_admin)}"}


def _place(client, headers=None):
    response = client.post(
        "/orders",
        json={
            "items": [{"product_id": "P1", "quantity": 2, "size": "M", "color": "Black"}],
            "shipping_address": ADDRESS,
            "payment_method": "card",
        },
        headers=headers or _auth(),
    )
    return response.json()["id"]


def _intent(client, order_id, headers=None):
    response = client.post("/payments/intent", json={"order_id": order_id}, headers=headers or _auth())
    assert response.status_code == 200
    return response.json()["payment_intent_id"]


def _webhook(client, gateway, intent_id, event_type=None, signature=None):
    payload = gateway.event_payload(intent_id, event_type)
    return client.post(
        "/payments/webhook",
        content=payload,
        headers={
            "Content-Type": "application/json",
            "Stripe-Signature": signature if signature is not None else gateway.sign(payload),
        },
    )


class TestCreateIntentAPI:
    def test_returns_client_secret(self, client, gateway):
        order_id = _place(client)
        response = client.post("/payments/intent", json={"order_id": order_id}, headers=_auth())
        assert response.status_code == 200
        body = response.json()
        assert body["payment_intent_id"].startswith("pi_fake_")
        assert body["client_secret"].startswith(body["payment_intent_id"])
        assert gateway.intents[body["payment_intent_id"]]["amount"] == 7558

    def test_requires_token(self, client):
        order_id = _place(client)
        assert client.post("/payments/intent", json={"order_id": order_id}).status_code == 401

    def test_other_account_gets_403(self, client):
        order_id = _place(client)
        response = client.post("/payments/intent", json={"order_id": order_id}, headers=_auth("acct-other"))
        assert response.status_code == 403

    def test_unknown_order_gets_404(self, client):
        response = client.post("/payments/intent", json={"order_id": "no-such-order"}, headers=_auth())
        assert response.status_code == 404

    def test_paid_order_gets_409(self, client, gateway):
        order_id = _place(client)
        intent_id = _intent(client, order_id)
        gateway.succeed_intent(intent_id)
        _webhook(client, gateway, intent_id)

        response = client.post("/payments/intent", json={"order_id": order_id}, headers=_auth())
        assert response.status_code == 409
        assert response.json()["code"] == "already_paid"

    def test_unreachable_provider_gets_503(self, client, gateway):
        order_id = _place(client)
        gateway.configure(available=False)
        response = client.post("/payments/intent", json={"order_id": order_id}, headers=_auth())
        assert response.status_code == 503
        assert response.json()["code"] == "provider_unavailable"


class TestConfirmPaymentAPI:
    def test_confirm_succeeded_intent(self, client, gateway):
        order_id = _place(client)
        intent_id = _intent(client, order_id)
        gateway.succeed_intent(intent_id, receipt_email="buyer@example.com")

        response = client.post(
            "/payments/confirm",
            json={"order_id": order_id, "payment_intent_id": intent_id},
            headers=_auth(),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["is_paid"] is True
        assert body["paid_at"] is not None
        assert body["payment_status"] == "Paid"
        assert body["payment_result"]["id"] == intent_id
        assert body["payment_result"]["email_address"] == "buyer@example.com"

    def test_unfinished_intent_gets_402_without_provider_detail(self, client):
        order_id = _place(client)
        intent_id = _intent(client, order_id)

        response = client.post(
            "/payments/confirm",
            json={"order_id": order_id, "payment_intent_id": intent_id},
            headers=_auth(),
        )
        assert response.status_code == 402
        assert response.json()["error"] == "Payment could not be completed"

        order = client.get(f"/orders/{order_id}", headers=_auth()).json()
        assert order["is_paid"] is False

    def test_repeat_confirmation_returns_paid_order(self, client, gateway):
        order_id = _place(client)
        intent_id = _intent(client, order_id)
        gateway.succeed_intent(intent_id)
        body = {"order_id": order_id, "payment_intent_id": intent_id}

        first = client.post("/payments/confirm", json=body, headers=_auth()).json()
        second = client.post("/payments/confirm", json=body, headers=_auth()).json()
        assert second["is_paid"] is True
        assert second["paid_at"] == first["paid_at"]


class TestWebhookAPI:
    def test_signed_success_event_marks_order_paid(self, client, gateway):
        order_id = _place(client)
        intent_id = _intent(client, order_id)
        gateway.succeed_intent(intent_id)

        response = _webhook(client, gateway, intent_id)
        assert response.status_code == 200
        assert response.json() == {"received": True, "outcome": "paid"}

        order = client.get(f"/orders/{order_id}", headers=_auth()).json()
        assert order["is_paid"] is True

    def test_webhook_after_confirmation_is_acknowledged(self, client, gateway):
        order_id = _place(client)
        intent_id = _intent(client, order_id)
        gateway.succeed_intent(intent_id)
        client.post(
            "/payments/confirm",
            json={"order_id": order_id, "payment_intent_id": intent_id},
            headers=_auth(),
        )

        response = _webhook(client, gateway, intent_id)
        assert response.status_code == 200
        assert response.json()["outcome"] == "already_paid"

    def test_invalid_signature_gets_400(self, client, gateway):
        order_id = _place(client)
        intent_id = _intent(client, order_id)
        gateway.succeed_intent(intent_id)

        response = _webhook(client, gateway, intent_id, signature="t=1,v1=deadbeef")
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_signature"

        order = client.get(f"/orders/{order_id}", headers=_auth()).json()
        assert order["is_paid"] is False

    def test_missing_signature_gets_400(self, client, gateway):
        order_id = _place(client)
        intent_id = _intent(client, order_id)
        gateway.succeed_intent(intent_id)

        response = _webhook(client, gateway, intent_id, signature="")
        assert response.status_code == 400

    def test_failed_event_leaves_order_unpaid(self, client, gateway):
        order_id = _place(client)
        intent_id = _intent(client, order_id)
        gateway.fail_intent(intent_id, "Your card was declined.")

        response = _webhook(client, gateway, intent_id)
        assert response.json()["outcome"] == "failure_recorded"

        order = client.get(f"/orders/{order_id}", headers=_auth()).json()
        assert order["is_paid"] is False
        assert order["payment_status"] == "Failed"

    def test_unrelated_event_acknowledged(self, client, gateway):
        payload = json.dumps({"id": "evt_1", "type": "charge.refunded", "data": {"object": {}}}).encode()
        response = client.post(
            "/payments/webhook",
            content=payload,
            headers={"Stripe-Signature": gateway.sign(payload)},
        )
        assert response.status_code == 200
        assert response.json()["outcome"] == "ignored"


class TestGatewayConfigureAPI:
    def test_configure_fake_gateway(self, client, gateway):
        response = client.post("/payments/gateway/configure", json={"available": False, "latency": 0.25})
        assert response.status_code == 200
        assert response.json() == {"gateway": "FakeGateway", "available": False, "latency": 0.25}
        assert gateway.available is False


class TestSavedPaymentMethodsAPI:
    def test_setup_intent_returns_client_secret(self, client, gateway):
        response = client.post("/payments/setup-intent", headers=_auth())
        assert response.status_code == 200
        body = response.json()
        assert body["client_secret"].startswith(body["setup_intent_id"])
        assert gateway.setup_intents[body["setup_intent_id"]]["metadata"]["purpose"] == "save_payment_method"

    def test_setup_intent_requires_token(self, client):
        assert client.post("/payments/setup-intent").status_code == 401

    def test_no_saved_methods_before_first_setup(self, client):
        response = client.get("/payments/methods", headers=_auth())
        assert response.status_code == 200
        assert response.json() == []

    def test_save_list_and_set_default(self, client, gateway):
        setup_id = client.post("/payments/setup-intent", headers=_auth()).json()["setup_intent_id"]
        visa = gateway.save_card(setup_id, brand="visa", last4="4242")
        mastercard = gateway.save_card(setup_id, brand="mastercard", last4="4444")

        response = client.put(
            "/payments/methods/default",
            json={"payment_method_id": mastercard},
            headers=_auth(),
        )
        assert response.status_code == 200
        assert response.json() == {"default_payment_method_id": mastercard}

        listed = {method["id"]: method for method in client.get("/payments/methods", headers=_auth()).json()}
        assert listed[mastercard]["is_default"] is True
        assert listed[mastercard]["last4"] == "4444"
        assert listed[visa]["is_default"] is False

    def test_set_default_without_profile_gets_400(self, client):
        response = client.put(
            "/payments/methods/default",
            json={"payment_method_id": "pm_fake_anything"},
            headers=_auth(),
        )
        assert response.status_code == 400

    def test_set_default_unknown_card_gets_400(self, client):
        client.post("/payments/setup-intent", headers=_auth())
        response = client.put(
            "/payments/methods/default",
            json={"payment_method_id": "pm_fake_missing"},
            headers=_auth(),
        )
        assert response.status_code == 400

    def test_set_default_requires_payment_method_id(self, client):
        response = client.put("/payments/methods/default", json={}, headers=_auth())
        assert response.status_code == 422
