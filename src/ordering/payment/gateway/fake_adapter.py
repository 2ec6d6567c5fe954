"""Configurable fake payment gateway for development and testing.

This adapter simulates a Stripe-like provider without any external calls.
Intents live in memory and move to ``succeeded`` or ``requires_payment_method``
only when a test (or a developer) says so, via ``succeed_intent`` and
``fail_intent``. Webhook bodies are signed with HMAC-SHA256 in the same
``t=<timestamp>,v1=<hex digest>`` header format Stripe uses, so signature
verification is exercised for real. Saved cards appear through ``save_card``,
which stands in for the client confirming a setup intent.

``configure()`` can make the provider slow or unreachable to exercise
timeout handling.
"""

import hashlib
import hmac
import json
import threading
import time
from uuid import uuid4

from ordering.errors import InvalidSignature, PaymentNotCompleted, ProviderUnavailable
from ordering.payment.gateway.port import (
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    SUCCEEDED,
    IntentHandle,
    IntentStatus,
    PaymentGateway,
    SavedPaymentMethod,
    WebhookEvent,
    webhook_event_from_dict,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, webhook_secret: str = "whsec_dev") -> None:
        self.webhook_secret = webhook_secret
        self.available: bool = True
        self.latency: float = 0.0
        self.intents: dict[str, dict] = {}
        self.customers: dict[str, dict] = {}
        self.setup_intents: dict[str, dict] = {}
        self.payment_methods: dict[str, dict] = {}
        self._customer_keys: dict[str, str] = {}
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def configure(self, available: bool = True, latency: float = 0.0) -> None:
        """Configure gateway behavior at runtime."""
        self.available = available
        self.latency = latency

    def _call(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.latency:
            time.sleep(self.latency)
        if not self.available:
            raise ProviderUnavailable(method)

    # -------------------------------------------------------------------
    # Provider operations
    # -------------------------------------------------------------------
    def create_customer(
        self,
        account_id: str,
        email: str | None = None,
        name: str | None = None,
        idempotency_key: str | None = None,
    ) -> str:
        self._call(
            "create_customer",
            account_id=account_id,
            email=email,
            name=name,
            idempotency_key=idempotency_key,
        )

        with self._lock:
            if idempotency_key in self._customer_keys:
                return self._customer_keys[idempotency_key]
            customer_ref = f"cus_fake_{uuid4().hex[:14]}"
            self.customers[customer_ref] = {
                "account_id": account_id,
                "email": email,
                "name": name,
                "default_payment_method": None,
            }
            if idempotency_key:
                self._customer_keys[idempotency_key] = customer_ref
        return customer_ref

    def create_intent(
        self,
        amount: int,
        currency: str,
        customer_ref: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ) -> IntentHandle:
        self._call(
            "create_intent",
            amount=amount,
            currency=currency,
            customer_ref=customer_ref,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        client_secret = f"{intent_id}_secret_{uuid4().hex[:12]}"
        with self._lock:
            self.intents[intent_id] = {
                "id": intent_id,
                "object": "payment_intent",
                "amount": amount,
                "currency": currency,
                "customer": customer_ref,
                "metadata": dict(metadata),
                "status": "requires_payment_method",
                "payment_method": None,
                "receipt_email": None,
                "last_payment_error": None,
            }
        return IntentHandle(id=intent_id, client_secret=client_secret)

    def retrieve_intent(self, intent_id: str) -> IntentStatus:
        self._call("retrieve_intent", intent_id=intent_id)

        with self._lock:
            intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentNotCompleted("unknown_intent")

        return IntentStatus(
            id=intent["id"],
            status=intent["status"],
            amount=intent["amount"],
            payment_method_ref=intent["payment_method"],
            receipt_email=intent["receipt_email"],
            metadata=dict(intent["metadata"]),
        )

    def create_setup_intent(self, customer_ref: str, metadata: dict) -> IntentHandle:
        self._call("create_setup_intent", customer_ref=customer_ref, metadata=metadata)

        setup_id = f"seti_fake_{uuid4().hex[:16]}"
        client_secret = f"{setup_id}_secret_{uuid4().hex[:12]}"
        with self._lock:
            self.setup_intents[setup_id] = {
                "id": setup_id,
                "customer": customer_ref,
                "payment_method_types": ["card"],
                "metadata": dict(metadata),
                "status": "requires_payment_method",
            }
        return IntentHandle(id=setup_id, client_secret=client_secret)

    def list_payment_methods(self, customer_ref: str) -> list[SavedPaymentMethod]:
        self._call("list_payment_methods", customer_ref=customer_ref)

        with self._lock:
            methods = [pm for pm in self.payment_methods.values() if pm["customer"] == customer_ref]
        return [
            SavedPaymentMethod(
                id=pm["id"],
                type=pm["type"],
                brand=pm["card"]["brand"],
                last4=pm["card"]["last4"],
                exp_month=pm["card"]["exp_month"],
                exp_year=pm["card"]["exp_year"],
            )
            for pm in methods
        ]

    def set_default_payment_method(self, customer_ref: str, payment_method_ref: str) -> None:
        self._call(
            "set_default_payment_method",
            customer_ref=customer_ref,
            payment_method_ref=payment_method_ref,
        )

        with self._lock:
            pm = self.payment_methods.get(payment_method_ref)
            if pm is None:
                raise PaymentNotCompleted("resource_missing")
            if pm["customer"] not in (None, customer_ref):
                raise PaymentNotCompleted("payment_method_unexpected_state")
            pm["customer"] = customer_ref
            self.customers[customer_ref]["default_payment_method"] = payment_method_ref

    def construct_event(self, payload: bytes, signature: str) -> WebhookEvent:
        # Verification is local; latency and availability do not apply
        self.calls.append({"method": "construct_event"})

        if not signature:
            raise InvalidSignature("missing signature header")

        parts = dict(part.split("=", 1) for part in signature.split(",") if "=" in part)
        timestamp, digest = parts.get("t"), parts.get("v1")
        if not timestamp or not digest:
            raise InvalidSignature("malformed signature header")

        expected = self._digest(payload, timestamp)
        if not hmac.compare_digest(expected, digest):
            raise InvalidSignature("signature mismatch")

        try:
            return webhook_event_from_dict(json.loads(payload))
        except ValueError:
            raise InvalidSignature("unparseable payload") from None

    # -------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------
    def _digest(self, payload: bytes, timestamp: str) -> str:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        signed = timestamp.encode("utf-8") + b"." + payload
        return hmac.new(self.webhook_secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()

    def sign(self, payload: bytes, timestamp: int | None = None) -> str:
        """Build a valid signature header for ``payload``."""
        timestamp = str(timestamp or int(time.time()))
        return f"t={timestamp},v1={self._digest(payload, timestamp)}"

    def succeed_intent(
        self,
        intent_id: str,
        payment_method_ref: str = "pm_fake_visa",
        receipt_email: str | None = None,
    ) -> None:
        """Simulate the customer completing payment on the client."""
        with self._lock:
            intent = self.intents[intent_id]
            intent["status"] = SUCCEEDED
            intent["payment_method"] = payment_method_ref
            intent["receipt_email"] = receipt_email
            intent["last_payment_error"] = None

    def save_card(
        self,
        setup_intent_id: str | None = None,
        customer_ref: str | None = None,
        brand: str = "visa",
        last4: str = "4242",
        exp_month: int = 12,
        exp_year: int = 2030,
    ) -> str:
        """Simulate the customer saving a card on the client.

        With a setup intent the card is attached to that intent's customer;
        with neither argument it is created detached, as a bare payment method.
        """
        pm_id = f"pm_fake_{uuid4().hex[:14]}"
        with self._lock:
            if setup_intent_id is not None:
                setup = self.setup_intents[setup_intent_id]
                setup["status"] = SUCCEEDED
                setup["payment_method"] = pm_id
                customer_ref = setup["customer"]
            self.payment_methods[pm_id] = {
                "id": pm_id,
                "type": "card",
                "customer": customer_ref,
                "card": {"brand": brand, "last4": last4, "exp_month": exp_month, "exp_year": exp_year},
            }
        return pm_id

    def fail_intent(self, intent_id: str, message: str = "Your card was declined.") -> None:
        """Simulate a declined payment attempt."""
        with self._lock:
            intent = self.intents[intent_id]
            intent["status"] = "requires_payment_method"
            intent["last_payment_error"] = {"message": message}

    def event_payload(self, intent_id: str, event_type: str | None = None) -> bytes:
        """Serialize a webhook body for the intent's current state."""
        with self._lock:
            intent = dict(self.intents[intent_id])
        if event_type is None:
            event_type = PAYMENT_SUCCEEDED if intent["status"] == SUCCEEDED else PAYMENT_FAILED
        body = {
            "id": f"evt_fake_{uuid4().hex[:16]}",
            "object": "event",
            "type": event_type,
            "data": {"object": intent},
        }
        return json.dumps(body).encode("utf-8")
