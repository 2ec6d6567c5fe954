"""Stripe payment gateway adapter.

Uses the stripe-python SDK's ``StripeClient`` for API calls and
``stripe.Webhook.construct_event`` for webhook signature verification.
Network-level failures surface as ``ProviderUnavailable`` (safe to retry);
any other provider error surfaces as ``PaymentNotCompleted`` with a generic
message so provider internals never reach the client.
"""

import json

import stripe
import structlog

from ordering.errors import InvalidSignature, PaymentNotCompleted, ProviderUnavailable
from ordering.payment.gateway.port import (
    IntentHandle,
    IntentStatus,
    PaymentGateway,
    SavedPaymentMethod,
    WebhookEvent,
    webhook_event_from_dict,
)

logger = structlog.get_logger(__name__)

_RETRYABLE_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str) -> None:
        self.client = stripe.StripeClient(api_key)
        self.webhook_secret = webhook_secret

    def _translate(self, operation: str, exc: stripe.StripeError) -> Exception:
        logger.error(
            "stripe_call_failed",
            operation=operation,
            error_type=type(exc).__name__,
            error_code=getattr(exc, "code", None),
        )
        if isinstance(exc, _RETRYABLE_ERRORS):
            return ProviderUnavailable(operation)
        return PaymentNotCompleted(getattr(exc, "code", None) or "provider_error")

    def create_customer(
        self,
        account_id: str,
        email: str | None = None,
        name: str | None = None,
        idempotency_key: str | None = None,
    ) -> str:
        params = {"metadata": {"account_id": str(account_id)}}
        if email:
            params["email"] = email
        if name:
            params["name"] = name
        options = {"idempotency_key": idempotency_key} if idempotency_key else {}
        try:
            customer = self.client.customers.create(params=params, options=options)
        except stripe.StripeError as exc:
            raise self._translate("create_customer", exc) from exc
        return customer.id

    def create_intent(
        self,
        amount: int,
        currency: str,
        customer_ref: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ) -> IntentHandle:
        params = {
            "amount": amount,
            "currency": currency,
            "customer": customer_ref,
            "metadata": {key: str(value) for key, value in metadata.items()},
            "automatic_payment_methods": {"enabled": True},
        }
        options = {"idempotency_key": idempotency_key} if idempotency_key else {}
        try:
            intent = self.client.payment_intents.create(params=params, options=options)
        except stripe.StripeError as exc:
            raise self._translate("create_intent", exc) from exc
        return IntentHandle(id=intent.id, client_secret=intent.client_secret)

    def retrieve_intent(self, intent_id: str) -> IntentStatus:
        try:
            intent = self.client.payment_intents.retrieve(intent_id)
        except stripe.StripeError as exc:
            raise self._translate("retrieve_intent", exc) from exc

        payment_method = intent.payment_method
        if payment_method is not None and not isinstance(payment_method, str):
            payment_method = payment_method.id
        return IntentStatus(
            id=intent.id,
            status=intent.status,
            amount=intent.amount,
            payment_method_ref=payment_method,
            receipt_email=intent.receipt_email,
            metadata={key: intent.metadata[key] for key in intent.metadata.keys()} if intent.metadata else {},
        )

    def create_setup_intent(self, customer_ref: str, metadata: dict) -> IntentHandle:
        params = {
            "customer": customer_ref,
            "payment_method_types": ["card"],
            "metadata": {key: str(value) for key, value in metadata.items()},
        }
        try:
            setup_intent = self.client.setup_intents.create(params=params)
        except stripe.StripeError as exc:
            raise self._translate("create_setup_intent", exc) from exc
        return IntentHandle(id=setup_intent.id, client_secret=setup_intent.client_secret)

    def list_payment_methods(self, customer_ref: str) -> list[SavedPaymentMethod]:
        try:
            methods = self.client.payment_methods.list(params={"customer": customer_ref, "type": "card"})
        except stripe.StripeError as exc:
            raise self._translate("list_payment_methods", exc) from exc

        saved = []
        for pm in methods.data:
            card = pm.card
            saved.append(
                SavedPaymentMethod(
                    id=pm.id,
                    type=pm.type,
                    brand=card.brand if card else None,
                    last4=card.last4 if card else None,
                    exp_month=card.exp_month if card else None,
                    exp_year=card.exp_year if card else None,
                )
            )
        return saved

    def set_default_payment_method(self, customer_ref: str, payment_method_ref: str) -> None:
        try:
            self.client.payment_methods.attach(payment_method_ref, params={"customer": customer_ref})
            self.client.customers.update(
                customer_ref,
                params={"invoice_settings": {"default_payment_method": payment_method_ref}},
            )
        except stripe.StripeError as exc:
            raise self._translate("set_default_payment_method", exc) from exc

    def construct_event(self, payload: bytes, signature: str) -> WebhookEvent:
        if not signature:
            raise InvalidSignature("missing signature header")
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError:
            raise InvalidSignature("signature mismatch") from None
        except ValueError:
            raise InvalidSignature("unparseable payload") from None
        return webhook_event_from_dict(json.loads(payload))
