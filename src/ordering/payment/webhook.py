"""Provider webhook outcomes: commands and handlers.

Webhooks arrive after signature verification (see ``ordering.payment.reconciler``)
and may come before or after the client's own confirmation. Success is
recorded through the order's compare-and-set transition, so a webhook for an
order that is already paid changes nothing. Failures only note the error on
the order's current intent.

Events for orders that cannot be found are acknowledged, not raised: the
provider would otherwise keep redelivering them.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import OrderNotFound
from ordering.order.order import Order, PaymentSource

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class RecordPaymentSucceeded:
    order_id = Identifier(required=True)
    intent_id = String(required=True, max_length=255)
    provider_status = String(required=True, max_length=50)
    receipt_email = String(max_length=254)
    payment_method_ref = String(max_length=255)


@ordering.command(part_of="Order")
class RecordPaymentFailed:
    order_id = Identifier(required=True)
    intent_id = String(required=True, max_length=255)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class PaymentWebhookHandler:
    @handle(RecordPaymentSucceeded)
    def record_payment_succeeded(self, command):
        repo = current_domain.repository_for(Order)
        try:
            order = repo.get_order(command.order_id)
        except OrderNotFound:
            logger.warning("webhook_order_not_found", order_id=str(command.order_id), intent_id=command.intent_id)
            return "unknown_order"

        transitioned = order.mark_paid(
            intent_id=command.intent_id,
            provider_status=command.provider_status,
            source=PaymentSource.WEBHOOK.value,
            email_address=command.receipt_email,
            payment_method_ref=command.payment_method_ref,
        )
        if not transitioned:
            logger.info("webhook_order_already_paid", order_id=str(order.id), intent_id=command.intent_id)
            return "already_paid"

        repo.add(order)
        logger.info("order_paid", order_id=str(order.id), intent_id=command.intent_id, source="webhook")
        return "paid"

    @handle(RecordPaymentFailed)
    def record_payment_failed(self, command):
        repo = current_domain.repository_for(Order)
        try:
            order = repo.get_order(command.order_id)
        except OrderNotFound:
            logger.warning("webhook_order_not_found", order_id=str(command.order_id), intent_id=command.intent_id)
            return "unknown_order"

        if not order.record_payment_failure(command.intent_id, command.reason):
            logger.info(
                "webhook_payment_failure_ignored",
                order_id=str(order.id),
                intent_id=command.intent_id,
                is_paid=order.is_paid,
                current_intent_id=order.payment_intent_id,
            )
            return "ignored"

        repo.add(order)
        logger.warning("payment_attempt_failed", order_id=str(order.id), intent_id=command.intent_id, reason=command.reason)
        return "failure_recorded"
