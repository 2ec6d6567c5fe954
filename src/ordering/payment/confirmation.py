"""Client-side payment confirmation: command and handler.

The client reports that it finished the provider's payment flow. That report is
never trusted on its own: the intent is re-fetched from the provider, and the
order is only marked paid when the provider says the intent succeeded.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import NotOrderOwner, PaymentNotCompleted
from ordering.order.order import Order, PaymentSource
from ordering.payment.gateway import get_gateway
from ordering.payment.timeouts import call_with_timeout

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ConfirmPayment:
    order_id = Identifier(required=True)
    account_id = Identifier(required=True)
    intent_id = String(required=True, max_length=255)


@ordering.command_handler(part_of=Order)
class ConfirmPaymentHandler:
    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        if not order.is_owned_by(command.account_id):
            raise NotOrderOwner(command.order_id)
        if order.is_paid:
            logger.info("payment_already_confirmed", order_id=str(order.id), intent_id=command.intent_id)
            return False

        status = call_with_timeout("retrieve_intent", get_gateway().retrieve_intent, command.intent_id)

        if status.metadata.get("order_id") != str(order.id):
            raise ValidationError({"intent_id": ["Payment intent does not belong to this order"]})
        if not status.succeeded:
            logger.info(
                "payment_not_completed",
                order_id=str(order.id),
                intent_id=status.id,
                provider_status=status.status,
            )
            raise PaymentNotCompleted(status.status)

        transitioned = order.mark_paid(
            intent_id=status.id,
            provider_status=status.status,
            source=PaymentSource.CLIENT_CONFIRMATION.value,
            email_address=status.receipt_email,
            payment_method_ref=status.payment_method_ref,
        )
        repo.add(order)

        logger.info("order_paid", order_id=str(order.id), intent_id=status.id, source="client_confirmation")
        return transitioned
