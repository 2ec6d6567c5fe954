"""Payment intent creation: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering import settings
from ordering.domain import ordering
from ordering.errors import AlreadyPaid, NotOrderOwner
from ordering.order.order import Order
from ordering.payment.gateway import get_gateway
from ordering.payment.gateway.port import to_minor_units
from ordering.payment.timeouts import call_with_timeout

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CreatePaymentIntent:
    order_id = Identifier(required=True)
    account_id = Identifier(required=True)
    customer_ref = String(required=True, max_length=255)


@ordering.command_handler(part_of=Order)
class CreatePaymentIntentHandler:
    @handle(CreatePaymentIntent)
    def create_payment_intent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        if not order.is_owned_by(command.account_id):
            raise NotOrderOwner(command.order_id)
        if order.is_paid:
            raise AlreadyPaid(command.order_id)

        currency = settings.payment_currency()

        # Same key until an intent is recorded, so a retried call reuses the intent
        idempotency_key = f"intent-{order.id}-{order.payment_intent_id or 'first'}"
        intent = call_with_timeout(
            "create_intent",
            get_gateway().create_intent,
            amount=to_minor_units(order.total_price),
            currency=currency,
            customer_ref=command.customer_ref,
            metadata={"order_id": str(order.id), "account_id": str(order.owner_id)},
            idempotency_key=idempotency_key,
        )

        order.record_intent(intent.id, currency)
        repo.add(order)

        logger.info("payment_intent_created", order_id=str(order.id), intent_id=intent.id)
        return intent
