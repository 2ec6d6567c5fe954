"""Payment Reconciler: the entry points that move an order's payment state.

Three paths reach the same per-order state machine:

- ``create_intent``: issue a provider intent for an unpaid order
- ``confirm_from_client``: the client finished paying; verify with the provider
- ``on_webhook_event``: the provider reports an outcome asynchronously

Client confirmation and webhook delivery can race. Work for one order is
serialized in-process with a striped lock held until the unit of work has
committed, and ``Order.mark_paid`` only transitions an unpaid order, so the
order becomes paid exactly once whichever path arrives first. Across processes
the repository's optimistic version check rejects the losing write with
``ExpectedVersionError``; the command is then re-run once against fresh state,
where it finds the order already paid and does nothing.

The provider customer an intent is charged against is resolved first, under a
per-account lock and outside any order lock or unit of work (see
``billing.ensure_customer_ref``).
"""

import threading

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ordering.errors import AlreadyPaid, InvalidSignature, NotOrderOwner
from ordering.order.order import Order
from ordering.payment.billing import ensure_customer_ref
from ordering.payment.confirmation import ConfirmPayment
from ordering.payment.gateway import get_gateway
from ordering.payment.gateway.port import PAYMENT_FAILED, PAYMENT_SUCCEEDED, IntentHandle
from ordering.payment.intent import CreatePaymentIntent
from ordering.payment.webhook import RecordPaymentFailed, RecordPaymentSucceeded

logger = structlog.get_logger(__name__)

_LOCK_STRIPES = 64
_order_locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]


def _lock_for(order_id) -> threading.Lock:
    return _order_locks[hash(str(order_id)) % _LOCK_STRIPES]


def _process_for_order(order_id, command):
    with _lock_for(order_id):
        try:
            return current_domain.process(command, asynchronous=False)
        except ExpectedVersionError:
            logger.warning("order_version_conflict", order_id=str(order_id), command=type(command).__name__)
            return current_domain.process(command, asynchronous=False)


def create_intent(order_id, account_id, email=None, name=None) -> IntentHandle:
    """Issue a new payment intent for an unpaid order owned by ``account_id``.

    Raises:
        OrderNotFound, NotOrderOwner, AlreadyPaid, ProviderUnavailable
    """
    order = current_domain.repository_for(Order).get_order(order_id)
    if not order.is_owned_by(account_id):
        raise NotOrderOwner(order_id)
    if order.is_paid:
        raise AlreadyPaid(order_id)

    # Committed on its own, outside the intent's unit of work
    customer_ref = ensure_customer_ref(account_id, email=email, name=name)
    command = CreatePaymentIntent(order_id=order_id, account_id=account_id, customer_ref=customer_ref)
    return _process_for_order(order_id, command)


def confirm_from_client(order_id, intent_id, account_id) -> Order:
    """Mark the order paid if the provider confirms ``intent_id`` succeeded.

    Confirming an order that is already paid returns it unchanged.

    Raises:
        OrderNotFound, NotOrderOwner, PaymentNotCompleted, ProviderUnavailable,
        ValidationError (the intent belongs to another order)
    """
    command = ConfirmPayment(order_id=order_id, account_id=account_id, intent_id=intent_id)
    _process_for_order(order_id, command)
    return current_domain.repository_for(Order).get_order(order_id)


def on_webhook_event(payload: bytes, signature: str) -> str:
    """Verify and apply a provider webhook. Returns a short outcome label.

    Raises:
        InvalidSignature: Verification failed. No order is read or written.
    """
    try:
        event = get_gateway().construct_event(payload, signature)
    except InvalidSignature as exc:
        logger.error("webhook_signature_rejected", reason=exc.reason)
        raise

    if event.type not in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
        logger.info("webhook_event_ignored", event_id=event.id, event_type=event.type)
        return "ignored"

    order_id = event.order_id
    if not order_id and event.intent_id:
        order = current_domain.repository_for(Order).find_by_intent(event.intent_id)
        order_id = str(order.id) if order else None
    if not order_id or not event.intent_id:
        logger.warning("webhook_order_not_found", event_id=event.id, intent_id=event.intent_id)
        return "unknown_order"

    if event.type == PAYMENT_SUCCEEDED:
        command = RecordPaymentSucceeded(
            order_id=order_id,
            intent_id=event.intent_id,
            provider_status=event.status or "succeeded",
            receipt_email=event.receipt_email,
            payment_method_ref=event.payment_method_ref,
        )
    else:
        command = RecordPaymentFailed(
            order_id=order_id,
            intent_id=event.intent_id,
            reason=(event.failure_message or "")[:500] or None,
        )

    outcome = _process_for_order(order_id, command)
    logger.info("webhook_event_processed", event_id=event.id, event_type=event.type, order_id=order_id, outcome=outcome)
    return outcome
