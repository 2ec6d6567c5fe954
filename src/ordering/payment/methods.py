"""Saved payment methods: setup intents, the saved card list and the default card.

Cards are saved on the account's provider customer, the same one payment
intents are charged against. The client confirms a setup intent with the
provider directly; the server only issues it and later reads back what was
saved.
"""

from dataclasses import asdict

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import PaymentNotCompleted
from ordering.payment.billing import BillingProfile, ensure_customer_ref, find_profile, lock_for_account
from ordering.payment.gateway import get_gateway
from ordering.payment.gateway.port import IntentHandle
from ordering.payment.timeouts import call_with_timeout

logger = structlog.get_logger(__name__)


@ordering.command(part_of="BillingProfile")
class SetDefaultPaymentMethod:
    account_id = Identifier(required=True)
    payment_method_ref = String(required=True, max_length=255)


@ordering.command_handler(part_of=BillingProfile)
class BillingProfileHandler:
    @handle(SetDefaultPaymentMethod)
    def set_default_payment_method(self, command):
        repo = current_domain.repository_for(BillingProfile)
        profile = find_profile(command.account_id)
        if profile is None:
            raise ValidationError({"payment_method": ["No saved payment methods for this account"]})

        try:
            call_with_timeout(
                "set_default_payment_method",
                get_gateway().set_default_payment_method,
                profile.customer_ref,
                command.payment_method_ref,
            )
        except PaymentNotCompleted:
            raise ValidationError({"payment_method": ["Payment method could not be attached"]}) from None

        profile.use_default_payment_method(command.payment_method_ref)
        repo.add(profile)

        logger.info("default_payment_method_set", account_id=str(command.account_id))


def create_setup_intent(account_id, email=None, name=None) -> IntentHandle:
    """Start saving a card for ``account_id``, creating its customer on first use.

    Raises:
        ProviderUnavailable
    """
    customer_ref = ensure_customer_ref(account_id, email=email, name=name)
    setup = call_with_timeout(
        "create_setup_intent",
        get_gateway().create_setup_intent,
        customer_ref,
        {"account_id": str(account_id), "purpose": "save_payment_method"},
    )
    logger.info("setup_intent_created", account_id=str(account_id), setup_intent_id=setup.id)
    return setup


def list_payment_methods(account_id) -> list[dict]:
    """Saved cards for ``account_id``, each flagged with ``is_default``.

    An account that has never paid or saved a card has none.
    """
    profile = find_profile(account_id)
    if profile is None:
        return []

    methods = call_with_timeout("list_payment_methods", get_gateway().list_payment_methods, profile.customer_ref)
    return [asdict(method) | {"is_default": method.id == profile.default_payment_method_ref} for method in methods]


def set_default_payment_method(account_id, payment_method_ref: str) -> None:
    """Attach ``payment_method_ref`` to the account's customer and make it the default.

    Raises:
        ValidationError: The account has no billing profile yet, or the
            provider rejected the payment method.
        ProviderUnavailable
    """
    command = SetDefaultPaymentMethod(account_id=account_id, payment_method_ref=payment_method_ref)
    with lock_for_account(account_id):
        current_domain.process(command, asynchronous=False)
