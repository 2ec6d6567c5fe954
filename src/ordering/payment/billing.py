"""Billing profile: the provider-side customer reference for an account.

The reference is created at the provider the first time the account pays (or
saves a card) and reused for every later intent. Creation is serialized per
account in-process, and the provider call carries an idempotency key derived
from the account, so two racing requests, or a retry after a failure, still
end up with a single provider customer.
"""

import threading
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.payment.gateway import get_gateway
from ordering.payment.timeouts import call_with_timeout

logger = structlog.get_logger(__name__)

_LOCK_STRIPES = 64
_account_locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]


def lock_for_account(account_id) -> threading.Lock:
    return _account_locks[hash(str(account_id)) % _LOCK_STRIPES]


@ordering.aggregate
class BillingProfile:
    account_id = Identifier(identifier=True, required=True)
    customer_ref = String(required=True, max_length=255)
    default_payment_method_ref = String(max_length=255)
    created_at = DateTime()

    def use_default_payment_method(self, payment_method_ref: str) -> None:
        self.default_payment_method_ref = payment_method_ref


def customer_idempotency_key(account_id) -> str:
    return f"customer-{account_id}"


def find_profile(account_id) -> BillingProfile | None:
    try:
        return current_domain.repository_for(BillingProfile).get(account_id)
    except ObjectNotFoundError:
        return None


def ensure_customer_ref(account_id, email=None, name=None) -> str:
    """Return the account's provider customer reference, creating it on first use.

    Call this outside any unit of work. The new profile is committed on its
    own, so it survives a failure of whatever provider call comes next.
    """
    with lock_for_account(account_id):
        profile = find_profile(account_id)
        if profile is not None:
            return profile.customer_ref

        customer_ref = call_with_timeout(
            "create_customer",
            get_gateway().create_customer,
            str(account_id),
            email=email,
            name=name,
            idempotency_key=customer_idempotency_key(account_id),
        )
        current_domain.repository_for(BillingProfile).add(
            BillingProfile(
                account_id=account_id,
                customer_ref=customer_ref,
                created_at=datetime.now(UTC),
            )
        )
        logger.info("billing_profile_created", account_id=str(account_id))
        return customer_ref
