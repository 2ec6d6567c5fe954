"""Ordering bounded context: shopping cart, checkout and payment reconciliation.

Handles the per-account shopping cart (CQRS), conversion of a cart snapshot
into an immutable order with inventory reservation, and reconciliation of
payment-provider state with local order payment state.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
