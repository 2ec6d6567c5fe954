"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared across users.
State tracks ids returned by the API so follow-up requests can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class CheckoutState:
    """Tracks one simulated shopper from cart to paid order."""

    account_id: str | None = None
    headers: dict = field(default_factory=dict)
    line_count: int = 0
    order_id: str | None = None
    total_price: float = 0.0
    intent_id: str | None = None
    is_paid: bool = False
