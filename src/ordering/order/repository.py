"""Repository for the Order aggregate."""

from protean.exceptions import ObjectNotFoundError

from ordering.domain import ordering
from ordering.errors import OrderNotFound
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    def get_order(self, order_id) -> Order:
        """Load an order, raising ``OrderNotFound`` when it does not exist."""
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            raise OrderNotFound(order_id) from None

    def find_by_intent(self, intent_id) -> Order | None:
        """The order currently tracking ``intent_id``, if any."""
        return self._dao.query.filter(payment_intent_id=intent_id).all().first

    def owned_by(self, owner_id) -> list[Order]:
        """An account's orders, newest first."""
        return self._dao.query.filter(owner_id=str(owner_id)).order_by("-created_at").all().items

    def newest_first(self) -> list[Order]:
        return self._dao.query.order_by("-created_at").all().items
