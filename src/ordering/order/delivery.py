"""Order delivery: commands and handler."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class DeliveryHandler:
    @handle(MarkDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.mark_delivered()
        repo.add(order)
