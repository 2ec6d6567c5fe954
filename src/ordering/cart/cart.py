"""Cart aggregate (CQRS): the authoritative per-account shopping cart.

The cart's identity is the owning account id, so an account can only ever have
one server cart. Lines are keyed by (product_id, size, color): adding a line
whose key already exists adds to its quantity instead of creating a duplicate.

Carts are never deleted; they are emptied with ``clear()``.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ordering.cart.events import (
    CartCleared,
    CartLineAdded,
    CartLineQuantityUpdated,
    CartLineRemoved,
    CartsMerged,
    CheckedOutLinesRemoved,
)
from ordering.domain import ordering


@ordering.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    size = String(required=True, max_length=50)
    color = String(required=True, max_length=50)
    added_at = DateTime()

    @property
    def key(self):
        return (str(self.product_id), self.size, self.color)


def validate_line(product_id, quantity, size, color):
    errors = {}
    if not product_id:
        errors["product_id"] = ["Product is required"]
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        errors["quantity"] = ["Quantity must be a positive integer"]
    if not size:
        errors["size"] = ["Size is required"]
    if not color:
        errors["color"] = ["Color is required"]
    if errors:
        raise ValidationError(errors)


@ordering.aggregate
class Cart:
    account_id = Identifier(identifier=True, required=True)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, account_id):
        now = datetime.now(UTC)
        return cls(account_id=account_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def find_line(self, product_id, size, color):
        key = (str(product_id), size, color)
        return next((line for line in self.lines if line.key == key), None)

    def quantity_of(self, product_id, size, color):
        line = self.find_line(product_id, size, color)
        return line.quantity if line else 0

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_line(self, product_id, quantity, size, color):
        """Add units of a selection, summing with an existing line of the same key."""
        validate_line(product_id, quantity, size, color)

        now = datetime.now(UTC)
        existing = self.find_line(product_id, size, color)
        if existing:
            existing.quantity += quantity
            line_quantity = existing.quantity
        else:
            self.add_lines(
                CartLine(
                    product_id=product_id,
                    quantity=quantity,
                    size=size,
                    color=color,
                    added_at=now,
                )
            )
            line_quantity = quantity

        self.updated_at = now

        self.raise_(
            CartLineAdded(
                account_id=str(self.account_id),
                product_id=str(product_id),
                size=size,
                color=color,
                quantity=quantity,
                line_quantity=line_quantity,
            )
        )

    def remove_line(self, product_id, size, color):
        """Remove the matching line. Removing a line that is not there is a no-op."""
        line = self.find_line(product_id, size, color)
        if line is None:
            return

        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineRemoved(
                account_id=str(self.account_id),
                product_id=str(product_id),
                size=size,
                color=color,
            )
        )

    def update_quantity(self, product_id, size, color, quantity):
        """Set a line's quantity. Zero removes the line."""
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
            raise ValidationError({"quantity": ["Quantity must be zero or a positive integer"]})

        if quantity == 0:
            self.remove_line(product_id, size, color)
            return

        line = self.find_line(product_id, size, color)
        if line is None:
            raise ValidationError({"line": ["Item not found in cart"]})

        previous_quantity = line.quantity
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineQuantityUpdated(
                account_id=str(self.account_id),
                product_id=str(product_id),
                size=size,
                color=color,
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    # -------------------------------------------------------------------
    # Client cart sync
    # -------------------------------------------------------------------
    def merge(self, client_lines):
        """Merge a client-held cart into this one.

        For each client line, quantities are summed with the server line of
        the same key, or the line is inserted as-is. Merging the same client
        cart twice counts it twice; clients must drop their local copy once a
        merge succeeds.

        Args:
            client_lines: List of dicts with product_id, quantity, size, color.
        """
        for client_line in client_lines:
            validate_line(
                client_line.get("product_id"),
                client_line.get("quantity"),
                client_line.get("size"),
                client_line.get("color"),
            )

        now = datetime.now(UTC)
        for client_line in client_lines:
            existing = self.find_line(client_line["product_id"], client_line["size"], client_line["color"])
            if existing:
                existing.quantity += client_line["quantity"]
            else:
                self.add_lines(
                    CartLine(
                        product_id=client_line["product_id"],
                        quantity=client_line["quantity"],
                        size=client_line["size"],
                        color=client_line["color"],
                        added_at=now,
                    )
                )

        self.updated_at = now

        self.raise_(
            CartsMerged(
                account_id=str(self.account_id),
                lines_merged_count=len(client_lines),
                merged_at=now,
            )
        )

    def clear(self):
        """Remove every line."""
        removed = len(self.lines)
        for line in list(self.lines):
            self.remove_lines(line)

        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CartCleared(
                account_id=str(self.account_id),
                lines_removed_count=removed,
                cleared_at=now,
            )
        )

    def remove_checked_out(self, checked_out_lines):
        """Take the quantities of a checkout snapshot out of the cart.

        Only the snapshotted units go: a line added after the snapshot stays,
        and a line whose quantity grew keeps the difference.
        """
        removed = 0
        for checked_out in checked_out_lines:
            line = self.find_line(checked_out["product_id"], checked_out["size"], checked_out["color"])
            if line is None:
                continue
            if line.quantity > checked_out["quantity"]:
                line.quantity -= checked_out["quantity"]
            else:
                self.remove_lines(line)
                removed += 1

        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CheckedOutLinesRemoved(
                account_id=str(self.account_id),
                lines_removed_count=removed,
                lines_remaining_count=len(self.lines),
                removed_at=now,
            )
        )

    def snapshot(self):
        """Plain copy of the lines, in insertion order."""
        return [
            {
                "product_id": str(line.product_id),
                "quantity": line.quantity,
                "size": line.size,
                "color": line.color,
            }
            for line in self.lines
        ]
