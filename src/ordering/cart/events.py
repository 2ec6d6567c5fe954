"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartLineAdded:
    """Units of a (product, size, color) selection were added to the cart."""

    __version__ = 1

    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True)
    color = String(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartLineQuantityUpdated:
    """A cart line's quantity was set to a new value."""

    __version__ = 1

    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True)
    color = String(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartLineRemoved:
    """A line was removed from the cart."""

    __version__ = 1

    account_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True)
    color = String(required=True)


@ordering.event(part_of="Cart")
class CartsMerged:
    """A client-held cart was merged into the account's server cart."""

    __version__ = 1

    account_id = Identifier(required=True)
    lines_merged_count = Integer(required=True)
    merged_at = DateTime(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """All lines were removed from the cart."""

    __version__ = 1

    account_id = Identifier(required=True)
    lines_removed_count = Integer(required=True)
    cleared_at = DateTime(required=True)


@ordering.event(part_of="Cart")
class CheckedOutLinesRemoved:
    """The quantities that went into an order were taken out of the cart."""

    __version__ = 1

    account_id = Identifier(required=True)
    lines_removed_count = Integer(required=True)
    lines_remaining_count = Integer(required=True)
    removed_at = DateTime(required=True)
