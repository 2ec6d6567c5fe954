"""Tests for the Cart aggregate: line keys, quantities, merge, clear and checkout removal."""

import pytest
from ordering.cart.cart import Cart
from ordering.cart.events import (
    CartCleared,
    CartLineAdded,
    CartLineQuantityUpdated,
    CartLineRemoved,
    CartsMerged,
    CheckedOutLinesRemoved,
)
from protean.exceptions import ValidationError


def _make_cart():
    return Cart.create(account_id="acct-001")


def _quantities(cart):
    return {line.key: line.quantity for line in cart.lines}


class TestAddLine:
    def test_add_line(self):
        cart = _make_cart()
        cart.add_line("P1", 2, "M", "Black")
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 2
        assert cart.lines[0].size == "M"
        assert cart.lines[0].color == "Black"

    def test_same_key_adds_quantities(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart.add_line("P1", 2, "M", "Black")
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 3

    def test_different_size_or_color_is_a_separate_line(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart.add_line("P1", 1, "L", "Black")
        cart.add_line("P1", 1, "M", "White")
        assert len(cart.lines) == 3

    def test_add_raises_event(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart.add_line("P1", 2, "M", "Black")
        added = [e for e in cart._events if isinstance(e, CartLineAdded)]
        assert len(added) == 2
        assert added[-1].quantity == 2
        assert added[-1].line_quantity == 3

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, quantity):
        cart = _make_cart()
        with pytest.raises(ValidationError) as exc:
            cart.add_line("P1", quantity, "M", "Black")
        assert "quantity" in exc.value.messages
        assert len(cart.lines) == 0

    def test_missing_size_rejected(self):
        cart = _make_cart()
        with pytest.raises(ValidationError) as exc:
            cart.add_line("P1", 1, "", "Black")
        assert "size" in exc.value.messages

    def test_missing_color_rejected(self):
        cart = _make_cart()
        with pytest.raises(ValidationError) as exc:
            cart.add_line("P1", 1, "M", None)
        assert "color" in exc.value.messages


class TestRemoveLine:
    def test_remove_line(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart.add_line("P2", 1, "One Size", "Natural")
        cart.remove_line("P1", "M", "Black")
        assert [line.key for line in cart.lines] == [("P2", "One Size", "Natural")]

    def test_remove_raises_event(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart._events.clear()
        cart.remove_line("P1", "M", "Black")
        assert len(cart._events) == 1
        assert isinstance(cart._events[0], CartLineRemoved)

    def test_removing_absent_line_is_a_no_op(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart._events.clear()
        cart.remove_line("P1", "L", "Black")
        assert len(cart.lines) == 1
        assert cart._events == []


class TestUpdateQuantity:
    def test_update_quantity(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart.update_quantity("P1", "M", "Black", 5)
        assert cart.lines[0].quantity == 5

    def test_update_raises_event(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart._events.clear()
        cart.update_quantity("P1", "M", "Black", 3)
        assert len(cart._events) == 1
        event = cart._events[0]
        assert isinstance(event, CartLineQuantityUpdated)
        assert event.previous_quantity == 1
        assert event.new_quantity == 3

    def test_zero_removes_line(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart.update_quantity("P1", "M", "Black", 0)
        assert len(cart.lines) == 0

    def test_zero_for_absent_line_is_a_no_op(self):
        cart = _make_cart()
        cart.update_quantity("P1", "M", "Black", 0)
        assert len(cart.lines) == 0

    def test_negative_rejected(self):
        cart = _make_cart()
        cart.add_line("P1", 2, "M", "Black")
        with pytest.raises(ValidationError):
            cart.update_quantity("P1", "M", "Black", -1)
        assert cart.lines[0].quantity == 2

    def test_positive_for_absent_line_rejected(self):
        cart = _make_cart()
        with pytest.raises(ValidationError):
            cart.update_quantity("P1", "M", "Black", 2)


class TestMerge:
    def test_sums_matching_keys_and_inserts_new_ones(self):
        cart = _make_cart()
        cart.add_line("P1", 2, "M", "Black")
        cart.add_line("P2", 1, "One Size", "Natural")

        cart.merge(
            [
                {"product_id": "P1", "quantity": 3, "size": "M", "color": "Black"},
                {"product_id": "P3", "quantity": 1, "size": "One Size", "color": "Grey"},
            ]
        )

        assert _quantities(cart) == {
            ("P1", "M", "Black"): 5,
            ("P2", "One Size", "Natural"): 1,
            ("P3", "One Size", "Grey"): 1,
        }

    def test_merge_into_empty_cart_copies_client_lines(self):
        cart = _make_cart()
        cart.merge([{"product_id": "P1", "quantity": 2, "size": "S", "color": "Red"}])
        assert _quantities(cart) == {("P1", "S", "Red"): 2}

    def test_merging_same_client_cart_twice_double_counts(self):
        cart = _make_cart()
        client_lines = [{"product_id": "P1", "quantity": 2, "size": "M", "color": "Black"}]
        cart.merge(client_lines)
        cart.merge(client_lines)
        assert _quantities(cart) == {("P1", "M", "Black"): 4}

    def test_invalid_client_line_rejects_whole_merge(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        with pytest.raises(ValidationError):
            cart.merge(
                [
                    {"product_id": "P1", "quantity": 1, "size": "M", "color": "Black"},
                    {"product_id": "P2", "quantity": 0, "size": "M", "color": "Black"},
                ]
            )
        assert _quantities(cart) == {("P1", "M", "Black"): 1}

    def test_merge_raises_event(self):
        cart = _make_cart()
        cart.merge([{"product_id": "P1", "quantity": 1, "size": "M", "color": "Black"}])
        merged = [e for e in cart._events if isinstance(e, CartsMerged)]
        assert len(merged) == 1
        assert merged[0].lines_merged_count == 1


class TestClear:
    def test_clear_empties_cart(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart.add_line("P2", 1, "One Size", "Natural")
        cart.clear()
        assert len(cart.lines) == 0

    def test_clear_raises_event(self):
        cart = _make_cart()
        cart.add_line("P1", 1, "M", "Black")
        cart._events.clear()
        cart.clear()
        assert isinstance(cart._events[0], CartCleared)
        assert cart._events[0].lines_removed_count == 1


class TestRemoveCheckedOut:
    def test_removes_exactly_the_checked_out_lines(self):
        cart = _make_cart()
        cart.add_line("P1", 2, "M", "Black")
        snapshot = cart.snapshot()
        cart.add_line("P2", 1, "One Size", "Natural")

        cart.remove_checked_out(snapshot)
        assert _quantities(cart) == {("P2", "One Size", "Natural"): 1}

    def test_quantity_added_after_snapshot_is_kept(self):
        cart = _make_cart()
        cart.add_line("P1", 2, "M", "Black")
        snapshot = cart.snapshot()
        cart.add_line("P1", 3, "M", "Black")

        cart.remove_checked_out(snapshot)
        assert _quantities(cart) == {("P1", "M", "Black"): 3}

    def test_line_removed_since_snapshot_is_skipped(self):
        cart = _make_cart()
        cart.add_line("P1", 2, "M", "Black")
        snapshot = cart.snapshot()
        cart.remove_line("P1", "M", "Black")

        cart.remove_checked_out(snapshot)
        assert len(cart.lines) == 0

    def test_raises_event(self):
        cart = _make_cart()
        cart.add_line("P1", 2, "M", "Black")
        snapshot = cart.snapshot()
        cart.add_line("P2", 1, "One Size", "Natural")
        cart._events.clear()

        cart.remove_checked_out(snapshot)
        event = cart._events[0]
        assert isinstance(event, CheckedOutLinesRemoved)
        assert event.lines_removed_count == 1
        assert event.lines_remaining_count == 1

class TestSnapshot:
    def test_snapshot_keeps_insertion_order(self):
        cart = _make_cart()
        cart.add_line("P2", 1, "One Size", "Natural")
        cart.add_line("P1", 2, "M", "Black")
        assert cart.snapshot() == [
            {"product_id": "P2", "quantity": 1, "size": "One Size", "color": "Natural"},
            {"product_id": "P1", "quantity": 2, "size": "M", "color": "Black"},
        ]
