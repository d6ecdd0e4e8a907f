"""Tests for item reconciliation and the two total strategies."""

from decimal import Decimal

import pytest
from factories import item

from receiptbeaver.domain.errors import InvalidItemIndex
from receiptbeaver.domain.operations import DeleteItem, RecategorizeItem
from receiptbeaver.receipt.reconcile import (
    effective_price,
    plan_item_edits,
    recompute_total,
    remove_item,
    resolve_operations,
    round_currency,
    set_item_category,
)


def _items():
    return [item("Eggs", "5.00"), item("Coffee", "10.00", quantity="2")]


def test_delete_subtracts_effective_price_from_stored_total() -> None:
    plan = plan_item_edits(_items(), Decimal("25.00"), [DeleteItem("r1", 1)])

    assert [i.name for i in plan.items] == ["Eggs"]
    assert plan.deleted_delta == Decimal("20.00")
    assert plan.total_amount == Decimal("5.00")
    assert plan.applied == 1
    assert plan.needs_update


def test_recategorize_keeps_total_and_position() -> None:
    plan = plan_item_edits(_items(), Decimal("25.00"), [RecategorizeItem("r1", 0, "Dairy")])

    assert [(i.name, i.category) for i in plan.items] == [("Eggs", "Dairy"), ("Coffee", "Other")]
    assert plan.total_amount == Decimal("25.00")
    assert plan.recategorized_indices == (0,)


def test_batch_delta_preserves_existing_drift() -> None:
    items = [item("A", "3.33"), item("B", "3.34")]

    plan = plan_item_edits(items, Decimal("7.00"), [DeleteItem("r1", 0)])

    assert plan.total_amount == Decimal("3.67")


def test_indices_address_the_stored_list_not_the_edited_view() -> None:
    items = [item("A", "1.00"), item("B", "2.00"), item("C", "4.00")]

    plan = plan_item_edits(items, Decimal("7.00"), [DeleteItem("r1", 0), DeleteItem("r1", 2)])

    assert [i.name for i in plan.items] == ["B"]
    assert plan.total_amount == Decimal("2.00")
    assert plan.deleted_indices == (0, 2)


@pytest.mark.parametrize(
    "operations",
    [
        [DeleteItem("r1", 0), RecategorizeItem("r1", 0, "Dairy")],
        [RecategorizeItem("r1", 0, "Dairy"), DeleteItem("r1", 0)],
    ],
)
def test_delete_wins_over_recategorize_in_either_order(operations) -> None:
    plan = plan_item_edits(_items(), Decimal("25.00"), operations)

    assert [i.name for i in plan.items] == ["Coffee"]
    assert all(i.category != "Dairy" for i in plan.items)
    assert plan.total_amount == Decimal("20.00")
    assert plan.applied == 1
    assert [op.category for op in plan.discarded] == ["Dairy"]


def test_last_recategorize_wins() -> None:
    by_index, discarded = resolve_operations(
        [RecategorizeItem("r1", 1, "Snacks"), RecategorizeItem("r1", 1, "Beverages")]
    )

    assert by_index == {1: RecategorizeItem("r1", 1, "Beverages")}
    assert discarded == []


def test_duplicate_delete_counts_once() -> None:
    plan = plan_item_edits(_items(), Decimal("25.00"), [DeleteItem("r1", 0), DeleteItem("r1", 0)])

    assert plan.total_amount == Decimal("20.00")
    assert plan.applied == 1


@pytest.mark.parametrize("bad_index", [-1, 2, 99])
def test_out_of_range_index_rejects_whole_plan(bad_index: int) -> None:
    with pytest.raises(InvalidItemIndex) as excinfo:
        plan_item_edits(_items(), Decimal("25.00"), [DeleteItem("r1", 0), DeleteItem("r1", bad_index)])

    assert excinfo.value.kind == "InvalidIndex"
    assert excinfo.value.item_index == bad_index


def test_empty_item_list_rejects_any_index() -> None:
    with pytest.raises(InvalidItemIndex):
        plan_item_edits([], Decimal("12.00"), [RecategorizeItem("r1", 0, "Dairy")])


def test_no_operations_means_no_update() -> None:
    plan = plan_item_edits(_items(), Decimal("25.00"), [])

    assert not plan.needs_update
    assert plan.total_amount == Decimal("25.00")


def test_effective_price_treats_fractional_quantity_as_one() -> None:
    assert effective_price(item("Bananas", "1.20", quantity="0.45")) == Decimal("1.20")
    assert effective_price(item("Soda", "2.50", quantity="3")) == Decimal("7.50")


def test_round_currency_rounds_half_up() -> None:
    assert round_currency(Decimal("2.345")) == Decimal("2.35")
    assert round_currency(Decimal("-0.005")) == Decimal("-0.01")


def test_recompute_total_sums_remaining_items() -> None:
    assert recompute_total([item("A", "3.33"), item("B", "3.34")]) == Decimal("6.67")
    assert recompute_total([item("Soda", "1.115", quantity="2")]) == Decimal("2.23")
    assert recompute_total([]) == Decimal("0.00")


def test_remove_item_returns_removed_line() -> None:
    remaining, removed = remove_item(_items(), 0)

    assert removed.name == "Eggs"
    assert [i.name for i in remaining] == ["Coffee"]


def test_set_item_category_does_not_mutate_input() -> None:
    items = _items()

    updated = set_item_category(items, 1, "Beverages")

    assert updated[1].category == "Beverages"
    assert items[1].category == "Other"


def test_set_item_category_twice_is_idempotent() -> None:
    once = set_item_category(_items(), 0, "Dairy")
    twice = set_item_category(once, 0, "Dairy")

    assert once == twice
