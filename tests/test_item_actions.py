"""Tests for batch and single-item edit workflows against the document store."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal

import pytest
from factories import ALICE, BOB, FIXED_NOW, item, make_receipt

from receiptbeaver.application.receipts import apply_batch, delete_receipt_item, update_receipt_item_category
from receiptbeaver.application.receipts.items import group_operations
from receiptbeaver.domain.operations import DeleteItem, RecategorizeItem
from receiptbeaver.runtime.view_cache import DASHBOARD_PATH


def _scenario_receipt(receipt_id: str = "r1", user_id: str = ALICE):
    return make_receipt(
        receipt_id,
        [item("Eggs", "5.00"), item("Coffee", "10.00", quantity="2")],
        "25.00",
        user_id=user_id,
    )


def test_batch_delete_subtracts_effective_price(services, seed, stored) -> None:
    seed(_scenario_receipt())

    result = asyncio.run(apply_batch(services, [DeleteItem("r1", 1)], ALICE))

    assert result.success
    assert result.message == "Batch updates processed successfully"
    receipt = stored("r1")
    assert [(i.name, i.price, i.quantity) for i in receipt.items] == [("Eggs", Decimal("5.00"), Decimal("1"))]
    assert receipt.total_amount == Decimal("5.00")
    assert receipt.updated_at == FIXED_NOW
    assert services.invalidator.invalidated == [DASHBOARD_PATH]


def test_batch_recategorize_leaves_total(services, seed, stored) -> None:
    seed(_scenario_receipt())

    result = asyncio.run(apply_batch(services, [RecategorizeItem("r1", 0, "Dairy")], ALICE))

    assert result.success
    receipt = stored("r1")
    assert receipt.items[0].category == "Dairy"
    assert receipt.items[1].category == "Other"
    assert receipt.total_amount == Decimal("25.00")


def test_batch_partial_failure_keeps_other_receipt_write(services, seed, stored) -> None:
    seed(_scenario_receipt("x1"))
    seed(_scenario_receipt("y1", user_id=BOB))

    result = asyncio.run(
        apply_batch(services, [DeleteItem("x1", 0), RecategorizeItem("y1", 0, "Dairy")], ALICE)
    )

    assert not result.success
    assert result.error_kind == "Unauthorized"
    assert result.error.startswith("y1: ")
    groups = {group.receipt_id: group for group in result.groups}
    assert groups["x1"].success and groups["x1"].written
    assert groups["y1"].error_kind == "Unauthorized"
    assert stored("x1").total_amount == Decimal("20.00")
    assert stored("y1").items[0].category == "Other"
    assert services.invalidator.invalidated == [DASHBOARD_PATH]


def test_batch_delete_wins_over_recategorize(services, seed, stored) -> None:
    seed(_scenario_receipt())

    result = asyncio.run(
        apply_batch(services, [RecategorizeItem("r1", 0, "Dairy"), DeleteItem("r1", 0)], ALICE)
    )

    assert result.success
    receipt = stored("r1")
    assert [i.name for i in receipt.items] == ["Coffee"]
    assert all(i.category != "Dairy" for i in receipt.items)
    assert receipt.total_amount == Decimal("20.00")


def test_batch_invalid_index_leaves_receipt_untouched(services, seed, data_root) -> None:
    seed(_scenario_receipt())
    before = (data_root / "receipts" / "r1.json").read_text()

    result = asyncio.run(apply_batch(services, [DeleteItem("r1", 0), DeleteItem("r1", 5)], ALICE))

    assert not result.success
    assert result.error_kind == "InvalidIndex"
    assert (data_root / "receipts" / "r1.json").read_text() == before
    assert services.invalidator.invalidated == []


def test_batch_missing_receipt_reports_not_found(services) -> None:
    result = asyncio.run(apply_batch(services, [DeleteItem("missing", 0)], ALICE))

    assert not result.success
    assert result.error_kind == "NotFound"
    assert result.groups[0].error == "Receipt missing not found"


@pytest.mark.parametrize("user_id", [None, "", "   "])
def test_batch_without_user_is_unauthorized(services, seed, stored, user_id) -> None:
    seed(_scenario_receipt())

    result = asyncio.run(apply_batch(services, [DeleteItem("r1", 0)], user_id))

    assert not result.success
    assert result.error_kind == "Unauthorized"
    assert result.groups == ()
    assert len(stored("r1").items) == 2


def test_batch_with_no_operations_does_not_write(services) -> None:
    result = asyncio.run(apply_batch(services, [], ALICE))

    assert result.success
    assert result.message == "No changes to apply"
    assert services.invalidator.invalidated == []


def test_batch_runs_receipt_groups_and_reports_each(services, seed, stored) -> None:
    for receipt_id in ("a", "b", "c"):
        seed(_scenario_receipt(receipt_id))

    operations = [
        DeleteItem("a", 0),
        RecategorizeItem("b", 1, "Beverages"),
        DeleteItem("c", 1),
        RecategorizeItem("a", 1, "Beverages"),
    ]
    result = asyncio.run(apply_batch(services, operations, ALICE))

    assert result.success
    assert [group.receipt_id for group in result.groups] == ["a", "b", "c"]
    assert [group.applied for group in result.groups] == [2, 1, 1]
    assert stored("a").total_amount == Decimal("20.00")
    assert stored("a").items[0].category == "Beverages"
    assert stored("b").total_amount == Decimal("25.00")
    assert stored("c").total_amount == Decimal("5.00")
    assert services.invalidator.invalidated == [DASHBOARD_PATH]


def test_batch_payload_lists_groups(services, seed) -> None:
    seed(_scenario_receipt())

    payload = asyncio.run(apply_batch(services, [DeleteItem("r1", 0)], ALICE)).to_payload()

    assert payload["success"] is True
    assert payload["groups"] == [{"receiptId": "r1", "success": True, "applied": 1}]


def test_group_operations_keeps_first_seen_order() -> None:
    grouped = group_operations([DeleteItem("b", 0), DeleteItem("a", 1), DeleteItem("b", 2)])

    assert list(grouped) == ["b", "a"]
    assert [op.item_index for op in grouped["b"]] == [0, 2]


def test_delete_item_recomputes_total_from_remaining_items(services, seed, stored) -> None:
    seed(make_receipt("d1", [item("A", "3.33"), item("B", "3.34"), item("C", "0.33")], "7.00"))

    result = asyncio.run(delete_receipt_item(services, "d1", 2, ALICE))

    assert result.success
    assert result.message == "Item deleted successfully"
    receipt = stored("d1")
    assert [i.name for i in receipt.items] == ["A", "B"]
    assert receipt.total_amount == Decimal("6.67")
    assert receipt.updated_at == FIXED_NOW
    assert services.invalidator.invalidated == [DASHBOARD_PATH]


def test_delete_item_stores_total_as_decimal_string(services, seed, data_root) -> None:
    seed(make_receipt("d1", [item("A", "3.33"), item("B", "3.34"), item("C", "0.33")], "7.00"))

    asyncio.run(delete_receipt_item(services, "d1", 2, ALICE))

    doc = json.loads((data_root / "receipts" / "d1.json").read_text())
    assert doc["totalAmount"] == "6.67"
    assert doc["updatedAt"] == FIXED_NOW.isoformat()


def test_delete_item_rejects_foreign_receipt(services, seed, stored) -> None:
    seed(_scenario_receipt(user_id=BOB))

    result = asyncio.run(delete_receipt_item(services, "r1", 0, ALICE))

    assert not result.success
    assert result.error_kind == "Unauthorized"
    assert result.error == "Unauthorized access to receipt"
    assert len(stored("r1").items) == 2


def test_delete_item_rejects_out_of_range_index(services, seed, stored) -> None:
    seed(_scenario_receipt())

    result = asyncio.run(delete_receipt_item(services, "r1", 2, ALICE))

    assert not result.success
    assert result.error_kind == "InvalidIndex"
    assert stored("r1").total_amount == Decimal("25.00")
    assert services.invalidator.invalidated == []


def test_update_item_category_twice_is_idempotent(services, seed, stored) -> None:
    seed(_scenario_receipt())

    first = asyncio.run(update_receipt_item_category(services, "r1", 1, "Beverages", ALICE))
    after_first = stored("r1")
    second = asyncio.run(update_receipt_item_category(services, "r1", 1, "Beverages", ALICE))

    assert first.success and second.success
    assert stored("r1") == after_first
    assert after_first.items[1].category == "Beverages"
    assert after_first.total_amount == Decimal("25.00")


def test_update_item_category_missing_receipt(services) -> None:
    result = asyncio.run(update_receipt_item_category(services, "nope", 0, "Dairy", ALICE))

    assert not result.success
    assert result.error_kind == "NotFound"
    assert result.to_payload() == {"success": False, "error": "Receipt nope not found", "errorKind": "NotFound"}


def test_batch_reports_receipt_with_malformed_items_instead_of_raising(services, seed, stored, data_root) -> None:
    seed(_scenario_receipt())
    (data_root / "receipts" / "broken.json").write_text(
        json.dumps({"userId": ALICE, "storeName": "Odd Shop", "totalAmount": "3.00", "items": 5})
    )

    result = asyncio.run(apply_batch(services, [DeleteItem("r1", 0), DeleteItem("broken", 0)], ALICE))

    assert not result.success
    groups = {group.receipt_id: group for group in result.groups}
    assert groups["r1"].success
    assert groups["broken"].error_kind == "InvalidIndex"
    assert stored("r1").total_amount == Decimal("20.00")
