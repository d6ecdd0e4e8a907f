"""Item reconciliation and total recalculation for stored receipts.

Two total strategies live here and are deliberately kept apart:

- Batch edits subtract the effective price of deleted items from the stored
  total (``plan_item_edits``). Any drift already present in the stored total,
  e.g. from tax or fees that are not itemized, is preserved.
- Single-item deletes recompute the total from the remaining items
  (``recompute_total``), which silently corrects prior drift.

Items are addressed by position in the stored item list at the time the
edits are applied, never by position in an already-edited view.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from receiptbeaver.domain.errors import InvalidItemIndex
from receiptbeaver.domain.operations import DeleteItem, ItemOperation, RecategorizeItem
from receiptbeaver.domain.receipt import ReceiptItem

CENT = Decimal("0.01")
ONE = Decimal("1")


def round_currency(amount: Decimal) -> Decimal:
    """Round to cents (half-up), the only scale totals are stored at."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def effective_price(item: ReceiptItem) -> Decimal:
    """Contribution of a deleted item to the batch total delta."""
    return item.price * max(item.quantity, ONE)


def recompute_total(items: Iterable[ReceiptItem]) -> Decimal:
    """Sum ``price * quantity`` over items, treating a missing quantity as 1."""
    total = sum((item.price * (item.quantity or ONE) for item in items), Decimal("0"))
    return round_currency(total)


def check_item_index(item_index: int, item_count: int) -> None:
    """Raise InvalidItemIndex unless ``0 <= item_index < item_count``."""
    if item_index < 0 or item_index >= item_count:
        raise InvalidItemIndex(item_index, item_count)


@dataclass(frozen=True)
class ItemEditPlan:
    """Result of applying one receipt's operations to its stored item list."""

    items: list[ReceiptItem]
    total_amount: Decimal
    deleted_delta: Decimal
    applied: int
    deleted_indices: tuple[int, ...] = ()
    recategorized_indices: tuple[int, ...] = ()
    discarded: tuple[RecategorizeItem, ...] = ()

    @property
    def needs_update(self) -> bool:
        return self.applied > 0


def resolve_operations(
    operations: Sequence[ItemOperation],
) -> tuple[dict[int, ItemOperation], list[RecategorizeItem]]:
    """Collapse operations to at most one per item index.

    A delete for an index always wins over category edits for the same index.
    Among category edits for one index, the last one wins.
    Returns the winning operation per index and the category edits dropped
    because the same index is being deleted.
    """
    by_index: dict[int, ItemOperation] = {}
    discarded: list[RecategorizeItem] = []
    for op in operations:
        current = by_index.get(op.item_index)
        if isinstance(op, DeleteItem):
            if isinstance(current, RecategorizeItem):
                discarded.append(current)
            by_index[op.item_index] = op
        elif isinstance(current, DeleteItem):
            discarded.append(op)
        else:
            by_index[op.item_index] = op
    return by_index, discarded


def plan_item_edits(
    items: Sequence[ReceiptItem],
    stored_total: Decimal,
    operations: Sequence[ItemOperation],
) -> ItemEditPlan:
    """Apply a receipt's operations in one ordered pass over its items.

    Every index is validated before anything is applied, so an out-of-range
    index leaves no partial edits behind.
    """
    for op in operations:
        check_item_index(op.item_index, len(items))

    by_index, discarded = resolve_operations(operations)

    new_items: list[ReceiptItem] = []
    deleted_delta = Decimal("0")
    deleted: list[int] = []
    recategorized: list[int] = []
    for index, item in enumerate(items):
        op = by_index.get(index)
        if op is None:
            new_items.append(item)
        elif isinstance(op, DeleteItem):
            deleted_delta += effective_price(item)
            deleted.append(index)
        else:
            new_items.append(dataclasses.replace(item, category=op.category))
            recategorized.append(index)

    return ItemEditPlan(
        items=new_items,
        total_amount=round_currency(stored_total - deleted_delta),
        deleted_delta=deleted_delta,
        applied=len(by_index),
        deleted_indices=tuple(deleted),
        recategorized_indices=tuple(recategorized),
        discarded=tuple(discarded),
    )


def remove_item(items: Sequence[ReceiptItem], item_index: int) -> tuple[list[ReceiptItem], ReceiptItem]:
    """Return the items without ``item_index`` plus the removed item."""
    check_item_index(item_index, len(items))
    remaining = list(items)
    removed = remaining.pop(item_index)
    return remaining, removed


def set_item_category(items: Sequence[ReceiptItem], item_index: int, category: str) -> list[ReceiptItem]:
    """Return the items with ``item_index`` moved to ``category``."""
    check_item_index(item_index, len(items))
    updated = list(items)
    updated[item_index] = dataclasses.replace(updated[item_index], category=category)
    return updated
