"""Item edit workflows: batch reconciliation and single-item edits.

Every function here returns a structured result; taxonomy errors never
escape to the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from receiptbeaver.application.receipts.services import (
    ReceiptServices,
    failure_result,
    load_owned_receipt,
    require_user,
)
from receiptbeaver.domain.errors import ReceiptActionError
from receiptbeaver.domain.operations import ActionResult, BatchResult, ItemOperation, ReceiptGroupResult
from receiptbeaver.receipt.documents import format_amount, items_to_document
from receiptbeaver.receipt.reconcile import plan_item_edits, recompute_total, remove_item, set_item_category
from receiptbeaver.runtime.logging import get_logger
from receiptbeaver.runtime.view_cache import DASHBOARD_PATH

logger = get_logger(__name__)


def group_operations(operations: Sequence[ItemOperation]) -> dict[str, list[ItemOperation]]:
    """Partition operations by receipt, keeping first-seen receipt order."""
    grouped: dict[str, list[ItemOperation]] = {}
    for op in operations:
        grouped.setdefault(op.receipt_id, []).append(op)
    return grouped


async def _apply_receipt_group(
    services: ReceiptServices,
    receipt_id: str,
    operations: list[ItemOperation],
    user_id: str,
) -> ReceiptGroupResult:
    """One read and at most one write for a single receipt."""
    try:
        receipt = await load_owned_receipt(services.store, receipt_id, user_id)
        plan = plan_item_edits(receipt.items, receipt.total_amount, operations)
        for dropped in plan.discarded:
            logger.info(
                "Receipt %s item %d is deleted in this batch; dropping category change to %r",
                receipt_id,
                dropped.item_index,
                dropped.category,
            )
        if not plan.needs_update:
            return ReceiptGroupResult(receipt_id=receipt_id, success=True)

        await services.store.update(
            receipt_id,
            {
                "items": items_to_document(plan.items),
                "totalAmount": format_amount(plan.total_amount),
                "updatedAt": services.now().isoformat(),
            },
        )
        logger.info(
            "Receipt %s: %d deleted, %d recategorized, total %s -> %s",
            receipt_id,
            len(plan.deleted_indices),
            len(plan.recategorized_indices),
            receipt.total_amount,
            plan.total_amount,
        )
        return ReceiptGroupResult(receipt_id=receipt_id, success=True, applied=plan.applied, written=True)
    except ReceiptActionError as exc:
        logger.error("Batch group for receipt %s failed (%s): %s", receipt_id, exc.kind, exc)
        return ReceiptGroupResult(receipt_id=receipt_id, success=False, error=str(exc), error_kind=exc.kind)


async def apply_batch(
    services: ReceiptServices,
    operations: Sequence[ItemOperation],
    user_id: str | None,
) -> BatchResult:
    """Apply item deletes and category changes across any number of receipts.

    Receipt groups run concurrently and independently. A failing group
    leaves its own receipt untouched and never undoes the writes of other
    groups, so ``success=False`` does not mean nothing was saved; consult
    ``groups`` for what was. Any failing group clears ``success``, whatever
    its error kind.
    """
    try:
        acting_user = require_user(user_id)
    except ReceiptActionError as exc:
        result = failure_result("Batch update", exc)
        return BatchResult(success=False, error=result.error, error_kind=result.error_kind)

    if not operations:
        return BatchResult(success=True, message="No changes to apply")

    grouped = group_operations(operations)
    groups = tuple(
        await asyncio.gather(
            *(_apply_receipt_group(services, receipt_id, ops, acting_user) for receipt_id, ops in grouped.items())
        )
    )

    if any(group.written for group in groups):
        services.invalidator.invalidate(DASHBOARD_PATH)

    failed = [group for group in groups if not group.success]
    if not failed:
        return BatchResult(success=True, message="Batch updates processed successfully", groups=groups)

    error = "; ".join(f"{group.receipt_id}: {group.error}" for group in failed)
    return BatchResult(success=False, error=error, error_kind=failed[0].error_kind, groups=groups)


async def delete_receipt_item(
    services: ReceiptServices,
    receipt_id: str,
    item_index: int,
    user_id: str | None,
) -> ActionResult:
    """Remove one item and recompute the total from the remaining items."""
    try:
        acting_user = require_user(user_id)
        receipt = await load_owned_receipt(services.store, receipt_id, acting_user)
        remaining, removed = remove_item(receipt.items, item_index)
        new_total = recompute_total(remaining)
        await services.store.update(
            receipt_id,
            {
                "items": items_to_document(remaining),
                "totalAmount": format_amount(new_total),
                "updatedAt": services.now().isoformat(),
            },
        )
    except ReceiptActionError as exc:
        return failure_result("Delete item", exc)

    logger.info("Receipt %s: deleted item %d (%s), total -> %s", receipt_id, item_index, removed.name, new_total)
    services.invalidator.invalidate(DASHBOARD_PATH)
    return ActionResult(success=True, message="Item deleted successfully")


async def update_receipt_item_category(
    services: ReceiptServices,
    receipt_id: str,
    item_index: int,
    new_category: str,
    user_id: str | None,
) -> ActionResult:
    """Move one item to another category; the total is left alone."""
    try:
        acting_user = require_user(user_id)
        receipt = await load_owned_receipt(services.store, receipt_id, acting_user)
        updated = set_item_category(receipt.items, item_index, new_category)
        await services.store.update(
            receipt_id,
            {
                "items": items_to_document(updated),
                "updatedAt": services.now().isoformat(),
            },
        )
    except ReceiptActionError as exc:
        return failure_result("Update item category", exc)

    logger.info("Receipt %s: item %d category -> %r", receipt_id, item_index, new_category)
    services.invalidator.invalidate(DASHBOARD_PATH)
    return ActionResult(success=True, message="Item category updated successfully")
