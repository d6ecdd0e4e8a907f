"""Whole-receipt workflows: descriptive edits, total override, deletion."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from receiptbeaver.application.receipts.services import (
    ReceiptServices,
    failure_result,
    load_owned_receipt,
    require_user,
)
from receiptbeaver.domain.errors import ReceiptActionError, ReceiptNotFound
from receiptbeaver.domain.operations import ActionResult
from receiptbeaver.receipt.documents import format_amount, parse_amount
from receiptbeaver.receipt.reconcile import round_currency
from receiptbeaver.runtime.logging import get_logger
from receiptbeaver.runtime.view_cache import DASHBOARD_PATH

logger = get_logger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ReceiptChanges:
    """User edits to a receipt's descriptive fields.

    ``total_amount`` is the explicit override; it is the only way to set the
    total other than item deletion.
    """

    store_name: str | None = None
    date: str | None = None
    category: str | None = None
    total_amount: Decimal | None = None

    def to_document_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if self.store_name is not None:
            fields["storeName"] = self.store_name
        if self.date is not None:
            fields["date"] = self.date
            fields["yearMonth"] = self.date[:7]
        if self.category is not None:
            fields["category"] = self.category
        if self.total_amount is not None:
            fields["totalAmount"] = format_amount(round_currency(self.total_amount))
        return fields


def changes_from_payload(payload: Mapping[str, Any]) -> ReceiptChanges:
    """Validate a wire payload; raises ValueError on bad values."""
    unknown = set(payload) - {"storeName", "date", "category", "totalAmount"}
    if unknown:
        raise ValueError(f"Unsupported receipt fields: {', '.join(sorted(unknown))}")

    date = payload.get("date")
    if date is not None and (not isinstance(date, str) or not _ISO_DATE_RE.match(date)):
        raise ValueError("date must be YYYY-MM-DD")

    total_amount = None
    if payload.get("totalAmount") is not None:
        total_amount = parse_amount(payload["totalAmount"], default=Decimal("NaN"))
        if total_amount.is_nan() or total_amount < 0:
            raise ValueError("totalAmount must be a non-negative number")

    store_name = payload.get("storeName")
    category = payload.get("category")
    for name, value in (("storeName", store_name), ("category", category)):
        if value is not None and (not isinstance(value, str) or not value.strip()):
            raise ValueError(f"{name} must be a non-empty string")

    return ReceiptChanges(
        store_name=store_name.strip() if store_name else None,
        date=date,
        category=category.strip() if category else None,
        total_amount=total_amount,
    )


async def update_receipt(
    services: ReceiptServices,
    receipt_id: str,
    user_id: str | None,
    changes: ReceiptChanges,
) -> ActionResult:
    try:
        acting_user = require_user(user_id)
        if not receipt_id:
            raise ReceiptNotFound(receipt_id)
        await load_owned_receipt(services.store, receipt_id, acting_user)
        fields = changes.to_document_fields()
        fields["updatedAt"] = services.now().isoformat()
        await services.store.update(receipt_id, fields)
    except ReceiptActionError as exc:
        return failure_result("Update receipt", exc)

    if changes.total_amount is not None:
        logger.info("Receipt %s: total overridden to %s", receipt_id, changes.total_amount)
    services.invalidator.invalidate(DASHBOARD_PATH)
    return ActionResult(success=True, message="Receipt updated successfully")


async def delete_receipt(services: ReceiptServices, receipt_id: str, user_id: str | None) -> ActionResult:
    try:
        acting_user = require_user(user_id)
        await load_owned_receipt(services.store, receipt_id, acting_user)
        await services.store.delete(receipt_id)
    except ReceiptActionError as exc:
        return failure_result("Delete receipt", exc)

    services.invalidator.invalidate(DASHBOARD_PATH)
    return ActionResult(success=True, message="Receipt deleted successfully")
