"""Item edit operations and action result DTOs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from receiptbeaver.domain.errors import ErrorKind


@dataclass(frozen=True)
class DeleteItem:
    """Remove the item at ``item_index`` from a receipt."""

    receipt_id: str
    item_index: int


@dataclass(frozen=True)
class RecategorizeItem:
    """Replace the category of the item at ``item_index``."""

    receipt_id: str
    item_index: int
    category: str


ItemOperation = DeleteItem | RecategorizeItem


def operation_from_payload(payload: Mapping[str, Any]) -> ItemOperation:
    """Build an operation from its wire form.

    Accepts ``{"receiptId", "itemIndex", "action": "delete"}`` and
    ``{"receiptId", "itemIndex", "action": "update_category", "category": ...}``.
    The category may also be nested as ``data.category``.
    """
    receipt_id = str(payload.get("receiptId", "")).strip()
    if not receipt_id:
        raise ValueError("Operation is missing receiptId")
    raw_index = payload.get("itemIndex")
    if isinstance(raw_index, bool) or not isinstance(raw_index, int):
        raise ValueError(f"Operation itemIndex must be an integer, got {raw_index!r}")

    action = payload.get("action")
    if action == "delete":
        return DeleteItem(receipt_id=receipt_id, item_index=raw_index)
    if action in ("update_category", "recategorize"):
        category = payload.get("category")
        data = payload.get("data")
        if category is None and isinstance(data, Mapping):
            category = data.get("category")
        if not isinstance(category, str) or not category.strip():
            raise ValueError("update_category operation requires a category")
        return RecategorizeItem(receipt_id=receipt_id, item_index=raw_index, category=category.strip())
    raise ValueError(f"Unsupported item action: {action!r}")


@dataclass(frozen=True)
class ActionResult:
    """Structured outcome returned by every public receipt action."""

    success: bool
    message: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    data: Any = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.message is not None:
            payload["message"] = self.message
        if self.error is not None:
            payload["error"] = self.error
        if self.error_kind is not None:
            payload["errorKind"] = self.error_kind
        if self.data is not None:
            payload["data"] = self.data
        return payload


@dataclass(frozen=True)
class ReceiptGroupResult:
    """Outcome of applying one receipt's share of a batch."""

    receipt_id: str
    success: bool
    applied: int = 0
    written: bool = False
    error: str | None = None
    error_kind: ErrorKind | None = None


@dataclass(frozen=True)
class BatchResult(ActionResult):
    """Batch outcome with per-receipt detail."""

    groups: tuple[ReceiptGroupResult, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["groups"] = [
            {
                "receiptId": group.receipt_id,
                "success": group.success,
                "applied": group.applied,
                **({"error": group.error, "errorKind": group.error_kind} if not group.success else {}),
            }
            for group in self.groups
        ]
        return payload
