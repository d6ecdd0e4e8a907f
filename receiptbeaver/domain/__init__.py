"""Core domain models for receiptbeaver.

This module provides the data models used throughout the project:
- Receipt, ReceiptItem: stored receipt documents
- DeleteItem, RecategorizeItem: item edit operations
- ActionResult, BatchResult: structured action outcomes
- ReceiptActionError and subclasses: the action error taxonomy

Usage:
    from receiptbeaver.domain import Receipt, ReceiptItem, DeleteItem
"""

from receiptbeaver.domain.errors import (
    InvalidItemIndex,
    ReceiptActionError,
    ReceiptNotFound,
    Unauthorized,
    UpstreamFailure,
)
from receiptbeaver.domain.operations import (
    ActionResult,
    BatchResult,
    DeleteItem,
    ItemOperation,
    RecategorizeItem,
    ReceiptGroupResult,
    operation_from_payload,
)
from receiptbeaver.domain.receipt import DEFAULT_ITEM_CATEGORY, Receipt, ReceiptItem

__all__ = [
    "Receipt",
    "ReceiptItem",
    "DEFAULT_ITEM_CATEGORY",
    "DeleteItem",
    "RecategorizeItem",
    "ItemOperation",
    "operation_from_payload",
    "ActionResult",
    "BatchResult",
    "ReceiptGroupResult",
    "ReceiptActionError",
    "Unauthorized",
    "ReceiptNotFound",
    "InvalidItemIndex",
    "UpstreamFailure",
]
