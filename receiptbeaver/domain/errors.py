"""Error taxonomy for receipt actions.

Every error carries a ``kind`` string so operation boundaries can turn it
into a structured ``{"success": false, "error": ...}`` result.
"""

from __future__ import annotations

from typing import Literal

ErrorKind = Literal["Unauthorized", "NotFound", "InvalidIndex", "UpstreamFailure"]


class ReceiptActionError(Exception):
    """Base class for failures of a receipt action."""

    kind: ErrorKind = "UpstreamFailure"


class Unauthorized(ReceiptActionError):
    """No acting user, or the acting user does not own the receipt."""

    kind: ErrorKind = "Unauthorized"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ReceiptNotFound(ReceiptActionError):
    """The referenced receipt does not exist."""

    kind: ErrorKind = "NotFound"

    def __init__(self, receipt_id: str) -> None:
        super().__init__(f"Receipt {receipt_id} not found")
        self.receipt_id = receipt_id


class InvalidItemIndex(ReceiptActionError):
    """An item index lies outside ``[0, len(items))``."""

    kind: ErrorKind = "InvalidIndex"

    def __init__(self, item_index: int, item_count: int) -> None:
        super().__init__(f"Invalid item index {item_index} (receipt has {item_count} items)")
        self.item_index = item_index
        self.item_count = item_count


class UpstreamFailure(ReceiptActionError):
    """The document store read or write itself failed."""

    kind: ErrorKind = "UpstreamFailure"
