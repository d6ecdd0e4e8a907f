"""In-memory receipt search over a user's recent receipts."""

from __future__ import annotations

from collections.abc import Iterable

from receiptbeaver.domain.receipt import Receipt


def receipt_matches(receipt: Receipt, query: str) -> bool:
    """Case-insensitive substring match on store, items, and categories.

    ``query`` must already be lower-cased.
    """
    if query in receipt.store_name.lower():
        return True
    for item in receipt.items:
        if query in item.name.lower():
            return True
        if item.category and query in item.category.lower():
            return True
    return bool(receipt.category) and query in receipt.category.lower()


def search_receipts(receipts: Iterable[Receipt], query: str | None) -> list[Receipt]:
    if not query or not query.strip():
        return []
    needle = query.strip().lower()
    return [receipt for receipt in receipts if receipt_matches(receipt, needle)]
