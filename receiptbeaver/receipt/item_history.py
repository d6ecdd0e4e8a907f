"""Purchase history for one product across a user's receipts.

Matching is a plain token-overlap heuristic over item names, backed by the
normalized generic name when the extractor supplied one. It is a linear scan
with no index of its own.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from receiptbeaver.domain.receipt import Receipt, ReceiptItem


@dataclass(frozen=True)
class ItemHistoryEntry:
    """One purchase of the matched product."""

    date: str
    store: str
    price: Decimal
    quantity: Decimal
    unit: str | None
    total: Decimal
    receipt_id: str
    image_url: str

    @property
    def unit_price(self) -> Decimal:
        return self.price / (self.quantity or Decimal("1"))


@dataclass(frozen=True)
class ItemHistoryStats:
    """Price statistics over a product's history."""

    min_unit_price: Decimal
    max_unit_price: Decimal
    avg_unit_price: Decimal
    total_spent: Decimal
    count: int


def _tokens(text: str) -> list[str]:
    return text.split()


def item_matches(query: str, item: ReceiptItem, generic_query: str = "") -> bool:
    """Return True when ``item`` looks like the product named by ``query``.

    ``query`` and ``generic_query`` must already be lower-cased and trimmed.
    """
    name = item.name.lower()
    generic = (item.generic_name or "").lower().strip()

    if all(token in name for token in _tokens(query)):
        return True
    if name.strip() and all(token in query for token in _tokens(name)):
        return True
    if generic and (generic == query or query in generic):
        return True
    if generic and generic_query and generic == generic_query:
        return True
    return False


def find_item_history(
    item_name: str | None,
    receipts: Iterable[Receipt],
    generic_name: str | None = None,
) -> list[ItemHistoryEntry]:
    """Collect every matching line, newest receipt date first."""
    if not item_name:
        return []
    query = item_name.lower().strip()
    if not query:
        return []
    generic_query = (generic_name or "").lower().strip()

    history: list[ItemHistoryEntry] = []
    for receipt in receipts:
        for item in receipt.items:
            if not item_matches(query, item, generic_query):
                continue
            history.append(
                ItemHistoryEntry(
                    date=receipt.date,
                    store=receipt.store_name,
                    price=item.price,
                    quantity=item.quantity or Decimal("1"),
                    unit=item.unit,
                    total=item.price,
                    receipt_id=receipt.id,
                    image_url=receipt.image_url,
                )
            )

    # ISO dates sort lexically; sorted() is stable for same-day purchases.
    return sorted(history, key=lambda entry: entry.date, reverse=True)


def summarize_item_history(history: list[ItemHistoryEntry]) -> ItemHistoryStats | None:
    if not history:
        return None
    unit_prices = [entry.unit_price for entry in history]
    return ItemHistoryStats(
        min_unit_price=min(unit_prices),
        max_unit_price=max(unit_prices),
        avg_unit_price=sum(unit_prices, Decimal("0")) / len(unit_prices),
        total_spent=sum((entry.total for entry in history), Decimal("0")),
        count=len(history),
    )
