"""Monthly spending summaries for the dashboard and category views."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from receiptbeaver.domain.receipt import DEFAULT_ITEM_CATEGORY, Receipt

NO_ITEMS_LABEL = "Receipt Total (No Items)"


@dataclass(frozen=True)
class CategoryLine:
    """One line counted towards a category."""

    name: str
    generic_name: str | None
    price: Decimal
    quantity: Decimal
    receipt_date: str
    receipt_store: str
    receipt_id: str
    item_index: int | None  # None for a receipt without items


@dataclass
class CategorySpending:
    category: str
    total: Decimal = Decimal("0")
    lines: list[CategoryLine] = field(default_factory=list)

    def share_of(self, month_total: Decimal) -> Decimal:
        if not month_total:
            return Decimal("0")
        return self.total / month_total * 100


@dataclass(frozen=True)
class MonthSummary:
    month: str
    total_spent: Decimal
    receipt_count: int
    receipts: list[Receipt]


def month_options(today: date, count: int = 12) -> list[str]:
    """Return ``count`` months as ``YYYY-MM``, newest (the current month) first."""
    months: list[str] = []
    year, month = today.year, today.month
    for _ in range(count):
        months.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return months


def receipts_in_month(receipts: Iterable[Receipt], month: str) -> list[Receipt]:
    return [receipt for receipt in receipts if receipt.date.startswith(month)]


def summarize_month(receipts: Iterable[Receipt], month: str) -> MonthSummary:
    selected = receipts_in_month(receipts, month)
    return MonthSummary(
        month=month,
        total_spent=sum((r.total_amount for r in selected), Decimal("0")),
        receipt_count=len(selected),
        receipts=selected,
    )


def category_breakdown(receipts: Iterable[Receipt], month: str) -> list[CategorySpending]:
    """Group a month's item spending by item category, largest total first.

    Item lines count their price as stored. A receipt with no items counts
    its whole total under the receipt's own category.
    """
    by_category: dict[str, CategorySpending] = {}

    def bucket(name: str) -> CategorySpending:
        if name not in by_category:
            by_category[name] = CategorySpending(category=name)
        return by_category[name]

    for receipt in receipts_in_month(receipts, month):
        if not receipt.items:
            spending = bucket(receipt.category or DEFAULT_ITEM_CATEGORY)
            spending.total += receipt.total_amount
            spending.lines.append(
                CategoryLine(
                    name=NO_ITEMS_LABEL,
                    generic_name=None,
                    price=receipt.total_amount,
                    quantity=Decimal("1"),
                    receipt_date=receipt.date,
                    receipt_store=receipt.store_name,
                    receipt_id=receipt.id,
                    item_index=None,
                )
            )
            continue
        for index, item in enumerate(receipt.items):
            spending = bucket(item.category or DEFAULT_ITEM_CATEGORY)
            spending.total += item.price
            spending.lines.append(
                CategoryLine(
                    name=item.name,
                    generic_name=item.generic_name,
                    price=item.price,
                    quantity=item.quantity,
                    receipt_date=receipt.date,
                    receipt_store=receipt.store_name,
                    receipt_id=receipt.id,
                    item_index=index,
                )
            )

    return sorted(by_category.values(), key=lambda s: s.total, reverse=True)
