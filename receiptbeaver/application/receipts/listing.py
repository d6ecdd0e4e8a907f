"""Read-side receipt workflows: listing, search, history and summaries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from receiptbeaver.application.receipts.services import ReceiptServices, failure_result, require_user
from receiptbeaver.domain.errors import ReceiptActionError
from receiptbeaver.domain.operations import ActionResult
from receiptbeaver.domain.receipt import Receipt
from receiptbeaver.receipt.item_history import (
    ItemHistoryEntry,
    ItemHistoryStats,
    find_item_history,
    summarize_item_history,
)
from receiptbeaver.receipt.search import search_receipts as filter_receipts
from receiptbeaver.receipt.spending import CategorySpending, MonthSummary, category_breakdown, summarize_month


@dataclass(frozen=True)
class ItemHistoryReport:
    """History lines for one product plus their price statistics."""

    item_name: str
    entries: list[ItemHistoryEntry]
    stats: ItemHistoryStats | None


async def list_receipts(services: ReceiptServices, user_id: str | None) -> list[Receipt]:
    """All of the user's receipts, newest first. Raises Unauthorized without a user."""
    return await services.store.list_for_user(require_user(user_id))


async def search_receipts(services: ReceiptServices, query: str | None, user_id: str | None) -> ActionResult:
    """Search the user's most recent receipts by store, item, or category."""
    try:
        acting_user = require_user(user_id)
        if not query or not query.strip():
            return ActionResult(success=True, data=[])
        recent = await services.store.list_for_user(acting_user, limit=services.config.search_limit)
    except ReceiptActionError as exc:
        return failure_result("Search receipts", exc)
    return ActionResult(success=True, data=filter_receipts(recent, query))


async def item_history(
    services: ReceiptServices,
    item_name: str,
    user_id: str | None,
    generic_name: str | None = None,
) -> ItemHistoryReport:
    receipts = await list_receipts(services, user_id)
    entries = find_item_history(item_name, receipts, generic_name=generic_name)
    return ItemHistoryReport(item_name=item_name, entries=entries, stats=summarize_item_history(entries))


async def month_summary(services: ReceiptServices, user_id: str | None, month: str | None = None) -> MonthSummary:
    month = month or date.today().strftime("%Y-%m")
    return summarize_month(await list_receipts(services, user_id), month)


async def month_category_breakdown(
    services: ReceiptServices,
    user_id: str | None,
    month: str | None = None,
) -> list[CategorySpending]:
    month = month or date.today().strftime("%Y-%m")
    return category_breakdown(await list_receipts(services, user_id), month)
