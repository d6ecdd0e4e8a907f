"""Receipt workflows."""

from receiptbeaver.application.receipts.categories import add_category, get_categories, learn_categories
from receiptbeaver.application.receipts.items import apply_batch, delete_receipt_item, update_receipt_item_category
from receiptbeaver.application.receipts.listing import (
    ItemHistoryReport,
    item_history,
    list_receipts,
    month_category_breakdown,
    month_summary,
    search_receipts,
)
from receiptbeaver.application.receipts.manage import (
    ReceiptChanges,
    changes_from_payload,
    delete_receipt,
    update_receipt,
)
from receiptbeaver.application.receipts.scan import ReceiptScanRequest, process_receipt
from receiptbeaver.application.receipts.services import ReceiptServices, default_services

__all__ = [
    "ReceiptServices",
    "default_services",
    "apply_batch",
    "delete_receipt_item",
    "update_receipt_item_category",
    "ReceiptChanges",
    "changes_from_payload",
    "update_receipt",
    "delete_receipt",
    "ReceiptScanRequest",
    "process_receipt",
    "ItemHistoryReport",
    "item_history",
    "list_receipts",
    "search_receipts",
    "month_summary",
    "month_category_breakdown",
    "get_categories",
    "add_category",
    "learn_categories",
]
