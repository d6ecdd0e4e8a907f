"""Mapping between Receipt objects and stored/wire documents.

Stored documents use the camelCase field names of the receipt collection.
Money is written as decimal strings so totals never pick up float noise,
and read back from either strings or numbers.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from receiptbeaver.domain.receipt import DEFAULT_ITEM_CATEGORY, Receipt, ReceiptItem


def parse_amount(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Parse a stored or extracted amount into Decimal."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value
    text = str(value).replace("$", "").replace(",", "").strip()
    if not text:
        return default
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return default
    return amount if amount.is_finite() else default


def format_amount(amount: Decimal) -> str:
    return str(amount)


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def item_from_document(raw: Mapping[str, Any]) -> ReceiptItem:
    quantity = parse_amount(raw.get("quantity"), default=Decimal("1"))
    generic_name = raw.get("genericName")
    unit = raw.get("unit")
    return ReceiptItem(
        name=str(raw.get("name") or ""),
        price=parse_amount(raw.get("price")),
        quantity=quantity if quantity else Decimal("1"),
        generic_name=str(generic_name) if generic_name else None,
        unit=str(unit) if unit else None,
        category=str(raw.get("category") or DEFAULT_ITEM_CATEGORY),
    )


def item_to_document(item: ReceiptItem) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "name": item.name,
        "price": format_amount(item.price),
        "quantity": format_amount(item.quantity),
        "category": item.category,
    }
    if item.generic_name:
        doc["genericName"] = item.generic_name
    if item.unit:
        doc["unit"] = item.unit
    return doc


def receipt_from_document(receipt_id: str, doc: Mapping[str, Any]) -> Receipt:
    raw_items = doc.get("items")
    if not isinstance(raw_items, list):
        raw_items = []
    return Receipt(
        id=receipt_id,
        user_id=str(doc.get("userId") or ""),
        store_name=str(doc.get("storeName") or ""),
        date=str(doc.get("date") or ""),
        total_amount=parse_amount(doc.get("totalAmount")),
        category=str(doc.get("category") or DEFAULT_ITEM_CATEGORY),
        items=[item_from_document(raw) for raw in raw_items if isinstance(raw, Mapping)],
        image_url=str(doc.get("imageUrl") or ""),
        created_at=parse_timestamp(doc.get("createdAt")),
        updated_at=parse_timestamp(doc.get("updatedAt")),
    )


def items_to_document(items: list[ReceiptItem]) -> list[dict[str, Any]]:
    return [item_to_document(item) for item in items]


def receipt_to_document(receipt: Receipt) -> dict[str, Any]:
    """Document body for a receipt (the id is the document key, not a field)."""
    doc: dict[str, Any] = {
        "userId": receipt.user_id,
        "storeName": receipt.store_name,
        "date": receipt.date,
        "category": receipt.category,
        "totalAmount": format_amount(receipt.total_amount),
        "items": items_to_document(receipt.items),
        "imageUrl": receipt.image_url,
        "yearMonth": receipt.year_month,
    }
    if receipt.created_at is not None:
        doc["createdAt"] = receipt.created_at.isoformat()
    if receipt.updated_at is not None:
        doc["updatedAt"] = receipt.updated_at.isoformat()
    return doc


def receipt_to_payload(receipt: Receipt) -> dict[str, Any]:
    """JSON-friendly view of a receipt for API responses (amounts as numbers)."""
    payload = receipt_to_document(receipt)
    payload["id"] = receipt.id
    payload["totalAmount"] = float(receipt.total_amount)
    payload["items"] = [
        {
            **item_to_document(item),
            "price": float(item.price),
            "quantity": float(item.quantity),
        }
        for item in receipt.items
    ]
    return payload
