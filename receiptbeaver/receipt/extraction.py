"""Prompt, response schema, and output parsing for AI receipt extraction.

The extraction model is asked for JSON matching RESPONSE_SCHEMA. Its answer
is untrusted input: missing or malformed fields fall back to defaults here
rather than failing the whole receipt.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from receiptbeaver.domain.receipt import DEFAULT_ITEM_CATEGORY, Receipt, ReceiptItem
from receiptbeaver.receipt.categories import RECEIPT_CATEGORIES, normalize_category
from receiptbeaver.receipt.documents import parse_amount

EXTRACTION_PROMPT = (
    "Analyze this receipt image and extract the store name, the purchase date (YYYY-MM-DD), "
    "the total amount paid, a broad receipt category, and every line item. "
    "For each item give its name, a generic product name (e.g. 'Kroger Milk' -> 'Milk'), "
    "the FINAL price paid for the line after any discount, the quantity, the unit "
    "(infer it from the item type if the receipt omits it), and an item category such as "
    "Produce, Dairy, Meat, Bakery, Pantry, Frozen, Beverages, Snacks, Household or Other. "
    "Return JSON."
)

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "storeName": {"type": "STRING"},
        "date": {"type": "STRING", "description": "YYYY-MM-DD"},
        "totalAmount": {"type": "NUMBER"},
        "category": {"type": "STRING", "format": "enum", "enum": list(RECEIPT_CATEGORIES)},
        "items": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "genericName": {"type": "STRING"},
                    "price": {"type": "NUMBER"},
                    "quantity": {"type": "NUMBER"},
                    "unit": {"type": "STRING"},
                    "category": {"type": "STRING"},
                },
                "required": ["name", "price"],
            },
        },
    },
    "required": ["storeName", "date", "totalAmount", "items"],
}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class ExtractionOutputError(ValueError):
    """Raised when the model answer is not a JSON object."""


def load_model_json(text: str) -> dict[str, Any]:
    """Decode the model's JSON answer, tolerating a Markdown code fence."""
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ExtractionOutputError(f"Extraction output is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ExtractionOutputError("Extraction output must be a JSON object")
    return data


def _normalize_date(raw: Any, fallback: datetime) -> str:
    text = str(raw or "").strip()
    if _ISO_DATE_RE.match(text):
        try:
            datetime.strptime(text, "%Y-%m-%d")
            return text
        except ValueError:
            pass
    return fallback.strftime("%Y-%m-%d")


def _parse_item(raw: Mapping[str, Any]) -> ReceiptItem | None:
    name = str(raw.get("name") or "").strip()
    if not name:
        return None
    quantity = parse_amount(raw.get("quantity"), default=Decimal("1"))
    generic_name = str(raw.get("genericName") or "").strip() or None
    unit = str(raw.get("unit") or "").strip() or None
    category = normalize_category(str(raw.get("category") or "")) or DEFAULT_ITEM_CATEGORY
    return ReceiptItem(
        name=name,
        price=parse_amount(raw.get("price")),
        quantity=quantity if quantity > 0 else Decimal("1"),
        generic_name=generic_name,
        unit=unit,
        category=category,
    )


def parse_extraction_output(
    data: Mapping[str, Any],
    *,
    receipt_id: str,
    user_id: str,
    image_url: str,
    created_at: datetime,
) -> Receipt:
    """Build a new Receipt from the extractor's JSON answer."""
    raw_items = data.get("items")
    items: list[ReceiptItem] = []
    if isinstance(raw_items, list):
        for raw in raw_items:
            if isinstance(raw, Mapping):
                item = _parse_item(raw)
                if item is not None:
                    items.append(item)

    category = str(data.get("category") or "").strip()
    if category not in RECEIPT_CATEGORIES:
        category = DEFAULT_ITEM_CATEGORY

    return Receipt(
        id=receipt_id,
        user_id=user_id,
        store_name=str(data.get("storeName") or "").strip() or "Unknown Store",
        date=_normalize_date(data.get("date"), created_at),
        total_amount=parse_amount(data.get("totalAmount")),
        category=category,
        items=items,
        image_url=image_url,
        created_at=created_at,
    )
