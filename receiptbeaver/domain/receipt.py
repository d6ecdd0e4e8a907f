"""Data models for stored receipts."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

DEFAULT_ITEM_CATEGORY = "Other"


@dataclass
class ReceiptItem:
    """A single purchased line on a receipt."""

    name: str
    price: Decimal  # Effective (post-discount) amount for the whole line
    quantity: Decimal = Decimal("1")
    generic_name: str | None = None  # e.g. "Kroger Milk" -> "Milk"
    unit: str | None = None  # e.g. "lb", "oz", "ea"
    category: str = DEFAULT_ITEM_CATEGORY

    @property
    def unit_price(self) -> Decimal:
        quantity = self.quantity or Decimal("1")
        return self.price / quantity


@dataclass
class Receipt:
    """One purchase event owned by a single user."""

    id: str
    user_id: str
    store_name: str
    date: str  # YYYY-MM-DD
    total_amount: Decimal
    category: str = DEFAULT_ITEM_CATEGORY
    items: list[ReceiptItem] = field(default_factory=list)
    image_url: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def year_month(self) -> str:
        if len(self.date) >= 7:
            return self.date[:7]
        if self.created_at is not None:
            return self.created_at.strftime("%Y-%m")
        return ""
