"""Per-user category taxonomy workflows."""

from __future__ import annotations

from collections.abc import Iterable

from receiptbeaver.application.receipts.services import ReceiptServices, failure_result, require_user
from receiptbeaver.domain.errors import ReceiptActionError
from receiptbeaver.domain.operations import ActionResult
from receiptbeaver.receipt.categories import (
    DEFAULT_CATEGORIES,
    has_category,
    merge_categories,
    normalize_category,
    sorted_categories,
)
from receiptbeaver.runtime.logging import get_logger

logger = get_logger(__name__)

CATEGORIES_FIELD = "categories"


async def load_categories(services: ReceiptServices, user_id: str) -> list[str]:
    """Return the user's categories, seeding the defaults on first use."""
    profile = await services.profiles.get(user_id)
    categories = (profile or {}).get(CATEGORIES_FIELD)
    if not isinstance(categories, list):
        logger.info("Seeding default categories for user %s", user_id)
        await services.profiles.merge(user_id, {CATEGORIES_FIELD: list(DEFAULT_CATEGORIES)})
        return sorted_categories(DEFAULT_CATEGORIES)
    return sorted_categories(str(c) for c in categories)


async def learn_categories(services: ReceiptServices, user_id: str, categories: Iterable[str]) -> list[str]:
    """Union-insert categories (e.g. from extracted items) into the taxonomy."""
    await load_categories(services, user_id)
    additions = list(categories)
    merged = await services.profiles.update_list(
        user_id, CATEGORIES_FIELD, lambda current: merge_categories(current, additions)
    )
    return sorted_categories(merged)


async def get_categories(services: ReceiptServices, user_id: str | None) -> ActionResult:
    try:
        acting_user = require_user(user_id)
        categories = await load_categories(services, acting_user)
    except ReceiptActionError as exc:
        return failure_result("Load categories", exc)
    return ActionResult(success=True, data=categories)


async def add_category(services: ReceiptServices, category: str, user_id: str | None) -> ActionResult:
    """Add a category unless one with the same name (any case) exists."""
    try:
        acting_user = require_user(user_id)
        name = normalize_category(category)
        if not name:
            return ActionResult(success=False, error="Category name is required")
        existing = await load_categories(services, acting_user)
        if has_category(existing, name):
            return ActionResult(success=True, message=f"Category {name!r} already exists", data=existing)
        categories = await learn_categories(services, acting_user, [name])
    except ReceiptActionError as exc:
        return failure_result("Add category", exc)
    return ActionResult(success=True, message=f"Added category {name!r}", data=categories)
