"""Collaborators shared by receipt workflows, and the checks they all run."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from receiptbeaver.domain.errors import ReceiptActionError, ReceiptNotFound, Unauthorized
from receiptbeaver.domain.operations import ActionResult
from receiptbeaver.domain.receipt import Receipt
from receiptbeaver.runtime.config import AppConfig, load_config
from receiptbeaver.runtime.extraction_service import ReceiptExtractor
from receiptbeaver.runtime.logging import get_logger
from receiptbeaver.runtime.receipt_storage import ReceiptStore, UserProfileStore
from receiptbeaver.runtime.view_cache import ViewInvalidator

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ReceiptServices:
    """Storage, invalidation and extraction used by receipt workflows."""

    store: ReceiptStore
    profiles: UserProfileStore
    invalidator: ViewInvalidator = field(default_factory=ViewInvalidator)
    config: AppConfig = field(default_factory=AppConfig)
    extractor: ReceiptExtractor | None = None
    now: Callable[[], datetime] = utc_now


def default_services() -> ReceiptServices:
    """Services wired to the configured data root and settings file."""
    config = load_config()
    return ReceiptServices(
        store=ReceiptStore(),
        profiles=UserProfileStore(),
        config=config,
        extractor=ReceiptExtractor(config),
    )


def require_user(user_id: str | None) -> str:
    """Reject a missing or blank acting user; there is no anonymous identity."""
    if not user_id or not user_id.strip():
        raise Unauthorized()
    return user_id


async def load_owned_receipt(store: ReceiptStore, receipt_id: str, user_id: str) -> Receipt:
    """Read a receipt and verify the acting user owns it."""
    receipt = await store.get(receipt_id)
    if receipt is None:
        raise ReceiptNotFound(receipt_id)
    if receipt.user_id != user_id:
        raise Unauthorized("Unauthorized access to receipt")
    return receipt


def failure_result(action: str, exc: ReceiptActionError) -> ActionResult:
    logger.error("%s failed (%s): %s", action, exc.kind, exc)
    return ActionResult(success=False, error=str(exc), error_kind=exc.kind)
