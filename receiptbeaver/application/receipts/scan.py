"""Receipt ingestion workflow: photo -> AI extraction -> stored receipt."""

from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass
from pathlib import Path

from receiptbeaver.application.receipts.categories import learn_categories
from receiptbeaver.application.receipts.services import ReceiptServices, failure_result, require_user
from receiptbeaver.domain.errors import ReceiptActionError, UpstreamFailure
from receiptbeaver.domain.operations import ActionResult
from receiptbeaver.receipt.documents import receipt_to_payload
from receiptbeaver.receipt.extraction import ExtractionOutputError, parse_extraction_output
from receiptbeaver.runtime.extraction_service import ExtractionServiceUnavailable
from receiptbeaver.runtime.logging import get_logger
from receiptbeaver.runtime.paths import get_paths
from receiptbeaver.runtime.receipt_storage import new_document_id
from receiptbeaver.runtime.view_cache import DASHBOARD_PATH

logger = get_logger(__name__)

IMAGE_URL_PREFIX = "/images/"


@dataclass(frozen=True)
class ReceiptScanRequest:
    """Inputs for ingesting one receipt photo."""

    image_bytes: bytes
    filename: str
    user_id: str | None
    images_dir: Path | None = None


def _store_image(directory: Path, receipt_id: str, filename: str, image_bytes: bytes) -> str:
    suffix = Path(filename).suffix.lower() or ".jpg"
    if not suffix[1:].isalnum():
        suffix = ".jpg"
    target = directory / f"{receipt_id}{suffix}"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        target.write_bytes(image_bytes)
    except OSError as exc:
        raise UpstreamFailure(f"Failed to store receipt image: {exc}") from exc
    return target.name


async def process_receipt(services: ReceiptServices, request: ReceiptScanRequest) -> ActionResult:
    """Extract a receipt from a photo and store it for the acting user."""
    try:
        user_id = require_user(request.user_id)
    except ReceiptActionError as exc:
        return failure_result("Process receipt", exc)

    if services.extractor is None:
        return ActionResult(success=False, error="Failed to process receipt: extraction is not configured")

    receipt_id = new_document_id()
    image_sha256 = hashlib.sha256(request.image_bytes).hexdigest()
    logger.info(
        "Processing receipt upload %s (%d bytes, sha256 %s)",
        request.filename,
        len(request.image_bytes),
        image_sha256[:12],
    )

    try:
        extracted = await services.extractor.extract(request.image_bytes)
    except (ExtractionServiceUnavailable, ExtractionOutputError) as exc:
        logger.error("Receipt extraction failed: %s", exc)
        return ActionResult(success=False, error=f"Failed to process receipt: {exc}", error_kind="UpstreamFailure")

    try:
        images_dir = request.images_dir or get_paths().images
        image_name = await asyncio.to_thread(
            _store_image, images_dir, receipt_id, request.filename, request.image_bytes
        )
        receipt = parse_extraction_output(
            extracted,
            receipt_id=receipt_id,
            user_id=user_id,
            image_url=f"{IMAGE_URL_PREFIX}{image_name}",
            created_at=services.now(),
        )
        await services.store.add(receipt)
        await learn_categories(services, user_id, [item.category for item in receipt.items])
    except ReceiptActionError as exc:
        return failure_result("Process receipt", exc)

    logger.info(
        "Parsed: %s, %s, $%.2f, %d items", receipt.store_name, receipt.date, receipt.total_amount, len(receipt.items)
    )
    services.invalidator.invalidate(DASHBOARD_PATH)
    return ActionResult(success=True, message="Receipt processed", data=receipt_to_payload(receipt))
