"""Tests for AI extraction parsing, the extraction client, and receipt ingestion."""

from __future__ import annotations

import asyncio
import io
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import httpx
import pytest
from factories import ALICE, FIXED_NOW, FakeExtractor
from PIL import Image

from receiptbeaver.application.receipts import ReceiptScanRequest, get_categories, list_receipts, process_receipt
from receiptbeaver.receipt.extraction import ExtractionOutputError, load_model_json, parse_extraction_output
from receiptbeaver.receipt.image_helpers import normalize_receipt_image
from receiptbeaver.runtime.config import AppConfig
from receiptbeaver.runtime.extraction_service import (
    ExtractionServiceUnavailable,
    ReceiptExtractor,
    build_generate_request,
    response_text,
)
from receiptbeaver.runtime.view_cache import DASHBOARD_PATH

EXTRACTED: dict[str, Any] = {
    "storeName": "FreshCo",
    "date": "2024-05-02",
    "totalAmount": 9.47,
    "category": "Groceries",
    "items": [
        {
            "name": "Whole Milk 2L",
            "genericName": "Milk",
            "price": 4.49,
            "quantity": 1,
            "unit": "ea",
            "category": "Dairy",
        },
        {"name": "Bananas", "price": 1.49, "quantity": 1.2, "unit": "lb", "category": "Produce"},
        {"name": "Mystery Snack", "price": 3.49, "category": "Seafood"},
        {"name": "", "price": 1.00},
    ],
}


def _png_bytes(size: tuple[int, int] = (40, 80)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, (255, 255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_parse_extraction_output_applies_defaults() -> None:
    receipt = parse_extraction_output(
        {"totalAmount": "12.00", "category": "Casino", "items": [{"name": "Thing", "price": "12", "quantity": 0}]},
        receipt_id="r1",
        user_id=ALICE,
        image_url="/images/r1.jpg",
        created_at=FIXED_NOW,
    )

    assert receipt.store_name == "Unknown Store"
    assert receipt.date == "2024-05-20"
    assert receipt.category == "Other"
    assert receipt.items[0].quantity == Decimal("1")
    assert receipt.items[0].category == "Other"


def test_parse_extraction_output_skips_nameless_items() -> None:
    receipt = parse_extraction_output(
        EXTRACTED, receipt_id="r1", user_id=ALICE, image_url="", created_at=FIXED_NOW
    )

    assert [i.name for i in receipt.items] == ["Whole Milk 2L", "Bananas", "Mystery Snack"]
    assert receipt.items[1].quantity == Decimal("1.2")
    assert receipt.items[0].generic_name == "Milk"
    assert receipt.total_amount == Decimal("9.47")


def test_load_model_json_strips_code_fence() -> None:
    assert load_model_json('```json\n{"storeName": "A"}\n```') == {"storeName": "A"}
    with pytest.raises(ExtractionOutputError):
        load_model_json("[1, 2]")
    with pytest.raises(ExtractionOutputError):
        load_model_json("not json")


def test_normalize_receipt_image_downscales_to_jpeg() -> None:
    output = normalize_receipt_image(_png_bytes((400, 100)), max_dimension=200)

    with Image.open(io.BytesIO(output)) as img:
        assert img.format == "JPEG"
        assert img.size == (200, 50)
        assert img.mode == "RGB"


def test_build_generate_request_inlines_image() -> None:
    body = build_generate_request(b"abc")

    parts = body["contents"][0]["parts"]
    assert parts[0]["inline_data"] == {"mime_type": "image/jpeg", "data": "YWJj"}
    assert body["generationConfig"]["responseMimeType"] == "application/json"


def test_extractor_posts_to_generate_content() -> None:
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        answer = {"candidates": [{"content": {"parts": [{"text": json.dumps(EXTRACTED)}]}}]}
        return httpx.Response(200, json=answer)

    config = AppConfig(genai_api_key="test-key", genai_model="test-model", genai_base_url="https://genai.test/v1")
    extractor = ReceiptExtractor(config, transport=httpx.MockTransport(handler))

    result = asyncio.run(extractor.extract(_png_bytes()))

    assert result["storeName"] == "FreshCo"
    assert seen["url"].path == "/v1/models/test-model:generateContent"
    assert seen["url"].params["key"] == "test-key"
    assert seen["body"]["contents"][0]["parts"][1]["text"].startswith("Analyze this receipt")


def test_extractor_maps_http_error_to_unavailable() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503, text="overloaded"))
    extractor = ReceiptExtractor(AppConfig(genai_api_key="k"), transport=transport)

    with pytest.raises(ExtractionServiceUnavailable, match="503"):
        asyncio.run(extractor.extract(_png_bytes()))


def test_extractor_requires_api_key() -> None:
    with pytest.raises(ExtractionServiceUnavailable, match="API key"):
        asyncio.run(ReceiptExtractor(AppConfig()).extract(_png_bytes()))


def test_process_receipt_stores_receipt_image_and_categories(services, data_root: Path) -> None:
    services.extractor = FakeExtractor(EXTRACTED)
    images_dir = data_root / "images"

    result = asyncio.run(
        process_receipt(
            services,
            ReceiptScanRequest(image_bytes=b"photo", filename="IMG_1.PNG", user_id=ALICE, images_dir=images_dir),
        )
    )

    assert result.success
    data = result.data
    assert data["storeName"] == "FreshCo"
    assert data["imageUrl"] == f"/images/{data['id']}.png"
    assert (images_dir / f"{data['id']}.png").read_bytes() == b"photo"
    receipts = asyncio.run(list_receipts(services, ALICE))
    assert [r.id for r in receipts] == [data["id"]]
    assert receipts[0].created_at == FIXED_NOW
    categories = asyncio.run(get_categories(services, ALICE)).data
    assert "Seafood" in categories
    assert services.invalidator.invalidated == [DASHBOARD_PATH]


def test_process_receipt_reports_extraction_failure(services) -> None:
    services.extractor = FakeExtractor(error=ExtractionServiceUnavailable("Extraction service error: 500"))

    result = asyncio.run(
        process_receipt(services, ReceiptScanRequest(image_bytes=b"x", filename="a.jpg", user_id=ALICE))
    )

    assert not result.success
    assert result.error == "Failed to process receipt: Extraction service error: 500"
    assert result.error_kind == "UpstreamFailure"
    assert asyncio.run(list_receipts(services, ALICE)) == []


def test_process_receipt_requires_user_before_extracting(services) -> None:
    extractor = FakeExtractor(EXTRACTED)
    services.extractor = extractor

    result = asyncio.run(
        process_receipt(services, ReceiptScanRequest(image_bytes=b"x", filename="a.jpg", user_id=None))
    )

    assert result.error_kind == "Unauthorized"
    assert extractor.calls == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"candidates": [5]},
        {"candidates": [{"content": "text"}]},
        {"candidates": [{"content": {"parts": "text"}}]},
        {"candidates": "none"},
    ],
)
def test_response_text_rejects_malformed_candidates(payload: dict[str, Any]) -> None:
    with pytest.raises(ExtractionServiceUnavailable):
        response_text(payload)


def test_extractor_rejects_non_object_response() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[{"candidates": []}]))
    extractor = ReceiptExtractor(AppConfig(genai_api_key="k"), transport=transport)

    with pytest.raises(ExtractionServiceUnavailable, match="unexpected response"):
        asyncio.run(extractor.extract(_png_bytes()))
