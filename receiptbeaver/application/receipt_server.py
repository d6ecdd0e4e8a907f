"""FastAPI server for the receipt dashboard.

The acting user is taken from the ``X-User-Id`` header; authentication
happens in front of this service. Action endpoints answer with
``{"success": ..., "message"?: ..., "error"?: ...}`` and an HTTP status that
reflects the error kind.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from receiptbeaver.application.receipts import (
    ReceiptScanRequest,
    ReceiptServices,
    add_category,
    apply_batch,
    changes_from_payload,
    default_services,
    delete_receipt,
    delete_receipt_item,
    get_categories,
    item_history,
    list_receipts,
    month_category_breakdown,
    month_summary,
    process_receipt,
    search_receipts,
    update_receipt,
    update_receipt_item_category,
)
from receiptbeaver.domain.errors import ReceiptActionError
from receiptbeaver.domain.operations import ActionResult, operation_from_payload
from receiptbeaver.receipt.categories import category_style
from receiptbeaver.receipt.documents import receipt_to_payload
from receiptbeaver.receipt.spending import month_options
from receiptbeaver.runtime import get_logger, get_paths, load_category_style_rules
from receiptbeaver.runtime.view_cache import DASHBOARD_PATH, ViewCache

logger = get_logger(__name__)

USER_HEADER = "x-user-id"

_STATUS_BY_KIND = {
    "Unauthorized": 401,
    "NotFound": 404,
    "InvalidIndex": 400,
    "UpstreamFailure": 502,
}


def _user_id(request: Request) -> str | None:
    return request.headers.get(USER_HEADER)


def _services(request: Request) -> ReceiptServices:
    return request.app.state.services


def _result_response(result: ActionResult) -> JSONResponse:
    if result.success:
        status_code = 200
    else:
        status_code = _STATUS_BY_KIND.get(result.error_kind or "", 400)
    return JSONResponse(result.to_payload(), status_code=status_code)


def _error_response(exc: ReceiptActionError) -> JSONResponse:
    return _result_response(ActionResult(success=False, error=str(exc), error_kind=exc.kind))


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=400)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


def _money(value: Any) -> float:
    return float(value)


def create_app(services: ReceiptServices | None = None) -> FastAPI:
    """Build the API around the given services (defaults to the configured data root)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Create data directories on startup."""
        get_paths().ensure_directories()
        yield

    app = FastAPI(title="Receipt Dashboard", lifespan=lifespan)
    app.state.services = services if services is not None else default_services()
    dashboard_cache: ViewCache[dict[str, Any]] = ViewCache(app.state.services.invalidator)

    @app.post("/upload")
    async def upload_receipt(request: Request) -> JSONResponse:
        """Receive a receipt photo, extract it, and store the receipt."""
        form = await request.form()

        file = None
        for key, value in form.items():
            logger.debug("Form field: key=%r, type=%s", key, type(value))
            if hasattr(value, "read"):
                file = value
                break

        if not file:
            return _bad_request("No file found in request")

        contents = await file.read()
        result = await process_receipt(
            _services(request),
            ReceiptScanRequest(
                image_bytes=contents,
                filename=getattr(file, "filename", None) or "receipt.jpg",
                user_id=_user_id(request),
            ),
        )
        return _result_response(result)

    @app.get("/receipts")
    async def get_receipts(request: Request) -> JSONResponse:
        try:
            receipts = await list_receipts(_services(request), _user_id(request))
        except ReceiptActionError as exc:
            return _error_response(exc)
        return JSONResponse({"success": True, "data": [receipt_to_payload(r) for r in receipts]})

    @app.get("/receipts/search")
    async def search(request: Request, q: str = "") -> JSONResponse:
        result = await search_receipts(_services(request), q, _user_id(request))
        if result.success:
            result = ActionResult(success=True, data=[receipt_to_payload(r) for r in result.data])
        return _result_response(result)

    @app.patch("/receipts/{receipt_id}")
    async def patch_receipt(request: Request, receipt_id: str) -> JSONResponse:
        body = await _json_body(request)
        if not isinstance(body, dict):
            return _bad_request("Expected a JSON object")
        try:
            changes = changes_from_payload(body)
        except ValueError as exc:
            return _bad_request(str(exc))
        return _result_response(await update_receipt(_services(request), receipt_id, _user_id(request), changes))

    @app.delete("/receipts/{receipt_id}")
    async def remove_receipt(request: Request, receipt_id: str) -> JSONResponse:
        return _result_response(await delete_receipt(_services(request), receipt_id, _user_id(request)))

    @app.post("/items/batch")
    async def batch_items(request: Request) -> JSONResponse:
        body = await _json_body(request)
        raw_operations = body.get("operations") if isinstance(body, dict) else body
        if not isinstance(raw_operations, list):
            return _bad_request("Expected a list of operations")
        try:
            operations = [operation_from_payload(raw) for raw in raw_operations if isinstance(raw, dict)]
        except ValueError as exc:
            return _bad_request(str(exc))
        if len(operations) != len(raw_operations):
            return _bad_request("Every operation must be a JSON object")
        return _result_response(await apply_batch(_services(request), operations, _user_id(request)))

    @app.delete("/receipts/{receipt_id}/items/{item_index}")
    async def remove_item(request: Request, receipt_id: str, item_index: int) -> JSONResponse:
        result = await delete_receipt_item(_services(request), receipt_id, item_index, _user_id(request))
        return _result_response(result)

    @app.patch("/receipts/{receipt_id}/items/{item_index}/category")
    async def recategorize_item(request: Request, receipt_id: str, item_index: int) -> JSONResponse:
        body = await _json_body(request)
        category = body.get("category") if isinstance(body, dict) else None
        if not isinstance(category, str) or not category.strip():
            return _bad_request("category is required")
        result = await update_receipt_item_category(
            _services(request), receipt_id, item_index, category.strip(), _user_id(request)
        )
        return _result_response(result)

    @app.get("/items/history")
    async def history(request: Request, name: str = "", generic_name: str | None = None) -> JSONResponse:
        try:
            report = await item_history(_services(request), name, _user_id(request), generic_name=generic_name)
        except ReceiptActionError as exc:
            return _error_response(exc)

        stats = None
        if report.stats is not None:
            stats = {
                "min": _money(report.stats.min_unit_price),
                "max": _money(report.stats.max_unit_price),
                "avg": _money(report.stats.avg_unit_price),
                "totalSpent": _money(report.stats.total_spent),
                "count": report.stats.count,
            }
        entries = [
            {
                "date": entry.date,
                "store": entry.store,
                "price": _money(entry.price),
                "quantity": _money(entry.quantity),
                "unit": entry.unit,
                "total": _money(entry.total),
                "receiptId": entry.receipt_id,
                "imageUrl": entry.image_url,
            }
            for entry in report.entries
        ]
        data = {"itemName": report.item_name, "history": entries, "stats": stats}
        return JSONResponse({"success": True, "data": data})

    @app.get("/categories")
    async def categories(request: Request) -> JSONResponse:
        return _result_response(await get_categories(_services(request), _user_id(request)))

    @app.post("/categories")
    async def create_category(request: Request) -> JSONResponse:
        body = await _json_body(request)
        category = body.get("category") if isinstance(body, dict) else None
        if not isinstance(category, str):
            return _bad_request("category is required")
        return _result_response(await add_category(_services(request), category, _user_id(request)))

    @app.get("/categories/breakdown")
    async def breakdown(request: Request, month: str | None = None) -> JSONResponse:
        month = month or date.today().strftime("%Y-%m")
        try:
            spending = await month_category_breakdown(_services(request), _user_id(request), month)
        except ReceiptActionError as exc:
            return _error_response(exc)

        month_total = sum((s.total for s in spending), Decimal("0"))
        data = [
            {
                "category": s.category,
                "total": _money(s.total),
                "share": _money(s.share_of(month_total)),
                "items": [
                    {
                        "name": line.name,
                        "genericName": line.generic_name,
                        "price": _money(line.price),
                        "quantity": _money(line.quantity),
                        "receiptDate": line.receipt_date,
                        "receiptStore": line.receipt_store,
                        "receiptId": line.receipt_id,
                        "itemIndex": line.item_index,
                    }
                    for line in s.lines
                ],
            }
            for s in spending
        ]
        return JSONResponse({"success": True, "data": {"month": month, "categories": data}})

    @app.get("/categories/style")
    async def style(name: str) -> dict[str, str]:
        result = category_style(name, load_category_style_rules())
        return {"category": name, "icon": result.icon, "color": result.color}

    @app.get("/dashboard")
    async def dashboard(request: Request, month: str | None = None) -> JSONResponse:
        user_id = _user_id(request)
        month = month or date.today().strftime("%Y-%m")
        cache_key = f"{user_id}:{month}"
        generation = dashboard_cache.generation(DASHBOARD_PATH)
        cached = dashboard_cache.get(DASHBOARD_PATH, cache_key)
        if cached is not None:
            return JSONResponse(cached)

        try:
            summary = await month_summary(_services(request), user_id, month)
        except ReceiptActionError as exc:
            return _error_response(exc)

        payload = {
            "success": True,
            "data": {
                "month": summary.month,
                "months": month_options(date.today()),
                "totalSpent": _money(summary.total_spent),
                "receiptCount": summary.receipt_count,
                "receipts": [receipt_to_payload(r) for r in summary.receipts],
            },
        }
        dashboard_cache.put(DASHBOARD_PATH, cache_key, payload, generation=generation)
        return JSONResponse(payload)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
