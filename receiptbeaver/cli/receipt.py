"""Receipt command handlers used by the unified CLI."""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from receiptbeaver.application.receipts import (
    ReceiptScanRequest,
    ReceiptServices,
    add_category,
    apply_batch,
    default_services,
    delete_receipt_item,
    get_categories,
    item_history,
    list_receipts,
    process_receipt,
    search_receipts,
    update_receipt_item_category,
)
from receiptbeaver.domain.errors import ReceiptActionError
from receiptbeaver.domain.operations import ActionResult, operation_from_payload
from receiptbeaver.domain.receipt import Receipt
from receiptbeaver.runtime import get_logger

logger = get_logger(__name__)

USER_ENV = "RECEIPTBEAVER_USER"


def _services() -> ReceiptServices:
    return default_services()


def _acting_user(args: argparse.Namespace) -> str | None:
    return getattr(args, "user", None) or os.environ.get(USER_ENV)


def _finish(result: ActionResult) -> None:
    """Print an action result and exit non-zero on failure."""
    if result.success:
        print(result.message or "OK")
        return
    print(f"Error: {result.error}")
    sys.exit(1)


def _print_receipt_line(receipt: Receipt) -> None:
    items = f"{len(receipt.items):>3} items"
    print(f"{receipt.date}  {receipt.store_name:<30} ${receipt.total_amount:>9.2f}  {items}  {receipt.id}")


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI server for the receipt dashboard."""
    import uvicorn

    from receiptbeaver.application.receipt_server import create_app

    print(f"Starting receipt server on {args.host}:{args.port}")
    print(f"Upload endpoint: http://{args.host}:{args.port}/upload")
    print("Press Ctrl+C to stop")

    uvicorn.run(create_app(), host=args.host, port=args.port)


def cmd_scan(args: argparse.Namespace) -> None:
    """Extract a receipt photo and store it for the acting user."""
    image_path = Path(args.image)
    if not image_path.exists():
        logger.error("Receipt file not found: %s", image_path)
        print(f"Error: Receipt file not found: {image_path}")
        sys.exit(1)

    result = asyncio.run(
        process_receipt(
            _services(),
            ReceiptScanRequest(
                image_bytes=image_path.read_bytes(),
                filename=image_path.name,
                user_id=_acting_user(args),
            ),
        )
    )
    if result.success and result.data:
        data = result.data
        print(f"Store: {data['storeName']}")
        print(f"Date: {data['date']}")
        print(f"Total: ${data['totalAmount']:.2f}")
        print(f"\nItems ({len(data['items'])}):")
        for i, item in enumerate(data["items"], 1):
            qty_str = f" x{item['quantity']:g}" if item["quantity"] != 1 else ""
            print(f"  {i}. {item['name']}{qty_str} - ${item['price']:.2f} [{item['category']}]")
        print(f"\nSaved as receipt {data['id']}")
        return
    _finish(result)


def cmd_list(args: argparse.Namespace) -> None:
    """List the acting user's receipts, newest first."""
    try:
        receipts = asyncio.run(list_receipts(_services(), _acting_user(args)))
    except ReceiptActionError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    if not receipts:
        print("No receipts found.")
        return
    for receipt in receipts:
        _print_receipt_line(receipt)


def cmd_search(args: argparse.Namespace) -> None:
    result = asyncio.run(search_receipts(_services(), args.query, _acting_user(args)))
    if not result.success:
        _finish(result)
    if not result.data:
        print(f"No receipts match {args.query!r}.")
        return
    for receipt in result.data:
        _print_receipt_line(receipt)


def cmd_history(args: argparse.Namespace) -> None:
    """Show purchase history and price stats for one product."""
    try:
        report = asyncio.run(item_history(_services(), args.name, _acting_user(args), generic_name=args.generic))
    except ReceiptActionError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    if report.stats is None:
        print(f"No purchases found for {args.name!r}.")
        return

    stats = report.stats
    print(f"{report.item_name}: {stats.count} purchases, ${stats.total_spent:.2f} spent")
    print(
        f"Unit price: avg ${stats.avg_unit_price:.2f}, "
        f"low ${stats.min_unit_price:.2f}, high ${stats.max_unit_price:.2f}"
    )
    for entry in report.entries:
        unit = f" {entry.unit}" if entry.unit else ""
        print(f"  {entry.date}  {entry.store:<30} ${entry.price:>8.2f}  x{entry.quantity}{unit}")


def cmd_delete_item(args: argparse.Namespace) -> None:
    _finish(asyncio.run(delete_receipt_item(_services(), args.receipt_id, args.index, _acting_user(args))))


def cmd_recategorize(args: argparse.Namespace) -> None:
    _finish(
        asyncio.run(
            update_receipt_item_category(_services(), args.receipt_id, args.index, args.category, _acting_user(args))
        )
    )


def cmd_batch(args: argparse.Namespace) -> None:
    """Apply a JSON list of item operations (delete / update_category)."""
    try:
        raw = json.loads(Path(args.operations_file).read_text())
        raw_operations = raw.get("operations") if isinstance(raw, dict) else raw
        if not isinstance(raw_operations, list):
            raise ValueError("expected a list of operations")
        operations = [operation_from_payload(item) for item in raw_operations]
    except (OSError, ValueError, AttributeError) as exc:
        print(f"Error: invalid operations file: {exc}")
        sys.exit(1)

    result = asyncio.run(apply_batch(_services(), operations, _acting_user(args)))
    for group in result.groups:
        status = "ok" if group.success else f"FAILED ({group.error})"
        print(f"  {group.receipt_id}: {group.applied} applied, {status}")
    _finish(result)


def cmd_categories(args: argparse.Namespace) -> None:
    services = _services()
    if args.add:
        result = asyncio.run(add_category(services, args.add, _acting_user(args)))
    else:
        result = asyncio.run(get_categories(services, _acting_user(args)))
    if not result.success:
        _finish(result)
    if result.message:
        print(result.message)
    for category in result.data or []:
        print(category)
