#!/usr/bin/env python3

import argparse
from collections.abc import Callable, Sequence

from receiptbeaver.runtime import parse_log_level, set_data_root, set_log_level


def _coerce_exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def _run_command(command: Callable[[argparse.Namespace], None], args: argparse.Namespace) -> int:
    """
    Run a command handler that reports failure through sys.exit().

    This keeps process termination centralized in this module's entrypoint.
    """
    try:
        command(args)
    except SystemExit as exc:
        return _coerce_exit_code(exc.code)
    return 0


def _add_user_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--user", help="Acting user id (default: $RECEIPTBEAVER_USER)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="receiptbeaver",
        description="Receipt dashboard utilities CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  serve [--host] [--port]              Start the receipt dashboard server
  scan <image>                         Extract a receipt photo and store it
  list                                 List receipts, newest first
  search <query>                       Search receipts by store, item, or category
  history <name> [--generic]           Purchase history and price stats for an item
  delete-item <receipt> <index>        Delete one item (total recomputed from items)
  recategorize <receipt> <index> <cat> Change one item's category
  batch <operations.json>              Apply item deletes/category changes in bulk
  categories [--add NAME]              Show or extend your category list

Notes:
  Data lives under $RECEIPTBEAVER_HOME (default ~/.receiptbeaver).
  Item indexes are zero-based positions in the stored item list.
""",
    )
    parser.add_argument("--data-dir", default=None, help="Data root (overrides $RECEIPTBEAVER_HOME)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the receipt dashboard server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to (default: 8080)")

    scan_parser = subparsers.add_parser("scan", help="Extract a receipt photo and store it")
    scan_parser.add_argument("image", help="Path to receipt image")
    _add_user_argument(scan_parser)

    list_parser = subparsers.add_parser("list", help="List receipts")
    _add_user_argument(list_parser)

    search_parser = subparsers.add_parser("search", help="Search receipts")
    search_parser.add_argument("query", help="Text to look for")
    _add_user_argument(search_parser)

    history_parser = subparsers.add_parser("history", help="Purchase history for an item")
    history_parser.add_argument("name", help="Item name as shown on a receipt")
    history_parser.add_argument("--generic", default=None, help="Generic product name to match as well")
    _add_user_argument(history_parser)

    delete_parser = subparsers.add_parser("delete-item", help="Delete one receipt item")
    delete_parser.add_argument("receipt_id")
    delete_parser.add_argument("index", type=int)
    _add_user_argument(delete_parser)

    recategorize_parser = subparsers.add_parser("recategorize", help="Change one item's category")
    recategorize_parser.add_argument("receipt_id")
    recategorize_parser.add_argument("index", type=int)
    recategorize_parser.add_argument("category")
    _add_user_argument(recategorize_parser)

    batch_parser = subparsers.add_parser("batch", help="Apply item operations from a JSON file")
    batch_parser.add_argument("operations_file", help="JSON list of {receiptId, itemIndex, action, category?}")
    _add_user_argument(batch_parser)

    categories_parser = subparsers.add_parser("categories", help="Show or extend your category list")
    categories_parser.add_argument("--add", default=None, help="Category to add")
    _add_user_argument(categories_parser)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.data_dir:
        set_data_root(args.data_dir)
    if args.log_level:
        set_log_level(parse_log_level(args.log_level))

    from receiptbeaver.cli import receipt as commands

    handlers: dict[str, Callable[[argparse.Namespace], None]] = {
        "serve": commands.cmd_serve,
        "scan": commands.cmd_scan,
        "list": commands.cmd_list,
        "search": commands.cmd_search,
        "history": commands.cmd_history,
        "delete-item": commands.cmd_delete_item,
        "recategorize": commands.cmd_recategorize,
        "batch": commands.cmd_batch,
        "categories": commands.cmd_categories,
    }
    handler = handlers.get(args.command)
    if handler is None:
        return 1
    return _run_command(handler, args)


if __name__ == "__main__":
    raise SystemExit(main())
