"""JSON document storage for receipts and user profiles.

Directory structure:
    <data root>/
    ├── receipts/   - One <receipt id>.json document per receipt
    ├── users/      - One <user id>.json profile per user (category list)
    └── images/     - Uploaded receipt photos

Every document is rewritten whole through a temporary file and an atomic
rename, so readers never see a torn document. There is no version check:
two overlapping writers to the same document resolve as last-writer-wins.

File IO runs in worker threads so independent documents can be read and
written concurrently from async code.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import threading
import uuid
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from receiptbeaver.domain.errors import ReceiptNotFound, UpstreamFailure
from receiptbeaver.domain.receipt import Receipt
from receiptbeaver.receipt.documents import receipt_from_document, receipt_to_document
from receiptbeaver.runtime.logging import get_logger
from receiptbeaver.runtime.paths import get_paths

logger = get_logger(__name__)

_DOC_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.@-]{0,127}$")


def new_document_id() -> str:
    return uuid.uuid4().hex


def is_valid_document_id(doc_id: str) -> bool:
    return bool(_DOC_ID_RE.match(doc_id or ""))


def _read_json(path: Path) -> dict[str, Any] | None:
    """Read one document; a missing file maps to None."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise UpstreamFailure(f"Failed to read {path.name}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise UpstreamFailure(f"Stored document {path.name} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise UpstreamFailure(f"Stored document {path.name} is not a JSON object")
    return data


def _write_json(path: Path, data: Mapping[str, Any]) -> None:
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise UpstreamFailure(f"Failed to write {path.name}: {exc}") from exc


class ReceiptStore:
    """Receipt documents keyed by id, one JSON file each."""

    def __init__(self, directory: Path | None = None) -> None:
        self.directory = directory if directory is not None else get_paths().receipts

    def _path(self, receipt_id: str) -> Path:
        if not is_valid_document_id(receipt_id):
            raise ReceiptNotFound(receipt_id)
        return self.directory / f"{receipt_id}.json"

    # --- sync primitives (run in worker threads) ---

    def _get_sync(self, receipt_id: str) -> Receipt | None:
        doc = _read_json(self._path(receipt_id))
        if doc is None:
            return None
        return receipt_from_document(receipt_id, doc)

    def _add_sync(self, receipt: Receipt) -> None:
        _write_json(self._path(receipt.id), receipt_to_document(receipt))

    def _update_sync(self, receipt_id: str, fields: Mapping[str, Any]) -> None:
        path = self._path(receipt_id)
        doc = _read_json(path)
        if doc is None:
            raise ReceiptNotFound(receipt_id)
        doc.update(fields)
        _write_json(path, doc)

    def _delete_sync(self, receipt_id: str) -> None:
        path = self._path(receipt_id)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise ReceiptNotFound(receipt_id) from exc
        except OSError as exc:
            raise UpstreamFailure(f"Failed to delete {path.name}: {exc}") from exc

    def _list_sync(self, user_id: str) -> list[Receipt]:
        if not self.directory.exists():
            return []
        receipts: list[Receipt] = []
        for path in self.directory.glob("*.json"):
            doc = _read_json(path)
            if doc is None or doc.get("userId") != user_id:
                continue
            receipts.append(receipt_from_document(path.stem, doc))
        return receipts

    # --- async API ---

    async def get(self, receipt_id: str) -> Receipt | None:
        try:
            return await asyncio.to_thread(self._get_sync, receipt_id)
        except ReceiptNotFound:
            return None

    async def add(self, receipt: Receipt) -> Receipt:
        """Store a new receipt, assigning an id when it has none."""
        if not receipt.id:
            receipt.id = new_document_id()
        await asyncio.to_thread(self._add_sync, receipt)
        logger.info("Stored receipt %s (%d items)", receipt.id, len(receipt.items))
        return receipt

    async def update(self, receipt_id: str, fields: Mapping[str, Any]) -> None:
        """Merge ``fields`` (document field names) into an existing receipt."""
        await asyncio.to_thread(self._update_sync, receipt_id, dict(fields))
        logger.debug("Updated receipt %s fields %s", receipt_id, sorted(fields))

    async def delete(self, receipt_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, receipt_id)
        logger.info("Deleted receipt %s", receipt_id)

    async def list_for_user(self, user_id: str, limit: int | None = None) -> list[Receipt]:
        """Return the user's receipts, most recently created first."""
        receipts = await asyncio.to_thread(self._list_sync, user_id)
        receipts.sort(key=lambda r: (r.created_at.isoformat() if r.created_at else ""), reverse=True)
        if limit is not None:
            receipts = receipts[:limit]
        return receipts


class UserProfileStore:
    """Per-user profile documents (currently the category taxonomy)."""

    def __init__(self, directory: Path | None = None) -> None:
        self.directory = directory if directory is not None else get_paths().users
        self._lock = threading.Lock()

    def _path(self, user_id: str) -> Path:
        if not is_valid_document_id(user_id):
            raise UpstreamFailure(f"Unsupported user id: {user_id!r}")
        return self.directory / f"{user_id}.json"

    async def get(self, user_id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(_read_json, self._path(user_id))

    def _merge_sync(self, path: Path, fields: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            doc = _read_json(path) or {}
            doc.update(fields)
            _write_json(path, doc)
        return doc

    def _update_list_sync(
        self,
        path: Path,
        field_name: str,
        updater: Callable[[list[str]], list[str]],
    ) -> list[str]:
        with self._lock:
            doc = _read_json(path) or {}
            current = doc.get(field_name)
            updated = updater([str(v) for v in current] if isinstance(current, list) else [])
            doc[field_name] = updated
            _write_json(path, doc)
        return updated

    async def merge(self, user_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Create or merge into the user's profile (set with merge)."""
        return await asyncio.to_thread(self._merge_sync, self._path(user_id), dict(fields))

    async def update_list(
        self,
        user_id: str,
        field_name: str,
        updater: Callable[[list[str]], list[str]],
    ) -> list[str]:
        """Read-modify-write one list field of the profile under the store lock."""
        return await asyncio.to_thread(self._update_list_sync, self._path(user_id), field_name, updater)
