"""Shared pytest fixtures for receiptbeaver tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch
from factories import FIXED_NOW

from receiptbeaver.application.receipts import ReceiptServices
from receiptbeaver.domain.receipt import Receipt
from receiptbeaver.runtime import load_category_style_rules
from receiptbeaver.runtime import paths as paths_module
from receiptbeaver.runtime.paths import ProjectPaths
from receiptbeaver.runtime.receipt_storage import ReceiptStore, UserProfileStore


@pytest.fixture
def data_root(tmp_path: Path, monkeypatch: MonkeyPatch) -> Iterator[Path]:
    """Point the path singleton at a per-test data root."""
    root = tmp_path / "data"
    monkeypatch.setattr(paths_module, "_paths", ProjectPaths(root=root))
    monkeypatch.delenv("GOOGLE_GENAI_API_KEY", raising=False)
    load_category_style_rules.cache_clear()
    yield root
    load_category_style_rules.cache_clear()


@pytest.fixture
def services(data_root: Path) -> ReceiptServices:
    return ReceiptServices(
        store=ReceiptStore(data_root / "receipts"),
        profiles=UserProfileStore(data_root / "users"),
        now=lambda: FIXED_NOW,
    )


@pytest.fixture
def seed(services: ReceiptServices) -> Callable[[Receipt], Receipt]:
    """Store a receipt through the real document store and return it."""

    def _seed(receipt: Receipt) -> Receipt:
        return asyncio.run(services.store.add(receipt))

    return _seed


@pytest.fixture
def stored(services: ReceiptServices) -> Callable[[str], Receipt | None]:
    """Read a receipt back from the document store."""

    def _stored(receipt_id: str) -> Receipt | None:
        return asyncio.run(services.store.get(receipt_id))

    return _stored
