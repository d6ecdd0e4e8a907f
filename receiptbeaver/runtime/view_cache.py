"""Invalidation signals for cached read views.

Mutating actions call ``invalidate("/dashboard")``; anything that caches a
rendering of the receipt list registers a listener and drops its entries.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

from receiptbeaver.runtime.logging import get_logger

logger = get_logger(__name__)

DASHBOARD_PATH = "/dashboard"

T = TypeVar("T")


class ViewInvalidator:
    """Broadcasts stale view paths to registered listeners."""

    def __init__(self) -> None:
        self._listeners: list[Callable[[str], None]] = []
        self.invalidated: list[str] = []

    def subscribe(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def invalidate(self, path: str) -> None:
        self.invalidated.append(path)
        logger.debug("Invalidating view %s", path)
        for listener in self._listeners:
            try:
                listener(path)
            except Exception:
                # A broken cache must not turn a committed write into a failure.
                logger.exception("View invalidation listener failed for %s", path)


class ViewCache(Generic[T]):
    """Per-path, per-key cache cleared when its path is invalidated.

    Every clear bumps the path's generation. Readers capture ``generation(path)``
    before loading data and pass it to ``put``; a value computed before an
    invalidation is then discarded instead of being cached.
    """

    def __init__(self, invalidator: ViewInvalidator | None = None) -> None:
        self._entries: dict[str, dict[str, T]] = {}
        self._generations: dict[str, int] = {}
        if invalidator is not None:
            invalidator.subscribe(self.clear_path)

    def generation(self, path: str) -> int:
        return self._generations.get(path, 0)

    def get(self, path: str, key: str) -> T | None:
        return self._entries.get(path, {}).get(key)

    def put(self, path: str, key: str, value: T, generation: int | None = None) -> bool:
        if generation is not None and generation != self.generation(path):
            logger.debug("Dropping stale %s entry for %s", path, key)
            return False
        self._entries.setdefault(path, {})[key] = value
        return True

    def clear_path(self, path: str) -> None:
        self._generations[path] = self.generation(path) + 1
        self._entries.pop(path, None)
