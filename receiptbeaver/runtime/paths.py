"""Centralized path management for receiptbeaver.

All stored data lives under one data root so a deployment (or a test) can
point the whole application somewhere else with RECEIPTBEAVER_HOME.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DATA_ROOT_ENV = "RECEIPTBEAVER_HOME"


def _get_data_root() -> Path:
    """Data root from RECEIPTBEAVER_HOME, else ~/.receiptbeaver."""
    configured = os.environ.get(DATA_ROOT_ENV, "").strip()
    if configured:
        return Path(configured).expanduser()
    return Path("~/.receiptbeaver").expanduser()


@dataclass
class ProjectPaths:
    """Container for all data paths, computed relative to the data root."""

    root: Path = field(default_factory=_get_data_root)

    def __post_init__(self) -> None:
        self.root = Path(self.root).expanduser().resolve()

    # --- Package paths ---
    @property
    def src(self) -> Path:
        """receiptbeaver package directory."""
        return Path(__file__).resolve().parents[1]

    @property
    def default_category_styles(self) -> Path:
        """Packaged default category style rules."""
        return self.src / "receipt" / "rules" / "default_category_styles.toml"

    # --- Configuration paths ---
    @property
    def config(self) -> Path:
        return self.root / "config"

    @property
    def app_config(self) -> Path:
        """Application settings TOML file."""
        return self.config / "receiptbeaver.toml"

    @property
    def category_styles(self) -> Path:
        """Project-level category style rules, checked before the defaults."""
        return self.config / "category_styles.toml"

    # --- Document store paths ---
    @property
    def receipts(self) -> Path:
        """One JSON document per receipt."""
        return self.root / "receipts"

    @property
    def users(self) -> Path:
        """One JSON profile document per user."""
        return self.root / "users"

    @property
    def images(self) -> Path:
        """Uploaded receipt photos."""
        return self.root / "images"

    def ensure_directories(self) -> None:
        """Create all data directories if they don't exist."""
        for directory in (self.config, self.receipts, self.users, self.images):
            directory.mkdir(parents=True, exist_ok=True)


# Module-level singleton
_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance."""
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def set_data_root(root: Path | str) -> ProjectPaths:
    """Point the singleton at a different data root (CLI --data-dir, tests)."""
    global _paths
    _paths = ProjectPaths(root=Path(root))
    return _paths
