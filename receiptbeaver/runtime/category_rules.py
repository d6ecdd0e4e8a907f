"""Runtime loader for category style rules."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from receiptbeaver.receipt.categories import CategoryStyleRules, build_category_style_rules
from receiptbeaver.runtime.config import load_toml
from receiptbeaver.runtime.paths import get_paths


@lru_cache(maxsize=8)
def load_category_style_rules(style_paths: tuple[str, ...] | None = None) -> CategoryStyleRules:
    """Load style rules from the packaged defaults plus the project override file.

    Files later in the list take precedence over earlier ones.
    """
    if style_paths is None:
        p = get_paths()
        style_files = [p.default_category_styles, p.category_styles]
    else:
        style_files = [Path(path) for path in style_paths]

    return build_category_style_rules(tuple(load_toml(path) for path in style_files))
