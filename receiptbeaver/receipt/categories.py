"""Per-user category taxonomy and category display styles.

The taxonomy starts from DEFAULT_CATEGORIES and grows as the extractor
assigns new categories or the user adds one. Comparison is
case-insensitive; stored spelling is whatever was added first.

Display styles come from keyword rules (see rules/default_category_styles.toml).
A category that no rule covers gets a deterministic hashed color and icon.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Groceries",
    "Produce",
    "Dairy",
    "Meat",
    "Bakery",
    "Pantry",
    "Frozen",
    "Beverages",
    "Snacks",
    "Household",
    "Health",
    "Personal Care",
    "Clothing",
    "Dining",
    "Utilities",
    "Retail",
    "Other",
)

# Receipt-level categories the extractor is allowed to return.
RECEIPT_CATEGORIES: tuple[str, ...] = ("Groceries", "Dining", "Utilities", "Retail", "Other")

# Fallback palette and icons for categories no rule matches.
HASH_PALETTE: tuple[str, ...] = ("indigo-500", "pink-500", "violet-500", "fuchsia-500", "cyan-500", "emerald-500")
HASH_ICONS: tuple[str, ...] = ("star", "hexagon", "circle", "square", "dna", "briefcase", "gamepad-2", "layout-grid")


def normalize_category(category: str) -> str:
    return " ".join(category.split())


def has_category(categories: Iterable[str], category: str) -> bool:
    wanted = normalize_category(category).lower()
    return any(normalize_category(existing).lower() == wanted for existing in categories)


def merge_categories(existing: Sequence[str], additions: Iterable[str]) -> list[str]:
    """Union-insert ``additions`` into ``existing`` without duplicates.

    Existing order is kept and new names are appended in the order given.
    Blank names are ignored.
    """
    merged = list(existing)
    seen = {normalize_category(c).lower() for c in merged}
    for raw in additions:
        category = normalize_category(raw)
        key = category.lower()
        if not category or key in seen:
            continue
        seen.add(key)
        merged.append(category)
    return merged


def sorted_categories(categories: Iterable[str]) -> list[str]:
    return sorted(categories, key=str.lower)


@dataclass(frozen=True)
class CategoryStyle:
    """Icon name and color token used to render a category."""

    icon: str
    color: str


StyleRule = tuple[tuple[str, ...], CategoryStyle]


@dataclass(frozen=True)
class CategoryStyleRules:
    """Ordered keyword rules; the first rule with a matching keyword wins."""

    rules: tuple[StyleRule, ...]


def build_category_style_rules(configs: Sequence[Mapping[str, Any]] | None = None) -> CategoryStyleRules:
    """Build style rules from in-memory TOML configs.

    Later configs take precedence: their rules are checked first.
    """
    rules: list[StyleRule] = []
    for config in reversed(configs or ()):
        for rule in config.get("styles", []):
            if not isinstance(rule, Mapping):
                continue
            raw_keywords = rule.get("keywords", [])
            if isinstance(raw_keywords, str):
                raw_keywords = [raw_keywords]
            keywords = tuple(str(kw).strip().lower() for kw in raw_keywords if str(kw).strip())
            icon = str(rule.get("icon", "")).strip()
            color = str(rule.get("color", "")).strip()
            if keywords and icon and color:
                rules.append((keywords, CategoryStyle(icon=icon, color=color)))
    return CategoryStyleRules(rules=tuple(rules))


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def _string_hash(text: str) -> int:
    """31-multiplier string hash with JavaScript number semantics.

    Only the shifted term is wrapped to a signed 32-bit integer; the running
    sum is left unbounded, so long names can exceed the 32-bit range.
    """
    value = 0
    for char in text:
        value = ord(char) + (_to_int32(_to_int32(value) << 5) - value)
    return value


def hashed_category_style(category: str) -> CategoryStyle:
    value = abs(_string_hash(category))
    return CategoryStyle(icon=HASH_ICONS[value % len(HASH_ICONS)], color=HASH_PALETTE[value % len(HASH_PALETTE)])


@lru_cache(maxsize=256)
def _match_style(category: str, rules: CategoryStyleRules) -> CategoryStyle | None:
    needle = category.lower().strip()
    for keywords, style in rules.rules:
        if any(keyword in needle for keyword in keywords):
            return style
    return None


def category_style(category: str, rules: CategoryStyleRules) -> CategoryStyle:
    return _match_style(category, rules) or hashed_category_style(category)
