"""Runtime infrastructure for receiptbeaver.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Path resolution via get_paths(), ProjectPaths
- Settings via load_config(), AppConfig
- Category style rules via load_category_style_rules()

Usage:
    from receiptbeaver.runtime import get_logger, get_paths

    logger = get_logger(__name__)
    paths = get_paths()
    print(paths.root, paths.receipts)
"""

from receiptbeaver.runtime.category_rules import load_category_style_rules
from receiptbeaver.runtime.config import AppConfig, load_config
from receiptbeaver.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    parse_log_level,
    set_log_level,
)
from receiptbeaver.runtime.paths import ProjectPaths, get_paths, set_data_root

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "parse_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Settings
    "AppConfig",
    "load_config",
    "load_category_style_rules",
    # Paths
    "get_paths",
    "set_data_root",
    "ProjectPaths",
]
