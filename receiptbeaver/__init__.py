"""Receipt extraction, item reconciliation and spending dashboard."""

__version__ = "0.1.0"
