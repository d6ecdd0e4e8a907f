"""Unified command-line interface for receiptbeaver.

Usage:
    receiptbeaver serve [--port]
    receiptbeaver scan <image> --user <id>
    receiptbeaver list --user <id>
    receiptbeaver history "whole milk" --user <id>
    receiptbeaver batch operations.json --user <id>
    receiptbeaver categories --add "Pet Supplies" --user <id>
"""
