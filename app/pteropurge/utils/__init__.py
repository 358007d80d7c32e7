"""Utility modules for pteropurge.

This module exports commonly used utility functions.
"""

from pteropurge.utils.formatting import (
    console,
    create_server_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "console",
    "create_server_table",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
