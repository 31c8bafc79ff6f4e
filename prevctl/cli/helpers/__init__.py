# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Shared helpers for the prevctl CLI."""

from rich.console import Console

# Command output (tables, banners) goes to stdout; logs and errors to stderr
console = Console()

from prevctl.cli.helpers.utils import (  # noqa: E402
    EXIT_INTERRUPTED,
    handle_errors,
    show_error_panel,
)

__all__ = [
    "console",
    "EXIT_INTERRUPTED",
    "handle_errors",
    "show_error_panel",
]
