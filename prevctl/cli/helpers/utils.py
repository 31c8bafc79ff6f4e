# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Utility functions for CLI helpers."""

import functools
import sys
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from prevctl.errors import (
    ConfigurationError,
    PrevctlError,
    ProtocolError,
    ProxyUnavailable,
    TransportError,
)
from prevctl.utils.logging import get_logger

logger = get_logger(__name__)

_console = Console(stderr=True)

EXIT_INTERRUPTED = 130


def show_error_panel(title: str, message: str, hint: Optional[str] = None) -> None:
    """Display a formatted error panel on stderr.

    Args:
        title: Panel title (shown in red)
        message: Main error message
        hint: Optional hint text (shown with blue "Hint:" prefix)
    """
    content = escape(message)
    if hint:
        content += f"\n\n[blue]Hint:[/blue] {escape(hint)}"
    _console.print(Panel(content, title=f"[red]{title}[/red]", border_style="red"))


def _error_title(exc: PrevctlError) -> str:
    if isinstance(exc, ConfigurationError):
        return "Configuration Error"
    if isinstance(exc, TransportError):
        return "Connection Error"
    if isinstance(exc, ProtocolError):
        return "Protocol Error"
    if isinstance(exc, ProxyUnavailable):
        return "Proxy Unavailable"
    return "Error"


def handle_errors(func: Callable) -> Callable:
    """Decorator that wraps CLI commands with standard error handling.

    Catches exceptions, prints an error panel and exits with code 1:
    - PrevctlError: panel titled by error category, naming the failed stage
    - KeyboardInterrupt: exits with 130 (scoped cleanup has already run)
    - ClickException: left to Click
    - Other exceptions: generic error panel

    Usage:
        @cli.command()
        @handle_errors
        def my_command():
            ...
    """
    import click

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            logger.warning("Interrupted")
            sys.exit(EXIT_INTERRUPTED)
        except PrevctlError as exc:
            logger.error(f"{exc.stage} failed", exc=exc)
            show_error_panel(_error_title(exc), f"{exc}\n\nFailed stage: {exc.stage}", exc.hint)
            sys.exit(1)
        except Exception as exc:
            logger.error("Unexpected error", exc=exc)
            show_error_panel("Error", str(exc))
            sys.exit(1)

    return wrapper
