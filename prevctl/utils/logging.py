# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Unified logging and debug infrastructure for prevctl.

This module provides:
1. Centralized logging configuration
2. Debug mode via PREVCTL_DEBUG env var or the --debug flag
3. Log levels via PREVCTL_LOG_LEVEL env var
4. Dual output: Rich console (stderr) for the CLI, rotating file for debugging

Usage:
    from prevctl.utils.logging import get_logger, configure_logging

    # In CLI entry point:
    configure_logging(debug=debug)

    # In any module:
    logger = get_logger(__name__)
    logger.debug(f"envId: {env_id}")

Console output always goes to stderr so that `--json` output on stdout
stays machine-readable.

Environment Variables:
    PREVCTL_DEBUG=1          Enable debug mode (verbose output)
    PREVCTL_LOG_LEVEL=DEBUG  Set log level (DEBUG, INFO, WARNING, ERROR)
    PREVCTL_LOG_FILE=/path   Override log file location
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console

from prevctl.paths import HostPaths

# Global state
_configured = False
_debug_mode = False
_log_file: Optional[Path] = None

console = Console(stderr=True)


def _get_log_file() -> Path:
    """Get the log file path."""
    global _log_file
    if _log_file:
        return _log_file

    env_log_file = os.environ.get("PREVCTL_LOG_FILE")
    if env_log_file:
        _log_file = Path(env_log_file)
    else:
        _log_file = HostPaths.state_dir() / "logs" / "prevctl.log"

    return _log_file


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return _debug_mode or os.environ.get("PREVCTL_DEBUG", "").lower() in ("1", "true", "yes")


def configure_logging(
    debug: bool = False,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Configure the logging system.

    Called once at CLI startup. Later calls are no-ops unless force=True,
    which lets the --debug flag upgrade a default configuration.

    Args:
        debug: Enable debug mode (debug messages echoed to the console)
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Override log file path
        force: Reconfigure even if already configured
    """
    global _configured, _debug_mode, _log_file

    if _configured and not force:
        return

    _debug_mode = debug or is_debug_mode()

    if log_file:
        _log_file = log_file

    if log_level:
        level_name = log_level.upper()
    else:
        level_name = os.environ.get("PREVCTL_LOG_LEVEL", "DEBUG" if _debug_mode else "INFO").upper()

    level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger("prevctl")
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    try:
        path = _get_log_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)
    except OSError:
        # Can't write log file, continue without it
        pass

    _configured = True
    root_logger.debug(f"Logging configured: level={level_name}, debug={_debug_mode}")


class PrevctlLogger:
    """Logger writing to the log file and, for user-facing levels, the console."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self.console = console

    def debug(self, message: str, console_output: bool = False) -> None:
        """Log debug message. Echoed to the console only in debug mode."""
        self.logger.debug(message)
        if console_output or is_debug_mode():
            self.console.print(f"[dim][DEBUG] {message}[/dim]", highlight=False)

    def info(self, message: str, console_output: bool = False) -> None:
        self.logger.info(message)
        if console_output:
            self.console.print(f"[blue]{message}[/blue]")

    def warning(self, message: str, console_output: bool = True) -> None:
        self.logger.warning(message)
        if console_output:
            self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def error(
        self,
        message: str,
        exc: Optional[BaseException] = None,
        console_output: bool = False,
    ) -> None:
        """Log error message.

        Args:
            message: Error message
            exc: Optional exception to include in log
            console_output: Output to console
        """
        if exc:
            self.logger.error(f"{message}: {exc}", exc_info=exc)
            message = f"{message}: {exc}"
        else:
            self.logger.error(message)

        if console_output:
            self.console.print(f"[red]✗ {message}[/red]")


def get_logger(name: str) -> PrevctlLogger:
    """Get or create a logger for a module.

    Example:
        logger = get_logger(__name__)
        logger.debug("Forwarding docker socket")
    """
    if not _configured:
        configure_logging()

    if not name.startswith("prevctl"):
        name = f"prevctl.{name}"

    return PrevctlLogger(name)
