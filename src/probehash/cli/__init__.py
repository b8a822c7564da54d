"""probehash command-line interface."""

from .app import configure_logging, console_main, emit_success, main

__all__ = ["configure_logging", "console_main", "emit_success", "main"]
