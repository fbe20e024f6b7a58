"""Console logging for the note store and CLI.

All messages go to stderr so command output on stdout stays pipeable.
Debug messages are printed only in verbose mode. Colors are used when
stderr is a terminal and ``NO_COLOR`` is not set.
"""

import os
import sys
import traceback
from typing import Any


class Logger:
    """Minimal stderr logger.

    Attributes:
        verbose: If True, DEBUG messages are printed
        use_colors: If True, use ANSI color codes
    """

    def __init__(self, verbose: bool = False, use_colors: bool = True) -> None:
        self.verbose = verbose
        self.use_colors = use_colors and sys.stderr.isatty() and "NO_COLOR" not in os.environ

    def _colorize(self, text: str, color_code: str) -> str:
        return f"\033[{color_code}m{text}\033[0m" if self.use_colors else text

    def _emit(self, text: str) -> None:
        print(text, file=sys.stderr)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message, with optional key/value details, in verbose mode."""
        if not self.verbose:
            return

        details = ", ".join(f"{key}={value!r}" for key, value in kwargs.items())
        line = f"DEBUG: {message} [{details}]" if details else f"DEBUG: {message}"
        self._emit(self._colorize(line, "36"))  # Cyan

    def info(self, message: str) -> None:
        self._emit(self._colorize(message, "37"))  # White

    def success(self, message: str) -> None:
        self._emit(f"{self._colorize('✓', '1;32')} {message}")

    def warning(self, message: str) -> None:
        self._emit(self._colorize(f"Warning: {message}", "33"))  # Yellow

    def error(self, message: str, suggestion: str | None = None) -> None:
        """Log an error message.

        Args:
            message: Error message to log
            suggestion: Optional hint for fixing the error, printed below it
        """
        self._emit(self._colorize(f"Error: {message}", "31"))  # Red
        if suggestion:
            self._emit(self._colorize(f"  → {suggestion}", "33"))

    def exception(self, message: str, exc: BaseException) -> None:
        """Log an exception; the traceback is included in verbose mode."""
        self.error(f"{message}: {exc}")

        if self.verbose:
            tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            self._emit(self._colorize(tb, "90"))  # Gray


# Global logger instance (configured by the CLI)
_logger: Logger | None = None


def init_logger(verbose: bool = False, use_colors: bool = True) -> Logger:
    """Create and install the global logger."""
    global _logger
    _logger = Logger(verbose=verbose, use_colors=use_colors)
    return _logger


def get_logger() -> Logger:
    """Return the global logger, creating a quiet default one if needed.

    Library code may log before any CLI has configured logging.
    """
    global _logger
    if _logger is None:
        _logger = Logger()
    return _logger
