"""Tests for shared logging utilities."""

import agentnotes.utils.logging
from agentnotes.utils.logging import Logger, get_logger, init_logger


class TestLogger:
    """Tests for Logger class."""

    def test_error_message(self, capsys):
        """Test basic error logging."""
        logger = Logger(verbose=False, use_colors=False)
        logger.error("Note not found")

        captured = capsys.readouterr()
        assert "Error: Note not found" in captured.err
        assert captured.out == ""

    def test_error_with_suggestion(self, capsys):
        """Test error logging with suggestion."""
        logger = Logger(verbose=False, use_colors=False)
        logger.error("Anchor text is ambiguous", suggestion="Use --from/--to instead")

        captured = capsys.readouterr()
        assert "Error: Anchor text is ambiguous" in captured.err
        assert "→ Use --from/--to instead" in captured.err

    def test_warning_message(self, capsys):
        logger = Logger(verbose=False, use_colors=False)
        logger.warning("1 comment(s) became stale")

        captured = capsys.readouterr()
        assert "Warning: 1 comment(s) became stale" in captured.err

    def test_info_and_success(self, capsys):
        logger = Logger(verbose=False, use_colors=False)
        logger.info("Remapping comments")
        logger.success("Note updated")

        captured = capsys.readouterr()
        assert "Remapping comments" in captured.err
        assert "✓ Note updated" in captured.err
        assert captured.out == ""

    def test_debug_verbose_enabled(self, capsys):
        """Test debug logging when verbose=True."""
        logger = Logger(verbose=True, use_colors=False)
        logger.debug("Remapped comments")

        captured = capsys.readouterr()
        assert "DEBUG: Remapped comments" in captured.err

    def test_debug_verbose_disabled(self, capsys):
        """Test debug logging when verbose=False."""
        logger = Logger(verbose=False, use_colors=False)
        logger.debug("Remapped comments")

        captured = capsys.readouterr()
        assert captured.err == ""

    def test_debug_with_kwargs(self, capsys):
        """Test debug logging with key-value pairs."""
        logger = Logger(verbose=True, use_colors=False)
        logger.debug("Added comment", note="ideas/plan.md", rev=3)

        captured = capsys.readouterr()
        assert "DEBUG: Added comment" in captured.err
        assert "note='ideas/plan.md'" in captured.err
        assert "rev=3" in captured.err

    def test_exception_basic(self, capsys):
        """Test exception logging without traceback."""
        logger = Logger(verbose=False, use_colors=False)
        logger.exception("Failed to write sidecar", OSError("disk full"))

        captured = capsys.readouterr()
        assert "Error: Failed to write sidecar: disk full" in captured.err
        assert "Traceback" not in captured.err

    def test_exception_with_traceback(self, capsys):
        """Test exception logging with traceback in verbose mode."""
        logger = Logger(verbose=True, use_colors=False)

        try:
            raise ValueError("Test error")
        except ValueError as e:
            logger.exception("Caught exception", e)

        captured = capsys.readouterr()
        assert "Error: Caught exception: Test error" in captured.err
        assert "Traceback" in captured.err
        assert "ValueError: Test error" in captured.err

    def test_colorize_enabled(self):
        """Test ANSI color codes when colors enabled."""
        logger = Logger(verbose=False, use_colors=True)
        logger.use_colors = True  # Override TTY check

        colored = logger._colorize("text", "31")
        assert colored == "\033[31mtext\033[0m"

    def test_colorize_disabled(self):
        logger = Logger(verbose=False, use_colors=False)
        assert logger._colorize("text", "31") == "text"

    def test_no_color_env_disables_colors(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert Logger(use_colors=True).use_colors is False


class TestGlobalLogger:
    """Tests for global logger initialization."""

    def test_init_logger(self):
        logger = init_logger(verbose=True, use_colors=False)
        assert logger.verbose is True
        assert logger.use_colors is False
        assert get_logger() is logger

    def test_get_logger_before_init_creates_default(self, monkeypatch):
        """Library code can log before the CLI configures anything."""
        monkeypatch.setattr(agentnotes.utils.logging, "_logger", None)

        logger = get_logger()

        assert isinstance(logger, Logger)
        assert logger.verbose is False
        assert get_logger() is logger
