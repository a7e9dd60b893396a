"""tests for progress module."""

from unittest.mock import MagicMock, patch

from rich.console import Console

from chatgpt2archive.core.events import Cancelled, Done, Failed
from chatgpt2archive.progress import (
    ProgressHandler,
    plural,
    report_finish,
    report_progress,
)


def test_progress_handler_init_defaults() -> None:
    """ProgressHandler initializes with default values."""
    handler = ProgressHandler()

    assert handler.quiet is False
    assert handler.show_progress is False


def test_progress_handler_init_with_flags() -> None:
    """ProgressHandler accepts quiet and show_progress flags."""
    handler = ProgressHandler(quiet=True, show_progress=True)

    assert handler.quiet is True
    assert handler.show_progress is True


def test_progress_handler_context_manager() -> None:
    """ProgressHandler works as context manager."""
    with ProgressHandler() as handler:
        assert handler is not None


def test_progress_starts_bar_when_enabled() -> None:
    """the first update starts a determinate bar when show_progress is True."""
    with patch("chatgpt2archive.progress.Progress") as mock_progress_class:
        mock_progress = MagicMock()
        mock_progress_class.return_value = mock_progress
        mock_progress.add_task.return_value = 0

        handler = ProgressHandler(show_progress=True)
        handler.progress(5, "Fetching 3 conversations...")
        handler.progress(23, "Exported 1 / 3...")

        mock_progress.start.assert_called_once()
        mock_progress.add_task.assert_called_once()
        mock_progress.update.assert_called_with(
            0, completed=23, description="Exported 1 / 3..."
        )


def test_progress_clamps_percent() -> None:
    """percentages outside 0-100 are clamped."""
    with patch("chatgpt2archive.progress.Progress") as mock_progress_class:
        mock_progress = MagicMock()
        mock_progress_class.return_value = mock_progress
        mock_progress.add_task.return_value = 0

        handler = ProgressHandler(show_progress=True)
        handler.progress(150, "too far")

        mock_progress.update.assert_called_with(0, completed=100, description="too far")


def test_progress_does_not_create_bar_when_disabled() -> None:
    """without show_progress no bar is created."""
    with patch("chatgpt2archive.progress.Progress") as mock_progress_class, patch.object(
        Console, "print"
    ):
        handler = ProgressHandler(show_progress=False)
        handler.progress(5, "Fetching...")

        mock_progress_class.assert_not_called()


def test_progress_throttles_repeats_within_a_second() -> None:
    """without a bar, repeated updates of one step at the same percent print once."""
    with patch.object(Console, "print") as mock_print, patch(
        "chatgpt2archive.progress.time"
    ) as mock_time:
        mock_time.monotonic.return_value = 100.0
        handler = ProgressHandler()
        handler.progress(2, "Found 100 conversations...")
        handler.progress(2, "Found 200 conversations...")
        handler.progress(5, "Fetching 200 conversations...")

        assert [c.args[0] for c in mock_print.call_args_list] == [
            "Found 100 conversations...",
            "Fetching 200 conversations...",
        ]


def test_progress_prints_listing_count_at_same_percent() -> None:
    """a new kind of step is printed even when the percent hasn't moved."""
    with patch.object(Console, "print") as mock_print, patch(
        "chatgpt2archive.progress.time"
    ) as mock_time:
        mock_time.monotonic.return_value = 100.0
        handler = ProgressHandler()
        handler.progress(2, "Listing conversations...")
        handler.progress(2, "Found 100 conversations...")

        assert [c.args[0] for c in mock_print.call_args_list] == [
            "Listing conversations...",
            "Found 100 conversations...",
        ]


def test_progress_repeats_step_after_a_second() -> None:
    """a running count at a fixed percent is printed again once a second passes."""
    with patch.object(Console, "print") as mock_print, patch(
        "chatgpt2archive.progress.time"
    ) as mock_time:
        mock_time.monotonic.side_effect = [100.0, 100.4, 101.2]
        handler = ProgressHandler()
        handler.progress(2, "Found 100 conversations...")
        handler.progress(2, "Found 200 conversations...")
        handler.progress(2, "Found 300 conversations...")

        assert [c.args[0] for c in mock_print.call_args_list] == [
            "Found 100 conversations...",
            "Found 300 conversations...",
        ]


def test_log_error_prints_to_console() -> None:
    """log_error prints error message to console."""
    with patch.object(Console, "print") as mock_print:
        handler = ProgressHandler()
        handler.log_error("Test error")

        mock_print.assert_called_once()
        call_args = mock_print.call_args[0][0]
        assert "Test error" in call_args


def test_log_info_skips_when_quiet() -> None:
    """log_info skips printing when quiet=True."""
    with patch.object(Console, "print") as mock_print:
        handler = ProgressHandler(quiet=True, show_progress=False)
        handler.log_info("Test info")

        mock_print.assert_not_called()


def test_log_info_skips_when_progress_enabled() -> None:
    """log_info skips printing when show_progress=True."""
    with patch.object(Console, "print") as mock_print:
        handler = ProgressHandler(quiet=False, show_progress=True)
        handler.log_info("Test info")

        mock_print.assert_not_called()


def test_finish_done_mentions_skipped_conversations() -> None:
    """finish prints completion with the skipped count."""
    with patch.object(Console, "print") as mock_print:
        handler = ProgressHandler()
        handler.finish(Done(skipped_count=2, path="out.json"))

        text = mock_print.call_args[0][0]
        assert "Export complete!" in text
        assert "out.json" in text
        assert "2 conversations skipped" in text


def test_finish_failed_prints_even_when_quiet() -> None:
    """errors are always shown."""
    with patch.object(Console, "print") as mock_print:
        handler = ProgressHandler(quiet=True)
        handler.finish(Failed("Session expired."))

        mock_print.assert_called_once()
        assert "Session expired." in mock_print.call_args[0][0]


def test_finish_skips_summary_when_quiet() -> None:
    """finish prints nothing for success or cancel in quiet mode."""
    with patch.object(Console, "print") as mock_print:
        handler = ProgressHandler(quiet=True)
        handler.finish(Done())
        handler.finish(Cancelled())

        assert mock_print.call_count == 0


def test_finish_stops_progress_bar() -> None:
    """finish stops a running bar."""
    with patch("chatgpt2archive.progress.Progress") as mock_progress_class, patch.object(
        Console, "print"
    ):
        mock_progress = MagicMock()
        mock_progress_class.return_value = mock_progress
        mock_progress.add_task.return_value = 0

        handler = ProgressHandler(show_progress=True)
        handler.progress(50, "halfway")
        handler.finish(Cancelled())

        mock_progress.stop.assert_called_once()


def test_report_helpers_tolerate_missing_and_broken_observers() -> None:
    """report helpers ignore a missing observer and swallow observer errors."""
    report_progress(None, 5, "text")
    report_finish(None, Cancelled())

    observer = MagicMock()
    observer.progress.side_effect = RuntimeError("gone")
    observer.finish.side_effect = RuntimeError("gone")
    report_progress(observer, 5, "text")
    report_finish(observer, Cancelled())

    observer.progress.assert_called_once_with(5, "text")
    observer.finish.assert_called_once_with(Cancelled())


def test_plural() -> None:
    """plural adds an s except for exactly one."""
    assert plural(1, "conversation") == "1 conversation"
    assert plural(0, "conversation") == "0 conversations"
    assert plural(3, "conversation") == "3 conversations"
