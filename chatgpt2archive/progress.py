"""progress and output handling for export runs."""

import logging
import time
from typing import Optional, Protocol

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
)

from chatgpt2archive.core.events import Cancelled, Done, ExportResult, Failed

logger = logging.getLogger(__name__)

# longest quiet gap in line mode while the percent stands still
LINE_INTERVAL = 1.0


class ProgressObserver(Protocol):
    """sink for progress updates and the run's terminal event."""

    def progress(self, percent: int, text: str) -> None:
        """receives a progress update (0-100) with status text."""

    def finish(self, result: ExportResult) -> None:
        """receives the terminal event of a run."""


def report_progress(
    observer: Optional[ProgressObserver], percent: int, text: str
) -> None:
    """pushes a progress update; observer failures never affect the export."""
    if observer is None:
        return
    try:
        observer.progress(percent, text)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.debug("Progress observer failed: %s", e)


def report_finish(
    observer: Optional[ProgressObserver], result: ExportResult
) -> None:
    """pushes the terminal event; observer failures never affect the export."""
    if observer is None:
        return
    try:
        observer.finish(result)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.debug("Progress observer failed: %s", e)


def plural(count: int, noun: str) -> str:
    """formats a count with a naively pluralized noun."""
    return f"{count} {noun}{'' if count == 1 else 's'}"


class ProgressHandler:
    """renders export progress on the terminal."""

    def __init__(self, quiet: bool = False, show_progress: bool = False) -> None:
        self.quiet = quiet
        self.show_progress = show_progress
        self._console = Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None
        self._last_percent: Optional[int] = None
        self._last_phase: Optional[str] = None
        self._last_line = 0.0

    def __enter__(self) -> "ProgressHandler":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self._stop()

    def _stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task_id = None

    def _start(self) -> None:
        """starts the determinate progress bar."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self._console,
            transient=True,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("Starting export...", total=100)

    def progress(self, percent: int, text: str) -> None:
        """
        shows a progress update.

        With the bar enabled every update moves the bar. Otherwise a line is
        printed when the percent or the kind of step changes, and at most once
        a second while both stand still, so long exports don't flood the
        terminal but the listing count still shows.

        Args:
            percent: overall progress, 0-100
            text: status text for the current step
        """
        percent = min(100, max(0, percent))

        if self.show_progress:
            if self._progress is None:
                self._start()
            if self._progress is not None and self._task_id is not None:
                self._progress.update(
                    self._task_id, completed=percent, description=text
                )
            return

        phase = text.split(" ", 1)[0]
        now = time.monotonic()
        if (
            percent == self._last_percent
            and phase == self._last_phase
            and now - self._last_line < LINE_INTERVAL
        ):
            return
        self._last_percent = percent
        self._last_phase = phase
        self._last_line = now
        self.log_info(text)

    def log_error(self, message: str) -> None:
        """prints error message (always shown, even in quiet mode)."""
        self._console.print(f"[red]ERROR:[/red] {escape(message)}")

    def log_info(self, message: str) -> None:
        """prints info message (only when not quiet and progress disabled)."""
        if self.quiet or self.show_progress:
            return

        self._console.print(message)

    def finish(self, result: ExportResult) -> None:
        """stops progress and prints the outcome of the run."""
        self._stop()

        if isinstance(result, Failed):
            self.log_error(result.message)
            return

        if self.quiet:
            return

        if isinstance(result, Cancelled):
            self._console.print("Export cancelled.")
        elif isinstance(result, Done):
            where = f" Saved to {result.path}." if result.path else ""
            note = (
                f" ({plural(result.skipped_count, 'conversation')} skipped,"
                " see the errors list in the file)"
                if result.skipped_count
                else ""
            )
            self._console.print(f"Export complete!{where}{note}")
