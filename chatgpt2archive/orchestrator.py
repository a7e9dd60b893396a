"""Export orchestration: listing, fetching, archiving and delivery."""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from chatgpt2archive.api.client import ChatGPTClient
from chatgpt2archive.api.fetcher import fetch_conversation
from chatgpt2archive.api.lister import list_all_conversations
from chatgpt2archive.archive import StreamingArchiveWriter
from chatgpt2archive.config import ExportSettings
from chatgpt2archive.core.errors import (
    AlreadyRunningError,
    EmptyResultError,
    ExportFailure,
    StorageError,
)
from chatgpt2archive.core.events import Cancelled, Done, ExportResult, Failed
from chatgpt2archive.core.models import ConversationSummary, FailedConversation
from chatgpt2archive.credentials import CredentialProvider
from chatgpt2archive.delivery import Delivery, archive_filename
from chatgpt2archive.progress import (
    ProgressObserver,
    plural,
    report_finish,
    report_progress,
)

logger = logging.getLogger(__name__)

# progress reserved for authentication and listing
SETUP_PERCENT = 5
FETCH_PERCENT = 90
SAVING_PERCENT = 97
# completed conversations needed before an ETA is shown
ETA_MIN_SAMPLES = 3


class ExportState(Enum):
    """lifecycle states of an export run."""

    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    LISTING = "listing"
    FETCHING = "fetching"
    CANCELLING = "cancelling"
    FINALIZING = "finalizing"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExportRun:
    """mutable state of the active export."""

    start_time: float
    cancel_requested: bool = False
    in_progress: bool = True
    success_count: int = 0
    errors: list[FailedConversation] = field(default_factory=list)
    state: ExportState = ExportState.IDLE


def format_eta(seconds: float) -> str:
    """
    formats a remaining duration for the status line.

    Args:
        seconds: estimated remaining time

    Returns:
        text like "~45s left", "~3m 20s left" or "~1h 5m left"
    """
    total_secs = math.floor(seconds + 0.5)
    if total_secs < 60:
        return f"~{total_secs}s left"
    mins, secs = divmod(total_secs, 60)
    if mins < 60:
        return f"~{mins}m {secs}s left" if secs else f"~{mins}m left"
    hrs, rem_mins = divmod(mins, 60)
    return f"~{hrs}h {rem_mins}m left" if rem_mins else f"~{hrs}h left"


def fetch_percent(done: int, total: int) -> int:
    """maps fetched conversations onto the 5-95% band of the progress bar."""
    return SETUP_PERCENT + math.floor(FETCH_PERCENT * done / total + 0.5)


class ExportOrchestrator:
    """
    runs one export at a time and reports its progress.

    start() and cancel() are the control inputs; run() drives an export to
    completion and returns the single terminal event it reported. Cancellation
    is cooperative: the flag is checked before listing, before the archive is
    opened and before each conversation fetch, so a fetch in flight always
    completes first.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        delivery: Delivery,
        observer: Optional[ProgressObserver] = None,
        settings: Optional[ExportSettings] = None,
        client_factory: Optional[Callable[[str], ChatGPTClient]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._credentials = credentials
        self._delivery = delivery
        self._observer = observer
        self._settings = settings or ExportSettings()
        self._client_factory = client_factory or self._default_client
        self._clock = clock
        self._run: Optional[ExportRun] = None

    def _default_client(self, token: str) -> ChatGPTClient:
        return ChatGPTClient(
            token, base_url=self._settings.base_url, timeout=self._settings.timeout
        )

    @property
    def in_progress(self) -> bool:
        """whether an export is currently running."""
        return self._run is not None and self._run.in_progress

    @property
    def state(self) -> ExportState:
        """state of the current or most recent run."""
        return self._run.state if self._run is not None else ExportState.IDLE

    def start(self) -> "asyncio.Task[ExportResult]":
        """schedules an export on the running event loop."""
        return asyncio.create_task(self.run())

    def cancel(self) -> None:
        """asks the active export to stop at its next checkpoint."""
        if self._run is None or not self._run.in_progress:
            return
        logger.info("Cancellation requested")
        self._run.cancel_requested = True

    async def run(self) -> ExportResult:
        """
        runs a complete export.

        Returns:
            the terminal event (Done, Failed or Cancelled) reported to the observer
        """
        if self.in_progress:
            rejection = AlreadyRunningError()
            logger.warning("%s", rejection)
            result: ExportResult = Failed(str(rejection))
            report_finish(self._observer, result)
            return result

        run = ExportRun(start_time=self._clock())
        self._run = run
        try:
            result = await self._export(run)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.exception("Export failed unexpectedly")
            run.state = ExportState.FAILED
            result = Failed(f"Export failed: {e}")
        finally:
            run.in_progress = False

        logger.info(
            "Export finished as %s after %.1fs",
            run.state.value,
            self._clock() - run.start_time,
        )
        report_finish(self._observer, result)
        return result

    async def _export(self, run: ExportRun) -> ExportResult:
        self._report(0, "Connecting to ChatGPT...")
        run.state = ExportState.AUTHENTICATING
        try:
            token = await self._credentials.get_credential()
        except ExportFailure as e:
            return self._fail(run, str(e))

        async with self._client_factory(token) as client:
            return await self._export_with_client(run, client)

    async def _export_with_client(
        self, run: ExportRun, client: ChatGPTClient
    ) -> ExportResult:
        if run.cancel_requested:
            return self._cancelled(run)

        run.state = ExportState.LISTING
        self._report(2, "Listing conversations...")
        try:
            summaries = await list_all_conversations(
                client,
                self._observer,
                page_size=self._settings.page_size,
                request_delay=self._settings.request_delay,
            )
        except ExportFailure as e:
            return self._fail(run, str(e))

        if not summaries:
            return self._fail(run, str(EmptyResultError()))
        logger.info("Found %d conversation(s)", len(summaries))

        if run.cancel_requested:
            return self._cancelled(run)

        run.state = ExportState.FETCHING
        self._report(
            SETUP_PERCENT, f"Fetching {plural(len(summaries), 'conversation')}..."
        )

        writer = StreamingArchiveWriter(self._settings.temp_dir)
        try:
            writer.open()
            if not await self._fetch_all(run, client, summaries, writer):
                run.state = ExportState.CANCELLING
                writer.discard()
                return self._cancelled(run)

            run.state = ExportState.FINALIZING
            writer.finalize(run.errors, run.success_count)
            writer.verify()
        except StorageError as e:
            self._discard_quietly(writer)
            return self._fail(run, f"Export failed: {e}")
        except BaseException:
            # no partial archive may outlive the run, whatever stopped it
            self._discard_quietly(writer)
            raise

        return self._deliver(run, writer)

    @staticmethod
    def _discard_quietly(writer: StreamingArchiveWriter) -> None:
        try:
            writer.discard()
        except StorageError as e:
            logger.debug("Discard after failure also failed: %s", e)

    async def _fetch_all(
        self,
        run: ExportRun,
        client: ChatGPTClient,
        summaries: list[ConversationSummary],
        writer: StreamingArchiveWriter,
    ) -> bool:
        """fetches and appends every conversation; returns False if cancelled."""
        total = len(summaries)
        loop_start = self._clock()

        for index, summary in enumerate(summaries):
            if run.cancel_requested:
                return False

            try:
                record = await fetch_conversation(client, summary.id)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.warning("Skipping conversation %s: %s", summary.id, e)
                run.errors.append(
                    FailedConversation(
                        id=summary.id, title=summary.title or "Untitled", error=str(e)
                    )
                )
            else:
                writer.append_record(record)
                run.success_count += 1

            done = index + 1
            self._report(
                fetch_percent(done, total), self._status_text(done, total, loop_start)
            )

            if done < total:
                await asyncio.sleep(self._settings.request_delay)

        return True

    def _status_text(self, done: int, total: int, loop_start: float) -> str:
        text = f"Exported {done} / {total}"
        remaining = total - done
        if done >= ETA_MIN_SAMPLES and remaining > 0:
            per_conversation = (self._clock() - loop_start) / done
            text += f" - {format_eta(per_conversation * remaining)}"
        return text + "..."

    def _deliver(self, run: ExportRun, writer: StreamingArchiveWriter) -> ExportResult:
        run.state = ExportState.DELIVERING
        self._report(SAVING_PERCENT, "Saving file...")
        try:
            data = writer.read_bytes()
            path = self._delivery.deliver(data, archive_filename())
        except (StorageError, OSError) as e:
            return self._fail(run, f"Export failed: {e}")
        finally:
            writer.cleanup()

        run.state = ExportState.DONE
        self._report(100, "Export complete.")
        return Done(skipped_count=len(run.errors), path=str(path))

    def _report(self, percent: int, text: str) -> None:
        report_progress(self._observer, percent, text)

    def _fail(self, run: ExportRun, message: str) -> ExportResult:
        logger.debug("Export aborted: %s", message)
        run.state = ExportState.FAILED
        return Failed(message)

    def _cancelled(self, run: ExportRun) -> ExportResult:
        run.state = ExportState.IDLE
        return Cancelled()
