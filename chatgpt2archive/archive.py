"""Incremental writer for the export archive.

The archive is written in three phases so that the full export never has to
be held in memory::

    {"export_version":"1.0","exported_at":"...","conversations":[   <- open()
    {...},{...},...                                                 <- append_record()
    ],"conversation_count":N,"errors":[...]}                        <- finalize()

The temporary file is only a valid JSON document after finalize(). An
abandoned export calls discard(), which deletes the file, so a reader never
sees a partial document.
"""

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, TextIO

import ijson

from chatgpt2archive.config import EXPORT_VERSION
from chatgpt2archive.core.errors import StorageError
from chatgpt2archive.core.models import ConversationRecord, FailedConversation

logger = logging.getLogger(__name__)


def _dumps(value: Any) -> str:
    """serializes compactly, leaving non-ASCII text as is.

    Lone surrogates can't be written as UTF-8, so a value containing one is
    serialized with escapes instead, as JavaScript's JSON.stringify does.
    """
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=True)
    return text


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """formats a UTC timestamp like 2024-05-01T12:30:00.000Z."""
    moment = moment or datetime.now(timezone.utc)
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class StreamingArchiveWriter:
    """writes the archive document to a temporary file one conversation at a time."""

    def __init__(self, temp_dir: Optional[Path] = None) -> None:
        self._temp_dir = temp_dir
        self.path: Optional[Path] = None
        self._file: Optional[TextIO] = None
        self._record_count = 0
        self._finalized = False

    @property
    def record_count(self) -> int:
        """number of conversations appended so far."""
        return self._record_count

    def open(self, exported_at: Optional[datetime] = None) -> Path:
        """
        creates the temporary file and writes the document header.

        Args:
            exported_at: export timestamp (defaults to now)

        Returns:
            path of the temporary file

        Raises:
            StorageError: if the file can't be created or written
        """
        if self._file is not None or self._finalized:
            raise StorageError("Archive is already open")

        try:
            fd, name = tempfile.mkstemp(
                prefix="chatgpt-export-",
                suffix=".json.part",
                dir=self._temp_dir,
            )
            self.path = Path(name)
            self._file = os.fdopen(fd, "w", encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not create temporary archive: {e}") from e

        header = (
            '{"export_version":'
            + _dumps(EXPORT_VERSION)
            + ',"exported_at":'
            + _dumps(iso_timestamp(exported_at))
            + ',"conversations":['
        )
        self._write(header)
        logger.debug("Opened temporary archive %s", self.path)
        return self.path

    def append_record(self, record: ConversationRecord) -> None:
        """
        appends one conversation to the conversations array.

        Raises:
            StorageError: if the archive isn't open or the write fails
        """
        chunk = _dumps(record.to_dict())
        self._write(chunk if self._record_count == 0 else "," + chunk)
        self._record_count += 1

    def finalize(
        self, errors: Sequence[FailedConversation], success_count: int
    ) -> Path:
        """
        closes the conversations array, writes the summary fields and closes the file.

        Args:
            errors: conversations that failed; the errors field is omitted when empty
            success_count: number of conversations written

        Returns:
            path of the complete archive

        Raises:
            StorageError: if the archive isn't open or the write fails
        """
        footer = '],"conversation_count":' + _dumps(success_count)
        if errors:
            footer += ',"errors":' + _dumps([error.to_dict() for error in errors])
        footer += "}"
        self._write(footer)
        self._close()
        self._finalized = True

        if self.path is None:
            raise StorageError("Archive is not open")
        logger.debug(
            "Finalized archive %s with %d conversation(s)", self.path, success_count
        )
        return self.path

    def verify(self) -> int:
        """
        stream-parses the finalized archive and checks its conversation count.

        Returns:
            number of conversations in the archive

        Raises:
            StorageError: if the file is unreadable, invalid, or the count is wrong
        """
        if not self._finalized or self.path is None:
            raise StorageError("Archive has not been finalized")

        conversations = 0
        declared: Optional[int] = None
        try:
            with open(self.path, "rb") as f:
                for prefix, event, value in ijson.parse(f):
                    if prefix == "conversations.item" and event == "start_map":
                        conversations += 1
                    elif prefix == "conversation_count" and event == "number":
                        declared = int(value)
        except OSError as e:
            raise StorageError(f"Could not read archive: {e}") from e
        except ijson.JSONError as e:
            raise StorageError(f"Archive is not valid JSON: {e}") from e

        if declared != conversations:
            raise StorageError(
                f"Archive lists {conversations} conversation(s)"
                f" but declares {declared}"
            )
        return conversations

    def read_bytes(self) -> bytes:
        """
        returns the content of the finalized archive.

        Raises:
            StorageError: if the archive isn't finalized or can't be read
        """
        if not self._finalized or self.path is None:
            raise StorageError("Archive has not been finalized")
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read archive: {e}") from e

    def discard(self) -> None:
        """
        abandons the archive and deletes the temporary file.

        Safe to call more than once, before open() or after finalize().

        Raises:
            StorageError: if the file exists but can't be removed
        """
        try:
            self._close()
        except StorageError as e:
            logger.debug("Ignoring close failure while discarding: %s", e)

        if self.path is None:
            return
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Could not delete temporary archive: {e}") from e
        logger.debug("Discarded temporary archive %s", self.path)
        self.path = None
        self._finalized = False

    def cleanup(self) -> None:
        """removes the temporary file after delivery (best-effort)."""
        try:
            self.discard()
        except StorageError as e:
            logger.warning("%s", e)

    def _write(self, text: str) -> None:
        if self._file is None:
            raise StorageError("Archive is not open")
        try:
            self._file.write(text)
            self._file.flush()
        except (OSError, UnicodeError) as e:
            raise StorageError(f"Could not write archive: {e}") from e

    def _close(self) -> None:
        if self._file is None:
            return
        f, self._file = self._file, None
        try:
            f.close()
        except OSError as e:
            raise StorageError(f"Could not close archive: {e}") from e
