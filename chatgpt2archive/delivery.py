"""Hands the finished archive over to the user."""

import logging
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def archive_filename(day: Optional[date] = None) -> str:
    """returns the date-stamped archive filename, e.g. chatgpt-export-2024-05-01.json."""
    day = day or date.today()
    return f"chatgpt-export-{day.isoformat()}.json"


class Delivery(ABC):  # pylint: disable=too-few-public-methods
    """abstract destination for a completed archive."""

    @abstractmethod
    def deliver(self, data: bytes, filename: str) -> Path:
        """
        Persist the archive where the user can retrieve it.

        Args:
            data: complete archive content
            filename: suggested filename

        Returns:
            where the archive was saved
        """
        ...  # pylint: disable=unnecessary-ellipsis


class DirectoryDelivery(Delivery):  # pylint: disable=too-few-public-methods
    """saves archives into a local directory."""

    def __init__(self, directory: Path, overwrite: bool = False) -> None:
        self.directory = directory
        self.overwrite = overwrite

    def deliver(self, data: bytes, filename: str) -> Path:
        """writes the archive, picking a free name unless overwrite is set."""
        self.directory.mkdir(parents=True, exist_ok=True)
        output_path = self.directory / filename
        if not self.overwrite:
            output_path = _free_path(output_path)

        output_path.write_bytes(data)
        logger.info("Saved archive to %s", output_path)
        return output_path


def _free_path(path: Path) -> Path:
    """returns path, or path with a numeric suffix if it already exists."""
    candidate = path
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        counter += 1
    return candidate
