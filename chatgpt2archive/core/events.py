"""Terminal status events emitted once per export run."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Done:
    """export finished and the archive was delivered."""

    skipped_count: int = 0
    path: Optional[str] = None


@dataclass(frozen=True)
class Failed:
    """export aborted; message explains what the user can do."""

    message: str


@dataclass(frozen=True)
class Cancelled:
    """export stopped at the user's request; no archive was produced."""


ExportResult = Union[Done, Failed, Cancelled]
