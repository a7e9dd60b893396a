"""Exception types raised during an export run."""


class ExportFailure(Exception):
    """base class for export failures; the message is shown to the user."""


class AuthError(ExportFailure):
    """missing, invalid or expired credential."""


class RateLimitError(ExportFailure):
    """backend refused the request because of rate limiting."""


class TransportError(ExportFailure):
    """network failure, unexpected HTTP status or unreadable response body."""


class EmptyResultError(ExportFailure):
    """the account has no conversations to export."""

    def __init__(self, message: str = "No conversations found.") -> None:
        super().__init__(message)


class AlreadyRunningError(ExportFailure):
    """a second export was started while one is still active."""

    def __init__(
        self,
        message: str = "An export is already running. Cancel it before starting another.",
    ) -> None:
        super().__init__(message)


class StorageError(ExportFailure):
    """failure writing or reading the temporary archive file."""
