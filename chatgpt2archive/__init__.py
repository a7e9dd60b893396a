"""Export ChatGPT conversation history to a JSON archive."""

import argparse
import asyncio
import contextlib
import logging
import signal
from pathlib import Path
from typing import Optional

from chatgpt2archive.config import (
    API_BASE,
    REQUEST_DELAY,
    ExportSettings,
    session_cookie_from_env,
    token_from_env,
)
from chatgpt2archive.core.errors import ExportFailure
from chatgpt2archive.core.events import Cancelled, Done, ExportResult
from chatgpt2archive.credentials import (
    CredentialProvider,
    SessionCredentialProvider,
    StaticCredentialProvider,
)
from chatgpt2archive.delivery import DirectoryDelivery
from chatgpt2archive.orchestrator import ExportOrchestrator
from chatgpt2archive.progress import ProgressHandler

logger = logging.getLogger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    """
    main entry point for chatgpt2archive CLI.

    Args:
        argv: command line arguments (defaults to sys.argv[1:])

    Returns:
        exit code (0 success, 1 partial failure, 2 fatal error, 130 cancelled)
    """
    parser = argparse.ArgumentParser(
        description="Export all ChatGPT conversations to a JSON archive"
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        default=".",
        help="directory to save the archive in (default: current directory)",
    )
    credentials = parser.add_mutually_exclusive_group()
    credentials.add_argument(
        "--token",
        help="access token (default: $CHATGPT_ACCESS_TOKEN)",
    )
    credentials.add_argument(
        "--token-file",
        help="file containing the access token",
    )
    credentials.add_argument(
        "--session-cookie",
        help="chatgpt.com session cookie to exchange for an access token"
        " (default: $CHATGPT_SESSION_TOKEN)",
    )
    parser.add_argument(
        "--base-url",
        default=API_BASE,
        help="backend API base URL",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=REQUEST_DELAY,
        help=f"seconds to wait between requests (default: {REQUEST_DELAY})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="per-request timeout in seconds (default: none)",
    )
    parser.add_argument(
        "--temp-dir",
        help="directory for the temporary archive (default: system temp dir)",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="replace an existing archive of the same name",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="show a progress bar",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="only print errors",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="enable debug logging",
    )

    args = parser.parse_args(argv)

    # configures logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(message)s",
    )

    if args.delay < 0:
        logger.error("--delay must not be negative")
        return 2

    settings = ExportSettings(
        base_url=args.base_url,
        request_delay=args.delay,
        timeout=args.timeout,
        output_dir=Path(args.output_dir),
        temp_dir=Path(args.temp_dir) if args.temp_dir else None,
        overwrite=args.overwrite,
    )

    try:
        provider = _credential_provider(args, settings)
        with ProgressHandler(quiet=args.quiet, show_progress=args.progress) as handler:
            result = asyncio.run(_export(provider, settings, handler))
    except ExportFailure as e:
        logger.error("%s", e)
        return 2
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("Fatal error: %s", e)
        return 2

    return _exit_code(result)


def _credential_provider(
    args: argparse.Namespace, settings: ExportSettings
) -> CredentialProvider:
    """picks the credential source from flags, then environment."""
    if args.token_file:
        return StaticCredentialProvider.from_file(Path(args.token_file))
    if args.token:
        return StaticCredentialProvider(args.token)
    if args.session_cookie:
        return SessionCredentialProvider(args.session_cookie, timeout=settings.timeout)

    token = token_from_env()
    if token:
        return StaticCredentialProvider(token)
    cookie = session_cookie_from_env()
    if cookie:
        return SessionCredentialProvider(cookie, timeout=settings.timeout)
    return StaticCredentialProvider(None)


async def _export(
    provider: CredentialProvider, settings: ExportSettings, handler: ProgressHandler
) -> ExportResult:
    """runs the export, turning Ctrl-C and SIGTERM into a cooperative cancel."""
    orchestrator = ExportOrchestrator(
        credentials=provider,
        delivery=DirectoryDelivery(settings.output_dir, overwrite=settings.overwrite),
        observer=handler,
        settings=settings,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # not available on Windows event loops
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, orchestrator.cancel)

    return await orchestrator.start()


def _exit_code(result: ExportResult) -> int:
    if isinstance(result, Done):
        return 1 if result.skipped_count else 0
    if isinstance(result, Cancelled):
        return 130
    return 2
