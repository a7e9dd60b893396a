"""Runtime settings for an export run."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

API_BASE = "https://chatgpt.com/backend-api"
SESSION_URL = "https://chatgpt.com/api/auth/session"
PAGE_SIZE = 100  # conversations per page, API maximum
REQUEST_DELAY = 0.15  # seconds between requests
EXPORT_VERSION = "1.0"

TOKEN_ENV = "CHATGPT_ACCESS_TOKEN"
SESSION_COOKIE_ENV = "CHATGPT_SESSION_TOKEN"


@dataclass
class ExportSettings:
    """settings shared by the client, lister and orchestrator."""

    base_url: str = API_BASE
    page_size: int = PAGE_SIZE
    request_delay: float = REQUEST_DELAY
    timeout: Optional[float] = None
    output_dir: Path = Path(".")
    temp_dir: Optional[Path] = None
    overwrite: bool = False


def token_from_env() -> Optional[str]:
    """returns the access token from the environment, if set."""
    token = os.environ.get(TOKEN_ENV, "").strip()
    return token or None


def session_cookie_from_env() -> Optional[str]:
    """returns the chatgpt.com session cookie from the environment, if set."""
    cookie = os.environ.get(SESSION_COOKIE_ENV, "").strip()
    return cookie or None
