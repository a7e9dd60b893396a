"""Sources of the access token used to call the backend API."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from chatgpt2archive.config import SESSION_URL
from chatgpt2archive.core.errors import AuthError, TransportError

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "__Secure-next-auth.session-token"


class CredentialProvider(ABC):  # pylint: disable=too-few-public-methods
    """abstract source of a bearer token."""

    @abstractmethod
    async def get_credential(self) -> str:
        """
        Return an access token for the backend API.

        Raises:
            AuthError: if no authenticated session is available
        """
        ...  # pylint: disable=unnecessary-ellipsis


class StaticCredentialProvider(CredentialProvider):  # pylint: disable=too-few-public-methods
    """token passed directly (command line, environment)."""

    def __init__(self, token: Optional[str]) -> None:
        self._token = (token or "").strip()

    @classmethod
    def from_file(cls, path: Path) -> "StaticCredentialProvider":
        """reads the token from a text file."""
        try:
            return cls(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise AuthError(f"Could not read token file {path}: {e}") from e

    async def get_credential(self) -> str:
        if not self._token:
            raise AuthError(
                "No access token given. Pass --token or set CHATGPT_ACCESS_TOKEN."
            )
        return self._token


class SessionCredentialProvider(CredentialProvider):  # pylint: disable=too-few-public-methods
    """exchanges a logged-in browser session cookie for an access token."""

    def __init__(
        self,
        session_cookie: str,
        session_url: str = SESSION_URL,
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._session_cookie = session_cookie.strip()
        self._session_url = session_url
        self._timeout = timeout
        self._transport = transport

    async def get_credential(self) -> str:
        logger.debug("Requesting access token from %s", self._session_url)
        try:
            async with httpx.AsyncClient(
                cookies={SESSION_COOKIE_NAME: self._session_cookie},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    self._session_url,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            raise TransportError(
                "Could not reach chatgpt.com. Check your connection and try again."
            ) from e

        if not response.is_success:
            raise AuthError(f"Session fetch failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise AuthError("Session response was not valid JSON") from e

        token = data.get("accessToken") if isinstance(data, dict) else None
        if not token:
            raise AuthError("Not logged in - no accessToken in session response")
        return str(token)
