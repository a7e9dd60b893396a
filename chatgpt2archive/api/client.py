"""HTTP client for the ChatGPT backend API."""

import logging
from typing import Any, Optional

import httpx

from chatgpt2archive.config import API_BASE
from chatgpt2archive.core.errors import AuthError, RateLimitError, TransportError

logger = logging.getLogger(__name__)


class ChatGPTClient:
    """authenticated JSON client for chatgpt.com/backend-api."""

    def __init__(
        self,
        token: str,
        base_url: str = API_BASE,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ChatGPTClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """closes the underlying connection pool."""
        await self._client.aclose()

    async def get_json(
        self, path: str, params: Optional[dict[str, Any]] = None
    ) -> Any:
        """
        requests a backend path and decodes the JSON body.

        Args:
            path: path relative to the API base, e.g. "/conversations"
            params: optional query parameters

        Returns:
            decoded JSON body

        Raises:
            AuthError: on HTTP 401
            RateLimitError: on HTTP 429
            TransportError: on any other failure
        """
        logger.debug("GET %s %s", path, params or "")
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"Network error on {path}: {e}") from e

        raise_for_status(response, path)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON response on {path}") from e


def raise_for_status(response: httpx.Response, path: str) -> None:
    """maps an unsuccessful response to the export error taxonomy."""
    if response.status_code == 401:
        raise AuthError("Session expired. Please refresh chatgpt.com and try again.")
    if response.status_code == 429:
        raise RateLimitError(
            "ChatGPT rate-limited the export. Wait a few minutes and try again."
        )
    if not response.is_success:
        raise TransportError(f"API error {response.status_code} on {path}")
