"""
Async HTTP client for public game feeds.

Wraps httpx.AsyncClient with an explicit timeout and converts every
transport, timeout and HTTP status failure into FeedError at the call
site, so callers above this layer only handle one exception type.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from .logging import get_logger

logger = get_logger(__name__)

USER_AGENT = "tribal-intel/1.0 (+Discord bot)"

# HTTP status codes worth another attempt
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_MAX_ATTEMPTS = 3


# =============================================================================
# Exceptions
# =============================================================================


class FeedError(Exception):
    """A feed could not be fetched (network, timeout or HTTP error)."""

    def __init__(
        self,
        message: str,
        source: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.source = source
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Transport errors and 429/5xx responses are transient."""
        return self.status_code is None or self.status_code in RETRYABLE_STATUS_CODES

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        result: dict[str, Any] = {"error": "feed_error", "message": self.message}
        if self.source:
            result["source"] = self.source
        if self.status_code:
            result["status_code"] = self.status_code
        return result


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, FeedError) and exc.is_retryable


def feed_retry(max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> Any:
    """Retry decorator for transient feed failures with jittered backoff."""
    return retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential_jitter(initial=1, max=10),
        reraise=True,
    )


# =============================================================================
# Client
# =============================================================================


class FeedClient:
    """
    HTTP client for plain-text, gzip and HTML game feeds.

    Usage:
        async with FeedClient(timeout=15.0) as client:
            text = await client.get_text("https://.../map/player.txt")

    An existing httpx.AsyncClient can be injected (tests pass one built on
    httpx.MockTransport); it is then owned by the caller and not closed here.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> FeedClient:
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get(self, url: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        client = self._ensure_client()
        try:
            response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise FeedError(f"Timeout fetching {url}", source=url) from e
        except httpx.RequestError as e:
            raise FeedError(f"Network error fetching {url}: {e}", source=url) from e

        if response.status_code >= 400:
            raise FeedError(
                f"HTTP {response.status_code} fetching {url}",
                source=url,
                status_code=response.status_code,
            )
        return response

    async def get_text(self, url: str, params: Optional[dict[str, Any]] = None) -> str:
        """GET a resource and return its decoded body."""
        response = await self._get(url, params)
        return response.text

    async def get_bytes(self, url: str, params: Optional[dict[str, Any]] = None) -> bytes:
        """GET a resource and return its raw body."""
        response = await self._get(url, params)
        return response.content

    @feed_retry()
    async def get_text_with_retry(self, url: str) -> str:
        """GET text, retrying transient failures."""
        return await self.get_text(url)

    @feed_retry()
    async def get_bytes_with_retry(self, url: str) -> bytes:
        """GET bytes, retrying transient failures."""
        return await self.get_bytes(url)
