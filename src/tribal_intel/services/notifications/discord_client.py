"""
Discord Channel HTTP Client.

Posts messages to Discord channels through the bot REST API with retry
logic and rate limit handling.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

import httpx

from ...core.logging import get_logger

logger = get_logger(__name__)

DISCORD_API_URL = "https://discord.com/api/v10"


@dataclass
class SendResult:
    """Result of a channel send attempt."""

    success: bool
    status_code: int | None = None
    error: str | None = None
    retry_after: float | None = None

    @property
    def is_rate_limited(self) -> bool:
        """Check if this result indicates rate limiting."""
        return self.status_code == 429


class ChannelSender(Protocol):
    """Anything that can deliver a payload to a channel."""

    async def send(
        self,
        channel_id: str,
        payload: dict[str, Any],
        mention_everyone: bool = False,
    ) -> SendResult: ...


@dataclass
class DiscordChannelClient:
    """
    HTTP client for the Discord channel messages endpoint.

    Features:
    - Retry on 5xx errors and timeouts with exponential backoff
    - Rate limit handling (429 with retry_after)
    - No retry on 401/403/404 (bad token, missing permission, deleted channel)
    - @everyone only pings when explicitly requested
    """

    token: str
    api_url: str = DISCORD_API_URL
    max_retries: int = 3
    base_delay: float = 1.0  # seconds

    # Metrics
    _total_sent: int = 0
    _total_failed: int = 0
    _last_success: datetime | None = None
    _last_failure: datetime | None = None
    _consecutive_failures: int = 0

    # HTTP client
    _client: httpx.AsyncClient | None = field(default=None, repr=False)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0),
                headers={
                    "Authorization": f"Bot {self.token}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def build_body(payload: dict[str, Any], mention_everyone: bool) -> dict[str, Any]:
        """Add the mention prefix and allowed_mentions to a payload."""
        body = dict(payload)
        if mention_everyone:
            content = body.get("content")
            body["content"] = f"@everyone {content}" if content else "@everyone"
            body["allowed_mentions"] = {"parse": ["everyone"]}
        else:
            body["allowed_mentions"] = {"parse": []}
        return body

    async def send(
        self,
        channel_id: str,
        payload: dict[str, Any],
        mention_everyone: bool = False,
    ) -> SendResult:
        """
        Post a message to a channel.

        Implements retry logic:
        - 5xx: Retry with exponential backoff (1s, 2s, 4s)
        - 429: Return retry_after to the caller
        - 401/403/404: No retry
        - Other 4xx: No retry

        Args:
            channel_id: Target channel snowflake
            payload: Message body (content and/or embeds)
            mention_everyone: Prefix @everyone and allow it to ping

        Returns:
            SendResult with success status and details
        """
        client = await self._get_client()
        url = f"{self.api_url}/channels/{channel_id}/messages"
        body = self.build_body(payload, mention_everyone)

        for attempt in range(self.max_retries):
            try:
                response = await client.post(url, json=body)

                if response.status_code in (200, 201, 204):
                    self._total_sent += 1
                    self._last_success = datetime.now()
                    self._consecutive_failures = 0
                    return SendResult(success=True, status_code=response.status_code)

                if response.status_code == 429:
                    retry_after = self._retry_after(response)
                    logger.warning("Discord rate limited, retry after %.1fs", retry_after)
                    self._record_failure()
                    return SendResult(
                        success=False,
                        status_code=429,
                        retry_after=retry_after,
                        error="Rate limited",
                    )

                if response.status_code in (401, 403, 404):
                    self._record_failure()
                    error_msg = f"Channel {channel_id} not writable (HTTP {response.status_code})"
                    logger.warning(error_msg)
                    return SendResult(
                        success=False,
                        status_code=response.status_code,
                        error=error_msg,
                    )

                if response.status_code >= 500:
                    if attempt < self.max_retries - 1:
                        delay = self.base_delay * (2**attempt)
                        logger.warning(
                            "Discord server error %d, retrying in %.1fs",
                            response.status_code,
                            delay,
                        )
                        await asyncio.sleep(delay)
                        continue
                    self._record_failure()
                    return SendResult(
                        success=False,
                        status_code=response.status_code,
                        error=f"Server error after {self.max_retries} retries",
                    )

                self._record_failure()
                return SendResult(
                    success=False,
                    status_code=response.status_code,
                    error=f"HTTP {response.status_code}: {response.text[:200]}",
                )

            except httpx.TimeoutException:
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2**attempt)
                    logger.warning("Discord timeout, retrying in %.1fs", delay)
                    await asyncio.sleep(delay)
                    continue
                self._record_failure()
                return SendResult(success=False, error="Timeout after retries")

            except httpx.RequestError as e:
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2**attempt)
                    logger.warning("Discord request error: %s, retrying", e)
                    await asyncio.sleep(delay)
                    continue
                self._record_failure()
                return SendResult(success=False, error=f"Request error: {e}")

        self._record_failure()
        return SendResult(success=False, error="Unknown error")

    @staticmethod
    def _retry_after(response: httpx.Response) -> float:
        # Bot API puts the precise value in the JSON body
        try:
            return float(response.json().get("retry_after"))
        except (ValueError, TypeError, AttributeError):
            return float(response.headers.get("Retry-After", "5"))

    def _record_failure(self) -> None:
        self._total_failed += 1
        self._last_failure = datetime.now()
        self._consecutive_failures += 1

    @property
    def success_rate(self) -> float:
        """Calculate success rate (0.0 to 1.0)."""
        total = self._total_sent + self._total_failed
        if total == 0:
            return 1.0
        return self._total_sent / total

    def get_metrics(self) -> dict[str, Any]:
        """Get client metrics for status reporting."""
        return {
            "total_sent": self._total_sent,
            "total_failed": self._total_failed,
            "success_rate": round(self.success_rate, 3),
            "consecutive_failures": self._consecutive_failures,
            "last_success": self._last_success.isoformat() if self._last_success else None,
            "last_failure": self._last_failure.isoformat() if self._last_failure else None,
        }
