"""Shared async HTTP client utilities for feed providers.

Provides a thin wrapper around ``httpx.AsyncClient`` with standardised
timeouts, user-agent headers, and error handling, so that HTTP behaviour is
consistent and testable (tests pass an ``httpx.MockTransport``).

Error mapping:

- transport errors and timeouts raise ``SourceUnavailableError``;
- HTTP 404 returns ``None`` (the resource does not exist on this feed);
- any other non-success status raises ``SourceUnavailableError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from feedsolve.exceptions import SourceUnavailableError

logger = logging.getLogger(__name__)

# Timeout for all feed HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = "feedsolve/0.1"


class FeedClient:
    """Async HTTP client shared by every request of one provider.

    Args:
        timeout: Request timeout in seconds.
        transport: Optional custom transport (e.g. ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=transport,
        )

    async def _get(self, url: str) -> httpx.Response | None:
        try:
            resp = await self._client.get(url)
        except httpx.TimeoutException as exc:
            logger.warning("Timeout fetching %s", url)
            raise SourceUnavailableError(f"Timeout fetching {url}") from exc
        except httpx.RequestError as exc:
            logger.warning("Request error for %s: %s", url, exc)
            raise SourceUnavailableError(f"Cannot reach {url}: {exc}") from exc

        if resp.status_code == 404:
            logger.debug("HTTP 404 from %s", url)
            return None
        if resp.is_error:
            logger.warning("HTTP %d from %s", resp.status_code, url)
            raise SourceUnavailableError(f"HTTP {resp.status_code} from {url}")
        return resp

    async def fetch_json(self, url: str) -> Any | None:
        """Fetch *url* and parse the body as JSON; None on 404.

        Raises:
            SourceUnavailableError: On transport errors, error statuses, or
                a body that is not valid JSON.
        """
        resp = await self._get(url)
        if resp is None:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise SourceUnavailableError(f"Invalid JSON from {url}") from exc

    async def fetch_text(self, url: str) -> str | None:
        """Fetch *url* and return the body text; None on 404."""
        resp = await self._get(url)
        return None if resp is None else resp.text

    async def aclose(self) -> None:
        await self._client.aclose()
