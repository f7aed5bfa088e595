"""HTTP client for downloading calendar feeds - calendarsync_lite."""

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from calendarsync_lite.core.exceptions import (
    FeedAuthError,
    FeedFetchError,
    FeedNetworkError,
    FeedTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0

DEFAULT_HEADERS = {
    "User-Agent": "calendarsync-lite/0.1",
    "Accept": "text/calendar, text/plain;q=0.9, */*;q=0.8",
}


class FeedFetcher:
    """Async HTTP client that downloads raw feed bytes.

    The response body is returned as-is; its content type is not checked.
    Every failure is raised, since without the feed there is nothing to do.
    """

    def __init__(
        self,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize feed fetcher.

        Args:
            request_timeout: Read timeout in seconds
            client: Optional pre-built client (not closed by the fetcher)
        """
        self.request_timeout = request_timeout
        self.client: Optional[httpx.AsyncClient] = client
        self._owns_client = client is None

    async def __aenter__(self) -> "FeedFetcher":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            timeout = httpx.Timeout(connect=10.0, read=self.request_timeout, write=10.0, pool=30.0)
            self.client = httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
            )
            self._owns_client = True
        return self.client

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self.client is not None and self._owns_client and not self.client.is_closed:
            await self.client.aclose()
            logger.debug("Closed feed HTTP client")
        if self._owns_client:
            self.client = None

    @staticmethod
    def validate_url(url: str) -> bool:
        """Accept only http(s) URLs that name a host."""
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            logger.debug("Rejected non-HTTP(S) URL: %s", url)
            return False
        if not parsed.hostname:
            logger.debug("Rejected URL without hostname: %s", url)
            return False
        return True

    async def fetch(self, url: str) -> bytes:
        """Download the feed at ``url``.

        Args:
            url: HTTP(S) URL of the calendar feed

        Returns:
            Raw response body

        Raises:
            FeedAuthError: Server answered 401 or 403
            FeedTimeoutError: Request timed out
            FeedNetworkError: Connection-level failure
            FeedFetchError: Invalid URL or any other HTTP error status
        """
        if not self.validate_url(url):
            raise FeedFetchError(f"Invalid feed URL: {url}")

        client = self._ensure_client()
        logger.debug("Fetching feed from %s", url)

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.exception("Timeout fetching feed from %s", url)
            raise FeedTimeoutError(f"Request timeout after {self.request_timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.exception("HTTP error fetching feed from %s: %s", url, status)
            if status in (401, 403):
                raise FeedAuthError(
                    f"Access denied fetching feed (HTTP {status})", status
                ) from e
            raise FeedFetchError(f"HTTP {status}: {e.response.reason_phrase}", status) from e
        except httpx.NetworkError as e:
            logger.exception("Network error fetching feed from %s", url)
            raise FeedNetworkError(f"Network error: {e}") from e
        except httpx.HTTPError as e:
            logger.exception("Unexpected error fetching feed from %s", url)
            raise FeedFetchError(f"Unexpected error: {e}") from e

        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return response.content
