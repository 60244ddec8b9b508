"""Resilient HTTP fetcher shared by all listing sources.

Performs a single GET with a hard per-attempt timeout, exponential backoff
between attempts and a freshly rotated User-Agent on every attempt. An
alternate proxy mode routes the request through a ScraperAPI-compatible
rendering service instead of calling the site directly.
"""

import asyncio
import logging
import random
from typing import Any, Optional

import httpx

from ..config import DEFAULT_USER_AGENTS, Settings
from .base import ConfigError, FetchError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-GB,en-US;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}


class ResilientFetcher:
    """Fetch pages under timeout, retry and anti-bot pressure.

    Example:
        async with ResilientFetcher(timeout=20, max_retries=3) as fetcher:
            html = await fetcher.fetch("https://www.rightmove.co.uk/...")

        # Through the proxy (requires an API key)
        fetcher = ResilientFetcher(api_key="...")
        html = await fetcher.fetch_via_proxy("https://www.spareroom.co.uk/...")
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        user_agents: Optional[list[str]] = None,
        api_key: Optional[str] = None,
        proxy_url: str = "https://api.scraperapi.com/",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Per-attempt timeout in seconds
            max_retries: Total number of attempts per fetch (at least 1)
            retry_delay: Base backoff delay; attempt n waits retry_delay * 2**n
            user_agents: User-Agent pool to rotate through
            api_key: Fetch proxy API key (only needed for proxy mode)
            proxy_url: Fetch proxy endpoint
            transport: Custom httpx transport (used by tests)
            rng: Random source for User-Agent selection
        """
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.user_agents = list(user_agents or DEFAULT_USER_AGENTS)
        self.api_key = api_key
        self.proxy_url = proxy_url
        self._transport = transport
        self._rng = rng or random.Random()
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "ResilientFetcher":
        """Build a fetcher from application settings."""
        return cls(
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay,
            user_agents=settings.user_agents,
            api_key=settings.scraper_api_key,
            proxy_url=settings.proxy_url,
            **kwargs,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def build_headers(self) -> dict[str, str]:
        """Default browser headers with a freshly chosen User-Agent."""
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = self._rng.choice(self.user_agents)
        return headers

    async def fetch(
        self,
        url: str,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        source: str = "fetcher",
    ) -> str:
        """Fetch a page directly with retry and backoff.

        Args:
            url: The URL to request
            timeout: Per-attempt timeout override in seconds
            max_retries: Attempt count override
            source: Name used in error messages and logs

        Returns:
            Response body as text

        Raises:
            FetchError: If every attempt failed
        """
        client = await self._get_client()
        timeout = timeout if timeout is not None else self.timeout
        attempts = max(1, max_retries if max_retries is not None else self.max_retries)

        last_error: Optional[Exception] = None
        last_status: Optional[int] = None

        for attempt in range(attempts):
            logger.debug(f"[{source}] Attempt {attempt + 1}/{attempts} for: {url}")
            try:
                response = await client.get(url, headers=self.build_headers(), timeout=timeout)
                last_status = response.status_code
                response.raise_for_status()
                return response.text

            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(f"[{source}] Attempt {attempt + 1} timed out after {timeout}s")

            except httpx.HTTPStatusError as e:
                last_error = e
                logger.warning(
                    f"[{source}] Attempt {attempt + 1} failed: HTTP {e.response.status_code}"
                )

            except httpx.HTTPError as e:
                last_error = e
                logger.warning(f"[{source}] Attempt {attempt + 1} failed: {e!r}")

            # No backoff after the final attempt
            if attempt < attempts - 1:
                delay = self.retry_delay * (2**attempt)
                logger.debug(f"[{source}] Retrying in {delay:.2f}s...")
                await asyncio.sleep(delay)

        raise FetchError(
            source,
            f"Request failed after {attempts} attempts: {_describe(last_error)}",
            url=url,
            status_code=last_status,
            cause=last_error,
        ) from last_error

    def build_proxy_params(self, url: str) -> dict[str, str]:
        """Query parameters for the proxy request.

        Raises:
            ConfigError: If no API key is configured
        """
        if not self.api_key:
            raise ConfigError("fetcher", "SCRAPER_API_KEY environment variable is not set")
        return {"api_key": self.api_key, "url": url, "render": "true"}

    async def fetch_via_proxy(
        self,
        url: str,
        timeout: Optional[float] = None,
        source: str = "fetcher",
    ) -> str:
        """Fetch a page through the rendering proxy.

        The proxy handles rendering and its own retries, so there is no
        local retry loop here.

        Args:
            url: The target URL to scrape
            timeout: Request timeout override in seconds
            source: Name used in error messages and logs

        Returns:
            Rendered page body as text

        Raises:
            ConfigError: If the proxy API key is missing
            FetchError: If the proxy request fails or returns non-2xx
        """
        params = self.build_proxy_params(url)
        client = await self._get_client()
        timeout = timeout if timeout is not None else self.timeout

        logger.info(f"[{source}] Proxy fetch for: {url}")

        try:
            response = await client.get(
                self.proxy_url,
                params=params,
                headers=self.build_headers(),
                timeout=timeout,
            )
        except httpx.HTTPError as e:
            raise FetchError(
                source,
                f"Proxy request failed: {_describe(e)}",
                url=url,
                cause=e,
            ) from e

        if not response.is_success:
            body = response.text[:200]
            raise FetchError(
                source,
                f"Proxy HTTP {response.status_code}: {response.reason_phrase} - {body}",
                url=url,
                status_code=response.status_code,
            )

        logger.debug(f"[{source}] Proxy returned {len(response.text)} bytes")
        return response.text

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "ResilientFetcher":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _describe(error: Optional[BaseException]) -> str:
    """Short description of an httpx error (never contains query strings)."""
    if error is None:
        return "unknown error"
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code}"
    if isinstance(error, httpx.TimeoutException):
        return "timeout"
    return type(error).__name__
