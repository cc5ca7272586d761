"""
Zendesk API client with pagination and throttle handling.

This module provides the remote side of the export:
- HTTP basic authentication
- Page walking until the first empty page
- Indefinite fixed-interval retry on HTTP 503 (API throttle)
- Every other failure raised as a fatal APIExtractionError
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

import httpx

from core.config import settings
from core.exceptions import (
    APIExtractionError,
    AuthenticationError,
    NetworkError,
    ResourceNotFoundError,
    ThrottleError,
)

logger = logging.getLogger(__name__)

THROTTLE_STATUS = 503


class ZendeskClient:
    """
    Fetch resources from the legacy Zendesk JSON API.

    Attributes:
        subdomain: Zendesk site name; also names the export
        throttle_wait: Seconds to wait after a 503 before retrying
        max_throttle_retries: Retry cap for 503s; None retries forever
    """

    def __init__(
        self,
        subdomain: str,
        email: str,
        password: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        throttle_wait: Optional[float] = None,
        max_throttle_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        self.subdomain = subdomain
        self.base_url = base_url or settings.ZENDESK_URL_TEMPLATE.format(subdomain=subdomain)
        self.throttle_wait = settings.THROTTLE_WAIT_SECONDS if throttle_wait is None else throttle_wait
        self.max_throttle_retries = (
            settings.MAX_THROTTLE_RETRIES if max_throttle_retries is None else max_throttle_retries
        )
        self._sleep = sleep or asyncio.sleep
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=(email, password),
            headers={"Accept": "application/json"},
            timeout=timeout or settings.REQUEST_TIMEOUT,
            transport=transport,
        )

    def __str__(self) -> str:
        return f"{self.__class__.__name__} ({self.subdomain})"

    async def __aenter__(self) -> "ZendeskClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    # ------------------------------------------------------------------
    # API helpers
    # ------------------------------------------------------------------

    async def user(self, user_id) -> Any:
        return await self.fetch_page(f"users/{user_id}.json")

    async def users(self) -> List[Any]:
        return await self.fetch_paginated("users.json?page=%d")

    async def forums(self) -> Any:
        return await self.fetch_page("forums.json")

    async def entries(self, forum_id) -> List[Any]:
        return await self.fetch_paginated(f"forums/{forum_id}/entries.json?page=%d")

    async def posts(self, entry_id) -> List[Any]:
        return await self.fetch_paginated(f"entries/{entry_id}/posts.json?page=%d", "posts")

    async def open_tickets(self) -> List[Any]:
        return await self.fetch_paginated(
            "search.json?query=type:ticket+status:open+status:pending+status:new&page=%d"
        )

    # ------------------------------------------------------------------
    # Fetch primitives
    # ------------------------------------------------------------------

    async def fetch_page(self, url: str, resource_key: Optional[str] = None) -> Any:
        """
        Fetch one resource, waiting out API throttling.

        Args:
            url: Path relative to the site root
            resource_key: Return only this key of the decoded body

        Returns:
            Decoded JSON body (or the value under ``resource_key``)

        Raises:
            AuthenticationError: On HTTP 401/403
            ResourceNotFoundError: On HTTP 404
            NetworkError: On connection failures and timeouts
            ThrottleError: When a retry cap is set and exhausted
            APIExtractionError: On any other failure
        """
        logger.debug(f"{self}: fetching {url}")
        throttled = 0

        while True:
            try:
                response = await self._client.get(url)
            except httpx.TransportError as e:
                raise NetworkError(
                    f"Request failed for {url}",
                    context={"url": url, "subdomain": self.subdomain},
                    original_exception=e
                )

            if response.status_code == THROTTLE_STATUS:
                throttled += 1
                if self.max_throttle_retries is not None and throttled > self.max_throttle_retries:
                    raise ThrottleError(
                        f"Still throttled after {self.max_throttle_retries} retries: {url}",
                        context={"url": url, "status_code": THROTTLE_STATUS},
                        retries=self.max_throttle_retries
                    )
                logger.info(f"{self}: got a 503 (API throttle), waiting {self.throttle_wait:g} seconds...")
                await self._sleep(self.throttle_wait)
                continue

            if response.is_success:
                body = self._decode(response)
                if body is not None and not resource_key:
                    return body
                if isinstance(body, dict) and resource_key:
                    return body.get(resource_key)

            raise self._failure(url, response)

    async def fetch_paginated(self, url_format: str, resource_key: Optional[str] = None) -> List[Any]:
        """
        Fetch every page of a resource.

        Args:
            url_format: printf-style path with one ``%d`` for the page number,
                e.g. ``"users.json?page=%d"``
            resource_key: Key holding the records when they are nested

        Returns:
            Records of all pages, in order
        """
        records: List[Any] = []
        page = 1

        while True:
            batch = await self.fetch_page(url_format % page, resource_key)
            if not batch:
                break
            if not isinstance(batch, list):
                raise APIExtractionError(
                    f"Unexpected response body for {url_format % page}",
                    context={"url": url_format % page, "subdomain": self.subdomain, "page": page}
                )
            records.extend(batch)
            logger.debug(f"{self}: fetched {len(batch)} records from page {page}")
            page += 1

        logger.debug(f"{self}: {len(records)} records from {url_format} ({page} pages)")
        return records

    @staticmethod
    def _decode(response: httpx.Response) -> Optional[Any]:
        """JSON object or array, or None for anything else (HTML error pages, strings)"""
        try:
            body = response.json()
        except ValueError:
            return None
        return body if isinstance(body, (dict, list)) else None

    def _failure(self, url: str, response: httpx.Response) -> APIExtractionError:
        context = {
            "url": url,
            "subdomain": self.subdomain,
            "status_code": response.status_code,
            "response_body": response.text[:500]
        }
        if response.status_code in (401, 403):
            return AuthenticationError(f"Authentication failed for {url}", context=context)
        if response.status_code == 404:
            return ResourceNotFoundError(f"Resource not found: {url}", context=context)
        if response.is_success:
            return APIExtractionError(f"Unexpected response body for {url}", context=context)
        return APIExtractionError(f"Failed to get resource {url}", context=context)
