"""
Outbound HTTP for news sources.

Every request carries a browser User-Agent and a bounded timeout.
Transport and HTTP errors come back as ``None`` rather than exceptions.
"""

from typing import Optional
import logging

import httpx

from baystars_news.config import get_settings

logger = logging.getLogger(__name__)


class FetchGateway:
    """
    Thin wrapper around a shared ``httpx.AsyncClient``.

    The client is injectable so tests can plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        settings = get_settings()
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.user_agent = user_agent or settings.user_agent
        self._client = client
        self._owns_client = False

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        params: Optional[dict[str, str]] = None,
    ) -> Optional[str]:
        """
        GET a URL and return its body text.

        Args:
            url: Absolute URL to fetch
            params: Optional query parameters

        Returns:
            The response body, or None if the request failed for any
            transport or HTTP reason.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
            self._owns_client = True

        try:
            response = await self._client.get(
                url,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.text

        except httpx.HTTPStatusError as e:
            logger.warning(f"Request failed for {url}: HTTP {e.response.status_code}")
            return None
        except httpx.TimeoutException:
            logger.warning(f"Request failed for {url}: timed out after {self.timeout}s")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Request failed for {url}: {e!r}")
            return None
