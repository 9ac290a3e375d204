"""
Page Fetcher
============
HTTP transport for the harvest pipeline.

A single ``requests.Session`` does the actual I/O; blocking calls run in
the event loop's default executor so the harvester can keep several
fetches in flight. Every request goes through ``RetryHandler``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import requests

from .errors import FetchError
from .run_config import HarvestRunConfig
from .utils import RetryHandler

logger = logging.getLogger(__name__)


class PageFetcher:
    """
    Fetches index and raw-markup pages as text.

    Usage::

        with PageFetcher(config) as fetcher:
            html = await fetcher.fetch_text(config.index_url)
    """

    def __init__(
        self,
        config: HarvestRunConfig = None,
        session: Optional[requests.Session] = None,
        retry_handler: Optional[RetryHandler] = None,
    ):
        self.config = config or HarvestRunConfig()
        self.session = session or self._create_session()
        self.retry_handler = retry_handler or RetryHandler(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay,
            max_delay=self.config.retry_max_delay,
        )
        self.retry_count = 0

    def _create_session(self) -> requests.Session:
        """Create configured requests session."""
        session = requests.Session()
        session.headers.update({
            'User-Agent': self.config.user_agent,
            'Accept': 'text/html,text/plain,application/xhtml+xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.9',
            'Accept-Encoding': 'gzip, deflate',
            'Connection': 'keep-alive',
        })
        return session

    def _get(self, url: str) -> str:
        response = self.session.get(
            url,
            timeout=self.config.timeout_seconds,
            allow_redirects=True,
        )
        if response.status_code >= 400:
            raise FetchError(url, f"HTTP {response.status_code}", response.status_code)
        # The wiki serves UTF-8 but text views omit the charset
        response.encoding = 'utf-8'
        return response.text

    async def _fetch_once(self, url: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get, url)

    def _count_retry(self, attempt: int, error: Exception) -> None:
        self.retry_count += 1

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a page body, retrying transient failures.

        Raises:
            FetchError: On a non-retryable status or once retries run out
        """
        logger.debug(f"GET {url}")
        try:
            return await self.retry_handler.execute_with_retry(
                self._fetch_once, url, on_retry=self._count_retry
            )
        except FetchError:
            raise
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
