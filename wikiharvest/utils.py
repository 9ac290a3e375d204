"""
Utility Functions
Retry logic, URL building, and HTML text helpers.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

import requests
from bs4 import Comment

from .errors import FetchError

logger = logging.getLogger(__name__)


class RetryHandler:
    """
    Handles retry logic with exponential backoff.
    """
    
    # HTTP status codes that should trigger a retry
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}
    
    # Transport exceptions that should trigger a retry
    RETRYABLE_EXCEPTIONS = (
        requests.ConnectionError,
        requests.Timeout,
        requests.exceptions.ChunkedEncodingError,
    )
    
    def __init__(
        self,
        max_retries: int = 100,
        base_delay: float = 0.1,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = True
    ):
        """
        Initialize the retry handler.
        
        Args:
            max_retries: Maximum number of retry attempts
            base_delay: Initial delay between retries in seconds
            max_delay: Maximum delay between retries
            exponential_base: Base for exponential backoff
            jitter: Add random jitter to prevent thundering herd
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
    
    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for given retry attempt.
        
        Args:
            attempt: Current attempt number (0-indexed)
            
        Returns:
            Delay in seconds
        """
        try:
            delay = self.base_delay * (self.exponential_base ** attempt)
        except OverflowError:
            delay = self.max_delay
        delay = min(delay, self.max_delay)
        
        if self.jitter:
            # Add random jitter (±25%)
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)
        
        return max(0, delay)
    
    def is_retryable(self, error: Exception) -> bool:
        """
        Determine if a failed attempt should be retried.
        
        Args:
            error: Exception raised by the attempt
            
        Returns:
            True for transient transport errors and retryable HTTP statuses
        """
        if isinstance(error, FetchError):
            return error.status_code in self.RETRYABLE_STATUS_CODES
        return isinstance(error, self.RETRYABLE_EXCEPTIONS)
    
    async def execute_with_retry(
        self,
        func: Callable[..., Awaitable[Any]],
        *args,
        on_retry: Optional[Callable[[int, Exception], None]] = None,
        **kwargs
    ) -> Any:
        """
        Await ``func`` with retry logic.
        
        Args:
            func: Coroutine function to execute
            *args: Positional arguments
            on_retry: Optional callback(attempt, error) before each retry
            **kwargs: Keyword arguments
            
        Returns:
            Function result
            
        Raises:
            The first non-retryable exception, or the last one once
            all retries are used up
        """
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                if attempt >= self.max_retries:
                    logger.error(f"All {self.max_retries + 1} attempts failed: {e}")
                    raise
                
                delay = self.calculate_delay(attempt)
                logger.warning(
                    f"Attempt {attempt + 1} failed: {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                if on_retry:
                    on_retry(attempt, e)
                await asyncio.sleep(delay)
                attempt += 1


def join_url(base_url: str, link: str) -> str:
    """
    Join the site base URL and a page link.
    
    Wiki links look like ``/gmod/Entity:GetPos``; ``urljoin`` would read
    ``Entity:`` as a scheme when the leading slash is missing, so the join
    is done by hand.
    """
    if link.startswith(('http://', 'https://')):
        return link
    base = base_url.rstrip('/')
    if link.startswith('/'):
        return base + link
    return f"{base}/{link}"


def raw_page_url(base_url: str, link: str, suffix: str) -> str:
    """URL of the raw-markup view of a page (``suffix`` like ``?format=text``)."""
    url = join_url(base_url, link)
    if suffix.startswith('?') and '?' in url:
        return f"{url}&{suffix[1:]}"
    return url + suffix


def just_text(tag) -> str:
    """Text directly inside a BeautifulSoup tag, ignoring nested elements."""
    if tag is None:
        return ""
    return "".join(
        s for s in tag.find_all(string=True, recursive=False)
        if not isinstance(s, Comment)
    ).strip()
