"""
Harvest Errors
==============
Exception hierarchy shared by every stage of the harvest pipeline.

Structural problems with the index page and per-entity failures that
survive transport retries are fatal to the run; malformed markup that the
lenient parser can recover from never raises.
"""

from typing import Optional


class HarvestFailure(Exception):
    """Base class for all fatal pipeline errors."""


class DiscoveryError(HarvestFailure):
    """The index page no longer has the expected shape."""


class FetchError(HarvestFailure):
    """A page could not be fetched (non-retryable status or retries exhausted)."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"{url}: {message}")


class MarkupParseError(HarvestFailure):
    """A markup fragment could not be tokenized at all."""


class EntityHarvestError(HarvestFailure):
    """A single entity failed to harvest."""

    def __init__(self, name: str, link: str, cause: Exception):
        self.name = name
        self.link = link
        self.cause = cause
        super().__init__(f"{link} errored! {cause}")
