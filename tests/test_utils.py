"""
Tests for utils.py: retry/backoff policy, URL building, direct-text helper.
"""

import asyncio

import pytest
import requests
from bs4 import BeautifulSoup

from wikiharvest.errors import FetchError
from wikiharvest.utils import RetryHandler, join_url, just_text, raw_page_url


def _handler(max_retries=3):
    return RetryHandler(max_retries=max_retries, base_delay=0, jitter=False)


class Flaky:
    """Raises the queued errors in order, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


# ====================================================================
# RetryHandler
# ====================================================================

class TestRetryHandler:

    def test_succeeds_after_transient_errors(self):
        func = Flaky([requests.ConnectionError("reset"), requests.Timeout("slow")])
        retries = []
        result = asyncio.run(_handler().execute_with_retry(
            func, on_retry=lambda attempt, e: retries.append(attempt)
        ))
        assert result == "ok"
        assert func.calls == 3
        assert retries == [0, 1]

    def test_retryable_status_is_retried(self):
        func = Flaky([FetchError("u", "HTTP 503", 503)])
        assert asyncio.run(_handler().execute_with_retry(func)) == "ok"
        assert func.calls == 2

    def test_client_error_is_terminal(self):
        func = Flaky([FetchError("u", "HTTP 404", 404)])
        with pytest.raises(FetchError):
            asyncio.run(_handler().execute_with_retry(func))
        assert func.calls == 1

    def test_unrelated_exception_not_retried(self):
        func = Flaky([KeyError("boom")])
        with pytest.raises(KeyError):
            asyncio.run(_handler().execute_with_retry(func))
        assert func.calls == 1

    def test_gives_up_after_max_retries(self):
        func = Flaky([requests.ConnectionError("down")] * 10)
        with pytest.raises(requests.ConnectionError):
            asyncio.run(_handler(max_retries=2).execute_with_retry(func))
        assert func.calls == 3

    def test_zero_retries_means_single_attempt(self):
        func = Flaky([requests.ConnectionError("down")])
        with pytest.raises(requests.ConnectionError):
            asyncio.run(_handler(max_retries=0).execute_with_retry(func))
        assert func.calls == 1

    def test_delay_grows_exponentially(self):
        handler = RetryHandler(base_delay=0.1, max_delay=60.0, jitter=False)
        assert handler.calculate_delay(0) == pytest.approx(0.1)
        assert handler.calculate_delay(3) == pytest.approx(0.8)

    def test_delay_capped(self):
        handler = RetryHandler(base_delay=0.1, max_delay=60.0, jitter=False)
        assert handler.calculate_delay(20) == 60.0
        assert handler.calculate_delay(5000) == 60.0

    def test_jitter_stays_in_range(self):
        handler = RetryHandler(base_delay=1.0, max_delay=60.0, jitter=True)
        for _ in range(50):
            assert 0.75 <= handler.calculate_delay(0) <= 1.25


# ====================================================================
# URLs
# ====================================================================

class TestUrls:

    def test_join_absolute_link(self):
        assert join_url("https://wiki.example.com/", "/gmod/Entity:GetPos") == \
            "https://wiki.example.com/gmod/Entity:GetPos"

    def test_join_relative_link_with_colon(self):
        assert join_url("https://wiki.example.com", "gmod/Entity:GetPos") == \
            "https://wiki.example.com/gmod/Entity:GetPos"

    def test_join_full_url_passthrough(self):
        assert join_url("https://wiki.example.com", "https://other.example.com/x") == \
            "https://other.example.com/x"

    def test_raw_page_url(self):
        assert raw_page_url("https://wiki.example.com", "/gmod/Global.print", "?format=text") == \
            "https://wiki.example.com/gmod/Global.print?format=text"

    def test_raw_page_url_existing_query(self):
        assert raw_page_url("https://wiki.example.com", "/gmod/x?lang=en", "?format=text") == \
            "https://wiki.example.com/gmod/x?lang=en&format=text"


# ====================================================================
# just_text
# ====================================================================

class TestJustText:

    def test_ignores_nested_elements(self):
        tag = BeautifulSoup('<div><i class="icon">x</i> Globals <b>y</b></div>', "lxml").div
        assert just_text(tag) == "Globals"

    def test_ignores_comments(self):
        tag = BeautifulSoup("<a><!-- hidden -->Name</a>", "lxml").a
        assert just_text(tag) == "Name"

    def test_none(self):
        assert just_text(None) == ""
