"""
Shared fixtures: an in-memory fetcher and a small wiki index page.
"""

import asyncio

import pytest

from wikiharvest.errors import FetchError
from wikiharvest.run_config import HarvestRunConfig

BASE_URL = "https://wiki.example.com"


class FakeFetcher:
    """
    Stands in for ``PageFetcher``: serves pages from a dict.

    Values may be a string (page body), an exception instance (raised), or
    a ``(delay_seconds, body)`` tuple to control completion order.
    """

    def __init__(self, pages):
        self.pages = dict(pages)
        self.requested = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.retry_count = 0

    async def fetch_text(self, url):
        self.requested.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if url not in self.pages:
                raise FetchError(url, "HTTP 404", 404)
            value = self.pages[url]
            if isinstance(value, tuple):
                delay, value = value
                await asyncio.sleep(delay)
            else:
                await asyncio.sleep(0)
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            self.in_flight -= 1


INDEX_HTML = """<!DOCTYPE html>
<html>
<head><title>Wiki</title></head>
<body>
<div id="sidebar">
  <div id="contents">
    <div class="sectionheader">Getting Started</div>
    <div class="section">
      <details class="level1">
        <summary><div>Tutorials</div></summary>
        <ul>
          <li><a class="f rs" href="/gmod/Not_A_Reference_Entry">Decoy</a></li>
        </ul>
      </details>
    </div>
    <div class="sectionheader">Developer Reference</div>
    <div class="section">
      <details class="level1">
        <summary><div><i class="icon"></i>Globals</div></summary>
        <ul>
          <li><a class="f rs rc" href="/gmod/Global.AddCSLuaFile">AddCSLuaFile</a></li>
          <li><a class="f rm" href="/gmod/Global.AddConsoleCommand">AddConsoleCommand</a></li>
          <li><a class="pg" href="/gmod/Global_Variables">Global Variables</a></li>
        </ul>
      </details>
      <details class="level1">
        <summary><div>Classes</div></summary>
        <ul>
          <li>
            <details class="level2">
              <summary><div>DLabel</div></summary>
              <ul>
                <li><a class="f rc" href="/gmod/DLabel:SetDisabled">SetDisabled</a></li>
                <li><a class="f rc" href="/gmod/DLabel:GetAutoStretchVertical">GetAutoStretchVertical</a></li>
              </ul>
            </details>
          </li>
          <li>
            <details class="level2">
              <summary><div>Entity</div></summary>
              <ul>
                <li><a class="f rs rc" href="/gmod/Entity:GetPos">GetPos</a></li>
                <li><a href="/gmod/Entity_Hooks">Hooks</a></li>
              </ul>
            </details>
          </li>
        </ul>
      </details>
      <details class="level1">
        <summary><div>Enums</div></summary>
        <ul>
          <li><a class="e" href="/gmod/Enums/ACT">ACT</a></li>
          <li><a class="e rs rc" href="/gmod/Enums/BOX">BOX</a></li>
        </ul>
      </details>
    </div>
  </div>
</div>
</body>
</html>
"""

# Classified entries in INDEX_HTML
INDEX_LINKS = [
    "/gmod/Global.AddCSLuaFile",
    "/gmod/Global.AddConsoleCommand",
    "/gmod/DLabel:SetDisabled",
    "/gmod/DLabel:GetAutoStretchVertical",
    "/gmod/Entity:GetPos",
    "/gmod/Enums/ACT",
    "/gmod/Enums/BOX",
]

FUNCTION_MARKUP = """<function name="{name}" parent="Global" type="libraryfunc">\r
\t<description>Does something. See <page>Global.include</page> &amp; friends.</description>\r
\t<realm>Shared</realm>\r
\t<args>\r
\t\t<arg name="file" type="string" default="nil">The file.</arg>\r
\t</args>\r
</function>\r
"""

ENUM_MARKUP = """<enum>
\t<realm>Shared</realm>
\t<items>
\t\t<item key="ACT_INVALID" value="-1"></item>
\t\t<item key="ACT_RESET" value="0"></item>
\t</items>
</enum>
"""


def raw_url(link):
    return f"{BASE_URL}{link}?format=text"


def page_for(link):
    if "/Enums/" in link:
        return ENUM_MARKUP
    return FUNCTION_MARKUP.format(name=link.rsplit(":", 1)[-1].rsplit(".", 1)[-1])


@pytest.fixture
def config(tmp_path):
    return HarvestRunConfig(
        base_url=BASE_URL,
        index_path="/gmod/",
        output_path=str(tmp_path / "dist" / "functions.json"),
        concurrency=3,
        max_retries=0,
    )


@pytest.fixture
def site_pages():
    pages = {f"{BASE_URL}/gmod/": INDEX_HTML}
    for link in INDEX_LINKS:
        pages[raw_url(link)] = page_for(link)
    return pages
