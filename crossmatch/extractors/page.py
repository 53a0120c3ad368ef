"""Parsed page snapshot handed to the extraction adapters.

Adapters never touch a live browser page. A snapshot holds the URL and the
HTML read from a browsing context at one point in time, parsed once with
BeautifulSoup/lxml.
"""

from functools import cached_property
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup


class PageSnapshot:
    """Immutable view of one loaded page.

    Attributes:
        url: Address the page was loaded from.
        html: Raw markup.
    """

    def __init__(self, url: str, html: str):
        self.url = url
        self.html = html

    @classmethod
    def from_html(cls, url: str, html: str) -> "PageSnapshot":
        """Build a snapshot from markup read off disk or a browser."""
        return cls(url=url, html=html)

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "lxml")

    @property
    def hostname(self) -> str:
        return (urlparse(self.url).hostname or "").lower()

    @property
    def path(self) -> str:
        return urlparse(self.url).path

    @property
    def title(self) -> str:
        """Document title, empty when the page has none."""
        tag = self.soup.title
        return tag.get_text(strip=True) if tag else ""

    def absolute_url(self, href: str | None) -> str:
        """Resolve a possibly relative link against the page URL."""
        if not href:
            return ""
        return urljoin(self.url, href)

    def __repr__(self) -> str:
        return f"PageSnapshot(url={self.url!r}, size={len(self.html)})"
