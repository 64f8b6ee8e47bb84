"""
Best-effort link previews for bookmarks.

Fetches a page and reads Open Graph, Twitter card and standard meta tags.
Any failure degrades to a title derived from the URL's hostname; nothing here
raises to the caller.
"""

import re
import threading
from typing import Dict, Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from notes_api.logging_config import get_logger

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 500

_WHITESPACE_RE = re.compile(r"\s+")


def title_from_url(url: str) -> str:
    """Hostname without a leading www., first letter upper-cased; "Untitled" if unparsable."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    if not host:
        return "Untitled"
    if host.startswith("www."):
        host = host[4:]
    return host[:1].upper() + host[1:]


def degraded_metadata(url: str) -> Dict[str, str]:
    return {"title": title_from_url(url), "description": "", "favicon": "", "image": ""}


def _clean(text: Optional[str], limit: int) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()[:limit]


def _meta(soup: BeautifulSoup, key: str) -> Optional[str]:
    """Content of a <meta property=key> or <meta name=key> tag."""
    for attr in ("property", "name"):
        tag = soup.find("meta", attrs={attr: key})
        if tag and tag.get("content"):
            return tag["content"]
    return None


def _link_href(soup: BeautifulSoup, rel: str) -> Optional[str]:
    for tag in soup.find_all("link", href=True):
        if " ".join(tag.get("rel", [])).lower() == rel:
            return tag["href"]
    return None


def parse_metadata(html: str, page_url: str) -> Dict[str, str]:
    """Extract title, description, favicon and image from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")

    title = _meta(soup, "og:title") or _meta(soup, "twitter:title")
    if not title and soup.title and soup.title.string:
        title = soup.title.string
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text() if h1 else ""
    title = _clean(title, MAX_TITLE_LENGTH)

    description = _clean(
        _meta(soup, "og:description")
        or _meta(soup, "twitter:description")
        or _meta(soup, "description"),
        MAX_DESCRIPTION_LENGTH,
    )

    favicon = (
        _link_href(soup, "icon")
        or _link_href(soup, "shortcut icon")
        or _link_href(soup, "apple-touch-icon")
        or ""
    )
    image = _meta(soup, "og:image") or _meta(soup, "twitter:image") or ""

    return {
        "title": title or title_from_url(page_url),
        "description": description,
        "favicon": urljoin(page_url, favicon.strip()) if favicon else "",
        "image": urljoin(page_url, image.strip()) if image else "",
    }


class MetadataFetcher:
    """
    Fetches link previews over HTTP.

    The underlying httpx client is created lazily unless one is supplied,
    and is released by ``close``.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_redirects: int = 5,
        client: Optional[httpx.Client] = None,
    ):
        self.timeout = timeout
        self.max_redirects = max_redirects
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=self.timeout,
                    follow_redirects=True,
                    max_redirects=self.max_redirects,
                    headers={"User-Agent": USER_AGENT},
                )
            return self._client

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def extract(self, url: str) -> Dict[str, str]:
        """
        Fetch ``url`` and return ``{title, description, favicon, image}``.

        Never raises: timeouts, network errors, bad statuses and parse errors
        all return the degraded result.
        """
        try:
            response = self.client.get(url)
            response.raise_for_status()
            return parse_metadata(response.text, str(response.url))
        except Exception as err:
            logger.warning(
                "Metadata extraction failed for %s: %s", url, err.__class__.__name__
            )
            return degraded_metadata(url)
