"""
Title resolution strategies.

Titles are best-effort metadata: a resolver never raises, it falls back
to a placeholder instead.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

NO_TITLE = "No title found"
MAX_CONTENT_LENGTH = 1024 * 1024


class TitleResolver(ABC):
    """Abstract base class for title resolvers"""

    @abstractmethod
    async def resolve(self, url: str) -> str:
        """
        Get a display title for a URL.

        Args:
            url: Page to describe

        Returns:
            The page title, or a placeholder when none can be found
        """
        pass


class HttpTitleResolver(TitleResolver):
    """
    Fetches the page and reads its <title> element.

    Only successful text/html responses are parsed, and at most
    `max_content_length` bytes of the body are read.

    requests is blocking, so the fetch runs in a worker thread.
    """

    def __init__(self, timeout: float = 2.0, max_content_length: int = MAX_CONTENT_LENGTH):
        self.timeout = timeout
        self.max_content_length = max_content_length

    async def resolve(self, url: str) -> str:
        return await asyncio.to_thread(self._fetch_title, url)

    def _fetch_title(self, url: str) -> str:
        try:
            response = requests.get(
                url,
                timeout=self.timeout,
                headers={
                    "User-Agent": "linkstore-title-fetcher",
                    "Accept": "text/html,application/xhtml+xml,*/*",
                },
                allow_redirects=True,
                stream=True,
            )
            try:
                content = self._read_html(url, response)
            finally:
                response.close()
        except requests.RequestException as e:
            logger.debug("Title fetch failed for %s: %s", url, e)
            return NO_TITLE

        if content is None:
            return NO_TITLE
        return extract_title(content)

    def _read_html(self, url: str, response) -> Optional[bytes]:
        """Body of an HTML page, truncated to the size cap; None for anything else"""
        if not response.ok:
            logger.debug("Title fetch for %s returned %s", url, response.status_code)
            return None

        content_type = response.headers.get("Content-Type", "")
        if "text/html" not in content_type.lower():
            return None

        content_length = response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_length:
            logger.warning("Content too large for %s", url)
            return None

        content = b""
        for chunk in response.iter_content(chunk_size=8192):
            content += chunk
            if len(content) >= self.max_content_length:
                break
        return content[:self.max_content_length]


class NullTitleResolver(TitleResolver):
    """Never fetches anything"""

    async def resolve(self, url: str) -> str:
        return ""


def extract_title(document: Union[str, bytes]) -> str:
    """Text of the page's <title> element, whitespace collapsed"""
    if not document:
        return NO_TITLE
    soup = BeautifulSoup(document, "html.parser")
    title_tag = soup.find("title")
    if title_tag is None:
        return NO_TITLE
    title = " ".join(title_tag.get_text().split())
    return title or NO_TITLE
