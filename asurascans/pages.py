"""Chapter page extraction from the reader's streamed render payload.

The reader page is a Next.js document: the page list only exists inside the
``self.__next_f.push([...])`` script chunks, as JSON escaped into a JS string.
Extraction is plain text matching on that shape and is the first thing to
break when the site ships a new frontend build.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Sequence

from bs4 import BeautifulSoup
import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from core.errors import ChapterPagesNotFoundError, PagePayloadError

from .base import Page

logger = logging.getLogger(__name__)

STREAM_PUSH_MARKER = "self.__next_f.push"
PAGE_LIST_FRAGMENT = "pageListParse"
PAGES_REGEX = re.compile(r'\\"pages\\":(\[.*?\])')
UNESCAPE_REGEX = re.compile(r"\\(.)")


class PageDto(BaseModel):
    order: int
    url: str


_PAGE_LIST_ADAPTER = TypeAdapter(list[PageDto])


def _strip_outer_quotes(data: str) -> str:
    start = data.find('"')
    inner = data[start + 1 :] if start >= 0 else data
    end = inner.rfind('"')
    return inner[:end] if end >= 0 else inner


def extract_stream_text(html: str) -> str:
    """Concatenated string payloads of the streamed render scripts."""
    soup = BeautifulSoup(html, "html.parser")
    chunks = []
    for script in soup.find_all("script"):
        data = script.string or script.get_text()
        if STREAM_PUSH_MARKER in data:
            chunks.append(_strip_outer_quotes(data))
    return "".join(chunks)


def unescape(value: str) -> str:
    return UNESCAPE_REGEX.sub(r"\1", value)


def extract_pages_json(stream_text: str) -> str:
    match = PAGES_REGEX.search(stream_text)
    if match is None:
        raise ChapterPagesNotFoundError()
    return unescape(match.group(1))


def decode_pages(payload: str) -> list[PageDto]:
    try:
        pages = _PAGE_LIST_ADAPTER.validate_json(payload)
    except ValidationError as exc:
        raise PagePayloadError(f"Failed to decode chapter pages: {exc.error_count()} errors") from exc
    return sorted(pages, key=lambda page: page.order)


def tag_for_fallback(url: str) -> str:
    """Mark an absolute http(s) URL for the high quality interceptor."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return url
    if parsed.scheme not in ("http", "https") or not parsed.host:
        return url
    return str(parsed.copy_with(fragment=PAGE_LIST_FRAGMENT))


class PageResolver:
    def parse_pages(self, html: str) -> list[Page]:
        payload = extract_pages_json(extract_stream_text(html))
        return [
            Page(index=index, image_url=tag_for_fallback(page.url))
            for index, page in enumerate(decode_pages(payload))
        ]


class ImagePrefetcher:
    """Warms the first images of a chapter in the background, best effort."""

    def __init__(
        self, client: httpx.AsyncClient, count: int = 3, delay_sec: float = 0.1
    ) -> None:
        self.client = client
        self.count = count
        self.delay_sec = delay_sec
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, pages: Sequence[Page]) -> asyncio.Task | None:
        urls = [page.image_url for page in pages[: self.count] if page.image_url]
        if not urls:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("prefetch skipped | reason=no running loop")
            return None
        task = loop.create_task(self._run(urls))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, urls: list[str]) -> None:
        for position, url in enumerate(urls):
            if position:
                await asyncio.sleep(self.delay_sec)
            try:
                async with self.client.stream("GET", url) as response:
                    await response.aread()
            except Exception as exc:  # noqa: BLE001
                logger.debug("prefetch failed | url=%s error=%s", url, exc)
