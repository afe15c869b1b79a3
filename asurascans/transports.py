"""httpx transports that rewrite or annotate requests before the network.

Chain order, outermost first: high quality fallback, image cache policy,
rate limiting, then the pooled network transport.
"""

from __future__ import annotations

import logging
import re

import httpx

from .pages import PAGE_LIST_FRAGMENT
from .preferences import SourcePreferences
from .rate_limit import RequestRateLimiter
from .state import SourceState

logger = logging.getLogger(__name__)

OPTIMIZED_IMAGE_PATH_REGEX = re.compile(
    r"^/storage/media/(\d+)/conversions/(.*)-optimized\.webp$"
)
IMAGE_URL_MARKERS = (".webp", ".jpg", ".png", "/storage/media/")
IMAGE_CACHE_CONTROL = "max-age=86400"


def high_quality_path(path: str) -> str | None:
    match = OPTIMIZED_IMAGE_PATH_REGEX.match(path)
    if match is None:
        return None
    media_id, name = match.groups()
    return f"/storage/media/{media_id}/{name}.webp"


def is_image_url(url: str) -> bool:
    return any(marker in url for marker in IMAGE_URL_MARKERS)


class _WrappingTransport(httpx.AsyncBaseTransport):
    def __init__(self, transport: httpx.AsyncBaseTransport) -> None:
        self.transport = transport

    async def aclose(self) -> None:
        await self.transport.aclose()


class HighQualityTransport(_WrappingTransport):
    """Tries the unconverted original of a page image first.

    The first 404 on an original turns the behaviour off for the rest of the
    process.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        preferences: SourcePreferences,
        state: SourceState,
    ) -> None:
        super().__init__(transport)
        self.preferences = preferences
        self.state = state

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        target_path = self._high_quality_target(request)
        if target_path is not None:
            hq_request = httpx.Request(
                request.method,
                request.url.copy_with(path=target_path),
                headers=request.headers,
                extensions=request.extensions,
            )
            response = await self.transport.handle_async_request(hq_request)
            if response.status_code != 404:
                return response
            await response.aclose()
            if self.state.mark_high_quality_failed():
                logger.warning(
                    "high quality images disabled | missing=%s", hq_request.url
                )
        return await self.transport.handle_async_request(request)

    def _high_quality_target(self, request: httpx.Request) -> str | None:
        if self.state.failed_high_quality or not self.preferences.force_high_quality:
            return None
        if request.url.fragment != PAGE_LIST_FRAGMENT:
            return None
        return high_quality_path(request.url.path)


class ImageCacheTransport(_WrappingTransport):
    """Gives image responses a 24h lifetime when the origin sent none."""

    def __init__(
        self, transport: httpx.AsyncBaseTransport, preferences: SourcePreferences
    ) -> None:
        super().__init__(transport)
        self.preferences = preferences

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        response = await self.transport.handle_async_request(request)
        if not self.preferences.aggressive_caching or not is_image_url(str(request.url)):
            return response
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = IMAGE_CACHE_CONTROL
        return response


class RateLimitTransport(_WrappingTransport):
    def __init__(
        self, transport: httpx.AsyncBaseTransport, limiter: RequestRateLimiter
    ) -> None:
        super().__init__(transport)
        self.limiter = limiter

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await self.limiter.acquire()
        return await self.transport.handle_async_request(request)
