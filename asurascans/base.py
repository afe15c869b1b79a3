from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
import random
from typing import Any, Sequence
from urllib.parse import urljoin

import httpx


DEFAULT_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_5_2) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Mobile Safari/537.36",
)


class MangaStatus(IntEnum):
    UNKNOWN = 0
    ONGOING = 1
    COMPLETED = 2
    LICENSED = 3
    PUBLISHING_FINISHED = 4
    CANCELLED = 5
    ON_HIATUS = 6


@dataclass(frozen=True)
class Manga:
    """Catalog entry. url is a site-relative, canonical path."""

    url: str
    title: str
    thumbnail_url: str | None = None


@dataclass(frozen=True)
class MangaDetails:
    title: str
    thumbnail_url: str | None = None
    description: str | None = None
    author: str | None = None
    artist: str | None = None
    genre: list[str] = field(default_factory=list)
    status: MangaStatus = MangaStatus.UNKNOWN


@dataclass(frozen=True)
class Chapter:
    url: str
    name: str
    date_upload: int = 0


@dataclass(frozen=True)
class Page:
    index: int
    image_url: str


@dataclass
class SourceConfig:
    base_url: str = "https://asuracomic.net"
    api_url: str = "https://gg.asuracomic.net/api"
    connect_timeout_sec: float = 15.0
    read_timeout_sec: float = 30.0
    write_timeout_sec: float = 15.0
    pool_timeout_sec: float = 45.0
    rate_limit_permits: int = 2
    rate_limit_period_sec: float = 3.0
    max_connections: int = 10
    keepalive_expiry_sec: float = 120.0
    transport_retries: int = 1
    user_agent: str | None = None
    user_agents: Sequence[str] = field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS)
    )
    extra_headers: dict[str, str] = field(default_factory=dict)
    prefetch_count: int = 3
    prefetch_delay_sec: float = 0.1
    filter_fetch_max_attempts: int = 3


class UserAgentPool:
    def __init__(self, user_agents: Sequence[str] | None = None) -> None:
        self._user_agents = (
            list(user_agents) if user_agents else list(DEFAULT_USER_AGENTS)
        )

    def pick(self) -> str:
        return random.choice(self._user_agents)


def normalize_url(base_url: str, url: str) -> str:
    if url.startswith("//"):
        return "https:" + url
    return urljoin(base_url, url)


class BaseSource(ABC):
    """Contract a host application drives to browse and read a site."""

    name: str = ""
    lang: str = "en"
    supports_latest: bool = False

    def __init__(self, config: SourceConfig) -> None:
        self.config = config
        self.user_agent_pool = UserAgentPool(config.user_agents)

    @abstractmethod
    async def get_popular_manga(self, page: int) -> tuple[list[Manga], bool]:
        """Popular catalog page and whether another page follows."""

    async def get_latest_updates(self, page: int) -> tuple[list[Manga], bool]:
        raise NotImplementedError

    @abstractmethod
    async def search_manga(
        self, page: int, query: str, filters: Sequence[Any] = ()
    ) -> tuple[list[Manga], bool]:
        """Search the catalog by name and filters."""

    @abstractmethod
    async def get_manga_details(self, manga: Manga) -> MangaDetails:
        """Fetch the details page of a manga."""

    @abstractmethod
    async def get_chapter_list(self, manga: Manga) -> list[Chapter]:
        """Fetch chapter metadata for a manga."""

    @abstractmethod
    async def get_page_list(self, chapter: Chapter) -> list[Page]:
        """Resolve the ordered image references of a chapter."""

    @abstractmethod
    async def fetch_image(self, page: Page) -> httpx.Response:
        """Download a page image through the source's HTTP client."""

    def get_filter_list(self) -> list[Any]:
        return []
