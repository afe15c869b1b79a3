from __future__ import annotations

from datetime import datetime
import logging
import re
from typing import Any, Sequence

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
import httpx

from core.errors import CloudflareChallengeError, SourceHttpError

from ..base import (
    BaseSource,
    Chapter,
    Manga,
    MangaDetails,
    MangaStatus,
    Page,
    SourceConfig,
    normalize_url,
)
from ..challenge import looks_like_challenge
from ..client import build_client
from ..filters import (
    FilterCatalog,
    GenreFilter,
    OrderFilter,
    StatusFilter,
    TypeFilter,
    first_instance,
)
from ..pages import ImagePrefetcher, PageResolver
from ..preferences import SourcePreferences
from ..slug_registry import SlugRegistry
from ..state import SourceState
from ..url_utils import clean_date_text, url_without_domain

logger = logging.getLogger(__name__)

DATE_FORMAT = "%B %d %Y"

STATUS_MAP = {
    "Ongoing": MangaStatus.ONGOING,
    "Season End": MangaStatus.ONGOING,
    "Hiatus": MangaStatus.ON_HIATUS,
    "Completed": MangaStatus.COMPLETED,
    "Dropped": MangaStatus.CANCELLED,
}


def own_text(node: Tag | None) -> str:
    """Text of the node's direct string children, whitespace collapsed."""
    if node is None:
        return ""
    parts = [
        str(child)
        for child in node.children
        if isinstance(child, NavigableString) and not isinstance(child, Comment)
    ]
    return re.sub(r"\s+", " ", "".join(parts)).strip()


def _labelled_value(soup: BeautifulSoup, selector: str, label: str) -> str | None:
    """Second h3 of the first block whose leading h3 mentions label."""
    needle = label.lower()
    for block in soup.select(selector):
        children = [child for child in block.children if isinstance(child, Tag)]
        if len(children) < 2 or children[0].name != "h3" or children[1].name != "h3":
            continue
        if needle in own_text(children[0]).lower():
            return own_text(children[1])
    return None


def parse_status(value: str | None) -> MangaStatus:
    return STATUS_MAP.get(value or "", MangaStatus.UNKNOWN)


def parse_chapter_date(value: str) -> int:
    """Upload time in epoch milliseconds, 0 when the text is not a date."""
    try:
        parsed = datetime.strptime(clean_date_text(value).strip(), DATE_FORMAT)
    except ValueError:
        return 0
    return int(parsed.timestamp() * 1000)


class AsuraScansSource(BaseSource):
    name = "Asura Scans"
    lang = "en"
    supports_latest = True

    manga_selector = "div.grid > a[href]"
    manga_title_selector = "div.block > span.block"
    next_page_selector = 'div.flex > a.flex.bg-themecolor:-soup-contains("Next")'
    chapter_selector = "div.scrollbar-thumb-themecolor > div.group"
    free_chapter_selector = "div.scrollbar-thumb-themecolor > div.group:not(:has(svg))"

    def __init__(
        self,
        config: SourceConfig | None = None,
        preferences: SourcePreferences | None = None,
        state: SourceState | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config or SourceConfig())
        self.preferences = preferences or SourcePreferences()
        self.state = state or SourceState()
        self.client = client or build_client(
            self.config,
            self.preferences,
            self.state,
            user_agent_pool=self.user_agent_pool,
            transport=transport,
        )
        self.slugs = SlugRegistry(self.preferences)
        self.page_resolver = PageResolver()
        self.prefetcher = ImagePrefetcher(
            self.client, self.config.prefetch_count, self.config.prefetch_delay_sec
        )
        self.filter_catalog = FilterCatalog(
            self.client,
            f"{self.config.api_url.rstrip('/')}/series/filters",
            self.state,
            max_attempts=self.config.filter_fetch_max_attempts,
        )

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "AsuraScansSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # request urls

    def popular_manga_url(self, page: int) -> str:
        return f"{self.base_url}/series?genres=&status=-1&types=-1&order=rating&page={page}"

    def latest_updates_url(self, page: int) -> str:
        return f"{self.base_url}/series?genres=&status=-1&types=-1&order=update&page={page}"

    def search_manga_url(self, page: int, query: str, filters: Sequence[Any] = ()) -> str:
        params: list[tuple[str, str]] = [("page", str(page))]
        if query.strip():
            params.append(("name", query))

        genre_filter = first_instance(filters, GenreFilter)
        status_filter = first_instance(filters, StatusFilter)
        type_filter = first_instance(filters, TypeFilter)
        order_filter = first_instance(filters, OrderFilter)

        params += [
            ("genres", genre_filter.to_uri_part() if genre_filter else ""),
            ("status", (status_filter.to_uri_part() if status_filter else "") or "-1"),
            ("types", (type_filter.to_uri_part() if type_filter else "") or "-1"),
            ("order", (order_filter.to_uri_part() if order_filter else "") or "rating"),
        ]
        return str(httpx.URL(f"{self.base_url}/series", params=params))

    def manga_details_url(self, manga: Manga) -> str:
        return self.base_url + self.slugs.resolve(manga.url)

    def chapter_list_url(self, manga: Manga) -> str:
        return self.manga_details_url(manga)

    def page_list_url(self, chapter: Chapter) -> str:
        return self.base_url + self.slugs.resolve_chapter(chapter.url)

    # parsing

    def parse_manga_list(self, html: str) -> tuple[list[Manga], bool]:
        soup = BeautifulSoup(html, "html.parser")
        mangas = []
        for element in soup.select(self.manga_selector):
            title_node = element.select_one(self.manga_title_selector)
            if title_node is None:
                continue
            href = normalize_url(self.config.base_url, str(element.get("href")))
            image = element.select_one("img")
            src = image.get("src") if image else None
            mangas.append(
                Manga(
                    url=self.slugs.canonicalize(url_without_domain(href)),
                    title=own_text(title_node),
                    thumbnail_url=normalize_url(self.config.base_url, str(src)) if src else None,
                )
            )
        has_next = soup.select_one(self.next_page_selector) is not None
        return mangas, has_next

    def parse_manga_details(self, html: str) -> MangaDetails:
        soup = BeautifulSoup(html, "html.parser")
        poster = soup.select_one("img[alt=poster]")
        poster_src = poster.get("src") if poster else None
        description = soup.select_one("span.font-medium.text-sm")

        genre = []
        series_type = _labelled_value(soup, "div.flex", "type")
        if series_type:
            genre.append(series_type)
        genre += [
            own_text(button)
            for button in soup.select("div[class^=space] > div.flex > button.text-white")
        ]
        return MangaDetails(
            title=own_text(soup.select_one("span.text-xl.font-bold")),
            thumbnail_url=(
                normalize_url(self.config.base_url, str(poster_src)) if poster_src else None
            ),
            description=(
                re.sub(r"\s+", " ", description.get_text()).strip()
                if description
                else None
            ),
            author=_labelled_value(soup, "div.grid > div", "Author"),
            artist=_labelled_value(soup, "div.grid > div", "Artist"),
            genre=genre,
            status=parse_status(_labelled_value(soup, "div.flex", "Status")),
        )

    def parse_chapter_list(self, html: str) -> list[Chapter]:
        soup = BeautifulSoup(html, "html.parser")
        selector = (
            self.free_chapter_selector
            if self.preferences.hide_premium_chapters
            else self.chapter_selector
        )
        chapters = []
        for element in soup.select(selector):
            anchor = element.select_one("a")
            if anchor is None or not anchor.get("href"):
                continue
            href = normalize_url(self.config.base_url, str(anchor.get("href")))
            number = own_text(element.select_one("h3"))
            title = " ".join(own_text(span) for span in element.select("h3 > span")).strip()
            date_node = element.select_one("h3 + h3")
            chapters.append(
                Chapter(
                    url=self.slugs.canonicalize(url_without_domain(href)),
                    name=f"{number} - {title}" if title else number,
                    date_upload=parse_chapter_date(own_text(date_node)) if date_node else 0,
                )
            )
        return chapters

    def parse_page_list(self, html: str) -> list[Page]:
        return self.page_resolver.parse_pages(html)

    # network

    async def _fetch(self, url: str) -> httpx.Response:
        response = await self.client.get(url)
        if looks_like_challenge(response.text, response.status_code):
            logger.warning("cloudflare challenge | url=%s", url)
            raise CloudflareChallengeError()
        if response.status_code >= 400:
            raise SourceHttpError(
                f"HTTP {response.status_code} for {url}",
                status_code=response.status_code,
            )
        return response

    async def get_popular_manga(self, page: int) -> tuple[list[Manga], bool]:
        response = await self._fetch(self.popular_manga_url(page))
        return self.parse_manga_list(response.text)

    async def get_latest_updates(self, page: int) -> tuple[list[Manga], bool]:
        response = await self._fetch(self.latest_updates_url(page))
        return self.parse_manga_list(response.text)

    async def search_manga(
        self, page: int, query: str, filters: Sequence[Any] = ()
    ) -> tuple[list[Manga], bool]:
        response = await self._fetch(self.search_manga_url(page, query, filters))
        return self.parse_manga_list(response.text)

    async def get_manga_details(self, manga: Manga) -> MangaDetails:
        response = await self._fetch(self.manga_details_url(manga))
        self.slugs.record(str(response.url))
        return self.parse_manga_details(response.text)

    async def get_chapter_list(self, manga: Manga) -> list[Chapter]:
        response = await self._fetch(self.chapter_list_url(manga))
        self.slugs.record(str(response.url))
        return self.parse_chapter_list(response.text)

    async def get_page_list(self, chapter: Chapter) -> list[Page]:
        response = await self._fetch(self.page_list_url(chapter))
        pages = self.parse_page_list(response.text)
        if pages and self.preferences.prefetch_images:
            self.prefetcher.schedule(pages)
        return pages

    async def fetch_image(self, page: Page) -> httpx.Response:
        response = await self.client.get(page.image_url)
        if response.status_code >= 400:
            raise SourceHttpError(
                f"HTTP {response.status_code} for {page.image_url}",
                status_code=response.status_code,
            )
        return response

    def get_filter_list(self) -> list[Any]:
        self.filter_catalog.ensure_fetched()
        return self.filter_catalog.build_filters()
