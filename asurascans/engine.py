from __future__ import annotations

import logging
from typing import Any, Sequence

from core.errors import SourceError

from .base import BaseSource, Chapter, Manga, MangaDetails, Page


class SourceEngine:
    """Logs every host-facing call made against a source."""

    def __init__(self, source: BaseSource) -> None:
        self.source = source
        self.logger = logging.getLogger(__name__)

    async def popular(self, page: int = 1) -> tuple[list[Manga], bool]:
        self.logger.info("popular start | page=%s", page)
        items, has_more = await self.source.get_popular_manga(page)
        self.logger.info("popular done | page=%s count=%s more=%s", page, len(items), has_more)
        return items, has_more

    async def latest(self, page: int = 1) -> tuple[list[Manga], bool]:
        if not self.source.supports_latest:
            raise NotImplementedError("latest updates are not supported")
        self.logger.info("latest start | page=%s", page)
        items, has_more = await self.source.get_latest_updates(page)
        self.logger.info("latest done | page=%s count=%s more=%s", page, len(items), has_more)
        return items, has_more

    async def search(
        self, query: str, page: int = 1, filters: Sequence[Any] = ()
    ) -> tuple[list[Manga], bool]:
        self.logger.info("search start | query=%s page=%s", query, page)
        items, has_more = await self.source.search_manga(page, query, filters)
        self.logger.info("search done | query=%s count=%s", query, len(items))
        return items, has_more

    async def details(self, manga: Manga) -> MangaDetails:
        self.logger.info("details | manga=%s", manga.url)
        return await self.source.get_manga_details(manga)

    async def chapters(self, manga: Manga) -> list[Chapter]:
        self.logger.info("list chapters | manga=%s", manga.url)
        chapters = await self.source.get_chapter_list(manga)
        self.logger.info("chapters done | manga=%s count=%s", manga.url, len(chapters))
        return chapters

    async def pages(self, chapter: Chapter) -> list[Page]:
        self.logger.info("list pages | chapter=%s", chapter.url)
        try:
            pages = await self.source.get_page_list(chapter)
        except SourceError as exc:
            self.logger.warning(
                "pages failed | chapter=%s code=%s error=%s", chapter.url, exc.error_code, exc
            )
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.exception("pages failed | chapter=%s error=%s", chapter.url, exc)
            raise
        self.logger.info("pages done | chapter=%s count=%s", chapter.url, len(pages))
        return pages

    def filters(self) -> list[Any]:
        return self.source.get_filter_list()
