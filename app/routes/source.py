"""
Source API Routes.

Expose the catalog, details, chapter and page operations of the source.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from asurascans import AsuraScansSource, Chapter, Manga, Page
from asurascans.filters import (
    FILTERS_PLACEHOLDER,
    GenreFilter,
    OrderFilter,
    StatusFilter,
    TypeFilter,
    first_instance,
)
from core.errors import (
    ChapterPagesNotFoundError,
    CloudflareChallengeError,
    PagePayloadError,
    SourceError,
    SourceHttpError,
    StaleChapterUrlError,
)

from ..deps import get_source


router = APIRouter(prefix="/source", tags=["source"])


class MangaPayload(BaseModel):
    url: str
    title: str = ""
    thumbnail_url: Optional[str] = None


class ChapterPayload(BaseModel):
    url: str
    name: str = ""
    date_upload: int = 0


class PagePayload(BaseModel):
    index: int
    image_url: str


class MangaDetailsPayload(BaseModel):
    title: str
    thumbnail_url: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    artist: Optional[str] = None
    genre: list[str] = Field(default_factory=list)
    status: int


class CatalogResponse(BaseModel):
    page: int
    has_more: bool
    items: list[MangaPayload]


class SearchRequest(BaseModel):
    query: str = ""
    page: int = Field(default=1, ge=1)
    genres: list[int] = Field(default_factory=list)
    status: Optional[str] = None
    type: Optional[str] = None
    order: Optional[str] = None


class MangaRequest(BaseModel):
    manga: MangaPayload


class ChapterRequest(BaseModel):
    chapter: ChapterPayload


class FilterOptionPayload(BaseModel):
    id: str
    name: str


class FiltersResponse(BaseModel):
    ready: bool
    message: Optional[str] = None
    genres: list[FilterOptionPayload] = Field(default_factory=list)
    statuses: list[FilterOptionPayload] = Field(default_factory=list)
    types: list[FilterOptionPayload] = Field(default_factory=list)
    orders: list[FilterOptionPayload] = Field(default_factory=list)


_ERROR_STATUS = {
    StaleChapterUrlError: 409,
    ChapterPagesNotFoundError: 502,
    PagePayloadError: 502,
    CloudflareChallengeError: 403,
}


def _http_error(exc: SourceError) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(exc), 502)
    if isinstance(exc, SourceHttpError) and exc.status_code == 404:
        status_code = 404
    return HTTPException(
        status_code=status_code,
        detail={"code": f"SOURCE_{exc.error_code.upper()}", "message": str(exc)},
    )


def _is_allowed_image_host(url: str, base_url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    site = (urlparse(base_url).hostname or "").lower()
    if not host or not site:
        return False
    return host == site or host.endswith(f".{site}")


def _manga_payload(manga: Manga) -> MangaPayload:
    return MangaPayload(url=manga.url, title=manga.title, thumbnail_url=manga.thumbnail_url)


def _catalog_response(page: int, result: tuple[list[Manga], bool]) -> CatalogResponse:
    items, has_more = result
    return CatalogResponse(
        page=page, has_more=has_more, items=[_manga_payload(item) for item in items]
    )


@router.get("/popular", response_model=CatalogResponse)
async def popular(
    page: int = Query(default=1, ge=1),
    source: AsuraScansSource = Depends(get_source),
):
    try:
        return _catalog_response(page, await source.get_popular_manga(page))
    except SourceError as exc:
        raise _http_error(exc) from exc


@router.get("/latest", response_model=CatalogResponse)
async def latest(
    page: int = Query(default=1, ge=1),
    source: AsuraScansSource = Depends(get_source),
):
    try:
        return _catalog_response(page, await source.get_latest_updates(page))
    except SourceError as exc:
        raise _http_error(exc) from exc


@router.post("/search", response_model=CatalogResponse)
async def search(request: SearchRequest, source: AsuraScansSource = Depends(get_source)):
    filters = source.get_filter_list()
    genre_filter = first_instance(filters, GenreFilter)
    if genre_filter is not None:
        for genre in genre_filter.genres:
            genre.state = genre.id in request.genres
    try:
        for kind, value in (
            (StatusFilter, request.status),
            (TypeFilter, request.type),
            (OrderFilter, request.order),
        ):
            selected = first_instance(filters, kind)
            if value is not None and selected is not None:
                selected.select(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": "SOURCE_FILTER_INVALID", "message": str(exc)},
        ) from exc
    try:
        result = await source.search_manga(request.page, request.query, filters)
    except SourceError as exc:
        raise _http_error(exc) from exc
    return _catalog_response(request.page, result)


@router.post("/manga", response_model=MangaDetailsPayload)
async def manga_details(request: MangaRequest, source: AsuraScansSource = Depends(get_source)):
    manga = Manga(**request.manga.model_dump())
    try:
        details = await source.get_manga_details(manga)
    except SourceError as exc:
        raise _http_error(exc) from exc
    return MangaDetailsPayload(
        title=details.title,
        thumbnail_url=details.thumbnail_url,
        description=details.description,
        author=details.author,
        artist=details.artist,
        genre=details.genre,
        status=int(details.status),
    )


@router.post("/chapters", response_model=list[ChapterPayload])
async def chapters(request: MangaRequest, source: AsuraScansSource = Depends(get_source)):
    manga = Manga(**request.manga.model_dump())
    try:
        chapter_list = await source.get_chapter_list(manga)
    except SourceError as exc:
        raise _http_error(exc) from exc
    return [
        ChapterPayload(url=item.url, name=item.name, date_upload=item.date_upload)
        for item in chapter_list
    ]


@router.post("/pages", response_model=list[PagePayload])
async def pages(request: ChapterRequest, source: AsuraScansSource = Depends(get_source)):
    chapter = Chapter(**request.chapter.model_dump())
    try:
        page_list = await source.get_page_list(chapter)
    except SourceError as exc:
        raise _http_error(exc) from exc
    return [PagePayload(index=page.index, image_url=page.image_url) for page in page_list]


@router.get("/filters", response_model=FiltersResponse)
async def filters(source: AsuraScansSource = Depends(get_source)):
    filter_list = source.get_filter_list()
    order_filter = first_instance(filter_list, OrderFilter)
    orders = [
        FilterOptionPayload(id=value, name=label)
        for label, value in (order_filter.options if order_filter else [])
    ]
    genre_filter = first_instance(filter_list, GenreFilter)
    if genre_filter is None:
        return FiltersResponse(ready=False, message=FILTERS_PLACEHOLDER, orders=orders)

    status_filter = first_instance(filter_list, StatusFilter)
    type_filter = first_instance(filter_list, TypeFilter)
    return FiltersResponse(
        ready=True,
        genres=[
            FilterOptionPayload(id=str(genre.id), name=genre.name)
            for genre in genre_filter.genres
        ],
        statuses=[
            FilterOptionPayload(id=value, name=label)
            for label, value in (status_filter.options if status_filter else [])
        ],
        types=[
            FilterOptionPayload(id=value, name=label)
            for label, value in (type_filter.options if type_filter else [])
        ],
        orders=orders,
    )


@router.get("/image")
async def image(
    url: str = Query(..., min_length=1),
    index: int = Query(default=0, ge=0),
    source: AsuraScansSource = Depends(get_source),
):
    if not _is_allowed_image_host(url, source.config.base_url):
        raise HTTPException(
            status_code=400,
            detail={"code": "SOURCE_IMAGE_HOST_INVALID", "message": "Unsupported image host"},
        )
    try:
        response = await source.fetch_image(Page(index=index, image_url=url))
    except SourceError as exc:
        raise _http_error(exc) from exc
    headers = {}
    if "Cache-Control" in response.headers:
        headers["Cache-Control"] = response.headers["Cache-Control"]
    return Response(
        content=response.content,
        media_type=response.headers.get("Content-Type", "application/octet-stream"),
        headers=headers,
    )
