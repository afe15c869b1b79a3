import asyncio
from datetime import datetime

import httpx
import pytest

from asurascans import Chapter, Manga, MangaStatus
from asurascans.filters import Genre, GenreFilter, Header, OrderFilter, StatusFilter
from asurascans.preferences import PREF_HIDE_PREMIUM_CHAPTERS, PREF_PREFETCH_IMAGES
from core.errors import CloudflareChallengeError, SourceHttpError, StaleChapterUrlError

CATALOG_HTML = """
<html><body>
<div class="grid grid-cols-2 gap-3">
  <a href="series/solo-leveling-4567">
    <div class="flex"><img src="https://gg.asuracomic.net/storage/media/1/cover.webp"></div>
    <div class="block"><span class="block text-[13.3px]">Solo Leveling <span>9.9</span></span></div>
  </a>
  <a href="https://asuracomic.net/series/nano-machine-12">
    <div class="block"><span class="block">Nano Machine</span></div>
  </a>
  <a href="/series/broken-99"><div>no title</div></a>
</div>
<div class="flex items-center justify-center">
  <a class="flex bg-themecolor px-4" href="/series?page=2">Next</a>
</div>
</body></html>
"""

DETAILS_HTML = """
<html><body>
<img alt="poster" src="/images/poster.webp">
<span class="text-xl font-bold">Solo Leveling</span>
<span class="font-medium text-sm">A weak hunter <b>rises</b>.</span>
<div class="grid grid-cols-1">
  <div><h3>Author</h3><h3>Chugong</h3></div>
  <div><h3>Artist</h3><h3>DUBU</h3></div>
</div>
<div class="flex flex-row"><h3>Status</h3><h3>Completed</h3></div>
<div class="flex flex-row"><h3>Type</h3><h3>Manhwa</h3></div>
<div class="space-y-1 pt-4">
  <div class="flex gap-2">
    <button class="text-white">Action</button>
    <button class="text-white">Fantasy</button>
  </div>
</div>
</body></html>
"""

CHAPTERS_HTML = """
<html><body>
<div class="pl-4 pr-2 scrollbar-thumb-themecolor">
  <div class="group">
    <a href="/series/solo-leveling-4567/chapter/202">
      <h3>Chapter 202 <svg viewBox="0 0 1 1"></svg></h3>
      <h3>Public in 3 days</h3>
    </a>
  </div>
  <div class="group">
    <a href="/series/solo-leveling-4567/chapter/201">
      <h3>Chapter 201 <span>The End</span></h3>
      <h3>March 3rd 2024</h3>
    </a>
  </div>
  <div class="group">
    <a href="/series/solo-leveling-4567/chapter/200">
      <h3>Chapter 200</h3>
      <h3>not a date</h3>
    </a>
  </div>
</div>
</body></html>
"""


def _unused(request):
    raise AssertionError(f"unexpected request {request.url}")


def _image_url(number):
    return f"https://gg.asuracomic.net/storage/media/9/conversions/p{number}-optimized.webp"


class Site:
    """Routes requests by path and records every path requested."""

    def __init__(self, routes):
        self.routes = routes
        self.paths = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        return route


def test_catalog_urls(make_source):
    source = make_source(_unused)

    assert source.popular_manga_url(2) == (
        "https://asuracomic.net/series?genres=&status=-1&types=-1&order=rating&page=2"
    )
    assert source.latest_updates_url(1) == (
        "https://asuracomic.net/series?genres=&status=-1&types=-1&order=update&page=1"
    )


def test_search_url_from_filters(make_source):
    source = make_source(_unused)
    status = StatusFilter("Status", [("Ongoing", "1"), ("Completed", "3")])
    status.select("Completed")
    order = OrderFilter("Order by", [("Rating", "rating"), ("Update", "update")])
    order.select("update")
    filters = [
        GenreFilter("Genres", [Genre("Action", 3, True), Genre("Drama", 5), Genre("Fantasy", 8, True)]),
        status,
        order,
    ]

    params = httpx.URL(source.search_manga_url(2, "solo", filters)).params

    assert dict(params) == {
        "page": "2",
        "name": "solo",
        "genres": "3,8",
        "status": "3",
        "types": "-1",
        "order": "update",
    }


def test_blank_search_omits_name_and_uses_defaults(make_source):
    source = make_source(_unused)

    params = httpx.URL(source.search_manga_url(1, "  ", [Header("x")])).params

    assert "name" not in params
    assert params["genres"] == ""
    assert params["status"] == "-1"
    assert params["order"] == "rating"


def test_parse_catalog_canonicalizes_and_records(make_source, preferences):
    source = make_source(_unused)

    mangas, has_next = source.parse_manga_list(CATALOG_HTML)

    assert has_next is True
    assert [(manga.url, manga.title) for manga in mangas] == [
        ("/series/solo-leveling", "Solo Leveling"),
        ("/series/nano-machine", "Nano Machine"),
    ]
    assert mangas[0].thumbnail_url == "https://gg.asuracomic.net/storage/media/1/cover.webp"
    assert mangas[1].thumbnail_url is None
    assert preferences.slug_map == {
        "solo-leveling": "solo-leveling-4567",
        "nano-machine": "nano-machine-12",
    }


def test_parse_details(make_source):
    details = make_source(_unused).parse_manga_details(DETAILS_HTML)

    assert details.title == "Solo Leveling"
    assert details.thumbnail_url == "https://asuracomic.net/images/poster.webp"
    assert details.description == "A weak hunter rises."
    assert details.author == "Chugong"
    assert details.artist == "DUBU"
    assert details.genre == ["Manhwa", "Action", "Fantasy"]
    assert details.status is MangaStatus.COMPLETED


def test_parse_chapters_hides_premium(make_source):
    chapters = make_source(_unused).parse_chapter_list(CHAPTERS_HTML)

    assert [chapter.name for chapter in chapters] == ["Chapter 201 - The End", "Chapter 200"]
    assert chapters[0].url == "/series/solo-leveling/chapter/201"
    assert chapters[0].date_upload == int(datetime(2024, 3, 3).timestamp() * 1000)
    assert chapters[1].date_upload == 0


def test_parse_chapters_can_show_premium(make_source, preferences):
    preferences.set(PREF_HIDE_PREMIUM_CHAPTERS, False)

    chapters = make_source(_unused).parse_chapter_list(CHAPTERS_HTML)

    assert [chapter.name for chapter in chapters][0] == "Chapter 202"
    assert len(chapters) == 3


@pytest.mark.asyncio
async def test_details_follow_redirect_and_heal_slug(make_source, preferences):
    site = Site(
        {
            "/series/solo-leveling-": httpx.Response(
                301, headers={"Location": "https://asuracomic.net/series/solo-leveling-8910"}
            ),
            "/series/solo-leveling-8910": httpx.Response(200, text=DETAILS_HTML),
        }
    )
    source = make_source(site)

    details = await source.get_manga_details(Manga(url="/series/solo-leveling", title=""))

    assert details.title == "Solo Leveling"
    assert preferences.slug_map["solo-leveling"] == "solo-leveling-8910"
    assert source.chapter_list_url(Manga(url="/series/solo-leveling", title="")) == (
        "https://asuracomic.net/series/solo-leveling-8910"
    )


@pytest.mark.asyncio
async def test_chapter_list_uses_recorded_slug(make_source, preferences):
    preferences.put_slug("solo-leveling", "solo-leveling-4567")
    site = Site({"/series/solo-leveling-4567": httpx.Response(200, text=CHAPTERS_HTML)})

    chapters = await make_source(site).get_chapter_list(Manga(url="/series/solo-leveling", title=""))

    assert site.paths == ["/series/solo-leveling-4567"]
    assert len(chapters) == 2


@pytest.mark.asyncio
async def test_legacy_chapter_fails_before_any_request(make_source):
    site = Site({})
    source = make_source(site)

    with pytest.raises(StaleChapterUrlError):
        await source.get_page_list(Chapter(url="/solo-leveling-chapter-1/", name="Chapter 1"))

    assert site.paths == []


@pytest.mark.asyncio
async def test_page_list_prefetches_first_images(make_source, preferences, reader_html):
    preferences.put_slug("solo-leveling", "solo-leveling-4567")
    html = reader_html([{"order": n, "url": _image_url(n)} for n in (4, 2, 3, 1)])
    site = Site(
        {
            "/series/solo-leveling-4567/chapter/1": httpx.Response(200, text=html),
            "/storage/media/9/conversions/p1-optimized.webp": httpx.ConnectError("boom"),
            "/storage/media/9/conversions/p2-optimized.webp": httpx.Response(200, content=b"2"),
            "/storage/media/9/conversions/p3-optimized.webp": httpx.Response(200, content=b"3"),
        }
    )
    source = make_source(site)

    pages = await source.get_page_list(Chapter(url="/series/solo-leveling/chapter/1", name=""))
    await asyncio.gather(*source.prefetcher._tasks)

    assert [page.image_url for page in pages] == [f"{_image_url(n)}#pageListParse" for n in (1, 2, 3, 4)]
    assert site.paths == [
        "/series/solo-leveling-4567/chapter/1",
        "/storage/media/9/conversions/p1-optimized.webp",
        "/storage/media/9/conversions/p2-optimized.webp",
        "/storage/media/9/conversions/p3-optimized.webp",
    ]


@pytest.mark.asyncio
async def test_prefetch_can_be_disabled(make_source, preferences, reader_html):
    preferences.set(PREF_PREFETCH_IMAGES, False)
    html = reader_html([{"order": 1, "url": _image_url(1)}])
    site = Site({"/series/solo-leveling-/chapter/1": httpx.Response(200, text=html)})
    source = make_source(site)

    pages = await source.get_page_list(Chapter(url="/series/solo-leveling/chapter/1", name=""))
    await asyncio.sleep(0)

    assert len(pages) == 1
    assert not source.prefetcher._tasks
    assert site.paths == ["/series/solo-leveling-/chapter/1"]


@pytest.mark.asyncio
async def test_cloudflare_interstitial_is_reported(make_source):
    site = Site(
        {"/series": httpx.Response(403, text="<html><title>Just a moment...</title></html>")}
    )

    with pytest.raises(CloudflareChallengeError):
        await make_source(site).get_popular_manga(1)


@pytest.mark.asyncio
async def test_http_errors_are_reported(make_source):
    with pytest.raises(SourceHttpError) as excinfo:
        await make_source(Site({})).get_latest_updates(1)

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_filter_list_is_populated_after_background_fetch(make_source):
    site = Site(
        {
            "/api/series/filters": httpx.Response(
                200,
                json={"genres": [{"id": 3, "name": "Action"}], "statuses": [], "types": []},
            )
        }
    )
    source = make_source(site)

    first = source.get_filter_list()
    await asyncio.gather(*source.filter_catalog._tasks)
    second = source.get_filter_list()

    assert isinstance(first[0], Header)
    assert isinstance(second[0], GenreFilter)
    assert site.paths == ["/api/series/filters"]
