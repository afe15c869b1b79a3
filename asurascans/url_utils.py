from __future__ import annotations

import re
from urllib.parse import urlparse, urlunparse

SERIES_PREFIX = "/series/"

# trailing "-<digits>" the site appends to a slug; a bare "-" is the
# placeholder used before the real suffix is known
SLUG_DISAMBIGUATOR_REGEX = re.compile(r"-\d*$")
OLD_FORMAT_MANGA_REGEX = re.compile(r"^/manga/(\d+-)?([^/]+)/?$")
OLD_FORMAT_CHAPTER_REGEX = re.compile(r"^/(\d+-)?[^/]*-chapter-\d+(-\d+)*/?$")
CLEAN_DATE_REGEX = re.compile(r"(\d+)(st|nd|rd|th)")


def normalize_base_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}"
    return value.rstrip("/")


def url_without_domain(url: str) -> str:
    """Drop scheme and host, keep path, query and fragment."""
    parsed = urlparse(url)
    path = parsed.path or "/"
    return urlunparse(("", "", path, parsed.params, parsed.query, parsed.fragment))


def series_segment(path: str) -> str:
    """Path segment right after /series/, or "" when there is none."""
    if SERIES_PREFIX not in path:
        return ""
    return path.split(SERIES_PREFIX, 1)[1].split("/", 1)[0].split("?", 1)[0]


def replace_series_segment(path: str, segment: str) -> str:
    current = series_segment(path)
    if not current:
        return path
    head, tail = path.split(SERIES_PREFIX, 1)
    return f"{head}{SERIES_PREFIX}{segment}{tail[len(current):]}"


def canonical_slug(segment: str) -> str:
    return SLUG_DISAMBIGUATOR_REGEX.sub("", segment)


def legacy_manga_slug(path: str) -> str | None:
    match = OLD_FORMAT_MANGA_REGEX.match(path)
    return match.group(2) if match else None


def is_legacy_chapter_path(path: str) -> bool:
    return OLD_FORMAT_CHAPTER_REGEX.search(path) is not None


def clean_date_text(value: str) -> str:
    return CLEAN_DATE_REGEX.sub(r"\1", value)
