"""Stable slug to live URL fragment mapping.

The site appends a volatile numeric suffix to every series slug and changes
it from time to time. Saved references keep only the stable part; requests
swap in the last suffix seen for that slug.
"""

from __future__ import annotations

import logging

from core.errors import StaleChapterUrlError

from .preferences import SourcePreferences
from .url_utils import (
    SERIES_PREFIX,
    canonical_slug,
    is_legacy_chapter_path,
    legacy_manga_slug,
    replace_series_segment,
    series_segment,
    url_without_domain,
)

logger = logging.getLogger(__name__)


class SlugRegistry:
    def __init__(self, preferences: SourcePreferences) -> None:
        self.preferences = preferences

    @property
    def enabled(self) -> bool:
        return self.preferences.dynamic_url

    def lookup(self, segment: str) -> str:
        """Live fragment for a path segment, exact key before the stripped one."""
        slug_map = self.preferences.slug_map
        if segment in slug_map:
            return slug_map[segment]
        identifier = canonical_slug(segment)
        return slug_map.get(identifier) or f"{identifier}-"

    def resolve(self, path: str) -> str:
        """Request path for a saved manga or chapter path."""
        if not self.enabled:
            return path
        legacy_slug = legacy_manga_slug(path)
        if legacy_slug is not None:
            return f"{SERIES_PREFIX}{self.lookup(legacy_slug)}"
        segment = series_segment(path)
        if not segment:
            return path
        return replace_series_segment(path, self.lookup(segment))

    def resolve_chapter(self, path: str) -> str:
        if self.enabled and is_legacy_chapter_path(path):
            raise StaleChapterUrlError()
        return self.resolve(path)

    def record(self, observed: str) -> str | None:
        """Remember the live fragment of an observed path or URL."""
        if not self.enabled:
            return None
        segment = series_segment(url_without_domain(observed))
        identifier = canonical_slug(segment)
        if not identifier:
            return None
        if self.preferences.slug_map.get(identifier) != segment:
            self.preferences.put_slug(identifier, segment)
            logger.debug("slug recorded | slug=%s fragment=%s", identifier, segment)
        return identifier

    def canonicalize(self, path: str) -> str:
        """Record path, then return it with the volatile suffix stripped."""
        identifier = self.record(path)
        if identifier is None:
            return path
        return replace_series_segment(path, identifier)
