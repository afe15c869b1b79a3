from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
import threading
from typing import Any, Callable

PREF_SLUG_MAP = "pref_slug_map_2"
PREF_DYNAMIC_URL = "pref_dynamic_url"
PREF_HIDE_PREMIUM_CHAPTERS = "pref_hide_premium_chapters"
PREF_FORCE_HIGH_QUALITY = "pref_force_high_quality"
PREF_AGGRESSIVE_CACHING = "pref_aggressive_caching"
PREF_PREFETCH_IMAGES = "pref_prefetch_images"

LEGACY_KEYS = (
    "pref_url_map",
    "pref_base_url_host",
    "pref_permanent_manga_url_2_en",
    "pref_slug_map",
)

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Key-value blob persisted as one JSON object.

    With no path the values only live in memory. Every write rewrites the
    file through a temporary sibling so readers never see a torn file.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._values: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("preferences unreadable | path=%s error=%s", self.path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(
            json.dumps(self._values, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        os.replace(tmp_path, self.path)

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._values

    def get_bool(self, key: str, default: bool) -> bool:
        with self._lock:
            value = self._values.get(key, default)
        return value if isinstance(value, bool) else default

    def get_str(self, key: str, default: str) -> str:
        with self._lock:
            value = self._values.get(key, default)
        return value if isinstance(value, str) else default

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value
            self._flush()

    def remove(self, key: str) -> None:
        with self._lock:
            if key in self._values:
                del self._values[key]
                self._flush()

    def update(self, key: str, func: Callable[[Any], Any], default: Any = None) -> Any:
        """Read-modify-write a single key under the store lock."""
        with self._lock:
            value = func(self._values.get(key, default))
            self._values[key] = value
            self._flush()
            return value

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._values)


@dataclass(frozen=True)
class PreferenceOption:
    key: str
    title: str
    summary: str
    value: bool


def _decode_slug_map(raw: Any) -> dict[str, str]:
    if not isinstance(raw, str):
        return {}
    try:
        payload = json.loads(raw)
    except ValueError:
        return {}
    if not isinstance(payload, dict):
        return {}
    return {str(key): str(value) for key, value in payload.items()}


class SourcePreferences:
    """Named options of the source, read live from a PreferenceStore."""

    def __init__(self, store: PreferenceStore | None = None) -> None:
        self.store = store or PreferenceStore()
        self._remove_legacy_keys()

    def _remove_legacy_keys(self) -> None:
        for key in LEGACY_KEYS:
            if self.store.contains(key):
                self.store.remove(key)
                logger.info("removed legacy preference | key=%s", key)

    @property
    def dynamic_url(self) -> bool:
        return self.store.get_bool(PREF_DYNAMIC_URL, True)

    @property
    def hide_premium_chapters(self) -> bool:
        return self.store.get_bool(PREF_HIDE_PREMIUM_CHAPTERS, True)

    @property
    def force_high_quality(self) -> bool:
        return self.store.get_bool(PREF_FORCE_HIGH_QUALITY, False)

    @property
    def aggressive_caching(self) -> bool:
        return self.store.get_bool(PREF_AGGRESSIVE_CACHING, True)

    @property
    def prefetch_images(self) -> bool:
        return self.store.get_bool(PREF_PREFETCH_IMAGES, True)

    @property
    def slug_map(self) -> dict[str, str]:
        return _decode_slug_map(self.store.get_str(PREF_SLUG_MAP, "{}"))

    def put_slug(self, key: str, value: str) -> None:
        def upsert(raw: Any) -> str:
            mapping = _decode_slug_map(raw)
            mapping[key] = value
            return json.dumps(mapping, ensure_ascii=False)

        self.store.update(PREF_SLUG_MAP, upsert, "{}")

    def remove_slug(self, key: str) -> None:
        def drop(raw: Any) -> str:
            mapping = _decode_slug_map(raw)
            mapping.pop(key, None)
            return json.dumps(mapping, ensure_ascii=False)

        self.store.update(PREF_SLUG_MAP, drop, "{}")

    def set(self, key: str, value: bool) -> None:
        if key not in BOOLEAN_KEYS:
            raise KeyError(key)
        self.store.put(key, bool(value))

    def describe(self, high_quality_failed: bool = False) -> list[PreferenceOption]:
        """Options in display order, the way a settings screen lists them."""
        high_quality_summary = (
            "Attempt to use high quality chapter images.\n"
            "Will increase bandwidth by ~50%."
        )
        if high_quality_failed:
            high_quality_summary += (
                "\n*DISABLED* because of missing high quality images."
            )
        return [
            PreferenceOption(
                PREF_DYNAMIC_URL,
                "Automatically update dynamic URLs",
                "Automatically update random numbers in manga URLs.\n"
                "Helps mitigating HTTP 404 errors during update and "
                '"in library" marks when browsing.',
                self.dynamic_url,
            ),
            PreferenceOption(
                PREF_HIDE_PREMIUM_CHAPTERS,
                "Hide premium chapters",
                "Hides the chapters that require a subscription to view",
                self.hide_premium_chapters,
            ),
            PreferenceOption(
                PREF_FORCE_HIGH_QUALITY,
                "Force high quality chapter images",
                high_quality_summary,
                self.force_high_quality,
            ),
            PreferenceOption(
                PREF_AGGRESSIVE_CACHING,
                "Use aggressive image caching",
                "Improves loading speed for previously viewed images "
                "but may use more disk space",
                self.aggressive_caching,
            ),
            PreferenceOption(
                PREF_PREFETCH_IMAGES,
                "Prefetch images",
                "Prefetches the first few images of each chapter for faster "
                "initial loading.\nDisable if you experience crashes or "
                "connectivity issues.",
                self.prefetch_images,
            ),
        ]


BOOLEAN_KEYS = (
    PREF_DYNAMIC_URL,
    PREF_HIDE_PREMIUM_CHAPTERS,
    PREF_FORCE_HIGH_QUALITY,
    PREF_AGGRESSIVE_CACHING,
    PREF_PREFETCH_IMAGES,
)
