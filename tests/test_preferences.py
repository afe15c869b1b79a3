import json

import pytest

from asurascans import PreferenceStore, SourcePreferences
from asurascans.preferences import (
    LEGACY_KEYS,
    PREF_FORCE_HIGH_QUALITY,
    PREF_SLUG_MAP,
)


def test_defaults(preferences):
    assert preferences.dynamic_url is True
    assert preferences.hide_premium_chapters is True
    assert preferences.force_high_quality is False
    assert preferences.aggressive_caching is True
    assert preferences.prefetch_images is True
    assert preferences.slug_map == {}


def test_legacy_keys_removed_on_startup(tmp_path):
    path = tmp_path / "prefs.json"
    legacy = {key: "{}" for key in LEGACY_KEYS}
    legacy[PREF_SLUG_MAP] = json.dumps({"a": "a-1"})
    path.write_text(json.dumps(legacy), encoding="utf-8")

    preferences = SourcePreferences(PreferenceStore(path))

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert not any(key in stored for key in LEGACY_KEYS)
    assert preferences.slug_map == {"a": "a-1"}


def test_malformed_slug_map_reads_as_empty(store):
    store.put(PREF_SLUG_MAP, "not json")
    preferences = SourcePreferences(store)

    assert preferences.slug_map == {}
    preferences.put_slug("x", "x-1")
    assert preferences.slug_map == {"x": "x-1"}


def test_unreadable_file_starts_empty(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{broken", encoding="utf-8")

    assert PreferenceStore(path).snapshot() == {}


def test_set_rejects_unknown_keys(preferences):
    with pytest.raises(KeyError):
        preferences.set("pref_unknown", True)


def test_remove_slug(preferences):
    preferences.put_slug("a", "a-1")
    preferences.put_slug("b", "b-2")

    preferences.remove_slug("a")

    assert preferences.slug_map == {"b": "b-2"}


def test_describe_flags_disabled_high_quality(preferences):
    preferences.set(PREF_FORCE_HIGH_QUALITY, True)

    options = {option.key: option for option in preferences.describe(high_quality_failed=True)}

    assert options[PREF_FORCE_HIGH_QUALITY].value is True
    assert "*DISABLED*" in options[PREF_FORCE_HIGH_QUALITY].summary
    assert len(options) == 5
