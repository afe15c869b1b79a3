import pytest

from asurascans import PreferenceStore, SourcePreferences
from asurascans.preferences import PREF_DYNAMIC_URL
from asurascans.slug_registry import SlugRegistry
from core.errors import StaleChapterUrlError


@pytest.fixture
def registry(preferences):
    return SlugRegistry(preferences)


def test_resolve_guesses_placeholder_when_unknown(registry):
    assert registry.resolve("/series/123-my-manga-45/chapter-1") == "/series/123-my-manga-/chapter-1"


def test_recorded_fragment_wins_over_request_suffix(registry):
    registry.record("/series/123-my-manga-45")

    resolved = registry.resolve("/series/123-my-manga-99/chapter-1")

    assert resolved == "/series/123-my-manga-45/chapter-1"


def test_record_accepts_absolute_urls_and_last_write_wins(registry, preferences):
    registry.record("https://asuracomic.net/series/solo-leveling-111/chapter/3")
    registry.record("https://asuracomic.net/series/solo-leveling-222")

    assert preferences.slug_map == {"solo-leveling": "solo-leveling-222"}
    assert registry.resolve("/series/solo-leveling") == "/series/solo-leveling-222"


def test_record_ignores_paths_without_series_segment(registry, preferences):
    assert registry.record("https://asuracomic.net/") is None
    assert preferences.slug_map == {}


def test_legacy_manga_path_resolves_through_bare_slug(registry):
    registry.record("/series/my-manga-77")

    assert registry.resolve("/manga/123-my-manga/") == "/series/my-manga-77"
    assert registry.resolve("/manga/other-manga") == "/series/other-manga-"


def test_canonicalize_strips_suffix_and_records(registry, preferences):
    path = registry.canonicalize("/series/omniscient-reader-5512/chapter/20")

    assert path == "/series/omniscient-reader/chapter/20"
    assert preferences.slug_map["omniscient-reader"] == "omniscient-reader-5512"


@pytest.mark.parametrize(
    "path",
    [
        "/solo-leveling-chapter-1/",
        "/123-solo-leveling-chapter-12",
        "/solo-leveling-chapter-12-5/",
    ],
)
def test_legacy_chapter_paths_are_stale(registry, path):
    with pytest.raises(StaleChapterUrlError, match="refresh the chapter list"):
        registry.resolve_chapter(path)


def test_disabled_registry_passes_paths_through(registry, preferences):
    preferences.set(PREF_DYNAMIC_URL, False)

    assert registry.resolve("/series/my-manga-45/chapter-1") == "/series/my-manga-45/chapter-1"
    assert registry.resolve_chapter("/solo-leveling-chapter-1/") == "/solo-leveling-chapter-1/"
    assert registry.canonicalize("/series/my-manga-45") == "/series/my-manga-45"
    assert preferences.slug_map == {}


def test_mapping_survives_restart(tmp_path):
    path = tmp_path / "prefs.json"
    SlugRegistry(SourcePreferences(PreferenceStore(path))).record("/series/nano-machine-9")

    reloaded = SlugRegistry(SourcePreferences(PreferenceStore(path)))

    assert reloaded.resolve("/series/nano-machine/chapter/1") == "/series/nano-machine-9/chapter/1"


def test_canonical_slug_ending_in_digits_resolves_to_its_own_fragment(registry):
    registry.record("/series/my-manga-77")
    path = registry.canonicalize("/series/my-manga-2-45")

    assert path == "/series/my-manga-2"
    assert registry.resolve(path + "/chapter/1") == "/series/my-manga-2-45/chapter/1"
    assert registry.resolve("/series/my-manga") == "/series/my-manga-77"
