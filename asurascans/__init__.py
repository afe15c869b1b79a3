from core.logging_config import setup_module_logger

from .base import BaseSource, Chapter, Manga, MangaDetails, MangaStatus, Page, SourceConfig
from .engine import SourceEngine
from .implementations import AsuraScansSource
from .preferences import PreferenceStore, SourcePreferences
from .state import SourceState

setup_module_logger("asurascans", "asurascans.log")

__all__ = [
    "AsuraScansSource",
    "BaseSource",
    "Chapter",
    "Manga",
    "MangaDetails",
    "MangaStatus",
    "Page",
    "PreferenceStore",
    "SourceConfig",
    "SourceEngine",
    "SourcePreferences",
    "SourceState",
]
