from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import threading


class FilterFetchState(str, Enum):
    NOT_FETCHED = "not_fetched"
    FETCHING = "fetching"
    FETCHED = "fetched"


@dataclass(frozen=True)
class FilterOption:
    id: int
    name: str


@dataclass(frozen=True)
class FilterOptions:
    genres: tuple[FilterOption, ...] = ()
    statuses: tuple[FilterOption, ...] = ()
    types: tuple[FilterOption, ...] = ()


class SourceState:
    """Process-wide mutable state shared by the source components.

    Writers hold the lock; readers get immutable snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._failed_high_quality = False
        self._filter_state = FilterFetchState.NOT_FETCHED
        self._filter_attempts = 0
        self._filter_options = FilterOptions()

    @property
    def failed_high_quality(self) -> bool:
        return self._failed_high_quality

    def mark_high_quality_failed(self) -> bool:
        """Set the fallback flag; True only for the call that flipped it."""
        with self._lock:
            if self._failed_high_quality:
                return False
            self._failed_high_quality = True
            return True

    @property
    def filter_state(self) -> FilterFetchState:
        return self._filter_state

    @property
    def filter_attempts(self) -> int:
        return self._filter_attempts

    def filters_snapshot(self) -> tuple[FilterFetchState, FilterOptions]:
        with self._lock:
            return self._filter_state, self._filter_options

    def begin_filter_fetch(self, max_attempts: int) -> bool:
        with self._lock:
            if self._filter_state is not FilterFetchState.NOT_FETCHED:
                return False
            if self._filter_attempts >= max_attempts:
                return False
            self._filter_state = FilterFetchState.FETCHING
            self._filter_attempts += 1
            return True

    def complete_filter_fetch(self, options: FilterOptions) -> None:
        with self._lock:
            self._filter_options = options
            self._filter_state = FilterFetchState.FETCHED

    def fail_filter_fetch(self) -> None:
        with self._lock:
            self._filter_state = FilterFetchState.NOT_FETCHED
