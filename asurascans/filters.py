from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any, Sequence

import httpx
from pydantic import BaseModel

from .state import FilterFetchState, FilterOption, FilterOptions, SourceState

logger = logging.getLogger(__name__)

FILTERS_PLACEHOLDER = "Press 'Reset' to attempt to fetch the filters"

ORDER_OPTIONS = (
    ("Rating", "rating"),
    ("Update", "update"),
    ("Latest", "latest"),
    ("Z-A", "desc"),
    ("A-Z", "asc"),
)


@dataclass
class Header:
    name: str


@dataclass
class Genre:
    name: str
    id: int
    state: bool = False


@dataclass
class GenreFilter:
    name: str
    genres: list[Genre] = field(default_factory=list)

    def to_uri_part(self) -> str:
        return ",".join(str(genre.id) for genre in self.genres if genre.state)


@dataclass
class SelectFilter:
    name: str
    options: list[tuple[str, str]] = field(default_factory=list)
    state: int = 0

    def to_uri_part(self) -> str:
        if not 0 <= self.state < len(self.options):
            return ""
        return self.options[self.state][1]

    def select(self, value: str) -> None:
        """Move the selection to the option whose value or label matches."""
        for index, (label, option_value) in enumerate(self.options):
            if value in (option_value, label):
                self.state = index
                return
        raise ValueError(f"unknown option for {self.name}: {value}")


class StatusFilter(SelectFilter):
    pass


class TypeFilter(SelectFilter):
    pass


class OrderFilter(SelectFilter):
    pass


def first_instance(filters: Sequence[Any], kind: type) -> Any | None:
    return next((item for item in filters if isinstance(item, kind)), None)


class FilterDto(BaseModel):
    id: int
    name: str


class FiltersDto(BaseModel):
    genres: list[FilterDto] = []
    statuses: list[FilterDto] = []
    types: list[FilterDto] = []

    def to_options(self) -> FilterOptions:
        return FilterOptions(
            # id <= 0 is the site's "any" entry
            genres=tuple(
                FilterOption(item.id, item.name.strip())
                for item in self.genres
                if item.id > 0
            ),
            statuses=tuple(FilterOption(item.id, item.name.strip()) for item in self.statuses),
            types=tuple(FilterOption(item.id, item.name.strip()) for item in self.types),
        )


class FilterCatalog:
    """Lazily loads the genre/status/type options used by the search filters.

    Loading runs as a detached task on the running event loop; at most one
    load is in flight and the total number of attempts is capped.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        state: SourceState,
        max_attempts: int = 3,
    ) -> None:
        self.client = client
        self.url = url
        self.state = state
        self.max_attempts = max_attempts
        self._tasks: set[asyncio.Task] = set()

    def ensure_fetched(self) -> asyncio.Task | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("filter fetch skipped | reason=no running loop")
            return None
        if not self.state.begin_filter_fetch(self.max_attempts):
            return None
        logger.info("filter fetch start | attempt=%s", self.state.filter_attempts)
        task = loop.create_task(self._fetch())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _fetch(self) -> None:
        try:
            response = await self.client.get(self.url)
            response.raise_for_status()
            options = FiltersDto.model_validate_json(response.content).to_options()
        except asyncio.CancelledError:
            self.state.fail_filter_fetch()
            raise
        except Exception as exc:  # noqa: BLE001
            self.state.fail_filter_fetch()
            logger.warning(
                "filter fetch failed | attempt=%s error=%s",
                self.state.filter_attempts,
                exc,
            )
            return
        self.state.complete_filter_fetch(options)
        logger.info(
            "filter fetch done | genres=%s statuses=%s types=%s",
            len(options.genres),
            len(options.statuses),
            len(options.types),
        )

    def build_filters(self) -> list[Any]:
        state, options = self.state.filters_snapshot()
        filters: list[Any] = []
        if state is FilterFetchState.FETCHED:
            filters += [
                GenreFilter("Genres", [Genre(item.name, item.id) for item in options.genres]),
                StatusFilter(
                    "Status", [(item.name, str(item.id)) for item in options.statuses]
                ),
                TypeFilter("Types", [(item.name, str(item.id)) for item in options.types]),
            ]
        else:
            filters.append(Header(FILTERS_PLACEHOLDER))
        filters.append(OrderFilter("Order by", list(ORDER_OPTIONS)))
        return filters
