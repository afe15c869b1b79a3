import asyncio
import inspect
import json

import httpx
import pytest

from asurascans import (
    AsuraScansSource,
    PreferenceStore,
    SourceConfig,
    SourcePreferences,
    SourceState,
)


def pytest_pyfunc_call(pyfuncitem):
    """Run async tests marked with pytest.mark.asyncio without external plugins."""
    if "asyncio" not in pyfuncitem.keywords:
        return None
    if not inspect.iscoroutinefunction(pyfuncitem.obj):
        return None
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        funcargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
        }
        loop.run_until_complete(pyfuncitem.obj(**funcargs))
    finally:
        loop.close()
        asyncio.set_event_loop(None)
    return True


@pytest.fixture
def store(tmp_path):
    return PreferenceStore(tmp_path / "preferences.json")


@pytest.fixture
def preferences(store):
    return SourcePreferences(store)


@pytest.fixture
def make_source(preferences):
    """Source wired to an httpx.MockTransport handler, without throttling."""

    def factory(handler, state=None, **config):
        options = {"rate_limit_permits": 1000, "prefetch_delay_sec": 0.0}
        options.update(config)
        return AsuraScansSource(
            config=SourceConfig(**options),
            preferences=preferences,
            state=state or SourceState(),
            transport=httpx.MockTransport(handler),
        )

    return factory


def _push_script(text: str) -> str:
    return f"<script>self.__next_f.push([1,{json.dumps(text)}])</script>"


@pytest.fixture
def reader_html():
    """Reader page whose streamed payload carries the given page records."""

    def build(pages, *, extra_scripts=()):
        flight = "2:" + json.dumps(
            {"chapter": {"id": 7, "pages": pages}}, separators=(",", ":")
        )
        scripts = [
            "<script>window.dataLayer = [];</script>",
            _push_script('1:HL["/_next/static/css/app.css","style"]'),
            _push_script(flight),
            *extra_scripts,
        ]
        return "<html><head></head><body>" + "".join(scripts) + "</body></html>"

    return build
