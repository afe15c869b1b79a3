"""
Asura Scans source CLI.

Usage:
    python -m scripts.cli popular --page 2
    python -m scripts.cli search "solo leveling" --genre 3 --order update
    python -m scripts.cli chapters /series/solo-leveling
    python -m scripts.cli pages /series/solo-leveling/chapter/1
"""

import asyncio
import sys
from pathlib import Path
from typing import Sequence

import click
from rich.console import Console
from rich.table import Table

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from asurascans import (
    AsuraScansSource,
    Chapter,
    Manga,
    PreferenceStore,
    SourceConfig,
    SourceEngine,
    SourcePreferences,
)
from asurascans.filters import GenreFilter, OrderFilter, StatusFilter, TypeFilter, first_instance
from asurascans.preferences import BOOLEAN_KEYS
from core.errors import SourceError


console = Console()

DEFAULT_PREFERENCES = "data/preferences.json"


def build_source(prefs_path: str, base_url: str | None = None) -> AsuraScansSource:
    config = SourceConfig(base_url=base_url) if base_url else SourceConfig()
    preferences = SourcePreferences(PreferenceStore(prefs_path))
    return AsuraScansSource(config=config, preferences=preferences)


def _run(ctx: click.Context, action) -> None:
    async def run():
        async with build_source(ctx.obj["prefs"], ctx.obj["base_url"]) as source:
            return await action(SourceEngine(source))

    try:
        asyncio.run(run())
    except SourceError as exc:
        console.print(f"[red]✗ {exc}[/red] [dim]({exc.error_code})[/dim]")
        sys.exit(1)


def _print_catalog(items: Sequence[Manga], has_more: bool) -> None:
    table = Table(title="Catalog")
    table.add_column("#", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("URL", style="green")
    for idx, item in enumerate(items, start=1):
        table.add_row(str(idx), item.title, item.url)
    console.print(table)
    if has_more:
        console.print("[dim]More results on the next page.[/dim]")


@click.group()
@click.version_option(version="0.1.0")
@click.option("--prefs", default=DEFAULT_PREFERENCES, show_default=True, help="Preferences file")
@click.option("--base-url", default=None, help="Override the site address")
@click.pass_context
def cli(ctx: click.Context, prefs: str, base_url: str | None):
    """Asura Scans source CLI - browse the catalog and resolve chapter pages."""
    ctx.ensure_object(dict)
    ctx.obj["prefs"] = prefs
    ctx.obj["base_url"] = base_url


@cli.command()
@click.option("--page", "-p", default=1, help="Catalog page")
@click.pass_context
def popular(ctx: click.Context, page: int):
    """List the catalog ordered by rating."""

    async def action(engine: SourceEngine):
        _print_catalog(*await engine.popular(page))

    _run(ctx, action)


@cli.command()
@click.option("--page", "-p", default=1, help="Catalog page")
@click.pass_context
def latest(ctx: click.Context, page: int):
    """List the most recently updated series."""

    async def action(engine: SourceEngine):
        _print_catalog(*await engine.latest(page))

    _run(ctx, action)


@cli.command()
@click.argument("query", default="")
@click.option("--page", "-p", default=1, help="Catalog page")
@click.option("--genre", "-g", "genres", multiple=True, type=int, help="Genre id, repeatable")
@click.option("--status", default=None, help="Status id or name")
@click.option("--type", "type_", default=None, help="Type id or name")
@click.option("--order", default=None, help="rating, update, latest, desc or asc")
@click.pass_context
def search(ctx, query, page, genres, status, type_, order):
    """Search series by name and filters."""

    async def action(engine: SourceEngine):
        if genres or status or type_:
            task = engine.source.filter_catalog.ensure_fetched()
            if task is not None:
                await task
        filters = engine.filters()
        genre_filter = first_instance(filters, GenreFilter)
        if genre_filter is not None:
            for genre in genre_filter.genres:
                genre.state = genre.id in genres
        for kind, value in ((StatusFilter, status), (TypeFilter, type_), (OrderFilter, order)):
            selected = first_instance(filters, kind)
            if value and selected is not None:
                try:
                    selected.select(value)
                except ValueError as exc:
                    raise click.BadParameter(str(exc)) from exc
        _print_catalog(*await engine.search(query, page, filters))

    _run(ctx, action)


@cli.command()
@click.argument("url")
@click.pass_context
def details(ctx: click.Context, url: str):
    """Show the details of a series path such as /series/<slug>."""

    async def action(engine: SourceEngine):
        info = await engine.details(Manga(url=url, title=""))
        console.print(f"[bold]{info.title}[/bold]")
        console.print(f"  Status: {info.status.name.lower()}")
        console.print(f"  Author: {info.author or '-'}")
        console.print(f"  Artist: {info.artist or '-'}")
        console.print(f"  Genres: {', '.join(info.genre) or '-'}")
        if info.description:
            console.print(f"\n{info.description}")

    _run(ctx, action)


@cli.command()
@click.argument("url")
@click.pass_context
def chapters(ctx: click.Context, url: str):
    """List the chapters of a series."""

    async def action(engine: SourceEngine):
        table = Table(title="Chapters")
        table.add_column("Name", style="cyan")
        table.add_column("URL", style="green")
        for chapter in await engine.chapters(Manga(url=url, title="")):
            table.add_row(chapter.name, chapter.url)
        console.print(table)

    _run(ctx, action)


@cli.command()
@click.argument("url")
@click.pass_context
def pages(ctx: click.Context, url: str):
    """Resolve the page images of a chapter."""

    async def action(engine: SourceEngine):
        page_list = await engine.pages(Chapter(url=url, name=""))
        for page in page_list:
            console.print(f"  {page.index:>3}  {page.image_url}")
        console.print(f"[green]✓ {len(page_list)} pages[/green]")

    _run(ctx, action)


@cli.command()
@click.pass_context
def filters(ctx: click.Context):
    """Fetch and show the search filter options."""

    async def action(engine: SourceEngine):
        task = engine.source.filter_catalog.ensure_fetched()
        if task is not None:
            await task
        for item in engine.filters():
            if isinstance(item, GenreFilter):
                console.print(f"[bold]{item.name}[/bold]")
                console.print("  " + ", ".join(f"{g.name} ({g.id})" for g in item.genres))
            elif hasattr(item, "options"):
                console.print(f"[bold]{item.name}[/bold]")
                console.print("  " + ", ".join(f"{label} ({value})" for label, value in item.options))
            else:
                console.print(f"[yellow]{item.name}[/yellow]")

    _run(ctx, action)


@cli.command()
@click.option("--set", "assignments", multiple=True, help="key=true|false, repeatable")
@click.pass_context
def prefs(ctx: click.Context, assignments: tuple[str, ...]):
    """Show or change the stored preferences."""
    preferences = SourcePreferences(PreferenceStore(ctx.obj["prefs"]))
    for assignment in assignments:
        key, _, raw = assignment.partition("=")
        if key not in BOOLEAN_KEYS:
            raise click.BadParameter(f"unknown preference: {key}")
        preferences.set(key, raw.strip().lower() in {"1", "true", "on", "yes"})

    table = Table(title="Preferences")
    table.add_column("Key", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Value", style="green")
    for option in preferences.describe():
        table.add_row(option.key, option.title, str(option.value))
    console.print(table)
    console.print(f"Remembered slugs: [cyan]{len(preferences.slug_map)}[/cyan]")


if __name__ == "__main__":
    cli()
