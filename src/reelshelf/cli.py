"""Command-line interface for ReelShelf."""

import asyncio
import inspect
import json
import sys
from pathlib import Path

import click

from reelshelf import __version__
from reelshelf.config import load_config
from reelshelf.core.database import StorageError
from reelshelf.core.library import LibraryService, open_library
from reelshelf.core.query import FilterOption, LibraryQuery, SortOrder
from reelshelf.core.store import StoreError
from reelshelf.metadata.barcode import InvalidBarcodeError
from reelshelf.metadata.errors import ProviderError
from reelshelf.models.collection import Collection
from reelshelf.models.settings import Preferences
from reelshelf.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (defaults to built-in defaults)",
)
@click.pass_context
def cli(ctx, config):
    """ReelShelf - Personal movie collection library."""
    try:
        cfg = load_config(config)
        ctx.ensure_object(dict)
        ctx.obj["config"] = cfg

        # Log to file only so log lines don't mix with command output
        setup_logging(cfg.logging, console=False)

    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


def _with_library(ctx, action, seed_defaults: bool = True):
    """Open the library, run ``action(service)`` and close it again.

    ``action`` may be sync or async. Provider, store, storage and barcode
    errors are printed and turn into exit code 1.
    """
    config = ctx.obj["config"]

    async def _run():
        service = open_library(config, seed_defaults=seed_defaults)
        try:
            result = action(service)
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            await service.close()

    try:
        return asyncio.run(_run())
    except ProviderError as e:
        logger.warning("Lookup failed", error=str(e), error_type=type(e).__name__)
        click.secho(f"✗ Lookup failed: {e}", fg="red", err=True)
    except (StoreError, InvalidBarcodeError, ValueError) as e:
        click.secho(f"✗ {e}", fg="red", err=True)
    except StorageError as e:
        click.secho(f"✗ Storage error: {e}", fg="red", err=True)
    sys.exit(1)


def _echo_record(record, prefix: str = ""):
    marker = "☆" if record.is_wanted else "●"
    click.echo(
        f"{prefix}{marker} {record.id[:8]}  {record.title} ({record.display_year})"
        f"  {record.display_genre}  {record.display_rating}"
    )


def _resolve_id(service: LibraryService, short_id: str) -> str:
    """Expand an id prefix as printed by ``list`` to the full id."""
    matches = [r.id for r in service.store.all_records() if r.id.startswith(short_id)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise ValueError(f"No movie with id {short_id}")
    raise ValueError(f"Ambiguous id {short_id} ({len(matches)} matches)")


def _resolve_collection(service: LibraryService, name_or_id: str) -> Collection:
    for collection in service.store.all_collections():
        if collection.id == name_or_id or collection.name.casefold() == name_or_id.casefold():
            return collection
    raise ValueError(f"No collection named {name_or_id}")


@cli.command()
@click.argument("query")
@click.option("--page", default=1, show_default=True, help="Result page")
@click.pass_context
def search(ctx, query, page):
    """Search TMDB for movies matching QUERY."""

    async def _search(service: LibraryService):
        return await service.search_remote(query, page=page)

    results = _with_library(ctx, _search)
    if not results:
        click.secho("⊘ No results", fg="yellow")
        return

    for movie in results:
        year = movie.release_year or "----"
        click.echo(f"{movie.id:>8}  {movie.title} ({year})  ★ {movie.vote_average:.1f}")


@cli.command()
@click.option("--page", default=1, show_default=True, help="Result page")
@click.pass_context
def popular(ctx, page):
    """List popular movies from TMDB."""

    async def _popular(service: LibraryService):
        return await service.popular(page=page)

    for movie in _with_library(ctx, _popular):
        year = movie.release_year or "----"
        click.echo(f"{movie.id:>8}  {movie.title} ({year})  ★ {movie.vote_average:.1f}")


@cli.command()
@click.argument("title", required=False)
@click.option("--imdb-id", "-i", default=None, help="Look up by IMDb id instead of title")
@click.option("--tmdb-id", "-t", type=int, default=None, help="Add a TMDB search result by id")
@click.option("--wanted", is_flag=True, help="Add to the wishlist instead of the collection")
@click.option("--no-poster", is_flag=True, help="Don't download the poster")
@click.pass_context
def add(ctx, title, imdb_id, tmdb_id, wanted, no_poster):
    """Look up a movie and add it to the library."""
    if not (title or imdb_id or tmdb_id):
        raise click.UsageError("Give a TITLE, --imdb-id or --tmdb-id")

    async def _add(service: LibraryService):
        token = service.begin_lookup()
        if tmdb_id is not None:
            record = await service.get_remote(tmdb_id, is_wanted=wanted)
        elif imdb_id:
            record = await service.lookup_imdb_id(imdb_id, is_wanted=wanted)
        else:
            record = await service.lookup_title(title, is_wanted=wanted)

        if not service.is_current(token):
            return None
        return await service.accept(record, fetch_poster=not no_poster)

    record = _with_library(ctx, _add)
    if record is not None:
        click.secho(f"✓ Added {record}", fg="green")
        click.echo(f"  id: {record.id}")


@cli.command()
@click.argument("code")
@click.option("--title", "title_hint", default=None, help="Title printed on the packaging")
@click.option("--wanted", is_flag=True, help="Add to the wishlist instead of the collection")
@click.pass_context
def scan(ctx, code, title_hint, wanted):
    """Add a movie from a scanned barcode CODE."""

    async def _scan(service: LibraryService):
        existing = service.store.find_by_barcode("".join(code.split()))
        record = await service.lookup_barcode(code, title_hint=title_hint, is_wanted=wanted)
        return existing, await service.accept(record)

    existing, record = _with_library(ctx, _scan)
    if existing is not None:
        click.secho(f"⊘ Barcode already in library as {existing}", fg="yellow")
    click.secho(f"✓ Added {record}", fg="green")
    click.echo(f"  id: {record.id}")


@cli.command(name="list")
@click.option("--search", "-s", default="", help="Match title, director, genre or actors")
@click.option(
    "--filter",
    "-f",
    "filter_option",
    type=click.Choice([f.value for f in FilterOption]),
    default=FilterOption.ALL.value,
    show_default=True,
)
@click.option(
    "--sort",
    type=click.Choice([s.value for s in SortOrder]),
    default=SortOrder.DATE_ADDED.value,
    show_default=True,
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def list_movies(ctx, search, filter_option, sort, as_json):
    """List movies in the library."""
    query = LibraryQuery(search=search, filter=filter_option, sort=sort)
    movies = _with_library(ctx, lambda service: service.browse(query))

    if as_json:
        click.echo(json.dumps([m.to_api_dict() for m in movies], indent=2))
        return

    if not movies:
        click.secho("⊘ No movies", fg="yellow")
        return

    for movie in movies:
        _echo_record(movie)
    click.echo(f"\n{len(movies)} movie(s)")


@cli.command()
@click.argument("movie_id")
@click.argument("rating", type=click.IntRange(1, 10))
@click.pass_context
def rate(ctx, movie_id, rating):
    """Set the rating (1-10) of a movie."""

    def _rate(service: LibraryService):
        record = service.store.get(_resolve_id(service, movie_id))
        record.user_rating = rating
        return service.store.update(record)

    record = _with_library(ctx, _rate)
    click.secho(f"✓ {record.title}: {record.display_rating}", fg="green")


@cli.command()
@click.argument("movie_id")
@click.pass_context
def delete(ctx, movie_id):
    """Delete a movie from the library."""

    def _delete(service: LibraryService):
        record = service.store.get(_resolve_id(service, movie_id))
        service.store.delete(record.id)
        return record

    record = _with_library(ctx, _delete)
    click.secho(f"✓ Deleted {record}", fg="green")


# Collections


@cli.group()
def collections():
    """Manage collections."""


@collections.command(name="list")
@click.option("--movies", is_flag=True, help="Also list the movies in each collection")
@click.pass_context
def collections_list(ctx, movies):
    """List collections."""

    def _list(service: LibraryService):
        return [(c, service.store.records_in(c.id)) for c in service.store.all_collections()]

    rows = _with_library(ctx, _list)
    if not rows:
        click.secho("⊘ No collections", fg="yellow")
        return

    for collection, records in rows:
        click.echo(f"{collection.id[:8]}  {collection.name}  ({collection.movie_count} movies)")
        if movies:
            for record in records:
                _echo_record(record, prefix="    ")


@collections.command(name="create")
@click.argument("name")
@click.option("--description", "-d", default=None)
@click.option("--color", default=None, help="Color token, e.g. #FF6B6B")
@click.option("--icon", default=None)
@click.pass_context
def collections_create(ctx, name, description, color, icon):
    """Create a collection."""

    def _create(service: LibraryService):
        return service.store.insert_collection(
            Collection(name=name, description=description, color=color, icon=icon)
        )

    collection = _with_library(ctx, _create)
    click.secho(f"✓ Created {collection.name}", fg="green")
    click.echo(f"  id: {collection.id}")


@collections.command(name="add-movie")
@click.argument("collection")
@click.argument("movie_id")
@click.pass_context
def collections_add_movie(ctx, collection, movie_id):
    """Add a movie to a COLLECTION (name or id)."""

    def _add(service: LibraryService):
        target = _resolve_collection(service, collection)
        return service.store.add_to_collection(target.id, _resolve_id(service, movie_id))

    updated = _with_library(ctx, _add)
    click.secho(f"✓ {updated}", fg="green")


@collections.command(name="remove-movie")
@click.argument("collection")
@click.argument("movie_id")
@click.pass_context
def collections_remove_movie(ctx, collection, movie_id):
    """Remove a movie from a COLLECTION (name or id)."""

    def _remove(service: LibraryService):
        target = _resolve_collection(service, collection)
        return service.store.remove_from_collection(target.id, _resolve_id(service, movie_id))

    updated = _with_library(ctx, _remove)
    click.secho(f"✓ {updated}", fg="green")


@collections.command(name="delete")
@click.argument("collection")
@click.pass_context
def collections_delete(ctx, collection):
    """Delete a COLLECTION (name or id). Its movies stay in the library."""

    def _delete(service: LibraryService):
        target = _resolve_collection(service, collection)
        service.store.delete_collection(target.id)
        return target

    target = _with_library(ctx, _delete)
    click.secho(f"✓ Deleted collection {target.name}", fg="green")


@collections.command(name="seed")
@click.pass_context
def collections_seed(ctx):
    """Create the default genre collections if there are none."""
    seeded = _with_library(
        ctx,
        lambda service: service.store.seed_default_collections_if_empty(),
        seed_defaults=False,
    )
    if seeded:
        click.secho(f"✓ Created {len(seeded)} collections", fg="green")
    else:
        click.secho("⊘ Collections already exist", fg="yellow")


# Poster cache


@cli.group()
def cache():
    """Inspect or clear the poster cache."""


@cache.command(name="stats")
@click.pass_context
def cache_stats(ctx):
    """Show poster cache usage."""
    stats = _with_library(ctx, lambda service: service.assets.stats())
    click.echo(f"Memory: {stats['memory']['entries']} entries, {stats['memory']['bytes']} bytes")
    click.echo(f"Disk:   {stats['disk']['entries']} entries, {stats['disk']['bytes']} bytes")


@cache.command(name="clear")
@click.pass_context
def cache_clear(ctx):
    """Remove every cached poster."""
    removed = _with_library(ctx, lambda service: service.assets.clear())
    click.secho(f"✓ Removed {removed} cached poster(s)", fg="green")


# Preferences


@cli.group()
def settings():
    """View or change saved preferences."""


@settings.command(name="show")
@click.pass_context
def settings_show(ctx):
    """Show saved preferences (the API key is masked)."""
    prefs = _with_library(ctx, lambda service: service.load_preferences())
    for key, value in prefs.export().items():
        click.echo(f"{key}: {value}")
    key_state = "valid" if prefs.has_valid_api_key else ("set" if prefs.omdb_api_key else "not set")
    click.echo(f"omdb_api_key: <{key_state}>")


@settings.command(name="set-key")
@click.argument("api_key")
@click.pass_context
def settings_set_key(ctx, api_key):
    """Save the OMDB API key."""

    def _set(service: LibraryService):
        prefs = service.load_preferences().model_copy(update={"omdb_api_key": api_key.strip()})
        service.save_preferences(prefs)
        return prefs

    prefs = _with_library(ctx, _set)
    if prefs.has_valid_api_key:
        click.secho("✓ API key saved", fg="green")
    else:
        click.secho("⊙ API key saved, but it looks too short", fg="yellow")


@settings.command(name="export")
@click.pass_context
def settings_export(ctx):
    """Print preferences as JSON (without the API key)."""
    prefs = _with_library(ctx, lambda service: service.load_preferences())
    click.echo(json.dumps(prefs.export(), indent=2))


@settings.command(name="import")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def settings_import(ctx, file):
    """Apply preferences from a JSON FILE made by ``settings export``."""

    def _import(service: LibraryService):
        try:
            data = json.loads(file.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"{file} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{file} must hold a JSON object")

        prefs = service.load_preferences().import_(data)
        service.save_preferences(prefs)
        return prefs

    _with_library(ctx, _import)
    click.secho("✓ Preferences imported", fg="green")


@settings.command(name="reset")
@click.pass_context
def settings_reset(ctx):
    """Restore default preferences."""
    _with_library(ctx, lambda service: service.save_preferences(Preferences.reset_to_defaults()))
    click.secho("✓ Preferences reset", fg="green")


@cli.command()
@click.pass_context
def serve(ctx):
    """Start the HTTP API server."""
    config = ctx.obj["config"]

    click.echo("Starting ReelShelf server...")
    click.echo(f"Listening on {config.api.host}:{config.api.port}")
    click.echo("")
    click.echo("Endpoints:")
    click.echo(f"  - Library:      http://{config.api.host}:{config.api.port}/api/v1/movies")
    click.echo(f"  - Health check: http://{config.api.host}:{config.api.port}/health")
    click.echo(f"  - API docs:     http://{config.api.host}:{config.api.port}/docs")
    click.echo("")
    click.echo("Press Ctrl+C to stop")
    click.echo("")

    import uvicorn

    from reelshelf.api.app import create_app

    setup_logging(config.logging)
    logger.info(
        "Starting server",
        host=config.api.host,
        port=config.api.port,
        database=str(config.storage.path),
    )

    # uvicorn handles SIGINT/SIGTERM and runs the app lifespan on shutdown
    uvicorn.run(
        create_app(config),
        host=config.api.host,
        port=config.api.port,
        log_level=config.logging.level,
        access_log=False,  # RequestLoggingMiddleware logs API calls
    )
    logger.info("Server stopped")


@cli.command()
@click.pass_context
def version(ctx):
    """Show version information."""
    click.echo(f"ReelShelf v{__version__}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
