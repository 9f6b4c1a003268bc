"""Command-line interface for threadkeep."""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from .config import ConfigError, ConfigManager
from .core.bookmark_manager import BookmarkManager
from .core.exceptions import IngestionError
from .core.ingestion_service import IngestionService
from .core.storage_manager import BookmarkNotFoundError, BookmarkStore, StorageError
from .models.bookmark import Bookmark
from .models.config import AppConfig
from .utils.text_utils import extract_snippet, highlight_matches

config_dir_option = click.option(
    "--config-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration directory (default: ~/.threadkeep)",
)
db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Database file (overrides config)",
)


def _load(config_dir: Optional[Path], db_path: Optional[Path]) -> Tuple[AppConfig, Path]:
    """Load config, set up logging and resolve the database path."""
    cm = ConfigManager(config_dir)
    config = cm.load()

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return config, db_path or cm.resolve_database_path(config)


def _format_bookmark(bookmark: Bookmark, query: Optional[str] = None) -> str:
    star = "*" if bookmark.is_favorite else " "
    date = bookmark.posted_at.strftime("%Y-%m-%d")
    text = " ".join(bookmark.content.split())
    if query:
        text = extract_snippet(text, query.split()[0], context_chars=35)
        text = highlight_matches(text, query, start="**", end="**")
    elif len(text) > 80:
        text = text[:77] + "..."
    line = f"{star} {bookmark.id}  {date}  @{bookmark.author_handle}: {text}"
    if bookmark.tags:
        line += f"  [{', '.join(bookmark.tags)}]"
    return line


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="threadkeep")
def cli():
    """threadkeep - local archive for exported social media bookmarks."""
    pass


@cli.command()
@config_dir_option
@db_option
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing config.yaml")
def init(config_dir: Optional[Path], db_path: Optional[Path], force: bool):
    """Initialize threadkeep configuration and database.

    Creates the configuration directory, a default config.yaml and an empty
    database.
    """
    try:
        cm = ConfigManager(config_dir)
        click.echo(f"Initializing threadkeep at {cm.config_dir}...")

        if cm.config_file.exists() and not force:
            click.echo(f"[SKIP] {cm.config_file} already exists (use --force to overwrite)")
            config = cm.load_app_config()
        else:
            config = AppConfig(database_path=str(db_path) if db_path else None)
            cm.save_app_config(config)
            click.echo("[OK] Created config.yaml")

        database = db_path or cm.resolve_database_path(config)
        BookmarkStore.open(database).close()
        click.echo(f"[OK] Database ready at {database}")
        click.echo("\nImport an export with: threadkeep ingest <file>")

    except (ConfigError, StorageError) as e:
        _fail(e)


@cli.command()
@click.argument("file", type=click.Path(path_type=Path))
@click.option("--batch-size", type=int, default=None, help="Bookmarks per transaction")
@config_dir_option
@db_option
def ingest(file: Path, batch_size: Optional[int], config_dir: Optional[Path], db_path: Optional[Path]):
    """Import a CSV or JSON bookmark export."""
    try:
        config, database = _load(config_dir, db_path)
        with BookmarkStore.open(database) as store:
            service = IngestionService(store, batch_size=batch_size or config.batch_size)
            report = service.ingest_file(file)

        click.echo(f"Format: {report.dialect.value}")
        click.echo(f"Parsed: {report.parsed}")
        click.echo(f"Imported: {report.inserted}")
        click.echo(f"Duplicates skipped: {report.skipped_duplicates}")
        if report.failed_rows:
            click.echo(f"Rows skipped: {len(report.failed_rows)}")
            for failure in report.failed_rows[:10]:
                click.echo(f"  row {failure.row}: {failure.reason}")

    except (ConfigError, IngestionError, StorageError, ValueError) as e:
        _fail(e)


@cli.command()
@click.argument("query", nargs=-1)
@click.option("--limit", type=int, default=None, help="Maximum results")
@click.option("--tag", type=str, default=None, help="Only bookmarks with this tag")
@click.option("--author", type=str, default=None, help="Only bookmarks by this handle")
@click.option("--favorites", is_flag=True, default=False, help="Only favorites")
@click.option("--has-media/--no-media", "has_media", default=None, help="Filter on attached media")
@config_dir_option
@db_option
def search(
    query: Tuple[str, ...],
    limit: Optional[int],
    tag: Optional[str],
    author: Optional[str],
    favorites: bool,
    has_media: Optional[bool],
    config_dir: Optional[Path],
    db_path: Optional[Path],
):
    """Search bookmarks by text and filters."""
    try:
        config, database = _load(config_dir, db_path)
        with BookmarkStore.open(database) as store:
            manager = BookmarkManager(
                store,
                default_limit=config.default_page_size,
                search_limit=config.search_limit,
            )
            results = manager.search_with_filters(
                query=" ".join(query) or None,
                tag=tag,
                author=author.lstrip("@") if author else None,
                favorites_only=favorites,
                has_media=has_media,
                limit=limit or config.search_limit,
            )

        if not results:
            click.echo("No bookmarks found")
            return
        text_query = " ".join(query).strip() or None
        for bookmark in results:
            click.echo(_format_bookmark(bookmark, text_query))
        click.echo(f"\n{len(results)} result(s)")

    except (ConfigError, StorageError, ValueError) as e:
        _fail(e)


@cli.command(name="list")
@click.option("--offset", type=int, default=0, show_default=True)
@click.option("--limit", type=int, default=None, help="Page size")
@click.option("--favorites", is_flag=True, default=False, help="Only favorites")
@config_dir_option
@db_option
def list_bookmarks(
    offset: int,
    limit: Optional[int],
    favorites: bool,
    config_dir: Optional[Path],
    db_path: Optional[Path],
):
    """List bookmarks, newest first."""
    try:
        config, database = _load(config_dir, db_path)
        with BookmarkStore.open(database) as store:
            manager = BookmarkManager(store, default_limit=config.default_page_size)
            if favorites:
                page = manager.get_favorites(offset=offset, limit=limit)
            else:
                page = manager.get_bookmarks(offset=offset, limit=limit)

        for bookmark in page.items:
            click.echo(_format_bookmark(bookmark))

        shown_to = page.offset + len(page.items)
        click.echo(f"\nShowing {min(page.offset + 1, shown_to)}-{shown_to} of {page.total}")
        if page.has_more:
            click.echo(f"Next page: --offset {shown_to}")

    except (ConfigError, StorageError, ValueError) as e:
        _fail(e)


@cli.command()
@click.option("--top", type=int, default=None, help="Number of tags to show")
@config_dir_option
@db_option
def stats(top: Optional[int], config_dir: Optional[Path], db_path: Optional[Path]):
    """Show archive statistics."""
    try:
        config, database = _load(config_dir, db_path)
        with BookmarkStore.open(database) as store:
            result = BookmarkManager(store).get_stats(top_n=top or config.top_tags)

        click.echo(f"Bookmarks: {result.total_bookmarks}")
        click.echo(f"Authors: {result.unique_authors}")
        click.echo(f"Tags: {result.unique_tags}")
        click.echo(f"Favorites: {result.favorite_bookmarks}")
        if result.earliest_date and result.latest_date:
            click.echo(
                f"Date range: {result.earliest_date:%Y-%m-%d} to {result.latest_date:%Y-%m-%d}"
            )
        if result.top_tags:
            click.echo("\nTop tags:")
            for tag in result.top_tags:
                click.echo(f"  {tag.name}: {tag.count}")

    except (ConfigError, StorageError) as e:
        _fail(e)


@cli.command()
@click.argument("bookmark_id")
@config_dir_option
@db_option
def favorite(bookmark_id: str, config_dir: Optional[Path], db_path: Optional[Path]):
    """Toggle the favorite flag of a bookmark."""
    try:
        _, database = _load(config_dir, db_path)
        with BookmarkStore.open(database) as store:
            now_favorite = BookmarkManager(store).toggle_favorite(bookmark_id)

        state = "Added to" if now_favorite else "Removed from"
        click.echo(f"{state} favorites: {bookmark_id}")

    except (ConfigError, StorageError, BookmarkNotFoundError) as e:
        _fail(e)


@cli.command()
@click.argument("bookmark_id")
@config_dir_option
@db_option
def delete(bookmark_id: str, config_dir: Optional[Path], db_path: Optional[Path]):
    """Delete a bookmark."""
    try:
        _, database = _load(config_dir, db_path)
        with BookmarkStore.open(database) as store:
            deleted = BookmarkManager(store).delete_bookmark(bookmark_id)

        if not deleted:
            raise BookmarkNotFoundError(f"Bookmark not found: {bookmark_id}")
        click.echo(f"Deleted bookmark: {bookmark_id}")

    except (ConfigError, StorageError, BookmarkNotFoundError) as e:
        _fail(e)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
