import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import click

from mdloader import __version__ as about
from mdloader import config
from mdloader.cli import exit_codes
from mdloader.cli.config import setup_logging
from mdloader.cli.presenter import CliPresenter
from mdloader.cli.validators import parse_order, validate_uuid
from mdloader.client.init import MangaDexClient
from mdloader.constants import ContentRating, PublicationDemographic, Status, TagsMode
from mdloader.domain.options import ChapterListOptions, MangaListOptions
from mdloader.errors import MangaDexError
from mdloader.settings import JsonSettingsStore

# Get a logger for this module.
log = logging.getLogger(__name__)

T = TypeVar("T")

# Define an epilog message with examples.
EPILOG = f"""
Examples:

{click.style('• search for a title, ten results per page', fg="green")}

    $ mdloader search "yotsuba" --limit 10

{click.style('• list english chapters of a manga, newest first', fg="green")}

    $ mdloader chapters a96676e5-8ae2-425e-b549-7f15dd34a6d8 -l en -o chapter:desc

{click.style('• save the first page of a chapter in data-saver quality', fg="green")}

    $ mdloader page 5e8bc984-5f3f-4fb1-b6ee-cf7f3812b112 1 --low-quality
"""


@dataclass
class CliState:
    """Objects shared by every subcommand invocation."""

    settings_path: Path
    presenter: CliPresenter


def build_client(settings_path: Path) -> MangaDexClient:
    """Create a client backed by the JSON settings file at ``settings_path``."""
    settings = JsonSettingsStore(settings_path, config.SETTINGS_DEFAULTS)
    return MangaDexClient(settings)


def run_with_client(ctx: click.Context, operation: Callable[[MangaDexClient], Awaitable[T]]) -> T:
    """
    Run one async ``operation`` against a fresh client and translate failures.

    Client errors are reported through the presenter and end the process with
    the mapped exit code instead of a traceback.
    """
    state: CliState = ctx.obj
    client = build_client(state.settings_path)
    try:
        return asyncio.run(operation(client))
    except MangaDexError as exc:
        exit_code = exit_codes.for_error(exc)
        state.presenter.emit_error(exc, exit_code)
        ctx.exit(exit_code)
    except ValueError as exc:
        raise click.UsageError(str(exc), ctx=ctx)
    except Exception:
        log.exception("Unexpected failure")
        ctx.exit(exit_codes.INTERNAL_BUG)
    finally:
        client.close()


@click.group(
    help=about.__description__,
    epilog=EPILOG,
)
@click.version_option(
    about.__version__,
    prog_name=about.__title__,
    message="%(prog)s, version %(version)s\nCheck {url} for more info".format(url=about.__url__),
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    metavar="<file>",
    default=config.SETTINGS_PATH,
    show_default=True,
    help="Settings file holding credentials and preferences",
    envvar="MDLOADER_SETTINGS_PATH",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    default=False,
    help="Emit machine-readable JSON",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress human-readable output",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging",
)
@click.pass_context
def main(ctx: click.Context, settings_path: Path, json_output: bool, quiet: bool, verbose: bool):
    """
    Main entry point for the MangaDex CLI.

    Parameters:
        ctx (click.Context): Click context.
        settings_path (Path): Location of the JSON settings file.
        json_output (bool): Emit JSON instead of human-readable output.
        quiet (bool): Suppress human-readable output.
        verbose (bool): Enable debug logging.
    """
    if verbose:
        setup_logging(level=logging.DEBUG)
    elif json_output or quiet:
        setup_logging(level=logging.WARNING)

    presenter = CliPresenter(json_output=json_output, quiet=quiet)
    presenter.emit_intro(about.__intro__)
    ctx.obj = CliState(settings_path=settings_path, presenter=presenter)


@main.command()
@click.option("--username", "-u", prompt=True, help="MangaDex username")
@click.option("--password", "-p", prompt=True, hide_input=True, help="MangaDex password")
@click.pass_context
def login(ctx: click.Context, username: str, password: str):
    """Log in and store the refresh token."""
    state: CliState = ctx.obj

    async def operation(client: MangaDexClient) -> None:
        await client.login(username, password)

    run_with_client(ctx, operation)
    if state.presenter.json_output:
        state.presenter.emit_json({"status": "ok", "authenticated": True, "username": username})
    state.presenter.emit_notice(f"Logged in as {username}")


@main.command()
@click.pass_context
def logout(ctx: click.Context):
    """Log out and forget the stored refresh token."""
    state: CliState = ctx.obj

    async def operation(client: MangaDexClient) -> None:
        try:
            await client.session.restore()
        except MangaDexError as exc:
            log.info("Logging out without a restored session: %s", exc)
        await client.logout()

    run_with_client(ctx, operation)
    if state.presenter.json_output:
        state.presenter.emit_json({"status": "ok", "authenticated": False})
    state.presenter.emit_notice("Logged out")


@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Restore the session, load tags and report startup problems."""
    state: CliState = ctx.obj

    async def operation(client: MangaDexClient):
        init_errors = await client.init()
        authenticated = client.is_authenticated and await client.check_authentication()
        tag_count = len(client.tag_catalog) if client.tag_catalog is not None else 0
        return authenticated, client.settings.get("username") or "", init_errors, tag_count

    authenticated, username, init_errors, tag_count = run_with_client(ctx, operation)
    state.presenter.emit_status(
        authenticated=authenticated,
        username=username,
        init_errors=init_errors,
        tag_count=tag_count,
    )


@main.command()
@click.pass_context
def tags(ctx: click.Context):
    """List the tag catalog."""
    state: CliState = ctx.obj

    async def operation(client: MangaDexClient):
        return await client.init_tags()

    state.presenter.emit_tags(run_with_client(ctx, operation))


@main.command()
@click.argument("title", required=False)
@click.option("--limit", type=click.IntRange(min=1, max=100), help="Results per page")
@click.option("--offset", type=click.IntRange(min=0), default=0, show_default=True, help="Result offset")
@click.option("--tag", "-t", "included_tags", multiple=True, help="Tag name to include")
@click.option("--exclude-tag", "-x", "excluded_tags", multiple=True, help="Tag name to exclude")
@click.option(
    "--tags-mode",
    type=click.Choice([mode.value for mode in TagsMode], case_sensitive=False),
    help="Combine included tags with AND or OR",
)
@click.option(
    "--rating", "-r",
    "content_rating",
    type=click.Choice([rating.value for rating in ContentRating]),
    multiple=True,
    help="Content rating (defaults to the stored preference)",
)
@click.option(
    "--status", "-s",
    "statuses",
    type=click.Choice([item.value for item in Status]),
    multiple=True,
    help="Publication status",
)
@click.option(
    "--demographic", "-d",
    "demographics",
    type=click.Choice([item.value for item in PublicationDemographic]),
    multiple=True,
    help="Target demographic",
)
@click.option("--original-language", "-l", multiple=True, help="Original language code")
@click.option("--author", "authors", multiple=True, callback=validate_uuid, help="Author id")
@click.option("--order", "-o", multiple=True, callback=parse_order, help="Sort as <field>:<asc|desc>")
@click.pass_context
def search(
        ctx: click.Context,
        title: str,
        limit: int,
        offset: int,
        included_tags: tuple[str, ...],
        excluded_tags: tuple[str, ...],
        tags_mode: str,
        content_rating: tuple[str, ...],
        statuses: tuple[str, ...],
        demographics: tuple[str, ...],
        original_language: tuple[str, ...],
        authors: tuple[str, ...],
        order: dict,
):
    """Search manga by title and filters."""
    state: CliState = ctx.obj

    async def operation(client: MangaDexClient):
        included_ids = excluded_ids = ()
        if included_tags or excluded_tags:
            catalog = await client.init_tags()
            included_ids = catalog.ids_for(included_tags)
            excluded_ids = catalog.ids_for(excluded_tags)
        options = MangaListOptions(
            limit=limit,
            offset=offset,
            title=title,
            authors=authors,
            included_tags=included_ids,
            included_tags_mode=TagsMode(tags_mode.upper()) if tags_mode else None,
            excluded_tags=excluded_ids,
            status=statuses,
            original_language=original_language,
            publication_demographic=tuple(PublicationDemographic(item) for item in demographics),
            content_rating=content_rating or None,
            order=order,
        )
        return await client.get_manga_list(options)

    state.presenter.emit_manga_page(run_with_client(ctx, operation))


@main.command()
@click.argument("manga_id", callback=validate_uuid)
@click.option("--language", "-l", "languages", multiple=True, help="Translated language code")
@click.option("--limit", type=click.IntRange(min=1, max=500), help="Results per page")
@click.option("--offset", type=click.IntRange(min=0), default=0, show_default=True, help="Result offset")
@click.option("--volume", multiple=True, help="Volume number")
@click.option("--order", "-o", multiple=True, callback=parse_order, help="Sort as <field>:<asc|desc>")
@click.pass_context
def chapters(
        ctx: click.Context,
        manga_id: str,
        languages: tuple[str, ...],
        limit: int,
        offset: int,
        volume: tuple[str, ...],
        order: dict,
):
    """List chapters of a manga."""
    state: CliState = ctx.obj

    async def operation(client: MangaDexClient):
        options = ChapterListOptions(
            limit=limit,
            offset=offset,
            manga=manga_id,
            translated_language=languages,
            volume=volume or None,
            order=order,
        )
        return await client.get_chapter_list(options)

    state.presenter.emit_chapter_page(run_with_client(ctx, operation))


@main.command()
@click.argument("chapter_id", callback=validate_uuid)
@click.argument("page_number", type=click.IntRange(min=1))
@click.option(
    "--out", "-o",
    "out_path",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    metavar="<file>",
    help="Output file (defaults to <chapter>_<page>.<ext>)",
)
@click.option("--low-quality", is_flag=True, default=False, help="Use data-saver images")
@click.pass_context
def page(ctx: click.Context, chapter_id: str, page_number: int, out_path: Path, low_quality: bool):
    """Download one page image of a chapter."""
    state: CliState = ctx.obj

    async def operation(client: MangaDexClient):
        server_url = await client.get_server_url(chapter_id)
        entry = await client.get_page_entry(chapter_id)
        filename = entry.filename(page_number, low_quality)
        with state.presenter.download_progress(f"Page {page_number}") as on_progress:
            image = await client.get_page(chapter_id, page_number, server_url, on_progress, low_quality)
        return filename, image

    filename, image = run_with_client(ctx, operation)
    if out_path is None:
        suffix = Path(filename).suffix or ".img"
        out_path = Path(f"{chapter_id}_{page_number:03d}{suffix}")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(image)

    if state.presenter.json_output:
        state.presenter.emit_json({"status": "ok", "path": str(out_path), "bytes": len(image)})
    state.presenter.emit_notice(f"Saved {len(image)} bytes to {out_path}")


if __name__ == "__main__":
    main(prog_name=about.__title__)
