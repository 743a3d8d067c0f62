"""CLI presentation helpers for human and JSON output modes."""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Iterator, Mapping

import click

from mdloader.domain.models import ChapterRow, InitError, MangaRow, Page, TagCatalog
from mdloader.errors import MangaDexError
from mdloader.types import ProgressCallback


class CliPresenter:
    """Render command outputs for human and machine-readable modes."""

    def __init__(self, *, json_output: bool, quiet: bool) -> None:
        """Store output-mode flags for rendering decisions."""
        self.json_output = json_output
        self.quiet = quiet

    @property
    def emits_human_output(self) -> bool:
        """Return whether human-readable output should be emitted."""
        return not self.json_output and not self.quiet

    def emit_intro(self, intro: str) -> None:
        """Emit a styled intro banner when human output is enabled."""
        if self.emits_human_output:
            click.echo(click.style(intro, fg="blue"))

    def emit_notice(self, message: str) -> None:
        """Emit one human-readable informational message."""
        if self.emits_human_output:
            click.echo(message)

    def emit_error(self, error: MangaDexError, exit_code: int) -> None:
        """Emit an error report; always shown, even in quiet mode."""
        if self.json_output:
            self.emit_json({"status": "error", "exit_code": exit_code, "error": error.to_report()})
            return
        click.echo(
            click.style(f"MangaDex error [{error.status}]: {error.details}", fg="red"),
            err=True,
        )

    def emit_status(
        self,
        *,
        authenticated: bool,
        username: str,
        init_errors: list[InitError],
        tag_count: int,
    ) -> None:
        """Emit session status and startup problems."""
        if self.json_output:
            self.emit_json(
                {
                    "status": "ok",
                    "authenticated": authenticated,
                    "username": username,
                    "tags": tag_count,
                    "init_errors": [asdict(error) for error in init_errors],
                }
            )
            return
        if not self.emits_human_output:
            return
        if authenticated:
            click.echo(f"Logged in as {username}")
        else:
            click.echo("Not logged in")
        click.echo(f"Tag catalog: {tag_count} tag(s)")
        for error in init_errors:
            click.echo(click.style(f"Startup problem [{error.status}]: {error.details}", fg="yellow"))

    def emit_manga_page(self, page: Page[MangaRow]) -> None:
        """Emit one page of manga search results."""
        if self.json_output:
            self.emit_json(_page_payload(page))
            return
        if not self.emits_human_output:
            return
        for row in page.data:
            cover = row.cover or "-"
            click.echo(f"{row.id}  {row.title or '(untitled)'}  [{row.status or '?'}] cover={cover}")
        click.echo(f"Showing {_range_label(page)} of {page.total}")

    def emit_chapter_page(self, page: Page[ChapterRow]) -> None:
        """Emit one page of chapter results."""
        if self.json_output:
            self.emit_json(_page_payload(page))
            return
        if not self.emits_human_output:
            return
        for row in page.data:
            label = f"Vol.{row.volume or '-'} Ch.{row.chapter or '-'}"
            group = row.group_name or "No group"
            click.echo(f"{row.id}  {label}  {row.title}  ({group}, {row.pages} pages)")
        click.echo(f"Showing {_range_label(page)} of {page.total}")

    def emit_tags(self, catalog: TagCatalog) -> None:
        """Emit the tag catalog grouped by tag group."""
        if self.json_output:
            self.emit_json({"status": "ok", "tags": [asdict(entry) for entry in catalog]})
            return
        if not self.emits_human_output:
            return
        for group, entries in sorted(catalog.groups().items()):
            click.echo(click.style(group, fg="green"))
            for entry in entries:
                click.echo(f"    {entry.name} ({entry.id})")

    @contextmanager
    def download_progress(self, label: str) -> Iterator[ProgressCallback]:
        """Yield a progress callback rendering a progress bar in human mode."""
        state: dict[str, Any] = {"bar": None, "received": 0}

        def on_progress(received: int, total: int | None) -> None:
            if not self.emits_human_output or total is None:
                return
            if state["bar"] is None:
                state["bar"] = click.progressbar(length=total, label=label, show_pos=True)
                state["bar"].__enter__()
            state["bar"].update(received - state["received"])
            state["received"] = received

        try:
            yield on_progress
        finally:
            if state["bar"] is not None:
                state["bar"].__exit__(None, None, None)

    def emit_json(self, payload: Mapping[str, Any]) -> None:
        """Emit one machine-readable JSON object to stdout."""
        click.echo(json.dumps(payload, sort_keys=True))


def _range_label(page: Page[Any]) -> str:
    """Format the 1-based result range covered by ``page``."""
    if not page.data:
        return "0"
    return f"{page.offset + 1}-{page.offset + len(page.data)}"


def _page_payload(page: Page[Any]) -> dict[str, Any]:
    """Serialize a result page for JSON output."""
    return {
        "status": "ok",
        "data": [asdict(row) for row in page.data],
        "total": page.total,
        "limit": page.limit,
        "offset": page.offset,
    }
