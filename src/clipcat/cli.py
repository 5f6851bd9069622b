#!/usr/bin/env python3
"""
clipcat: CLI for the clipping catalog of a Markdown vault

Usage:
    clipcat list                      # All clippings, newest first
    clipcat list -s "#ai" --hide-read # Unread clippings tagged ai
    clipcat read path/to/note.md      # Mark a clipping as read
    clipcat exclude add templates     # Hide a directory from the catalog
    clipcat watch                     # Live catalog, refreshed on changes
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click

from . import __version__ as CLIPCAT_VERSION

if TYPE_CHECKING:
    from .catalog import RefreshController
    from .models import CatalogQuery, CatalogRecord


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def format_table(rows: list[dict], columns: list[str], max_widths: dict | None = None) -> str:
    """Format rows as a simple table."""
    if not rows:
        return ""

    max_widths = max_widths or {}
    widths = {col: len(col) for col in columns}

    def cell(row: dict, col: str) -> str:
        val = str(row.get(col, ""))
        limit = max_widths.get(col, 50)
        if len(val) > limit:
            val = val[: limit - 3] + "..."
        return val

    for row in rows:
        for col in columns:
            widths[col] = max(widths[col], len(cell(row, col)))

    header = "  ".join(col.upper().ljust(widths[col]) for col in columns)
    separator = "  ".join("-" * widths[col] for col in columns)

    lines = [header, separator]
    for row in rows:
        lines.append("  ".join(cell(row, col).ljust(widths[col]) for col in columns).rstrip())

    return "\n".join(lines)


def output(data, as_json: bool = False):
    """Output data as JSON or formatted text."""
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(data)


def _handle_error(ctx: click.Context, error: Exception, exit_code: int = 1) -> NoReturn:
    """Report an error (as JSON with --json-errors) and exit."""
    from .config import ConfigurationError
    from .errors import ClipcatError, ErrorCode, format_error_json

    json_errors = ctx.obj.get("json_errors", False) if ctx.obj else False

    if isinstance(error, ClipcatError):
        if json_errors:
            click.echo(error.to_json(), err=True)
        else:
            click.echo(f"Error: {error.message}", err=True)
            suggestion = error.details.get("suggestion")
            if suggestion:
                click.echo(f"Hint: {suggestion}", err=True)
    else:
        if isinstance(error, ConfigurationError):
            code = ErrorCode.CONFIGURATION_ERROR
        elif isinstance(error, ValueError):
            code = ErrorCode.INVALID_ARGUMENT
        else:
            code = ErrorCode.UNKNOWN_ERROR
        if json_errors:
            click.echo(format_error_json(code, str(error)), err=True)
        else:
            click.echo(f"Error: {error}", err=True)

    sys.exit(exit_code)


def _vault(ctx: click.Context) -> Path | None:
    return ctx.obj.get("vault_root") if ctx.obj else None


def _record_row(record: CatalogRecord, show_read: bool) -> dict[str, Any]:
    from .query import url_entries

    entries = url_entries(record)
    domains = []
    for entry in entries:
        label = entry.domain if entry.valid else f"invalid: {entry.url}"
        if label and label not in domains:
            domains.append(label)

    row = {
        "title": record.display_title,
        "source": ", ".join(domains),
        "folder": record.folder,
        "tags": " ".join(f"#{tag}" for tag in record.all_tags),
        "created": datetime.fromtimestamp(record.created_at / 1000).strftime("%b %d, %Y"),
        "path": record.id,
    }
    if show_read:
        row["read"] = "x" if record.read else ""
    return row


def _render_records(records: list[CatalogRecord], *, show_read: bool, full_titles: bool) -> str:
    columns = ["title", "source", "folder", "tags", "created"]
    if show_read:
        columns.insert(0, "read")
    title_width = 10000 if full_titles else 40
    rows = [_record_row(record, show_read) for record in records]
    return format_table(rows, columns, {"title": title_width, "source": 30, "folder": 30, "tags": 30})


def _build_query(search: str, sort: str, order: str | None, hide_read: bool, only_read: bool) -> CatalogQuery:
    from .models import CatalogQuery, ReadFilter, SortConfig

    if hide_read and only_read:
        raise click.UsageError("--hide-read and --only-read cannot be combined")

    direction = order or ("desc" if sort == "date" else "asc")
    return CatalogQuery(
        search=search,
        sort=SortConfig(key=sort, direction=direction),
        read_filter=ReadFilter(hide_read=hide_read, show_only_read=only_read),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=CLIPCAT_VERSION, prog_name="clipcat")
@click.option(
    "--vault",
    "vault_root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    envvar="CLIPCAT_VAULT_ROOT",
    help="Vault directory (default: nearest directory with .clipcat.yaml)",
)
@click.option("--json-errors", "json_errors", is_flag=True, help="Output errors as JSON")
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="CLIPCAT_QUIET",
    help="Suppress warnings, show only errors and essential output",
)
@click.pass_context
def cli(ctx: click.Context, vault_root: Path | None, json_errors: bool, quiet: bool):
    """clipcat: catalog of clipped notes in a Markdown vault.

    A note is a clipping when its front-matter has a source URL property
    (default: "source"; configure with `clipcat config set`).

    \b
    Examples:
      clipcat list --sort=title
      clipcat list --search="#news" --hide-read
      clipcat read inbox/article.md
      clipcat exclude add "templates, archive/2023"
    """
    from ._logging import configure_logging, set_quiet_mode

    configure_logging()
    if quiet:
        set_quiet_mode(True)

    ctx.ensure_object(dict)
    ctx.obj["vault_root"] = vault_root
    ctx.obj["json_errors"] = json_errors


# ─────────────────────────────────────────────────────────────────────────────
# Listing
# ─────────────────────────────────────────────────────────────────────────────


@cli.command("list")
@click.option("--search", "-s", default="", help="Match titles and tags; '#tag' also matches a tag exactly")
@click.option(
    "--sort",
    type=click.Choice(["title", "date", "path", "read"]),
    default="date",
    help="Sort key",
)
@click.option("--order", type=click.Choice(["asc", "desc"]), help="Sort direction (default: desc for date)")
@click.option("--hide-read", is_flag=True, help="Hide clippings marked as read")
@click.option("--only-read", is_flag=True, help="Show only clippings marked as read")
@click.option("--limit", "-n", type=click.IntRange(min=1), help="Max results")
@click.option("--full-titles", is_flag=True, help="Show full titles without truncation")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_clippings(
    ctx: click.Context,
    search: str,
    sort: str,
    order: str | None,
    hide_read: bool,
    only_read: bool,
    limit: int | None,
    full_titles: bool,
    as_json: bool,
):
    """List clippings.

    \b
    Examples:
      clipcat list
      clipcat list --search=python --sort=title
      clipcat list --sort=read --order=desc     # Unread first
      clipcat list --only-read --json
    """
    from .core import get_settings, record_to_dict
    from .core import list_clippings as core_list_clippings

    query = _build_query(search, sort, order, hide_read, only_read)
    try:
        records = run_async(core_list_clippings(query, limit=limit, vault_root=_vault(ctx)))
        show_read = bool(get_settings(_vault(ctx)).read_property_name.strip())
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output([record_to_dict(record) for record in records], as_json=True)
        return

    if not records:
        click.echo("No clippings found.")
        return

    click.echo(_render_records(records, show_read=show_read, full_titles=full_titles))


# ─────────────────────────────────────────────────────────────────────────────
# Read state
# ─────────────────────────────────────────────────────────────────────────────


def _set_read(ctx: click.Context, path: str, value: bool | None, as_json: bool) -> None:
    from .core import record_to_dict, set_read_state, toggle_read_state

    try:
        if value is None:
            record = run_async(toggle_read_state(path, vault_root=_vault(ctx)))
        else:
            record = run_async(set_read_state(path, value, vault_root=_vault(ctx)))
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output(record_to_dict(record), as_json=True)
    else:
        click.echo(f"{'Read' if record.read else 'Unread'}: {record.id}")


@cli.command("read")
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def read_cmd(ctx: click.Context, path: str, as_json: bool):
    """Mark a clipping as read."""
    _set_read(ctx, path, True, as_json)


@cli.command("unread")
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def unread_cmd(ctx: click.Context, path: str, as_json: bool):
    """Mark a clipping as unread."""
    _set_read(ctx, path, False, as_json)


@cli.command("toggle")
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def toggle_cmd(ctx: click.Context, path: str, as_json: bool):
    """Flip the read state of a clipping."""
    _set_read(ctx, path, None, as_json)


# ─────────────────────────────────────────────────────────────────────────────
# Excluded directories
# ─────────────────────────────────────────────────────────────────────────────


@cli.group()
def exclude():
    """Manage excluded directories.

    A rule hides the notes directly inside a directory; subdirectories need
    their own rule.
    """


@exclude.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def exclude_list(ctx: click.Context, as_json: bool):
    """Show excluded directories."""
    from .core import get_settings

    try:
        directories = get_settings(_vault(ctx)).ignored_directories
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output(directories, as_json=True)
    elif not directories:
        click.echo("No excluded directories.")
    else:
        click.echo(f"Excluded directories ({len(directories)}):")
        for directory in directories:
            click.echo(f"  {directory}")


@exclude.command("add")
@click.argument("directories")
@click.pass_context
def exclude_add(ctx: click.Context, directories: str):
    """Exclude directories (comma-separated)."""
    from .core import add_exclusions

    try:
        updated = add_exclusions(directories, vault_root=_vault(ctx))
    except Exception as e:
        _handle_error(ctx, e)
    click.echo(f"Excluded directories: {', '.join(updated) if updated else '(none)'}")


@exclude.command("remove")
@click.argument("directory")
@click.pass_context
def exclude_remove(ctx: click.Context, directory: str):
    """Stop excluding a directory."""
    from .core import remove_exclusion

    try:
        updated = remove_exclusion(directory, vault_root=_vault(ctx))
    except Exception as e:
        _handle_error(ctx, e)
    click.echo(f"Excluded directories: {', '.join(updated) if updated else '(none)'}")


@exclude.command("clear")
@click.confirmation_option(prompt="Remove all excluded directories?")
@click.pass_context
def exclude_clear(ctx: click.Context):
    """Remove all excluded directories."""
    from .core import clear_exclusions

    try:
        clear_exclusions(vault_root=_vault(ctx))
    except Exception as e:
        _handle_error(ctx, e)
    click.echo("Cleared all excluded directories.")


# ─────────────────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────────────────

SETTABLE_KEYS = [
    "source_property_name",
    "read_property_name",
    "include_frontmatter_tags",
    "is_advanced_settings_expanded",
]


@cli.group("config")
def config_group():
    """Show or change settings (.clipcat.yaml)."""


@config_group.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool):
    """Show current settings."""
    from .core import get_settings

    try:
        settings = get_settings(_vault(ctx))
    except Exception as e:
        _handle_error(ctx, e)

    if as_json:
        output(settings.model_dump(), as_json=True)
        return
    for key, value in settings.model_dump().items():
        click.echo(f"{key}: {value}")


@config_group.command("set")
@click.argument("key", type=click.Choice(SETTABLE_KEYS))
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str):
    """Change a setting.

    \b
    Examples:
      clipcat config set source_property_name "source, url"
      clipcat config set read_property_name read
      clipcat config set include_frontmatter_tags false
    """
    from .core import update_setting

    try:
        settings = update_setting(key, value, vault_root=_vault(ctx))
    except Exception as e:
        _handle_error(ctx, e)
    click.echo(f"{key}: {getattr(settings, key)}")


# ─────────────────────────────────────────────────────────────────────────────
# Watch
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--search", "-s", default="", help="Match titles and tags")
@click.option("--sort", type=click.Choice(["title", "date", "path", "read"]), default="date")
@click.option("--order", type=click.Choice(["asc", "desc"]))
@click.option("--hide-read", is_flag=True, help="Hide clippings marked as read")
@click.option("--only-read", is_flag=True, help="Show only clippings marked as read")
@click.option(
    "--interval",
    type=click.FloatRange(min=1.0),
    default=60.0,
    show_default=True,
    help="Seconds between periodic refreshes",
)
@click.pass_context
def watch(
    ctx: click.Context,
    search: str,
    sort: str,
    order: str | None,
    hide_read: bool,
    only_read: bool,
    interval: float,
):
    """Show the catalog and refresh it as notes change (Ctrl-C to stop)."""
    from .core import watch_catalog
    from .models import CatalogState
    from .query import apply_query

    query = _build_query(search, sort, order, hide_read, only_read)

    def render(controller: RefreshController) -> None:
        if controller.state == CatalogState.LOADING:
            return
        stamp = datetime.now().strftime("%H:%M:%S")
        if controller.state == CatalogState.ERROR:
            click.echo(f"[{stamp}] Error: {controller.error}", err=True)
            return
        if controller.snapshot is None:
            return
        records = apply_query(controller.snapshot.records, query)
        click.echo(f"\n[{stamp}] {len(records)} clipping(s)")
        if records:
            show_read = bool(controller.config.read_property_name)
            click.echo(_render_records(records, show_read=show_read, full_titles=False))

    try:
        run_async(watch_catalog(render, vault_root=_vault(ctx), interval_seconds=interval))
    except KeyboardInterrupt:
        click.echo("\nStopped.")
    except Exception as e:
        _handle_error(ctx, e)


if __name__ == "__main__":
    cli()
