"""prompt-store CLI: manage the store and serve it over MCP."""

from __future__ import annotations

import json
import logging
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from prompt_store import __version__, operations
from prompt_store.config import DEFAULT_LOG_LEVEL, DB_ENV_VAR, LOG_LEVEL_ENV_VAR, default_db_path
from prompt_store.database import close_db, open_db, reset_db

logger = logging.getLogger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        print(f"prompt-store {__version__}")
        raise typer.Exit()


def _configure_logging(level: str) -> None:
    """Log to stderr; stdout carries JSON output and the MCP stdio stream."""
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


app = typer.Typer(
    name="prompt-store",
    help="prompt-store: keep titled, tagged prompts in a local database.",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
    log_level: Annotated[
        str,
        typer.Option("--log-level", envvar=LOG_LEVEL_ENV_VAR, help="Logging level."),
    ] = DEFAULT_LOG_LEVEL,
) -> None:
    """prompt-store: keep titled, tagged prompts in a local database."""
    _configure_logging(log_level)


console = Console()

DbOption = Annotated[
    Path | None,
    typer.Option("--db", envvar=DB_ENV_VAR, help="Override path to SQLite database."),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON.")]
LimitOption = Annotated[
    int, typer.Option("--limit", "-l", help="Maximum number of prompts to return (1-100).")
]
OffsetOption = Annotated[int, typer.Option("--offset", "-o", help="Number of prompts to skip.")]


def _db_path(db: Path | None) -> Path:
    return db if db is not None else default_db_path()


@contextmanager
def _store(db: Path | None) -> Iterator[None]:
    """Open the store at the requested path for one command."""
    close_db()
    open_db(_db_path(db))
    try:
        yield
    finally:
        close_db()


def _check(result: dict[str, Any]) -> dict[str, Any]:
    if "error" in result:
        error = result["error"]
        rprint(f"[red]Error:[/red] {escape(error['message'])} ({error['code']})")
        raise typer.Exit(1)
    return result


def _echo_json(result: dict[str, Any]) -> None:
    typer.echo(json.dumps(result, indent=2))


def _read_content(content: str | None, file: Path | None) -> str | None:
    if content and file:
        rprint("[red]Error:[/red] Provide --content or --file, not both.")
        raise typer.Exit(1)
    if file:
        if not file.exists():
            rprint(f"[red]Error:[/red] File not found: {file}")
            raise typer.Exit(1)
        return file.read_text(encoding="utf-8")
    if content == "-":
        return sys.stdin.read()
    return content


def _short(timestamp: str) -> str:
    return timestamp[:16].replace("T", " ")


def _print_page(result: dict[str, Any], title: str) -> None:
    if not result["prompts"]:
        rprint("[dim]No prompts found.[/dim]")
        return
    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan")
    table.add_column("Tags")
    table.add_column("Updated", style="dim")
    for p in result["prompts"]:
        table.add_row(p["id"], p["title"], ", ".join(p["tags"]) or "-", _short(p["updated_at"]))
    console.print(table)
    shown_to = result["offset"] + len(result["prompts"])
    more = " (more available)" if result["has_more"] else ""
    rprint(f"[dim]{result['offset'] + 1}-{shown_to} of {result['total']}{more}[/dim]")


# ------------------------------------------------------------------
# init / reset / serve
# ------------------------------------------------------------------


@app.command()
def init(db: DbOption = None) -> None:
    """Initialize the prompt database."""
    path = _db_path(db)
    with _store(path):
        rprint(f"[green]✓[/green] Database initialized at [bold]{path}[/bold]")


@app.command()
def reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
    db: DbOption = None,
) -> None:
    """Delete every prompt and tag and start from an empty database."""
    path = _db_path(db)
    if not yes:
        confirm = typer.confirm(f"Delete all data in {path}?")
        if not confirm:
            rprint("[dim]Aborted.[/dim]")
            raise typer.Exit(0)
    close_db()
    try:
        reset_db(path)
    finally:
        close_db()
    rprint(f"[green]✓[/green] Database reset at [bold]{path}[/bold]")


def _raise_system_exit(signum: int, frame: Any) -> None:
    raise SystemExit(0)


@app.command()
def serve(
    reset_first: Annotated[
        bool, typer.Option("--reset", help="Wipe the database before serving.")
    ] = False,
    db: DbOption = None,
) -> None:
    """Serve the prompt store as MCP tools over stdio."""
    from prompt_store.server import PromptStoreMcpServer

    path = _db_path(db)
    close_db()
    if reset_first:
        logger.warning("Resetting database at %s", path)
        reset_db(path)
    else:
        open_db(path)
    signal.signal(signal.SIGTERM, _raise_system_exit)
    try:
        PromptStoreMcpServer().run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        close_db()


# ------------------------------------------------------------------
# add / show / update / delete
# ------------------------------------------------------------------


@app.command()
def add(
    title: Annotated[str, typer.Argument(help="Unique prompt title")],
    content: Annotated[
        str | None,
        typer.Option("--content", "-c", help="Prompt content. Use - to read from stdin."),
    ] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Read prompt content from a file."),
    ] = None,
    tag: Annotated[
        list[str] | None,
        typer.Option("--tag", "-t", help="Tags for this prompt (repeatable)."),
    ] = None,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Add a new prompt."""
    text = _read_content(content, file)
    if text is None:
        rprint("[red]Error:[/red] Provide prompt content via --content or --file.")
        raise typer.Exit(1)
    with _store(db):
        result = _check(operations.add_prompt(title, text, tag or []))
    if json_output:
        _echo_json(result)
    else:
        rprint(f"[green]✓[/green] Added [bold]{result['title']}[/bold] ({result['id']})")


@app.command()
def show(
    prompt_id: Annotated[str, typer.Argument(help="Prompt id")],
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the full content of a prompt."""
    with _store(db):
        result = _check(operations.get_prompt(prompt_id))
    if json_output:
        _echo_json(result)
        return
    rprint(f"[bold cyan]{result['title']}[/bold cyan]")
    rprint(
        f"[dim]ID: {result['id']} | "
        f"Tags: {', '.join(result['tags']) or 'none'} | "
        f"Updated: {_short(result['updated_at'])}[/dim]"
    )
    rprint()
    console.print(result["content"], markup=False, highlight=False)


@app.command()
def update(
    prompt_id: Annotated[str, typer.Argument(help="Prompt id")],
    title: Annotated[
        str | None, typer.Option("--title", help="New title (default: unchanged).")
    ] = None,
    content: Annotated[
        str | None,
        typer.Option("--content", "-c", help="New content. Use - to read from stdin."),
    ] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Read new content from a file."),
    ] = None,
    tag: Annotated[
        list[str] | None,
        typer.Option("--tag", "-t", help="Replacement tag set (repeatable)."),
    ] = None,
    clear_tags: Annotated[
        bool, typer.Option("--clear-tags", help="Remove every tag from the prompt.")
    ] = False,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Replace a prompt's title, content and tags.

    Options left out keep their current value; --tag replaces the whole tag set.
    """
    if tag and clear_tags:
        rprint("[red]Error:[/red] Provide --tag or --clear-tags, not both.")
        raise typer.Exit(1)
    text = _read_content(content, file)
    with _store(db):
        current = _check(operations.get_prompt(prompt_id))
        if clear_tags:
            tags: list[str] = []
        else:
            tags = tag if tag else current["tags"]
        result = _check(
            operations.update_prompt(
                prompt_id,
                title if title is not None else current["title"],
                text if text is not None else current["content"],
                tags,
            )
        )
    if json_output:
        _echo_json(result)
    else:
        rprint(f"[green]✓[/green] Updated [bold]{result['title']}[/bold]")


@app.command()
def delete(
    prompt_id: Annotated[str, typer.Argument(help="Prompt id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation.")] = False,
    db: DbOption = None,
) -> None:
    """Delete a prompt. Its tags are kept."""
    if not yes:
        confirm = typer.confirm(f"Delete prompt '{prompt_id}'?")
        if not confirm:
            rprint("[dim]Aborted.[/dim]")
            raise typer.Exit(0)
    with _store(db):
        _check(operations.delete_prompt(prompt_id))
    rprint(f"[green]✓[/green] Deleted [bold]{prompt_id}[/bold]")


# ------------------------------------------------------------------
# list / search / filter / tags
# ------------------------------------------------------------------


@app.command("list")
def list_prompts(
    limit: LimitOption = 10,
    offset: OffsetOption = 0,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List prompts, most recently updated first."""
    with _store(db):
        result = _check(operations.list_prompts(limit, offset))
    if json_output:
        _echo_json(result)
    else:
        _print_page(result, "Prompts")


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Case-insensitive text to look for")],
    limit: LimitOption = 10,
    offset: OffsetOption = 0,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Search prompt titles and content."""
    with _store(db):
        result = _check(operations.search_prompts(query, limit, offset))
    if json_output:
        _echo_json(result)
    else:
        _print_page(result, f"Prompts matching '{query}'")


@app.command("filter")
def filter_prompts(
    tags: Annotated[list[str], typer.Argument(help="Tags to match (any of them)")],
    limit: LimitOption = 10,
    offset: OffsetOption = 0,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List prompts carrying any of the given tags."""
    with _store(db):
        result = _check(operations.filter_by_tags(tags, limit, offset))
    if json_output:
        _echo_json(result)
    else:
        _print_page(result, f"Prompts tagged {', '.join(result['matched_tags'])}")


@app.command()
def tags(
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List every tag with its usage count."""
    with _store(db):
        result = _check(operations.list_tags())
    if json_output:
        _echo_json(result)
        return
    if not result["tags"]:
        rprint("[dim]No tags found.[/dim]")
        return
    table = Table(title="Tags")
    table.add_column("Tag", style="cyan")
    table.add_column("Prompts", justify="right")
    for t in result["tags"]:
        table.add_row(t["name"], str(t["prompt_count"]))
    console.print(table)
