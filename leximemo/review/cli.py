"""
LexiMemo: Terminal companion for vocabulary review.

A Rich terminal interface for SM-2 spaced repetition over the
learning items stored in the local SQLite database.

Commands:
- leximemo add      - Add a word or sentence
- leximemo review   - Review due items
- leximemo due      - List items due now
- leximemo list     - Search stored items
- leximemo stats    - Show review statistics
- leximemo delete   - Delete an item
- leximemo export   - Write all items to JSON
- leximemo import   - Load items from JSON
"""
from __future__ import annotations

import json
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import NoReturn, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from config import get_settings

from .item_store import ItemNotFoundError, ItemStore
from .models import InvalidInputError, ItemType, LearningItem
from .service import ReviewService


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="leximemo",
    help="LexiMemo: spaced repetition for words and sentences",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "dim": "dim",
    "item_type": {
        "word": "blue",
        "sentence": "magenta",
    },
}


def style_item_type(item_type: ItemType) -> str:
    """Get styled item type string."""
    color = STYLES["item_type"].get(item_type.value, "white")
    return f"[{color}]{item_type.value}[/{color}]"


def now_ms() -> int:
    """Current wall-clock time in ms since epoch."""
    return int(time.time() * 1000)


def format_ts(timestamp_ms: int) -> str:
    if not timestamp_ms:
        return "never"
    try:
        moment = datetime.fromtimestamp(timestamp_ms / 1000, get_settings().get_tzinfo())
    except (OverflowError, OSError, ValueError):
        return "after 9999-12-31"
    return moment.strftime("%Y-%m-%d %H:%M")


@contextmanager
def open_service() -> Iterator[ReviewService]:
    """Provide a review service whose store is closed afterwards."""
    settings = get_settings()
    with ItemStore(settings.db_path) as store:
        yield ReviewService(store, settings=settings)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


# =============================================================================
# Display Helpers
# =============================================================================

def display_item_front(item: LearningItem, index: int, total: int) -> None:
    """Display the prompt side of an item."""
    header = f"Item {index}/{total}  |  {style_item_type(item.item_type)}"

    content = f"[bold]{item.content}[/bold]"
    if item.context:
        content += f"\n\n[dim]{item.context}[/dim]"

    console.print(Panel(
        content,
        title=header,
        title_align="left",
        border_style="cyan",
        padding=(1, 2),
    ))


def display_item_back(item: LearningItem) -> None:
    """Display the translation side of an item."""
    content = item.translation or "[dim](no translation yet)[/dim]"
    if item.source_title:
        content += f"\n\n[dim]Source: {item.source_title}[/dim]"

    console.print(Panel(content, border_style="green", padding=(1, 2)))


def _grade_recall() -> int:
    """Ask for an SM-2 quality score."""
    console.print("\n[dim]Rate your recall:[/dim]")
    console.print("  5 = Perfect recall")
    console.print("  4 = Correct after hesitation")
    console.print("  3 = Correct with serious difficulty")
    console.print("  2 = Incorrect, remembered with a hint")
    console.print("  1 = Incorrect, recognized the answer")
    console.print("  0 = Total blackout")

    return IntPrompt.ask("Quality", choices=["0", "1", "2", "3", "4", "5"])


def items_table(items: list[LearningItem], title: str | None = None) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Content", style="bold")
    table.add_column("Translation")
    table.add_column("Interval", justify="right")
    table.add_column("Ease", justify="right")
    table.add_column("Next review")

    for item in items:
        table.add_row(
            item.id,
            style_item_type(item.item_type),
            item.content,
            item.translation,
            f"{item.interval}d",
            f"{item.ease_factor:.2f}",
            format_ts(item.next_review_at),
        )
    return table


# =============================================================================
# Commands
# =============================================================================

@app.command()
def add(
    content: str = typer.Argument(..., help="Word or sentence to memorise"),
    translation: str = typer.Option("", "--translation", "-t", help="Translation or explanation"),
    item_type: ItemType = typer.Option(ItemType.WORD, "--type", help="Item type"),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Surrounding text"),
    source_url: Optional[str] = typer.Option(None, "--source-url", help="Where the item was found"),
    source_title: Optional[str] = typer.Option(None, "--source-title", help="Title of the source page"),
) -> None:
    """Add a new learning item. It becomes due one day from now."""
    with open_service() as service:
        try:
            item = service.add_item(
                content,
                translation,
                item_type,
                context,
                now=now_ms(),
                source_url=source_url,
                source_title=source_title,
            )
        except InvalidInputError as exc:
            _fail(str(exc))

    console.print(f"[green]Added {item.item_type.value}[/green] [bold]{item.content}[/bold] ({item.id})")
    console.print(f"[dim]First review: {format_ts(item.next_review_at)}[/dim]")


@app.command()
def review(
    limit: Optional[int] = typer.Option(
        None,
        "--limit", "-l",
        help="Maximum items this session (defaults to the daily review limit)",
    ),
) -> None:
    """Start an interactive review session over due items."""
    with open_service() as service:
        queue = service.review_queue(now_ms(), limit=limit)

        if not queue:
            console.print("\n[green]Nothing due for review![/green]")
            console.print("All caught up. Check back tomorrow.")
            raise typer.Exit(0)

        console.print(f"\n[bold]Session: {len(queue)} items due[/bold]\n")
        if not Confirm.ask("Start session?", default=True):
            raise typer.Exit(0)

        reviewed = 0
        passed = 0
        try:
            for i, item in enumerate(queue, 1):
                console.print()
                display_item_front(item, i, len(queue))
                Prompt.ask("\n[dim]Press Enter to reveal[/dim]", default="", show_default=False)
                display_item_back(item)

                quality = _grade_recall()
                try:
                    updated = service.submit_review(item.id, quality, now_ms())
                except InvalidInputError as exc:
                    console.print(f"[{STYLES['incorrect']}]Not saved: {exc}[/]")
                    continue

                reviewed += 1
                if quality >= service.scheduler.config.passing_quality:
                    passed += 1
                    console.print(f"[{STYLES['correct']}]Next review in {updated.interval} days[/]")
                else:
                    console.print(f"[{STYLES['incorrect']}]Back to the start: review again tomorrow[/]")

        except KeyboardInterrupt:
            console.print("\n\n[yellow]Session interrupted.[/yellow]")

    console.print()
    console.print(Panel(
        f"[bold]Session Complete![/bold]\n\n"
        f"Items reviewed: {reviewed}\n"
        f"Recalled: {passed}/{reviewed}",
        title="Summary",
        border_style="green",
    ))


@app.command()
def due(
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum items to show"),
) -> None:
    """List items that are due for review now."""
    with open_service() as service:
        items = service.review_queue(now_ms(), limit=limit)
    if not items:
        console.print("[green]Nothing due for review.[/green]")
        return
    console.print(items_table(items, title=f"Due now ({len(items)})"))


@app.command("list")
def list_items(
    search: str = typer.Option("", "--search", "-s", help="Filter by content or translation"),
    item_type: Optional[ItemType] = typer.Option(None, "--type", help="Only this item type"),
) -> None:
    """List stored items, newest first."""
    with open_service() as service:
        items = service.search(search, item_type)
    if not items:
        console.print("[dim]No items found.[/dim]")
        return
    console.print(items_table(items, title=f"Items ({len(items)})"))


@app.command()
def stats() -> None:
    """Show review statistics and progress."""
    with open_service() as service:
        summary = service.statistics(now_ms())

    console.print("\n[bold cyan]Review Statistics[/bold cyan]")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total items", str(summary.total_items))
    table.add_row("Due now", str(summary.pending_reviews))
    table.add_row("Reviewed today", str(summary.today_reviews))
    table.add_row("Due tomorrow", str(summary.upcoming_reviews))
    table.add_row("Study streak", f"{summary.study_streak} days")
    table.add_row("Progress", f"{summary.progress}%")

    console.print(table)


@app.command()
def delete(
    item_id: str = typer.Argument(..., help="Item id"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a learning item."""
    if not confirm and not Confirm.ask(f"Delete item {item_id}?", default=False):
        raise typer.Exit(0)

    with open_service() as service:
        try:
            service.remove_item(item_id)
        except ItemNotFoundError as exc:
            _fail(str(exc))

    console.print(f"[green]Deleted {item_id}[/green]")


@app.command("export")
def export_items(
    path: Path = typer.Argument(..., help="Destination JSON file"),
) -> None:
    """Export all items to a JSON file."""
    with ItemStore(get_settings().db_path) as store:
        count = store.export_json(path)
    console.print(f"[green]Exported {count} items to {path}[/green]")


@app.command("import")
def import_items(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file from 'export'"),
) -> None:
    """Import items from a JSON export, replacing items with the same id."""
    with ItemStore(get_settings().db_path) as store:
        try:
            count = store.import_json(path)
        except json.JSONDecodeError as exc:
            _fail(f"{path} is not valid JSON: {exc}")
        except InvalidInputError as exc:
            _fail(str(exc))

    console.print(f"[green]Imported {count} items from {path}[/green]")


# =============================================================================
# Entry Point
# =============================================================================

def configure_logging() -> None:
    """Route loguru output according to settings."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level="DEBUG",
            rotation="1 MB",
            retention=5,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
        )


def main() -> None:
    """CLI entry point."""
    configure_logging()
    app()


if __name__ == "__main__":
    main()
