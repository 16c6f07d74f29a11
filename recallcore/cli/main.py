"""
CLI entry point for recallcore.
"""

# Standard library imports
import logging
import shutil
from pathlib import Path
from typing import List, Optional
from uuid import UUID

# Third-party imports
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Local application imports
from recallcore.config import Settings, load_scheduler_config
from recallcore.db.database import TopicDatabase
from recallcore.db.db_utils import (
    backup_database,
    find_latest_backup,
    load_topics_jsonl,
)
from recallcore.exceptions import DatabaseError, SchedulingError, TopicNotFoundError
from recallcore.models import Grade, Topic
from recallcore.priority import RankedTopic
from recallcore.review_processor import ReviewProcessor, TopicEntry
from recallcore.scheduler import validate_grade


console = Console()

app = typer.Typer(
    name="recallcore",
    help="Recallcore: FSRS review scheduling for logged topics.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Helpers for resolving paths (flag, then RECALLCORE_* env, then defaults)
# ---------------------------------------------------------------------------


def _resolve_db_path(db: Optional[Path]) -> Path:
    return db if db is not None else Settings().db_path


def _resolve_config_path(config: Optional[Path]) -> Path:
    return config if config is not None else Settings().config_path


def _backup(db_path: Path) -> None:
    backup_path = backup_database(db_path, max_backups=Settings().max_backups)
    if backup_path != db_path:
        console.print(f"Database backed up to: [dim]{backup_path}[/dim]")


# Common typer options reused across commands
_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to RECALLCORE_DB_PATH env var.",
    envvar="RECALLCORE_DB_PATH",
)

_config_option = typer.Option(  # noqa: B008
    None,
    "--config",
    help="Path to the scheduler JSON config. "
    "Falls back to RECALLCORE_CONFIG_PATH env var.",
    envvar="RECALLCORE_CONFIG_PATH",
)

_tag_option = typer.Option(  # noqa: B008
    None,
    "--tag",
    "-t",
    help="Only consider topics carrying this tag.",
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
):
    """Recallcore: FSRS review scheduling for logged topics."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


# ---------------------------------------------------------------------------
# Topic logging
# ---------------------------------------------------------------------------


@app.command()
def add(
    topic: str = typer.Argument(..., help="The topic name."),  # noqa: B008
    summary: Optional[str] = typer.Option(
        None, "--summary", "-s", help="One-sentence definition and context."
    ),
    tags: Optional[List[str]] = typer.Option(  # noqa: B008
        None, "--tag", "-t", help="Categorization tag (repeatable)."
    ),
    db: Optional[Path] = _db_option,
    config: Optional[Path] = _config_option,
):
    """Log a topic for later review."""
    db_path = _resolve_db_path(db)
    try:
        scheduler_config = load_scheduler_config(_resolve_config_path(config))
        with TopicDatabase(db_path=db_path) as db_inst:
            processor = ReviewProcessor(db_inst, scheduler_config)
            logged = processor.log_topics(
                [TopicEntry(topic=topic, summary=summary, tags=tags or [])]
            )
    except (DatabaseError, SchedulingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    for t in logged:
        console.print(f"Logged topic [cyan]{t.topic}[/cyan] ([dim]{t.id}[/dim])")


def _display_topics(cons: Console, topics: List[Topic]) -> None:
    table = Table(title="Logged Topics")
    table.add_column("ID", style="dim")
    table.add_column("Topic", style="cyan")
    table.add_column("Tags", style="yellow")
    table.add_column("State", style="magenta")
    table.add_column("Due")
    for t in topics:
        table.add_row(
            str(t.id),
            t.topic,
            ", ".join(t.tags),
            t.fsrs.state.value,
            t.fsrs.due.isoformat() if t.fsrs.due else "-",
        )
    cons.print(table)


@app.command()
def topics(
    tag: Optional[str] = _tag_option,
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", help="Only show the most recent N topics."
    ),
    db: Optional[Path] = _db_option,
):
    """List logged topics."""
    db_path = _resolve_db_path(db)
    try:
        with TopicDatabase(db_path=db_path) as db_inst:
            found = db_inst.get_topics(tag=tag, limit=limit)
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e

    if not found:
        console.print("[yellow]No topics logged yet.[/yellow]")
        return
    _display_topics(console, found)


# ---------------------------------------------------------------------------
# Review commands
# ---------------------------------------------------------------------------


def _display_selection(cons: Console, ranked: RankedTopic, show_stats: bool) -> None:
    topic = ranked.topic
    lines = [
        f"[bold]{topic.topic}[/bold]",
        topic.summary or "",
        f"ID: [dim]{topic.id}[/dim]",
        f"Tags: {', '.join(topic.tags) or '-'}",
        f"State: {topic.fsrs.state.value}",
    ]
    cons.print(Panel("\n".join(lines), title="Next Topic", border_style="green"))

    if show_stats:
        result = ranked.result
        stats_table = Table(title="Stats", show_header=False)
        stats_table.add_column("Metric", style="cyan")
        stats_table.add_column("Value", style="magenta")
        stats_table.add_row(
            "Retrievability",
            f"{result.retrievability:.4f}" if result.retrievability is not None else "-",
        )
        stats_table.add_row("Overdue", str(result.is_overdue))
        stats_table.add_row(
            "Days Overdue",
            f"{result.days_overdue:.2f}" if result.days_overdue is not None else "-",
        )
        stats_table.add_row(
            "Days Until Due",
            f"{result.days_until_due:.2f}" if result.days_until_due is not None else "-",
        )
        stats_table.add_row("Priority", f"{result.priority:.2f}")
        cons.print(stats_table)


@app.command("next")
def next_topic(
    tag: Optional[str] = _tag_option,
    stats: bool = typer.Option(
        False, "--stats", help="Include retrievability and due information."
    ),
    db: Optional[Path] = _db_option,
    config: Optional[Path] = _config_option,
):
    """Show the most urgent topic to review."""
    db_path = _resolve_db_path(db)
    try:
        scheduler_config = load_scheduler_config(_resolve_config_path(config))
        with TopicDatabase(db_path=db_path) as db_inst:
            processor = ReviewProcessor(db_inst, scheduler_config)
            selected = processor.review_next_topic(tag=tag)
    except (DatabaseError, SchedulingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if selected is None:
        if tag:
            console.print(
                f'[yellow]No topics with tag "{tag}" available for review.[/yellow]'
            )
        else:
            console.print("[yellow]No topics available for review.[/yellow]")
        return
    _display_selection(console, selected, stats)


def _display_new_state(cons: Console, topic: Topic, grade: int) -> None:
    fsrs = topic.fsrs
    table = Table(title=f"{topic.topic}: graded {grade} ({Grade(grade).name})")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("State", fsrs.state.value)
    table.add_row("Stability", f"{fsrs.stability:.2f}")
    table.add_row("Difficulty", f"{fsrs.difficulty:.2f}")
    table.add_row("Next Review", fsrs.due.isoformat() if fsrs.due else "-")
    table.add_row("Review Count", str(fsrs.review_count))
    table.add_row("Lapses", str(fsrs.lapses))
    cons.print(table)


@app.command()
def grade(
    topic_id: str = typer.Argument(..., help="The topic UUID."),  # noqa: B008
    grade_value: int = typer.Argument(  # noqa: B008
        ..., metavar="GRADE", help="1=Again (forgot), 2=Hard, 3=Good, 4=Easy"
    ),
    db: Optional[Path] = _db_option,
    config: Optional[Path] = _config_option,
):
    """Record a review outcome and reschedule the topic."""
    try:
        parsed_id = UUID(topic_id)
    except ValueError as e:
        console.print(f"[bold red]Error: '{topic_id}' is not a valid topic id.[/bold red]")
        raise typer.Exit(code=1) from e

    db_path = _resolve_db_path(db)
    try:
        validate_grade(grade_value)
        scheduler_config = load_scheduler_config(_resolve_config_path(config))
        _backup(db_path)
        with TopicDatabase(db_path=db_path) as db_inst:
            processor = ReviewProcessor(db_inst, scheduler_config)
            updated = processor.log_review_outcome(parsed_id, grade_value)
    except TopicNotFoundError as e:
        console.print(f"[bold red]Error: Topic not found. Topic ID: {topic_id}[/bold red]")
        raise typer.Exit(code=1) from e
    except (DatabaseError, SchedulingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    _display_new_state(console, updated, grade_value)


# ---------------------------------------------------------------------------
# Maintenance commands
# ---------------------------------------------------------------------------


@app.command()
def clear(
    db: Optional[Path] = _db_option,
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Bypass confirmation prompt."
    ),
):
    """Clear all logged topics. A backup is created first."""
    db_path = _resolve_db_path(db)
    if not yes:
        confirmed = typer.confirm("Are you sure you want to delete all topics?")
        if not confirmed:
            console.print("Clear operation cancelled.")
            raise typer.Exit()
    try:
        _backup(db_path)
        with TopicDatabase(db_path=db_path) as db_inst:
            removed = db_inst.clear_topics()
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e
    console.print(f"[green]All topics cleared ({removed} removed).[/green]")


@app.command("import-jsonl")
def import_jsonl(
    path: Path = typer.Argument(  # noqa: B008
        ..., exists=True, dir_okay=False, help="JSON-lines topic log to import."
    ),
    db: Optional[Path] = _db_option,
):
    """Import topics from a JSON-lines log, migrating records that lack ids or FSRS state."""
    db_path = _resolve_db_path(db)
    try:
        imported = load_topics_jsonl(path)
        _backup(db_path)
        with TopicDatabase(db_path=db_path) as db_inst:
            count = db_inst.append_topics(imported)
    except DatabaseError as e:
        console.print(f"[bold red]Import failed:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]Imported {count} topic(s) from {path.name}.[/bold green]")


@app.command()
def stats(
    db: Optional[Path] = _db_option,
):
    """Display topic counts by FSRS state."""
    db_path = _resolve_db_path(db)
    try:
        with TopicDatabase(db_path=db_path) as db_inst:
            total = db_inst.count_topics()
            state_counts = db_inst.get_state_counts()
    except DatabaseError as e:
        console.print(f"[bold]A database error occurred: {e}[/bold]")
        raise typer.Exit(code=1) from e

    if not total:
        console.print("[yellow]No topics found in the database.[/yellow]")
        return

    table = Table(title="Topic States")
    table.add_column("State", style="cyan")
    table.add_column("Count", style="magenta")
    for state, count in state_counts.items():
        table.add_row(state, str(count))
    table.add_row("total", str(total))
    console.print(table)


@app.command()
def restore(
    db: Optional[Path] = _db_option,
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Bypass confirmation prompt."
    ),
):
    """Restores the database from the most recent backup."""
    db_path = _resolve_db_path(db)
    latest_backup = find_latest_backup(db_path)
    if not latest_backup:
        console.print("[bold red]Error: No backup files found.[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"Found latest backup: [cyan]{latest_backup.name}[/cyan]")
    if not yes:
        confirmed = typer.confirm(
            "Are you sure you want to overwrite the current "
            "database with this backup?"
        )
        if not confirmed:
            console.print("Restore operation cancelled.")
            raise typer.Exit()

    try:
        shutil.copy2(latest_backup, db_path)
    except OSError as e:
        console.print(f"[bold red]Restore failed: {e}[/bold red]")
        raise typer.Exit(code=1) from e
    console.print(
        f"[bold green]Database successfully restored from {latest_backup.name}[/bold green]"
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
