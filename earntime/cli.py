"""
EarnTime CLI - Typer Commands

Earn minutes with a countdown, spend them with another, and look at
the history, stats and exports from the terminal.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn
from rich.table import Table

from earntime.config import EarnTimeConfig, load_config
from earntime.exceptions import EarnTimeError
from earntime.models import TaskCategory
from earntime.persistence import EarnTimeRepository
from earntime.service import EarnTimeService
from earntime.stats import ExportFormat, RangeOption
from earntime.timers import AsyncTicker, EarningPhase, SpendingPhase

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    name="earntime",
    help="Earn screen-time minutes by finishing timed tasks, then spend them.",
    add_completion=False,
    no_args_is_help=True,
)


@contextmanager
def open_service(db_path: str | None = None) -> Iterator[tuple[EarnTimeConfig, EarnTimeService]]:
    """Load config, open the store and hand back a ready service."""
    config = load_config()
    if db_path:
        config.db_path = db_path
    with EarnTimeRepository(config.db_path) as repo:
        yield config, EarnTimeService(repo, archive_after_days=config.archive_after_days)


def fail(error: EarnTimeError) -> None:
    """Print an error and exit with status 1."""
    console.print(f"[red]{error.message}[/red]")
    raise typer.Exit(1)


def format_time(seconds: int) -> str:
    minutes, remainder = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{remainder:02d}"


def parse_range(value: str) -> RangeOption:
    try:
        return RangeOption.parse(value)
    except ValueError:
        raise typer.BadParameter("Use 7d, 30d or all")


DbOption = typer.Option(None, "--db", help="Path to the EarnTime database")


@app.command()
def balance(db: str | None = DbOption) -> None:
    """Show the minutes available to spend."""
    try:
        with open_service(db) as (_, service):
            minutes = service.balance()
    except EarnTimeError as e:
        fail(e)
        return
    console.print(Panel(f"[bold green]{minutes}[/bold green] minutes available", title="Credits"))


@app.command()
def earn(
    category: TaskCategory | None = typer.Option(
        None, "--category", "-c", help="What you are working on (default: from config)"
    ),
    minutes: int | None = typer.Option(None, "--minutes", "-m", help="Countdown length (default: category default)"),
    label: str = typer.Option("", "--label", "-l", help="Custom name shown instead of the category"),
    notes: str | None = typer.Option(None, "--notes", help="Notes saved with the session"),
    discard: bool = typer.Option(False, "--discard", help="On Ctrl+C cancel instead of finishing early"),
    db: str | None = DbOption,
) -> None:
    """
    Run an earning countdown.

    Ctrl+C finishes the session early and credits the time done so far.
    """
    try:
        with open_service(db) as (config, service):
            category = category or config.default_category
            timer = service.earning
            timer.configure(category=category, custom_label=label, duration_minutes=minutes)
            bounds = config.earn_duration_bounds
            if not bounds.contains(timer.state.duration_minutes):
                console.print(
                    f"[yellow]Sessions are usually {bounds.minimum}-{bounds.maximum} minutes.[/yellow]"
                )

            title = label.strip() or category.display_name
            timer.start()
            _run_countdown(timer, f"Earning: {title}", timer.state.total_duration_seconds)

            if timer.phase == EarningPhase.RUNNING:
                if discard:
                    timer.cancel()
                    console.print("[yellow]Session cancelled, nothing earned.[/yellow]")
                    return
                timer.finish_early()

            if timer.phase != EarningPhase.COMPLETED:
                return
            session = service.save_completed_session(notes=notes)
            console.print(
                f"[green]+{session.earned_minutes} min[/green] for {session.display_name} "
                f"(balance: {service.balance()} min)"
            )
    except EarnTimeError as e:
        fail(e)


@app.command()
def spend(
    minutes: int | None = typer.Option(None, "--minutes", "-m", help="Minutes of screen time to use"),
    db: str | None = DbOption,
) -> None:
    """
    Run a screen-time countdown and log it when it finishes.

    Ctrl+C cancels the countdown; a cancelled spend costs nothing.
    """
    try:
        with open_service(db) as (config, service):
            requested = minutes if minutes is not None else config.default_spend_minutes
            bounds = config.spend_duration_bounds
            if not bounds.contains(requested):
                console.print(
                    f"[yellow]Screen-time blocks are usually {bounds.minimum}-{bounds.maximum} minutes.[/yellow]"
                )
            available = service.start_spend(requested)
            console.print(f"Spending {requested} of {available} available minutes.")

            timer = service.spending
            _run_countdown(timer, "Screen time", requested * 60)

            if timer.phase == SpendingPhase.COUNTING_DOWN:
                timer.cancel()
                console.print("[yellow]Spend cancelled, no minutes used.[/yellow]")
                return

            log = service.commit_spend()
            if log is not None:
                console.print(
                    f"[orange3]-{log.minutes_used} min[/orange3] logged (balance: {service.balance()} min)"
                )
    except EarnTimeError as e:
        fail(e)


def _run_countdown(timer, description: str, total_seconds: int) -> None:
    """Tick a timer once per second with a progress bar until it finishes or Ctrl+C."""
    with Progress(
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TextColumn("{task.fields[clock]}"),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task(description, total=total_seconds, clock=format_time(total_seconds))

        def on_tick() -> None:
            remaining = timer.remaining_seconds
            progress.update(task_id, completed=total_seconds - remaining, clock=format_time(remaining))

        ticker = AsyncTicker(timer, on_tick=on_tick)
        try:
            asyncio.run(ticker.run())
        except KeyboardInterrupt:
            ticker.stop()


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="Rows per table"),
    db: str | None = DbOption,
) -> None:
    """Show recent sessions and spend logs."""
    try:
        with open_service(db) as (_, service):
            sessions, logs = service.recent_activity(limit)
    except EarnTimeError as e:
        fail(e)
        return

    earned = Table(title="Earned")
    earned.add_column("ID", style="dim")
    earned.add_column("Task")
    earned.add_column("Finished")
    earned.add_column("Duration", justify="right")
    earned.add_column("Earned", justify="right", style="green")
    for session in sessions:
        earned.add_row(
            session.id,
            session.display_name,
            f"{session.end_date:%Y-%m-%d %H:%M}",
            f"{session.duration_minutes} min",
            f"+{session.earned_minutes}",
        )

    spent = Table(title="Spent")
    spent.add_column("ID", style="dim")
    spent.add_column("Source")
    spent.add_column("Started")
    spent.add_column("Minutes", justify="right", style="orange3")
    for log in logs:
        spent.add_row(log.id, log.source, f"{log.created_at:%Y-%m-%d %H:%M}", f"-{log.minutes_used}")

    console.print(earned)
    console.print(spent)


@app.command()
def stats(
    range_: str = typer.Option("7d", "--range", "-r", help="7d, 30d or all"),
    db: str | None = DbOption,
) -> None:
    """Show earned vs. spent minutes per day."""
    range_option = parse_range(range_)
    try:
        with open_service(db) as (_, service):
            series = service.daily_series(range_option)
            summary = service.summary(range_option)
    except EarnTimeError as e:
        fail(e)
        return

    table = Table(title=f"Earned vs. Spent ({range_option.label})")
    table.add_column("Date")
    table.add_column("Earned", justify="right", style="green")
    table.add_column("Spent", justify="right", style="orange3")
    for stat in series:
        table.add_row(stat.day.isoformat(), str(stat.earned_minutes), str(stat.spent_minutes))
    console.print(table)

    lines = [
        f"Earned: [green]{summary.total_earned}[/green]  "
        f"Spent: [orange3]{summary.total_spent}[/orange3]  "
        f"Balance: [blue]{summary.balance}[/blue]"
    ]
    if summary.best_category is not None:
        lines.append(
            f"Strongest habit: {summary.best_category.display_name} - "
            f"{summary.best_category_minutes} minutes logged"
        )
    console.print(Panel("\n".join(lines), title="Summary"))


@app.command()
def export(
    range_: str = typer.Option("7d", "--range", "-r", help="7d, 30d or all"),
    format_: ExportFormat = typer.Option(ExportFormat.CSV, "--format", "-f", help="csv or json"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Directory to write into"),
    db: str | None = DbOption,
) -> None:
    """Export the daily series as CSV or JSON."""
    range_option = parse_range(range_)
    try:
        with open_service(db) as (config, service):
            if not service.daily_series(range_option):
                console.print("[yellow]No activity in this range yet, exporting an empty table.[/yellow]")
            document = service.export(range_option, format_)
            path = document.write_to(output or config.export_dir)
    except EarnTimeError as e:
        fail(e)
        return
    except OSError as e:
        console.print(f"[red]Could not write export: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"Wrote [bold]{path}[/bold]")


@app.command()
def archive(db: str | None = DbOption) -> None:
    """Archive history older than the configured number of days."""
    try:
        with open_service(db) as (_, service):
            selection = service.archive_old_records()
    except EarnTimeError as e:
        fail(e)
        return
    if selection is None:
        console.print("[yellow]An archive run is already in progress.[/yellow]")
    elif selection.is_empty:
        console.print("Nothing to archive.")
    else:
        console.print(
            f"Archived {len(selection.sessions)} sessions and {len(selection.logs)} spend logs "
            f"from before {selection.cutoff:%Y-%m-%d}."
        )


@app.command("delete-session")
def delete_session(session_id: str, db: str | None = DbOption) -> None:
    """Hide a session from the balance and stats."""
    try:
        with open_service(db) as (_, service):
            session = service.soft_delete_session(session_id)
    except EarnTimeError as e:
        fail(e)
        return
    console.print(f"Deleted {session.display_name} (+{session.earned_minutes} min).")


@app.command("delete-log")
def delete_log(log_id: str, db: str | None = DbOption) -> None:
    """Hide a spend log from the balance and stats."""
    try:
        with open_service(db) as (_, service):
            log = service.soft_delete_log(log_id)
    except EarnTimeError as e:
        fail(e)
        return
    console.print(f"Deleted spend log (-{log.minutes_used} min).")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
