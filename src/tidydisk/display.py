"""Rich terminal display for tidydisk."""

import json
import time

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from tidydisk.channel import CancelToken, ProgressChannel
from tidydisk.events import (
    TERMINAL_EVENTS,
    Cancelled,
    CategoryFinished,
    CategoryStarted,
    ChunkCompleted,
    OperationTimedOut,
    ProgressEvent,
    WorkerFailed,
)
from tidydisk.models import (
    DeleteMode,
    DeletionSession,
    DeletionSummary,
    Outcome,
    RestoreResult,
    ScanItem,
    ScanResultSet,
    format_size,
)
from tidydisk.providers.base import CategoryProvider

console = Console()

# Foreground refresh rate while following a worker
DRAIN_INTERVAL = 0.1


def show_progress() -> Progress:
    """Create the progress bar used while a worker runs."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    )


def follow_progress(
    worker,
    channel: ProgressChannel,
    cancel: CancelToken,
    scan_total: int = 0,
    clean_total: int = 0,
) -> ProgressEvent | None:
    """
    Start a worker and render its events until it reports a terminal event.

    Ctrl-C requests cancellation and keeps draining, so the final counts
    still reach the screen.

    Args:
        worker: PipelineWorker, not yet started
        channel: Channel the worker emits on
        cancel: Token shared with the worker
        scan_total: Number of categories being scanned (0 when skipped)
        clean_total: Number of items selected for removal (0 when not cleaning)

    Returns:
        The terminal event, or None if the worker died without one
    """
    terminal: ProgressEvent | None = None
    with show_progress() as progress:
        scan_task = progress.add_task("Scanning...", total=scan_total, visible=scan_total > 0)
        clean_task = progress.add_task("Cleaning...", total=clean_total, visible=False)
        worker.start()

        while terminal is None:
            try:
                time.sleep(DRAIN_INTERVAL)
            except KeyboardInterrupt:
                if not cancel.cancelled:
                    cancel.cancel()
                    progress.console.print(
                        "[yellow]Cancelling after the current step finishes...[/yellow]"
                    )
            alive = worker.is_alive()
            for event in channel.drain():
                _render_event(progress, scan_task, clean_task, event)
                if isinstance(event, TERMINAL_EVENTS):
                    terminal = event
            if terminal is None and not alive and channel.empty():
                break

    worker.join(timeout=DRAIN_INTERVAL)
    return terminal


def _render_event(progress: Progress, scan_task, clean_task, event: ProgressEvent) -> None:
    if isinstance(event, CategoryStarted):
        progress.update(scan_task, description=f"Scanning {event.category.value}...")
    elif isinstance(event, CategoryFinished):
        progress.advance(scan_task)
        if event.error:
            progress.console.print(f"  [yellow]![/yellow] {event.category.value}: {event.error}")
    elif isinstance(event, ChunkCompleted):
        progress.update(
            clean_task,
            visible=True,
            description=f"Cleaning {event.category.value}...",
            advance=event.count + event.failed + event.skipped,
        )
    elif isinstance(event, OperationTimedOut):
        where = f" ({event.category.value})" if event.category else ""
        progress.console.print(f"  [yellow]![/yellow] {event.operation} timed out{where}")
    elif isinstance(event, Cancelled):
        progress.console.print("[yellow]Cancelled[/yellow]")
    elif isinstance(event, WorkerFailed):
        progress.console.print(f"[red]Error: {event.error}[/red]")


def show_scan_results(scan: ScanResultSet, show_items: bool = False) -> None:
    """Display per-category totals, and optionally the largest items."""
    table = Table(title="Scan Results", show_header=True, header_style="bold")
    table.add_column("Category")
    table.add_column("Items", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Status")

    for tag, result in scan.results.items():
        if result.error and result.items:
            status = "[yellow]partial[/yellow]"
        elif result.error:
            status = "[red]failed[/red]"
        else:
            status = "[green]ok[/green]"
        table.add_row(tag.value, str(result.item_count), format_size(result.total_bytes), status)

    console.print(table)

    for tag, error in scan.errors.items():
        console.print(f"  [yellow]![/yellow] {tag.value}: {error}")

    if show_items:
        for tag, result in scan.results.items():
            if not result.items:
                continue
            console.print(f"\n[bold]{tag.value}[/bold]")
            preview = result.preview()
            for item in preview:
                note = f" [dim]{item.origin}[/dim]" if item.origin else ""
                console.print(f"  {item.size_human:>10}  {item.path}{note}")
            if result.item_count > len(preview):
                console.print(f"  [dim]... and {result.item_count - len(preview)} more[/dim]")

    if scan.cancelled:
        console.print("[yellow]Scan was cancelled; results are incomplete.[/yellow]")
    console.print(
        f"\n[bold]Total: {scan.total_items} items, {format_size(scan.total_bytes)}[/bold]"
    )


def show_cleanup_preview(items: list[ScanItem], mode: DeleteMode, dry_run: bool = False) -> None:
    """Display what a clean run is about to remove."""
    if dry_run:
        console.print("[yellow]DRY RUN - No files will be deleted[/yellow]\n")
    elif mode == DeleteMode.PERMANENT:
        console.print("[red]PERMANENT - Items cannot be restored[/red]\n")

    totals: dict[str, list[int]] = {}
    for item in items:
        count_bytes = totals.setdefault(item.category.value, [0, 0])
        count_bytes[0] += 1
        count_bytes[1] += item.size_bytes

    table = Table(title="Cleanup Preview", show_header=True, header_style="bold")
    table.add_column("Category")
    table.add_column("Items", justify="right")
    table.add_column("Size", justify="right")
    for name, (count, size) in totals.items():
        table.add_row(name, str(count), format_size(size))

    console.print(table)
    console.print(f"\n[bold]Total to clean: {format_size(sum(i.size_bytes for i in items))}[/bold]")


def show_deletion_summary(summary: DeletionSummary) -> None:
    """Display the outcome of a clean run."""
    console.print()
    if summary.dry_run:
        console.print("[bold yellow]Dry Run Complete[/bold yellow]")
    elif summary.cancelled:
        console.print("[bold yellow]Cleanup Cancelled[/bold yellow]")
    else:
        console.print("[bold green]Cleanup Complete![/bold green]")
    console.print()

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Space freed", format_size(summary.bytes_freed))
    table.add_row("Items removed", str(summary.succeeded))
    if summary.failed:
        table.add_row("[red]Failed[/red]", str(summary.failed))
    if summary.skipped:
        table.add_row("Skipped", str(summary.skipped))
    if summary.timeouts:
        table.add_row("[yellow]Timed out[/yellow]", ", ".join(summary.timeouts))
    if summary.session_id:
        table.add_row("Session", summary.session_id)

    console.print(table)

    for path, reason in summary.failures[:10]:
        console.print(f"  [red]✗[/red] {path}: {reason}")
    if len(summary.failures) > 10:
        console.print(f"  [dim]... and {len(summary.failures) - 10} more (see cleaning.log)[/dim]")

    if summary.session_id and summary.mode == DeleteMode.SOFT and summary.succeeded:
        console.print("\n[dim]Run [bold]tidydisk restore --last[/bold] to undo[/dim]")


def show_restore_result(result: RestoreResult) -> None:
    """Display the outcome of a restore."""
    color = "green" if not result.errors else "yellow"
    console.print(f"[{color}]{result.summary()}[/{color}]")
    for path, reason in result.failures:
        console.print(f"  [red]✗[/red] {path}: {reason}")


def show_sessions(sessions: list[DeletionSession]) -> None:
    """Display recorded deletion sessions, newest first."""
    if not sessions:
        console.print("[yellow]No deletion history found.[/yellow]")
        return

    table = Table(title="Deletion History", show_header=True, header_style="bold")
    table.add_column("Session")
    table.add_column("Date")
    table.add_column("Mode")
    table.add_column("Removed", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Restorable", justify="right")

    for session in sessions:
        freed = sum(e.size_bytes for e in session.entries if e.outcome == Outcome.SUCCEEDED)
        table.add_row(
            session.id,
            session.created_at.strftime("%Y-%m-%d %H:%M"),
            session.mode.value,
            str(session.count(Outcome.SUCCEEDED)),
            str(session.count(Outcome.FAILED)),
            format_size(freed),
            str(len(session.restorable_entries)),
        )

    console.print(table)


def show_categories(providers: list[CategoryProvider]) -> None:
    """List the available categories."""
    console.print("[bold]Available Categories[/bold]\n")
    for provider in providers:
        notes = []
        if provider.project_aware:
            notes.append("project-aware")
        if not provider.reversible:
            notes.append("permanent")
        suffix = f" [dim]({', '.join(notes)})[/dim]" if notes else ""
        console.print(f"  • [bold]{provider.tag.value}[/bold] - {provider.name}{suffix}")
        if provider.description:
            console.print(f"    [dim]{provider.description}[/dim]")


def scan_to_json(scan: ScanResultSet) -> str:
    """Machine-readable scan output."""
    data = {
        "cancelled": scan.cancelled,
        "total_items": scan.total_items,
        "total_bytes": scan.total_bytes,
        "categories": {
            tag.value: {
                "item_count": result.item_count,
                "total_bytes": result.total_bytes,
                "error": result.error,
                "items": [item.model_dump(mode="json") for item in result.items],
            }
            for tag, result in scan.results.items()
        },
    }
    return json.dumps(data, indent=2)


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
