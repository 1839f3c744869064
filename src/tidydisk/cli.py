"""CLI interface for tidydisk."""

from pathlib import Path
from typing import Optional

import typer

from tidydisk import __version__
from tidydisk.categories import get_all_categories
from tidydisk.channel import CancelToken, ProgressChannel
from tidydisk.cleaner import validate_cleanup_request
from tidydisk.config import Config, get_history_dir, get_recovery_dir, parse_size
from tidydisk.display import (
    confirm_action,
    console,
    follow_progress,
    scan_to_json,
    show_categories,
    show_cleanup_preview,
    show_deletion_summary,
    show_restore_result,
    show_scan_results,
    show_sessions,
)
from tidydisk.errors import RestoreNotFound, RestoreUnsupported, SessionCorruptError
from tidydisk.events import Cancelled, Finished, WorkerFailed
from tidydisk.history import SessionLog
from tidydisk.log import configure_logging
from tidydisk.models import CategoryTag, DeleteMode, ScanResultSet
from tidydisk.providers.base import ScanContext
from tidydisk.restore import restore_all, restore_last, restore_path
from tidydisk.scanner import scan_all
from tidydisk.store import RecoveryStore, SystemTrash
from tidydisk.worker import PipelineWorker

# Create Typer app
app = typer.Typer(
    name="tidydisk",
    help="Find and safely remove caches, temp files and stale build output",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"tidydisk version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug output."),
) -> None:
    """tidydisk - disk cleanup with a safety net."""
    configure_logging(verbose=verbose)


def _selected_tags(
    cache: bool, temp: bool, trash: bool, build: bool, update_cache: bool, all_: bool
) -> list[CategoryTag]:
    if all_:
        return list(CategoryTag)
    flags = {
        CategoryTag.CACHE: cache,
        CategoryTag.TEMP: temp,
        CategoryTag.TRASH: trash,
        CategoryTag.BUILD: build,
        CategoryTag.UPDATE_CACHE: update_cache,
    }
    return [tag for tag, on in flags.items() if on]


def _load_config(
    project_age: Optional[int],
    min_age: Optional[int],
    min_size: Optional[str],
    exclude: Optional[list[str]],
    chunk_size: Optional[int] = None,
) -> Config:
    min_size_bytes = None
    if min_size is not None:
        try:
            min_size_bytes = parse_size(min_size)
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--min-size") from None
    return Config.load().with_overrides(
        project_age_days=project_age,
        min_age_days=min_age,
        min_size_bytes=min_size_bytes,
        exclude=exclude,
        chunk_size=chunk_size,
    )


def _run_worker(worker: PipelineWorker, channel: ProgressChannel, cancel: CancelToken, **totals):
    """Follow a worker and turn failure into a non-zero exit."""
    terminal = follow_progress(worker, channel, cancel, **totals)
    if isinstance(terminal, WorkerFailed) or terminal is None:
        raise typer.Exit(1)
    return terminal


@app.command()
def scan(
    cache: bool = typer.Option(False, "--cache", help="Package manager and application caches"),
    temp: bool = typer.Option(False, "--temp", help="System temp directories"),
    trash: bool = typer.Option(False, "--trash", help="Trash / recycle bin contents"),
    build: bool = typer.Option(False, "--build", help="Build artifacts of inactive projects"),
    update_cache: bool = typer.Option(False, "--update-cache", help="OS update download caches"),
    all_: bool = typer.Option(False, "--all", help="All categories"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Root for the project walk"),
    project_age: Optional[int] = typer.Option(None, "--project-age", help="Days without activity before a project is inactive"),
    min_age: Optional[int] = typer.Option(None, "--min-age", help="Minimum age in days of cache/temp entries"),
    min_size: Optional[str] = typer.Option(None, "--min-size", help="Ignore items smaller than this (e.g. 10MB)"),
    exclude: Optional[list[str]] = typer.Option(None, "--exclude", "-e", help="Glob pattern to skip (repeatable)"),
    items: bool = typer.Option(False, "--items", help="List the largest items of each category"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
) -> None:
    """Scan for removable items without deleting anything."""
    tags = _selected_tags(cache, temp, trash, build, update_cache, all_) or list(CategoryTag)
    config = _load_config(project_age, min_age, min_size, exclude)
    context = ScanContext.from_config(config, root=path)

    if as_json:
        result = scan_all(tags, context, max_workers=config.scan.workers)
        typer.echo(scan_to_json(result))
        return

    channel = ProgressChannel()
    cancel = CancelToken()
    worker = PipelineWorker(tags, context, channel, cancel=cancel, workers=config.scan.workers)
    terminal = _run_worker(worker, channel, cancel, scan_total=len(tags))

    if terminal.summary is not None:
        scanned = terminal.summary.scan
        console.print()
        show_scan_results(scanned, show_items=items)
        if scanned.total_items and not scanned.cancelled:
            console.print("[dim]Run [bold]tidydisk clean[/bold] with the same flags to remove them[/dim]")


@app.command()
def clean(
    cache: bool = typer.Option(False, "--cache", help="Package manager and application caches"),
    temp: bool = typer.Option(False, "--temp", help="System temp directories"),
    trash: bool = typer.Option(False, "--trash", help="Trash / recycle bin contents"),
    build: bool = typer.Option(False, "--build", help="Build artifacts of inactive projects"),
    update_cache: bool = typer.Option(False, "--update-cache", help="OS update download caches"),
    all_: bool = typer.Option(False, "--all", help="All categories"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Root for the project walk"),
    project_age: Optional[int] = typer.Option(None, "--project-age", help="Days without activity before a project is inactive"),
    min_age: Optional[int] = typer.Option(None, "--min-age", help="Minimum age in days of cache/temp entries"),
    min_size: Optional[str] = typer.Option(None, "--min-size", help="Ignore items smaller than this (e.g. 10MB)"),
    exclude: Optional[list[str]] = typer.Option(None, "--exclude", "-e", help="Glob pattern to skip (repeatable)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate without deleting"),
    permanent: bool = typer.Option(False, "--permanent", help="Delete irreversibly instead of moving to the recovery store"),
    system_trash: bool = typer.Option(False, "--system-trash", help="Move items to the system trash instead of the recovery store"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", min=1, help="Items per removal batch"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompts"),
) -> None:
    """Scan, then remove the selected categories."""
    tags = _selected_tags(cache, temp, trash, build, update_cache, all_)
    if not tags:
        console.print("[red]Error: Specify at least one category or --all[/red]")
        console.print("  tidydisk clean --cache            # Clean package manager caches")
        console.print("  tidydisk clean --build -p ~/code  # Clean stale build output")
        raise typer.Exit(1)
    if permanent and system_trash:
        console.print("[red]Error: --permanent and --system-trash cannot be combined[/red]")
        raise typer.Exit(1)

    config = _load_config(project_age, min_age, min_size, exclude, chunk_size)
    if permanent:
        mode, store = DeleteMode.PERMANENT, None
    elif system_trash:
        mode, store = DeleteMode.SOFT, SystemTrash()
    else:
        mode, store = DeleteMode.SOFT, RecoveryStore(get_recovery_dir())
    context = ScanContext.from_config(config, root=path, mode=mode, dry_run=dry_run, store=store)

    console.print("[bold]Scanning for items to clean...[/bold]\n")
    channel = ProgressChannel()
    cancel = CancelToken()
    scanner = PipelineWorker(tags, context, channel, cancel=cancel, workers=config.scan.workers)
    terminal = _run_worker(scanner, channel, cancel, scan_total=len(tags))
    if isinstance(terminal, Cancelled):
        raise typer.Exit(1)

    scanned: ScanResultSet = terminal.summary.scan
    selected = scanned.items()
    for tag, error in scanned.errors.items():
        console.print(f"  [yellow]![/yellow] {tag.value}: {error}")
    if not selected:
        console.print("[yellow]Nothing to clean.[/yellow]")
        raise typer.Exit(0)

    console.print()
    show_cleanup_preview(selected, mode, dry_run=dry_run)

    is_valid, error = validate_cleanup_request(selected, config.deletion.max_cleanup_bytes)
    if not is_valid:
        console.print(f"[red]Safety check failed: {error}[/red]")
        raise typer.Exit(1)

    if not yes and not dry_run:
        console.print()
        if not confirm_action("Proceed with cleanup?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    console.print("\n[bold]Cleaning...[/bold]")
    channel = ProgressChannel()
    cancel = CancelToken()
    cleaner = PipelineWorker(
        tags,
        context,
        channel,
        cancel=cancel,
        scan=scanned,
        clean=True,
        session_log=SessionLog(get_history_dir()),
        chunk_size=config.deletion.chunk_size,
        service_timeout=config.deletion.service_timeout_secs,
    )
    terminal = _run_worker(cleaner, channel, cancel, clean_total=len(selected))

    deletion = terminal.summary.deletion if terminal.summary else None
    if deletion is not None:
        show_deletion_summary(deletion)
    if isinstance(terminal, Finished) and deletion is not None and deletion.failed:
        raise typer.Exit(1)


@app.command()
def restore(
    last: bool = typer.Option(False, "--last", help="Undo the most recent clean"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Restore one path (or everything removed beneath it)"),
    all_: bool = typer.Option(False, "--all", help="Restore everything in the recovery store"),
) -> None:
    """Restore items removed by earlier cleans."""
    if sum([last, path is not None, all_]) != 1:
        console.print("[red]Error: Specify exactly one of --last, --path or --all[/red]")
        raise typer.Exit(1)

    store = RecoveryStore(get_recovery_dir())
    try:
        if last:
            result = restore_last(SessionLog(get_history_dir()), store)
        elif path is not None:
            result = restore_path(path, store)
        else:
            result = restore_all(store)
    except RestoreNotFound as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)
    except (SessionCorruptError, RestoreUnsupported) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    show_restore_result(result)
    if result.errors:
        raise typer.Exit(1)


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of sessions to show"),
) -> None:
    """Show past deletion sessions."""
    log = SessionLog(get_history_dir())
    try:
        ids = log.list_ids()[:limit]
    except SessionCorruptError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    sessions = []
    for session_id in ids:
        try:
            sessions.append(log.load(session_id))
        except SessionCorruptError as e:
            console.print(f"[yellow]Skipping {session_id}: {e}[/yellow]")
    show_sessions(sessions)


@app.command(name="list")
def list_categories() -> None:
    """List all cleanup categories."""
    show_categories(get_all_categories())
    console.print("\n[dim]Run [bold]tidydisk scan --all[/bold] to see what can be removed[/dim]")


@app.command()
def tui(
    path: Path = typer.Option(Path("."), "--path", "-p", help="Root for the project walk"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate cleanup without deleting"),
) -> None:
    """Launch the interactive TUI."""
    try:
        from tidydisk.tui import run_tui
    except ImportError:
        console.print("[red]TUI not available.[/red]")
        console.print("Install with: [bold]pip install tidydisk[tui][/bold]")
        raise typer.Exit(1)

    run_tui(root=path, dry_run=dry_run)


if __name__ == "__main__":
    app()
