"""TUI screens for tidydisk.

Both screens start a PipelineWorker and poll its ProgressChannel from a
textual interval timer, so the event loop never blocks on the worker.
"""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import Screen
from textual.timer import Timer
from textual.widgets import Button, DataTable, Footer, Header, ProgressBar, Static

from tidydisk.categories import CATEGORIES
from tidydisk.channel import CancelToken, ProgressChannel
from tidydisk.events import (
    TERMINAL_EVENTS,
    Cancelled,
    CategoryFinished,
    ChunkCompleted,
    Finished,
    OperationTimedOut,
    ProgressEvent,
    WorkerFailed,
)
from tidydisk.models import CategoryTag, format_size
from tidydisk.worker import PipelineWorker

DRAIN_INTERVAL = 0.1


class _FollowsWorker:
    """Mixin that drains a worker's channel on a timer."""

    worker: PipelineWorker | None = None
    channel: ProgressChannel | None = None
    cancel: CancelToken | None = None
    _timer: Timer | None = None

    def start_pipeline(self, **kwargs) -> None:
        self.channel = ProgressChannel()
        self.cancel = CancelToken()
        self.worker = PipelineWorker(channel=self.channel, cancel=self.cancel, **kwargs)
        self.worker.start()
        self._timer = self.set_interval(DRAIN_INTERVAL, self._drain)

    def _drain(self) -> None:
        for event in self.channel.drain():
            self.on_progress(event)
            if isinstance(event, TERMINAL_EVENTS):
                self._timer.stop()
                self.on_terminal(event)
                return

    def action_cancel_job(self) -> None:
        if self.cancel is not None and self.worker is not None and self.worker.is_alive():
            self.cancel.cancel()
            self.notify("Cancelling after the current step...", timeout=2)

    def on_progress(self, event: ProgressEvent) -> None:
        pass

    def on_terminal(self, event: ProgressEvent) -> None:
        pass


class MainScreen(_FollowsWorker, Screen):
    """Category browser with scan results."""

    BINDINGS = [
        Binding("space", "toggle_select", "Select"),
        Binding("c", "cleanup", "Clean Selected"),
        Binding("r", "rescan", "Rescan"),
        Binding("x", "cancel_job", "Cancel"),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="main-container"):
            yield Static("[bold]Categories[/bold]", id="cat-header")
            yield DataTable(id="category-table")
            yield ProgressBar(id="scan-progress", total=len(CATEGORIES))
            yield Static("", id="selection-info")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#category-table", DataTable)
        table.cursor_type = "row"
        table.add_columns("", "Category", "Items", "Size", "Status")
        self.action_rescan()

    def action_rescan(self) -> None:
        if self.worker is not None and self.worker.is_alive():
            self.notify("A scan is already running", severity="warning")
            return
        self.query_one("#scan-progress", ProgressBar).update(progress=0)
        self.notify("Scanning...", timeout=2)
        app = self.app
        self.start_pipeline(
            tags=list(CATEGORIES),
            context=app.context,
            workers=app.config.scan.workers,
        )

    def on_progress(self, event: ProgressEvent) -> None:
        if isinstance(event, CategoryFinished):
            self.query_one("#scan-progress", ProgressBar).advance(1)

    def on_terminal(self, event: ProgressEvent) -> None:
        if isinstance(event, WorkerFailed):
            self.notify(event.error, title="Scan failed", severity="error")
            return
        self.app.scan = event.summary.scan if event.summary else None
        self._update_table()
        if isinstance(event, Cancelled):
            self.notify("Scan cancelled; results are incomplete", severity="warning")
        else:
            self.notify("Scan complete!", timeout=2)

    def _update_table(self) -> None:
        app = self.app
        table = self.query_one("#category-table", DataTable)
        table.clear()
        if app.scan is None:
            return

        for tag, result in app.scan.results.items():
            checkbox = "[green]X[/green]" if tag in app.selected else "[ ]"
            if result.error and result.items:
                status = "[yellow]partial[/yellow]"
            elif result.error:
                status = "[red]failed[/red]"
            else:
                status = "[green]ok[/green]"
            table.add_row(
                checkbox,
                CATEGORIES[tag].name,
                str(result.item_count),
                format_size(result.total_bytes),
                status,
                key=tag.value,
            )
        self._update_selection_info()

    def _update_selection_info(self) -> None:
        app = self.app
        info = self.query_one("#selection-info", Static)
        if not app.selected or app.scan is None:
            info.update("[dim]No categories selected[/dim]")
            return
        items = app.scan.items(list(app.selected))
        total = sum(i.size_bytes for i in items)
        info.update(
            f"[bold]{len(items)}[/bold] items selected: [cyan]{format_size(total)}[/cyan]"
        )

    def action_toggle_select(self) -> None:
        table = self.query_one("#category-table", DataTable)
        if self.app.scan is None or table.row_count == 0:
            return
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        tag = CategoryTag(row_key.value)
        selected = self.app.selected
        if tag in selected:
            selected.remove(tag)
        else:
            selected.add(tag)

        row = table.cursor_row
        self._update_table()
        table.move_cursor(row=row)

    def action_cleanup(self) -> None:
        app = self.app
        if app.scan is None or not app.scan.items(list(app.selected)):
            self.notify("No items selected", severity="warning")
            return
        app.push_screen(CleanupScreen(), callback=lambda _: self.action_rescan())


class CleanupScreen(_FollowsWorker, Screen):
    """Cleanup confirmation and execution screen."""

    BINDINGS = [
        Binding("y", "confirm", "Yes, Clean"),
        Binding("n", "close", "Close"),
        Binding("x", "cancel_job", "Cancel"),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="cleanup-container"):
            yield Static("[bold]Cleanup Preview[/bold]", id="cleanup-title")
            yield DataTable(id="cleanup-table")
            yield Static("", id="cleanup-total")
            with Horizontal(id="cleanup-buttons"):
                yield Button("Clean", variant="success", id="btn-clean")
                yield Button("Close", variant="default", id="btn-close")
            yield ProgressBar(id="clean-progress")
            yield Static("", id="cleanup-status")
        yield Footer()

    def on_mount(self) -> None:
        app = self.app
        table = self.query_one("#cleanup-table", DataTable)
        table.add_columns("Category", "Items", "Size")

        self.items = app.scan.items(list(app.selected))
        for tag in app.scan.results:
            if tag not in app.selected:
                continue
            group = [i for i in self.items if i.category == tag]
            table.add_row(CATEGORIES[tag].name, str(len(group)), format_size(sum(i.size_bytes for i in group)))

        total = sum(i.size_bytes for i in self.items)
        self.query_one("#cleanup-total", Static).update(f"\n[bold]Total to clean: {format_size(total)}[/bold]")
        self.query_one("#clean-progress", ProgressBar).update(total=len(self.items), progress=0)
        if app.dry_run:
            self.query_one("#cleanup-status", Static).update(
                "\n[yellow]DRY RUN - No files will be deleted[/yellow]"
            )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-clean":
            self.action_confirm()
        elif event.button.id == "btn-close":
            self.action_close()

    def action_confirm(self) -> None:
        if self.worker is not None:
            return
        app = self.app
        selected = list(app.selected)
        self.query_one("#btn-clean", Button).disabled = True
        self.query_one("#cleanup-status", Static).update("\n[cyan]Cleaning...[/cyan]")
        self.start_pipeline(
            tags=selected,
            context=app.context,
            scan=app.scan,
            clean=True,
            select=lambda scan: scan.items(selected),
            session_log=app.session_log,
            chunk_size=app.config.deletion.chunk_size,
            service_timeout=app.config.deletion.service_timeout_secs,
        )

    def on_progress(self, event: ProgressEvent) -> None:
        if isinstance(event, ChunkCompleted):
            self.query_one("#clean-progress", ProgressBar).advance(event.count + event.failed + event.skipped)
        elif isinstance(event, OperationTimedOut):
            self.notify(f"{event.operation} timed out", severity="warning")

    def on_terminal(self, event: ProgressEvent) -> None:
        status = self.query_one("#cleanup-status", Static)
        if isinstance(event, WorkerFailed):
            status.update(f"\n[red]Cleanup failed: {event.error}[/red]")
            return

        summary = event.summary.deletion if event.summary else None
        if summary is None:
            status.update("\n[yellow]Cancelled before anything was removed[/yellow]")
            return

        headline = "Cleanup cancelled" if isinstance(event, Cancelled) else "Cleanup complete!"
        if summary.dry_run:
            headline = "Dry run complete"
        color = "green" if isinstance(event, Finished) and not summary.failed else "yellow"
        status.update(
            f"\n[bold {color}]{headline}[/bold {color}]\n"
            f"{summary.succeeded} removed, {summary.failed} failed, {summary.skipped} skipped, "
            f"{format_size(summary.bytes_freed)} freed"
        )
        self.app.selected.clear()
        self.notify(f"Freed {format_size(summary.bytes_freed)}", timeout=5)

    def action_close(self) -> None:
        if self.worker is not None and self.worker.is_alive():
            self.notify("Wait for the cleanup to finish, or press X to cancel", severity="warning")
            return
        self.dismiss(None)
