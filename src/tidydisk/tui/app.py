"""Main TUI application for tidydisk."""

from pathlib import Path

from textual.app import App
from textual.binding import Binding

from tidydisk.config import Config, get_history_dir, get_recovery_dir
from tidydisk.history import SessionLog
from tidydisk.models import CategoryTag, ScanResultSet
from tidydisk.providers.base import ScanContext
from tidydisk.store import RecoveryStore
from tidydisk.tui.screens import MainScreen


class TidyDiskApp(App):
    """Interactive disk cleanup application."""

    TITLE = "tidydisk"
    SUB_TITLE = "Disk cleanup with a safety net"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("?", "help", "Help"),
    ]

    SCREENS = {"main": MainScreen}

    def __init__(self, root: Path | None = None, dry_run: bool = False, config: Config | None = None):
        super().__init__()
        self.config = config or Config.load()
        self.context = ScanContext.from_config(
            self.config,
            root=root,
            dry_run=dry_run,
            store=RecoveryStore(get_recovery_dir()),
        )
        self.session_log = SessionLog(get_history_dir())
        self.scan: ScanResultSet | None = None
        self.selected: set[CategoryTag] = set()

    @property
    def dry_run(self) -> bool:
        return self.context.dry_run

    def on_mount(self) -> None:
        self.push_screen("main")

    def action_help(self) -> None:
        self.notify(
            "Space selects a category, C cleans the selection, R rescans, X cancels a running job",
            title="Help",
            timeout=5,
        )


def run_tui(root: Path | None = None, dry_run: bool = False) -> None:
    """Run the interactive TUI.

    Args:
        root: Root directory for the build-artifact walk
        dry_run: If True, don't actually delete files
    """
    app = TidyDiskApp(root=root, dry_run=dry_run)
    app.run()
