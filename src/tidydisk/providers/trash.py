"""Contents of the platform trash.

Items already sit in a trash, so removing them is permanent and they never
go through the soft-delete store.
"""

import os
import sys
from pathlib import Path

from tidydisk.errors import DeleteError
from tidydisk.fsutil import expand_path
from tidydisk.models import CategoryTag, ScanItem
from tidydisk.providers.base import LocationProvider, ScanContext


class TrashProvider(LocationProvider):
    tag = CategoryTag.TRASH
    name = "Trash"
    description = "Files already in the trash; emptying it cannot be undone"
    reversible = False
    age_filtered = False

    def default_roots(self) -> list[Path]:
        if sys.platform == "win32":
            drive = os.environ.get("SystemDrive", "C:")
            bin_root = Path(f"{drive}\\$Recycle.Bin")
            try:
                return [p for p in bin_root.iterdir() if p.is_dir()]
            except OSError:
                return []
        if sys.platform == "darwin":
            return [expand_path("~/.Trash")]
        data_home = os.environ.get("XDG_DATA_HOME") or "~/.local/share"
        return [expand_path(data_home) / "Trash" / "files"]

    def accepts(self, entry: os.DirEntry) -> bool:
        # desktop.ini and $I metadata files are handled with their data file
        return entry.name != "desktop.ini" and not entry.name.startswith("$I")

    def clean(self, item: ScanItem, context: ScanContext) -> str | None:
        handle = super().clean(item, context)
        if not context.dry_run:
            for sidecar in self._sidecars(Path(item.path)):
                try:
                    sidecar.unlink(missing_ok=True)
                except OSError as e:
                    raise DeleteError(item.path, f"removed, but metadata {sidecar} remains: {e}") from e
        return handle

    @staticmethod
    def _sidecars(path: Path) -> list[Path]:
        """Metadata files describing a trashed item."""
        if path.parent.name == "files" and path.parent.parent.name == "Trash":
            return [path.parent.parent / "info" / f"{path.name}.trashinfo"]
        if path.name.startswith("$R"):
            return [path.with_name("$I" + path.name[2:])]
        return []
