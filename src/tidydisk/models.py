"""Data models for tidydisk."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Number of items a category result shows before truncating
MAX_DISPLAY_ITEMS = 50


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (decimal units)."""
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


class CategoryTag(str, Enum):
    """Identity of a cleanup category."""

    CACHE = "cache"
    TEMP = "temp"
    TRASH = "trash"
    BUILD = "build"
    UPDATE_CACHE = "update_cache"


class DeleteMode(str, Enum):
    """How selected items are removed."""

    SOFT = "soft"  # Moved into a recovery store, restorable
    PERMANENT = "permanent"  # Removed irreversibly


class Outcome(str, Enum):
    """Final state of one item in a deletion run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


# =============================================================================
# Scan models
# =============================================================================


class ScanItem(BaseModel):
    """One discoverable, removable unit."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the item")
    size_bytes: int = Field(0, description="Size in bytes")
    category: CategoryTag = Field(..., description="Category that found the item")
    origin: str = Field("", description="Free-form note, e.g. the owning project root")
    is_dir: bool = Field(False, description="Whether the item is a directory")

    @property
    def size_human(self) -> str:
        return format_size(self.size_bytes)


class CategoryResult(BaseModel):
    """Aggregate result of scanning a single category."""

    category: CategoryTag
    items: list[ScanItem] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Error message if the scan failed")

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def total_bytes(self) -> int:
        return sum(i.size_bytes for i in self.items)

    @property
    def partial(self) -> bool:
        """True when the category reported items and an error."""
        return self.error is not None and bool(self.items)

    def preview(self, limit: int = MAX_DISPLAY_ITEMS) -> list[ScanItem]:
        """Largest items first, truncated for display."""
        return sorted(self.items, key=lambda i: i.size_bytes, reverse=True)[:limit]


class ScanResultSet(BaseModel):
    """All category results of one scan."""

    model_config = ConfigDict(frozen=True)

    results: dict[CategoryTag, CategoryResult] = Field(default_factory=dict)
    cancelled: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def total_items(self) -> int:
        return sum(r.item_count for r in self.results.values())

    @property
    def total_bytes(self) -> int:
        return sum(r.total_bytes for r in self.results.values())

    @property
    def errors(self) -> dict[CategoryTag, str]:
        return {tag: r.error for tag, r in self.results.items() if r.error}

    def items(self, tags: list[CategoryTag] | None = None) -> list[ScanItem]:
        """Derive a flat deletion list, grouped by category in scan order."""
        selected = []
        for tag, result in self.results.items():
            if tags is None or tag in tags:
                selected.extend(result.items)
        return selected

    def contains(self, item: ScanItem) -> bool:
        result = self.results.get(item.category)
        return result is not None and item in result.items


# =============================================================================
# Project activity
# =============================================================================


class ProjectType(str, Enum):
    NODE = "node"
    RUST = "rust"
    PYTHON = "python"
    JAVA = "java"
    DOTNET = "dotnet"
    GO = "go"
    UNKNOWN = "unknown"


class Verdict(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ProjectRecord(BaseModel):
    """Activity assessment of one project root. Never persisted."""

    model_config = ConfigDict(frozen=True)

    root: str
    project_type: ProjectType = ProjectType.UNKNOWN
    last_commit: Optional[datetime] = None
    dirty: Optional[bool] = None
    newest_marker_mtime: Optional[datetime] = None
    verdict: Verdict
    threshold_days: int
    reason: str = ""

    @property
    def is_active(self) -> bool:
        return self.verdict == Verdict.ACTIVE


# =============================================================================
# Deletion session
# =============================================================================


class SessionEntry(BaseModel):
    """Recorded outcome for one selected item."""

    model_config = ConfigDict(frozen=True)

    original_path: str
    handle: Optional[str] = Field(None, description="Soft-delete handle or backup reference")
    outcome: Outcome
    reason: Optional[str] = None
    size_bytes: int = 0
    category: Optional[CategoryTag] = None
    permanent: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def restorable(self) -> bool:
        return self.outcome == Outcome.SUCCEEDED and not self.permanent and self.handle is not None


class DeletionSession(BaseModel):
    """Append-only record of one clean run."""

    id: str
    created_at: datetime = Field(default_factory=datetime.now)
    mode: DeleteMode = DeleteMode.SOFT
    entries: list[SessionEntry] = Field(default_factory=list)
    restored: set[str] = Field(default_factory=set, description="Handles already restored")

    @property
    def restorable_entries(self) -> list[SessionEntry]:
        return [e for e in self.entries if e.restorable and e.handle not in self.restored]

    def count(self, outcome: Outcome) -> int:
        return sum(1 for e in self.entries if e.outcome == outcome)


class DeletionSummary(BaseModel):
    """Final report of a deletion run."""

    session_id: Optional[str] = None
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    bytes_freed: int = 0
    failures: list[tuple[str, str]] = Field(default_factory=list)
    timeouts: list[str] = Field(default_factory=list)
    cancelled: bool = False
    dry_run: bool = False
    mode: DeleteMode = DeleteMode.SOFT

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.skipped


class RestoreResult(BaseModel):
    """Counts from a restore operation."""

    restored: int = 0
    restored_bytes: int = 0
    errors: int = 0
    not_found: int = 0
    failures: list[tuple[str, str]] = Field(default_factory=list)

    def summary(self) -> str:
        return (
            f"Restored {self.restored} items ({format_size(self.restored_bytes)}), "
            f"{self.errors} errors, {self.not_found} not found"
        )


class RunSummary(BaseModel):
    """What a pipeline run produced: a scan and, optionally, a deletion."""

    scan: ScanResultSet
    deletion: Optional[DeletionSummary] = None


def resolve(path: str | Path) -> str:
    """Absolute string form used as the identity of a path."""
    return str(Path(path).expanduser().absolute())
