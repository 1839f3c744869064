"""Category provider interface and the scan/clean context."""

import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import ClassVar, Optional

from tidydisk.config import Config
from tidydisk.errors import AccessDenied, DeleteError, NotFound
from tidydisk.fsutil import age_days, expand_path, is_excluded, measure, remove_path
from tidydisk.models import CategoryResult, CategoryTag, DeleteMode, ScanItem
from tidydisk.services import ServiceSpec
from tidydisk.store import SoftDeleteStore, classify_os_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanContext:
    """Read-only inputs for provider scan and clean calls."""

    root: Path = field(default_factory=Path.cwd)
    project_age_days: int = 14
    min_age_days: int = 1
    min_size_bytes: int = 0
    exclude: tuple[str, ...] = ()
    max_depth: int = 8
    git_timeout: float = 5.0
    mode: DeleteMode = DeleteMode.SOFT
    dry_run: bool = False
    store: Optional[SoftDeleteStore] = None
    now: float = field(default_factory=time.time)

    @classmethod
    def from_config(cls, config: Config, root: Path | None = None, **kwargs) -> "ScanContext":
        return cls(
            root=(root or Path.cwd()).absolute(),
            project_age_days=config.thresholds.project_age_days,
            min_age_days=config.thresholds.min_age_days,
            min_size_bytes=config.thresholds.min_size_bytes,
            exclude=tuple(config.exclusions.patterns),
            max_depth=config.scan.max_depth,
            git_timeout=config.scan.git_timeout_secs,
            **kwargs,
        )

    def with_options(self, **changes) -> "ScanContext":
        return replace(self, **changes)


class CategoryProvider(ABC):
    """Knows where one class of artifact lives and how to measure and remove it.

    ``scan`` never deletes and ``clean`` never re-scans.
    """

    tag: ClassVar[CategoryTag]
    name: ClassVar[str]
    description: ClassVar[str] = ""
    project_aware: ClassVar[bool] = False
    # False when items cannot go through the soft-delete store
    reversible: ClassVar[bool] = True

    @property
    def service(self) -> ServiceSpec | None:
        """Service that must be stopped while this category is cleaned."""
        return None

    @abstractmethod
    def scan(self, context: ScanContext) -> CategoryResult:
        """Find this category's items. Must not modify the filesystem."""

    def clean(self, item: ScanItem, context: ScanContext) -> str | None:
        """
        Remove one item.

        Args:
            item: Item produced by this provider's scan
            context: Mode, dry-run flag and store

        Returns:
            Soft-delete handle, or None for permanent and dry-run removals

        Raises:
            DeleteError: If the item could not be removed
        """
        path = Path(item.path)
        if context.dry_run:
            self.check_removable(path)
            return None

        if context.mode == DeleteMode.PERMANENT or not self.reversible:
            try:
                remove_path(path)
            except OSError as e:
                raise classify_os_error(item.path, e) from e
            return None

        if context.store is None:
            raise DeleteError(item.path, "no soft-delete store configured")
        outcome = context.store.soft_delete([item.path], {item.path: item.size_bytes})[0]
        if outcome.error is not None:
            raise outcome.error
        return outcome.handle

    @staticmethod
    def check_removable(path: Path) -> None:
        """Validate reachability and permissions without removing anything."""
        if not path.exists() and not path.is_symlink():
            raise NotFound(path)
        if not os.access(path.parent, os.W_OK | os.X_OK):
            raise AccessDenied(path, f"no write permission on {path.parent}")


class LocationProvider(CategoryProvider):
    """Provider whose items are the direct children of well-known directories."""

    # Apply the min_age_days threshold to children
    age_filtered: ClassVar[bool] = True

    def __init__(self, roots: list[str | Path] | None = None):
        self._roots = [expand_path(r) for r in roots] if roots is not None else None

    @abstractmethod
    def default_roots(self) -> list[Path]:
        """Well-known locations for the current platform."""

    @property
    def roots(self) -> list[Path]:
        if self._roots is not None:
            return self._roots
        seen: list[Path] = []
        for root in self.default_roots():
            if root not in seen:
                seen.append(root)
        return seen

    def accepts(self, entry: os.DirEntry) -> bool:
        """Hook for providers that only want some children."""
        return True

    def origin(self, root: Path) -> str:
        return str(root)

    def scan(self, context: ScanContext) -> CategoryResult:
        items: list[ScanItem] = []
        errors: list[str] = []

        for root in self.roots:
            if not root.is_dir():
                continue
            try:
                with os.scandir(root) as entries:
                    children = [e for e in entries if not e.is_symlink() and self.accepts(e)]
            except OSError as e:
                errors.append(f"{root}: {classify_os_error(str(root), e).reason}")
                continue

            for entry in sorted(children, key=lambda e: e.name):
                item = self._scan_entry(Path(entry.path), root, context)
                if item is not None:
                    items.append(item)

        return CategoryResult(
            category=self.tag,
            items=items,
            error="; ".join(errors) if errors else None,
        )

    def _scan_entry(self, path: Path, root: Path, context: ScanContext) -> ScanItem | None:
        if is_excluded(path, context.exclude):
            return None
        try:
            if self.age_filtered and age_days(path, context.now) < context.min_age_days:
                return None
            size = measure(path)
            is_dir = path.is_dir()
        except OSError as e:
            logger.debug("Skipping %s: %s", path, e)
            return None
        if size < context.min_size_bytes:
            return None
        return ScanItem(
            path=str(path),
            size_bytes=size,
            category=self.tag,
            origin=self.origin(root),
            is_dir=is_dir,
        )
