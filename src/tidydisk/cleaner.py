"""Deletion engine with safety checks for tidydisk.

Selected items are removed category by category in fixed-size chunks. Each
chunk is one batched call into the soft-delete store (or the permanent
remover); items the batch could not remove are retried one at a time through
their provider. Every selected item ends with exactly one session entry.
"""

import logging
from contextlib import nullcontext
from datetime import datetime
from pathlib import Path
from typing import Callable

from tidydisk.categories import CATEGORIES
from tidydisk.channel import CancelToken
from tidydisk.errors import (
    BatchFallbackFailure,
    BlockedPath,
    DeleteError,
    OperationCancelled,
    UnscannedItemError,
)
from tidydisk.events import ChunkCompleted, OperationTimedOut, ProgressEvent
from tidydisk.fsutil import expand_path, remove_paths
from tidydisk.history import SessionLog, SessionWriter
from tidydisk.models import (
    CategoryTag,
    DeleteMode,
    DeletionSession,
    DeletionSummary,
    Outcome,
    ScanItem,
    ScanResultSet,
    SessionEntry,
)
from tidydisk.providers.base import CategoryProvider, ScanContext
from tidydisk.services import ServiceGuard
from tidydisk.store import StoreOutcome

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 25
DEFAULT_SERVICE_TIMEOUT = 30.0

# Paths that must never be removed themselves
BLOCKED_PATHS = [
    "~",
    "~/Documents",
    "~/Desktop",
    "~/Downloads",
    "~/Pictures",
    "~/Music",
    "~/Movies",
    "~/Videos",
    "~/Projects",
    "~/Library",
    "~/.cache",
    "~/.local",
    "~/.local/share",
    "/",
    "/bin",
    "/boot",
    "/etc",
    "/home",
    "/lib",
    "/opt",
    "/root",
    "/sbin",
    "/System",
    "/Library",
    "/Applications",
    "/Users",
    "/usr",
    "/var",
    "/tmp",
    "/var/tmp",
    "C:\\",
    "C:\\Windows",
    "C:\\Users",
    "C:\\Program Files",
]


def is_path_safe(path: Path | str) -> bool:
    """
    Check if a path is safe to delete.

    Args:
        path: Path to check

    Returns:
        False for blocked locations and filesystem roots, True otherwise
    """
    candidate = Path(path)
    if candidate == Path(candidate.anchor):
        return False
    for blocked in BLOCKED_PATHS:
        if candidate == expand_path(blocked):
            return False
    return True


def validate_cleanup_request(
    items: list[ScanItem],
    max_bytes: int,
) -> tuple[bool, str | None]:
    """
    Validate a cleanup request for safety.

    Args:
        items: Items selected for removal
        max_bytes: Largest total allowed in one request

    Returns:
        Tuple of (is_valid, error_message)
    """
    total_bytes = sum(i.size_bytes for i in items)
    if total_bytes > max_bytes:
        return False, (
            f"Cleanup exceeds safety limit ({total_bytes / 1024**3:.1f} GB > "
            f"{max_bytes / 1024**3:.0f} GB)"
        )
    return True, None


def chunked(items: list[ScanItem], size: int) -> list[list[ScanItem]]:
    """Split items into ordered chunks of at most size items."""
    return [items[i : i + size] for i in range(0, len(items), size)]


class DeletionEngine:
    """Turns a selected item list into recorded removals."""

    def __init__(
        self,
        context: ScanContext,
        session_log: SessionLog | None = None,
        emit: Callable[[ProgressEvent], None] | None = None,
        cancel: CancelToken | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        service_timeout: float = DEFAULT_SERVICE_TIMEOUT,
        providers: dict[CategoryTag, CategoryProvider] | None = None,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if context.mode == DeleteMode.SOFT and context.store is None and not context.dry_run:
            raise ValueError("soft mode needs a soft-delete store")
        self.context = context
        self.session_log = session_log
        self.emit = emit or (lambda event: None)
        self.cancel = cancel or CancelToken()
        self.chunk_size = chunk_size
        self.service_timeout = service_timeout
        self.providers = providers if providers is not None else CATEGORIES

    def run(self, items: list[ScanItem], scanned: ScanResultSet) -> DeletionSummary:
        """
        Remove the selected items.

        Cancellation is checked before each chunk. On cancel the current chunk
        finishes, remaining items are recorded as skipped and the summary is
        marked cancelled; nothing already removed is rolled back.

        Args:
            items: Items to remove; each must come from ``scanned``
            scanned: Scan result set the selection was derived from

        Returns:
            DeletionSummary with one outcome per selected item

        Raises:
            UnscannedItemError: If any item was not part of ``scanned``
        """
        known = set(scanned.items())
        unscanned = [i.path for i in items if i not in known]
        if unscanned:
            raise UnscannedItemError(unscanned)

        writer = self._open_session()
        summary = DeletionSummary(
            session_id=writer.session.id if writer.path else None,
            dry_run=self.context.dry_run,
            mode=self.context.mode,
        )

        groups: dict[CategoryTag, list[ScanItem]] = {}
        for item in dict.fromkeys(items):
            groups.setdefault(item.category, []).append(item)

        for tag, group in groups.items():
            if self.cancel.cancelled:
                self._skip(group, "cancelled", writer, summary)
                continue
            self._run_category(self.providers[tag], group, writer, summary)

        if summary.cancelled:
            logger.info(
                "Deletion %s (%d failed, %d skipped)",
                OperationCancelled(summary.succeeded),
                summary.failed,
                summary.skipped,
            )
        return summary

    def _open_session(self) -> SessionWriter:
        if self.session_log is None or self.context.dry_run:
            session_id = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
            return SessionWriter(DeletionSession(id=session_id, mode=self.context.mode))
        return self.session_log.begin(self.context.mode)

    def _run_category(
        self,
        provider: CategoryProvider,
        items: list[ScanItem],
        writer: SessionWriter,
        summary: DeletionSummary,
    ) -> None:
        spec = provider.service
        if spec is not None and not self.context.dry_run:
            guard = ServiceGuard(
                spec,
                timeout=self.service_timeout,
                on_timeout=lambda op: self._timed_out(op, provider.tag, summary),
            )
        else:
            guard = nullcontext()

        chunks = chunked(items, self.chunk_size)
        with guard:
            for index, chunk in enumerate(chunks):
                if self.cancel.cancelled:
                    remaining = [i for c in chunks[index:] for i in c]
                    self._skip(remaining, "cancelled", writer, summary)
                    return
                self._run_chunk(provider, chunk, writer, summary)

    def _timed_out(self, operation: str, tag: CategoryTag, summary: DeletionSummary) -> None:
        summary.timeouts.append(operation)
        self.emit(OperationTimedOut(operation=operation, category=tag))

    def _run_chunk(
        self,
        provider: CategoryProvider,
        chunk: list[ScanItem],
        writer: SessionWriter,
        summary: DeletionSummary,
    ) -> None:
        entries: list[SessionEntry] = []
        pending: list[ScanItem] = []
        for item in chunk:
            if is_path_safe(item.path):
                pending.append(item)
            else:
                entries.append(self._entry(item, Outcome.FAILED, reason=BlockedPath(item.path).reason))

        if self.context.dry_run:
            outcomes = {item.path: self._try_single(provider, item) for item in pending}
        else:
            outcomes = self._remove_batch(provider, pending)

        for item in pending:
            handle, error = outcomes[item.path]
            if error is not None:
                entries.append(self._entry(item, Outcome.FAILED, reason=error.reason))
            elif self.context.dry_run:
                entries.append(self._entry(item, Outcome.SKIPPED, reason="dry run"))
            else:
                entries.append(self._entry(item, Outcome.SUCCEEDED, handle=handle, provider=provider))

        # Keep session order identical to selection order
        order = {item.path: n for n, item in enumerate(chunk)}
        entries.sort(key=lambda e: order[e.original_path])

        removed = 0
        removed_bytes = 0
        failed = 0
        skipped = 0
        for entry in entries:
            writer.append(entry)
            if entry.outcome == Outcome.SUCCEEDED:
                summary.succeeded += 1
                summary.bytes_freed += entry.size_bytes
                removed += 1
                removed_bytes += entry.size_bytes
            elif entry.outcome == Outcome.FAILED:
                summary.failed += 1
                summary.failures.append((entry.original_path, entry.reason or "failed"))
                failed += 1
            else:
                summary.skipped += 1
                skipped += 1

        self.emit(
            ChunkCompleted(
                category=provider.tag,
                count=removed,
                bytes=removed_bytes,
                failed=failed,
                skipped=skipped,
            )
        )

    def _remove_batch(
        self, provider: CategoryProvider, items: list[ScanItem]
    ) -> dict[str, tuple[str | None, DeleteError | None]]:
        """One batched removal call, then per-item fallback for whatever it left behind."""
        results: dict[str, tuple[str | None, DeleteError | None]] = {}
        if not items:
            return results

        retry = list(items)
        if provider.reversible:
            paths = [i.path for i in items]
            try:
                if self.context.mode == DeleteMode.PERMANENT:
                    batch = remove_paths(paths)
                else:
                    batch = self.context.store.soft_delete(paths, {i.path: i.size_bytes for i in items})
            except OSError as e:
                logger.warning("Batch removal of %d items failed (%s); retrying one by one", len(items), e)
                batch = []
            outcome_by_path: dict[str, StoreOutcome] = {o.path: o for o in batch}
            retry = []
            for item in items:
                outcome = outcome_by_path.get(item.path)
                if outcome is not None and outcome.success:
                    results[item.path] = (outcome.handle, None)
                else:
                    retry.append(item)
            logger.info(
                "Removed %d of %d %s items in one batch",
                len(results),
                len(items),
                provider.tag.value,
            )
            if retry and batch:
                logger.info("%d of %d items left after batch; retrying one by one", len(retry), len(items))

        for item in retry:
            handle, error = self._try_single(provider, item)
            if error is not None and provider.reversible:
                error = BatchFallbackFailure(item.path, error.reason)
            results[item.path] = (handle, error)
        return results

    def _try_single(
        self, provider: CategoryProvider, item: ScanItem
    ) -> tuple[str | None, DeleteError | None]:
        try:
            handle = provider.clean(item, self.context)
        except DeleteError as e:
            logger.warning("Could not remove %s: %s", item.path, e.reason)
            return None, e
        if not self.context.dry_run:
            logger.info("Removed %s (%s)", item.path, item.size_human)
        return handle, None

    def _entry(
        self,
        item: ScanItem,
        outcome: Outcome,
        handle: str | None = None,
        reason: str | None = None,
        provider: CategoryProvider | None = None,
    ) -> SessionEntry:
        permanent = outcome == Outcome.SUCCEEDED and (
            self.context.mode == DeleteMode.PERMANENT
            or (provider is not None and not provider.reversible)
        )
        return SessionEntry(
            original_path=item.path,
            handle=handle,
            outcome=outcome,
            reason=reason,
            size_bytes=item.size_bytes,
            category=item.category,
            permanent=permanent,
        )

    def _skip(
        self,
        items: list[ScanItem],
        reason: str,
        writer: SessionWriter,
        summary: DeletionSummary,
    ) -> None:
        for item in items:
            writer.append(self._entry(item, Outcome.SKIPPED, reason=reason))
            summary.skipped += 1
        if reason == "cancelled" and items:
            summary.cancelled = True
