"""Error types for tidydisk."""

from pathlib import Path


class TidyDiskError(Exception):
    """Base class for all tidydisk errors."""


# =============================================================================
# Per-item deletion errors
# =============================================================================


class DeleteError(TidyDiskError):
    """A single item could not be removed."""

    def __init__(self, path: Path | str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class AccessDenied(DeleteError):
    """Permission denied while reading or removing a path."""

    def __init__(self, path: Path | str, reason: str = "access denied"):
        super().__init__(path, reason)


class NotFound(DeleteError):
    """Path vanished between scan and removal."""

    def __init__(self, path: Path | str, reason: str = "not found"):
        super().__init__(path, reason)


class BlockedPath(DeleteError):
    """Path is on the never-delete list."""

    def __init__(self, path: Path | str, reason: str = "blocked path"):
        super().__init__(path, reason)


class BatchFallbackFailure(DeleteError):
    """Item failed both in its chunk and in the per-item retry."""

    def __init__(self, path: Path | str, reason: str):
        super().__init__(path, f"batch and per-item removal failed: {reason}")


# =============================================================================
# Operation-level errors
# =============================================================================


class OperationTimeout(TidyDiskError):
    """An external blocking operation exceeded its timeout."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:g}s")


class PartialCategoryFailure(TidyDiskError):
    """A category scan found some items but failed on at least one location."""

    def __init__(self, category: str, succeeded_count: int, error: str):
        self.category = category
        self.succeeded_count = succeeded_count
        self.error = error
        super().__init__(f"{category}: {succeeded_count} items found, {error}")


class OperationCancelled(TidyDiskError):
    """Work stopped at a checkpoint because cancellation was requested."""

    def __init__(self, progress_so_far: int):
        self.progress_so_far = progress_so_far
        super().__init__(f"cancelled after {progress_so_far} items")


class UnscannedItemError(TidyDiskError):
    """A deletion request named items that the scan never produced."""

    def __init__(self, paths: list[str]):
        self.paths = paths
        preview = ", ".join(paths[:3])
        more = f" (+{len(paths) - 3} more)" if len(paths) > 3 else ""
        super().__init__(f"Refusing to delete unscanned items: {preview}{more}")


# =============================================================================
# Restore errors
# =============================================================================


class RestoreNotFound(TidyDiskError):
    """No deletion session, or no stored copy, is available to restore."""

    def __init__(self, message: str = "No deletion history found. Nothing to restore."):
        super().__init__(message)


class RestoreConflict(TidyDiskError):
    """Restore destination already exists."""

    def __init__(self, path: Path | str):
        self.path = str(path)
        super().__init__(f"Destination already exists: {self.path}")


class RestoreUnsupported(TidyDiskError):
    """The soft-delete store cannot put items back."""


class SessionCorruptError(TidyDiskError):
    """A deletion session file could not be parsed."""

    def __init__(self, path: Path | str, reason: str):
        self.path = str(path)
        super().__init__(f"Corrupt deletion session {self.path}: {reason}")
