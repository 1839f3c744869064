"""Restore engine: undo deletion sessions through the soft-delete store."""

import logging
from pathlib import Path

from tidydisk.errors import RestoreNotFound, RestoreUnsupported
from tidydisk.history import SessionLog, SessionWriter
from tidydisk.models import DeletionSession, RestoreResult, resolve
from tidydisk.store import RecoveryStore, SoftDeleteStore, StoreOutcome

logger = logging.getLogger(__name__)


def _tally(result: RestoreResult, outcome: StoreOutcome, size_bytes: int) -> None:
    if outcome.success:
        result.restored += 1
        result.restored_bytes += size_bytes
        logger.info("Restored %s", outcome.path)
    elif isinstance(outcome.error, RestoreNotFound):
        result.not_found += 1
        logger.warning("Nothing to restore for %s", outcome.path)
    else:
        result.errors += 1
        result.failures.append((outcome.path, str(outcome.error)))
        logger.warning("Could not restore %s: %s", outcome.path, outcome.error)


def restore_session(
    session: DeletionSession,
    store: SoftDeleteStore,
    writer: SessionWriter | None = None,
) -> RestoreResult:
    """
    Restore every restorable entry of a session, in recorded order.

    Only succeeded, non-permanent entries that have not been restored before
    are considered. Entries that are restored, or whose stored copy is gone,
    get a restored marker so a repeated call finds nothing left to do.
    Conflicts and other errors are left unmarked and can be retried.

    Args:
        session: Session to undo
        store: Store the session's items were moved into
        writer: Appends restored markers to the session log

    Returns:
        RestoreResult with per-outcome counts
    """
    if not store.supports_restore:
        raise RestoreUnsupported("Items sent to the system trash must be restored from the trash itself")

    entries = session.restorable_entries
    result = RestoreResult()
    if not entries:
        return result

    outcomes = store.bulk_restore([e.handle for e in entries])
    for entry, outcome in zip(entries, outcomes):
        _tally(result, outcome, entry.size_bytes)
        if outcome.success or isinstance(outcome.error, RestoreNotFound):
            if writer is not None:
                writer.mark_restored(entry.handle)
            else:
                session.restored.add(entry.handle)

    logger.info("Session %s: %s", session.id, result.summary())
    return result


def restore_last(log: SessionLog, store: SoftDeleteStore) -> RestoreResult:
    """
    Restore the most recent deletion session.

    Raises:
        RestoreNotFound: If no session has been recorded
        SessionCorruptError: If the session file cannot be read
    """
    session = log.latest()
    if session is None:
        raise RestoreNotFound()
    return restore_session(session, store, log.writer_for(session))


def restore_path(path: str | Path, store: RecoveryStore) -> RestoreResult:
    """
    Restore one path from the store.

    The newest stored copy of exactly ``path`` is restored. When the path
    itself was never removed but items beneath it were, all of those are
    restored instead.

    Raises:
        RestoreNotFound: If the store holds nothing at or beneath path
    """
    target = resolve(path)
    matches = store.find(target)
    if not matches:
        raise RestoreNotFound(f"Nothing stored for {target}")

    exact = [m for m in matches if m.original_path == target]
    chosen = exact[:1] if exact else matches

    result = RestoreResult()
    seen: set[str] = set()
    for stored in chosen:
        # Only the newest copy of each child path can come back
        if stored.original_path in seen:
            continue
        seen.add(stored.original_path)
        _tally(result, store.restore(stored.handle), stored.size_bytes)
    return result


def restore_all(store: RecoveryStore) -> RestoreResult:
    """Restore everything the store holds, oldest first."""
    stored = store.entries()
    result = RestoreResult()
    if not stored:
        return result
    outcomes = store.bulk_restore([e.handle for e in stored])
    for entry, outcome in zip(stored, outcomes):
        _tally(result, outcome, entry.size_bytes)
    return result
