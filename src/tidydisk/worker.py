"""Background worker that runs a scan, and optionally a clean, off the UI thread."""

import logging
import threading
from typing import Callable

from tidydisk.channel import CancelToken, ProgressChannel
from tidydisk.cleaner import DEFAULT_CHUNK_SIZE, DEFAULT_SERVICE_TIMEOUT, DeletionEngine
from tidydisk.errors import TidyDiskError
from tidydisk.events import Cancelled, Finished, WorkerFailed
from tidydisk.history import SessionLog
from tidydisk.models import CategoryTag, RunSummary, ScanItem, ScanResultSet
from tidydisk.providers.base import ScanContext
from tidydisk.scanner import DEFAULT_WORKERS, scan_all

logger = logging.getLogger(__name__)


def select_all(scan: ScanResultSet) -> list[ScanItem]:
    return scan.items()


class PipelineWorker(threading.Thread):
    """
    Runs scan -> (clean) and reports through a ProgressChannel.

    The worker is the only producer on the channel. Its last event is always
    exactly one of Finished, Cancelled or WorkerFailed. Finished and Cancelled
    carry the RunSummary, and ``summary`` is set before either is sent.

    Args:
        tags: Categories to scan
        context: Scan/clean context
        channel: Where progress events go
        cancel: Token the foreground sets to stop the run
        scan: Result of an earlier scan; when given, scanning is skipped
        clean: Remove the selected items after scanning
        select: Picks the items to remove from the scan result
        session_log: Where the deletion session is recorded
    """

    def __init__(
        self,
        tags: list[CategoryTag],
        context: ScanContext,
        channel: ProgressChannel,
        cancel: CancelToken | None = None,
        scan: ScanResultSet | None = None,
        clean: bool = False,
        select: Callable[[ScanResultSet], list[ScanItem]] = select_all,
        session_log: SessionLog | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        service_timeout: float = DEFAULT_SERVICE_TIMEOUT,
        workers: int = DEFAULT_WORKERS,
    ):
        super().__init__(name="tidydisk-worker", daemon=True)
        self.tags = tags
        self.context = context
        self.channel = channel
        self.cancel = cancel or CancelToken()
        self.prior_scan = scan
        self.clean = clean
        self.select = select
        self.session_log = session_log
        self.chunk_size = chunk_size
        self.service_timeout = service_timeout
        self.workers = workers
        self.summary: RunSummary | None = None

    def run(self) -> None:
        try:
            self._run()
        except TidyDiskError as e:
            logger.error("Run failed: %s", e)
            self.channel.emit(WorkerFailed(error=str(e)))
        except Exception as e:
            logger.exception("Unexpected error in worker")
            self.channel.emit(WorkerFailed(error=f"{type(e).__name__}: {e}"))

    def _run(self) -> None:
        if self.prior_scan is not None:
            scan = self.prior_scan
        else:
            scan = scan_all(
                self.tags,
                self.context,
                emit=self.channel.emit,
                cancel=self.cancel,
                max_workers=self.workers,
            )

        deletion = None
        if self.clean and not scan.cancelled:
            engine = DeletionEngine(
                self.context,
                session_log=self.session_log,
                emit=self.channel.emit,
                cancel=self.cancel,
                chunk_size=self.chunk_size,
                service_timeout=self.service_timeout,
            )
            deletion = engine.run(self.select(scan), scan)

        self._publish(RunSummary(scan=scan, deletion=deletion))

    def _publish(self, summary: RunSummary) -> None:
        """Store the summary, then send it as the terminal event."""
        self.summary = summary
        deletion = summary.deletion
        if deletion is not None and deletion.cancelled:
            self.channel.emit(
                Cancelled(
                    succeeded=deletion.succeeded,
                    failed=deletion.failed,
                    skipped=deletion.skipped,
                    bytes_freed=deletion.bytes_freed,
                    summary=summary,
                )
            )
        elif summary.scan.cancelled:
            self.channel.emit(Cancelled(summary=summary))
        else:
            self.channel.emit(Finished(summary=summary))
