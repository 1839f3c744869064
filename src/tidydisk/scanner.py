"""Scan orchestration for tidydisk."""

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable

from tidydisk.categories import CATEGORIES
from tidydisk.channel import CancelToken
from tidydisk.errors import PartialCategoryFailure
from tidydisk.events import CategoryFinished, CategoryStarted, ProgressEvent
from tidydisk.models import CategoryResult, CategoryTag, ScanResultSet
from tidydisk.providers.base import CategoryProvider, ScanContext

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4


def scan_category(provider: CategoryProvider, context: ScanContext) -> CategoryResult:
    """
    Run one provider, turning any exception into the category's error.

    Args:
        provider: Provider to run
        context: Scan context

    Returns:
        CategoryResult, possibly empty with an error set
    """
    try:
        result = provider.scan(context)
    except Exception as e:
        logger.warning("Scan of %s failed: %s", provider.tag.value, e)
        return CategoryResult(category=provider.tag, error=str(e))
    if result.error and result.items:
        logger.info("%s", PartialCategoryFailure(provider.tag.value, result.item_count, result.error))
    elif result.error:
        logger.info("Scan of %s incomplete: %s", provider.tag.value, result.error)
    return result


def scan_all(
    tags: list[CategoryTag],
    context: ScanContext,
    emit: Callable[[ProgressEvent], None] | None = None,
    cancel: CancelToken | None = None,
    max_workers: int = DEFAULT_WORKERS,
    providers: dict[CategoryTag, CategoryProvider] | None = None,
) -> ScanResultSet:
    """
    Scan the selected categories with bounded parallelism.

    At most ``max_workers`` providers run at once. A category is reported as
    started when it is handed to the pool and as finished in completion order.
    Cancellation is checked before each category starts; categories still
    running when it is observed are abandoned and left out of the result.

    Args:
        tags: Categories to scan
        context: Scan context shared (read-only) by all providers
        emit: Receives progress events; called from this thread only
        cancel: Cancellation token
        max_workers: Number of parallel provider scans
        providers: Provider registry (defaults to CATEGORIES)

    Returns:
        ScanResultSet with results in the requested category order
    """
    registry = providers if providers is not None else CATEGORIES
    pending = [registry[tag] for tag in dict.fromkeys(tags)]
    emit = emit or (lambda event: None)
    finished: dict[CategoryTag, CategoryResult] = {}
    cancelled = False

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tidydisk-scan")
    running: dict[Future, CategoryProvider] = {}
    try:
        while pending or running:
            while pending and len(running) < max_workers:
                if cancel is not None and cancel.cancelled:
                    cancelled = True
                    break
                provider = pending.pop(0)
                emit(CategoryStarted(category=provider.tag))
                running[executor.submit(scan_category, provider, context)] = provider

            if cancelled:
                break

            done, _ = wait(running, return_when=FIRST_COMPLETED)
            for future in done:
                provider = running.pop(future)
                result = future.result()
                finished[provider.tag] = result
                emit(
                    CategoryFinished(
                        category=provider.tag,
                        items=result.item_count,
                        bytes=result.total_bytes,
                        error=result.error,
                    )
                )

            if cancel is not None and cancel.cancelled and (pending or running):
                cancelled = True
                break
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if cancelled:
        logger.info("Scan cancelled; abandoned %d categories", len(pending) + len(running))

    ordered = {tag: finished[tag] for tag in dict.fromkeys(tags) if tag in finished}
    return ScanResultSet(results=ordered, cancelled=cancelled)
