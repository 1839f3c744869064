"""Tests for scan orchestration."""

import threading

from conftest import StaticProvider, make_item

from tidydisk.categories import CATEGORIES, get_all_categories, get_category
from tidydisk.channel import CancelToken, EventLog
from tidydisk.events import CategoryFinished, CategoryStarted
from tidydisk.models import CategoryResult, CategoryTag
from tidydisk.providers.base import CategoryProvider, ScanContext
from tidydisk.scanner import scan_all, scan_category


class BlockingProvider(CategoryProvider):
    """Provider whose scan waits until released."""

    name = "Blocking"

    def __init__(self, tag: CategoryTag):
        self.tag = tag
        self.started = threading.Event()
        self.release = threading.Event()

    def scan(self, context):
        self.started.set()
        self.release.wait(timeout=5)
        return CategoryResult(category=self.tag, items=[make_item(f"/{self.tag.value}/x", category=self.tag)])


class TestRegistry:
    def test_every_tag_registered(self):
        assert set(CATEGORIES) == set(CategoryTag)
        for tag, provider in CATEGORIES.items():
            assert provider.tag == tag

    def test_get_category(self):
        assert get_category("build").project_aware
        assert get_category("nonexistent") is None

    def test_only_trash_is_irreversible(self):
        assert [p.tag for p in get_all_categories() if not p.reversible] == [CategoryTag.TRASH]


class TestScanCategory:
    def test_exception_becomes_error(self):
        provider = StaticProvider(CategoryTag.TEMP, raises=RuntimeError("disk on fire"))
        result = scan_category(provider, ScanContext())
        assert result.items == []
        assert result.error == "disk on fire"


class TestScanAll:
    def test_failure_is_isolated(self):
        providers = {
            CategoryTag.CACHE: StaticProvider(
                CategoryTag.CACHE, items=[make_item("/c/1"), make_item("/c/2")]
            ),
            CategoryTag.TEMP: StaticProvider(CategoryTag.TEMP, raises=PermissionError("denied")),
            CategoryTag.TRASH: StaticProvider(
                CategoryTag.TRASH,
                items=[make_item("/t/1", category=CategoryTag.TRASH)],
                error="one location unreadable",
            ),
        }
        result = scan_all(list(providers), ScanContext(), providers=providers)

        assert result.results[CategoryTag.CACHE].item_count == 2
        assert result.results[CategoryTag.TEMP].error == "denied"
        assert result.results[CategoryTag.TRASH].partial
        assert not result.cancelled

    def test_results_in_requested_order(self):
        providers = {tag: StaticProvider(tag) for tag in CategoryTag}
        tags = [CategoryTag.BUILD, CategoryTag.CACHE, CategoryTag.TEMP]
        result = scan_all(tags, ScanContext(), providers=providers)
        assert list(result.results) == tags

    def test_events_follow_completion_order(self):
        slow = BlockingProvider(CategoryTag.CACHE)
        fast = StaticProvider(CategoryTag.TEMP)
        providers = {CategoryTag.CACHE: slow, CategoryTag.TEMP: fast}
        log = EventLog()

        def emit(event):
            log.emit(event)
            if isinstance(event, CategoryFinished) and event.category == CategoryTag.TEMP:
                slow.release.set()

        scan_all([CategoryTag.CACHE, CategoryTag.TEMP], ScanContext(), emit=emit, providers=providers)

        finished = [e.category for e in log.of_type(CategoryFinished)]
        assert finished == [CategoryTag.TEMP, CategoryTag.CACHE]
        assert len(log.of_type(CategoryStarted)) == 2

    def test_bounded_parallelism(self):
        first = BlockingProvider(CategoryTag.CACHE)
        second = BlockingProvider(CategoryTag.TEMP)
        providers = {CategoryTag.CACHE: first, CategoryTag.TEMP: second}
        log = EventLog()

        def emit(event):
            log.emit(event)
            if isinstance(event, CategoryStarted) and event.category == CategoryTag.CACHE:
                # With one worker the second category cannot have started yet
                assert not second.started.is_set()
                first.release.set()
                second.release.set()

        result = scan_all(list(providers), ScanContext(), emit=emit, max_workers=1, providers=providers)
        assert result.total_items == 2

    def test_cancel_before_start(self):
        cancel = CancelToken()
        cancel.cancel()
        providers = {tag: StaticProvider(tag) for tag in CategoryTag}
        log = EventLog()
        result = scan_all(list(CategoryTag), ScanContext(), emit=log.emit, cancel=cancel, providers=providers)
        assert result.cancelled
        assert result.results == {}
        assert log.events == []

    def test_cancel_abandons_pending_categories(self):
        cancel = CancelToken()
        providers = {tag: StaticProvider(tag) for tag in CategoryTag}

        def emit(event):
            if isinstance(event, CategoryFinished):
                cancel.cancel()

        result = scan_all(
            list(CategoryTag), ScanContext(), emit=emit, cancel=cancel, max_workers=1, providers=providers
        )
        assert result.cancelled
        assert list(result.results) == [CategoryTag.CACHE]
