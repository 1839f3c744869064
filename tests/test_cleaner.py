"""Tests for the deletion engine."""

import sys
from pathlib import Path

import pytest

from conftest import FakeStore, StaticProvider, make_item, make_scan

from tidydisk.channel import CancelToken, EventLog
from tidydisk.cleaner import (
    BLOCKED_PATHS,
    DeletionEngine,
    chunked,
    is_path_safe,
    validate_cleanup_request,
)
from tidydisk.errors import UnscannedItemError
from tidydisk.events import ChunkCompleted, OperationTimedOut
from tidydisk.fsutil import expand_path
from tidydisk.history import SessionLog
from tidydisk.models import CategoryTag, DeleteMode, Outcome
from tidydisk.providers.base import ScanContext
from tidydisk.services import SERVICE_STOP, ServiceSpec
from tidydisk.store import RecoveryStore


def registry(**services):
    return {
        tag: StaticProvider(tag, service=services.get(tag.value))
        for tag in CategoryTag
    }


def engine_for(store, log=None, **kwargs) -> tuple[DeletionEngine, EventLog]:
    events = EventLog()
    context = kwargs.pop("context", None) or ScanContext(store=store)
    engine = DeletionEngine(
        context,
        session_log=log,
        emit=kwargs.pop("emit", events.emit),
        providers=kwargs.pop("providers", registry()),
        **kwargs,
    )
    return engine, events


class TestIsPathSafe:
    def test_blocks_home_directory(self):
        assert not is_path_safe(Path.home())

    def test_blocks_listed_paths(self):
        for blocked in BLOCKED_PATHS:
            assert not is_path_safe(expand_path(blocked))

    def test_blocks_filesystem_root(self):
        assert not is_path_safe(Path("/"))

    def test_allows_cache_children(self):
        assert is_path_safe(expand_path("~/.cache/pip"))
        assert is_path_safe(Path("/tmp/build-1234"))


class TestValidateCleanupRequest:
    def test_within_limit(self):
        assert validate_cleanup_request([make_item("/a", 10)], max_bytes=100) == (True, None)

    def test_over_limit(self):
        ok, error = validate_cleanup_request([make_item("/a", 2 * 1024**3)], max_bytes=1024**3)
        assert not ok
        assert "safety limit" in error


def test_chunked_keeps_order():
    items = [make_item(f"/i/{n}") for n in range(7)]
    chunks = chunked(items, 3)
    assert [len(c) for c in chunks] == [3, 3, 1]
    assert [i for c in chunks for i in c] == items


class TestDeletionEngine:
    def items(self, n, category=CategoryTag.CACHE, size=10):
        return [make_item(f"/data/{category.value}/item-{i:04d}", size, category) for i in range(n)]

    def test_thousand_items_with_locked_files(self, tmp_path):
        items = self.items(1000)
        locked = {items[5].path, items[500].path, items[999].path}
        store = FakeStore(locked=locked)
        log = SessionLog(tmp_path / "history")
        engine, events = engine_for(store, log=log, chunk_size=25)

        summary = engine.run(items, make_scan(items))

        assert summary.succeeded == 997
        assert summary.failed == 3
        assert summary.bytes_freed == 9970
        assert len(events.of_type(ChunkCompleted)) == 40
        assert {path for path, _ in summary.failures} == locked
        assert all("batch and per-item removal failed" in reason for _, reason in summary.failures)
        assert len(log.load(summary.session_id).entries) == 1000

    def test_one_entry_per_item_in_order(self, tmp_path):
        items = self.items(60)
        store = FakeStore(locked={items[3].path})
        log = SessionLog(tmp_path / "history")
        engine, _ = engine_for(store, log=log, chunk_size=25)

        summary = engine.run(items, make_scan(items))
        session = log.load(summary.session_id)

        assert [e.original_path for e in session.entries] == [i.path for i in items]
        assert session.entries[3].outcome == Outcome.FAILED
        assert session.count(Outcome.SUCCEEDED) == 59

    def test_one_batch_call_per_chunk(self):
        items = self.items(100)
        store = FakeStore()
        engine, _ = engine_for(store, chunk_size=10)
        engine.run(items, make_scan(items))
        assert [len(c) for c in store.calls] == [10] * 10

    def test_failed_items_retried_individually(self):
        items = self.items(10)
        store = FakeStore(locked={items[2].path})
        engine, _ = engine_for(store, chunk_size=10)
        engine.run(items, make_scan(items))
        assert store.calls[0] == [i.path for i in items]
        assert store.calls[1:] == [[items[2].path]]

    @pytest.mark.parametrize("chunk_size", [1, 10, 1000])
    def test_outcome_independent_of_chunk_size(self, chunk_size):
        items = self.items(100)
        locked = {items[0].path, items[41].path, items[99].path}
        engine, _ = engine_for(FakeStore(locked=locked), chunk_size=chunk_size)
        summary = engine.run(items, make_scan(items))
        assert summary.succeeded == 97
        assert {path for path, _ in summary.failures} == locked

    def test_rejects_unscanned_items(self):
        items = self.items(3)
        stranger = make_item("/etc/passwd")
        store = FakeStore()
        engine, _ = engine_for(store)
        with pytest.raises(UnscannedItemError):
            engine.run([*items, stranger], make_scan(items))
        assert store.calls == []

    def test_blocked_path_fails_without_store_call(self):
        home = make_item(str(Path.home()))
        store = FakeStore()
        engine, _ = engine_for(store)
        summary = engine.run([home], make_scan([home]))
        assert summary.failed == 1
        assert summary.failures[0][1] == "blocked path"
        assert store.calls == []

    def test_duplicates_removed_once(self):
        items = self.items(3)
        store = FakeStore()
        engine, _ = engine_for(store)
        summary = engine.run([*items, items[0]], make_scan(items))
        assert summary.succeeded == 3
        assert summary.total == 3

    def test_dry_run_touches_nothing(self, tmp_path):
        target = tmp_path / "cache" / "blob"
        target.parent.mkdir()
        target.write_bytes(b"x" * 10)
        item = make_item(str(target), 10)
        missing = make_item(str(tmp_path / "cache" / "gone"), 10)
        log = SessionLog(tmp_path / "history")
        store = FakeStore()
        context = ScanContext(store=store, dry_run=True)
        engine, events = engine_for(store, log=log, context=context)

        summary = engine.run([item, missing], make_scan([item, missing]))

        assert target.exists()
        assert store.calls == []
        assert summary.dry_run
        assert summary.skipped == 1
        assert summary.failed == 1
        assert summary.session_id is None
        [chunk] = events.of_type(ChunkCompleted)
        assert (chunk.count, chunk.failed, chunk.skipped) == (0, 1, 1)
        assert log.list_ids() == []

    def test_permanent_mode(self, tmp_path):
        target = tmp_path / "blob"
        target.write_bytes(b"x")
        item = make_item(str(target), 1)
        log = SessionLog(tmp_path / "history")
        context = ScanContext(mode=DeleteMode.PERMANENT)
        engine, _ = engine_for(None, log=log, context=context)

        summary = engine.run([item], make_scan([item]))

        assert not target.exists()
        assert summary.succeeded == 1
        session = log.load(summary.session_id)
        assert session.entries[0].permanent
        assert session.restorable_entries == []

    def test_soft_mode_requires_store(self):
        with pytest.raises(ValueError):
            DeletionEngine(ScanContext(store=None))

    def test_recovery_store_end_to_end(self, tmp_path):
        files = []
        for n in range(5):
            f = tmp_path / "cache" / f"f{n}"
            f.parent.mkdir(exist_ok=True)
            f.write_text("data")
            files.append(make_item(str(f), 4))
        store = RecoveryStore(tmp_path / "store")
        engine, _ = engine_for(store, chunk_size=2)

        summary = engine.run(files, make_scan(files))

        assert summary.succeeded == 5
        assert not any(Path(i.path).exists() for i in files)
        assert len(store.entries()) == 5


class TestCancellation:
    def test_cancel_after_second_chunk(self):
        items = [make_item(f"/data/item-{i:03d}", 10) for i in range(50)]
        cancel = CancelToken()
        events = EventLog()

        def emit(event):
            events.emit(event)
            if len(events.of_type(ChunkCompleted)) == 2:
                cancel.cancel()

        engine, _ = engine_for(FakeStore(), chunk_size=10, cancel=cancel, emit=emit)
        summary = engine.run(items, make_scan(items))

        assert summary.succeeded == 20
        assert summary.skipped == 30
        assert summary.cancelled
        assert len(events.of_type(ChunkCompleted)) == 2

    def test_cancel_skips_later_categories(self):
        cache = [make_item(f"/c/{i}", 1, CategoryTag.CACHE) for i in range(5)]
        temp = [make_item(f"/t/{i}", 1, CategoryTag.TEMP) for i in range(5)]
        cancel = CancelToken()

        def emit(event):
            if isinstance(event, ChunkCompleted) and event.category == CategoryTag.CACHE:
                cancel.cancel()

        engine, _ = engine_for(FakeStore(), chunk_size=10, cancel=cancel, emit=emit)
        summary = engine.run(cache + temp, make_scan(cache, temp))
        assert summary.succeeded == 5
        assert summary.skipped == 5


class TestServiceTimeout:
    def test_stop_timeout_recorded_and_run_continues(self):
        sleeper = ServiceSpec(
            name="slow-service",
            stop_command=[sys.executable, "-c", "import time; time.sleep(10)"],
            start_command=[sys.executable, "-c", "pass"],
        )
        providers = registry(update_cache=sleeper)
        updates = [make_item(f"/u/{i}", 5, CategoryTag.UPDATE_CACHE) for i in range(3)]
        cache = [make_item(f"/c/{i}", 5, CategoryTag.CACHE) for i in range(3)]

        engine, events = engine_for(FakeStore(), providers=providers, service_timeout=2)
        summary = engine.run(updates + cache, make_scan(updates, cache))

        assert summary.timeouts == [SERVICE_STOP]
        timed_out = events.of_type(OperationTimedOut)
        assert [(e.operation, e.category) for e in timed_out] == [(SERVICE_STOP, CategoryTag.UPDATE_CACHE)]
        assert summary.succeeded == 6

    def test_service_skipped_in_dry_run(self, tmp_path):
        never = ServiceSpec(
            name="never",
            stop_command=[sys.executable, "-c", "import sys; sys.exit(3)"],
            start_command=[sys.executable, "-c", "import sys; sys.exit(3)"],
        )
        target = tmp_path / "pkg"
        target.write_text("x")
        item = make_item(str(target), 1, CategoryTag.UPDATE_CACHE)
        context = ScanContext(store=FakeStore(), dry_run=True)
        engine, events = engine_for(None, context=context, providers=registry(update_cache=never))
        summary = engine.run([item], make_scan([item]))
        assert summary.timeouts == []
        assert summary.skipped == 1
