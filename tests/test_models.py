"""Tests for data models."""

import pytest
from pydantic import ValidationError

from tidydisk.models import (
    CategoryResult,
    CategoryTag,
    DeleteMode,
    DeletionSession,
    DeletionSummary,
    Outcome,
    ProjectRecord,
    RestoreResult,
    ScanItem,
    ScanResultSet,
    SessionEntry,
    Verdict,
    format_size,
    resolve,
)


class TestFormatSize:
    def test_bytes(self):
        assert format_size(512) == "512 B"

    def test_kilobytes(self):
        assert format_size(1500) == "1.5 KB"

    def test_megabytes(self):
        assert format_size(2_500_000) == "2.5 MB"

    def test_gigabytes(self):
        assert format_size(3_000_000_000) == "3.0 GB"


class TestScanItem:
    def test_frozen(self):
        item = ScanItem(path="/a", size_bytes=1, category=CategoryTag.CACHE)
        with pytest.raises(ValidationError):
            item.size_bytes = 2

    def test_hashable_and_equal_by_value(self):
        a = ScanItem(path="/a", size_bytes=1, category=CategoryTag.CACHE)
        b = ScanItem(path="/a", size_bytes=1, category=CategoryTag.CACHE)
        assert a == b
        assert len({a, b}) == 1

    def test_size_human(self):
        item = ScanItem(path="/a", size_bytes=2_000_000, category=CategoryTag.TEMP)
        assert item.size_human == "2.0 MB"


class TestCategoryResult:
    def _items(self, n):
        return [ScanItem(path=f"/c/{i}", size_bytes=i, category=CategoryTag.CACHE) for i in range(n)]

    def test_totals(self):
        result = CategoryResult(category=CategoryTag.CACHE, items=self._items(4))
        assert result.item_count == 4
        assert result.total_bytes == 0 + 1 + 2 + 3

    def test_preview_truncates_but_keeps_all_items(self):
        result = CategoryResult(category=CategoryTag.CACHE, items=self._items(80))
        preview = result.preview()
        assert len(preview) == 50
        assert preview[0].size_bytes == 79
        assert result.item_count == 80

    def test_partial(self):
        result = CategoryResult(category=CategoryTag.CACHE, items=self._items(1), error="boom")
        assert result.partial
        assert not CategoryResult(category=CategoryTag.CACHE, error="boom").partial


class TestScanResultSet:
    def test_items_grouped_in_scan_order(self):
        cache = ScanItem(path="/c", size_bytes=1, category=CategoryTag.CACHE)
        temp = ScanItem(path="/t", size_bytes=2, category=CategoryTag.TEMP)
        scan = ScanResultSet(
            results={
                CategoryTag.TEMP: CategoryResult(category=CategoryTag.TEMP, items=[temp]),
                CategoryTag.CACHE: CategoryResult(category=CategoryTag.CACHE, items=[cache]),
            }
        )
        assert scan.items() == [temp, cache]
        assert scan.items([CategoryTag.CACHE]) == [cache]
        assert scan.total_items == 2
        assert scan.total_bytes == 3

    def test_contains(self):
        item = ScanItem(path="/c", size_bytes=1, category=CategoryTag.CACHE)
        scan = ScanResultSet(
            results={CategoryTag.CACHE: CategoryResult(category=CategoryTag.CACHE, items=[item])}
        )
        assert scan.contains(item)
        assert not scan.contains(ScanItem(path="/other", size_bytes=1, category=CategoryTag.CACHE))

    def test_errors(self):
        scan = ScanResultSet(
            results={CategoryTag.TRASH: CategoryResult(category=CategoryTag.TRASH, error="denied")}
        )
        assert scan.errors == {CategoryTag.TRASH: "denied"}


class TestProjectRecord:
    def test_is_active(self):
        record = ProjectRecord(root="/p", verdict=Verdict.ACTIVE, threshold_days=14)
        assert record.is_active


class TestSession:
    def test_restorable_entries(self):
        session = DeletionSession(
            id="s1",
            entries=[
                SessionEntry(original_path="/a", handle="h1", outcome=Outcome.SUCCEEDED),
                SessionEntry(original_path="/b", outcome=Outcome.FAILED, reason="denied"),
                SessionEntry(original_path="/c", handle=None, outcome=Outcome.SUCCEEDED, permanent=True),
                SessionEntry(original_path="/d", handle="h4", outcome=Outcome.SUCCEEDED),
            ],
            restored={"h4"},
        )
        assert [e.original_path for e in session.restorable_entries] == ["/a"]
        assert session.count(Outcome.SUCCEEDED) == 3

    def test_summary_total(self):
        summary = DeletionSummary(succeeded=2, failed=1, skipped=3, mode=DeleteMode.PERMANENT)
        assert summary.total == 6


class TestRestoreResult:
    def test_summary_line(self):
        result = RestoreResult(restored=3, restored_bytes=1500, errors=1, not_found=2)
        assert result.summary() == "Restored 3 items (1.5 KB), 1 errors, 2 not found"


def test_resolve_makes_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert resolve("x") == str(tmp_path / "x")
