"""Shared fixtures and fakes for tidydisk tests."""

from pathlib import Path

import pytest

from tidydisk.errors import AccessDenied, RestoreNotFound
from tidydisk.models import CategoryResult, CategoryTag, ScanItem, ScanResultSet
from tidydisk.providers.base import CategoryProvider, ScanContext
from tidydisk.store import SoftDeleteStore, StoreOutcome


def make_item(path: str, size: int = 100, category: CategoryTag = CategoryTag.CACHE) -> ScanItem:
    return ScanItem(path=path, size_bytes=size, category=category)


def make_scan(*groups: list[ScanItem]) -> ScanResultSet:
    results = {}
    for items in groups:
        tag = items[0].category
        results[tag] = CategoryResult(category=tag, items=items)
    return ScanResultSet(results=results)


class FakeStore(SoftDeleteStore):
    """In-memory store; paths in ``locked`` always fail with AccessDenied."""

    def __init__(self, locked=()):
        self.locked = set(locked)
        self.calls: list[list[str]] = []
        self.held: dict[str, str] = {}
        self._next = 0

    def soft_delete(self, paths, sizes=None):
        self.calls.append(list(paths))
        outcomes = []
        for path in paths:
            if path in self.locked:
                outcomes.append(StoreOutcome(path=path, error=AccessDenied(path, "locked")))
                continue
            self._next += 1
            handle = f"h{self._next:05d}"
            self.held[handle] = path
            outcomes.append(StoreOutcome(path=path, handle=handle))
        return outcomes

    def restore(self, handle):
        path = self.held.pop(handle, None)
        if path is None:
            return StoreOutcome(path=handle, handle=handle, error=RestoreNotFound(f"Not in store: {handle}"))
        return StoreOutcome(path=path, handle=handle)

    def bulk_restore(self, handles=None):
        if handles is None:
            handles = list(self.held)
        return [self.restore(h) for h in handles]


class StaticProvider(CategoryProvider):
    """Provider that returns a fixed result (or raises) without touching disk."""

    name = "Static"

    def __init__(self, tag: CategoryTag, items=(), error=None, raises=None, service=None):
        self.tag = tag
        self._items = list(items)
        self._error = error
        self._raises = raises
        self._service = service

    @property
    def service(self):
        return self._service

    def scan(self, context: ScanContext) -> CategoryResult:
        if self._raises is not None:
            raise self._raises
        return CategoryResult(category=self.tag, items=self._items, error=self._error)


@pytest.fixture
def tidydisk_home(tmp_path, monkeypatch) -> Path:
    """Point ~/.tidydisk at a temporary directory."""
    home = tmp_path / "tidydisk-home"
    monkeypatch.setenv("TIDYDISK_HOME", str(home))
    return home
