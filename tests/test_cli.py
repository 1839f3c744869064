"""Tests for CLI interface."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from conftest import StaticProvider, make_item

from tidydisk.cli import app
from tidydisk.models import CategoryTag

runner = CliRunner()


def registry(items):
    return {tag: StaticProvider(tag, items=[i for i in items if i.category == tag]) for tag in CategoryTag}


@pytest.fixture
def cache_files(tmp_path):
    root = tmp_path / "cache"
    root.mkdir()
    items = []
    for name in ("alpha", "beta", "gamma"):
        path = root / name
        path.write_text(name * 10)
        items.append(make_item(str(path), size=len(name) * 10))
    return items


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "tidydisk version" in result.stdout

    def test_version_short_flag(self):
        result = runner.invoke(app, ["-v"])
        assert result.exit_code == 0
        assert "tidydisk version" in result.stdout


class TestHelp:
    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("scan", "clean", "restore", "history"):
            assert command in result.stdout

    def test_clean_help(self):
        result = runner.invoke(app, ["clean", "--help"])
        assert result.exit_code == 0
        assert "--dry-run" in result.stdout
        assert "--permanent" in result.stdout


class TestList:
    def test_list_command(self, tidydisk_home):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "Available Categories" in result.stdout
        assert "build" in result.stdout


class TestScan:
    def test_json_output(self, tidydisk_home, cache_files):
        with patch("tidydisk.scanner.CATEGORIES", registry(cache_files)):
            result = runner.invoke(app, ["scan", "--cache", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["total_items"] == 3
        assert data["categories"]["cache"]["item_count"] == 3
        assert not data["cancelled"]

    def test_table_output(self, tidydisk_home, cache_files):
        with patch("tidydisk.scanner.CATEGORIES", registry(cache_files)):
            result = runner.invoke(app, ["scan", "--cache"])
        assert result.exit_code == 0
        assert "cache" in result.stdout

    def test_bad_min_size(self, tidydisk_home):
        result = runner.invoke(app, ["scan", "--min-size", "lots"])
        assert result.exit_code != 0


class TestClean:
    def test_requires_a_category(self, tidydisk_home):
        result = runner.invoke(app, ["clean"])
        assert result.exit_code == 1
        assert "Specify at least one category" in result.stdout

    def test_permanent_and_system_trash_conflict(self, tidydisk_home):
        result = runner.invoke(app, ["clean", "--cache", "--permanent", "--system-trash"])
        assert result.exit_code == 1

    def test_nothing_to_clean(self, tidydisk_home):
        with patch("tidydisk.scanner.CATEGORIES", registry([])):
            result = runner.invoke(app, ["clean", "--cache", "-y"])
        assert result.exit_code == 0
        assert "Nothing to clean" in result.stdout

    def test_dry_run_keeps_files(self, tidydisk_home, cache_files):
        providers = registry(cache_files)
        with patch("tidydisk.scanner.CATEGORIES", providers), patch("tidydisk.cleaner.CATEGORIES", providers):
            result = runner.invoke(app, ["clean", "--cache", "--dry-run"])
        assert result.exit_code == 0
        assert all(Path(i.path).exists() for i in cache_files)
        assert not list(tidydisk_home.glob("history/session-*"))

    def test_declined_confirmation(self, tidydisk_home, cache_files):
        providers = registry(cache_files)
        with patch("tidydisk.scanner.CATEGORIES", providers), patch("tidydisk.cleaner.CATEGORIES", providers):
            result = runner.invoke(app, ["clean", "--cache"], input="n\n")
        assert result.exit_code == 0
        assert all(Path(i.path).exists() for i in cache_files)

    def test_clean_then_restore_last(self, tidydisk_home, cache_files):
        providers = registry(cache_files)
        with patch("tidydisk.scanner.CATEGORIES", providers), patch("tidydisk.cleaner.CATEGORIES", providers):
            result = runner.invoke(app, ["clean", "--cache", "-y"])
        assert result.exit_code == 0, result.stdout
        assert not any(Path(i.path).exists() for i in cache_files)

        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "Deletion History" in result.stdout

        result = runner.invoke(app, ["restore", "--last"])
        assert result.exit_code == 0
        assert all(Path(i.path).exists() for i in cache_files)

        result = runner.invoke(app, ["restore", "--last"])
        assert result.exit_code == 0
        assert "Restored 0" in result.stdout


class TestRestore:
    def test_requires_exactly_one_target(self, tidydisk_home):
        assert runner.invoke(app, ["restore"]).exit_code == 1
        assert runner.invoke(app, ["restore", "--last", "--all"]).exit_code == 1

    def test_last_without_history(self, tidydisk_home):
        result = runner.invoke(app, ["restore", "--last"])
        assert result.exit_code == 1
        assert "No deletion history found" in result.stdout

    def test_path_not_in_store(self, tidydisk_home, tmp_path):
        result = runner.invoke(app, ["restore", "--path", str(tmp_path / "never")])
        assert result.exit_code == 1

    def test_all_on_empty_store(self, tidydisk_home):
        result = runner.invoke(app, ["restore", "--all"])
        assert result.exit_code == 0


class TestHistory:
    def test_empty_history(self, tidydisk_home):
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No deletion history found" in result.stdout
