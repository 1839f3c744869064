"""Filesystem helpers shared by providers and the deletion engine."""

import fnmatch
import os
import shutil
import time
from pathlib import Path

from tidydisk.errors import NotFound
from tidydisk.store import StoreOutcome, classify_os_error

SECONDS_PER_DAY = 24 * 60 * 60


def expand_path(path: str | Path) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(str(path))))


def get_directory_size(path: Path, max_depth: int = 64) -> tuple[int, int, int]:
    """
    Directory size using os.scandir with a depth limit.

    Symlinks are never followed.

    Args:
        path: Directory to scan
        max_depth: Maximum recursion depth

    Returns:
        Tuple of (total_bytes, file_count, dir_count)
    """
    total_size = 0
    file_count = 0
    dir_count = 0

    def _scan(p: str, depth: int):
        nonlocal total_size, file_count, dir_count
        if depth > max_depth:
            return
        try:
            with os.scandir(p) as entries:
                for entry in entries:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            total_size += entry.stat(follow_symlinks=False).st_size
                            file_count += 1
                        elif entry.is_dir(follow_symlinks=False):
                            dir_count += 1
                            _scan(entry.path, depth + 1)
                    except OSError:
                        continue
        except OSError:
            pass

    _scan(str(path), 0)
    return total_size, file_count, dir_count


def measure(path: Path) -> int:
    """Size in bytes of a file, symlink or directory tree."""
    if path.is_symlink() or not path.is_dir():
        return path.lstat().st_size
    size, _, _ = get_directory_size(path)
    return size


def age_days(path: Path, now: float | None = None) -> float:
    """Days since the path was last modified (symlinks are not followed)."""
    now = time.time() if now is None else now
    return (now - path.lstat().st_mtime) / SECONDS_PER_DAY


def is_excluded(path: str | Path, patterns: tuple[str, ...] | list[str]) -> bool:
    """Match a path against exclusion globs, by full path or by name."""
    if not patterns:
        return False
    full = Path(path).as_posix()
    name = Path(path).name
    return any(fnmatch.fnmatch(full, p) or fnmatch.fnmatch(name, p) for p in patterns)


def remove_path(path: str | Path) -> None:
    """
    Remove a file, symlink or directory tree irreversibly.

    Raises:
        NotFound: If the path does not exist
        OSError: If removal fails
    """
    target = Path(path)
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()
    else:
        raise NotFound(target)


def remove_paths(paths: list[str]) -> list[StoreOutcome]:
    """Permanently remove many paths, one outcome per path."""
    outcomes = []
    for path in paths:
        try:
            remove_path(path)
        except NotFound as e:
            outcomes.append(StoreOutcome(path=path, error=e))
        except OSError as e:
            outcomes.append(StoreOutcome(path=path, error=classify_os_error(path, e)))
        else:
            outcomes.append(StoreOutcome(path=path))
    return outcomes
