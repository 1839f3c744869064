"""Project activity detection.

Decides whether a project is being worked on, which gates the build
category: artifacts of active projects are never offered for deletion.

The decision short-circuits at the first decisive signal:

1. uncommitted changes in the enclosing git work tree -> active
2. last commit within the threshold -> active (older -> inactive)
3. without usable git information, the newest marker file
   (manifest or lockfile) within the threshold -> active
4. otherwise -> inactive

Git problems (git not installed, not a repository, timeouts, non-zero
exits) are logged and fall through to rule 3. They never make a project
look active by default.
"""

import logging
import os
import time
from datetime import datetime
from pathlib import Path

from tidydisk.errors import OperationTimeout, TidyDiskError
from tidydisk.fsutil import SECONDS_PER_DAY
from tidydisk.models import ProjectRecord, ProjectType, Verdict
from tidydisk.shell import run_command

logger = logging.getLogger(__name__)

# Manifest files that make a directory a project root
MARKER_FILES: dict[str, ProjectType] = {
    "package.json": ProjectType.NODE,
    "Cargo.toml": ProjectType.RUST,
    "pyproject.toml": ProjectType.PYTHON,
    "setup.py": ProjectType.PYTHON,
    "setup.cfg": ProjectType.PYTHON,
    "pom.xml": ProjectType.JAVA,
    "build.gradle": ProjectType.JAVA,
    "build.gradle.kts": ProjectType.JAVA,
    "go.mod": ProjectType.GO,
}

MARKER_SUFFIXES: dict[str, ProjectType] = {
    ".csproj": ProjectType.DOTNET,
    ".fsproj": ProjectType.DOTNET,
    ".sln": ProjectType.DOTNET,
}

LOCK_FILES = frozenset(
    {
        "package-lock.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        "bun.lockb",
        "Cargo.lock",
        "poetry.lock",
        "uv.lock",
        "Pipfile.lock",
        "requirements.txt",
        "go.sum",
        "gradle.lockfile",
        "packages.lock.json",
    }
)


def detect_project_type(names: list[str] | set[str]) -> ProjectType | None:
    """Project type from the file names in a directory, or None if not a project."""
    for name in names:
        if name in MARKER_FILES:
            return MARKER_FILES[name]
    for name in names:
        for suffix, project_type in MARKER_SUFFIXES.items():
            if name.endswith(suffix):
                return project_type
    return None


def newest_marker_mtime(root: Path) -> float | None:
    """Newest modification time among manifests and lockfiles in root."""
    newest = None
    try:
        with os.scandir(root) as entries:
            for entry in entries:
                name = entry.name
                is_marker = (
                    name in MARKER_FILES
                    or name in LOCK_FILES
                    or any(name.endswith(s) for s in MARKER_SUFFIXES)
                )
                if not is_marker or not entry.is_file(follow_symlinks=False):
                    continue
                try:
                    mtime = entry.stat(follow_symlinks=False).st_mtime
                except OSError:
                    continue
                if newest is None or mtime > newest:
                    newest = mtime
    except OSError as e:
        logger.debug("Cannot list markers in %s: %s", root, e)
    return newest


class GitProbeError(TidyDiskError):
    """Git state could not be determined."""


class GitProbe:
    """Reads work-tree state through the git command line."""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    def find_repo_root(self, path: Path) -> Path | None:
        """Closest ancestor (or path itself) that holds a .git entry."""
        for candidate in (path, *path.parents):
            if (candidate / ".git").exists():
                return candidate
        return None

    def _git(self, repo: Path, *args: str) -> str:
        try:
            result = run_command(
                ["git", "--no-optional-locks", "-C", str(repo), *args],
                timeout=self.timeout,
                operation="git",
            )
        except FileNotFoundError:
            raise GitProbeError("git is not installed") from None
        except (OperationTimeout, OSError) as e:
            raise GitProbeError(str(e)) from e
        if not result.success:
            raise GitProbeError(result.stderr.strip() or f"git exited with {result.returncode}")
        return result.stdout

    def is_dirty(self, repo: Path) -> bool:
        return bool(self._git(repo, "status", "--porcelain").strip())

    def last_commit_time(self, repo: Path) -> datetime | None:
        """Committer time of HEAD, or None for a repository without commits."""
        try:
            out = self._git(repo, "log", "-1", "--format=%ct").strip()
        except GitProbeError as e:
            if "does not have any commits" in str(e):
                return None
            raise
        if not out:
            return None
        try:
            return datetime.fromtimestamp(int(out))
        except ValueError as e:
            raise GitProbeError(f"unexpected git log output: {out!r}") from e


class ActivityDetector:
    """Side-effect free project activity check. Safe to share between threads."""

    def __init__(self, git: GitProbe | None = None):
        self.git = git or GitProbe()

    def assess(
        self,
        root: Path,
        threshold_days: int,
        project_type: ProjectType = ProjectType.UNKNOWN,
        now: float | None = None,
    ) -> ProjectRecord:
        """
        Assess one project root.

        Args:
            root: Project root directory
            threshold_days: Inactivity threshold in days
            project_type: Already-detected project type, if known
            now: Reference time (epoch seconds), defaults to the current time

        Returns:
            ProjectRecord with the verdict and the signal that decided it
        """
        now = time.time() if now is None else now
        threshold = threshold_days * SECONDS_PER_DAY
        base = {"root": str(root), "project_type": project_type, "threshold_days": threshold_days}

        repo = self.git.find_repo_root(root)
        if repo is not None:
            try:
                dirty = self.git.is_dirty(repo)
                if dirty:
                    return ProjectRecord(
                        **base, dirty=True, verdict=Verdict.ACTIVE, reason="uncommitted changes"
                    )
                last_commit = self.git.last_commit_time(repo)
            except GitProbeError as e:
                logger.info("Git state of %s unavailable (%s); using marker files", root, e)
            else:
                if last_commit is not None:
                    age = now - last_commit.timestamp()
                    verdict = Verdict.ACTIVE if age < threshold else Verdict.INACTIVE
                    return ProjectRecord(
                        **base,
                        dirty=False,
                        last_commit=last_commit,
                        verdict=verdict,
                        reason=f"last commit {age / SECONDS_PER_DAY:.0f} days ago",
                    )
                logger.info("Repository at %s has no commits; using marker files", repo)

        marker_mtime = newest_marker_mtime(root)
        if marker_mtime is None:
            return ProjectRecord(**base, verdict=Verdict.INACTIVE, reason="no activity signal")

        age = now - marker_mtime
        verdict = Verdict.ACTIVE if age < threshold else Verdict.INACTIVE
        return ProjectRecord(
            **base,
            newest_marker_mtime=datetime.fromtimestamp(marker_mtime),
            verdict=verdict,
            reason=f"marker files modified {age / SECONDS_PER_DAY:.0f} days ago",
        )
