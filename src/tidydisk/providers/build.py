"""Build artifacts of inactive projects.

The only provider that walks the filesystem. The walk starts at the scan
root, is depth bounded, never follows symlinks and never descends into an
artifact directory: the directory itself is the unit of deletion.
"""

import logging
import os
from pathlib import Path

from tidydisk.activity import ActivityDetector, GitProbe, detect_project_type
from tidydisk.fsutil import is_excluded, measure
from tidydisk.models import CategoryResult, CategoryTag, ProjectRecord, ProjectType, ScanItem
from tidydisk.providers.base import CategoryProvider, ScanContext
from tidydisk.store import classify_os_error

logger = logging.getLogger(__name__)

ARTIFACT_DIRS: dict[ProjectType, frozenset[str]] = {
    ProjectType.NODE: frozenset(
        {"node_modules", ".next", ".nuxt", ".turbo", ".parcel-cache", ".svelte-kit", "dist", "build"}
    ),
    ProjectType.RUST: frozenset({"target"}),
    ProjectType.PYTHON: frozenset(
        {".venv", "venv", "__pycache__", ".pytest_cache", ".mypy_cache", ".ruff_cache", ".tox", "build", "dist"}
    ),
    ProjectType.JAVA: frozenset({"target", "build", ".gradle"}),
    ProjectType.DOTNET: frozenset({"bin", "obj"}),
    ProjectType.GO: frozenset(),
    ProjectType.UNKNOWN: frozenset(),
}

# Never descended into while looking for projects
SKIP_DIRECTORIES = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        ".idea",
        ".vscode",
        "Library",
        "Applications",
        ".Trash",
        "AppData",
    }
)


class BuildProvider(CategoryProvider):
    tag = CategoryTag.BUILD
    name = "Build Artifacts"
    description = "Dependency and build output directories of projects not worked on recently"
    project_aware = True

    def __init__(self, detector: ActivityDetector | None = None):
        self._detector = detector

    def scan(self, context: ScanContext) -> CategoryResult:
        detector = self._detector or ActivityDetector(GitProbe(timeout=context.git_timeout))
        walk = _ProjectWalk(detector, context)
        walk.run(context.root)
        return CategoryResult(
            category=self.tag,
            items=walk.items,
            error="; ".join(walk.errors) if walk.errors else None,
        )


class _ProjectWalk:
    """State of one depth-bounded walk over a scan root."""

    def __init__(self, detector: ActivityDetector, context: ScanContext):
        self.detector = detector
        self.context = context
        self.items: list[ScanItem] = []
        self.errors: list[str] = []
        self.projects: list[ProjectRecord] = []

    def run(self, root: Path) -> None:
        if not root.is_dir():
            self.errors.append(f"{root}: not a directory")
            return
        self._visit(root, depth=0, project=None)

    def _visit(self, directory: Path, depth: int, project: ProjectRecord | None) -> None:
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            if depth == 0:
                self.errors.append(f"{directory}: {classify_os_error(str(directory), e).reason}")
            else:
                logger.debug("Cannot list %s: %s", directory, e)
            return

        project_type = detect_project_type({e.name for e in entries})
        if project_type is not None:
            project = self.detector.assess(
                directory,
                self.context.project_age_days,
                project_type=project_type,
                now=self.context.now,
            )
            self.projects.append(project)
            logger.debug("Project %s is %s (%s)", directory, project.verdict.value, project.reason)

        artifacts = ARTIFACT_DIRS[project.project_type] if project else frozenset()
        for entry in sorted(entries, key=lambda e: e.name):
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            path = Path(entry.path)

            if entry.name in artifacts:
                if not project.is_active:
                    self._emit(path, project)
                continue

            if entry.name.startswith(".") or entry.name in SKIP_DIRECTORIES:
                continue
            if depth + 1 >= self.context.max_depth:
                continue
            if is_excluded(path, self.context.exclude):
                continue
            self._visit(path, depth + 1, project)

    def _emit(self, path: Path, project: ProjectRecord) -> None:
        if is_excluded(path, self.context.exclude):
            return
        try:
            size = measure(path)
        except OSError as e:
            logger.debug("Skipping %s: %s", path, e)
            return
        if size < self.context.min_size_bytes:
            return
        self.items.append(
            ScanItem(
                path=str(path),
                size_bytes=size,
                category=CategoryTag.BUILD,
                origin=f"{project.root} ({project.project_type.value}, {project.reason})",
                is_dir=True,
            )
        )
