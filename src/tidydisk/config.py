"""Configuration loading for tidydisk."""

import json
import logging
import os
import re
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


def get_base_dir() -> Path:
    """Return ~/.tidydisk (or $TIDYDISK_HOME)."""
    override = os.environ.get("TIDYDISK_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".tidydisk"


def get_config_path() -> Path:
    return get_base_dir() / "config.json"


def get_history_dir() -> Path:
    return get_base_dir() / "history"


def get_recovery_dir() -> Path:
    return get_base_dir() / "recovery"


def get_log_dir() -> Path:
    return get_base_dir() / "logs"


class Thresholds(BaseModel):
    project_age_days: int = Field(14, ge=0, description="Inactivity before build artifacts are eligible")
    min_age_days: int = Field(1, ge=0, description="Minimum age of cache/temp entries")
    min_size_bytes: int = Field(0, ge=0, description="Items smaller than this are ignored")


class Exclusions(BaseModel):
    patterns: list[str] = Field(default_factory=list, description="Glob patterns never reported")


class DeletionSettings(BaseModel):
    chunk_size: int = Field(25, ge=1, description="Items per soft-delete call")
    service_timeout_secs: float = Field(30.0, gt=0, description="Timeout for service stop/start")
    max_cleanup_bytes: int = Field(100 * 1024**3, description="Largest single cleanup request")


class ScanSettings(BaseModel):
    workers: int = Field(4, ge=1, description="Parallel category scans")
    max_depth: int = Field(8, ge=1, description="Depth limit for the project walk")
    git_timeout_secs: float = Field(5.0, gt=0)


class Config(BaseModel):
    """User configuration. Read once per invocation, never mutated by the core."""

    thresholds: Thresholds = Field(default_factory=Thresholds)
    exclusions: Exclusions = Field(default_factory=Exclusions)
    deletion: DeletionSettings = Field(default_factory=DeletionSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load configuration from disk.

        A missing file yields defaults. A corrupt or invalid file is logged
        and also yields defaults, so a bad config never blocks a scan.
        """
        path = path or get_config_path()
        if not path.exists():
            return cls()
        try:
            with open(path) as f:
                return cls.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring invalid config %s: %s", path, e)
            return cls()

    def save(self, path: Path | None = None) -> None:
        path = path or get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))

    def with_overrides(
        self,
        project_age_days: int | None = None,
        min_age_days: int | None = None,
        min_size_bytes: int | None = None,
        exclude: list[str] | None = None,
        chunk_size: int | None = None,
    ) -> "Config":
        """Return a copy with CLI overrides applied."""
        thresholds = self.thresholds.model_copy(
            update={
                k: v
                for k, v in {
                    "project_age_days": project_age_days,
                    "min_age_days": min_age_days,
                    "min_size_bytes": min_size_bytes,
                }.items()
                if v is not None
            }
        )
        exclusions = Exclusions(patterns=[*self.exclusions.patterns, *(exclude or [])])
        deletion = self.deletion
        if chunk_size is not None:
            deletion = deletion.model_copy(update={"chunk_size": chunk_size})
        return self.model_copy(
            update={"thresholds": thresholds, "exclusions": exclusions, "deletion": deletion}
        )


_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "KB": 1024,
    "M": 1024**2,
    "MB": 1024**2,
    "G": 1024**3,
    "GB": 1024**3,
    "T": 1024**4,
    "TB": 1024**4,
}


def parse_size(text: str) -> int:
    """
    Parse a size like '10MB', '512K' or '1.5G' into bytes.

    Raises:
        ValueError: If the text is not a size
    """
    match = re.fullmatch(r"\s*([\d.]+)\s*([A-Za-z]*)\s*", text)
    if not match:
        raise ValueError(f"Invalid size: {text!r}")
    unit = match.group(2).upper()
    if unit not in _SIZE_UNITS:
        raise ValueError(f"Unknown size unit: {match.group(2)!r}")
    try:
        number = float(match.group(1))
    except ValueError:
        raise ValueError(f"Invalid size: {text!r}") from None
    return int(number * _SIZE_UNITS[unit])
