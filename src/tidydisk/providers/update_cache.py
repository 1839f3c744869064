"""Operating-system update download caches."""

import os
import sys
from pathlib import Path

from tidydisk.models import CategoryTag
from tidydisk.providers.base import LocationProvider
from tidydisk.services import ServiceSpec

WINDOWS_UPDATE_SERVICE = ServiceSpec(
    name="wuauserv",
    stop_command=["net", "stop", "wuauserv"],
    start_command=["net", "start", "wuauserv"],
)


class UpdateCacheProvider(LocationProvider):
    tag = CategoryTag.UPDATE_CACHE
    name = "Update Cache"
    description = "Downloaded OS update packages that were already installed"

    def __init__(self, roots=None, service: ServiceSpec | None = None):
        super().__init__(roots)
        self._service = service

    @property
    def service(self) -> ServiceSpec | None:
        if self._service is not None:
            return self._service
        if sys.platform == "win32":
            return WINDOWS_UPDATE_SERVICE
        return None

    def default_roots(self) -> list[Path]:
        if sys.platform == "win32":
            system_root = Path(os.environ.get("SystemRoot", r"C:\Windows"))
            return [system_root / "SoftwareDistribution" / "Download"]
        if sys.platform == "darwin":
            return [Path("/Library/Updates")]
        return [Path("/var/cache/apt/archives")]

    def accepts(self, entry: os.DirEntry) -> bool:
        # apt keeps its lock file and partial downloads next to the packages
        return entry.name not in ("lock", "partial")
