"""Package-manager and application caches."""

import sys
from pathlib import Path

from tidydisk.fsutil import expand_path
from tidydisk.models import CategoryTag
from tidydisk.providers.base import LocationProvider

# Caches that exist on every platform
COMMON_CACHE_ROOTS = [
    "~/.npm/_cacache",
    "~/.yarn/cache",
    "~/.cargo/registry/cache",
    "~/.gradle/caches",
    "~/.m2/wrapper/dists",
    "~/.nuget/http-cache",
]

LINUX_CACHE_ROOTS = [
    "${XDG_CACHE_HOME}",
    "~/.cache",
    "~/.local/share/pnpm/store",
]

MACOS_CACHE_ROOTS = [
    "~/Library/Caches",
    "~/Library/pnpm/store",
]

WINDOWS_CACHE_ROOTS = [
    "%LOCALAPPDATA%/npm-cache/_cacache",
    "%LOCALAPPDATA%/pip/cache",
    "%LOCALAPPDATA%/Yarn/Cache",
    "%LOCALAPPDATA%/pnpm-cache",
    "%LOCALAPPDATA%/pnpm/store",
    "%LOCALAPPDATA%/NuGet/v3-cache",
]


class CacheProvider(LocationProvider):
    tag = CategoryTag.CACHE
    name = "Caches"
    description = "Package manager and application caches; rebuilt on demand"

    def default_roots(self) -> list[Path]:
        if sys.platform == "win32":
            platform_roots = WINDOWS_CACHE_ROOTS
        elif sys.platform == "darwin":
            platform_roots = MACOS_CACHE_ROOTS
        else:
            platform_roots = LINUX_CACHE_ROOTS
        roots = []
        for raw in [*platform_roots, *COMMON_CACHE_ROOTS]:
            expanded = expand_path(raw)
            # Unset variables stay literal after expansion
            if "$" in str(expanded) or "%" in str(expanded):
                continue
            roots.append(expanded)
        return roots
