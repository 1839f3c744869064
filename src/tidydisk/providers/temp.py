"""System and user temp directories."""

import os
import sys
import tempfile
from pathlib import Path

from tidydisk.models import CategoryTag
from tidydisk.providers.base import LocationProvider


class TempProvider(LocationProvider):
    tag = CategoryTag.TEMP
    name = "Temporary Files"
    description = "Leftover files in temp directories older than the minimum age"

    def default_roots(self) -> list[Path]:
        roots = [Path(tempfile.gettempdir())]
        if sys.platform == "win32":
            for var in ("TEMP", "TMP"):
                if os.environ.get(var):
                    roots.append(Path(os.environ[var]))
            roots.append(Path(os.environ.get("SystemRoot", r"C:\Windows")) / "Temp")
        else:
            roots.append(Path("/var/tmp"))
        return [r.resolve() for r in roots]
