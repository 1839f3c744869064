"""Deletion session log.

Each clean run writes one JSON-lines file under the history directory:

    {"type": "session", "id": ..., "created_at": ..., "mode": ...}
    {"type": "entry", "original_path": ..., "handle": ..., "outcome": ..., ...}
    {"type": "restored", "handle": ..., "timestamp": ...}

Lines are only ever appended. ``index.json`` lists session ids in creation
order so "last" is an explicit lookup rather than a directory listing.
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from tidydisk.errors import SessionCorruptError
from tidydisk.models import DeleteMode, DeletionSession, SessionEntry

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"


class SessionWriter:
    """Appends entries to one session, in memory and (optionally) on disk."""

    def __init__(self, session: DeletionSession, path: Path | None = None):
        self.session = session
        self.path = path

    def _write(self, record: dict) -> None:
        if self.path is None:
            return
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")
            f.flush()

    def append(self, entry: SessionEntry) -> None:
        self.session.entries.append(entry)
        self._write({"type": "entry", **entry.model_dump(mode="json")})

    def mark_restored(self, handle: str) -> None:
        self.session.restored.add(handle)
        self._write(
            {"type": "restored", "handle": handle, "timestamp": datetime.now().isoformat()}
        )


class SessionLog:
    """The on-disk collection of deletion sessions."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    @property
    def index_path(self) -> Path:
        return self.directory / INDEX_FILE

    def _session_path(self, session_id: str) -> Path:
        return self.directory / f"session-{session_id}.jsonl"

    def list_ids(self) -> list[str]:
        """Session ids, newest first."""
        if self.index_path.exists():
            try:
                ids = json.loads(self.index_path.read_text())
                if not isinstance(ids, list):
                    raise ValueError("index is not a list")
            except (OSError, ValueError) as e:
                raise SessionCorruptError(self.index_path, str(e)) from e
        else:
            ids = sorted(
                p.stem.removeprefix("session-") for p in self.directory.glob("session-*.jsonl")
            )
        return [i for i in reversed(ids) if self._session_path(i).exists()]

    def _write_index(self, ids: list[str]) -> None:
        tmp = self.index_path.with_suffix(".tmp")
        tmp.write_text(json.dumps(ids))
        os.replace(tmp, self.index_path)

    def _new_id(self, existing: list[str]) -> str:
        session_id = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        # Keep ids strictly increasing even if the clock repeats or goes back
        if existing and session_id <= existing[0]:
            session_id = f"{existing[0]}-1"
        return session_id

    def begin(self, mode: DeleteMode = DeleteMode.SOFT) -> SessionWriter:
        """Create a new session file and register it in the index."""
        self.directory.mkdir(parents=True, exist_ok=True)
        existing = self.list_ids()
        session = DeletionSession(id=self._new_id(existing), mode=mode)
        path = self._session_path(session.id)
        writer = SessionWriter(session, path)
        writer._write(
            {
                "type": "session",
                "id": session.id,
                "created_at": session.created_at.isoformat(),
                "mode": session.mode.value,
            }
        )
        self._write_index([*reversed(existing), session.id])
        logger.info("Started deletion session %s", session.id)
        return writer

    def load(self, session_id: str) -> DeletionSession:
        """
        Read a session back from disk.

        Raises:
            SessionCorruptError: If the file is unreadable or malformed
        """
        path = self._session_path(session_id)
        session: DeletionSession | None = None
        try:
            with open(path, encoding="utf-8") as f:
                for line_no, line in enumerate(f, 1):
                    if not line.strip():
                        continue
                    record = json.loads(line)
                    kind = record.pop("type", None)
                    if kind == "session":
                        session = DeletionSession(
                            id=record["id"],
                            created_at=datetime.fromisoformat(record["created_at"]),
                            mode=DeleteMode(record.get("mode", DeleteMode.SOFT.value)),
                        )
                    elif session is None:
                        raise ValueError(f"line {line_no}: record before session header")
                    elif kind == "entry":
                        session.entries.append(SessionEntry.model_validate(record))
                    elif kind == "restored":
                        session.restored.add(record["handle"])
                    else:
                        raise ValueError(f"line {line_no}: unknown record type {kind!r}")
        except (OSError, ValueError, KeyError, ValidationError) as e:
            raise SessionCorruptError(path, str(e)) from e

        if session is None:
            raise SessionCorruptError(path, "missing session header")
        return session

    def latest(self) -> DeletionSession | None:
        ids = self.list_ids()
        if not ids:
            return None
        return self.load(ids[0])

    def writer_for(self, session: DeletionSession) -> SessionWriter:
        """Writer that appends to an existing session (used to record restores)."""
        return SessionWriter(session, self._session_path(session.id))
