from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from auth.models import Session


class SessionStore(ABC):
    @abstractmethod
    async def load(self, identity: str) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    async def persist(self, identity: str, session: Session | None) -> None:
        """Replace the stored session; ``None`` removes it."""
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    async def load(self, identity: str) -> Session | None:
        return self._sessions.get(identity)

    async def persist(self, identity: str, session: Session | None) -> None:
        if session is None:
            self._sessions.pop(identity, None)
        else:
            self._sessions[identity] = session


class FileSessionStore(SessionStore):
    def __init__(self, path: str | Path = ".tokens.json") -> None:
        self._path = Path(path)

    async def load(self, identity: str) -> Session | None:
        payload = self._read_all().get(identity)
        if payload is None:
            return None
        return Session.from_payload(payload)

    async def persist(self, identity: str, session: Session | None) -> None:
        all_sessions = self._read_all()
        if session is None:
            all_sessions.pop(identity, None)
        else:
            all_sessions[identity] = session.to_payload()
        self._write_all(all_sessions)

    def _read_all(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}

        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return {}

        raw = json.loads(text)
        if not isinstance(raw, dict):
            raise RuntimeError("Session store file is invalid; expected top-level JSON object.")
        return raw

    def _write_all(self, payload: dict[str, dict]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f"{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
