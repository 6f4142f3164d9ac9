"""Durable storage for the client session (profile blob plus bearer token)."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from milk_center.config import SETTINGS
from milk_center.domain.models import Principal

logger = logging.getLogger(__name__)

PROFILE_KEY = "msr-milk-center-auth"
TOKEN_KEY = "auth-token"


class FileSessionStore:
    """Two keys in one JSON file; both must be present to count as logged in."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path or SETTINGS.session_file)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Session file %s is corrupt; treating as logged out", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        if not data:
            self._path.unlink(missing_ok=True)
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")

    def load_principal(self) -> Principal | None:
        raw = self._read().get(PROFILE_KEY)
        if not isinstance(raw, dict):
            return None
        try:
            return Principal.from_profile(raw)
        except (KeyError, ValueError):
            return None

    def load_token(self) -> str | None:
        token = self._read().get(TOKEN_KEY)
        return token or None

    def save(self, principal: Principal, token: str) -> None:
        self._write({PROFILE_KEY: principal.to_profile(), TOKEN_KEY: token})

    def save_token(self, token: str) -> None:
        data = self._read()
        data[TOKEN_KEY] = token
        self._write(data)

    def clear_token(self) -> None:
        data = self._read()
        data.pop(TOKEN_KEY, None)
        self._write(data)

    def clear(self) -> None:
        self._write({})
