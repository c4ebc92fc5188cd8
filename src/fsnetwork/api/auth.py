"""Auth token storage.

BackendAuth persists a single bearer token in a key-value store under a fixed
key. Every read and write goes straight to the store; access is serialized
with a lock because one BackendAuth is typically shared by all operations.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from fsnetwork.api.protocols import KeyValueStore

AUTH_TOKEN_KEY = "BackendAuthToken"  # noqa: S105 - store key name, not a secret

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Key-value store kept in process memory."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStore:
    """Key-value store persisted as a flat JSON object on disk.

    The file is read on every access and rewritten on every change, so several
    processes sharing the file always see the latest value. A missing file
    reads as empty; an unreadable or corrupt file is logged and treated as
    empty, then replaced on the next write.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.exception("Failed to read key-value store %s", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed key-value store %s", self._path)
            return {}
        return {key: value for key, value in data.items() if isinstance(value, str)}

    def _write(self, values: dict[str, str]) -> None:
        """Replace the file atomically with an owner-only copy."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(values, f)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._read()
        values[key] = value
        self._write(values)

    def delete(self, key: str) -> None:
        values = self._read()
        if key not in values:
            return
        del values[key]
        self._write(values)


class BackendAuth:
    """Bearer token store used to authenticate backend requests."""

    def __init__(self, store: KeyValueStore, key: str = AUTH_TOKEN_KEY) -> None:
        """Initialize the token store.

        Args:
            store: Persistent key-value store holding the token
            key: Key the token is stored under
        """
        self._store = store
        self._key = key
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        """Return repr without exposing the token."""
        return f"BackendAuth(key='{self._key}', token='***redacted***')"

    def set_token(self, token: str) -> None:
        """Persist a new token, replacing any previous one."""
        with self._lock:
            self._store.set(self._key, token)
        logger.info("Auth token stored")

    def get_token(self) -> str | None:
        """Return the stored token, or None when signed out."""
        with self._lock:
            return self._store.get(self._key)

    @property
    def token(self) -> str | None:
        return self.get_token()

    def delete_token(self) -> None:
        """Remove the stored token."""
        with self._lock:
            self._store.delete(self._key)
        logger.info("Auth token deleted")
