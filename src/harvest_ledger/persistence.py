"""Durable replicas of the record collections.

Two replicas are kept in sync with the in-memory store:

- ``LocalCache``: a directory of JSON documents under fixed keys, always
  written.
- ``BackupFile``: one JSON file holding both collections, written once the
  user has connected it.

Neither is authoritative while the application runs; they are only read at
start-up or when the user opens a database file. Writes are best effort and
are not coordinated, so a crash between the two can leave them diverged.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from harvest_ledger.errors import PersistenceError
from harvest_ledger.events import LedgerEvent
from harvest_ledger.records import EXPENSES_KEY, FARMERS_KEY
from harvest_ledger.store import SCHEMA_VERSION, RecordStore

logger = structlog.get_logger(__name__)

FARMERS_CACHE_KEY = "hm_farmers"
EXPENSES_CACHE_KEY = "hm_expenses"
LAST_BACKUP_KEY = "hm_last_backup"
BACKUP_FILE_KEY = "hm_backup_file"
SCHEMA_VERSION_KEY = "hm_schema_version"


def write_json_atomic(path: Path, value: Any, indent: int | None = 2) -> None:
    """Write JSON to `path` through a temporary file and rename.

    Raises:
        PersistenceError: If the file cannot be written.
    """
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            json.dump(value, tmp, indent=indent, ensure_ascii=False)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise PersistenceError(f"could not write {path}: {e}", path=path) from e


def read_json(path: Path) -> Any:
    """Read a JSON document.

    Raises:
        PersistenceError: If the file is missing, unreadable, not UTF-8 or not
            valid JSON.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"could not read {path}: {e}", path=path) from e
    except UnicodeDecodeError as e:
        raise PersistenceError(f"{path} is not UTF-8 text: {e}", path=path) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"{path} is not valid JSON: {e}", path=path) from e


class LocalCache:
    """Key-value cache of JSON documents, one file per key."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        return read_json(path)

    def set(self, key: str, value: Any) -> None:
        write_json_atomic(self._path(key), value, indent=None)

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"could not remove {key}: {e}", path=self._path(key)) from e

    def load_payload(self) -> dict[str, Any]:
        """Return the cached collections; absent keys read as empty."""
        return {
            FARMERS_KEY: self.get(FARMERS_CACHE_KEY, []),
            EXPENSES_KEY: self.get(EXPENSES_CACHE_KEY, []),
        }

    def store_payload(self, snapshot: dict[str, Any]) -> None:
        self.set(FARMERS_CACHE_KEY, snapshot[FARMERS_KEY])
        self.set(EXPENSES_CACHE_KEY, snapshot[EXPENSES_KEY])
        self.set(SCHEMA_VERSION_KEY, SCHEMA_VERSION)

    def last_backup(self) -> datetime | None:
        raw = self.get(LAST_BACKUP_KEY)
        if not raw:
            return None
        try:
            stamp = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            logger.warning("invalid_last_backup", value=raw)
            return None
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp

    def mark_backup(self, when: datetime) -> None:
        self.set(LAST_BACKUP_KEY, when.isoformat())

    def connected_file(self) -> Path | None:
        raw = self.get(BACKUP_FILE_KEY)
        return Path(raw) if raw else None

    def set_connected_file(self, path: Path | None) -> None:
        if path is None:
            self.delete(BACKUP_FILE_KEY)
        else:
            self.set(BACKUP_FILE_KEY, str(path))


class BackupFile:
    """A user-chosen JSON database file holding both collections."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    def write(self, snapshot: dict[str, Any]) -> None:
        write_json_atomic(self.path, snapshot)

    def read(self) -> Any:
        return read_json(self.path)


class ReplicaSet:
    """Store hook that rewrites every replica after each mutation.

    Failures are logged and queued as warnings for the caller to show; they
    never propagate back into the store.
    """

    def __init__(
        self,
        store: RecordStore,
        cache: LocalCache,
        backup_file: BackupFile | None = None,
    ):
        self._store = store
        self._cache = cache
        self.backup_file = backup_file
        self._warnings: list[str] = []
        self._logger = logger.bind(component="replicas")

    def __call__(self, event: LedgerEvent) -> None:
        self._logger.debug("replicating", event_type=event.event_type.value)
        self.sync()

    def sync(self) -> bool:
        """Write the current snapshot to all replicas.

        Returns:
            True if every replica was written.
        """
        snapshot = self._store.snapshot()
        ok = True

        try:
            self._cache.store_payload(snapshot)
        except PersistenceError as e:
            ok = False
            self._logger.warning("cache_write_failed", error=str(e))
            self._warnings.append(f"Could not update local cache: {e}")

        if self.backup_file is not None:
            try:
                self.backup_file.write(snapshot)
            except PersistenceError as e:
                ok = False
                self._logger.warning(
                    "backup_write_failed", path=str(self.backup_file.path), error=str(e)
                )
                self._warnings.append(
                    f"Error saving to file {self.backup_file.name}. Check permissions."
                )

        return ok

    def drain_warnings(self) -> list[str]:
        """Return and clear the queued write warnings."""
        warnings, self._warnings = self._warnings, []
        return warnings
