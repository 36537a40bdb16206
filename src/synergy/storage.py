"""Snapshot persistence.

The whole store is one JSON blob saved under ``STORAGE_KEY``. Loading never
fails on missing or unreadable content: it falls back to an empty snapshot.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

import pydantic

from .constants import STORAGE_FILE_SUFFIX, STORAGE_KEY
from .errors import PersistenceCorruptError, StorageError
from .logging_utils import log_event
from .models import Snapshot


class SnapshotStorage(Protocol):
    def load(self) -> Snapshot: ...

    def save(self, snapshot: Snapshot) -> None: ...


def encode_snapshot(snapshot: Snapshot) -> str:
    """Serialize a snapshot to its persisted JSON text."""
    data = snapshot.model_dump(mode="json", by_alias=True)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def decode_snapshot(text: str) -> Snapshot:
    """Parse persisted JSON text.

    Unknown fields are ignored and missing fields take their defaults.
    Raises PersistenceCorruptError if the text is not a valid snapshot.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PersistenceCorruptError(f"Invalid JSON in snapshot: {e}") from e
    except RecursionError as e:
        raise PersistenceCorruptError("Snapshot JSON is nested too deeply") from e
    if not isinstance(data, dict):
        raise PersistenceCorruptError("Snapshot must be a JSON object")
    try:
        return Snapshot.model_validate(data)
    except pydantic.ValidationError as e:
        raise PersistenceCorruptError(f"Invalid snapshot structure: {e}") from e


def _decode_utf8(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise PersistenceCorruptError(f"Snapshot is not valid UTF-8: {e}") from e


def _recover(storage: str, error: PersistenceCorruptError) -> Snapshot:
    log_event(
        "snapshot_corrupt",
        level=logging.WARNING,
        storage=storage,
        error_type=type(error).__name__,
        error=str(error),
    )
    return Snapshot()


def _log_loaded(storage: str, snapshot: Snapshot) -> None:
    log_event(
        "snapshot_loaded",
        storage=storage,
        users=len(snapshot.users),
        projects=len(snapshot.projects),
        tasks=len(snapshot.tasks),
    )


class FileStorage:
    """Snapshot stored as ``<STORAGE_KEY>.json`` inside a data directory."""

    def __init__(self, data_dir: Path, key: str = STORAGE_KEY) -> None:
        self.path = Path(data_dir) / f"{key}{STORAGE_FILE_SUFFIX}"

    def load(self) -> Snapshot:
        if not self.path.exists():
            return Snapshot()
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read snapshot file: {self.path}: {e}") from e
        try:
            snapshot = decode_snapshot(_decode_utf8(raw))
        except PersistenceCorruptError as e:
            return _recover(str(self.path), e)
        _log_loaded(str(self.path), snapshot)
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        """Write the snapshot atomically: temp file in the same directory, then rename."""
        text = encode_snapshot(snapshot)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
        except OSError as e:
            raise StorageError(f"Failed to save snapshot file: {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to save snapshot file: {self.path}: {e}") from e
        log_event("snapshot_saved", level=logging.DEBUG, storage=str(self.path))


class MemoryStorage:
    """Key/value blob storage held in memory, keyed like the file variant."""

    def __init__(self, blobs: dict[str, str] | None = None, key: str = STORAGE_KEY) -> None:
        self.blobs = blobs if blobs is not None else {}
        self.key = key

    def load(self) -> Snapshot:
        text = self.blobs.get(self.key)
        if not text:
            return Snapshot()
        try:
            snapshot = decode_snapshot(text)
        except PersistenceCorruptError as e:
            return _recover(f"memory:{self.key}", e)
        _log_loaded(f"memory:{self.key}", snapshot)
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        self.blobs[self.key] = encode_snapshot(snapshot)
