"""Checkpoint persistence.

This module provides:
- CheckpointStore: Protocol for a key-value store with get/set/delete
- MemoryCheckpointStore: Dict-backed store (tests, single process)
- SqliteCheckpointStore: SQLite-backed store surviving process restarts
- CheckpointSlot: JSON (de)serialization of a Checkpoint under one key

At most one checkpoint lives under a key. Its presence means a transfer is
in progress and must be resumed before a new one may start.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

from chunkrelay.core.errors import ValidationError
from chunkrelay.transfer.models import Checkpoint

logger = logging.getLogger(__name__)

DEFAULT_CHECKPOINT_KEY = "chunkrelay.pending"


class CheckpointStore(Protocol):
    """Durable key-value store holding serialized checkpoints."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryCheckpointStore:
    """In-memory store."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._values


class SqliteCheckpointStore:
    """SQLite-based key-value store for checkpoints."""

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the store database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS checkpoints (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> SqliteCheckpointStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def get(self, key: str) -> str | None:
        """Get the value stored under key."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT value FROM checkpoints WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO checkpoints (key, value) VALUES (?, ?)",
                (key, value),
            )

    def delete(self, key: str) -> None:
        """Remove key if present."""
        with self._lock:
            self._conn.execute("DELETE FROM checkpoints WHERE key = ?", (key,))


class CheckpointSlot:
    """The single checkpoint kept under one store key."""

    def __init__(self, store: CheckpointStore, key: str = DEFAULT_CHECKPOINT_KEY) -> None:
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> Checkpoint | None:
        """Read the pending checkpoint.

        Returns:
            The checkpoint, or None if no transfer is pending.

        Raises:
            ValidationError: If the stored record cannot be decoded.
        """
        raw = self._store.get(self._key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Corrupt checkpoint under {self._key!r}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Corrupt checkpoint under {self._key!r}")
        return Checkpoint.from_dict(data)

    def save(self, checkpoint: Checkpoint) -> None:
        """Replace the stored checkpoint."""
        self._store.set(self._key, json.dumps(checkpoint.to_dict()))
        logger.debug(
            f"Saved checkpoint {self._key!r} at chunk "
            f"{checkpoint.next_chunk_index}/{checkpoint.total_chunks}"
        )

    def clear(self) -> None:
        """Delete the stored checkpoint, if any."""
        self._store.delete(self._key)
