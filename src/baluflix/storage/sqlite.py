"""SQLite implementation of the video repository."""

import logging
import sqlite3
import threading
from typing import Any

from baluflix.config import settings
from baluflix.errors import StorageError
from baluflix.models import VideoRecord
from baluflix.storage.repository import VideoRepository

logger = logging.getLogger(__name__)


class SQLiteVideoRepository(VideoRepository):
    """SQLite-backed catalog storage (the document-store variant).

    Implements VideoRepository using stdlib sqlite3. A single connection
    is shared across request threads and guarded by a lock; conditional
    updates run as one ``UPDATE ... WHERE`` statement so a concurrent
    publish of the same record cannot be lost.
    """

    _CREATE_TABLE = """
        CREATE TABLE IF NOT EXISTS videos (
            seq           INTEGER PRIMARY KEY AUTOINCREMENT,
            key           TEXT NOT NULL UNIQUE,
            video_id      TEXT NOT NULL,
            title         TEXT NOT NULL,
            description   TEXT DEFAULT '',
            url           TEXT,
            filename      TEXT,
            original_name TEXT,
            kind          TEXT NOT NULL,
            thumbnail     TEXT,
            published     INTEGER NOT NULL DEFAULT 0,
            created_at    TEXT NOT NULL,
            uploaded_by   TEXT
        )
    """

    _COLUMNS = (
        "key", "video_id", "title", "description", "url", "filename",
        "original_name", "kind", "thumbnail", "published", "created_at",
        "uploaded_by",
    )

    # created_at never changes; key identifies the row
    _IMMUTABLE = frozenset({"key", "created_at"})

    def __init__(self, db_path: str | None = None) -> None:
        """Initialize the repository.

        Args:
            db_path: Path to SQLite database file. Defaults to settings.db_path.
                     Use ":memory:" for testing.
        """
        self._db_path = db_path or str(settings.db_path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._init_db()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open catalog database {self._db_path}: {e}") from e

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        self._conn.execute(self._CREATE_TABLE)
        self._conn.commit()

    def insert(self, record: VideoRecord) -> VideoRecord:
        """Persist a new record and return it as stored."""
        placeholders = ", ".join("?" for _ in self._COLUMNS)
        sql = f"INSERT INTO videos ({', '.join(self._COLUMNS)}) VALUES ({placeholders})"
        with self._lock:
            try:
                self._conn.execute(sql, self._to_row(record))
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StorageError(f"Failed to insert record {record.key}: {e}") from e
        return record

    def find_all(self, published: bool | None = None) -> list[VideoRecord]:
        """List records newest first; ties keep insertion order."""
        sql = "SELECT * FROM videos"
        params: tuple = ()
        if published is not None:
            sql += " WHERE published = ?"
            params = (int(published),)
        sql += " ORDER BY seq"
        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to list records: {e}") from e
        # created_at is stored as ISO text, so ordering happens on parsed values
        return self._newest_first([self._row_to_record(row) for row in rows])

    def find_by_id(self, record_id: str) -> VideoRecord | None:
        """Retrieve a record by storage key. Returns None if not found."""
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT * FROM videos WHERE key = ?", (record_id,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to load record {record_id}: {e}") from e
        if row is None:
            return None
        return self._row_to_record(row)

    def update_by_id(
        self,
        record_id: str,
        patch: dict[str, Any],
        *,
        where: dict[str, Any] | None = None,
    ) -> VideoRecord | None:
        """Apply ``patch`` in a single conditional UPDATE statement."""
        fields = [f for f in patch if f in self._COLUMNS and f not in self._IMMUTABLE]
        if not fields:
            return self.find_by_id(record_id)

        conditions = ["key = ?"]
        params = [self._to_column(f, patch[f]) for f in fields] + [record_id]
        for name, value in (where or {}).items():
            if name not in self._COLUMNS:
                raise ValueError(f"Unknown field in condition: {name}")
            conditions.append(f"{name} = ?")
            params.append(self._to_column(name, value))

        sql = (
            f"UPDATE videos SET {', '.join(f'{f} = ?' for f in fields)} "
            f"WHERE {' AND '.join(conditions)}"
        )
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                self._conn.commit()
                if cursor.rowcount == 0:
                    return None
                row = self._conn.execute(
                    "SELECT * FROM videos WHERE key = ?", (record_id,)
                ).fetchone()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StorageError(f"Failed to update record {record_id}: {e}") from e
        return self._row_to_record(row)

    def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        with self._lock:
            try:
                self._conn.execute("SELECT 1").fetchone()
            except sqlite3.Error as e:
                logger.warning("Catalog database ping failed: %s", e)
                return False
        return True

    def _to_row(self, record: VideoRecord) -> tuple:
        data = record.model_dump(exclude={"source_ref"})
        return tuple(self._to_column(c, data[c]) for c in self._COLUMNS)

    @staticmethod
    def _to_column(name: str, value: Any) -> Any:
        """Convert a model value to its SQLite column representation."""
        if name == "published":
            return int(bool(value))
        if name == "kind":
            return getattr(value, "value", value)
        if name == "created_at" and value is not None:
            return value.isoformat()
        return value

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> VideoRecord:
        """Convert a database row to a VideoRecord model."""
        return VideoRecord(
            key=row["key"],
            video_id=row["video_id"],
            title=row["title"],
            description=row["description"] or "",
            url=row["url"],
            filename=row["filename"],
            original_name=row["original_name"],
            kind=row["kind"],
            thumbnail=row["thumbnail"],
            published=bool(row["published"]),
            created_at=row["created_at"],
            uploaded_by=row["uploaded_by"],
        )
