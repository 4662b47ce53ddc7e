"""Flat JSON file implementation of the video repository."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError as ModelValidationError

from baluflix.config import settings
from baluflix.errors import StorageError
from baluflix.models import VideoRecord
from baluflix.storage.repository import VideoRepository

logger = logging.getLogger(__name__)


class JSONFileVideoRepository(VideoRepository):
    """Catalog stored as a single JSON array of records.

    Every mutation rewrites the whole file. Suitable only for small
    catalogs served by one process: the lock below serialises writers
    inside this process, nothing coordinates separate processes.
    """

    _IMMUTABLE = frozenset({"key", "created_at"})

    def __init__(self, path: Path | str | None = None) -> None:
        """Initialize the repository.

        Args:
            path: JSON file location. Defaults to settings.catalog_path.
                  Created with an empty array if missing.
        """
        self._path = Path(path) if path else settings.catalog_path
        self._lock = threading.Lock()
        if not self._path.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._write([])

    def insert(self, record: VideoRecord) -> VideoRecord:
        """Append a record and rewrite the file."""
        with self._lock:
            records = self._read()
            records.append(record)
            self._write(records)
        return record

    def find_all(self, published: bool | None = None) -> list[VideoRecord]:
        """List records newest first; ties keep file (insertion) order."""
        with self._lock:
            records = self._read()
        if published is not None:
            records = [r for r in records if r.published is published]
        return self._newest_first(records)

    def find_by_id(self, record_id: str) -> VideoRecord | None:
        """Retrieve a record by storage key. Returns None if not found."""
        with self._lock:
            records = self._read()
        return next((r for r in records if r.key == record_id), None)

    def update_by_id(
        self,
        record_id: str,
        patch: dict[str, Any],
        *,
        where: dict[str, Any] | None = None,
    ) -> VideoRecord | None:
        """Read-modify-write the whole file under the process lock."""
        changes = {k: v for k, v in patch.items() if k not in self._IMMUTABLE}
        with self._lock:
            records = self._read()
            for i, record in enumerate(records):
                if record.key != record_id:
                    continue
                if where and any(getattr(record, k, None) != v for k, v in where.items()):
                    return None
                updated = record.model_copy(update=changes)
                records[i] = VideoRecord.model_validate(updated.model_dump())
                self._write(records)
                return records[i]
        return None

    def ping(self) -> bool:
        """Check that the catalog file is readable."""
        try:
            with self._lock:
                self._read()
        except StorageError as e:
            logger.warning("Catalog file ping failed: %s", e)
            return False
        return True

    def _read(self) -> list[VideoRecord]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "[]")
            return [VideoRecord.model_validate(item) for item in raw]
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError, ModelValidationError) as e:
            raise StorageError(f"Cannot read catalog file {self._path}: {e}") from e

    def _write(self, records: list[VideoRecord]) -> None:
        """Write to a temp file next to the catalog and move it into place."""
        payload = [r.model_dump(mode="json", exclude={"source_ref"}) for r in records]
        try:
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp, self._path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write catalog file {self._path}: {e}") from e
