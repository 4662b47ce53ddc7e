"""Abstract repository interface for catalog storage."""

from abc import ABC, abstractmethod
from typing import Any

from baluflix.models import VideoRecord


class VideoRepository(ABC):
    """Abstract base class defining the catalog storage contract.

    All concrete storage implementations (SQLite, flat JSON file, etc.)
    must implement this interface. The catalog service depends on this
    abstraction and receives a concrete instance at startup.

    ``record_id`` throughout is the record's storage ``key``.
    """

    @abstractmethod
    def insert(self, record: VideoRecord) -> VideoRecord:
        """Persist a new record and return it as stored."""

    @abstractmethod
    def find_all(self, published: bool | None = None) -> list[VideoRecord]:
        """List records, newest ``created_at`` first.

        Records with equal ``created_at`` keep insertion order.

        Args:
            published: If given, only records with this published flag.
        """

    @abstractmethod
    def find_by_id(self, record_id: str) -> VideoRecord | None:
        """Retrieve a record by storage key. Returns None if not found."""

    @abstractmethod
    def update_by_id(
        self,
        record_id: str,
        patch: dict[str, Any],
        *,
        where: dict[str, Any] | None = None,
    ) -> VideoRecord | None:
        """Atomically apply ``patch`` to a single record.

        Args:
            record_id: Storage key of the record.
            patch: Field values to set.
            where: Optional field values the stored record must currently
                   hold for the update to apply (conditional update).

        Returns:
            The updated record, or None if no record matched.
        """

    @abstractmethod
    def ping(self) -> bool:
        """Check that the backing store is reachable."""

    @staticmethod
    def _newest_first(records: list[VideoRecord]) -> list[VideoRecord]:
        """Sort by created_at descending; ``sorted`` is stable under reverse."""
        return sorted(records, key=lambda r: r.created_at, reverse=True)
