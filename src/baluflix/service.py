"""Core business logic for baluflix."""

import logging

from baluflix.errors import NotFoundError, ValidationError
from baluflix.ingestion.youtube import is_video_host_ref, parse_video_id, thumbnail_url
from baluflix.models import UploadedFile, VideoKind, VideoRecord
from baluflix.storage.repository import VideoRepository

logger = logging.getLogger(__name__)


class CatalogService:
    """Catalog admission and publish workflow.

    Both the HTTP server and the CLI are thin wrappers over this class.
    The repository is injected via constructor so storage backends can
    be swapped without touching the workflow.
    """

    def __init__(self, repository: VideoRepository, default_published: bool = False) -> None:
        """Initialize the service.

        Args:
            repository: Catalog storage backend.
            default_published: Visibility given to records created from an
                               external URL. Uploaded files always start
                               unpublished.
        """
        self._repo = repository
        self._default_published = default_published

    @property
    def default_published(self) -> bool:
        return self._default_published

    def list_published(self) -> list[VideoRecord]:
        """Publicly visible records, newest first."""
        return self._repo.find_all(published=True)

    def list_all(self) -> list[VideoRecord]:
        """Every record regardless of state, newest first."""
        return self._repo.find_all()

    def get(self, key: str) -> VideoRecord:
        """Look up one record by storage key.

        Raises:
            NotFoundError: If no record has this key.
        """
        record = self._repo.find_by_id(key)
        if record is None:
            raise NotFoundError(f"Video not found: {key}")
        return record

    def create_from_reference(
        self,
        title: str | None,
        url: str | None,
        kind: VideoKind | str | None = None,
        thumbnail: str | None = None,
        uploaded_by: str | None = None,
    ) -> VideoRecord:
        """Add a record pointing at an externally hosted video.

        Args:
            title: Display title (required).
            url: Video URL or bare video id (required).
            kind: Category; defaults to Video.
            thumbnail: Thumbnail URL; derived from the video id if omitted.
            uploaded_by: Principal creating the record, when authenticated.

        Returns:
            The stored record, including its generated key.

        Raises:
            ValidationError: If title or url is missing, or kind is unknown.
        """
        if not title or not title.strip():
            raise ValidationError("title & url required")
        if not url or not url.strip():
            raise ValidationError("title & url required")

        try:
            kind = VideoKind(kind) if kind else VideoKind.VIDEO
        except ValueError as e:
            allowed = ", ".join(k.value for k in VideoKind)
            raise ValidationError(f"Unknown type {kind!r}; expected one of {allowed}") from e

        video_id = parse_video_id(url)
        if not thumbnail and is_video_host_ref(url):
            thumbnail = thumbnail_url(video_id)

        record = VideoRecord(
            video_id=video_id,
            title=title.strip(),
            url=url.strip(),
            kind=kind,
            thumbnail=thumbnail or None,
            published=self._default_published,
            uploaded_by=uploaded_by,
        )
        stored = self._repo.insert(record)
        logger.info(
            "Video added: %s — %s (published=%s)", stored.key, stored.title, stored.published
        )
        return stored

    def create_from_upload(
        self,
        file: UploadedFile | None,
        principal: str,
        title: str | None = None,
        description: str | None = None,
    ) -> VideoRecord:
        """Add an unpublished record for a stored upload.

        Args:
            file: The received media file.
            principal: Authenticated admin performing the upload.
            title: Display title; defaults to the file's original name.
            description: Free-text description.

        Returns:
            The stored record.

        Raises:
            ValidationError: If no file was received.
        """
        if file is None:
            raise ValidationError("No file uploaded")

        record = VideoRecord(
            video_id=file.filename,
            title=(title or "").strip() or file.original_name,
            description=description or "",
            filename=file.filename,
            original_name=file.original_name,
            published=False,
            uploaded_by=principal,
        )
        stored = self._repo.insert(record)
        logger.info("Upload recorded: %s — %s by %s", stored.key, stored.title, principal)
        return stored

    def publish(self, key: str) -> VideoRecord:
        """Make a record publicly visible.

        The transition is a conditional update (only an unpublished record
        is changed), so concurrent callers produce one transition and all
        of them observe the published record. Publishing twice is a no-op.

        Raises:
            NotFoundError: If no record has this key.
        """
        updated = self._repo.update_by_id(key, {"published": True}, where={"published": False})
        if updated is not None:
            logger.info("Video published: %s — %s", updated.key, updated.title)
            return updated

        current = self._repo.find_by_id(key)
        if current is None:
            raise NotFoundError(f"Video not found: {key}")
        return current

    def ping(self) -> bool:
        """Whether the catalog store is reachable."""
        return self._repo.ping()
