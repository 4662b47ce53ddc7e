"""Media file storage: the resource port behind range streaming and uploads."""

import logging
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from baluflix.config import settings
from baluflix.errors import StorageError, ValidationError
from baluflix.models import UploadedFile

logger = logging.getLogger(__name__)


class MediaStore(ABC):
    """Abstract interface for stored media: reading by reference and receiving uploads.

    Keeps the range streamer and the upload routes independent of where media
    bytes live.
    """

    @abstractmethod
    def exists(self, ref: str) -> bool:
        """Whether a media resource exists for ``ref``."""

    @abstractmethod
    def size(self, ref: str) -> int:
        """Total size of the resource in bytes."""

    @abstractmethod
    def open_range(
        self, ref: str, start: int, end: int, chunk_size: int = 64 * 1024
    ) -> Iterator[bytes]:
        """Yield the bytes ``[start, end]`` (inclusive) in chunks.

        The underlying handle is released when the iterator is exhausted,
        raises, or is closed early.
        """

    @abstractmethod
    def save(
        self, stream: BinaryIO, original_name: str, content_type: str = ""
    ) -> UploadedFile:
        """Store an uploaded file and describe it."""

    @property
    def max_bytes(self) -> int | None:
        """Largest accepted upload in bytes; None means unlimited."""
        return None


class LocalMediaStore(MediaStore):
    """Media files kept in a single local directory.

    Also receives uploads: incoming files are stored under a
    timestamp-prefixed, whitespace-free version of their original name.
    """

    _UNSAFE = re.compile(r"\s+")

    def __init__(self, root: Path | str | None = None, max_bytes: int | None = None) -> None:
        self._root = Path(root) if root else settings.uploads_dir
        self._max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def _resolve(self, ref: str) -> Path | None:
        """Map a reference to a file path, refusing anything outside the root."""
        if not ref:
            return None
        root = self._root.resolve()
        try:
            path = (root / ref).resolve()
        except (OSError, ValueError):
            return None
        if path == root or root not in path.parents:
            return None
        return path

    def exists(self, ref: str) -> bool:
        path = self._resolve(ref)
        if path is None:
            return False
        try:
            return path.is_file()
        except (OSError, ValueError):
            return False

    def size(self, ref: str) -> int:
        path = self._resolve(ref)
        if path is None:
            raise StorageError(f"Invalid media reference: {ref}")
        try:
            return path.stat().st_size
        except OSError as e:
            raise StorageError(f"Cannot stat media file {ref}: {e}") from e

    def open_range(
        self, ref: str, start: int, end: int, chunk_size: int = 64 * 1024
    ) -> Iterator[bytes]:
        path = self._resolve(ref)
        if path is None:
            raise StorageError(f"Invalid media reference: {ref}")
        return self._iter_file(path, start, end, chunk_size)

    @staticmethod
    def _iter_file(path: Path, start: int, end: int, chunk_size: int) -> Iterator[bytes]:
        remaining = end - start + 1
        with open(path, "rb") as f:
            f.seek(start)
            while remaining > 0:
                chunk = f.read(min(chunk_size, remaining))
                if not chunk:
                    raise StorageError(
                        f"Unexpected end of file {path.name}: {remaining} bytes missing"
                    )
                remaining -= len(chunk)
                yield chunk

    def save(
        self, stream: BinaryIO, original_name: str, content_type: str = ""
    ) -> UploadedFile:
        """Store an uploaded file and describe it.

        Args:
            stream: Readable binary stream with the upload body.
            original_name: The client-side filename.
            content_type: Declared media type of the upload.

        Returns:
            UploadedFile describing the stored file.

        The size limit is enforced while copying ``stream``. By then the HTTP
        layer has already received the body, so the server also rejects
        requests whose declared ``Content-Length`` is over the limit.

        Raises:
            ValidationError: If the name is empty or the upload is too large.
            StorageError: If the file cannot be written.
        """
        base = Path(original_name or "").name
        if not base:
            raise ValidationError("Uploaded file has no name")
        filename = f"{int(time.time() * 1000)}-{self._UNSAFE.sub('_', base)}"
        target = self._root / filename

        written = 0
        try:
            with open(target, "wb") as out:
                while True:
                    chunk = stream.read(1024 * 1024)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self._max_bytes:
                        raise ValidationError(
                            f"Upload exceeds the {self._max_bytes} byte limit"
                        )
                    out.write(chunk)
        except ValidationError:
            target.unlink(missing_ok=True)
            raise
        except OSError as e:
            target.unlink(missing_ok=True)
            raise StorageError(f"Failed to store upload {base}: {e}") from e

        logger.info("Stored upload %s (%d bytes)", filename, written)
        return UploadedFile(
            filename=filename,
            original_name=base,
            size=written,
            content_type=content_type,
        )

    def copy_from(self, source: Path | str) -> UploadedFile:
        """Store a local file as if it had been uploaded."""
        source = Path(source)
        try:
            with open(source, "rb") as f:
                return self.save(f, source.name)
        except OSError as e:
            raise StorageError(f"Cannot read {source}: {e}") from e
