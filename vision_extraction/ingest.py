from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from mimetypes import guess_type
from pathlib import Path
from typing import Any, Optional, Protocol

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class ErrorKind(str, Enum):
    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"


class IngestionError(ValueError):
    """Raised when an upload is rejected before any extraction is attempted."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class RawFile:
    """A user-supplied file as received: name, declared MIME type and bytes."""

    name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> "RawFile":
        path = Path(path)
        mime_type = guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, mime_type=mime_type, data=path.read_bytes())


@dataclass(frozen=True)
class PendingFile:
    file: RawFile
    preview: Any

    @property
    def name(self) -> str:
        return self.file.name

    @property
    def mime_type(self) -> str:
        return self.file.mime_type

    @property
    def data(self) -> bytes:
        return self.file.data

    @property
    def size_label(self) -> str:
        return f"{self.file.size / 1024 / 1024:.2f} MB"


class PreviewStore(Protocol):
    def acquire(self, name: str, mime_type: str, data: bytes) -> Any: ...

    def release(self, handle: Any) -> None: ...


class ThumbnailPreviewStore:
    """
    Writes a small PNG thumbnail per upload and deletes it on release.

    Bytes Pillow cannot decode are written through unchanged so the caller
    still gets a handle to display (or not) as it sees fit.
    """

    def __init__(self, directory: Path | None = None, size: int = 256):
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir()) / "vision_extraction"
        self.size = size

    def acquire(self, name: str, mime_type: str, data: bytes) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        stem = Path(name).stem or "upload"
        try:
            with Image.open(BytesIO(data)) as img:
                img.thumbnail((self.size, self.size))
                buffer = BytesIO()
                img.save(buffer, format="PNG")
            payload, suffix = buffer.getvalue(), ".png"
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
            logger.warning("Could not decode %s (%s); keeping original bytes as preview", name, mime_type)
            payload, suffix = data, Path(name).suffix

        fd, raw_path = tempfile.mkstemp(prefix=f"{stem}-", suffix=suffix, dir=self.directory)
        with open(fd, "wb") as fh:
            fh.write(payload)
        logger.debug("Preview for %s written to %s", name, raw_path)
        return Path(raw_path)

    def release(self, handle: Path) -> None:
        Path(handle).unlink(missing_ok=True)
        logger.debug("Released preview %s", handle)


class ImageIngestor:
    """
    Validates uploads and owns the single live preview resource.
    """

    def __init__(self, preview_store: PreviewStore | None = None, max_bytes: int = MAX_UPLOAD_BYTES):
        self.preview_store = preview_store or ThumbnailPreviewStore()
        self.max_bytes = max_bytes
        self._current: Optional[PendingFile] = None

    @property
    def current(self) -> Optional[PendingFile]:
        return self._current

    def validate(self, raw: RawFile) -> None:
        if not (raw.mime_type or "").startswith("image/"):
            raise IngestionError(ErrorKind.UNSUPPORTED_TYPE, "Please upload an image file (JPG, PNG, WEBP).")
        if raw.size > self.max_bytes:
            limit_mb = self.max_bytes // (1024 * 1024)
            raise IngestionError(ErrorKind.TOO_LARGE, f"File size too large. Maximum size is {limit_mb}MB.")

    def submit(self, raw: RawFile) -> PendingFile:
        """
        Validate `raw` and make it the current file.

        A rejected file, or one whose preview cannot be acquired, leaves the
        current one in place. The previous preview is released exactly once
        before the new file is adopted.
        """
        self.validate(raw)
        preview = self.preview_store.acquire(raw.name, raw.mime_type, raw.data)
        self.clear()
        self._current = PendingFile(file=raw, preview=preview)
        logger.info("Accepted %s (%s, %d bytes)", raw.name, raw.mime_type, raw.size)
        return self._current

    def clear(self) -> None:
        current, self._current = self._current, None
        if current is not None:
            self.preview_store.release(current.preview)
