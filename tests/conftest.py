from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Any, List, Optional

import pytest
from PIL import Image

from vision_extraction.client import ExtractionClient
from vision_extraction.config import get_settings
from vision_extraction.ingest import ImageIngestor, PendingFile, RawFile
from vision_extraction.session import ExtractionSession


class FakeTransport:
    """Records requests and answers with a canned payload or exception."""

    def __init__(self, payload: Optional[str] = None, error: Optional[BaseException] = None):
        self.payload = payload
        self.error = error
        self.requests: List[Any] = []

    async def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.payload


class GatedTransport(FakeTransport):
    """Blocks inside generate() until `release` is set."""

    def __init__(self, payload: Optional[str] = None):
        super().__init__(payload=payload)
        self.release = asyncio.Event()

    async def generate(self, request):
        self.requests.append(request)
        await self.release.wait()
        return self.payload


class CountingPreviewStore:
    """Preview store double that logs every acquire/release in order."""

    def __init__(self):
        self.events: List[tuple[str, str]] = []
        self._counter = 0

    def acquire(self, name: str, mime_type: str, data: bytes) -> str:
        self._counter += 1
        handle = f"preview-{self._counter}"
        self.events.append(("acquire", handle))
        return handle

    def release(self, handle: str) -> None:
        self.events.append(("release", handle))

    @property
    def acquired(self) -> List[str]:
        return [h for kind, h in self.events if kind == "acquire"]

    @property
    def released(self) -> List[str]:
        return [h for kind, h in self.events if kind == "release"]


def make_png(size: tuple[int, int] = (32, 16)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def raw_png(png_bytes) -> RawFile:
    return RawFile(name="receipt.png", mime_type="image/png", data=png_bytes)


@pytest.fixture
def pending_png(raw_png) -> PendingFile:
    return PendingFile(file=raw_png, preview=None)


@pytest.fixture
def preview_store() -> CountingPreviewStore:
    return CountingPreviewStore()


@pytest.fixture
def make_session(preview_store):
    def _make(transport) -> ExtractionSession:
        return ExtractionSession(ExtractionClient(transport), ImageIngestor(preview_store))

    return _make


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("VISION_EXTRACTION_PREVIEW_DIR", str(tmp_path / "previews"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
