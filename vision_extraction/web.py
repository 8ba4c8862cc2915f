from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse

from .client import ExtractionClient
from .config import get_settings
from .ingest import ImageIngestor, IngestionError, RawFile, ThumbnailPreviewStore
from .presentation import View, render
from .schema import ExtractionMode
from .session import ExtractionSession

logger = logging.getLogger(__name__)

UPLOAD_PAGE = """<!doctype html>
<html>
  <head><title>Vision Extraction</title></head>
  <body>
    <h1>Vision Extraction</h1>
    <form action="/extract" method="post" enctype="multipart/form-data">
      <p><input type="file" name="file" accept="image/*" required></p>
      <p>
        <label><input type="radio" name="mode" value="text" checked> Raw Text</label>
        <label><input type="radio" name="mode" value="forms"> Forms</label>
        <label><input type="radio" name="mode" value="tables"> Tables</label>
      </p>
      <p><label><input type="checkbox" name="summarize" value="true"> AI Summarization</label></p>
      <p>
        <label><input type="radio" name="view" value="formatted" checked> Visual</label>
        <label><input type="radio" name="view" value="raw"> JSON</label>
      </p>
      <p><button type="submit">Start Extraction</button></p>
    </form>
  </body>
</html>
"""


def create_app(client: Optional[ExtractionClient] = None) -> FastAPI:
    """
    Build the HTTP front end. Each request runs in its own short-lived session.
    """
    settings = get_settings()
    extraction_client = client or ExtractionClient.from_settings(settings)

    app = FastAPI(
        title="Vision Extraction API",
        version="0.1.0",
        description="Text, form and table extraction from images with a multimodal model",
    )

    @app.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return UPLOAD_PAGE

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.post("/extract")
    async def extract(
        file: UploadFile = File(...),
        mode: ExtractionMode = Form(ExtractionMode.TEXT),
        summarize: bool = Form(False),
        view: View = Form("formatted"),
    ):
        # One byte past the limit is enough for the size check to reject it.
        raw = RawFile(
            name=file.filename or "upload",
            mime_type=file.content_type or "",
            data=await file.read(settings.max_upload_bytes + 1),
        )
        session = ExtractionSession(
            extraction_client,
            ImageIngestor(
                ThumbnailPreviewStore(settings.preview_dir, settings.preview_size),
                max_bytes=settings.max_upload_bytes,
            ),
        )
        try:
            try:
                await run_in_threadpool(session.select_file, raw)
            except IngestionError as exc:
                logger.warning("Rejected upload %s: %s", raw.name, exc.message)
                raise HTTPException(status_code=400, detail={"kind": exc.kind.value, "message": exc.message})
            session.mode = mode
            session.summarize = summarize
            result = await session.start_extraction()
        finally:
            await run_in_threadpool(session.close)

        return {
            "mode": mode.value,
            "result": result.to_payload(),
            "rendered": render(result, mode, view),
        }

    return app
