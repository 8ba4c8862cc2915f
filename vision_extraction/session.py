from __future__ import annotations

import logging
from typing import Optional

from .client import ExtractionClient
from .ingest import ImageIngestor, PendingFile, RawFile
from .schema import ErrorResult, ExtractionMode, ExtractionResult

logger = logging.getLogger(__name__)

DISPATCH_FAILURE_MESSAGE = "Failed to process document. See logs for details."


class ExtractionSession:
    """
    Holds one user's file, mode, summarize flag and last result.

    At most one extraction is in flight at a time. An in-flight call cannot be
    cancelled: changing the file or mode meanwhile does not stop it, and its
    result still lands in `last_result` when it resolves.
    """

    def __init__(self, client: ExtractionClient, ingestor: ImageIngestor | None = None):
        self.client = client
        self.ingestor = ingestor or ImageIngestor()
        self.mode: ExtractionMode = ExtractionMode.TEXT
        self.summarize: bool = False
        self.is_processing: bool = False
        self.last_result: Optional[ExtractionResult] = None
        self.result_mode: Optional[ExtractionMode] = None

    @property
    def current_file(self) -> Optional[PendingFile]:
        return self.ingestor.current

    def select_file(self, raw: RawFile) -> PendingFile:
        """Adopt a new file; IngestionError propagates and leaves state unchanged."""
        pending = self.ingestor.submit(raw)
        self._reset_result()
        return pending

    def clear_file(self) -> None:
        self.ingestor.clear()
        self._reset_result()

    def _reset_result(self) -> None:
        self.last_result = None
        self.result_mode = None

    async def start_extraction(self) -> Optional[ExtractionResult]:
        """
        Run one extraction for the current file.

        Returns None without touching state when no file is set or a call is
        already in flight.
        """
        file = self.current_file
        if file is None or self.is_processing:
            logger.debug("Ignoring extraction request (file=%s, processing=%s)", file is not None, self.is_processing)
            return None

        mode, summarize = self.mode, self.summarize
        self.is_processing = True
        self._reset_result()
        try:
            result = await self.client.extract(file, mode, summarize)
        except Exception:
            logger.exception("Extraction could not be dispatched for %s", file.name)
            result = ErrorResult(message=DISPATCH_FAILURE_MESSAGE)
        finally:
            self.is_processing = False

        if self.current_file is not file or self.mode != mode:
            logger.info("Result for %s arrived after the file or mode changed", file.name)
        self.last_result = result
        self.result_mode = mode
        return result

    def close(self) -> None:
        self.ingestor.clear()
