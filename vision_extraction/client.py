from __future__ import annotations

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from .config import Settings, get_settings
from .ingest import PendingFile
from .schema import ErrorResult, ExtractionMode, ExtractionResult, ModeSpec, spec_for
from .transport import ExtractionRequest, InlineImage, Transport, build_transport

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = "No response generated from AI model."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during extraction."


class ExtractionError(Exception):
    """Base for failures normalized into ErrorResult by ExtractionClient."""


class DispatchError(ExtractionError):
    """The outbound call could not be completed."""


class EmptyResponseError(ExtractionError):
    def __init__(self) -> None:
        super().__init__(EMPTY_RESPONSE_MESSAGE)


class ShapeMismatchError(ExtractionError):
    """The payload is not valid JSON or does not match the mode's output shape."""


def encode_image(file: PendingFile) -> InlineImage:
    return InlineImage(data=file.data, mime_type=file.mime_type)


def parse_payload(spec: ModeSpec, payload: str) -> ExtractionResult:
    """
    Decode a JSON payload into the result variant of `spec.mode`.

    Raises ShapeMismatchError on malformed JSON or when the mandatory field of
    the mode is missing or mistyped. No partial result is ever returned.
    """
    try:
        data: Any = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ShapeMismatchError(f"Malformed JSON in model response: {exc}") from exc
    if not isinstance(data, dict):
        raise ShapeMismatchError(
            f"Expected a JSON object for mode '{spec.mode.value}', got {type(data).__name__}"
        )
    try:
        return spec.output_model.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
        )
        raise ShapeMismatchError(
            f"Response does not match the '{spec.mode.value}' shape: {problems}"
        ) from exc


class ExtractionClient:
    """
    Runs one extraction call per invocation and never raises across `extract`.
    """

    def __init__(self, transport: Transport, *, model_id: str = "gemini-2.5-flash", temperature: float = 0.1):
        self.transport = transport
        self.model_id = model_id
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ExtractionClient":
        settings = settings or get_settings()
        return cls(
            build_transport(settings),
            model_id=settings.model_id,
            temperature=settings.temperature,
        )

    def build_request(self, file: PendingFile, spec: ModeSpec, summarize: bool) -> ExtractionRequest:
        return ExtractionRequest(
            model_id=self.model_id,
            image=encode_image(file),
            instructions=spec.instructions,
            mode=spec.mode,
            summarize=summarize,
            output_model=spec.output_model,
            temperature=self.temperature,
        )

    async def _dispatch(self, request: ExtractionRequest) -> Optional[str]:
        try:
            return await self.transport.generate(request)
        except Exception as exc:
            raise DispatchError(str(exc) or UNKNOWN_ERROR_MESSAGE) from exc

    async def extract(self, file: PendingFile, mode: ExtractionMode, summarize: bool) -> ExtractionResult:
        spec = spec_for(mode, summarize)
        try:
            request = self.build_request(file, spec, summarize)
            logger.info("Extracting %s in %s mode (summarize=%s)", file.name, spec.mode.value, summarize)
            payload = await self._dispatch(request)
            if not payload:
                raise EmptyResponseError()
            result = parse_payload(spec, payload)
        except ExtractionError as exc:
            logger.exception("Extraction failed for %s", file.name)
            return ErrorResult(message=str(exc))
        logger.info("Extraction finished for %s", file.name)
        return result
