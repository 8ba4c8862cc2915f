from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Type

from google import genai
from google.genai import types
from pydantic_ai import Agent, BinaryContent
from pydantic_ai.models import Model

from .config import Settings
from .schema import ExtractionMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InlineImage:
    """Image bytes tagged with their MIME type, as sent inline with the prompt."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class ExtractionRequest:
    """One outbound call: image part first, then the instruction text."""

    model_id: str
    image: InlineImage
    instructions: str
    mode: ExtractionMode
    summarize: bool
    output_model: Type[Any]
    temperature: float = 0.1
    response_mime_type: str = "application/json"


class Transport(Protocol):
    async def generate(self, request: ExtractionRequest) -> Optional[str]:
        """Issue the request once and return the raw text payload, if any."""
        ...


class GeminiTransport:
    """
    Calls Gemini through the google-genai SDK with a native response schema.
    """

    def __init__(self, client: genai.Client | None = None, api_key: str | None = None):
        self._client = client
        self.api_key = api_key

    @property
    def client(self) -> genai.Client:
        # Built on first use so missing credentials surface as a failed extraction.
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key) if self.api_key else genai.Client()
        return self._client

    async def generate(self, request: ExtractionRequest) -> Optional[str]:
        image_part = types.Part.from_bytes(data=request.image.data, mime_type=request.image.mime_type)
        response = await self.client.aio.models.generate_content(
            model=request.model_id,
            contents=[image_part, request.instructions],
            config=types.GenerateContentConfig(
                response_mime_type=request.response_mime_type,
                response_schema=request.output_model,
                temperature=request.temperature,
            ),
        )
        return response.text


class AgentTransport:
    """
    Vision LLM call through a pydanticAI agent bound to the mode's output model.

    The agent validates the structured output itself; the validated model is
    serialized back to JSON so the client applies the same parsing path to
    every transport.
    """

    def __init__(self, model: str | Model = "openai:gpt-4o"):
        self.model = model

    def _system_prompt(self) -> str:
        return (
            "You are a careful document extraction assistant. "
            "Use only evidence visible in the provided image. Do not invent data."
        )

    async def generate(self, request: ExtractionRequest) -> Optional[str]:
        agent: Agent[Any] = Agent[Any](
            model=self.model,
            output_type=request.output_model,
            system_prompt=self._system_prompt(),
            retries=0,
        )
        inputs: list[Any] = [
            BinaryContent(data=request.image.data, media_type=request.image.mime_type),
            request.instructions,
        ]
        result = await agent.run(inputs, model_settings={"temperature": request.temperature})
        return result.output.model_dump_json(by_alias=True, exclude_none=True)


def build_transport(settings: Settings) -> Transport:
    if settings.provider == "agent":
        logger.info("Using pydanticAI agent transport with %s", settings.agent_model)
        return AgentTransport(model=settings.agent_model)
    logger.info("Using Gemini transport")
    return GeminiTransport(api_key=settings.api_key)
