from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field


class ExtractionMode(str, Enum):
    TEXT = "text"
    FORMS = "forms"
    TABLES = "tables"


class _ResultModel(BaseModel):
    """Wire-compatible base: camelCase aliases on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class FormField(BaseModel):
    key: str = Field(..., description="The field label or name.")
    value: str = Field(..., description="The field value or entry.")


class TextResult(_ResultModel):
    raw_text: str = Field(..., alias="rawText", description="The full extracted text from the document.")
    summary: Optional[str] = Field(
        default=None, description="A concise summary of the document content (optional)."
    )


class FormsResult(_ResultModel):
    forms: List[FormField] = Field(..., description="Key/value fields found in the form, in reading order.")
    summary: Optional[str] = Field(default=None, description="A concise summary of the form.")


class TablesResult(_ResultModel):
    tables: List[List[List[str]]] = Field(
        ...,
        description=(
            "List of tables found in the document. Each table is a list of rows, "
            "each row a list of cell text."
        ),
    )
    summary: Optional[str] = Field(default=None, description="A concise summary of the table data.")


class ErrorResult(_ResultModel):
    message: str = Field(..., alias="error")


ExtractionResult = Union[TextResult, FormsResult, TablesResult, ErrorResult]


@dataclass(frozen=True)
class ModeSpec:
    """Everything the request builder and the parser need to know about one mode."""

    mode: ExtractionMode
    instructions: str
    output_model: Type[_ResultModel]

    def response_schema(self) -> Dict[str, Any]:
        return self.output_model.model_json_schema(by_alias=True)


_INSTRUCTIONS: Dict[ExtractionMode, str] = {
    ExtractionMode.TEXT: (
        "Extract all legible text from this image. "
        "Preserve original line breaks where possible."
    ),
    ExtractionMode.FORMS: (
        "Analyze this document as a form. "
        "Identify all key-value pairs (fields and their entries). "
        "Return a list of fields."
    ),
    ExtractionMode.TABLES: (
        "Analyze this document for tables. Extract all tables found. "
        "Represent each table as a grid of strings."
    ),
}

_SUMMARY_INSTRUCTIONS: Dict[ExtractionMode, str] = {
    ExtractionMode.TEXT: "Also provide a brief summary of the content.",
    ExtractionMode.FORMS: "Also provide a brief summary of the document's purpose.",
    ExtractionMode.TABLES: "Also provide a brief summary of the tabular data.",
}

_OUTPUT_MODELS: Dict[ExtractionMode, Type[_ResultModel]] = {
    ExtractionMode.TEXT: TextResult,
    ExtractionMode.FORMS: FormsResult,
    ExtractionMode.TABLES: TablesResult,
}


def spec_for(mode: ExtractionMode, summarize: bool) -> ModeSpec:
    """
    Return the instruction text and output model for a mode.

    Raises ValueError for anything that is not an extraction mode.
    """
    mode = ExtractionMode(mode)
    instructions = _INSTRUCTIONS[mode]
    if summarize:
        instructions = f"{instructions} {_SUMMARY_INSTRUCTIONS[mode]}"
    return ModeSpec(mode=mode, instructions=instructions, output_model=_OUTPUT_MODELS[mode])
