from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Literal, Sequence

import pandas as pd

from .schema import ErrorResult, ExtractionMode, ExtractionResult, FormsResult, TablesResult, TextResult

logger = logging.getLogger(__name__)

View = Literal["formatted", "raw"]

NO_TEXT = "No text extracted."
NO_FIELDS = "No form fields detected."
NO_TABLES = "No tables detected."


def to_json(result: ExtractionResult) -> str:
    return result.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def _summary_callout(summary: str) -> str:
    return f"AI SUMMARY\n{'-' * 10}\n{summary}"


def _table_frame(table: Sequence[Sequence[str]]) -> pd.DataFrame:
    """First row becomes the header; ragged rows are padded with empty cells."""
    width = max((len(row) for row in table), default=0)
    padded = [list(row) + [""] * (width - len(row)) for row in table]
    header, *rows = padded
    return pd.DataFrame(rows, columns=header)


def _render_table(table: Sequence[Sequence[str]]) -> str:
    if not table or not any(table):
        return "(empty table)"
    frame = _table_frame(table)
    if frame.empty:
        header = " | ".join(frame.columns)
        return f"{header}\n{'-' * len(header)}"
    lines = frame.to_string(index=False, justify="left").splitlines()
    rule = "-" * max(len(line) for line in lines)
    return "\n".join([lines[0], rule, *lines[1:]])


def _render_text(result: ExtractionResult) -> str:
    return getattr(result, "raw_text", None) or NO_TEXT


def _render_forms(result: ExtractionResult) -> str:
    forms = getattr(result, "forms", None)
    if not forms:
        return NO_FIELDS
    width = max(len(field.key) for field in forms)
    return "\n".join(f"{field.key.ljust(width)} : {field.value}" for field in forms)


def _render_tables(result: ExtractionResult) -> str:
    tables = getattr(result, "tables", None)
    if not tables:
        return NO_TABLES
    blocks = [f"Table {idx}\n{_render_table(table)}" for idx, table in enumerate(tables, start=1)]
    return "\n\n".join(blocks)


_RENDERERS = {
    ExtractionMode.TEXT: _render_text,
    ExtractionMode.FORMS: _render_forms,
    ExtractionMode.TABLES: _render_tables,
}


def render(result: ExtractionResult, mode: ExtractionMode, view: View = "formatted") -> str:
    """
    Render a result for display.

    Errors are shown on their own. Otherwise the body is chosen by `mode`
    alone (fields the result does not carry render as the empty placeholder),
    preceded by the summary callout when a summary is present.
    """
    if isinstance(result, ErrorResult):
        return f"Error: {result.message}"

    body = to_json(result) if view == "raw" else _RENDERERS[ExtractionMode(mode)](result)
    summary = getattr(result, "summary", None)
    if summary:
        return f"{_summary_callout(summary)}\n\n{body}"
    return body


def copy_text(result: ExtractionResult, mode: ExtractionMode, view: View = "formatted") -> str:
    """Text handed to the clipboard/export: plain text for the formatted text view, JSON otherwise."""
    if view == "formatted" and ExtractionMode(mode) is ExtractionMode.TEXT:
        return getattr(result, "raw_text", None) or ""
    return to_json(result)


def to_dataframes(result: ExtractionResult) -> Dict[str, pd.DataFrame]:
    """
    Convert a result into named DataFrames, one per output sheet.
    """
    frames: Dict[str, pd.DataFrame] = {}
    if isinstance(result, ErrorResult):
        frames["error"] = pd.DataFrame({"error": [result.message]})
        return frames
    if isinstance(result, TextResult):
        frames["text"] = pd.DataFrame({"text": [result.raw_text]})
    elif isinstance(result, FormsResult):
        rows: List[dict[str, str]] = [field.model_dump() for field in result.forms]
        frames["fields"] = pd.DataFrame(rows, columns=["key", "value"])
    elif isinstance(result, TablesResult):
        for idx, table in enumerate(result.tables, start=1):
            frames[f"table_{idx}"] = _table_frame(table) if any(table) else pd.DataFrame()
        if not result.tables:
            frames["tables"] = pd.DataFrame()
    if result.summary:
        frames["summary"] = pd.DataFrame({"summary": [result.summary]})
    return frames


def to_excel(result: ExtractionResult, output_path: Path) -> None:
    """
    Write a result to an Excel workbook, one sheet per frame from `to_dataframes`.
    """
    frames = to_dataframes(result)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Writing %d sheet(s) to %s", len(frames), output_path)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for sheet_name, frame in frames.items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
