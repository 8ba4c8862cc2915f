import asyncio
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
import typer

from vision_extraction.client import ExtractionClient
from vision_extraction.config import get_settings
from vision_extraction.ingest import ImageIngestor, IngestionError, RawFile, ThumbnailPreviewStore
from vision_extraction.presentation import copy_text, render, to_excel
from vision_extraction.schema import ErrorResult, ExtractionMode
from vision_extraction.session import ExtractionSession

load_dotenv()


app = typer.Typer(add_completion=False)


def _configure_logging(log_level: Optional[str]) -> None:
    log_level = log_level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def build_session() -> ExtractionSession:
    settings = get_settings()
    return ExtractionSession(
        client=ExtractionClient.from_settings(settings),
        ingestor=ImageIngestor(
            ThumbnailPreviewStore(settings.preview_dir, settings.preview_size),
            max_bytes=settings.max_upload_bytes,
        ),
    )


@app.command()
def extract(
    image: Path = typer.Argument(..., exists=True, dir_okay=False, help="Image file to analyze"),
    mode: ExtractionMode = typer.Option(ExtractionMode.TEXT, "--mode", "-m", help="What to extract"),
    summarize: bool = typer.Option(False, "--summarize", help="Also ask for a short summary"),
    view: str = typer.Option("formatted", "--view", help="Output view ('formatted' or 'raw')"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the copy text (plain text or JSON) to this file"
    ),
    excel: Optional[Path] = typer.Option(None, "--excel", help="Also export the result to an Excel workbook"),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR); defaults to the configured level",
    ),
):
    """
    Extract text, form fields or tables from one image and print the result.
    """
    _configure_logging(log_level)
    logger = logging.getLogger(__name__)
    if view not in ("formatted", "raw"):
        raise typer.BadParameter("view must be 'formatted' or 'raw'", param_hint="--view")

    session = build_session()
    try:
        try:
            pending = session.select_file(RawFile.from_path(image))
        except IngestionError as exc:
            typer.echo(exc.message, err=True)
            raise typer.Exit(code=2)
        logger.info("Loaded %s (%s)", pending.name, pending.size_label)

        session.mode = mode
        session.summarize = summarize
        result = asyncio.run(session.start_extraction())
    finally:
        session.close()

    typer.echo(render(result, mode, view))
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(copy_text(result, mode, view), encoding="utf-8")
        typer.echo(f"Wrote result to {output}")
    if excel is not None:
        to_excel(result, excel)
        typer.echo(f"Wrote workbook to {excel}")
    if isinstance(result, ErrorResult):
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
):
    """
    Serve the upload page and the extraction endpoint.
    """
    import uvicorn

    from vision_extraction.web import create_app

    _configure_logging(log_level)
    uvicorn.run(create_app(), host=host, port=port, log_config=None)


def main():
    app()


if __name__ == "__main__":
    main()
