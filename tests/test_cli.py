import json

import pytest
from typer.testing import CliRunner

import main
from vision_extraction.client import ExtractionClient
from vision_extraction.ingest import ImageIngestor
from vision_extraction.session import ExtractionSession

from .conftest import CountingPreviewStore, FakeTransport

runner = CliRunner()


@pytest.fixture
def use_transport(monkeypatch):
    def _use(transport):
        store = CountingPreviewStore()
        monkeypatch.setattr(
            main,
            "build_session",
            lambda: ExtractionSession(ExtractionClient(transport), ImageIngestor(store)),
        )
        return store

    return _use


@pytest.fixture
def image_path(tmp_path, png_bytes):
    path = tmp_path / "invoice.png"
    path.write_bytes(png_bytes)
    return path


def test_extract_tables_prints_grid(use_transport, image_path):
    store = use_transport(FakeTransport('{"tables": [[["A", "B"], ["1", "2"]]]}'))
    result = runner.invoke(main.app, ["extract", str(image_path), "--mode", "tables"])
    assert result.exit_code == 0, result.output
    assert "Table 1" in result.output
    assert store.released == ["preview-1"]


def test_extract_writes_plain_text_output(use_transport, image_path, tmp_path):
    use_transport(FakeTransport('{"rawText": "Hello\\nWorld"}'))
    out_file = tmp_path / "out.txt"
    result = runner.invoke(main.app, ["extract", str(image_path), "--output", str(out_file)])
    assert result.exit_code == 0, result.output
    assert out_file.read_text(encoding="utf-8") == "Hello\nWorld"


def test_extract_raw_view_writes_json(use_transport, image_path, tmp_path):
    use_transport(FakeTransport('{"forms": []}'))
    out_file = tmp_path / "out.json"
    result = runner.invoke(
        main.app, ["extract", str(image_path), "-m", "forms", "--view", "raw", "-o", str(out_file)]
    )
    assert result.exit_code == 0, result.output
    assert json.loads(out_file.read_text(encoding="utf-8")) == {"forms": []}


def test_extraction_error_exits_nonzero(use_transport, image_path):
    use_transport(FakeTransport(None))
    result = runner.invoke(main.app, ["extract", str(image_path)])
    assert result.exit_code == 1
    assert "No response generated from AI model." in result.output


def test_non_image_is_rejected(use_transport, tmp_path):
    transport = FakeTransport('{"rawText": "x"}')
    use_transport(transport)
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    result = runner.invoke(main.app, ["extract", str(path)])
    assert result.exit_code == 2
    assert transport.requests == []
