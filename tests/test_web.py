from fastapi.testclient import TestClient

from vision_extraction.client import ExtractionClient
from vision_extraction.config import get_settings
from vision_extraction.web import create_app

from .conftest import FakeTransport


def make_client(transport) -> TestClient:
    return TestClient(create_app(client=ExtractionClient(transport)))


def test_health():
    response = make_client(FakeTransport()).get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_index_serves_upload_form():
    response = make_client(FakeTransport()).get("/")
    assert response.status_code == 200
    assert 'name="file"' in response.text


def test_extract_forms(png_bytes):
    transport = FakeTransport('{"forms": [{"key": "Name", "value": "Alice"}], "summary": "An ID card."}')
    response = make_client(transport).post(
        "/extract",
        files={"file": ("card.png", png_bytes, "image/png")},
        data={"mode": "forms", "summarize": "true"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["mode"] == "forms"
    assert body["result"] == {"forms": [{"key": "Name", "value": "Alice"}], "summary": "An ID card."}
    assert "Name : Alice" in body["rendered"]
    assert transport.requests[0].summarize is True


def test_extract_raw_view(png_bytes):
    response = make_client(FakeTransport('{"rawText": "Hello"}')).post(
        "/extract",
        files={"file": ("scan.png", png_bytes, "image/png")},
        data={"view": "raw"},
    )
    assert response.status_code == 200
    assert '"rawText": "Hello"' in response.json()["rendered"]


def test_rejects_non_image_upload():
    transport = FakeTransport('{"rawText": "x"}')
    response = make_client(transport).post(
        "/extract",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "unsupported_type"
    assert transport.requests == []


def test_extraction_failure_is_reported_in_result(png_bytes):
    response = make_client(FakeTransport(error=RuntimeError("network down"))).post(
        "/extract",
        files={"file": ("scan.png", png_bytes, "image/png")},
    )
    assert response.status_code == 200
    assert response.json()["result"] == {"error": "network down"}
    assert response.json()["rendered"] == "Error: network down"


def test_rejects_oversized_upload(monkeypatch, png_bytes):
    monkeypatch.setenv("VISION_EXTRACTION_MAX_UPLOAD_BYTES", str(len(png_bytes)))
    get_settings.cache_clear()
    transport = FakeTransport('{"rawText": "x"}')
    response = make_client(transport).post(
        "/extract",
        files={"file": ("big.png", png_bytes + b"\0" * 4096, "image/png")},
    )
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "too_large"
    assert transport.requests == []


def test_accepts_upload_exactly_at_limit(monkeypatch, png_bytes):
    monkeypatch.setenv("VISION_EXTRACTION_MAX_UPLOAD_BYTES", str(len(png_bytes)))
    get_settings.cache_clear()
    response = make_client(FakeTransport('{"rawText": "x"}')).post(
        "/extract",
        files={"file": ("edge.png", png_bytes, "image/png")},
    )
    assert response.status_code == 200
    assert response.json()["result"] == {"rawText": "x"}
