import io
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from vision_server.api.dependencies import get_analysis_service
from vision_server.core.clock import IsoClock
from vision_server.core.enums import ProviderKind
from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.main import app
from vision_server.services.analysis_service import AnalysisService


class EmptyProvider(BaseDetectionProvider):
    def __init__(self, kind):
        self.kind = kind

    def detect(self, image):
        return []


def png_bytes(width=64, height=48) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def client():
    executor = ThreadPoolExecutor(max_workers=2)
    service = AnalysisService(
        providers=[
            EmptyProvider(ProviderKind.TEXT),
            EmptyProvider(ProviderKind.FACES),
            EmptyProvider(ProviderKind.BARCODES),
            EmptyProvider(ProviderKind.CLASSIFICATION),
        ],
        executor=executor,
        clock=IsoClock(frozen_at=datetime(2025, 10, 17, 10, 30, tzinfo=timezone.utc)),
    )
    app.dependency_overrides[get_analysis_service] = lambda: service

    yield TestClient(app)

    app.dependency_overrides.clear()
    executor.shutdown(wait=True)


def test_analyze_blank_image(client):
    response = client.post(
        "/analyze",
        content=png_bytes(),
        headers={"Content-Type": "application/octet-stream"},
    )
    body = response.json()

    assert response.status_code == 200
    assert body["success"] is True
    assert body["timestamp"] == "2025-10-17T10:30:00Z"
    assert body["imageInfo"] == {"width": 64, "height": 48, "format": "PNG", "colorSpace": "RGB"}
    assert body["textRecognition"] == []
    assert body["faceDetection"] == []
    assert body["barcodes"] == []
    assert body["objects"] == []
    assert "fullText" not in body
    assert "error" not in body
    assert "saliency" not in body


def test_analyze_multipart_upload(client):
    response = client.post(
        "/analyze",
        files={"image": ("photo.png", png_bytes(), "image/png")},
    )

    assert response.status_code == 200
    assert response.json()["imageInfo"]["width"] == 64


def test_analyze_multipart_without_image_field(client):
    response = client.post(
        "/analyze",
        files={"file": ("photo.png", png_bytes(), "image/png")},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_analyze_not_an_image(client):
    response = client.post("/analyze", content=b"\x00" * 10)
    body = response.json()

    assert response.status_code == 400
    assert body["success"] is False
    assert body["error"].startswith("Failed to decode image data")
    assert "imageInfo" not in body
    assert "textRecognition" not in body


def test_analyze_empty_body(client):
    response = client.post("/analyze", content=b"")
    body = response.json()

    assert response.status_code == 400
    assert body == {
        "success": False,
        "timestamp": "2025-10-17T10:30:00Z",
        "error": "No request body",
    }


def test_analyze_too_large(client):
    with patch("vision_server.api.handlers.analyze_handler.get_settings") as mock_settings:
        mock_settings.return_value.MAX_IMAGE_SIZE_MB = 0
        mock_settings.return_value.PROCESSING_TIMEOUT = 60.0
        response = client.post("/analyze", content=png_bytes())

    assert response.status_code == 413
    assert response.json()["success"] is False


def test_analyze_unexpected_error(client):
    with patch.object(AnalysisService, "analyze", side_effect=RuntimeError("boom")):
        response = client.post("/analyze", content=png_bytes())
    body = response.json()

    assert response.status_code == 500
    assert body["success"] is False
    assert "boom" not in body["error"]


def test_health(client):
    response = client.get("/health")
    body = response.json()

    assert response.status_code == 200
    assert body["status"] == "ok"
    assert body["service"] == "vision-server"
    assert body["providers"]["text"] is True
    assert body["providers"]["saliency"] is False


def test_readiness(client):
    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_metrics(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "vision_analysis_requests_total" in response.text


def test_ping(client):
    assert client.get("/ping").json() == {"status": "pong"}


def test_malformed_provider_output_keeps_other_sections():
    class TiltedHorizon(BaseDetectionProvider):
        kind = ProviderKind.HORIZON

        def detect(self, image):
            return "tilted"

    executor = ThreadPoolExecutor(max_workers=2)
    service = AnalysisService(
        providers=[EmptyProvider(ProviderKind.BARCODES), TiltedHorizon()],
        executor=executor,
        clock=IsoClock(),
    )
    app.dependency_overrides[get_analysis_service] = lambda: service
    try:
        response = TestClient(app).post("/analyze", content=png_bytes())
    finally:
        app.dependency_overrides.clear()
        executor.shutdown(wait=True)
    body = response.json()

    assert response.status_code == 200
    assert body["success"] is True
    assert body["barcodes"] == []
    assert "horizon" not in body
