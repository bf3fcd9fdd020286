import io
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from PIL import Image

from vision_server.core.clock import IsoClock
from vision_server.core.enums import ProviderKind, ProviderStatus
from vision_server.core.exceptions import ConfigurationError, ProviderError
from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.models.geometry import BoundingBox
from vision_server.models.observations import (
    ClassificationObservation,
    FaceObservation,
    TextObservation,
)
from vision_server.services.analysis_service import (
    AnalysisService,
    merge_face_quality,
    select_top_classifications,
)
from vision_server.utils.image_utils import decode_image

FROZEN = IsoClock(frozen_at=datetime(2025, 10, 17, 10, 30, tzinfo=timezone.utc))


class FakeProvider(BaseDetectionProvider):
    def __init__(self, kind, result=None, error=None):
        self.kind = kind
        self.result = result
        self.error = error
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def png_bytes(width=32, height=24) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


def face(x=0.1):
    return FaceObservation(
        bounding_box=BoundingBox(x=x, y=0.5, width=0.2, height=0.2),
        confidence=0.9,
    )


def text(value, x, y):
    return TextObservation(
        text=value,
        confidence=0.9,
        bounding_box=BoundingBox(x=x, y=y, width=0.2, height=0.05),
    )


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=True)


def make_service(executor, *providers):
    return AnalysisService(providers=list(providers), executor=executor, clock=FROZEN)


def test_failing_provider_does_not_fail_request(executor):
    service = make_service(
        executor,
        FakeProvider(ProviderKind.TEXT, error=ProviderError("engine crashed")),
        FakeProvider(ProviderKind.FACES, result=[face()]),
        FakeProvider(ProviderKind.BARCODES, result=[]),
    )

    response = service.analyze(png_bytes())
    body = response.to_json_dict()

    assert response.success is True
    assert "textRecognition" not in body
    assert "fullText" not in body
    assert len(body["faceDetection"]) == 1
    assert body["barcodes"] == []


def test_not_run_differs_from_empty_result(executor):
    service = make_service(executor, FakeProvider(ProviderKind.BARCODES, result=[]))

    body = service.analyze(png_bytes()).to_json_dict()

    assert body["barcodes"] == []
    assert "faceDetection" not in body
    assert "objects" not in body


def test_run_providers_reports_every_kind(executor):
    service = make_service(
        executor,
        FakeProvider(ProviderKind.TEXT, result=[]),
        FakeProvider(ProviderKind.FACES, error=RuntimeError("boom")),
    )
    outcomes = service.run_providers(decode_image(png_bytes()))

    assert set(outcomes) == set(ProviderKind)
    assert outcomes[ProviderKind.TEXT].status is ProviderStatus.OK
    assert outcomes[ProviderKind.FACES].status is ProviderStatus.FAILED
    assert outcomes[ProviderKind.FACES].error == "boom"
    assert outcomes[ProviderKind.SALIENCY].status is ProviderStatus.NOT_RUN


def test_providers_run_concurrently(executor):
    barrier = threading.Barrier(2, timeout=5)

    class BarrierProvider(FakeProvider):
        def detect(self, image):
            barrier.wait()
            return []

    service = make_service(
        executor,
        BarrierProvider(ProviderKind.TEXT),
        BarrierProvider(ProviderKind.BARCODES),
    )

    body = service.analyze(png_bytes()).to_json_dict()

    assert body["textRecognition"] == []
    assert body["barcodes"] == []


def test_full_text_in_reading_order(executor):
    fragments = [text("Next", 0.10, 0.60), text("World", 0.35, 0.90), text("Hello", 0.10, 0.90)]
    service = make_service(executor, FakeProvider(ProviderKind.TEXT, result=fragments))

    body = service.analyze(png_bytes()).to_json_dict()

    assert body["fullText"] == "Hello World\n\nNext"
    assert [item["text"] for item in body["textRecognition"]] == ["Next", "World", "Hello"]


def test_full_text_absent_without_text(executor):
    service = make_service(executor, FakeProvider(ProviderKind.TEXT, result=[]))

    body = service.analyze(png_bytes()).to_json_dict()

    assert body["textRecognition"] == []
    assert "fullText" not in body


def test_classification_filtered_and_capped(executor):
    labels = [
        ClassificationObservation(identifier=f"label{i}", confidence=round(0.05 * i, 2))
        for i in range(20)
    ]
    service = make_service(executor, FakeProvider(ProviderKind.CLASSIFICATION, result=labels))

    objects = service.analyze(png_bytes()).objects

    assert len(objects) == 10
    assert all(obj.confidence > 0.1 for obj in objects)
    assert [obj.confidence for obj in objects] == sorted(
        (obj.confidence for obj in objects), reverse=True
    )
    assert objects[0].identifier == "label19"


def test_select_top_classifications_excludes_threshold():
    labels = [
        ClassificationObservation(identifier="edge", confidence=0.1),
        ClassificationObservation(identifier="cat", confidence=0.7),
    ]
    assert [obj.identifier for obj in select_top_classifications(labels)] == ["cat"]


def test_face_quality_merged_by_position(executor):
    service = make_service(
        executor,
        FakeProvider(ProviderKind.FACES, result=[face(0.1), face(0.5)]),
        FakeProvider(ProviderKind.FACE_QUALITY, result=[0.8, 0.3]),
    )

    faces = service.analyze(png_bytes()).face_detection

    assert [f.capture_quality for f in faces] == [0.8, 0.3]


def test_face_quality_length_mismatch():
    faces = [face(0.1), face(0.3), face(0.5)]

    merged = merge_face_quality(faces, [0.9])

    assert [f.capture_quality for f in merged] == [0.9, None, None]
    assert merge_face_quality(faces[:1], [0.9, 0.4])[0].capture_quality == 0.9
    assert merge_face_quality(None, [0.9]) is None


def test_face_quality_failure_leaves_faces_without_quality(executor):
    service = make_service(
        executor,
        FakeProvider(ProviderKind.FACES, result=[face()]),
        FakeProvider(ProviderKind.FACE_QUALITY, error=ProviderError("no cascade")),
    )

    faces = service.analyze(png_bytes()).face_detection

    assert len(faces) == 1
    assert faces[0].capture_quality is None


def test_undecodable_input_is_request_failure(executor):
    provider = FakeProvider(ProviderKind.TEXT, result=[])
    service = make_service(executor, provider)

    response = service.analyze(b"\x00" * 10)
    body = response.to_json_dict()

    assert response.success is False
    assert body["error"].startswith("Failed to decode image data")
    assert "imageInfo" not in body
    assert provider.calls == 0


def test_empty_body_is_request_failure(executor):
    response = make_service(executor).analyze(b"")

    assert response.success is False
    assert response.error == "No request body"


def test_image_info_and_timestamp(executor):
    response = make_service(executor).analyze(png_bytes(64, 48))

    assert response.timestamp == "2025-10-17T10:30:00Z"
    assert response.image_info.width == 64
    assert response.image_info.height == 48
    assert response.image_info.format == "PNG"


def test_duplicate_kind_rejected(executor):
    with pytest.raises(ConfigurationError):
        make_service(
            executor,
            FakeProvider(ProviderKind.TEXT, result=[]),
            FakeProvider(ProviderKind.TEXT, result=[]),
        )


def test_provider_availability(executor):
    service = make_service(executor, FakeProvider(ProviderKind.HORIZON, result=None))

    availability = service.provider_availability()

    assert availability["horizon"] is True
    assert availability["text"] is False
    assert service.is_ready() is True
    assert make_service(executor).is_ready() is False


def test_malformed_provider_output_is_provider_failure(executor):
    service = make_service(
        executor,
        FakeProvider(ProviderKind.BARCODES, result=[]),
        FakeProvider(ProviderKind.HORIZON, result="tilted"),
        FakeProvider(ProviderKind.TEXT, result=[{"unexpected": True}]),
    )

    response = service.analyze(png_bytes())
    body = response.to_json_dict()

    assert response.success is True
    assert body["barcodes"] == []
    assert "horizon" not in body
    assert "textRecognition" not in body


def test_malformed_output_outcome_is_failed(executor):
    service = make_service(executor, FakeProvider(ProviderKind.FACE_QUALITY, result=[1.7]))

    outcomes = service.run_providers(decode_image(png_bytes()))

    assert outcomes[ProviderKind.FACE_QUALITY].status is ProviderStatus.FAILED


def test_blank_text_gives_empty_full_text(executor):
    service = make_service(
        executor,
        FakeProvider(ProviderKind.TEXT, result=[text("", 0.10, 0.90)]),
    )

    body = service.analyze(png_bytes()).to_json_dict()

    assert len(body["textRecognition"]) == 1
    assert body["fullText"] == ""


def test_hand_poses_section(executor):
    service = make_service(executor, FakeProvider(ProviderKind.HAND_POSE, result=[]))

    body = service.analyze(png_bytes()).to_json_dict()

    assert body["handPoses"] == []
