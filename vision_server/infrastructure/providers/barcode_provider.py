"""
Детекция QR-кодов (OpenCV QRCodeDetector)
"""
import threading
from typing import List

import cv2
import numpy as np

from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.core.enums import ProviderKind
from vision_server.core.logging import get_logger
from vision_server.models.geometry import bounding_box_of_points
from vision_server.models.observations import BarcodeObservation
from vision_server.utils.image_utils import DecodedImage, as_bgr

logger = get_logger(__name__)

# Код найден, но не декодирован
UNDECODED_CONFIDENCE = 0.5


class BarcodeProvider(BaseDetectionProvider):
    """
    QR-коды: содержимое, четырёхугольник -> охватывающий прямоугольник
    """

    kind = ProviderKind.BARCODES
    symbology = "QR"

    def __init__(self, max_results: int = 16):
        self.max_results = max_results
        self._detector = cv2.QRCodeDetector()
        self._lock = threading.Lock()

    def detect(self, image: DecodedImage) -> List[BarcodeObservation]:
        bgr = as_bgr(image)

        with self._lock:
            found, decoded, points, _ = self._detector.detectAndDecodeMulti(bgr)

        if not found or points is None:
            return []

        quads = np.asarray(points, dtype=np.float32).reshape(-1, 4, 2)
        observations = []

        for index, quad in enumerate(quads[:self.max_results]):
            payload = decoded[index] if index < len(decoded) else ""
            observations.append(
                BarcodeObservation(
                    payload=payload or None,
                    symbology=self.symbology,
                    bounding_box=bounding_box_of_points(quad, image.width, image.height),
                    confidence=1.0 if payload else UNDECODED_CONFIDENCE
                )
            )

        logger.debug("Barcodes detected", barcodes_count=len(observations))
        return observations
