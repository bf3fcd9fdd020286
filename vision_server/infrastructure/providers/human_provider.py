"""
Детекция людей (OpenCV HOG + линейный SVM)
"""
import math
import threading
from typing import List

import cv2
import numpy as np

from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.core.enums import ProviderKind
from vision_server.core.logging import get_logger
from vision_server.models.geometry import clamp_unit, normalize_rect
from vision_server.models.observations import HumanRectangleObservation
from vision_server.utils.image_utils import DecodedImage, as_bgr

logger = get_logger(__name__)

# Окно детектора HOG
HOG_WINDOW = (64, 128)


class HumanRectangleProvider(BaseDetectionProvider):
    """
    Прямоугольники с людьми в полный рост

    Большие изображения уменьшаются до max_side по большей стороне.
    """

    kind = ProviderKind.HUMAN_RECTANGLES

    def __init__(self, max_side: int = 800, max_results: int = 32):
        self.max_side = max_side
        self.max_results = max_results
        self._hog = cv2.HOGDescriptor()
        self._hog.setSVMDetector(cv2.HOGDescriptor_getDefaultPeopleDetector())
        self._lock = threading.Lock()

    def detect(self, image: DecodedImage) -> List[HumanRectangleObservation]:
        bgr = as_bgr(image)
        scale = min(1.0, self.max_side / max(image.width, image.height))
        if scale < 1.0:
            bgr = cv2.resize(bgr, None, fx=scale, fy=scale, interpolation=cv2.INTER_AREA)

        height, width = bgr.shape[:2]
        if width < HOG_WINDOW[0] or height < HOG_WINDOW[1]:
            return []

        with self._lock:
            rects, weights = self._hog.detectMultiScale(
                bgr,
                winStride=(8, 8),
                padding=(8, 8),
                scale=1.05
            )

        rects = np.asarray(rects).reshape(-1, 4)
        weights = np.asarray(weights, dtype=np.float64).reshape(-1)

        observations = []
        for index, (x, y, w, h) in enumerate(rects[:self.max_results]):
            weight = weights[index] if index < len(weights) else 0.0
            observations.append(
                HumanRectangleObservation(
                    bounding_box=normalize_rect(
                        x / scale, y / scale, w / scale, h / scale,
                        image.width, image.height
                    ),
                    confidence=clamp_unit(1.0 / (1.0 + math.exp(-float(weight))))
                )
            )

        logger.debug("Humans detected", humans_count=len(observations))
        return observations
