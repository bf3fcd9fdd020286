"""
Вектор признаков изображения: нормализованная HSV-гистограмма
"""
import cv2
import numpy as np

from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.core.enums import ProviderKind
from vision_server.models.observations import FeaturePrintSummary
from vision_server.utils.image_utils import DecodedImage, as_bgr


class FeaturePrintProvider(BaseDetectionProvider):
    """В ответ попадает только сводка (длина и тип элементов), не сам вектор"""

    kind = ProviderKind.FEATURE_PRINT

    def __init__(self, bins: tuple = (8, 8, 8)):
        self.bins = bins

    def embed(self, image: DecodedImage) -> np.ndarray:
        hsv = cv2.cvtColor(as_bgr(image), cv2.COLOR_BGR2HSV)
        histogram = cv2.calcHist(
            [hsv], [0, 1, 2], None, list(self.bins), [0, 180, 0, 256, 0, 256]
        )
        vector = histogram.flatten().astype(np.float32)
        norm = np.linalg.norm(vector)
        return vector / norm if norm > 0 else vector

    def detect(self, image: DecodedImage) -> FeaturePrintSummary:
        vector = self.embed(image)
        return FeaturePrintSummary(
            element_count=int(vector.size),
            element_type=str(vector.dtype)
        )
