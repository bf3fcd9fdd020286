"""
Карта заметности методом spectral residual (Hou & Zhang, 2007)
"""
from typing import List

import cv2
import numpy as np

from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.core.enums import ProviderKind
from vision_server.core.logging import get_logger
from vision_server.models.geometry import clamp_unit, normalize_rect
from vision_server.models.observations import SaliencyResult, SalientObject, SalientRegion
from vision_server.utils.image_utils import DecodedImage, as_gray

logger = get_logger(__name__)


class SaliencyProvider(BaseDetectionProvider):
    """
    Заметные объекты (связные области выше порога Оцу) и общий балл внимания
    """

    kind = ProviderKind.SALIENCY

    def __init__(self, map_size: int = 64, min_area_ratio: float = 0.01, max_objects: int = 10):
        self.map_size = map_size
        self.min_area_ratio = min_area_ratio
        self.max_objects = max_objects

    def saliency_map(self, image: DecodedImage) -> np.ndarray:
        """Карта заметности map_size x map_size в [0, 1]"""
        small = cv2.resize(
            as_gray(image),
            (self.map_size, self.map_size),
            interpolation=cv2.INTER_AREA
        ).astype(np.float32)

        spectrum = np.fft.fft2(small)
        log_amplitude = np.log(np.abs(spectrum) + 1e-8).astype(np.float32)
        phase = np.angle(spectrum)

        residual = log_amplitude - cv2.blur(log_amplitude, (3, 3))
        saliency = np.abs(np.fft.ifft2(np.exp(residual + 1j * phase))) ** 2
        saliency = cv2.GaussianBlur(saliency.astype(np.float32), (9, 9), 2.5)

        low, high = float(saliency.min()), float(saliency.max())
        if high - low < 1e-12:
            return np.zeros_like(saliency)
        return (saliency - low) / (high - low)

    def detect(self, image: DecodedImage) -> SaliencyResult:
        saliency = self.saliency_map(image)
        attention = SalientRegion(score=round(clamp_unit(saliency.mean()), 4))

        if not saliency.any():
            return SaliencyResult(object_based=[], attention_based=attention)

        as_bytes = (saliency * 255).astype(np.uint8)
        _, mask = cv2.threshold(as_bytes, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        count, labels, stats, _ = cv2.connectedComponentsWithStats(mask)

        scale_x = image.width / self.map_size
        scale_y = image.height / self.map_size
        min_area = self.min_area_ratio * self.map_size * self.map_size

        objects: List[SalientObject] = []
        for label in range(1, count):
            x, y, w, h, area = stats[label]
            if area < min_area:
                continue
            confidence = float(saliency[labels == label].mean())
            objects.append(
                SalientObject(
                    bounding_box=normalize_rect(
                        x * scale_x, y * scale_y, w * scale_x, h * scale_y,
                        image.width, image.height
                    ),
                    confidence=clamp_unit(confidence)
                )
            )

        objects.sort(key=lambda obj: obj.confidence, reverse=True)
        logger.debug("Salient objects detected", objects_count=len(objects))
        return SaliencyResult(
            object_based=objects[:self.max_objects],
            attention_based=attention
        )
