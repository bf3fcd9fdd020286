"""
Классификация изображения ONNX-моделью через cv2.dnn

Ожидается классификатор в стиле ImageNet: вход 1x3x224x224 (RGB,
нормализация mean/std), выход - логиты по классам. Метки - по одной на строку.
"""
import threading
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.core.enums import ProviderKind
from vision_server.core.exceptions import ConfigurationError, ProviderError
from vision_server.core.logging import get_logger
from vision_server.models.observations import ClassificationObservation
from vision_server.utils.image_utils import DecodedImage

logger = get_logger(__name__)

IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


def softmax(logits: np.ndarray) -> np.ndarray:
    shifted = logits - np.max(logits)
    exp = np.exp(shifted)
    return exp / exp.sum()


class ClassificationProvider(BaseDetectionProvider):
    """
    Метки всего изображения по убыванию уверенности

    Фильтрация (> 0.1) и ограничение (10) применяются оркестратором.
    """

    kind = ProviderKind.CLASSIFICATION

    def __init__(
        self,
        model_path: str,
        labels_path: str,
        input_size: int = 224,
        max_results: int = 50
    ):
        self.model_path = model_path
        self.labels_path = labels_path
        self.input_size = input_size
        self.max_results = max_results
        self.net: Optional[cv2.dnn.Net] = None
        self.labels: List[str] = []
        self._lock = threading.Lock()

    def initialize(self) -> None:
        try:
            self.net = cv2.dnn.readNetFromONNX(self.model_path)
            self.labels = [
                line.strip()
                for line in Path(self.labels_path).read_text(encoding="utf-8").splitlines()
                if line.strip()
            ]
        except Exception as e:
            logger.error("Failed to load classifier", model_path=self.model_path, error=str(e))
            raise ConfigurationError(
                f"Failed to load classifier: {str(e)}",
                details={"model_path": self.model_path, "labels_path": self.labels_path}
            )

        logger.info(
            "Classifier loaded",
            model_path=self.model_path,
            labels_count=len(self.labels)
        )

    def is_available(self) -> bool:
        return self.net is not None

    def preprocess(self, image: DecodedImage) -> np.ndarray:
        """RGB uint8 -> NCHW float32 с нормализацией ImageNet"""
        resized = cv2.resize(
            np.array(image.pixels, copy=True),
            (self.input_size, self.input_size),
            interpolation=cv2.INTER_AREA
        )
        normalized = (resized.astype(np.float32) / 255.0 - IMAGENET_MEAN) / IMAGENET_STD
        return np.ascontiguousarray(normalized.transpose(2, 0, 1)[np.newaxis, ...])

    def detect(self, image: DecodedImage) -> List[ClassificationObservation]:
        if self.net is None:
            raise ProviderError("Classifier not initialized. Call initialize() first.")

        blob = self.preprocess(image)
        with self._lock:
            self.net.setInput(blob)
            logits = self.net.forward()

        probabilities = softmax(np.asarray(logits, dtype=np.float64).reshape(-1))
        if len(probabilities) != len(self.labels):
            raise ProviderError(
                "Classifier output does not match labels",
                details={"outputs": len(probabilities), "labels": len(self.labels)}
            )

        ranked = np.argsort(-probabilities)[:self.max_results]
        return [
            ClassificationObservation(
                identifier=self.labels[index],
                confidence=float(probabilities[index])
            )
            for index in ranked
        ]
