"""
Распознавание текста через EasyOCR
"""
import threading
import time
from typing import Any, List, Optional

import numpy as np

from vision_server.infrastructure.providers.base import (
    BaseDetectionProvider,
    text_observation_from_quad
)
from vision_server.core.enums import ProviderKind
from vision_server.core.exceptions import ProviderError, ConfigurationError
from vision_server.core.logging import get_logger
from vision_server.models.observations import TextObservation
from vision_server.utils.image_utils import DecodedImage

logger = get_logger(__name__)


class EasyOCRTextProvider(BaseDetectionProvider):
    """
    EasyOCR wrapper - альтернативный движок (TEXT_ENGINE=easyocr)
    """

    kind = ProviderKind.TEXT

    def __init__(
            self,
            languages: List[str] = None,
            gpu: bool = False
    ):
        """
        Args:
            languages: Список языков для распознавания
            gpu: Использовать GPU (если доступен)
        """
        self.languages = languages or ['en']
        self.gpu = gpu
        self.reader: Optional[Any] = None
        self._lock = threading.Lock()

        logger.info(
            "EasyOCR provider configured",
            languages=self.languages,
            gpu=self.gpu
        )

    def initialize(self) -> None:
        """Инициализация EasyOCR"""
        try:
            logger.info("Initializing EasyOCR...")

            import easyocr

            self.reader = easyocr.Reader(
                lang_list=self.languages,
                gpu=self.gpu,
                verbose=False  # Отключаем лишние логи
            )

            logger.info("EasyOCR initialized successfully")

        except Exception as e:
            logger.error("Failed to initialize EasyOCR", error=str(e))
            raise ConfigurationError(
                f"Failed to initialize EasyOCR: {str(e)}",
                details={"error": str(e)}
            )

    def detect(self, image: DecodedImage) -> List[TextObservation]:
        """
        Распознавание текста через EasyOCR

        Raises:
            ProviderError: Если не удалось распознать текст
        """
        if self.reader is None:
            raise ProviderError(
                "EasyOCR not initialized. Call initialize() first."
            )

        try:
            start_time = time.time()

            # readtext возвращает: [([bbox], text, confidence), ...]
            with self._lock:
                results = self.reader.readtext(np.array(image.pixels, copy=True))

            processing_time_ms = int((time.time() - start_time) * 1000)

            observations = [
                text_observation_from_quad(text, float(confidence), quad, image)
                for quad, text, confidence in results
            ]

            logger.info(
                "EasyOCR extraction completed",
                blocks_count=len(observations),
                processing_time_ms=processing_time_ms
            )

            return observations

        except Exception as e:
            logger.error("EasyOCR extraction failed", error=str(e))
            raise ProviderError(
                f"Failed to extract text with EasyOCR: {str(e)}",
                details={"error": str(e)}
            )

    def is_available(self) -> bool:
        return self.reader is not None

    def cleanup(self) -> None:
        if self.reader is not None:
            logger.info("Cleaning up EasyOCR resources")
            self.reader = None
