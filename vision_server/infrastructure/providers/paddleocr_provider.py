"""
Распознавание текста через PaddleOCR
"""
import threading
import time
from typing import Any, List, Optional

from vision_server.infrastructure.providers.base import (
    BaseDetectionProvider,
    text_observation_from_quad
)
from vision_server.core.enums import ProviderKind
from vision_server.core.exceptions import ProviderError, ConfigurationError
from vision_server.core.logging import get_logger
from vision_server.models.observations import TextObservation
from vision_server.utils.image_utils import DecodedImage, as_bgr

logger = get_logger(__name__)


class PaddleOCRTextProvider(BaseDetectionProvider):
    """
    PaddleOCR wrapper - основной движок для распознавания текста
    """

    kind = ProviderKind.TEXT

    def __init__(
        self,
        use_angle_cls: bool = True,
        lang: str = 'en',
        use_gpu: bool = False,
        show_log: bool = False
    ):
        """
        Инициализация PaddleOCR провайдера

        Args:
            use_angle_cls: Использовать классификацию угла поворота
            lang: Язык распознавания ('en', 'ru', 'ch' и др.)
            use_gpu: Использовать GPU
            show_log: Показывать логи PaddleOCR
        """
        self.use_angle_cls = use_angle_cls
        self.lang = lang
        self.use_gpu = use_gpu
        self.show_log = show_log
        self.ocr: Optional[Any] = None
        # PaddleOCR не потокобезопасен
        self._lock = threading.Lock()

        logger.info(
            "PaddleOCR provider configured",
            use_angle_cls=use_angle_cls,
            lang=lang,
            use_gpu=use_gpu
        )

    def initialize(self) -> None:
        """Инициализация PaddleOCR"""
        try:
            logger.info("Initializing PaddleOCR...")

            # Тяжёлый импорт - только при инициализации
            from paddleocr import PaddleOCR

            self.ocr = PaddleOCR(
                use_angle_cls=self.use_angle_cls,
                lang=self.lang,
                use_gpu=self.use_gpu,
                show_log=self.show_log
            )

            logger.info("PaddleOCR initialized successfully")

        except Exception as e:
            logger.error("Failed to initialize PaddleOCR", error=str(e))
            raise ConfigurationError(
                f"Failed to initialize PaddleOCR: {str(e)}",
                details={"error": str(e)}
            )

    def detect(self, image: DecodedImage) -> List[TextObservation]:
        """
        Распознавание текста через PaddleOCR

        Args:
            image: Декодированное изображение

        Returns:
            Фрагменты текста в порядке движка

        Raises:
            ProviderError: Если не удалось распознать текст
        """
        if self.ocr is None:
            raise ProviderError(
                "PaddleOCR not initialized. Call initialize() first."
            )

        try:
            start_time = time.time()

            logger.debug("Starting PaddleOCR text extraction")
            with self._lock:
                result = self.ocr.ocr(as_bgr(image), cls=self.use_angle_cls)

            processing_time_ms = int((time.time() - start_time) * 1000)

            if not result or not result[0]:
                logger.debug("PaddleOCR returned empty result")
                return []

            observations = []
            for line in result[0]:
                quad = line[0]  # [[x1,y1], [x2,y2], [x3,y3], [x4,y4]]
                text = line[1][0]
                confidence = float(line[1][1])

                observations.append(
                    text_observation_from_quad(text, confidence, quad, image)
                )

            logger.info(
                "PaddleOCR extraction completed",
                blocks_count=len(observations),
                processing_time_ms=processing_time_ms
            )

            return observations

        except Exception as e:
            logger.error("PaddleOCR extraction failed", error=str(e))
            raise ProviderError(
                f"Failed to extract text with PaddleOCR: {str(e)}",
                details={"error": str(e)}
            )

    def is_available(self) -> bool:
        return self.ocr is not None

    def cleanup(self) -> None:
        """Очистка ресурсов"""
        if self.ocr is not None:
            logger.info("Cleaning up PaddleOCR resources")
            self.ocr = None
