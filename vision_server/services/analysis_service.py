"""
Главный сервис анализа изображений - оркестратор
"""
import contextvars
import time
from concurrent.futures import ALL_COMPLETED, Executor, Future, wait
from typing import Dict, List, Optional, Sequence

from pydantic import TypeAdapter

from vision_server.core.clock import IsoClock
from vision_server.core.enums import ProviderKind, ProviderStatus
from vision_server.core.exceptions import ConfigurationError, ImageValidationError
from vision_server.core.logging import get_logger
from vision_server.infrastructure.providers.base import BaseDetectionProvider, ProviderOutcome
from vision_server.models.observations import (
    BarcodeObservation,
    BodyPoseObservation,
    ClassificationObservation,
    Confidence,
    ContourSummary,
    FaceObservation,
    FeaturePrintSummary,
    HandPoseObservation,
    HorizonObservation,
    HumanRectangleObservation,
    RectangleObservation,
    SaliencyResult,
    TextObservation,
)
from vision_server.models.responses import AnalysisResponse, ImageInfo
from vision_server.observability.metrics import (
    record_provider_duration,
    record_provider_failure,
)
from vision_server.services.reading_order import reconstruct
from vision_server.utils.image_utils import DecodedImage, decode_image

logger = get_logger(__name__)

CLASSIFICATION_MIN_CONFIDENCE = 0.1
CLASSIFICATION_LIMIT = 10

# Тип результата detect() для каждого вида провайдера
OUTPUT_ADAPTERS: Dict[ProviderKind, TypeAdapter] = {
    ProviderKind.TEXT: TypeAdapter(List[TextObservation]),
    ProviderKind.FACES: TypeAdapter(List[FaceObservation]),
    ProviderKind.FACE_QUALITY: TypeAdapter(List[Confidence]),
    ProviderKind.BARCODES: TypeAdapter(List[BarcodeObservation]),
    ProviderKind.CLASSIFICATION: TypeAdapter(List[ClassificationObservation]),
    ProviderKind.BODY_POSE: TypeAdapter(Optional[BodyPoseObservation]),
    ProviderKind.HAND_POSE: TypeAdapter(List[HandPoseObservation]),
    ProviderKind.SALIENCY: TypeAdapter(Optional[SaliencyResult]),
    ProviderKind.RECTANGLES: TypeAdapter(List[RectangleObservation]),
    ProviderKind.HUMAN_RECTANGLES: TypeAdapter(List[HumanRectangleObservation]),
    ProviderKind.HORIZON: TypeAdapter(Optional[HorizonObservation]),
    ProviderKind.CONTOURS: TypeAdapter(Optional[ContourSummary]),
    ProviderKind.FEATURE_PRINT: TypeAdapter(Optional[FeaturePrintSummary]),
}


def select_top_classifications(
    observations: Sequence[ClassificationObservation],
    min_confidence: float = CLASSIFICATION_MIN_CONFIDENCE,
    limit: int = CLASSIFICATION_LIMIT
) -> List[ClassificationObservation]:
    """Не более limit меток с наибольшей уверенностью, строго выше min_confidence"""
    ranked = sorted(observations, key=lambda obs: obs.confidence, reverse=True)
    return [obs for obs in ranked if obs.confidence > min_confidence][:limit]


def merge_face_quality(
    faces: Optional[List[FaceObservation]],
    qualities: Optional[List[float]]
) -> Optional[List[FaceObservation]]:
    """
    Слияние геометрии лиц и оценок качества по индексу

    i-я оценка достаётся i-му лицу, только если оба списка длиннее i;
    хвост без пары остаётся без capture_quality.
    """
    if faces is None:
        return None
    if not qualities:
        return list(faces)

    merged = []
    for index, face in enumerate(faces):
        if index < len(qualities):
            face = face.model_copy(update={"capture_quality": qualities[index]})
        merged.append(face)
    return merged


class AnalysisService:
    """
    Оркестратор анализа: декодирование → параллельный запуск провайдеров
    → барьер → слияние → порядок чтения → AnalysisResponse

    Ошибка отдельного провайдера не прерывает запрос: его секция ответа
    просто отсутствует. Фатальна только ошибка входных данных.
    Повторных попыток нет.
    """

    def __init__(
        self,
        providers: Sequence[BaseDetectionProvider],
        executor: Executor,
        clock: IsoClock
    ):
        """
        Args:
            providers: Готовые к работе провайдеры, не более одного на вид
            executor: Пул потоков для параллельного запуска провайдеров
            clock: Источник меток времени
        """
        self.providers: Dict[ProviderKind, BaseDetectionProvider] = {}
        for provider in providers:
            if provider.kind in self.providers:
                raise ConfigurationError(
                    f"Duplicate provider for kind: {provider.kind.value}",
                    details={"kind": provider.kind.value}
                )
            self.providers[provider.kind] = provider

        self.executor = executor
        self.clock = clock

        logger.info(
            "Analysis service initialized",
            providers=[kind.value for kind in self.providers]
        )

    def analyze(self, image_bytes: bytes) -> AnalysisResponse:
        """
        Полный анализ изображения

        Args:
            image_bytes: Сырые байты изображения (тело запроса целиком)

        Returns:
            AnalysisResponse; при ошибке входных данных success=False
        """
        start_time = time.time()

        try:
            image = decode_image(image_bytes)
        except ImageValidationError as e:
            logger.warning("Image decoding failed", error=e.message, details=e.details)
            return AnalysisResponse.failure(e.message, self.clock.timestamp())

        logger.info(
            "Starting image analysis",
            width=image.width,
            height=image.height,
            format=image.format.value
        )

        outcomes = self.run_providers(image)
        response = self.merge(image, outcomes)

        failed = [kind.value for kind, o in outcomes.items() if o.status is ProviderStatus.FAILED]
        logger.info(
            "Image analysis completed",
            processing_time_ms=int((time.time() - start_time) * 1000),
            text_count=len(response.text_recognition or []),
            faces_count=len(response.face_detection or []),
            barcodes_count=len(response.barcodes or []),
            failed_providers=failed
        )

        return response

    def run_providers(self, image: DecodedImage) -> Dict[ProviderKind, ProviderOutcome]:
        """
        Запуск всех провайдеров на одном изображении и ожидание всех результатов

        Returns:
            Итог по каждому виду; невключённые виды - NOT_RUN
        """
        futures: Dict[ProviderKind, Future] = {}
        for kind, provider in self.providers.items():
            # Контекст логов запроса переносится в поток пула
            context = contextvars.copy_context()
            futures[kind] = self.executor.submit(context.run, self._run_provider, provider, image)

        wait(futures.values(), return_when=ALL_COMPLETED)

        outcomes = {kind: ProviderOutcome.not_run(kind) for kind in ProviderKind}
        for kind, future in futures.items():
            outcomes[kind] = future.result()
        return outcomes

    def _run_provider(self, provider: BaseDetectionProvider, image: DecodedImage) -> ProviderOutcome:
        """
        Один провайдер: любое исключение превращается в FAILED

        Результат проверяется по типу своего вида: значение неверной
        формы тоже даёт FAILED.
        """
        kind = provider.kind
        start_time = time.time()

        try:
            value = OUTPUT_ADAPTERS[kind].validate_python(provider.detect(image))
        except Exception as e:
            duration = time.time() - start_time
            logger.warning(
                "Provider failed",
                provider=kind.value,
                error=str(e),
                error_type=type(e).__name__
            )
            record_provider_failure(kind.value)
            record_provider_duration(kind.value, duration)
            return ProviderOutcome.failed(kind, str(e), int(duration * 1000))

        duration = time.time() - start_time
        record_provider_duration(kind.value, duration)
        logger.debug("Provider completed", provider=kind.value, duration_ms=int(duration * 1000))
        return ProviderOutcome.ok(kind, value, int(duration * 1000))

    def merge(
        self,
        image: DecodedImage,
        outcomes: Dict[ProviderKind, ProviderOutcome]
    ) -> AnalysisResponse:
        """
        Сборка единого ответа из итогов провайдеров

        Значение берётся только у успешно отработавших провайдеров.
        """
        def value(kind: ProviderKind):
            outcome = outcomes.get(kind)
            return outcome.value if outcome is not None and outcome.succeeded else None

        text = value(ProviderKind.TEXT)
        objects = value(ProviderKind.CLASSIFICATION)

        return AnalysisResponse(
            success=True,
            timestamp=self.clock.timestamp(),
            image_info=ImageInfo(
                width=image.width,
                height=image.height,
                format=image.format.value,
                color_space=image.color_space
            ),
            text_recognition=text,
            full_text=reconstruct(text) if text else None,
            face_detection=merge_face_quality(
                value(ProviderKind.FACES),
                value(ProviderKind.FACE_QUALITY)
            ),
            barcodes=value(ProviderKind.BARCODES),
            objects=select_top_classifications(objects) if objects is not None else None,
            saliency=value(ProviderKind.SALIENCY),
            body_pose=value(ProviderKind.BODY_POSE),
            hand_poses=value(ProviderKind.HAND_POSE),
            rectangles=value(ProviderKind.RECTANGLES),
            horizon=value(ProviderKind.HORIZON),
            contours=value(ProviderKind.CONTOURS),
            human_rectangles=value(ProviderKind.HUMAN_RECTANGLES),
            feature_print=value(ProviderKind.FEATURE_PRINT)
        )

    def provider_availability(self) -> Dict[str, bool]:
        """Доступность провайдеров по видам (для health check)"""
        return {
            kind.value: kind in self.providers and self.providers[kind].is_available()
            for kind in ProviderKind
        }

    def is_ready(self) -> bool:
        """
        Проверка готовности сервиса к работе

        Returns:
            True если доступен хотя бы один провайдер
        """
        return any(provider.is_available() for provider in self.providers.values())

    def shutdown(self) -> None:
        """Очистка ресурсов провайдеров"""
        for provider in self.providers.values():
            provider.cleanup()
