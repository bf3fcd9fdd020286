"""
FastAPI Dependencies для Dependency Injection
"""
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from vision_server.config import get_settings, Settings
from vision_server.core.clock import IsoClock
from vision_server.core.enums import ProviderKind, TextEngine
from vision_server.core.exceptions import ConfigurationError
from vision_server.core.logging import get_logger
from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.infrastructure.providers.barcode_provider import BarcodeProvider
from vision_server.infrastructure.providers.classification_provider import ClassificationProvider
from vision_server.infrastructure.providers.easyocr_provider import EasyOCRTextProvider
from vision_server.infrastructure.providers.face_provider import (
    FaceDetectionProvider,
    FaceQualityProvider,
)
from vision_server.infrastructure.providers.feature_print_provider import FeaturePrintProvider
from vision_server.infrastructure.providers.human_provider import HumanRectangleProvider
from vision_server.infrastructure.providers.paddleocr_provider import PaddleOCRTextProvider
from vision_server.infrastructure.providers.pose_provider import BodyPoseProvider, HandPoseProvider
from vision_server.infrastructure.providers.saliency_provider import SaliencyProvider
from vision_server.infrastructure.providers.shape_provider import (
    ContourProvider,
    HorizonProvider,
    RectangleProvider,
)
from vision_server.services.analysis_service import AnalysisService

logger = get_logger(__name__)


def build_provider(kind: ProviderKind, settings: Settings) -> Optional[BaseDetectionProvider]:
    """
    Создать провайдер по виду из настроек

    Returns:
        Провайдер или None, если для него не настроена модель
    """
    if kind is ProviderKind.TEXT:
        if settings.TEXT_ENGINE is TextEngine.EASYOCR:
            return EasyOCRTextProvider(
                languages=settings.text_languages_list,
                gpu=settings.OCR_USE_GPU
            )
        # PaddleOCR принимает один язык
        languages = settings.text_languages_list
        return PaddleOCRTextProvider(
            lang=languages[0] if languages else "en",
            use_gpu=settings.OCR_USE_GPU
        )

    if kind is ProviderKind.FACES:
        return FaceDetectionProvider(
            min_size_px=settings.FACE_MIN_SIZE_PX,
            max_faces=settings.MAX_FACES
        )

    if kind is ProviderKind.FACE_QUALITY:
        return FaceQualityProvider(
            min_size_px=settings.FACE_MIN_SIZE_PX,
            max_faces=settings.MAX_FACES
        )

    if kind is ProviderKind.BARCODES:
        return BarcodeProvider(max_results=settings.BARCODE_MAX_RESULTS)

    if kind is ProviderKind.CLASSIFICATION:
        if not (settings.CLASSIFIER_MODEL_PATH and settings.CLASSIFIER_LABELS_PATH):
            logger.info("Classifier model not configured, classification disabled")
            return None
        return ClassificationProvider(
            model_path=settings.CLASSIFIER_MODEL_PATH,
            labels_path=settings.CLASSIFIER_LABELS_PATH
        )

    if kind is ProviderKind.BODY_POSE:
        if not settings.POSE_MODEL_PATH:
            logger.info("Pose model not configured, body pose disabled")
            return None
        return BodyPoseProvider(
            model_path=settings.POSE_MODEL_PATH,
            config_path=settings.POSE_CONFIG_PATH
        )

    if kind is ProviderKind.HAND_POSE:
        if not settings.HAND_POSE_MODEL_PATH:
            logger.info("Hand pose model not configured, hand pose disabled")
            return None
        return HandPoseProvider(
            model_path=settings.HAND_POSE_MODEL_PATH,
            config_path=settings.HAND_POSE_CONFIG_PATH
        )

    if kind is ProviderKind.SALIENCY:
        return SaliencyProvider()

    if kind is ProviderKind.RECTANGLES:
        return RectangleProvider(
            min_aspect_ratio=settings.RECTANGLE_MIN_ASPECT_RATIO,
            min_size=settings.RECTANGLE_MIN_SIZE,
            max_results=settings.RECTANGLE_MAX_RESULTS
        )

    if kind is ProviderKind.HUMAN_RECTANGLES:
        return HumanRectangleProvider()

    if kind is ProviderKind.HORIZON:
        return HorizonProvider()

    if kind is ProviderKind.CONTOURS:
        return ContourProvider(contrast=settings.CONTOUR_CONTRAST)

    if kind is ProviderKind.FEATURE_PRINT:
        return FeaturePrintProvider()

    return None


def create_providers(settings: Settings) -> List[BaseDetectionProvider]:
    """
    Создать и инициализировать включённые провайдеры

    Провайдер, который не удалось инициализировать, пропускается:
    сервис работает без его секции ответа.
    """
    providers = []

    for kind in settings.enabled_providers_list:
        provider = build_provider(kind, settings)
        if provider is None:
            continue

        try:
            provider.initialize()
        except ConfigurationError as e:
            logger.warning(
                "Provider unavailable, skipping",
                provider=kind.value,
                error=e.message
            )
            continue

        providers.append(provider)

    return providers


class AnalysisServiceDependency:
    """singleton для сервиса анализа и пула потоков провайдеров"""

    _service: Optional[AnalysisService] = None
    _executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def get_instance(cls) -> AnalysisService:
        """get or create service instance"""
        if cls._service is None:
            settings = get_settings()

            logger.info("Creating analysis service instance")
            cls._executor = ThreadPoolExecutor(
                max_workers=settings.ANALYSIS_WORKERS,
                thread_name_prefix="provider"
            )
            cls._service = AnalysisService(
                providers=create_providers(settings),
                executor=cls._executor,
                clock=IsoClock()
            )
            logger.info("Analysis service created", workers=settings.ANALYSIS_WORKERS)

        return cls._service

    @classmethod
    def shutdown(cls) -> None:
        """cleanup"""
        if cls._executor:
            logger.info("Shutting down thread pool")
            cls._executor.shutdown(wait=True)
            cls._executor = None

        if cls._service:
            logger.info("Shutting down providers")
            cls._service.shutdown()
            cls._service = None


def get_analysis_service() -> AnalysisService:
    """dependency injection для эндпоинтов"""
    return AnalysisServiceDependency.get_instance()
