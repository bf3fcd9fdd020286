"""
Абстрактный базовый класс для провайдеров детекции
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from vision_server.core.enums import ProviderKind, ProviderStatus
from vision_server.models.geometry import bounding_box_of_points, clamp_unit
from vision_server.models.observations import TextCandidate, TextObservation
from vision_server.utils.image_utils import DecodedImage


@dataclass(frozen=True)
class ProviderOutcome:
    """
    Итог запуска одного провайдера в рамках запроса

    value - наблюдения провайдера (список, объект или None),
    заполняется только при status=OK.
    """
    kind: ProviderKind
    status: ProviderStatus
    value: Any = None
    error: Optional[str] = None
    duration_ms: int = 0

    @classmethod
    def ok(cls, kind: ProviderKind, value: Any, duration_ms: int = 0) -> "ProviderOutcome":
        return cls(kind=kind, status=ProviderStatus.OK, value=value, duration_ms=duration_ms)

    @classmethod
    def failed(cls, kind: ProviderKind, error: str, duration_ms: int = 0) -> "ProviderOutcome":
        return cls(kind=kind, status=ProviderStatus.FAILED, error=error, duration_ms=duration_ms)

    @classmethod
    def not_run(cls, kind: ProviderKind) -> "ProviderOutcome":
        return cls(kind=kind, status=ProviderStatus.NOT_RUN)

    @property
    def succeeded(self) -> bool:
        return self.status is ProviderStatus.OK


class BaseDetectionProvider(ABC):
    """
    Абстрактный базовый класс для всех детекторов
    Определяет единый интерфейс для оркестратора анализа

    Провайдер не хранит состояние между вызовами detect и не изменяет
    изображение. Ошибка сигнализируется исключением (ProviderError или любым
    другим) - оркестратор поглощает её и пропускает секцию ответа.
    Вся геометрия в результате уже нормализована (см. models.geometry).
    """

    kind: ProviderKind

    def initialize(self) -> None:
        """Инициализация (загрузка моделей, каскадов)"""
        pass

    @abstractmethod
    def detect(self, image: DecodedImage) -> Any:
        """
        Запуск детекции

        Args:
            image: Декодированное изображение (только чтение)

        Returns:
            Наблюдения провайдера в нормализованных координатах
        """
        pass

    def is_available(self) -> bool:
        """
        Проверка доступности провайдера

        Returns:
            True если провайдер готов к работе
        """
        return True

    def cleanup(self) -> None:
        """Очистка ресурсов (опционально)"""
        pass


def text_observation_from_quad(
    text: str,
    confidence: float,
    quad: Sequence[Sequence[float]],
    image: DecodedImage
) -> TextObservation:
    """
    Пиксельный четырёхугольник OCR -> TextObservation

    Движки отдают один вариант текста, он же единственный в top_candidates.
    """
    confidence = clamp_unit(confidence)
    return TextObservation(
        text=text,
        confidence=confidence,
        bounding_box=bounding_box_of_points(quad, image.width, image.height),
        top_candidates=[TextCandidate(text=text, confidence=confidence)]
    )
