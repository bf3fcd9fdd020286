"""
Pydantic модели для ответов API
"""
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from vision_server.models.geometry import SchemaModel
from vision_server.models.observations import (
    BarcodeObservation,
    BodyPoseObservation,
    ClassificationObservation,
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


class ImageInfo(SchemaModel):
    """Метаданные декодированного изображения"""
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    format: str = Field(..., description="JPEG, PNG, HEIC, TIFF, BMP, GIF, WEBP или unknown")
    color_space: Optional[str] = None


class AnalysisResponse(SchemaModel):
    """
    Единый результат анализа изображения

    success=False <=> все поля детекторов отсутствуют и заполнен error.
    Отсутствующее поле детектора означает, что провайдер не запускался
    или упал; пустой список - провайдер отработал и ничего не нашёл.
    """
    success: bool = Field(..., description="Успешность операции")
    timestamp: str = Field(..., description="ISO-8601 время формирования ответа")
    image_info: Optional[ImageInfo] = None
    text_recognition: Optional[List[TextObservation]] = None
    full_text: Optional[str] = Field(
        None,
        description="Весь текст в порядке чтения; отсутствует, если текст не найден"
    )
    face_detection: Optional[List[FaceObservation]] = None
    barcodes: Optional[List[BarcodeObservation]] = None
    objects: Optional[List[ClassificationObservation]] = Field(
        None,
        description="Не более 10 меток с уверенностью > 0.1"
    )
    saliency: Optional[SaliencyResult] = None
    body_pose: Optional[BodyPoseObservation] = None
    hand_poses: Optional[List[HandPoseObservation]] = None
    rectangles: Optional[List[RectangleObservation]] = None
    horizon: Optional[HorizonObservation] = None
    contours: Optional[ContourSummary] = None
    human_rectangles: Optional[List[HumanRectangleObservation]] = None
    feature_print: Optional[FeaturePrintSummary] = None
    error: Optional[str] = Field(None, description="Сообщение об ошибке")

    @classmethod
    def failure(cls, message: str, timestamp: str) -> "AnalysisResponse":
        """Ответ с ошибкой уровня запроса"""
        return cls(success=False, timestamp=timestamp, error=message)

    def to_json_dict(self) -> Dict[str, Any]:
        """Сериализация для ответа: camelCase, без отсутствующих полей"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "timestamp": "2025-10-17T10:30:00Z",
                "imageInfo": {
                    "width": 1920,
                    "height": 1080,
                    "format": "JPEG",
                    "colorSpace": "RGB"
                },
                "textRecognition": [
                    {
                        "text": "Hello World",
                        "confidence": 0.95,
                        "boundingBox": {"x": 0.1, "y": 0.9, "width": 0.45, "height": 0.05},
                        "topCandidates": [{"text": "Hello World", "confidence": 0.95}]
                    }
                ],
                "fullText": "Hello World",
                "faceDetection": [],
                "barcodes": [],
                "objects": [{"identifier": "document", "confidence": 0.82}]
            }
        }
    )


class HealthResponse(SchemaModel):
    """Ответ health check"""
    status: str = Field(..., description="Статус сервиса")
    service: str = Field(..., description="Имя сервиса")
    version: str = Field(..., description="Версия приложения")
    providers: Dict[str, bool] = Field(
        default_factory=dict,
        description="Доступность провайдеров по видам"
    )
