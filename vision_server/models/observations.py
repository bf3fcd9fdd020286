"""
Наблюдения детекторов - записи, общие для всех провайдеров
"""
from typing import Annotated, Dict, List, Optional

from pydantic import Field

from vision_server.models.geometry import BoundingBox, Point, SchemaModel

Confidence = Annotated[float, Field(ge=0.0, le=1.0, description="Уверенность (0-1)")]


class TextCandidate(SchemaModel):
    """Альтернативный вариант распознанного текста"""
    text: str
    confidence: Confidence


class TextObservation(SchemaModel):
    """Фрагмент распознанного текста"""
    text: str = Field(..., description="Распознанный текст (лучший вариант)")
    confidence: Confidence
    bounding_box: BoundingBox
    top_candidates: List[TextCandidate] = Field(
        default_factory=list,
        description="Варианты по убыванию уверенности (не более 5)"
    )


class FaceLandmarks(SchemaModel):
    """Группы опорных точек лица"""
    left_eye: Optional[List[Point]] = None
    right_eye: Optional[List[Point]] = None
    left_eyebrow: Optional[List[Point]] = None
    right_eyebrow: Optional[List[Point]] = None
    nose: Optional[List[Point]] = None
    nose_crest: Optional[List[Point]] = None
    median_line: Optional[List[Point]] = None
    outer_lips: Optional[List[Point]] = None
    inner_lips: Optional[List[Point]] = None
    left_pupil: Optional[Point] = None
    right_pupil: Optional[Point] = None
    face_contour: Optional[List[Point]] = None


class FaceObservation(SchemaModel):
    """Обнаруженное лицо"""
    bounding_box: BoundingBox
    confidence: Confidence
    landmarks: Optional[FaceLandmarks] = None
    capture_quality: Optional[float] = Field(None, ge=0.0, le=1.0)
    roll: Optional[float] = Field(None, description="Face roll angle in degrees")
    yaw: Optional[float] = Field(None, description="Face yaw angle in degrees")
    pitch: Optional[float] = Field(None, description="Face pitch angle in degrees")


class BarcodeObservation(SchemaModel):
    """Штрихкод / QR-код"""
    payload: Optional[str] = Field(None, description="Декодированное содержимое")
    symbology: str = Field(..., description="Тип кода (QR, EAN13, ...)")
    bounding_box: BoundingBox
    confidence: Confidence


class ClassificationObservation(SchemaModel):
    """Метка классификации всего изображения"""
    identifier: str
    confidence: Confidence


class JointPoint(SchemaModel):
    """Сустав позы"""
    position: Point
    confidence: Confidence


class BodyPoseObservation(SchemaModel):
    """Поза тела: имя сустава -> точка"""
    joints: Dict[str, JointPoint]
    confidence: Confidence


class HandPoseObservation(SchemaModel):
    """Поза кисти: сторона (left, right или unknown) и суставы пальцев"""
    chirality: str = Field(..., description="left, right или unknown")
    joints: Dict[str, JointPoint]
    confidence: Confidence


class SalientObject(SchemaModel):
    bounding_box: BoundingBox
    confidence: Confidence


class SalientRegion(SchemaModel):
    score: float = Field(..., ge=0.0, le=1.0)


class SaliencyResult(SchemaModel):
    """Заметные области изображения"""
    object_based: Optional[List[SalientObject]] = None
    attention_based: Optional[SalientRegion] = None


class RectangleObservation(SchemaModel):
    """Четырёхугольник (документ, экран, табличка)"""
    bounding_box: BoundingBox
    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point
    confidence: Confidence


class HumanRectangleObservation(SchemaModel):
    """Прямоугольник, содержащий человека"""
    bounding_box: BoundingBox
    confidence: Confidence


class HorizonObservation(SchemaModel):
    """Наклон горизонта"""
    angle: float = Field(..., description="Угол в градусах")
    confidence: Confidence


class ContourSummary(SchemaModel):
    """Сводка по контурам"""
    contour_count: int = Field(..., ge=0)
    normalized_path_count: int = Field(..., ge=0, description="Число точек во всех контурах")


class FeaturePrintSummary(SchemaModel):
    """Сводка по вектору признаков изображения"""
    element_count: int = Field(..., ge=0)
    element_type: str
