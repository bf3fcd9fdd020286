"""
Геометрия в нормализованных координатах

Все координаты в [0, 1] относительно размеров исходного изображения,
начало координат - левый нижний угол, ось Y направлена вверх.
Пиксельные координаты детекторов (начало - левый верхний угол)
переводятся сюда только на границе адаптера провайдера.
"""
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SchemaModel(BaseModel):
    """Базовая модель схемы ответа: неизменяемая, camelCase в JSON"""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Point(SchemaModel):
    """Нормализованная точка"""
    x: float = Field(..., ge=0.0, le=1.0, description="Normalized X coordinate (0-1)")
    y: float = Field(..., ge=0.0, le=1.0, description="Normalized Y coordinate (0-1)")


class BoundingBox(SchemaModel):
    """Нормализованный прямоугольник: (x, y) - левый нижний угол"""
    x: float = Field(..., ge=0.0, le=1.0, description="Normalized X coordinate (0-1)")
    y: float = Field(..., ge=0.0, le=1.0, description="Normalized Y coordinate (0-1)")
    width: float = Field(..., ge=0.0, le=1.0, description="Normalized width (0-1)")
    height: float = Field(..., ge=0.0, le=1.0, description="Normalized height (0-1)")

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def center(self) -> Point:
        return Point(x=self.x + self.width / 2, y=self.y + self.height / 2)


def clamp_unit(value: float) -> float:
    """Ограничить значение отрезком [0, 1]"""
    return min(1.0, max(0.0, float(value)))


def normalize_point(x: float, y: float, image_width: int, image_height: int) -> Point:
    """
    Пиксельная точка (начало сверху слева) -> нормализованная точка

    Args:
        x, y: Пиксельные координаты
        image_width, image_height: Размеры изображения

    Returns:
        Point в нормализованных координатах (начало снизу слева)
    """
    return Point(
        x=clamp_unit(x / image_width),
        y=clamp_unit(1.0 - y / image_height),
    )


def normalize_rect(
    left: float,
    top: float,
    width: float,
    height: float,
    image_width: int,
    image_height: int
) -> BoundingBox:
    """
    Пиксельный прямоугольник (left, top, width, height) -> BoundingBox

    Части прямоугольника за пределами изображения обрезаются.
    """
    x0 = clamp_unit(left / image_width)
    x1 = clamp_unit((left + width) / image_width)
    y_top = clamp_unit(1.0 - top / image_height)
    y_bottom = clamp_unit(1.0 - (top + height) / image_height)

    return BoundingBox(
        x=x0,
        y=y_bottom,
        width=max(0.0, x1 - x0),
        height=max(0.0, y_top - y_bottom),
    )


def bounding_box_of_points(
    points: Iterable[Sequence[float]],
    image_width: int,
    image_height: int
) -> BoundingBox:
    """
    Охватывающий прямоугольник для пиксельного многоугольника

    Используется для четырёхугольников OCR и QR-кодов.
    """
    points = [(float(p[0]), float(p[1])) for p in points]
    if not points:
        raise ValueError("Cannot build bounding box of an empty polygon")

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    left, top = min(xs), min(ys)

    return normalize_rect(
        left,
        top,
        max(xs) - left,
        max(ys) - top,
        image_width,
        image_height
    )
