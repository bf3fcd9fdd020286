"""
Геометрические детекторы: четырёхугольники, горизонт, контуры
"""
import math
from typing import List, Optional, Tuple

import cv2
import numpy as np

from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.core.enums import ProviderKind
from vision_server.core.logging import get_logger
from vision_server.models.geometry import clamp_unit, normalize_point, normalize_rect
from vision_server.models.observations import (
    ContourSummary,
    HorizonObservation,
    RectangleObservation,
)
from vision_server.utils.image_utils import DecodedImage, as_gray

logger = get_logger(__name__)


def order_corners(pts: np.ndarray) -> np.ndarray:
    """
    order corners: top-left, top-right, bottom-right, bottom-left
    (пиксельные координаты, ось Y вниз)
    """
    sorted_by_y = pts[np.argsort(pts[:, 1], kind="stable")]
    top_points = sorted_by_y[:2]
    bottom_points = sorted_by_y[2:]

    top_points = top_points[np.argsort(top_points[:, 0], kind="stable")]
    tl, tr = top_points[0], top_points[1]

    bottom_points = bottom_points[np.argsort(bottom_points[:, 0], kind="stable")]
    bl, br = bottom_points[0], bottom_points[1]

    return np.array([tl, tr, br, bl], dtype=np.float32)


def rect_iou(a: Tuple[int, int, int, int], b: Tuple[int, int, int, int]) -> float:
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    inter_w = max(0, min(ax + aw, bx + bw) - max(ax, bx))
    inter_h = max(0, min(ay + ah, by + bh) - max(ay, by))
    inter = inter_w * inter_h
    union = aw * ah + bw * bh - inter
    return inter / union if union else 0.0


class RectangleProvider(BaseDetectionProvider):
    """
    Выпуклые четырёхугольники по контурам границ Canny

    Ограничения: минимальное отношение сторон, минимальный размер
    (доля от меньшей стороны изображения), максимум результатов.
    """

    kind = ProviderKind.RECTANGLES

    def __init__(
        self,
        min_aspect_ratio: float = 0.2,
        min_size: float = 0.05,
        max_results: int = 8,
        simplify_percent: float = 2.0
    ):
        self.min_aspect_ratio = min_aspect_ratio
        self.min_size = min_size
        self.max_results = max_results
        self.simplify_percent = simplify_percent

    def detect(self, image: DecodedImage) -> List[RectangleObservation]:
        gray = as_gray(image)
        blurred = cv2.GaussianBlur(gray, (5, 5), 0)
        edges = cv2.Canny(blurred, 50, 150)
        edges = cv2.dilate(edges, np.ones((3, 3), np.uint8))

        contours, _ = cv2.findContours(edges, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
        min_side = self.min_size * min(image.width, image.height)

        accepted: List[Tuple[int, int, int, int]] = []
        observations = []

        for contour in sorted(contours, key=cv2.contourArea, reverse=True):
            if len(observations) >= self.max_results:
                break

            perimeter = cv2.arcLength(contour, True)
            approx = cv2.approxPolyDP(contour, perimeter * self.simplify_percent / 100, True)
            if len(approx) != 4 or not cv2.isContourConvex(approx):
                continue

            rect = cv2.boundingRect(approx)
            x, y, w, h = rect
            if w < min_side or h < min_side:
                continue
            if min(w, h) / max(w, h) < self.min_aspect_ratio:
                continue
            # Внутренняя и внешняя граница одной фигуры
            if any(rect_iou(rect, other) > 0.8 for other in accepted):
                continue

            accepted.append(rect)
            tl, tr, br, bl = order_corners(approx.reshape(4, 2).astype(np.float32))

            def point(p):
                return normalize_point(p[0], p[1], image.width, image.height)

            observations.append(
                RectangleObservation(
                    bounding_box=normalize_rect(x, y, w, h, image.width, image.height),
                    top_left=point(tl),
                    top_right=point(tr),
                    bottom_left=point(bl),
                    bottom_right=point(br),
                    confidence=clamp_unit(cv2.contourArea(approx) / float(w * h))
                )
            )

        logger.debug("Rectangles detected", rectangles_count=len(observations))
        return observations


class HorizonProvider(BaseDetectionProvider):
    """
    Наклон горизонта по доминирующей почти горизонтальной линии Хафа

    Угол в градусах, положительный - против часовой стрелки.
    None - если подходящих линий нет.
    """

    kind = ProviderKind.HORIZON

    def __init__(self, max_tilt_deg: float = 30.0, agreement_deg: float = 2.0):
        self.max_tilt_deg = max_tilt_deg
        self.agreement_deg = agreement_deg

    def detect(self, image: DecodedImage) -> Optional[HorizonObservation]:
        gray = as_gray(image)
        edges = cv2.Canny(cv2.GaussianBlur(gray, (5, 5), 0), 50, 150)
        threshold = max(30, min(image.width, image.height) // 4)

        lines = cv2.HoughLines(edges, 1, np.pi / 180, threshold)
        if lines is None:
            return None

        # theta - угол нормали; 90 градусов = горизонтальная линия
        angles = [90.0 - math.degrees(theta) for _, theta in lines.reshape(-1, 2)]
        horizontal = [angle for angle in angles if abs(angle) <= self.max_tilt_deg]
        if not horizontal:
            return None

        # Линии отсортированы по числу голосов
        dominant = horizontal[0]
        agreeing = [a for a in horizontal if abs(a - dominant) <= self.agreement_deg]

        return HorizonObservation(
            angle=round(float(np.mean(agreeing)), 2),
            confidence=clamp_unit(len(agreeing) / len(horizontal))
        )


class ContourProvider(BaseDetectionProvider):
    """
    Число контуров и суммарное число точек после усиления контраста
    (тёмные объекты на светлом фоне)
    """

    kind = ProviderKind.CONTOURS

    def __init__(self, contrast: float = 1.5):
        self.contrast = contrast

    def detect(self, image: DecodedImage) -> ContourSummary:
        gray = as_gray(image).astype(np.float32)
        adjusted = np.clip((gray - 128.0) * self.contrast + 128.0, 0, 255).astype(np.uint8)

        _, binary = cv2.threshold(adjusted, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)
        contours, _ = cv2.findContours(binary, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
        logger.debug("Contours detected", contours_count=len(contours))

        return ContourSummary(
            contour_count=len(contours),
            normalized_path_count=int(sum(len(contour) for contour in contours))
        )
