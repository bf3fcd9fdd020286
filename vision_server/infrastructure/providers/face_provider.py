"""
Детекция лиц и оценка качества снимка лица (OpenCV Haar cascades)

FaceDetectionProvider и FaceQualityProvider независимы: у каждого свой
детектор. Оркестратор сливает их результаты по индексу лица.
"""
import math
import threading
from typing import List, Optional, Tuple

import cv2
import numpy as np

from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.core.enums import ProviderKind
from vision_server.core.exceptions import ConfigurationError, ProviderError
from vision_server.core.logging import get_logger
from vision_server.models.geometry import clamp_unit, normalize_point, normalize_rect
from vision_server.models.observations import FaceLandmarks, FaceObservation
from vision_server.utils.image_utils import DecodedImage, as_gray

logger = get_logger(__name__)

FACE_CASCADE = "haarcascade_frontalface_default.xml"
EYE_CASCADE = "haarcascade_eye.xml"

# Дисперсия лапласиана, при которой качество = 0.5
QUALITY_HALF_POINT = 100.0


def load_cascade(filename: str) -> cv2.CascadeClassifier:
    """Загрузить каскад из поставки opencv-python"""
    path = cv2.data.haarcascades + filename
    cascade = cv2.CascadeClassifier(path)
    if cascade.empty():
        raise ConfigurationError(
            f"Failed to load Haar cascade: {filename}",
            details={"path": path}
        )
    return cascade


class HaarFaceDetector:
    """Поиск лиц каскадом Хаара, результат в пикселях (x, y, w, h)"""

    def __init__(
        self,
        min_size_px: int = 24,
        max_faces: int = 32,
        scale_factor: float = 1.1,
        min_neighbors: int = 5
    ):
        self.min_size_px = min_size_px
        self.max_faces = max_faces
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.cascade: Optional[cv2.CascadeClassifier] = None
        self._lock = threading.Lock()

    def load(self) -> None:
        self.cascade = load_cascade(FACE_CASCADE)

    def find(self, gray: np.ndarray) -> List[Tuple[Tuple[int, int, int, int], float]]:
        """
        Returns:
            Список (прямоугольник, уверенность) в порядке детектора
        """
        if self.cascade is None:
            raise ProviderError("Face cascade not loaded")

        equalized = cv2.equalizeHist(gray)
        with self._lock:
            faces, _, weights = self.cascade.detectMultiScale3(
                equalized,
                scaleFactor=self.scale_factor,
                minNeighbors=self.min_neighbors,
                minSize=(self.min_size_px, self.min_size_px),
                outputRejectLevels=True
            )

        faces = np.asarray(faces).reshape(-1, 4)
        weights = np.asarray(weights, dtype=np.float64).reshape(-1)

        found = []
        for index, (x, y, w, h) in enumerate(faces[:self.max_faces]):
            weight = weights[index] if index < len(weights) else 0.0
            # levelWeights не ограничены - сжимаем сигмоидой в (0, 1)
            confidence = 1.0 / (1.0 + math.exp(-float(weight)))
            found.append(((int(x), int(y), int(w), int(h)), confidence))

        return found


class FaceDetectionProvider(BaseDetectionProvider):
    """
    Лица с опорными точками глаз и углом наклона (roll)
    """

    kind = ProviderKind.FACES

    def __init__(self, min_size_px: int = 24, max_faces: int = 32):
        self.detector = HaarFaceDetector(min_size_px=min_size_px, max_faces=max_faces)
        self.eye_cascade: Optional[cv2.CascadeClassifier] = None
        self._eye_lock = threading.Lock()

    def initialize(self) -> None:
        self.detector.load()
        self.eye_cascade = load_cascade(EYE_CASCADE)
        logger.info(
            "Face detection provider initialized",
            min_size_px=self.detector.min_size_px,
            max_faces=self.detector.max_faces
        )

    def is_available(self) -> bool:
        return self.detector.cascade is not None and self.eye_cascade is not None

    def detect(self, image: DecodedImage) -> List[FaceObservation]:
        gray = as_gray(image)
        observations = []

        for (x, y, w, h), confidence in self.detector.find(gray):
            landmarks, roll = self._locate_eyes(gray, x, y, w, h, image)
            observations.append(
                FaceObservation(
                    bounding_box=normalize_rect(x, y, w, h, image.width, image.height),
                    confidence=clamp_unit(confidence),
                    landmarks=landmarks,
                    roll=roll
                )
            )

        logger.debug("Faces detected", faces_count=len(observations))
        return observations

    def _locate_eyes(
        self,
        gray: np.ndarray,
        x: int,
        y: int,
        w: int,
        h: int,
        image: DecodedImage
    ) -> Tuple[Optional[FaceLandmarks], Optional[float]]:
        """Глаза ищутся в верхней половине лица; roll - только при двух глазах"""
        if self.eye_cascade is None:
            return None, None

        roi = gray[y:y + h // 2, x:x + w]
        min_eye = max(4, w // 10)
        with self._eye_lock:
            eyes = self.eye_cascade.detectMultiScale(
                roi,
                scaleFactor=1.1,
                minNeighbors=5,
                minSize=(min_eye, min_eye)
            )

        eyes = np.asarray(eyes).reshape(-1, 4)
        if len(eyes) < 2:
            return None, None

        # Два самых крупных, слева направо в кадре
        largest = sorted(eyes.tolist(), key=lambda e: e[2] * e[3], reverse=True)[:2]
        left, right = sorted(largest, key=lambda e: e[0])

        def outline(eye):
            ex, ey, ew, eh = eye
            cx, cy = x + ex + ew / 2, y + ey + eh / 2
            return [
                normalize_point(x + ex, cy, image.width, image.height),
                normalize_point(cx, y + ey, image.width, image.height),
                normalize_point(x + ex + ew, cy, image.width, image.height),
                normalize_point(cx, y + ey + eh, image.width, image.height),
            ]

        def pupil(eye):
            ex, ey, ew, eh = eye
            return normalize_point(x + ex + ew / 2, y + ey + eh / 2, image.width, image.height)

        left_pupil, right_pupil = pupil(left), pupil(right)

        # Углы считаются в нормализованной системе (ось Y вверх)
        dx = (right_pupil.x - left_pupil.x) * image.width
        dy = (right_pupil.y - left_pupil.y) * image.height
        roll = round(math.degrees(math.atan2(dy, dx)), 2)

        landmarks = FaceLandmarks(
            left_eye=outline(left),
            right_eye=outline(right),
            left_pupil=left_pupil,
            right_pupil=right_pupil
        )
        return landmarks, roll


class FaceQualityProvider(BaseDetectionProvider):
    """
    Качество снимка каждого лица: резкость (дисперсия лапласиана) -> [0, 1)

    Возвращает список оценок в порядке своего детектора лиц.
    """

    kind = ProviderKind.FACE_QUALITY

    def __init__(self, min_size_px: int = 24, max_faces: int = 32):
        self.detector = HaarFaceDetector(min_size_px=min_size_px, max_faces=max_faces)

    def initialize(self) -> None:
        self.detector.load()

    def is_available(self) -> bool:
        return self.detector.cascade is not None

    def detect(self, image: DecodedImage) -> List[float]:
        gray = as_gray(image)
        scores = []

        for (x, y, w, h), _ in self.detector.find(gray):
            roi = gray[y:y + h, x:x + w]
            sharpness = float(cv2.Laplacian(roi, cv2.CV_64F).var())
            scores.append(round(sharpness / (sharpness + QUALITY_HALF_POINT), 4))

        return scores
