"""
Enums для типобезопасности
"""
from enum import Enum


class ProviderKind(str, Enum):
    """Виды детекторов (провайдеров анализа)"""
    TEXT = "text"
    FACES = "faces"
    FACE_QUALITY = "face_quality"  # Парный к FACES, сливается по индексу
    BARCODES = "barcodes"
    CLASSIFICATION = "classification"
    BODY_POSE = "body_pose"
    HAND_POSE = "hand_pose"
    SALIENCY = "saliency"
    RECTANGLES = "rectangles"
    HUMAN_RECTANGLES = "human_rectangles"
    HORIZON = "horizon"
    CONTOURS = "contours"
    FEATURE_PRINT = "feature_print"


class ProviderStatus(str, Enum):
    """Итог запуска провайдера"""
    OK = "ok"  # Отработал (результат может быть пустым)
    FAILED = "failed"  # Упал, секция ответа отсутствует
    NOT_RUN = "not_run"  # Выключен или недоступен


class TextEngine(str, Enum):
    """OCR движки"""
    PADDLEOCR = "paddleocr"
    EASYOCR = "easyocr"


class ImageFormat(str, Enum):
    """Форматы изображений (по сигнатуре файла)"""
    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    HEIC = "HEIC"
    HEIF = "HEIF"
    BMP = "BMP"
    TIFF = "TIFF"
    WEBP = "WEBP"
    UNKNOWN = "unknown"
