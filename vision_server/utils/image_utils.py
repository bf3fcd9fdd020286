"""
Утилиты для работы с изображениями
"""
import io
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
from PIL import Image, ImageOps

from vision_server.core.exceptions import ImageTooLargeError, ImageValidationError
from vision_server.core.enums import ImageFormat

# Режимы PIL -> человекочитаемое цветовое пространство
COLOR_SPACES = {
    "1": "Gray",
    "L": "Gray",
    "LA": "Gray",
    "I": "Gray",
    "I;16": "Gray",
    "F": "Gray",
    "P": "Indexed",
    "PA": "Indexed",
    "RGB": "RGB",
    "RGBA": "RGB",
    "RGBX": "RGB",
    "CMYK": "CMYK",
    "YCbCr": "YCbCr",
    "LAB": "Lab",
    "HSV": "HSV",
}


@dataclass(frozen=True)
class DecodedImage:
    """
    Декодированное изображение, общее для всех провайдеров запроса

    pixels - RGB uint8 массив (H, W, 3) только для чтения.
    """
    pixels: np.ndarray
    width: int
    height: int
    format: ImageFormat
    color_space: Optional[str] = None


def detect_image_format(image_bytes: bytes) -> ImageFormat:
    """
    Определение формата по сигнатуре файла

    Args:
        image_bytes: Байты изображения

    Returns:
        Формат изображения (UNKNOWN если сигнатура не распознана)
    """
    if len(image_bytes) < 12:
        return ImageFormat.UNKNOWN

    header = image_bytes[:12]

    if header[:3] == b"\xff\xd8\xff":
        return ImageFormat.JPEG
    if header[:4] == b"\x89PNG":
        return ImageFormat.PNG
    if header[:3] == b"GIF":
        return ImageFormat.GIF
    if header[4:8] == b"ftyp":
        brand = header[8:12].decode("ascii", errors="ignore")
        if brand in ("heic", "heix", "hevc", "hevx"):
            return ImageFormat.HEIC
        return ImageFormat.HEIF
    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return ImageFormat.WEBP
    if header[:2] == b"BM":
        return ImageFormat.BMP
    if header[:4] in (b"II*\x00", b"MM\x00*"):
        return ImageFormat.TIFF

    return ImageFormat.UNKNOWN


def validate_image_size(image_bytes: bytes, max_size_mb: int = 20) -> None:
    """
    Проверка размера изображения

    Args:
        image_bytes: Байты изображения
        max_size_mb: Максимальный размер в мегабайтах

    Raises:
        ImageValidationError: Если тело пустое
        ImageTooLargeError: Если размер превышен
    """
    if not image_bytes:
        raise ImageValidationError("No request body")

    size_mb = len(image_bytes) / (1024 * 1024)

    if size_mb > max_size_mb:
        raise ImageTooLargeError(
            f"Image size {size_mb:.2f}MB exceeds maximum {max_size_mb}MB",
            details={
                "size_mb": round(size_mb, 2),
                "max_size_mb": max_size_mb
            }
        )


def decode_image(image_bytes: bytes) -> DecodedImage:
    """
    Декодирование байтов в RGB numpy array для детекторов

    Args:
        image_bytes: Байты изображения

    Returns:
        DecodedImage с массивом только для чтения

    Raises:
        ImageValidationError: Если не удалось декодировать
    """
    if not image_bytes:
        raise ImageValidationError("No request body")

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            color_space = COLOR_SPACES.get(img.mode, img.mode)

            # Учитываем ориентацию из EXIF (фото с телефонов)
            img = ImageOps.exif_transpose(img)

            if img.mode != "RGB":
                img = img.convert("RGB")

            pixels = np.array(img, dtype=np.uint8)

    except Exception as e:
        raise ImageValidationError(
            f"Failed to decode image data: {str(e)}",
            details={"error": str(e), "size_bytes": len(image_bytes)}
        )

    if pixels.ndim != 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ImageValidationError(
            "Failed to decode image data: empty image",
            details={"shape": list(pixels.shape)}
        )

    # Буфер общий для всех провайдеров запроса
    pixels.setflags(write=False)

    height, width = pixels.shape[:2]
    return DecodedImage(
        pixels=pixels,
        width=int(width),
        height=int(height),
        format=detect_image_format(image_bytes),
        color_space=color_space
    )


def as_bgr(image: DecodedImage) -> np.ndarray:
    """Копия изображения в BGR (формат OpenCV)"""
    return cv2.cvtColor(np.array(image.pixels, copy=True), cv2.COLOR_RGB2BGR)


def as_gray(image: DecodedImage) -> np.ndarray:
    """Копия изображения в оттенках серого"""
    return cv2.cvtColor(np.array(image.pixels, copy=True), cv2.COLOR_RGB2GRAY)
