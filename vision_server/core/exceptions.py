"""
Кастомные исключения для Vision сервиса
"""


class VisionServerException(Exception):
    """Базовое исключение для Vision сервиса"""
    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ImageValidationError(VisionServerException):
    """Ошибка входных данных: пустое тело, слишком большой файл, не декодируется"""
    pass


class ImageTooLargeError(ImageValidationError):
    """Размер изображения превышает лимит"""
    pass


class ProviderError(VisionServerException):
    """Ошибка отдельного детектора (не фатальна для запроса)"""
    pass


class ConfigurationError(VisionServerException):
    """Ошибка конфигурации"""
    pass
