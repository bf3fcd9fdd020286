"""
Конфигурация приложения через Pydantic Settings
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from vision_server.core.enums import ProviderKind, TextEngine


class Settings(BaseSettings):
    """Настройки приложения из переменных окружения"""

    # Application Settings
    APP_NAME: str = "vision-server"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Analysis Settings
    MAX_IMAGE_SIZE_MB: int = 20
    PROCESSING_TIMEOUT: float = 60.0
    ANALYSIS_WORKERS: int = 4
    ENABLED_PROVIDERS: str = ",".join(kind.value for kind in ProviderKind)

    # Text Recognition Settings
    TEXT_ENGINE: TextEngine = TextEngine.PADDLEOCR
    TEXT_LANGUAGES: str = "en"
    OCR_USE_GPU: bool = False

    # Face Settings
    FACE_MIN_SIZE_PX: int = 24
    MAX_FACES: int = 32

    # Barcode Settings
    BARCODE_MAX_RESULTS: int = 16

    # Shape Settings
    RECTANGLE_MIN_ASPECT_RATIO: float = 0.2
    RECTANGLE_MIN_SIZE: float = 0.05
    RECTANGLE_MAX_RESULTS: int = 8
    CONTOUR_CONTRAST: float = 1.5

    # Model Settings (cv2.dnn)
    CLASSIFIER_MODEL_PATH: Optional[str] = None
    CLASSIFIER_LABELS_PATH: Optional[str] = None
    POSE_MODEL_PATH: Optional[str] = None
    POSE_CONFIG_PATH: Optional[str] = None
    HAND_POSE_MODEL_PATH: Optional[str] = None
    HAND_POSE_CONFIG_PATH: Optional[str] = None

    # Metrics
    ENABLE_METRICS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @property
    def allowed_origins_list(self) -> List[str]:
        """Парсинг CORS origins из строки в список"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def text_languages_list(self) -> List[str]:
        """Парсинг языков распознавания текста из строки в список"""
        return [lang.strip() for lang in self.TEXT_LANGUAGES.split(",") if lang.strip()]

    @property
    def enabled_providers_list(self) -> List[ProviderKind]:
        """
        Парсинг включённых провайдеров

        Неизвестные имена игнорируются, порядок совпадает с ProviderKind
        """
        requested = {name.strip().lower() for name in self.ENABLED_PROVIDERS.split(",")}
        return [kind for kind in ProviderKind if kind.value in requested]

    @property
    def max_image_size_bytes(self) -> int:
        return self.MAX_IMAGE_SIZE_MB * 1024 * 1024


# Singleton instance
_settings: Settings = None


def get_settings() -> Settings:
    """Получить настройки (singleton)"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
