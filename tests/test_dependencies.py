from unittest.mock import patch

from vision_server.api.dependencies import build_provider, create_providers
from vision_server.config import Settings
from vision_server.core.enums import ProviderKind, TextEngine
from vision_server.core.exceptions import ConfigurationError
from vision_server.infrastructure.providers.easyocr_provider import EasyOCRTextProvider
from vision_server.infrastructure.providers.paddleocr_provider import PaddleOCRTextProvider
from vision_server.infrastructure.providers.pose_provider import HandPoseProvider


def test_enabled_providers_parsed_in_kind_order():
    settings = Settings(ENABLED_PROVIDERS="contours, TEXT, unknown,horizon")

    assert settings.enabled_providers_list == [
        ProviderKind.TEXT,
        ProviderKind.HORIZON,
        ProviderKind.CONTOURS,
    ]


def test_text_engine_selection():
    paddle = build_provider(ProviderKind.TEXT, Settings(TEXT_LANGUAGES="ru,en"))
    easy = build_provider(
        ProviderKind.TEXT,
        Settings(TEXT_ENGINE=TextEngine.EASYOCR, TEXT_LANGUAGES="ru,en"),
    )

    assert isinstance(paddle, PaddleOCRTextProvider)
    assert paddle.lang == "ru"
    assert isinstance(easy, EasyOCRTextProvider)
    assert easy.languages == ["ru", "en"]


def test_model_providers_need_paths():
    settings = Settings()

    assert build_provider(ProviderKind.CLASSIFICATION, settings) is None
    assert build_provider(ProviderKind.BODY_POSE, settings) is None
    assert build_provider(ProviderKind.HAND_POSE, settings) is None

    hand = build_provider(ProviderKind.HAND_POSE, Settings(HAND_POSE_MODEL_PATH="hand.caffemodel"))
    assert isinstance(hand, HandPoseProvider)
    assert hand.model_path == "hand.caffemodel"


def test_create_providers_only_enabled():
    providers = create_providers(Settings(ENABLED_PROVIDERS="horizon,contours,feature_print"))

    assert [p.kind for p in providers] == [
        ProviderKind.HORIZON,
        ProviderKind.CONTOURS,
        ProviderKind.FEATURE_PRINT,
    ]


def test_create_providers_skips_unavailable():
    with patch.object(
        PaddleOCRTextProvider,
        "initialize",
        side_effect=ConfigurationError("paddleocr is not installed"),
    ):
        providers = create_providers(Settings(ENABLED_PROVIDERS="text,horizon"))

    assert [p.kind for p in providers] == [ProviderKind.HORIZON]
