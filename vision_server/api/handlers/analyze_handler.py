"""
Analyze handler - основной эндпоинт анализа изображения
"""
import asyncio
import time
import uuid

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from vision_server.api.dependencies import get_analysis_service
from vision_server.config import get_settings
from vision_server.core.exceptions import ImageTooLargeError, ImageValidationError
from vision_server.core.logging import bind_request_context, get_logger
from vision_server.models.responses import AnalysisResponse
from vision_server.observability.metrics import (
    active_analyses,
    record_duration,
    record_image_size,
    record_request,
)
from vision_server.services.analysis_service import AnalysisService
from vision_server.utils.image_utils import validate_image_size

logger = get_logger(__name__)
router = APIRouter(tags=["Analysis"])

MULTIPART_FIELD = "image"


async def read_image_body(request: Request) -> bytes:
    """
    Байты изображения из запроса

    Сырое тело целиком, либо файл из поля multipart "image".
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get(MULTIPART_FIELD)
        if upload is None or isinstance(upload, str):
            raise ImageValidationError(
                f"Multipart request must contain a '{MULTIPART_FIELD}' file field"
            )
        return await upload.read()

    return await request.body()


def error_response(status_code: int, message: str, timestamp: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=AnalysisResponse.failure(message, timestamp).to_json_dict()
    )


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": AnalysisResponse, "description": "Пустое тело или не изображение"},
        413: {"model": AnalysisResponse, "description": "Изображение слишком большое"},
        504: {"model": AnalysisResponse, "description": "Превышено время обработки"},
    },
)
async def analyze_image(
    request: Request,
    analysis_service: AnalysisService = Depends(get_analysis_service)
) -> JSONResponse:
    """
    Проанализировать изображение всеми доступными детекторами

    Тело запроса - байты изображения (JPEG, PNG, HEIC, TIFF, ...) или
    multipart/form-data с файлом в поле "image".

    Returns:
        AnalysisResponse: секции отсутствуют у детекторов, которые не
        запускались или завершились ошибкой

    Raises:
        400: Ошибка входных данных (success=false)
        413: Превышен размер изображения
        504: Превышено время обработки
        500: Внутренняя ошибка сервера
    """
    settings = get_settings()
    clock = analysis_service.clock
    start_time = time.time()

    bind_request_context(request_id=uuid.uuid4().hex)
    active_analyses.inc()

    try:
        body = await read_image_body(request)
        logger.info("Received analyze request", body_size=len(body))

        validate_image_size(body, settings.MAX_IMAGE_SIZE_MB)
        record_image_size(len(body))

        result = await asyncio.wait_for(
            asyncio.to_thread(analysis_service.analyze, body),
            timeout=settings.PROCESSING_TIMEOUT
        )

        if not result.success:
            record_request("invalid_image")
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=result.to_json_dict()
            )

        record_request("success")
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.to_json_dict())

    except ImageTooLargeError as e:
        logger.warning("Image too large", error=e.message, details=e.details)
        record_request("too_large")
        return error_response(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, e.message, clock.timestamp()
        )

    except ImageValidationError as e:
        logger.warning("Image validation failed", error=e.message)
        record_request("invalid_image")
        return error_response(status.HTTP_400_BAD_REQUEST, e.message, clock.timestamp())

    except asyncio.TimeoutError:
        logger.error("Analysis timed out", timeout=settings.PROCESSING_TIMEOUT)
        record_request("timeout")
        return error_response(
            status.HTTP_504_GATEWAY_TIMEOUT,
            f"Processing timeout ({settings.PROCESSING_TIMEOUT}s)",
            clock.timestamp()
        )

    except Exception as e:
        logger.error("Unexpected error", error=str(e), exc_info=True)
        record_request("error")
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            clock.timestamp()
        )

    finally:
        active_analyses.dec()
        record_duration(time.time() - start_time)
