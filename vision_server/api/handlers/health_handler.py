"""
Health check handlers
"""
from fastapi import APIRouter, Depends, HTTPException, status

from vision_server.api.dependencies import get_analysis_service
from vision_server.config import get_settings
from vision_server.models.responses import HealthResponse
from vision_server.observability.metrics import metrics_endpoint
from vision_server.services.analysis_service import AnalysisService

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
async def health_check(
    analysis_service: AnalysisService = Depends(get_analysis_service)
) -> HealthResponse:
    """
    Базовый health check
    Сервис запущен; доступность каждого детектора
    """
    settings = get_settings()

    return HealthResponse(
        status="ok",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        providers=analysis_service.provider_availability()
    )


@router.get("/health/ready", response_model=HealthResponse, response_model_by_alias=True)
async def readiness_check(
    analysis_service: AnalysisService = Depends(get_analysis_service)
) -> HealthResponse:
    """
    Readiness check для Kubernetes
    Готов, если доступен хотя бы один детектор
    """
    settings = get_settings()

    return HealthResponse(
        status="ready" if analysis_service.is_ready() else "not_ready",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        providers=analysis_service.provider_availability()
    )


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """prometheus metrics"""
    if not get_settings().ENABLE_METRICS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Metrics disabled")
    return metrics_endpoint()
