from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# counters
analysis_requests_total = Counter(
    "vision_analysis_requests_total",
    "total number of analysis requests",
    ["status"],
)

provider_failures_total = Counter(
    "vision_provider_failures_total",
    "total number of detection provider failures",
    ["provider"],
)

# histograms
analysis_duration_seconds = Histogram(
    "vision_analysis_duration_seconds",
    "full analysis duration in seconds",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

provider_duration_seconds = Histogram(
    "vision_provider_duration_seconds",
    "single provider duration in seconds",
    ["provider"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

image_size_bytes = Histogram(
    "vision_image_size_bytes",
    "processed image size in bytes",
    buckets=[1024, 10240, 102400, 1048576, 5242880, 10485760, 20971520],
)

# gauges
active_analyses = Gauge(
    "vision_active_analyses", "number of currently running analyses"
)


def metrics_endpoint() -> Response:
    """prometheus metrics endpoint"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_request(status: str) -> None:
    """record analysis request"""
    analysis_requests_total.labels(status=status).inc()


def record_provider_failure(provider: str) -> None:
    """record provider failure"""
    provider_failures_total.labels(provider=provider).inc()


def record_provider_duration(provider: str, duration: float) -> None:
    """record provider duration"""
    provider_duration_seconds.labels(provider=provider).observe(duration)


def record_duration(duration: float) -> None:
    """record analysis duration"""
    analysis_duration_seconds.observe(duration)


def record_image_size(size: int) -> None:
    """record image size"""
    image_size_bytes.observe(size)
