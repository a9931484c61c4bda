"""FastAPI presentation layer for the weather pipeline."""

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import Counter, Histogram, generate_latest
from slowapi.errors import RateLimitExceeded

from wundercast.core.config import settings
from wundercast.core.logging import configure_logging, get_logger
from wundercast.middleware.rate_limit import TRIGGER_RATE_LIMIT, limiter, rate_limit_exceeded_handler
from wundercast.models.weather import (
    CitySearchRequest,
    Coordinate,
    ErrorResponse,
    GeoPosition,
    HealthResponse,
    TriggerResponse,
    WeatherState,
)
from wundercast.services.cache import cache
from wundercast.services.coordinator import WeatherQueryCoordinator
from wundercast.services.location import ReportedLocationProvider
from wundercast.services.weather import WeatherClient

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Prometheus metrics
REQUEST_COUNT = Counter(
    "wundercast_requests_total",
    "Total number of requests",
    ["method", "endpoint", "status"],
)
REQUEST_DURATION = Histogram(
    "wundercast_request_duration_seconds",
    "Request duration in seconds",
    ["method", "endpoint"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    logger.info("application_starting", version=settings.app_version)

    if settings.cache_enabled:
        try:
            await cache.connect()
        except Exception as e:
            logger.error("startup_failed", error=str(e))
            raise
    else:
        logger.info("cache_disabled_in_config")

    weather_client = WeatherClient()
    location_provider = ReportedLocationProvider()
    app.state.location_provider = location_provider
    app.state.coordinator = WeatherQueryCoordinator(weather_client, location_provider)
    logger.info("application_started")

    yield

    logger.info("application_shutting_down")
    await app.state.coordinator.close()
    await weather_client.close()
    await cache.disconnect()
    logger.info("application_stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Current weather by GPS fix, city search or map position",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    """Add correlation ID to each request for tracing."""
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id

    return response


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Track request metrics."""
    method = request.method
    path = request.url.path

    with REQUEST_DURATION.labels(method=method, endpoint=path).time():
        response = await call_next(request)

    REQUEST_COUNT.labels(method=method, endpoint=path, status=response.status_code).inc()

    return response


def get_coordinator(request: Request) -> WeatherQueryCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Weather pipeline not started")
    return coordinator


def trigger_response(coordinator: WeatherQueryCoordinator, accepted: bool) -> TriggerResponse:
    return TriggerResponse(accepted=accepted, busy=coordinator.busy.value)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Overall health including the Redis connection."""
    redis_connected = await cache.is_connected()

    logger.info("health_check", redis_connected=redis_connected)

    return HealthResponse(
        status="healthy" if redis_connected or not settings.cache_enabled else "degraded",
        version=settings.app_version,
        redis_connected=redis_connected,
    )


@app.get("/health/live", tags=["Health"], status_code=200)
async def liveness():
    """Liveness probe."""
    return {"status": "alive"}


@app.get(
    "/health/ready",
    response_model=HealthResponse,
    tags=["Health"],
    responses={503: {"description": "Service is not ready"}},
)
async def readiness(request: Request):
    """Readiness probe.

    Ready once the weather pipeline exists and, when caching is enabled,
    Redis answers.

    Raises:
        HTTPException: 503 if service is not ready
    """
    get_coordinator(request)
    redis_connected = await cache.is_connected()

    if settings.cache_enabled and not redis_connected:
        logger.warning("readiness_check_failed", redis_connected=False)
        raise HTTPException(
            status_code=503,
            detail="Service not ready: Redis not connected",
        )

    return HealthResponse(
        status="ready",
        version=settings.app_version,
        redis_connected=redis_connected,
    )


@app.get("/state", response_model=WeatherState, tags=["Weather"])
async def get_state(request: Request):
    """Current weather record and busy flag."""
    coordinator = get_coordinator(request)
    record = coordinator.result.value

    return WeatherState(
        record=record,
        temperature_text=record.temperature_text,
        humidity_text=record.humidity_text,
        busy=coordinator.busy.value,
    )


@app.post(
    "/geolocation",
    response_model=TriggerResponse,
    status_code=202,
    summary="Weather at the device location",
    tags=["Weather"],
)
@limiter.limit(TRIGGER_RATE_LIMIT)
async def request_geolocation(request: Request):
    """Start location updates; the next accurate fix posted to /location is looked up."""
    coordinator = get_coordinator(request)
    accepted = coordinator.request_geolocation()
    return trigger_response(coordinator, accepted)


@app.post(
    "/search",
    response_model=TriggerResponse,
    status_code=202,
    summary="Weather for a city",
    tags=["Weather"],
    responses={400: {"model": ErrorResponse, "description": "Empty city name"}},
)
@limiter.limit(TRIGGER_RATE_LIMIT)
async def search_city(request: Request, search: CitySearchRequest):
    """Submit a city name typed in the search field.

    Raises:
        HTTPException: 400 if the city name is empty
    """
    coordinator = get_coordinator(request)
    if not coordinator.submit_city(search.city):
        raise HTTPException(status_code=400, detail="City name is required")
    return trigger_response(coordinator, True)


@app.post(
    "/map",
    response_model=TriggerResponse,
    status_code=202,
    summary="Weather at the map center",
    tags=["Weather"],
)
@limiter.limit(TRIGGER_RATE_LIMIT)
async def map_region_changed(request: Request, center: Coordinate):
    """Report a new map center. The first report after startup is not looked up."""
    coordinator = get_coordinator(request)
    accepted = coordinator.map_region_changed(center)
    return trigger_response(coordinator, accepted)


@app.post(
    "/location",
    status_code=202,
    summary="Device location fix",
    tags=["Location"],
    responses={409: {"model": ErrorResponse, "description": "Location updates are not running"}},
)
async def report_location(request: Request, position: GeoPosition):
    """Feed a device fix into the location provider.

    Raises:
        HTTPException: 409 if no geolocation request is waiting for a fix
    """
    get_coordinator(request)
    provider: ReportedLocationProvider = request.app.state.location_provider

    if not provider.report(position):
        raise HTTPException(status_code=409, detail="Location updates are not running")

    return {"accepted": True}


@app.get("/metrics", response_class=PlainTextResponse, tags=["Monitoring"])
async def metrics():
    """Prometheus metrics endpoint."""
    return generate_latest()


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error("unhandled_exception", error=str(exc), path=request.url.path)

    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wundercast.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
