"""Process-wide logging setup and the request logging middleware."""

import logging
import time

from fastapi import FastAPI, Request

from app.core.config import Settings

logger = logging.getLogger("app.access")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_formatter() -> logging.Formatter:
    """Formatter stamping records in UTC, matching the trailing Z."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
    formatter.converter = time.gmtime
    return formatter


def configure_logging(settings: Settings) -> None:
    """Configure the root logger once; safe to call again (basicConfig is a no-op)."""
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL)
    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter())
    logging.basicConfig(level=level, handlers=[handler])
    for noisy in ("httpx", "httpcore", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def register_request_logging(app: FastAPI) -> None:
    """Log method, path, status and duration for every request (never bodies)."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Process-Time"] = f"{elapsed_ms:.1f}ms"
        logger.info(
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(elapsed_ms, 1),
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
