"""API Middleware for request processing"""

import time
import re
from typing import Callable
from uuid import uuid4
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from automation_engine.core.config import settings
from automation_engine.core.logging_config import get_logger
from automation_engine.core.monitoring import MetricsCollector


# Configure structured logging
logger = get_logger(__name__)


def cors_headers(preflight: bool = False) -> dict:
    """
    CORS headers for invocation responses.

    Browser preflights carrying an Origin are answered by CORSMiddleware;
    these cover callers that hit the endpoints directly.
    """
    headers = {"Access-Control-Allow-Origin": ", ".join(settings.CORS_ORIGINS)}
    if preflight:
        headers["Access-Control-Allow-Methods"] = ", ".join(settings.CORS_ALLOW_METHODS)
        headers["Access-Control-Allow-Headers"] = ", ".join(settings.CORS_ALLOW_HEADERS)
    return headers


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add unique request ID to each request.

    Generates a UUID for each request and adds it to:
    - Request state (accessible in route handlers)
    - Response headers (X-Request-ID)
    - Log context
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and add request ID"""
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all requests and responses with correlation IDs.

    Logs structured information including:
    - Request ID (correlation ID)
    - HTTP method and path
    - Request/response timing
    - Status code
    """

    # Patterns for sensitive data redaction
    SENSITIVE_PATTERNS = [
        (re.compile(r'"password"\s*:\s*"[^"]*"'), '"password": "[REDACTED]"'),
        (re.compile(r'"token"\s*:\s*"[^"]*"'), '"token": "[REDACTED]"'),
        (re.compile(r'"secret"\s*:\s*"[^"]*"'), '"secret": "[REDACTED]"'),
        (re.compile(r'"authorization"\s*:\s*"[^"]*"', re.IGNORECASE), '"authorization": "[REDACTED]"'),
        (re.compile(r'Bearer\s+[A-Za-z0-9\-._~+/]+=*', re.IGNORECASE), 'Bearer [REDACTED]'),
    ]

    # Paths to exclude from detailed logging (health checks, metrics, etc.)
    EXCLUDED_PATHS = {
        "/health",
        "/metrics",
        "/favicon.ico",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details"""
        request_id = getattr(request.state, "request_id", "unknown")

        skip_detailed_logging = (
            request.url.path in self.EXCLUDED_PATHS and
            not settings.LOG_HEALTH_CHECKS
        )

        start_time = time.time()

        if not skip_detailed_logging or settings.DEBUG:
            logger.info(
                "request_started",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                client_host=request.client.host if request.client else None,
            )

        try:
            response = await call_next(request)
        except Exception as e:
            response_time = time.time() - start_time
            logger.error(
                "request_failed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                error_message=self._redact_sensitive_data(str(e)),
                response_time_ms=int(response_time * 1000),
                exc_info=True
            )
            # Re-raise to be handled by error handler
            raise

        response_time = time.time() - start_time
        MetricsCollector.record_http_request(
            request.method, request.url.path, response.status_code, response_time
        )

        if not skip_detailed_logging or settings.DEBUG or response.status_code >= 400:
            logger.info(
                "request_completed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                response_time_ms=int(response_time * 1000),
            )

        return response

    @classmethod
    def _redact_sensitive_data(cls, text: str) -> str:
        """Replace tokens, passwords and secrets with [REDACTED]"""
        for pattern, replacement in cls.SENSITIVE_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches all unhandled exceptions and formats them into the invocation
    surface's error body, {"error": message}.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle errors"""
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", "unknown")

            logger.error(
                "unhandled_exception",
                request_id=request_id,
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True
            )

            return JSONResponse(
                status_code=500,
                content={"error": str(e) or "Unknown error", "request_id": request_id}
            )
