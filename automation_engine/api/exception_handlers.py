"""Custom exception handlers for FastAPI application"""

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from typing import Union

from automation_engine.api.middleware import cors_headers
from automation_engine.core.exceptions import (
    AutomationConfigError,
    AutomationQueryError,
    InvocationAuthorizationError,
)
from automation_engine.core.logging_config import get_logger


logger = get_logger(__name__)


async def invocation_authorization_exception_handler(
    request: Request,
    exc: InvocationAuthorizationError
) -> JSONResponse:
    """
    Handle InvocationAuthorizationError exceptions.

    Nothing has been processed when this is raised; the caller only learns
    that it was rejected.
    """
    logger.warning(
        "invocation_unauthorized",
        request_path=request.url.path,
        request_method=request.method,
        **exc.to_dict()
    )

    return JSONResponse(
        status_code=401,
        content=exc.get_api_response(),
        headers={"WWW-Authenticate": "Bearer", **cors_headers()}
    )


async def automation_query_exception_handler(
    request: Request,
    exc: AutomationQueryError
) -> JSONResponse:
    """
    Handle AutomationQueryError exceptions.

    Batch-level failure: automations could not be selected, no run was created.
    """
    logger.error(
        "automation_query_error_handled",
        request_path=request.url.path,
        request_method=request.method,
        **exc.to_dict()
    )

    return JSONResponse(
        status_code=500,
        content=exc.get_api_response(),
        headers=cors_headers()
    )


async def automation_config_exception_handler(
    request: Request,
    exc: AutomationConfigError
) -> JSONResponse:
    """Handle an unusable trigger configuration submitted by a client"""
    logger.warning(
        "automation_config_error_handled",
        request_path=request.url.path,
        **exc.to_dict()
    )

    return JSONResponse(
        status_code=422,
        content={
            "detail": exc.message,
            "type": "automation_config_error",
            "field": exc.field,
            "timestamp": exc.timestamp.isoformat()
        }
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Provides detailed error information for validation failures.
    """
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        "validation_error_handled",
        request_path=request.url.path,
        request_method=request.method,
        errors=errors
    )

    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "type": "validation_error",
            "errors": errors
        }
    )


def register_exception_handlers(app):
    """
    Register all custom exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(InvocationAuthorizationError, invocation_authorization_exception_handler)
    app.add_exception_handler(AutomationQueryError, automation_query_exception_handler)
    app.add_exception_handler(AutomationConfigError, automation_config_exception_handler)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)

    logger.info(
        "exception_handlers_registered",
        handlers=[
            "InvocationAuthorizationError",
            "AutomationQueryError",
            "AutomationConfigError",
            "RequestValidationError",
            "ValidationError",
        ]
    )
