import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import settings
from .application.ports.payment_gateway import PaymentGatewayError

logger = logging.getLogger(__name__)


def create_error_response(message: str) -> Dict[str, Any]:
    """Create a standardized error response"""
    return {
        "success": False,
        "message": message,
    }


def create_success_response(message: str = None, **payload: Any) -> Dict[str, Any]:
    """Create a standardized success response"""
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    body.update(payload)
    return body


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    missing = [e for e in errors if e.get("type") == "missing"]
    if missing:
        message = "All fields are required"
    elif errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "request"
        message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=create_error_response(message))


async def payment_gateway_exception_handler(request: Request, exc: PaymentGatewayError) -> JSONResponse:
    logger.error(f"Payment gateway error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content=create_error_response("Payment provider error"))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    message = f"Internal server error: {exc}" if settings.DEBUG else "Internal server error"
    return JSONResponse(status_code=500, content=create_error_response(message))
