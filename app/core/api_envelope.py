"""Response envelope, request ids and error mapping for the HTTP surface.

Success:  {"ok": true, "data": ..., "metadata": {"request_id": ...}}
Failure:  {"ok": false, "error": {"code": ..., "message": ...}, "metadata": {"request_id": ...}}
"""

import uuid
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

ERROR_STATUS_CODES: dict[str, int] = {
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "APP_NOT_FOUND": 404,
    "SYSTEM_NOT_FOUND": 404,
    "MISSING_PARAMETERS": 400,
}


class ApiError(Exception):
    """Error surfaced to API callers through the failure envelope."""

    def __init__(self, code: str, message: str | None = None, status_code: int | None = None):
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.status_code = status_code or ERROR_STATUS_CODES.get(code, 500)


def get_request_id(request: Request) -> str:
    """Request id assigned by request_id_middleware (generated if missing)."""
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


def success_envelope(data: Any, request_id: str) -> dict[str, Any]:
    return {"ok": True, "data": data, "metadata": {"request_id": request_id}}


def error_envelope(code: str, message: str, request_id: str) -> dict[str, Any]:
    return {
        "ok": False,
        "error": {"code": code, "message": message},
        "metadata": {"request_id": request_id},
    }


async def request_id_middleware(request: Request, call_next):
    """Echo or assign X-Request-Id on every response.

    Exceptions no handler claimed become a 500 INTERNAL_ERROR envelope.
    """
    request_id = get_request_id(request)
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Unhandled error (request_id={request_id}): {e}", exc_info=True)
        response = JSONResponse(
            status_code=500,
            content=error_envelope("INTERNAL_ERROR", "Internal server error", request_id),
        )
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    request_id = get_request_id(request)
    if exc.status_code >= 500:
        logger.error(f"API error {exc.code} (request_id={request_id}): {exc.message}")
    else:
        logger.info(f"API error {exc.code} (request_id={request_id}): {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.code, exc.message, request_id),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    missing = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
    message = f"Invalid or missing parameters: {', '.join(m for m in missing if m)}"
    return JSONResponse(
        status_code=400,
        content=error_envelope("MISSING_PARAMETERS", message, get_request_id(request)),
    )
