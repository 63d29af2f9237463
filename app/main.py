"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router as api_router
from app.core.api_envelope import (
    ApiError,
    api_error_handler,
    request_id_middleware,
    validation_error_handler,
)

app = FastAPI(
    title="Integration Fit Engine",
    description="App/system compatibility scoring and tenant integration graph service",
    version="0.1.0",
)

app.middleware("http")(request_id_middleware)
app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
