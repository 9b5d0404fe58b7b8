from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from authz import __version__
from authz.api.v1 import api_router
from authz.core.config import get_settings
from authz.core.exceptions import APIException
from authz.core.logging import app_logger
from authz.schemas.common import ErrorDetail, ErrorResponse

settings = get_settings()

app = FastAPI(
    title="Authorization & Module Provisioning API",
    version=__version__,
    description="Multi-tenant permissions, roles and module provisioning",
    docs_url="/docs",
    openapi_url="/openapi.json",
)

# CORS configuration
origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: dict) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(**error))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Render APIException in the standard error envelope."""
    return _error_response(exc.status_code, exc.detail["error"])


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation errors as VALIDATION_ERROR (400), grouped by field."""
    details: dict[str, list[str]] = {}
    for error in exc.errors():
        # ["body", "permissions", 0, "permission_key"] -> "permissions.0.permission_key"
        field_path = error["loc"][1:] if len(error["loc"]) > 1 else error["loc"]
        field_name = ".".join(str(part) for part in field_path)
        details.setdefault(field_name, []).append(error["msg"])

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        {"code": "VALIDATION_ERROR", "message": "Validation failed", "details": details},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Render unexpected persistence failures as INTERNAL_ERROR (500)."""
    app_logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"code": "INTERNAL_ERROR", "message": "Internal server error", "details": None},
    )


@app.get("/healthz", tags=["system"])
def healthz():
    """Health check endpoint."""
    return {
        "status": "ok",
        "env": settings.ENV,
        "debug": settings.DEBUG,
    }


# Include API routers
app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "authz.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
