import logging
import shutil
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clipstitch.api import extract, render
from clipstitch.config import get_settings
from clipstitch.constants.error_codes import get_error_spec
from clipstitch.exceptions import ClipstitchError, InternalError
from clipstitch.schemas.envelope import ErrorInfo, ErrorResponse

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    if settings.require_ffmpeg and shutil.which(settings.ffmpeg_path) is None:
        raise RuntimeError(f"ffmpeg executable not found: {settings.ffmpeg_path}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set - /extract endpoint will fail")
    logger.info(f"{settings.app_name} v{settings.app_version} starting")
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(info: ErrorInfo, status_code: int) -> JSONResponse:
    body = ErrorResponse.from_error_info(info)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(by_alias=True, exclude_none=True)),
    )


def _clip_index_from_loc(loc: tuple) -> int | None:
    """("body", "clips", 2, "trimStart") -> 2"""
    parts = [part for part in loc if part != "body"]
    if len(parts) >= 2 and parts[0] == "clips" and isinstance(parts[1], int):
        return parts[1]
    return None


@app.exception_handler(ClipstitchError)
async def clipstitch_exception_handler(request: Request, exc: ClipstitchError) -> JSONResponse:
    return _error_response(exc.to_error_info(), exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body validation failures are client errors (400)."""
    spec = get_error_spec("VALIDATION_ERROR")

    # Build a human-readable message from the first validation error
    errors = exc.errors()
    clip_index = None
    if errors:
        first_error = errors[0]
        loc = tuple(first_error.get("loc", ()))
        clip_index = _clip_index_from_loc(loc)
        loc_text = " -> ".join(str(x) for x in loc if x != "body")
        msg = first_error.get("msg", "Validation error")
        message = f"{loc_text}: {msg}" if loc_text else msg
    else:
        message = "Request validation failed"

    error = ErrorInfo(
        code="VALIDATION_ERROR",
        message=message,
        clip_index=clip_index,
        retryable=spec.get("retryable", False),
        suggested_fix=spec.get("suggested_fix"),
    )
    return _error_response(error, 400)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    error = ErrorInfo(code="HTTP_ERROR", message=str(exc.detail))
    return _error_response(error, exc.status_code)


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    error = InternalError()
    return _error_response(error.to_error_info(), error.status_code)


# Routers
app.include_router(render.router, tags=["render"])
app.include_router(extract.router, tags=["extract"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok", "service": settings.service_name, "version": settings.app_version}


def run() -> None:
    import uvicorn

    uvicorn.run("clipstitch.main:app", host=settings.host, port=settings.port)
