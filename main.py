"""
Application entry point for the course access service.

Design choices:
- Mounts versioned routers using a configurable prefix from core.config Settings.
- Domain errors map to `{"error": "..."}` bodies in one place instead of per-route try/except.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.v1.routes import router as v1_router
from core.config import get_settings
from core.errors import CourseAccessError
from core.logging_config import configure_logging
from middleware import RequestContextMiddleware, create_request_context_config
from services.container import get_container

_settings = get_settings()

# Configure structured logging
configure_logging(_settings.log_level)
logger = logging.getLogger("app")

app = FastAPI(title="Course Access Engine", version="0.1.0")

# Basic CORS (can be restricted via settings in the future)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware, config=create_request_context_config())


@app.exception_handler(CourseAccessError)
async def course_access_error_handler(request: Request, exc: CourseAccessError):
    if exc.status_code >= 500:
        logger.error("request_failed", extra={"path": request.url.path, "error": exc.message})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=422, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", extra={"path": request.url.path, "error_type": type(exc).__name__})
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/")
async def root():
    return {"message": "Server running"}


@app.get("/health")
async def health():
    return {"status": "ok", "environment": _settings.environment}


# Mount versioned API routers
app.include_router(v1_router, prefix=_settings.api_v1_prefix)


@app.on_event("startup")
async def startup_event():
    """Seed the default course settings so a fresh store renders a catalog."""
    startup_logger = logging.getLogger("startup")
    startup_logger.info("Starting application initialization...")
    try:
        created = await get_container().course_settings.seed_default_course_settings()
        startup_logger.info("course_settings_seeded", extra={"count": len(created)})
    except CourseAccessError as e:
        # Don't fail startup, just log the error
        startup_logger.error("course_settings_seed_failed", extra={"error": e.message})
