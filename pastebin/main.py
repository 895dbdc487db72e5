"""
Pastebin Lite - Main FastAPI application.
"""
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pastebin.config import Settings, settings as default_settings
from pastebin.database import PasteStorage, create_storage
from pastebin.exceptions import (
    InvalidInputError,
    MalformedRequestBodyError,
    PasteNotFoundError,
    StorageUnavailableError,
)
from pastebin.models import limit_error_message
from pastebin.routes import health, pastes
from pastebin.service import PasteService

# Configure logging
logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

NOT_FOUND_MESSAGE = "Paste not found"
INTERNAL_ERROR_MESSAGE = "Internal server error"

FIELD_ERRORS = {
    "content": "content is required and must be a non-empty string",
    "ttl_seconds": limit_error_message("ttl_seconds"),
    "max_views": limit_error_message("max_views"),
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _invalid_input_from_validation(exc: RequestValidationError) -> InvalidInputError:
    """Name the first offending field, or report the body as malformed."""
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            return MalformedRequestBodyError("Invalid JSON in request body")
        for part in error.get("loc", ()):
            if part in FIELD_ERRORS:
                return InvalidInputError(FIELD_ERRORS[part])
    return MalformedRequestBodyError("Request body must be a JSON object")


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to {"error": ...} responses without leaking internals."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return await invalid_input_handler(request, _invalid_input_from_validation(exc))

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        logger.info(f"Rejected {request.method} {request.url.path}: {exc}")
        return _error(400, str(exc))

    @app.exception_handler(PasteNotFoundError)
    async def not_found_handler(request: Request, exc: PasteNotFoundError):
        return _error(404, NOT_FOUND_MESSAGE)

    @app.exception_handler(StorageUnavailableError)
    async def storage_error_handler(request: Request, exc: StorageUnavailableError):
        logger.error(f"Storage unavailable during {request.method} {request.url.path}: {exc}")
        return _error(500, INTERNAL_ERROR_MESSAGE)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unexpected error during {request.method} {request.url.path}")
        return _error(500, INTERNAL_ERROR_MESSAGE)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[PasteStorage] = None,
) -> FastAPI:
    """
    Build the application.

    The storage backend is chosen once here and shared by every request
    through ``app.state``.

    Args:
        settings: Configuration, defaults to the environment
        storage: Storage backend, defaults to the one the settings select
    """
    settings = settings or default_settings
    storage = storage or create_storage(settings)

    app = FastAPI(
        title="Pastebin Lite",
        description="A lightweight Pastebin-like application for sharing text",
        version="1.0.0",
        debug=settings.DEBUG,
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.service = PasteService(storage)

    # Add CORS middleware (optional, for cross-origin requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include route modules
    app.include_router(health.router)
    app.include_router(pastes.router)

    @app.on_event("startup")
    async def startup_event():
        """Startup event handler."""
        logger.info("Pastebin Lite application starting...")
        try:
            storage.initialize()
        except StorageUnavailableError as e:
            # Requests retry initialization lazily; /healthz reports 503 meanwhile
            logger.error(f"DATABASE: {storage.backend_name} storage not reachable at startup: {e}")
            return
        logger.info(f"DATABASE: Using {storage.backend_name} storage")
        if settings.TEST_MODE:
            logger.warning("TEST_MODE enabled: x-test-now-ms header overrides the clock")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Shutdown event handler."""
        logger.info("Pastebin Lite application shutting down...")
        storage.close()

    @app.get("/", response_class=FileResponse, include_in_schema=False)
    async def root():
        """Serve the create paste HTML page."""
        return FileResponse(TEMPLATES_DIR / "create.html", media_type="text/html")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pastebin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG,
    )
