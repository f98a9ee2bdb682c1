# app/main.py
"""
FastAPI application for the expense tracker.

Wires the component graph once per process and maps core exceptions to
HTTP status codes:

    ValidationError, malformed request  -> 400
    ForbiddenError                      -> 403
    NotFoundError                       -> 404
    DuplicateError                      -> 409
    StorageError, RegistrationError     -> 500

Error bodies always carry a "message" key, like every success body.
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.routes import router
from expense_tracker import __version__
from expense_tracker.audit import configure_logging
from expense_tracker.config import get_settings
from expense_tracker.exceptions import (
    ForbiddenError,
    RegistrationError,
    ValidationError,
)
from expense_tracker.orchestrator import AppComponents, create_app_components
from expense_tracker.services.storage import (
    DuplicateError,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# -------------------------------------------------------------------
# Exception handlers
# -------------------------------------------------------------------

async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "message": str(exc),
            "issues": [issue.model_dump() for issue in exc.issues],
        },
    )


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "issue_type": err["type"],
            "message": err["msg"],
            "severity": "error",
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "issues": issues},
    )


async def _forbidden(request: Request, exc: ForbiddenError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"message": str(exc)})


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": str(exc)})


async def _duplicate(request: Request, exc: DuplicateError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"message": str(exc)})


async def _storage_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(status_code=500, content={"message": "Database error"})


# -------------------------------------------------------------------
# App factory
# -------------------------------------------------------------------

def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        components: Pre-wired components (tests). When omitted they are
            created from settings at startup.
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "components", None) is None:
            app.state.components = create_app_components()
        yield

    app = FastAPI(
        title="Expense Tracker",
        version=__version__,
        debug=settings.app.debug_mode,
        lifespan=lifespan,
    )
    app.state.components = components

    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ForbiddenError, _forbidden)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(DuplicateError, _duplicate)
    app.add_exception_handler(StorageError, _storage_error)
    app.add_exception_handler(RegistrationError, _storage_error)

    app.include_router(router)

    @app.get("/health")
    def health():
        """Simple health check."""
        current = app.state.components
        return {
            "status": "ok",
            "storage": current.backend if current is not None else None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
