"""duEuler Foundation – FastAPI web application.

Serves the capacity configuration consumed by the dashboard and exposes the
project compatibility scanner and migrator over HTTP.
"""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from du_foundation import __version__
from du_foundation.routes import router as foundation_router

app = FastAPI(
    title="du-foundation API",
    version=__version__,
    description=(
        "REST API for the duEuler Foundation. "
        "Provides endpoints to read and change the capacity tier of a "
        "deployment, and to scan and migrate a project for Foundation "
        "compatibility."
    ),
    license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(foundation_router)


# ---------------------------------------------------------------------------
# Colored logging (reuse uvicorn's formatter)
# ---------------------------------------------------------------------------


def _setup_logging(level: int = logging.WARNING) -> None:
    """Configure the root ``du_foundation`` logger with uvicorn-style colours."""
    from uvicorn.logging import DefaultFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(
        DefaultFormatter(fmt="%(levelprefix)s %(name)s - %(message)s", use_colors=True)
    )
    app_logger = logging.getLogger("du_foundation")
    app_logger.handlers = [handler]
    app_logger.setLevel(level)
    app_logger.propagate = False


_setup_logging()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["System"], summary="Health check")
async def health() -> JSONResponse:
    return JSONResponse(
        {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": __version__,
        }
    )
