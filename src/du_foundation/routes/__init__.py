"""Foundation API routes – thin wrappers over the registry and services."""

import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from du_foundation.capacity import (
    CAPACITY_PROFILES,
    UnknownTierError,
    check_hardware_fit,
    get_adjacent_tiers,
    get_profile,
    suggest_tier_for_user_count,
)
from du_foundation.services import config_store
from du_foundation.services.config_store import StoredConfig
from du_foundation.services.migrator import migrate_project
from du_foundation.services.scanner import ScanError, scan_project
from du_foundation.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/foundation", tags=["Foundation"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ReconfigureRequest(BaseModel):
    foundationCapacity: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config_payload(config: StoredConfig) -> dict:
    profile = get_profile(config.foundationCapacity)
    return {
        "currentCapacity": config.foundationCapacity.value,
        "foundationConfig": profile.model_dump(mode="json"),
        "recommendations": get_adjacent_tiers(config.foundationCapacity).model_dump(mode="json"),
        "updatedAt": config.updatedAt,
    }


# ---------------------------------------------------------------------------
# Capacity endpoints
# ---------------------------------------------------------------------------


@router.get("/config", summary="Get the current Foundation configuration")
async def get_config() -> JSONResponse:
    """Return the selected capacity tier with its profile and neighbours."""
    return JSONResponse(_config_payload(config_store.load_config()))


@router.get("/capacities", summary="List available capacity tiers")
async def list_capacities() -> JSONResponse:
    """Return every capacity profile in ascending order."""
    return JSONResponse(
        [
            {"key": tier.value, **profile.model_dump(mode="json")}
            for tier, profile in CAPACITY_PROFILES.items()
        ]
    )


@router.post("/reconfigure", summary="Change the Foundation capacity tier")
async def reconfigure(body: ReconfigureRequest) -> JSONResponse:
    """Validate the requested tier against the registry, then persist it."""
    try:
        config = config_store.save_config(body.foundationCapacity)
    except UnknownTierError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except OSError as exc:
        logger.exception("Failed to persist Foundation configuration")
        return JSONResponse({"error": str(exc)}, status_code=500)
    return JSONResponse(_config_payload(config))


@router.get("/suggest", summary="Suggest a tier for a user count")
async def suggest(
    maxUsers: int = Query(..., ge=0, description="Expected concurrent users."),  # noqa: N803
) -> JSONResponse:
    tier = suggest_tier_for_user_count(maxUsers)
    return JSONResponse(
        {
            "maxUsers": maxUsers,
            "suggestedCapacity": tier.value,
            "profile": get_profile(tier).model_dump(mode="json"),
        }
    )


@router.get("/hardware-fit", summary="Check a tier against host hardware")
async def hardware_fit(
    capacity: str = Query(..., description="Capacity tier identifier."),
    ramMB: int = Query(..., gt=0, description="Host RAM in MB."),  # noqa: N803
    cpuCores: int = Query(..., gt=0, description="Host CPU cores."),  # noqa: N803
) -> JSONResponse:
    try:
        fit = check_hardware_fit(capacity, ramMB, cpuCores)
    except UnknownTierError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return JSONResponse(fit.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Project pipeline endpoints
# ---------------------------------------------------------------------------


@router.post("/scan", summary="Scan the configured project")
def scan() -> JSONResponse:
    """Run the compatibility scanner on the configured project root."""
    try:
        report = scan_project(settings.resolved_project_root())
    except (ScanError, OSError) as exc:
        logger.exception("Project scan failed")
        return JSONResponse({"error": str(exc)}, status_code=500)
    return JSONResponse(report.model_dump(mode="json"))


@router.post("/migrate", summary="Migrate the configured project")
def migrate() -> JSONResponse:
    """Apply automatic adjustments to the configured project root."""
    try:
        result = migrate_project(settings.resolved_project_root())
    except (ScanError, OSError) as exc:
        logger.exception("Project migration failed")
        return JSONResponse({"error": str(exc)}, status_code=500)
    return JSONResponse(result.model_dump(mode="json"))
