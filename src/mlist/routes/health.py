"""Health check endpoints for liveness and readiness probes."""
import asyncio
import os
from pathlib import Path
from typing import Literal

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from mlist.config import Settings

router = APIRouter(prefix="/api/health", tags=["health"])


class LivenessResponse(BaseModel):
    """Response model for liveness probe.

    Attributes:
        status: Always 'alive' when process is running.
    """

    status: Literal["alive"]


class ReadinessCheck(BaseModel):
    """Individual dependency check result.

    Attributes:
        name: Identifier for the dependency being checked.
        status: Result of the check ('ok' or 'failed').
        message: Error details when status is 'failed'.
    """

    name: str
    status: Literal["ok", "failed"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Response model for readiness probe."""

    status: Literal["ready", "not_ready"]
    checks: list[ReadinessCheck]


def _check_root(path: Path) -> ReadinessCheck:
    """Verify the served root is a listable directory.

    The check name deliberately omits the filesystem path.
    """
    try:
        if path.is_dir():
            with os.scandir(path) as it:
                next(it, None)
            return ReadinessCheck(name="root_dir", status="ok")
        return ReadinessCheck(
            name="root_dir",
            status="failed",
            message="Directory not found",
        )
    except PermissionError:
        return ReadinessCheck(
            name="root_dir",
            status="failed",
            message="Permission denied",
        )
    except OSError as e:
        return ReadinessCheck(
            name="root_dir",
            status="failed",
            message=e.strerror or "Unreadable",
        )


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe endpoint.

    Returns:
        Liveness status response.
    """
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> JSONResponse:
    """Readiness probe endpoint.

    Returns 200 if the served root is readable, 503 otherwise.
    """
    settings: Settings = request.app.state.settings
    checks = [await asyncio.to_thread(_check_root, settings.root_dir)]
    all_ok = all(c.status == "ok" for c in checks)
    response = ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        checks=checks,
    )
    code = status.HTTP_200_OK if all_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=code)
