"""
Liveness and version endpoints for deploy checks.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from akari.core.logging_config import get_logger
from akari.server.core import constant
from akari.server.services.deps import SessionDep

router = APIRouter()
logger = get_logger(__name__)


@router.get(
    "/health",
    summary="Health Check",
    description="Reports whether the server is up and the database answers.",
    responses={503: {"description": "Database unreachable"}},
)
async def health_check(session: SessionDep):
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check database probe failed: {e}")
        return JSONResponse(status_code=503, content={"ok": False, "status": "degraded", "database": "unavailable"})
    return {"ok": True, "status": "ok", "database": "ok"}


@router.get("/version", summary="Get Version")
async def version():
    return {"ok": True, "name": constant.PROJECT_NAME, "version": constant.VERSION}
