"""
Mini App leaderboard endpoint.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from akari.core.logging_config import get_logger
from akari.economy.leaderboard import LEADERBOARD_TYPES, LeaderboardService
from akari.server.services.deps import SessionDep

router = APIRouter()
logger = get_logger(__name__)


@router.get(
    "",
    summary="Leaderboard",
    description="Top 50 users by aXP points, MYST spent or referral earnings, all time or this week.",
)
async def leaderboard(
    session: SessionDep,
    type: str = Query(default="points", description="points | myst_spent | referrals"),
    period: str = Query(default="all", description="all | week"),
):
    board_type = type if type in LEADERBOARD_TYPES else "points"
    try:
        entries = await LeaderboardService(session).build(board_type, period)
    except Exception as e:
        logger.error(f"Leaderboard query failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"ok": False, "leaderboard": [], "reason": str(e)})
    return {"ok": True, "type": board_type, "period": period, "leaderboard": entries}
