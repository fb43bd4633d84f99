"""
ARC portal endpoints: mindshare, arenas, creator signal, quest scoring and
the super admin platform report.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from akari.arc.mindshare import WINDOWS as MINDSHARE_WINDOWS
from akari.arc.mindshare import MindshareService
from akari.arc.platform_report import PlatformReportService
from akari.arc.quest_scoring import detect_brand_attribution, normalize_brand_aliases, score_quest_post
from akari.arc.scoring import ArcScoringService
from akari.arc.signal_score import WINDOW_HOURS as SIGNAL_WINDOWS
from akari.arc.signal_score import SignalScoreService
from akari.server.schemas import QuestScoreRequest
from akari.server.services.deps import PortalSessionDep, SessionDep, SuperAdminDep

router = APIRouter()


@router.get(
    "/mindshare",
    summary="Project mindshare",
    description="Latest mindshare snapshot of every project for a window, with 1 and 7 day changes.",
)
async def mindshare(session: SessionDep, window: str = Query(default="7d", description="24h | 48h | 7d | 30d")):
    if window not in MINDSHARE_WINDOWS:
        raise HTTPException(status_code=400, detail=f"Invalid window, expected one of {', '.join(MINDSHARE_WINDOWS)}")
    return {"ok": True, **await MindshareService(session).latest(window)}


@router.get(
    "/arc/arenas/{slug}/leaderboard",
    summary="Arena leaderboard",
    responses={404: {"description": "Arena not found"}},
)
async def arena_leaderboard(slug: str, session: SessionDep):
    return {"ok": True, **await ArcScoringService(session).arena_leaderboard(slug)}


@router.get("/arc/creators/{username}/signal", summary="Creator signal score")
async def creator_signal(username: str, session: SessionDep, window: str = Query(default="7d")):
    if window not in SIGNAL_WINDOWS:
        raise HTTPException(status_code=400, detail=f"Invalid window, expected one of {', '.join(SIGNAL_WINDOWS)}")
    return {"ok": True, "signal": await SignalScoreService(session).creator_signal(username, window)}


@router.post(
    "/arc/quests/score",
    summary="Score a quest submission",
    description="Quality score of a post against the campaign objectives, with an engagement boost on X.",
)
async def score_quest(body: QuestScoreRequest, portal_session: PortalSessionDep):
    brand_attribution = body.brand_attribution
    if brand_attribution is None:
        aliases = normalize_brand_aliases(body.brand_name, body.brand_handle, body.aliases)
        brand_attribution = detect_brand_attribution(body.text, aliases, body.brand_handle)

    score = score_quest_post(
        text=body.text,
        objectives=body.objectives,
        used_campaign_link=body.used_campaign_link,
        brand_attribution=brand_attribution,
        platform=body.platform,
        likes=body.likes,
        replies=body.replies,
        reposts=body.reposts,
    )
    return {"ok": True, "score": score.as_dict()}


@router.get(
    "/admin/platform-reports",
    summary="Platform report",
    description="Projects, creators, engagement, content and revenue over 7d, 30d or a custom range.",
    responses={401: {"description": "Not authenticated"}, 403: {"description": "SuperAdmin only"}},
)
async def platform_report(
    session: SessionDep,
    admin: SuperAdminDep,
    time_range: str = Query(default="30d", alias="timeRange"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
):
    report = await PlatformReportService(session).generate(time_range, start_date, end_date)
    return {"ok": True, "report": report}
