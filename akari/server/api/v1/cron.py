"""
Cron-triggered batch jobs, guarded by the cron secret.

Each job accepts GET and POST; other methods answer 405.
"""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from akari.arc.mindshare import MindshareService
from akari.arc.scoring import ArcScoringService
from akari.core.logging_config import get_logger
from akari.core.monitoring import log_cron_run
from akari.markets.dex_aggregator import DEX_SOURCES, DexAggregator
from akari.markets.sync import DexSyncService
from akari.server.services.deps import CronSecretDep, SessionDep

router = APIRouter(dependencies=[CronSecretDep])
logger = get_logger(__name__)


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


@router.api_route("/sync-dex-markets", methods=["GET", "POST"], summary="Refresh DEX market snapshots")
async def sync_dex_markets(session: SessionDep):
    start = time.monotonic()
    logger.info("Starting DEX markets sync")
    try:
        async with DexAggregator() as aggregator:
            result = await DexSyncService(session, aggregator).run()
    except Exception as e:
        logger.error(f"DEX markets sync failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "updated": 0,
                "sources": {source: 0 for source in DEX_SOURCES},
                "error": f"Error: {e}",
            },
        )
    log_cron_run("sync-dex-markets", result.updated, 0, _elapsed_ms(start))
    return {"ok": True, **result.as_dict()}


@router.api_route("/mindshare-snapshots", methods=["GET", "POST"], summary="Compute mindshare snapshots")
async def mindshare_snapshots(session: SessionDep):
    start = time.monotonic()
    results = await MindshareService(session).calculate_all_windows()
    processed = sum(r.created + r.updated for r in results)
    errors = sum(len(r.errors) for r in results)
    log_cron_run("mindshare-snapshots", processed, errors, _elapsed_ms(start))
    return {"ok": True, "results": [r.as_dict() for r in results]}


@router.api_route("/arc-scoring", methods=["GET", "POST"], summary="Score arena creators")
async def arc_scoring(session: SessionDep):
    start = time.monotonic()
    result = await ArcScoringService(session).run()
    log_cron_run("arc-scoring", result.processed_creators, len(result.errors), _elapsed_ms(start))
    return {"ok": True, **result.as_dict()}
