"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request tracing), registers the exception handlers and includes all API
routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from akari.core.database.session import init_db
from akari.core.logging_config import get_logger, setup_logging
from akari.core.monitoring import initialize_logfire

from .api.v1 import admin, auth, cron, health, leaderboard, myst, portal, predictions, referrals, wheel
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware

# Initialize logging
setup_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Creates missing tables at startup. A database failure is logged and the
    server still starts.
    """
    try:
        logger.info("Starting up AKARI server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    logger.info("Shutting down AKARI server...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    AKARI Mystic Club API

    Backend of the Telegram Mini App (MYST economy, wheel, referrals,
    predictions, leaderboard) and of the ARC portal (mindshare, arenas,
    creator signal, quests, platform reports and cron jobs).
    """,
    version=constant.VERSION,
    openapi_url=f"{constant.API_PREFIX}/openapi.json",
    docs_url=f"{constant.API_PREFIX}/docs",
    redoc_url=f"{constant.API_PREFIX}/redoc",
    lifespan=lifespan,
)

app.add_middleware(LogfireMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=settings.cors.allow_methods,
    allow_headers=settings.cors.allow_headers,
)

setup_exception_handlers(app)
initialize_logfire(app)

app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix=f"{constant.API_PREFIX}/auth", tags=["auth"])
app.include_router(myst.router, prefix=f"{constant.API_PREFIX}/myst", tags=["myst"])
app.include_router(referrals.router, prefix=f"{constant.API_PREFIX}/referrals", tags=["referrals"])
app.include_router(wheel.router, prefix=f"{constant.API_PREFIX}/wheel", tags=["wheel"])
app.include_router(leaderboard.router, prefix=f"{constant.API_PREFIX}/leaderboard", tags=["leaderboard"])
app.include_router(predictions.router, prefix=f"{constant.API_PREFIX}/predictions", tags=["predictions"])
app.include_router(admin.router, prefix=f"{constant.API_PREFIX}/admin", tags=["admin"])
app.include_router(portal.router, prefix=constant.PORTAL_PREFIX, tags=["portal"])
app.include_router(cron.router, prefix=f"{constant.PORTAL_PREFIX}/cron", tags=["cron"])
