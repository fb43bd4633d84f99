"""
Logfire tracing for the HTTP API, database access, provider calls and cron jobs.

Logfire stays off unless ``LOGFIRE_ENABLED`` is true and ``LOGFIRE_TOKEN`` is
set. The ``log_*`` helpers below never raise, so callers can use them whether
or not Logfire was configured.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import logfire
from fastapi import FastAPI

from akari.server.core.config import LogfireSettings

logger = logging.getLogger(__name__)


def _instrumentations(config: LogfireSettings, app: Optional[FastAPI]) -> List[Tuple[str, Callable[[], Any]]]:
    steps: List[Tuple[str, Callable[[], Any]]] = []
    if config.trace_sqlalchemy:
        steps.append(("SQLAlchemy", logfire.instrument_sqlalchemy))
    if config.trace_httpx:
        steps.append(("HTTPX", logfire.instrument_httpx))
    if config.trace_fastapi and app is not None:
        steps.append(("FastAPI", lambda: logfire.instrument_fastapi(app=app)))
    return steps


def initialize_logfire(app: Optional[FastAPI] = None, config: Optional[LogfireSettings] = None) -> bool:
    """
    Configure Logfire and instrument the libraries the server uses.

    Args:
        app: The FastAPI application; FastAPI is only instrumented when given.
        config: Logfire settings, read from the environment when omitted.

    Returns:
        True when Logfire was configured. A failing instrumentation is logged
        and skipped without changing the result.
    """
    config = config or LogfireSettings()
    if not config.enabled:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False
    if not config.token:
        logger.warning("LOGFIRE_ENABLED is set without LOGFIRE_TOKEN, Logfire stays off")
        return False

    try:
        logfire.configure(
            token=config.token,
            service_name=config.service_name,
            service_version=config.service_version,
            environment=config.environment,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return False

    for name, instrument in _instrumentations(config, app):
        try:
            instrument()
        except Exception as e:
            logger.warning(f"Logfire: {name} instrumentation failed: {e}")
        else:
            logger.info(f"Logfire: {name} instrumentation enabled")

    logger.info(f"Logfire monitoring initialized: environment={config.environment}, service={config.service_name}")
    return True


def _emit(level: str, message: str, attributes: Dict[str, Any]) -> None:
    try:
        getattr(logfire, level)(message, **attributes)
    except Exception:
        logger.debug(f"Could not send to Logfire: {message}")


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    _emit(
        "info",
        "API request completed",
        {"method": method, "path": path, "status_code": status_code, "duration_ms": duration_ms},
    )


def log_cron_run(job: str, processed: int, errors: int, duration_ms: float) -> None:
    """
    Record the outcome of a cron batch job.

    Args:
        job: Job name, e.g. ``sync-dex-markets``
        processed: Rows written by the run
        errors: Items that failed and were skipped
        duration_ms: Wall time of the run
    """
    attributes = {"job": job, "processed": processed, "errors": errors, "duration_ms": duration_ms}
    logger.info(
        f"Cron job {job} finished: processed={processed}, errors={errors}, duration_ms={duration_ms:.2f}",
        extra=attributes,
    )
    _emit("info", "Cron job completed", attributes)


def log_error(error_type: str, error_message: str, context: Optional[dict] = None) -> None:
    _emit("error", f"{error_type}: {error_message}", context or {})
