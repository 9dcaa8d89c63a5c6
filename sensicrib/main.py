"""sensicrib — baby-monitor alerting service.

This is the application entry point.  It wires the MonitorSession,
AdapterRegistry, ChangeFeed, notification channels, and the HTTP and
WebSocket endpoints together.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sensicrib.adapters.registry import default_registry
from sensicrib.api.routes import create_api_router
from sensicrib.api.ws_alerts import SessionBroadcaster, create_alert_stream_router
from sensicrib.api.ws_changes import create_change_router
from sensicrib.config import settings
from sensicrib.core.session import MonitorSession
from sensicrib.domain.reading import DEFAULT_THRESHOLDS
from sensicrib.foundation.scheduler import AsyncioScheduler
from sensicrib.services.channels import BroadcastChannels
from sensicrib.services.connection_manager import ConnectionManager
from sensicrib.services.ingest import ChangeFeed

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

# ── Session ──────────────────────────────────────────────────────────────────

ui_manager = ConnectionManager()

session = MonitorSession.from_settings(
    settings,
    scheduler=AsyncioScheduler(),
    channels=BroadcastChannels(ui_manager),
)
session.subscribe(SessionBroadcaster(ui_manager))

if settings.seed_default_thresholds:
    session.load_thresholds(DEFAULT_THRESHOLDS)

# ── Adapter Registry ────────────────────────────────────────────────────────

registry = default_registry(settings.subject_id)
feed = ChangeFeed(session, registry)

# ── App ──────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    session.close()


app = FastAPI(
    title=settings.app_name,
    description="Sensor safety evaluation, escalation and alert delivery",
    version="0.3.0",
    lifespan=lifespan,
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_change_router(feed))
app.include_router(create_alert_stream_router(session, ui_manager))
app.include_router(create_api_router(session))

# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    dispatcher = session.dispatcher
    return {
        "status": "ok",
        "level": session.level.value,
        "policy": session.strategy_name,
        "readings_processed": session.readings_processed,
        "aggregations": session.aggregations,
        "alerts_fired": dispatcher.state.fire_count,
        "alerts_suppressed": dispatcher.suppressed_count,
        "channel_failures": dispatcher.channel_failures,
        "missing_thresholds": session.evaluator.missing_counts,
        "ui_clients": ui_manager.active_count,
        "adapters": registry.stats,
        "total_adapted": registry.total_accepted,
        "total_rejected": registry.total_rejected,
        "dropped_events": feed.dropped_count,
    }
