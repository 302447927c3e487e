"""HTTP API exposing the latest health-check snapshot."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone

from aiohttp import web

from proofrelay.config import API_PORT
from proofrelay.db import Database, HealthCheckData

log = logging.getLogger(__name__)

ROOT_TEXT = "Helios Proof Relayer API\nUse /health to get latest health check data"

STALE_AFTER = timedelta(minutes=30)


@dataclass(frozen=True)
class HealthCheckResponse:
    """JSON body returned by the ``/health`` endpoint."""

    current_height: int
    current_root: str
    timestamp: str
    status: str


def health_status(data: HealthCheckData, now: datetime | None = None) -> str:
    """Return ``"healthy"`` if ``data`` is younger than thirty minutes, else ``"unhealthy"``."""
    if now is None:
        now = datetime.now(timezone.utc)
    return "healthy" if data.timestamp > now - STALE_AFTER else "unhealthy"


def create_app(db: Database) -> web.Application:
    """Build the web application serving ``/`` and ``/health`` from ``db``."""

    async def root(request: web.Request) -> web.Response:
        return web.Response(text=ROOT_TEXT)

    async def health(request: web.Request) -> web.Response:
        log.info("Received request for latest health check data")
        try:
            data = db.get_latest_health_check()
        except Exception:
            log.exception("Failed to get health check data")
            return web.Response(status=500)

        now = datetime.now(timezone.utc)
        if data is None:
            log.info("No health check data available")
            body = HealthCheckResponse(
                current_height=0,
                current_root="",
                timestamp=now.isoformat(),
                status="no_data",
            )
            return web.json_response(asdict(body), status=404)

        status = health_status(data, now)
        body = HealthCheckResponse(
            current_height=data.current_height,
            current_root=data.current_root.hex(),
            timestamp=data.timestamp.isoformat(),
            status=status,
        )
        log.info(
            "Returning health check data: height=%d, status=%s",
            data.current_height,
            status,
        )
        return web.json_response(asdict(body))

    app = web.Application()
    app.router.add_get("/health", health)
    app.router.add_get("/", root)
    return app


def _resolve_port(port: int | None = None) -> int:
    if port is not None:
        return int(port)
    configured = os.environ.get("API_PORT")
    if configured is None:
        return API_PORT
    try:
        return int(configured)
    except ValueError as exc:
        raise ValueError(f"invalid API_PORT: {configured!r}") from exc


async def run_api_server(app: web.Application, port: int | None = None) -> None:
    """Serve ``app`` on all interfaces until cancelled.

    The port is taken from ``port``, else the ``API_PORT`` environment
    variable, else the configured default.
    """
    port = _resolve_port(port)
    runner = web.AppRunner(app)
    await runner.setup()
    try:
        site = web.TCPSite(runner, "0.0.0.0", port)
        await site.start()
        log.info("API server listening on http://0.0.0.0:%d", port)
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()