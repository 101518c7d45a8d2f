"""HTTP API — live stream, manual monitoring trigger, and alert endpoints.

Runs as an ``aiohttp`` web server alongside the monitoring scheduler.
Exposes:
- ``GET  /api/health``                     → liveness + listener count
- ``GET  /api/containers/stream``          → SSE stream of the viewer's changes
- ``POST /api/monitoring/run``             → run one monitoring cycle now
- ``PUT  /api/containers/{entity_id}``     → user edit of one container
- ``POST /api/containers/bulk-update``     → user edits of several containers
- ``GET  /api/alerts/rules``               → rule table with enabled flags
- ``PUT  /api/alerts/rules``               → enable/disable one rule
- ``POST /api/alerts/{alert_id}/acknowledge``
- ``POST /api/alerts/bulk-acknowledge``
- ``GET  /api/alerts/stats``               → 30-day alert counts for a user
"""

from __future__ import annotations

import hmac
from collections.abc import Callable
from typing import Any

import structlog
from aiohttp import web
from pydantic import ValidationError

from portsense.alerts.service import AlertService
from portsense.core.types import BulkContainerEdit, ContainerEdit
from portsense.monitoring.exceptions import CycleAlreadyRunningError
from portsense.monitoring.service import MonitoringService
from portsense.realtime.hub import BroadcastHub
from portsense.realtime.sse import stream_events
from portsense.store.exceptions import (
    AlertNotFoundError,
    EntityNotFoundError,
    UnauthorizedUpdateError,
)

logger = structlog.get_logger(__name__)

ViewerResolver = Callable[[web.Request], str | None]

# Routes guarded by the monitoring secret.
PROTECTED_PATHS = frozenset({"/api/monitoring/run"})


def default_viewer_resolver(request: web.Request) -> str | None:
    """Viewer identity from the ``user_id`` query parameter or ``X-User-Id`` header."""
    return request.query.get("user_id") or request.headers.get("X-User-Id") or None


def _check_bearer(request: web.Request, secret: str) -> bool:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return False
    return hmac.compare_digest(auth_header[7:], secret)


@web.middleware
async def _auth_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Require ``Authorization: Bearer <secret>`` on protected routes when configured."""
    secret = request.app.get("monitoring_secret")
    if secret and request.path in PROTECTED_PATHS:
        if not _check_bearer(request, secret):
            return web.json_response({"error": "Unauthorized"}, status=401)
    return await handler(request)


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _read_json(request: web.Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


# ── Handlers ────────────────────────────────────────────────────


async def _handle_health(request: web.Request) -> web.Response:
    hub: BroadcastHub = request.app["hub"]
    service: MonitoringService = request.app["monitoring_service"]
    return web.json_response({
        "status": "ok",
        "listeners": hub.listener_count,
        "cycle_running": service.running,
    })


async def _handle_stream(request: web.Request) -> web.StreamResponse:
    viewer_id = request.app["viewer_resolver"](request)
    if not viewer_id:
        return _error(401, "Unauthorized")
    return await stream_events(
        request,
        request.app["hub"],
        viewer_id,
        heartbeat_secs=request.app["heartbeat_secs"],
    )


async def _handle_run_monitoring(request: web.Request) -> web.Response:
    service: MonitoringService = request.app["monitoring_service"]
    try:
        report = await service.run_monitoring_cycle()
    except CycleAlreadyRunningError:
        return _error(409, "Monitoring cycle already running")
    except Exception as exc:
        logger.exception("manual_monitoring_run_failed")
        return web.json_response({"success": False, "error": repr(exc)}, status=500)
    return web.json_response({
        "success": True,
        "message": "Monitoring cycle completed",
        "report": report.model_dump(mode="json"),
    })


async def _handle_update_container(request: web.Request) -> web.Response:
    service: MonitoringService = request.app["monitoring_service"]
    entity_id = request.match_info["entity_id"]
    actor_id = request.app["viewer_resolver"](request)
    if not actor_id:
        return _error(401, "Unauthorized")
    body = await _read_json(request)
    if body is None:
        return _error(400, "Invalid JSON body")
    try:
        edit = ContainerEdit.model_validate(body)
    except ValidationError as exc:
        return _error(400, _validation_message(exc))
    update = edit.to_update()
    if not update.changes():
        return _error(400, "No fields to update")
    try:
        entity = await service.update_container(entity_id, update, actor_id)
    except EntityNotFoundError:
        return _error(404, f"Container not found: {entity_id}")
    except UnauthorizedUpdateError:
        return _error(403, "Unauthorized to update this container")
    return web.json_response({
        "success": True,
        "container": entity.model_dump(mode="json"),
        "message": "Container updated successfully",
    })


async def _handle_bulk_update(request: web.Request) -> web.Response:
    service: MonitoringService = request.app["monitoring_service"]
    actor_id = request.app["viewer_resolver"](request)
    if not actor_id:
        return _error(401, "Unauthorized")
    body = await _read_json(request)
    raw = body.get("updates") if body else None
    if not isinstance(raw, list):
        return _error(400, "updates must be a list")
    try:
        edits = [BulkContainerEdit.model_validate(item) for item in raw]
    except ValidationError as exc:
        return _error(400, _validation_message(exc))
    pairs = [(e.id, e.to_update()) for e in edits]
    updated = await service.bulk_update_containers(
        [(entity_id, u) for entity_id, u in pairs if u.changes()], actor_id,
    )
    return web.json_response({
        "success": True,
        "updated": len(updated),
        "total": len(edits),
        "containers": [e.model_dump(mode="json") for e in updated],
    })


async def _handle_list_rules(request: web.Request) -> web.Response:
    alerts: AlertService = request.app["alert_service"]
    return web.json_response({
        "rules": [r.model_dump(mode="json") for r in alerts.list_rules()],
    })


async def _handle_update_rule(request: web.Request) -> web.Response:
    alerts: AlertService = request.app["alert_service"]
    body = await _read_json(request)
    if body is None:
        return _error(400, "Invalid JSON body")
    rule_id = body.get("rule_id")
    enabled = body.get("enabled")
    if not isinstance(rule_id, str) or not isinstance(enabled, bool):
        return _error(400, "rule_id (string) and enabled (boolean) are required")
    if not alerts.set_rule_enabled(rule_id, enabled):
        return _error(404, f"Unknown rule: {rule_id}")
    return web.json_response({"success": True, "rule_id": rule_id, "enabled": enabled})


async def _handle_acknowledge(request: web.Request) -> web.Response:
    alerts: AlertService = request.app["alert_service"]
    alert_id = request.match_info["alert_id"]
    actor_id = request.app["viewer_resolver"](request)
    if not actor_id:
        return _error(401, "Unauthorized")
    try:
        alert = await alerts.acknowledge(alert_id, actor_id)
    except AlertNotFoundError:
        return _error(404, f"Alert not found: {alert_id}")
    except UnauthorizedUpdateError:
        return _error(403, "Forbidden")
    return web.json_response({"success": True, "alert": alert.model_dump(mode="json")})


async def _handle_bulk_acknowledge(request: web.Request) -> web.Response:
    alerts: AlertService = request.app["alert_service"]
    actor_id = request.app["viewer_resolver"](request)
    if not actor_id:
        return _error(401, "Unauthorized")
    body = await _read_json(request)
    alert_ids = body.get("alert_ids") if body else None
    if not isinstance(alert_ids, list) or not all(isinstance(i, str) for i in alert_ids):
        return _error(400, "alert_ids must be a list of strings")
    count = await alerts.bulk_acknowledge(alert_ids, actor_id)
    return web.json_response({"success": True, "acknowledged": count})


async def _handle_stats(request: web.Request) -> web.Response:
    alerts: AlertService = request.app["alert_service"]
    user_id = request.app["viewer_resolver"](request)
    if not user_id:
        return _error(401, "Unauthorized")
    stats = await alerts.stats(user_id)
    return web.json_response(stats.model_dump(mode="json"))


def create_web_app(
    monitoring_service: MonitoringService,
    alert_service: AlertService,
    hub: BroadcastHub,
    monitoring_secret: str | None = None,
    heartbeat_secs: float = 30.0,
    viewer_resolver: ViewerResolver | None = None,
) -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application(middlewares=[_auth_middleware])
    app["monitoring_service"] = monitoring_service
    app["alert_service"] = alert_service
    app["hub"] = hub
    app["monitoring_secret"] = monitoring_secret
    app["heartbeat_secs"] = heartbeat_secs
    app["viewer_resolver"] = viewer_resolver or default_viewer_resolver
    app.router.add_get("/api/health", _handle_health)
    app.router.add_get("/api/containers/stream", _handle_stream)
    app.router.add_post("/api/monitoring/run", _handle_run_monitoring)
    app.router.add_put("/api/containers/{entity_id}", _handle_update_container)
    app.router.add_post("/api/containers/bulk-update", _handle_bulk_update)
    app.router.add_get("/api/alerts/rules", _handle_list_rules)
    app.router.add_put("/api/alerts/rules", _handle_update_rule)
    app.router.add_post("/api/alerts/bulk-acknowledge", _handle_bulk_acknowledge)
    app.router.add_post("/api/alerts/{alert_id}/acknowledge", _handle_acknowledge)
    app.router.add_get("/api/alerts/stats", _handle_stats)
    return app


async def start_web_server(
    app: web.Application,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> web.AppRunner:
    """Start serving *app*. Returns the runner for cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("web_server_started", host=host, port=port)
    return runner
