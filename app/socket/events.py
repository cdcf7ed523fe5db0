import logging
from datetime import datetime

from app.core.config import get_settings
from app.socket.manager import dashboard_state

settings = get_settings()
logger = logging.getLogger(__name__)

VISITOR_UPDATED = "visitor.updated"


def register_socket_events(sio):
    @sio.event(namespace=settings.DASHBOARD_NAMESPACE)
    async def connect(sid, environ, auth):
        dashboard_state.add(sid)
        await sio.emit(
            "dashboard.ready",
            {"connected": dashboard_state.count(), "at": datetime.utcnow().isoformat()},
            to=sid,
            namespace=settings.DASHBOARD_NAMESPACE,
        )

    @sio.event(namespace=settings.DASHBOARD_NAMESPACE)
    async def disconnect(sid):
        dashboard_state.discard(sid)


async def publish_visitor_event(sio, visitor_id: int, status: str, event: str) -> None:
    """Push a lifecycle change to connected guard dashboards. Never fails the caller."""
    if not dashboard_state.count():
        return
    try:
        await sio.emit(
            VISITOR_UPDATED,
            {"id": visitor_id, "status": status, "event": event, "at": datetime.utcnow().isoformat()},
            namespace=settings.DASHBOARD_NAMESPACE,
        )
    except Exception:
        logger.exception("dashboard emit failed event=%s visitor_id=%s", event, visitor_id)
