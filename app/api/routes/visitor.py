import logging
from time import perf_counter

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_dispatcher, require_guard
from app.db.session import get_db
from app.schemas.visitor import GuardVerifyRequest, VisitorRequestCreate, VisitorStatusUpdate
from app.services.notification_service import NotificationDispatcher
from app.services.visitor_service import (
    check_out_visitor,
    decide_request,
    get_visitor,
    list_visitors,
    serialize_visitor,
    submit_request,
    verify_visitor,
)
from app.socket.events import publish_visitor_event
from app.socket.server import sio

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/visitor-request")
async def visitor_request(
    payload: VisitorRequestCreate,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    started = perf_counter()
    try:
        visitor = submit_request(db, payload, dispatcher)
    except Exception:
        elapsed_ms = (perf_counter() - started) * 1000
        logger.exception(
            "visitor.request failed in %.1fms resident_email=%s",
            elapsed_ms,
            payload.residentEmail,
        )
        raise

    await publish_visitor_event(sio, visitor.id, visitor.status, "request_created")
    logger.info(
        "visitor.request completed in %.1fms visitor_id=%s",
        (perf_counter() - started) * 1000,
        visitor.id,
    )
    return serialize_visitor(visitor)


@router.get("/visitors")
def visitors(
    db: Session = Depends(get_db),
    _guard: str | None = Depends(require_guard),
):
    return list_visitors(db)


@router.get("/visitors/{visitor_id}")
def visitor_detail(visitor_id: int, db: Session = Depends(get_db)):
    return serialize_visitor(get_visitor(db, visitor_id), include_code=False)


@router.put("/visitor-status/{visitor_id}")
async def visitor_status(
    visitor_id: int,
    payload: VisitorStatusUpdate,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    visitor = decide_request(db, visitor_id, payload.status, dispatcher)
    await publish_visitor_event(sio, visitor.id, visitor.status, "status_changed")
    return serialize_visitor(visitor)


@router.post("/guard-verify")
async def guard_verify(
    payload: GuardVerifyRequest,
    db: Session = Depends(get_db),
    _guard: str | None = Depends(require_guard),
):
    visitor, formatted_time = verify_visitor(db, payload.visitorId, payload.code)
    await publish_visitor_event(sio, visitor.id, visitor.status, "checked_in")
    return {**serialize_visitor(visitor), "formattedTime": formatted_time}


@router.put("/visitor-exit/{visitor_id}")
async def visitor_exit(
    visitor_id: int,
    db: Session = Depends(get_db),
    _guard: str | None = Depends(require_guard),
):
    visitor, formatted_time = check_out_visitor(db, visitor_id)
    await publish_visitor_event(sio, visitor.id, visitor.status, "checked_out")
    return {**serialize_visitor(visitor), "formattedOutTime": formatted_time}
