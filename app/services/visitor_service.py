import logging
from datetime import datetime, time
from typing import Any

from sqlalchemy.orm import Session, joinedload

from app.core.config import get_settings
from app.core.exceptions import ConflictError, InvalidCodeError, NotFoundError, ValidationError
from app.db.models import Visitor, VisitorStatus
from app.schemas.visitor import VisitorRequestCreate
from app.services.code_service import generate_code
from app.services.notification_service import NotificationDispatcher
from app.services.resident_service import ensure_resident

settings = get_settings()
logger = logging.getLogger(__name__)

# Ids are signed 64-bit integers in the database; larger values cannot exist.
MIN_VISITOR_ID = 1
MAX_VISITOR_ID = 2**63 - 1

DECISIONS = {
    "approve": VisitorStatus.approved.value,
    "approved": VisitorStatus.approved.value,
    "reject": VisitorStatus.rejected.value,
    "rejected": VisitorStatus.rejected.value,
}


def local_now() -> datetime:
    """Server wall clock. Check-in/out times never come from the client."""
    return datetime.now()


def format_time_12h(value: time | datetime | None) -> str | None:
    if value is None:
        return None
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{value.hour % 12 or 12}:{value.minute:02d} {suffix}"


def _strict(strict: bool | None) -> bool:
    return settings.STRICT_LIFECYCLE if strict is None else strict


def _parse_visitor_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and MIN_VISITOR_ID <= value <= MAX_VISITOR_ID:
        return value
    return None


def serialize_visitor(
    visitor: Visitor,
    include_code: bool | None = None,
    include_resident: bool = False,
) -> dict[str, Any]:
    if include_code is None:
        include_code = settings.EXPOSE_VERIFICATION_CODE

    data: dict[str, Any] = {
        "id": visitor.id,
        "visitorName": visitor.visitor_name,
        "visitorEmail": visitor.visitor_email,
        "residentName": visitor.resident_name,
        "residentEmail": visitor.resident_email,
        "visitReason": visitor.visit_reason,
        "carNumber": visitor.car_number,
        "status": visitor.status,
        "inDate": visitor.in_date.isoformat() if visitor.in_date else None,
        "inTime": visitor.in_time.isoformat() if visitor.in_time else None,
        "outDate": visitor.out_date.isoformat() if visitor.out_date else None,
        "outTime": visitor.out_time.isoformat() if visitor.out_time else None,
        "createdAt": visitor.created_at.isoformat() if visitor.created_at else None,
    }
    if include_code:
        data["verificationCode"] = visitor.verification_code
    if include_resident:
        resident = visitor.resident
        data["resident"] = (
            {"id": resident.id, "name": resident.name, "email": resident.email} if resident else None
        )
    return data


def get_visitor(db: Session, visitor_id: int) -> Visitor:
    if not MIN_VISITOR_ID <= visitor_id <= MAX_VISITOR_ID:
        raise NotFoundError()
    visitor = db.query(Visitor).filter(Visitor.id == visitor_id).first()
    if not visitor:
        raise NotFoundError()
    return visitor


def submit_request(
    db: Session,
    payload: VisitorRequestCreate,
    dispatcher: NotificationDispatcher | None = None,
) -> Visitor:
    ensure_resident(db, payload.residentName, payload.residentEmail)

    visitor = Visitor(
        visitor_name=payload.visitorName,
        visitor_email=payload.visitorEmail,
        resident_name=payload.residentName,
        resident_email=payload.residentEmail,
        visit_reason=payload.visitReason,
        car_number=payload.carNumber,
        verification_code=generate_code(),
        status=VisitorStatus.pending.value,
    )
    db.add(visitor)
    db.commit()
    db.refresh(visitor)
    logger.info("visitor.submitted id=%s resident_email=%s", visitor.id, visitor.resident_email)

    if dispatcher is not None:
        dispatcher.on_request_created(visitor)
    return visitor


def decide_request(
    db: Session,
    visitor_id: int,
    decision: str,
    dispatcher: NotificationDispatcher | None = None,
    strict: bool | None = None,
) -> Visitor:
    status = DECISIONS.get((decision or "").strip().lower())
    if status is None:
        raise ValidationError("Status must be 'approved' or 'rejected'")

    visitor = get_visitor(db, visitor_id)
    if _strict(strict) and visitor.status != VisitorStatus.pending.value:
        raise ConflictError(f"Visitor request already {visitor.status}")

    previous = visitor.status
    visitor.status = status
    db.commit()
    db.refresh(visitor)
    logger.info("visitor.decided id=%s status=%s previous=%s", visitor.id, status, previous)

    if status == VisitorStatus.approved.value and dispatcher is not None:
        dispatcher.on_approved(visitor)
    return visitor


def verify_visitor(
    db: Session,
    visitor_id: Any,
    code: Any,
    strict: bool | None = None,
) -> tuple[Visitor, str]:
    parsed_id = _parse_visitor_id(visitor_id)
    code = "" if code is None else str(code)
    if parsed_id is None or not code:
        raise InvalidCodeError()

    visitor = (
        db.query(Visitor)
        .filter(Visitor.id == parsed_id, Visitor.verification_code == code)
        .first()
    )
    if not visitor:
        logger.info("visitor.verify rejected id=%s", visitor_id)
        raise InvalidCodeError()

    if _strict(strict):
        if visitor.status != VisitorStatus.approved.value:
            raise ConflictError(f"Visitor request is {visitor.status}, not approved")
        if visitor.checked_in:
            raise ConflictError("Visitor already checked in")

    now = local_now().replace(microsecond=0)
    visitor.in_date = now.date()
    visitor.in_time = now.time()
    db.commit()
    db.refresh(visitor)
    logger.info("visitor.checked_in id=%s at=%s", visitor.id, now.isoformat())
    return visitor, format_time_12h(now)


def check_out_visitor(
    db: Session,
    visitor_id: int,
    strict: bool | None = None,
) -> tuple[Visitor, str]:
    visitor = get_visitor(db, visitor_id)
    if _strict(strict):
        if not visitor.checked_in:
            raise ConflictError("Visitor has not checked in")
        if visitor.checked_out:
            raise ConflictError("Visitor already checked out")

    now = local_now().replace(microsecond=0)
    visitor.out_date = now.date()
    visitor.out_time = now.time()
    db.commit()
    db.refresh(visitor)
    logger.info("visitor.checked_out id=%s at=%s", visitor.id, now.isoformat())
    return visitor, format_time_12h(now)


def list_visitors(db: Session) -> list[dict[str, Any]]:
    rows = (
        db.query(Visitor)
        .options(joinedload(Visitor.resident))
        .order_by(Visitor.created_at.desc(), Visitor.id.desc())
        .all()
    )

    visitors = []
    for row in rows:
        data = serialize_visitor(row, include_resident=True)
        if row.in_time:
            data["formattedTime"] = format_time_12h(row.in_time)
        if row.out_time:
            data["formattedOutTime"] = format_time_12h(row.out_time)
        visitors.append(data)
    return visitors
