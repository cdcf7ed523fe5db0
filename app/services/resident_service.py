import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.db.models import Resident

logger = logging.getLogger(__name__)

DEFAULT_RESIDENT_NAME = "Resident"


def get_resident_by_email(db: Session, email: str) -> Resident | None:
    return db.query(Resident).filter(Resident.email == email).first()


def ensure_resident(db: Session, name: str | None, email: str) -> Resident:
    resident = get_resident_by_email(db, email)
    if resident:
        return resident

    resident = Resident(name=(name or "").strip() or DEFAULT_RESIDENT_NAME, email=email)
    try:
        db.add(resident)
        db.commit()
    except IntegrityError:
        # Another request inserted the same email between the lookup and the insert.
        db.rollback()
        logger.warning("resident.create conflict email=%s, re-fetching", email)
        resident = get_resident_by_email(db, email)
        if not resident:
            raise ConflictError("Failed to create or find resident")
        return resident

    db.refresh(resident)
    logger.info("resident.created id=%s email=%s", resident.id, email)
    return resident
