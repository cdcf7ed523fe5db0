from app.db.models.resident import Resident
from app.db.models.visitor import Visitor, VisitorStatus

__all__ = [
    "Resident",
    "Visitor",
    "VisitorStatus",
]
