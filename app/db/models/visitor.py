from datetime import date, datetime, time
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class VisitorStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Visitor(Base):
    __tablename__ = "visitors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    visitor_name: Mapped[str] = mapped_column(String(120), nullable=False)
    visitor_email: Mapped[str] = mapped_column(String(255), nullable=False)
    resident_name: Mapped[str] = mapped_column(String(120), nullable=False)
    resident_email: Mapped[str] = mapped_column(
        String(255), ForeignKey("residents.email"), nullable=False, index=True
    )
    visit_reason: Mapped[str] = mapped_column(Text, nullable=False)
    car_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    verification_code: Mapped[str] = mapped_column(String(4), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=VisitorStatus.pending.value)
    in_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    in_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    out_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    out_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    resident = relationship("Resident", back_populates="visitors")

    @property
    def checked_in(self) -> bool:
        return self.in_time is not None

    @property
    def checked_out(self) -> bool:
        return self.out_time is not None
