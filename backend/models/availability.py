"""Availability model definitions."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, String, Time
from backend.database import Base


class BraiderAvailability(Base):
    """Represents an open time window a braider has made bookable.

    ``is_booked`` only ever moves from false to true, and only inside the
    atomic reservation.
    """
    __tablename__ = "braider_availability"
    __table_args__ = (
        Index('idx_braider_availability_braider_date', 'braider_id', 'available_date', 'start_time'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    braider_id = Column(String(36), ForeignKey("braiders.id"), nullable=False)
    available_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)
