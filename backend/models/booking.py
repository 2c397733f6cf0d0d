"""Booking model definitions."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Numeric, String, Time, text
from backend.database import Base

BOOKING_STATUSES = ('pending', 'confirmed', 'in_progress', 'completed', 'cancelled')
CANCELLED_STATUS = 'cancelled'
TERMINAL_STATUSES = ('completed', 'cancelled')
STATUS_LABELS = {
    'pending': 'Pendente',
    'confirmed': 'Confirmado',
    'in_progress': 'Em Andamento',
    'completed': 'Concluído',
    'cancelled': 'Cancelado',
}
STATUSES_BY_LABEL = {label: status for status, label in STATUS_LABELS.items()}


class Booking(Base):
    """Represents a pending or confirmed appointment with a braider."""
    __tablename__ = "bookings"
    __table_args__ = (
        # At most one non-cancelled booking per braider, date and time.
        Index(
            'uq_bookings_active_slot',
            'braider_id',
            'booking_date',
            'booking_time',
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        Index('idx_bookings_client_slot', 'client_email', 'booking_date', 'booking_time'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    client_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    braider_id = Column(String(36), ForeignKey("braiders.id"), nullable=False)
    availability_id = Column(String(36), ForeignKey("braider_availability.id"), nullable=True)
    booking_date = Column(Date, nullable=False)
    booking_time = Column(Time, nullable=False)
    service_type = Column(String, nullable=False)  # domicilio/trancista
    client_name = Column(String, nullable=False)
    client_email = Column(String, nullable=False)
    client_phone = Column(String, nullable=False)
    client_address = Column(String)
    status = Column(String, default="pending", nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(String, default="")
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)
