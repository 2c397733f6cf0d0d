"""Atomic booking reservation.

``reserve_booking`` is the only code path that inserts bookings or flips an
availability slot to booked. Everything it does happens inside one database
transaction, and exclusivity comes from the storage layer rather than from a
read-then-write in application code:

* a slot is claimed with a conditional ``UPDATE ... WHERE is_booked = false``,
  so of two concurrent claims only one sees a matched row;
* ``uq_bookings_active_slot`` allows a single non-cancelled booking per
  braider, date and time, so a racing insert fails with an integrity error.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.availability import BraiderAvailability
from backend.models.booking import CANCELLED_STATUS, Booking
from backend.models.braider import Service
from backend.schemas.booking import BookingId, BookingRequest, LocationType

logger = logging.getLogger(__name__)

PENDING_STATUS = 'pending'


class ReservationErrorCode(str, Enum):
    SERVICE_NOT_FOUND = 'SERVICE_NOT_FOUND'
    AVAILABILITY_NOT_FOUND = 'AVAILABILITY_NOT_FOUND'
    AVAILABILITY_TAKEN = 'AVAILABILITY_TAKEN'
    BOOKING_CONFLICT = 'BOOKING_CONFLICT'
    CLIENT_BOOKING_CONFLICT = 'CLIENT_BOOKING_CONFLICT'
    INTERNAL = 'INTERNAL'


class ReservationError(Exception):
    def __init__(self, code: ReservationErrorCode, detail: str = '') -> None:
        super().__init__(f'{code.value}: {detail}' if detail else code.value)
        self.code = code
        self.detail = detail


@dataclass(frozen=True)
class ReservationResult:
    booking_id: BookingId
    braider_id: str
    booking_date: date
    booking_time: time
    total_amount: Decimal
    status: str


def compute_total_amount(service_price: Decimal, booking_type: LocationType) -> Decimal:
    total = Decimal(service_price or 0)
    if booking_type is LocationType.CLIENT_HOME:
        total += config.HOME_SERVICE_FEE
    return total.quantize(Decimal('0.01'))


def _active_bookings(db: Session, booking_date: date, booking_time: time):
    return db.query(Booking.id).filter(
        Booking.booking_date == booking_date,
        Booking.booking_time == booking_time,
        Booking.status != CANCELLED_STATUS,
    )


def _claim_availability(db: Session, request: BookingRequest, now: datetime) -> None:
    claimed = db.execute(
        update(BraiderAvailability)
        .where(
            BraiderAvailability.id == request.availability_id,
            BraiderAvailability.braider_id == request.braider_id,
            BraiderAvailability.available_date == request.booking_date,
            BraiderAvailability.is_booked.is_(False),
        )
        .values(is_booked=True, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount == 1:
        return

    slot = db.query(BraiderAvailability.id).filter(
        BraiderAvailability.id == request.availability_id,
        BraiderAvailability.braider_id == request.braider_id,
        BraiderAvailability.available_date == request.booking_date,
    ).first()
    if slot is None:
        raise ReservationError(ReservationErrorCode.AVAILABILITY_NOT_FOUND, 'Availability slot not found')
    raise ReservationError(ReservationErrorCode.AVAILABILITY_TAKEN, 'Availability slot already booked')


def _reserve(db: Session, request: BookingRequest, client_id: str | None) -> ReservationResult:
    service = db.query(Service).filter(Service.id == request.service_id).first()
    if service is None or service.braider_id != request.braider_id:
        raise ReservationError(ReservationErrorCode.SERVICE_NOT_FOUND, 'Service not found')

    now = datetime.now()

    if request.availability_id:
        _claim_availability(db, request, now)
    elif _active_bookings(db, request.booking_date, request.booking_time).filter(
        Booking.braider_id == request.braider_id,
    ).first() is not None:
        raise ReservationError(ReservationErrorCode.BOOKING_CONFLICT, 'Booking slot already taken')

    if _active_bookings(db, request.booking_date, request.booking_time).filter(
        Booking.client_email == request.client_email,
    ).first() is not None:
        raise ReservationError(ReservationErrorCode.CLIENT_BOOKING_CONFLICT, 'Client already booked at this time')

    total_amount = compute_total_amount(service.price, request.booking_type)
    booking = Booking(
        service_id=request.service_id,
        client_id=client_id,
        braider_id=request.braider_id,
        availability_id=request.availability_id,
        booking_date=request.booking_date,
        booking_time=request.booking_time,
        service_type=request.booking_type.value,
        client_name=request.client_name,
        client_email=request.client_email,
        client_phone=request.client_phone,
        client_address=request.client_address,
        status=PENDING_STATUS,
        total_amount=total_amount,
        notes=request.notes,
        created_at=now,
        updated_at=now,
    )
    db.add(booking)

    try:
        db.flush()
    except IntegrityError as exc:
        raise ReservationError(ReservationErrorCode.BOOKING_CONFLICT, 'Concurrent booking detected') from exc

    return ReservationResult(
        booking_id=BookingId(booking.id),
        braider_id=booking.braider_id,
        booking_date=booking.booking_date,
        booking_time=booking.booking_time,
        total_amount=total_amount,
        status=PENDING_STATUS,
    )


def reserve_booking(db: Session, request: BookingRequest, client_id: str | None = None) -> ReservationResult:
    """Check for conflicts and create the booking as one unit of work.

    Either the booking row and the slot flag are both committed, or nothing
    is. Raises ``ReservationError``; database failures surface as
    ``ReservationErrorCode.INTERNAL``.
    """
    try:
        result = _reserve(db, request, client_id)
        db.commit()
    except ReservationError as exc:
        db.rollback()
        logger.info(
            'Reservation rejected braider=%s date=%s time=%s code=%s',
            request.braider_id,
            request.booking_date,
            request.booking_time,
            exc.code.value,
        )
        raise
    except IntegrityError as exc:
        db.rollback()
        raise ReservationError(ReservationErrorCode.BOOKING_CONFLICT, 'Concurrent booking detected') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            'Reservation failed braider=%s date=%s time=%s',
            request.braider_id,
            request.booking_date,
            request.booking_time,
        )
        raise ReservationError(ReservationErrorCode.INTERNAL, 'Database error') from exc

    logger.info(
        'Booking %s reserved braider=%s date=%s time=%s total=%s',
        result.booking_id,
        result.braider_id,
        result.booking_date,
        result.booking_time,
        result.total_amount,
    )
    return result
