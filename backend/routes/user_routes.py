import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.database import get_db
from backend.models.booking import Booking
from backend.models.braider import Braider, Service
from backend.models.user import User
from backend.schemas.booking import format_booking

router = APIRouter(tags=['user'])

logger = logging.getLogger(__name__)


@router.get('/bookings')
def list_my_bookings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        rows = db.query(Booking, Service, Braider).outerjoin(
            Service, Service.id == Booking.service_id,
        ).outerjoin(
            Braider, Braider.id == Booking.braider_id,
        ).filter(
            Booking.client_email == current_user.email.strip().lower(),
            Booking.status == 'confirmed',
        ).order_by(
            Booking.booking_date.desc(),
            Booking.booking_time.desc(),
        ).all()
    except SQLAlchemyError as exc:
        logger.exception('Failed to list bookings for user %s', current_user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Erro ao buscar agendamentos',
        ) from exc

    bookings = [format_booking(booking, service, braider) for booking, service, braider in rows]
    return {'success': True, 'bookings': bookings, 'count': len(bookings)}
