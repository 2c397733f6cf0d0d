import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.database import get_db
from backend.models.booking import STATUSES_BY_LABEL, TERMINAL_STATUSES, Booking
from backend.models.braider import Braider, Service
from backend.models.user import User
from backend.schemas.booking import format_booking
from backend.services.notifier import BookingNotifier, get_booking_notifier

router = APIRouter(tags=['braider-bookings'])

logger = logging.getLogger(__name__)


class UpdateBookingStatusRequest(BaseModel):
    booking_id: str = Field(alias='bookingId')
    status: str

    class Config:
        populate_by_name = True

    @field_validator('booking_id')
    @classmethod
    def validate_booking_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('ID do agendamento é obrigatório')
        return normalized

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip()
        if normalized not in STATUSES_BY_LABEL:
            raise ValueError('Status inválido')
        return STATUSES_BY_LABEL[normalized]


def get_braider_for_user(user: User, db: Session) -> Braider:
    braider = db.query(Braider).filter(Braider.user_id == user.id).first()
    if braider is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Registro de trancista não encontrado para este usuário',
        )
    return braider


@router.get('')
def list_braider_bookings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        braider = get_braider_for_user(current_user, db)

        rows = db.query(Booking, Service).outerjoin(
            Service, Service.id == Booking.service_id,
        ).filter(
            Booking.braider_id == braider.id,
        ).order_by(
            Booking.booking_date.asc(),
            Booking.booking_time.asc(),
        ).all()
    except SQLAlchemyError as exc:
        logger.exception('Failed to list bookings for user %s', current_user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Erro ao buscar agendamentos',
        ) from exc

    bookings = [format_booking(booking, service) for booking, service in rows]
    return {
        'success': True,
        'braider': {
            'id': braider.id,
            'name': braider.name,
            'contactEmail': braider.contact_email,
            'status': braider.status,
        },
        'bookings': bookings,
        'count': len(bookings),
    }


@router.patch('')
def update_booking_status(
    data: UpdateBookingStatusRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: BookingNotifier = Depends(get_booking_notifier),
):
    try:
        booking = db.query(Booking).filter(Booking.id == data.booking_id).first()
        if booking is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Agendamento não encontrado',
            )

        braider = db.query(Braider).filter(Braider.id == booking.braider_id).first()
        if braider is None or braider.user_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Não autorizado',
            )

        # Slot flags are left alone here; only the reservation path touches them.
        updated = db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status.not_in(TERMINAL_STATUSES),
            )
            .values(status=data.status, updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        if updated.rowcount != 1:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Não é possível alterar um agendamento concluído ou cancelado',
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update booking %s', data.booking_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Erro ao atualizar status',
        ) from exc

    logger.info('Booking %s moved to %s by user %s', data.booking_id, data.status, current_user.id)
    background_tasks.add_task(
        notifier.notify_booking_status_changed,
        data.booking_id,
        braider.id,
        data.status,
    )
    return {'success': True, 'message': 'Status atualizado com sucesso'}
