import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.models.availability import BraiderAvailability
from backend.models.braider import Braider

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_MESSAGE = 'Banco de dados indisponível. Tente novamente mais tarde.'


class CreateAvailabilityRequest(BaseModel):
    email: str
    available_date: date = Field(alias='date')
    start_time: time = Field(alias='startTime')
    end_time: time = Field(alias='endTime')

    class Config:
        populate_by_name = True

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email é obrigatório')
        return normalized

    @field_validator('available_date')
    @classmethod
    def validate_available_date(cls, value: date) -> date:
        if value < date.today():
            raise ValueError('Data deve ser no futuro')
        return value

    @model_validator(mode='after')
    def validate_time_range(self) -> 'CreateAvailabilityRequest':
        if self.end_time <= self.start_time:
            raise ValueError('O horário final deve ser depois do horário inicial')
        return self


def format_slot(slot: BraiderAvailability) -> dict:
    return {
        'id': slot.id,
        'braiderId': slot.braider_id,
        'date': slot.available_date.isoformat(),
        'startTime': slot.start_time.strftime('%H:%M'),
        'endTime': slot.end_time.strftime('%H:%M'),
        'isBooked': bool(slot.is_booked),
        'createdAt': slot.created_at.isoformat() if slot.created_at else None,
        'updatedAt': slot.updated_at.isoformat() if slot.updated_at else None,
    }


def get_braider_by_email(email: str, db: Session) -> Braider:
    normalized_email = email.strip().lower()
    if not normalized_email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Email é obrigatório',
        )

    braider = db.query(Braider).filter(Braider.contact_email == normalized_email).first()
    if braider is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Perfil de trancista não encontrado',
        )
    return braider


def find_overlapping_slot(
    braider_id: str,
    available_date: date,
    start_time: time,
    end_time: time,
    db: Session,
) -> BraiderAvailability | None:
    return db.query(BraiderAvailability).filter(
        BraiderAvailability.braider_id == braider_id,
        BraiderAvailability.available_date == available_date,
        BraiderAvailability.start_time < end_time,
        BraiderAvailability.end_time > start_time,
    ).first()


@router.get('')
def list_availability(
    email: str = Query(...),
    slot_date: date | None = Query(default=None, alias='date'),
    date_start: date | None = Query(default=None, alias='dateStart'),
    date_end: date | None = Query(default=None, alias='dateEnd'),
    db: Session = Depends(get_db),
):
    try:
        braider = get_braider_by_email(email, db)

        query = db.query(BraiderAvailability).filter(BraiderAvailability.braider_id == braider.id)
        if date_start and date_end:
            query = query.filter(
                BraiderAvailability.available_date >= date_start,
                BraiderAvailability.available_date <= date_end,
            )
        elif slot_date:
            query = query.filter(BraiderAvailability.available_date == slot_date)

        slots = query.order_by(
            BraiderAvailability.available_date.asc(),
            BraiderAvailability.start_time.asc(),
        ).all()

        return {'success': True, 'data': [format_slot(slot) for slot in slots]}
    except SQLAlchemyError as exc:
        logger.exception('Failed to list availability for %s', email)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_MESSAGE,
        ) from exc


@router.post('', status_code=status.HTTP_201_CREATED)
def create_availability(data: CreateAvailabilityRequest, db: Session = Depends(get_db)):
    try:
        braider = get_braider_by_email(data.email, db)

        overlapping = find_overlapping_slot(
            braider.id,
            data.available_date,
            data.start_time,
            data.end_time,
            db,
        )
        if overlapping:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Já existe um horário conflitante neste período',
            )

        now = datetime.now()
        slot = BraiderAvailability(
            braider_id=braider.id,
            available_date=data.available_date,
            start_time=data.start_time,
            end_time=data.end_time,
            is_booked=False,
            created_at=now,
            updated_at=now,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)

        logger.info('Availability %s created for braider %s', slot.id, braider.id)
        return {
            'success': True,
            'message': 'Horário adicionado com sucesso!',
            'data': format_slot(slot),
        }
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create availability for %s', data.email)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_MESSAGE,
        ) from exc


@router.delete('')
def remove_availability(
    availability_id: str = Query(..., alias='availabilityId'),
    email: str = Query(...),
    db: Session = Depends(get_db),
):
    try:
        braider = get_braider_by_email(email, db)

        # Booked slots are never deleted; the is_booked guard keeps this
        # atomic against a reservation claiming the slot concurrently.
        deleted = db.query(BraiderAvailability).filter(
            BraiderAvailability.id == availability_id,
            BraiderAvailability.braider_id == braider.id,
            BraiderAvailability.is_booked.is_(False),
        ).delete(synchronize_session=False)

        if not deleted:
            db.rollback()
            slot = db.query(BraiderAvailability).filter(
                BraiderAvailability.id == availability_id,
                BraiderAvailability.braider_id == braider.id,
            ).first()
            if slot is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail='Horário não encontrado ou não autorizado',
                )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Não é possível remover um horário que já está reservado',
            )

        db.commit()
        logger.info('Availability %s removed for braider %s', availability_id, braider.id)
        return {'success': True, 'message': 'Horário removido com sucesso!'}
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to remove availability %s', availability_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_MESSAGE,
        ) from exc
