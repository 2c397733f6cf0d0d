from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from backend.auth.dependencies import get_optional_user
from backend.core import config
from backend.database import get_db
from backend.models.user import User
from backend.schemas.booking import BookingValidationError, validate_booking_payload
from backend.services.notifier import BookingNotifier, get_booking_notifier
from backend.services.rate_limiter import (
    RateLimiter,
    RateLimitReason,
    client_identifier,
    get_booking_rate_limiter,
)
from backend.services.reservation import ReservationError, ReservationErrorCode, reserve_booking

router = APIRouter(tags=['bookings'])

RATE_LIMITED_MESSAGE = 'Muitas solicitações em pouco tempo. Aguarde alguns minutos.'
SECURITY_ERROR_MESSAGE = 'Erro interno de segurança'
UNEXPECTED_ERROR_MESSAGE = 'Erro inesperado ao processar agendamento'
SLOT_TAKEN_MESSAGE = 'Este horário já está ocupado. Por favor, escolha outro horário.'
BOOKING_CREATED_MESSAGE = 'Agendamento realizado com sucesso!'

RESERVATION_ERROR_RESPONSES = {
    ReservationErrorCode.SERVICE_NOT_FOUND: (status.HTTP_404_NOT_FOUND, 'Serviço não encontrado'),
    ReservationErrorCode.AVAILABILITY_NOT_FOUND: (
        status.HTTP_404_NOT_FOUND,
        'Horário de disponibilidade não encontrado',
    ),
    ReservationErrorCode.AVAILABILITY_TAKEN: (status.HTTP_409_CONFLICT, SLOT_TAKEN_MESSAGE),
    ReservationErrorCode.BOOKING_CONFLICT: (status.HTTP_409_CONFLICT, SLOT_TAKEN_MESSAGE),
    ReservationErrorCode.CLIENT_BOOKING_CONFLICT: (
        status.HTTP_409_CONFLICT,
        'Você já possui um agendamento neste mesmo dia e horário. Por favor, escolha outro horário.',
    ),
    ReservationErrorCode.INTERNAL: (status.HTTP_500_INTERNAL_SERVER_ERROR, UNEXPECTED_ERROR_MESSAGE),
}


async def _read_json(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


@router.post('/bookings', status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
    rate_limiter: RateLimiter = Depends(get_booking_rate_limiter),
    notifier: BookingNotifier = Depends(get_booking_notifier),
):
    # The attempt is counted before the body is looked at, so malformed
    # requests still spend the caller's quota.
    decision = await run_in_threadpool(
        rate_limiter.check,
        db,
        client_identifier(request),
        config.BOOKING_RATE_LIMIT_ACTION,
    )
    if not decision.allowed:
        if decision.reason is RateLimitReason.UNAVAILABLE:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=SECURITY_ERROR_MESSAGE)
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=RATE_LIMITED_MESSAGE)

    try:
        booking_request = validate_booking_payload(await _read_json(request))
    except BookingValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc

    client_id = current_user.id if current_user else None
    try:
        result = await run_in_threadpool(reserve_booking, db, booking_request, client_id)
    except ReservationError as exc:
        status_code, message = RESERVATION_ERROR_RESPONSES[exc.code]
        raise HTTPException(status_code=status_code, detail=message) from exc

    background_tasks.add_task(
        notifier.notify_booking_created,
        result.booking_id,
        result.braider_id,
        result.booking_date.isoformat(),
        result.booking_time.strftime('%H:%M'),
        result.status,
    )

    return {
        'success': True,
        'message': BOOKING_CREATED_MESSAGE,
        'bookingId': result.booking_id,
        'totalAmount': float(result.total_amount),
    }
