"""Booking request schema and payload validation."""

import re
from datetime import date, datetime, time
from enum import Enum
from typing import Any, NewType

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator, model_validator
from pydantic_core import PydanticCustomError

from backend.models.booking import STATUS_LABELS

BraiderId = NewType('BraiderId', str)
ServiceId = NewType('ServiceId', str)
AvailabilityId = NewType('AvailabilityId', str)
BookingId = NewType('BookingId', str)

MIN_CLIENT_NAME_LENGTH = 2
MAX_CLIENT_NAME_LENGTH = 100
MIN_PHONE_LENGTH = 10
MAX_PHONE_LENGTH = 20
MIN_PHONE_DIGITS = 9
MAX_ADDRESS_LENGTH = 300
MAX_BOOKING_NOTES_LENGTH = 500

INVALID_PAYLOAD_MESSAGE = 'Dados inválidos'

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
_PHONE_CHARACTERS = re.compile(r'^\+?[\d\s().\-]+$')
_TIME_PATTERN = re.compile(r'^\d{2}:\d{2}(:\d{2})?$')
_SCRIPT_TAG = re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL)
_HTML_TAG = re.compile(r'<[^>]+>')
_JS_PROTOCOL = re.compile(r'javascript:', re.IGNORECASE)
_EVENT_HANDLER = re.compile(r'on\w+\s*=', re.IGNORECASE)

# Messages for missing or wrongly typed fields, keyed by payload name.
FIELD_ERROR_MESSAGES = {
    'braiderId': 'ID do trancista é obrigatório',
    'serviceId': 'ID do serviço é obrigatório',
    'clientName': 'Nome do cliente é obrigatório',
    'clientEmail': 'Email inválido',
    'clientPhone': 'Telefone é obrigatório',
    'date': 'Data inválida',
    'time': 'Formato de hora inválido',
    'bookingType': 'Tipo de atendimento inválido',
    'clientAddress': 'Endereço inválido',
    'notes': 'Observações inválidas',
    'availabilityId': 'ID de disponibilidade inválido',
}


class LocationType(str, Enum):
    CLIENT_HOME = 'domicilio'
    BRAIDER_LOCATION = 'trancista'


class BookingValidationError(Exception):
    """Carries the first violated constraint of a booking payload."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _invalid(message: str) -> PydanticCustomError:
    return PydanticCustomError('booking_invalid', message)


def strip_markup(value: str) -> str:
    value = _SCRIPT_TAG.sub('', value)
    value = _HTML_TAG.sub('', value)
    value = _JS_PROTOCOL.sub('', value)
    value = _EVENT_HANDLER.sub('', value)
    return value.strip()


class BookingRequest(BaseModel):
    braider_id: BraiderId = Field(alias='braiderId')
    service_id: ServiceId = Field(alias='serviceId')
    client_name: str = Field(alias='clientName')
    client_email: str = Field(alias='clientEmail')
    client_phone: str = Field(alias='clientPhone')
    booking_date: date = Field(alias='date')
    booking_time: time = Field(alias='time')
    booking_type: LocationType = Field(alias='bookingType')
    client_address: str | None = Field(default=None, alias='clientAddress')
    notes: str = ''
    availability_id: AvailabilityId | None = Field(default=None, alias='availabilityId')

    class Config:
        populate_by_name = True

    @field_validator('braider_id', 'service_id')
    @classmethod
    def validate_identifier(cls, value: str, info: ValidationInfo) -> str:
        normalized = value.strip()
        if not normalized:
            alias = cls.model_fields[info.field_name].alias
            raise _invalid(FIELD_ERROR_MESSAGES[alias])
        return normalized

    @field_validator('client_name')
    @classmethod
    def validate_client_name(cls, value: str) -> str:
        normalized = ' '.join(strip_markup(value).split())
        if len(normalized) < MIN_CLIENT_NAME_LENGTH:
            raise _invalid('Nome do cliente é obrigatório')
        if len(normalized) > MAX_CLIENT_NAME_LENGTH:
            raise _invalid('Nome muito longo')
        return normalized

    @field_validator('client_email')
    @classmethod
    def validate_client_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not _EMAIL_PATTERN.match(normalized):
            raise _invalid('Email inválido')
        return normalized

    @field_validator('client_phone')
    @classmethod
    def validate_client_phone(cls, value: str) -> str:
        raw = value.strip()
        if not raw:
            raise _invalid('Telefone é obrigatório')
        if len(raw) < MIN_PHONE_LENGTH:
            raise _invalid('Telefone deve ter pelo menos 10 dígitos')
        if len(raw) > MAX_PHONE_LENGTH:
            raise _invalid('Telefone muito longo')
        if not _PHONE_CHARACTERS.match(raw):
            raise _invalid('Telefone inválido')

        digits = re.sub(r'\D', '', raw)
        if len(digits) < MIN_PHONE_DIGITS:
            raise _invalid('Telefone inválido')
        return f'+{digits}' if raw.startswith('+') else digits

    @field_validator('booking_date', mode='before')
    @classmethod
    def parse_date(cls, value: Any) -> date:
        if isinstance(value, datetime):
            parsed = value.date()
        elif isinstance(value, date):
            parsed = value
        elif isinstance(value, str):
            try:
                parsed = date.fromisoformat(value.strip()[:10])
            except ValueError:
                raise _invalid('Data inválida') from None
        else:
            raise _invalid('Data inválida')

        if parsed < date.today():
            raise _invalid('Data deve ser no futuro')
        return parsed

    @field_validator('booking_time', mode='before')
    @classmethod
    def parse_time(cls, value: Any) -> time:
        if isinstance(value, time):
            return value.replace(microsecond=0)
        if not isinstance(value, str) or not _TIME_PATTERN.match(value.strip()):
            raise _invalid('Formato de hora inválido')
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            raise _invalid('Formato de hora inválido') from None

    @field_validator('booking_type', mode='before')
    @classmethod
    def normalize_booking_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
        if value not in {location.value for location in LocationType}:
            raise _invalid('Tipo de atendimento inválido')
        return value

    @field_validator('client_address')
    @classmethod
    def validate_client_address(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = strip_markup(value)
        if not normalized:
            return None
        if len(normalized) > MAX_ADDRESS_LENGTH:
            raise _invalid('Endereço muito longo')
        return normalized

    @field_validator('notes', mode='before')
    @classmethod
    def validate_notes(cls, value: Any) -> Any:
        if value is None:
            return ''
        if not isinstance(value, str):
            raise _invalid('Observações inválidas')
        normalized = strip_markup(value)
        if len(normalized) > MAX_BOOKING_NOTES_LENGTH:
            raise _invalid('Observações muito longas')
        return normalized

    @field_validator('availability_id', mode='before')
    @classmethod
    def normalize_availability_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @model_validator(mode='after')
    def require_address_for_home_service(self) -> 'BookingRequest':
        if self.booking_type is LocationType.CLIENT_HOME and not self.client_address:
            raise _invalid('Endereço é obrigatório para atendimento a domicílio')
        return self


def _first_error_message(exc: ValidationError) -> str:
    first_error = exc.errors()[0]
    if first_error['type'] == 'booking_invalid':
        return first_error['msg']

    location = first_error.get('loc') or ()
    if location:
        return FIELD_ERROR_MESSAGES.get(str(location[0]), INVALID_PAYLOAD_MESSAGE)
    return INVALID_PAYLOAD_MESSAGE


def validate_booking_payload(payload: Any) -> BookingRequest:
    """Turn a raw JSON payload into a ``BookingRequest``.

    Raises ``BookingValidationError`` with the message of the first violated
    constraint, in field order.
    """
    if not isinstance(payload, dict):
        raise BookingValidationError(INVALID_PAYLOAD_MESSAGE)

    try:
        return BookingRequest.model_validate(payload)
    except ValidationError as exc:
        raise BookingValidationError(_first_error_message(exc)) from exc


def format_booking(booking, service=None, braider=None) -> dict:
    """Shape a booking row the way the dashboards consume it."""
    formatted = {
        'id': booking.id,
        'braiderId': booking.braider_id,
        'serviceId': booking.service_id,
        'availabilityId': booking.availability_id,
        'clientName': booking.client_name,
        'clientEmail': booking.client_email,
        'clientPhone': booking.client_phone,
        'clientAddress': booking.client_address,
        'date': booking.booking_date.isoformat(),
        'time': booking.booking_time.strftime('%H:%M'),
        'bookingType': booking.service_type,
        'status': STATUS_LABELS.get(booking.status, STATUS_LABELS['pending']),
        'totalAmount': float(booking.total_amount or 0),
        'notes': booking.notes or '',
        'createdAt': booking.created_at.isoformat() if booking.created_at else None,
        'service': None,
    }
    if service is not None:
        formatted['service'] = {
            'id': service.id,
            'name': service.name,
            'price': float(service.price or 0),
            'durationMinutes': service.duration_minutes or 0,
        }
    if braider is not None:
        formatted['braider'] = {
            'id': braider.id,
            'name': braider.name,
            'contactPhone': braider.contact_phone,
            'location': braider.location,
        }
    return formatted
