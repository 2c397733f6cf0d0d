from datetime import date, time, timedelta

import pytest

from backend.schemas.booking import (
    BookingValidationError,
    LocationType,
    strip_markup,
    validate_booking_payload,
)


def _payload(**overrides) -> dict:
    payload = {
        'braiderId': 'braider-1',
        'serviceId': 'service-1',
        'clientName': 'João Silva',
        'clientEmail': 'joao@example.com',
        'clientPhone': '(11) 99999-9999',
        'date': (date.today() + timedelta(days=3)).isoformat(),
        'time': '14:00',
        'bookingType': 'trancista',
    }
    payload.update(overrides)
    return payload


def _error_for(payload) -> str:
    with pytest.raises(BookingValidationError) as exception_info:
        validate_booking_payload(payload)
    return exception_info.value.message


def test_validate_booking_payload_normalizes_fields() -> None:
    request = validate_booking_payload(
        _payload(
            braiderId=' braider-1 ',
            clientName='  João   Silva ',
            clientEmail=' JOAO@Example.COM ',
            clientPhone='+351 912-345-678',
            time='09:30:00',
            bookingType=' Domicilio ',
            clientAddress=' Rua das Flores, 12 ',
            availabilityId='  ',
        )
    )

    assert request.braider_id == 'braider-1'
    assert request.client_name == 'João Silva'
    assert request.client_email == 'joao@example.com'
    assert request.client_phone == '+351912345678'
    assert request.booking_time == time(9, 30)
    assert request.booking_type is LocationType.CLIENT_HOME
    assert request.client_address == 'Rua das Flores, 12'
    assert request.availability_id is None
    assert request.notes == ''


def test_validate_booking_payload_strips_markup_from_free_text() -> None:
    request = validate_booking_payload(
        _payload(clientName='<b>Maria</b> Souza', notes='<script>alert(1)</script>Trazer fotos')
    )

    assert request.client_name == 'Maria Souza'
    assert request.notes == 'Trazer fotos'


def test_strip_markup_removes_event_handlers_and_javascript_urls() -> None:
    assert strip_markup('javascript:go() onclick=run()') == 'go() run()'


@pytest.mark.parametrize(
    ('overrides', 'message'),
    [
        ({'braiderId': None}, 'ID do trancista é obrigatório'),
        ({'serviceId': '   '}, 'ID do serviço é obrigatório'),
        ({'clientName': 'J'}, 'Nome do cliente é obrigatório'),
        ({'clientName': 'x' * 101}, 'Nome muito longo'),
        ({'clientEmail': 'invalid-email'}, 'Email inválido'),
        ({'clientPhone': '123'}, 'Telefone deve ter pelo menos 10 dígitos'),
        ({'clientPhone': '1' * 21}, 'Telefone muito longo'),
        ({'clientPhone': 'invalid-phone'}, 'Telefone inválido'),
        ({'date': '10/03/2025'}, 'Data inválida'),
        ({'date': '2020-01-01'}, 'Data deve ser no futuro'),
        ({'time': '2pm'}, 'Formato de hora inválido'),
        ({'time': '25:00'}, 'Formato de hora inválido'),
        ({'bookingType': 'salon'}, 'Tipo de atendimento inválido'),
        ({'notes': 'n' * 501}, 'Observações muito longas'),
        ({'bookingType': 'domicilio', 'clientAddress': ''}, 'Endereço é obrigatório para atendimento a domicílio'),
    ],
)
def test_validate_booking_payload_rejects_invalid_fields(overrides: dict, message: str) -> None:
    assert _error_for(_payload(**overrides)) == message


def test_validate_booking_payload_reports_missing_field() -> None:
    payload = _payload()
    del payload['clientEmail']

    assert _error_for(payload) == 'Email inválido'


def test_validate_booking_payload_reports_only_first_violation() -> None:
    payload = _payload(clientName='', clientEmail='nope', bookingType='salon')

    assert _error_for(payload) == 'Nome do cliente é obrigatório'


@pytest.mark.parametrize('payload', [None, [], 'booking', 42])
def test_validate_booking_payload_rejects_non_object_payloads(payload) -> None:
    assert _error_for(payload) == 'Dados inválidos'


def test_validate_booking_payload_accepts_today() -> None:
    request = validate_booking_payload(_payload(date=date.today().isoformat()))

    assert request.booking_date == date.today()
