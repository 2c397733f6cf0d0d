from datetime import timedelta

from backend.models.booking import Booking


def _book(client, booking_payload, **overrides) -> str:
    response = client.post('/bookings', json={**booking_payload, **overrides})
    assert response.status_code == 201
    return response.json()['bookingId']


def _set_status(session_factory, booking_id: str, status: str) -> None:
    with session_factory() as db:
        db.query(Booking).filter(Booking.id == booking_id).update({Booking.status: status})
        db.commit()


def test_list_my_bookings_requires_authentication(client) -> None:
    response = client.get('/user/bookings')

    assert response.status_code == 401


def test_list_my_bookings_rejects_invalid_token(client) -> None:
    response = client.get('/user/bookings', headers={'Authorization': 'Bearer not-a-token'})

    assert response.status_code == 401
    assert response.json() == {'success': False, 'error': 'Token inválido'}


def test_list_my_bookings_returns_confirmed_bookings_newest_first(
    client, marketplace, booking_payload, session_factory, auth_headers
) -> None:
    later_date = (marketplace.booking_date + timedelta(days=1)).isoformat()
    earlier = _book(client, booking_payload, clientEmail=marketplace.client_email)
    later = _book(client, booking_payload, clientEmail=marketplace.client_email, date=later_date)
    pending = _book(client, booking_payload, clientEmail=marketplace.client_email, time='16:00')
    _set_status(session_factory, earlier, 'confirmed')
    _set_status(session_factory, later, 'confirmed')

    response = client.get('/user/bookings', headers=auth_headers(marketplace.client_email))

    assert response.status_code == 200
    body = response.json()
    assert [booking['id'] for booking in body['bookings']] == [later, earlier]
    assert pending not in [booking['id'] for booking in body['bookings']]
    assert body['count'] == 2
    assert body['bookings'][0]['status'] == 'Confirmado'
    assert body['bookings'][0]['braider']['name'] == 'Ana Tranças'


def test_list_my_bookings_ignores_other_clients(client, marketplace, booking_payload, session_factory, auth_headers) -> None:
    booking_id = _book(client, booking_payload)
    _set_status(session_factory, booking_id, 'confirmed')

    response = client.get('/user/bookings', headers=auth_headers(marketplace.client_email))

    assert response.json()['bookings'] == []
