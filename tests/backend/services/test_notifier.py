import pytest
import requests

from backend.services import notifier as notifier_module
from backend.services.notifier import (
    BOOKING_CREATED_EVENT,
    BOOKING_STATUS_CHANGED_EVENT,
    BookingNotifier,
)


class FakeResponse:
    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')


@pytest.fixture
def posted(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    calls: list[dict] = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({'url': url, 'json': json, 'headers': headers, 'timeout': timeout})
        return FakeResponse()

    monkeypatch.setattr(notifier_module.requests, 'post', fake_post)
    return calls


def test_notifier_is_disabled_without_url(posted: list[dict]) -> None:
    booking_notifier = BookingNotifier(url='')

    assert booking_notifier.enabled is False
    assert booking_notifier.send(BOOKING_CREATED_EVENT, {'bookingId': 'b-1'}) is False
    assert posted == []


def test_notify_booking_created_posts_event_with_bearer_token(posted: list[dict]) -> None:
    booking_notifier = BookingNotifier(url='http://realtime.test/notify', token='secret', timeout_seconds=2)

    delivered = booking_notifier.notify_booking_created('b-1', 'br-1', '2030-05-10', '14:00', 'pending')

    assert delivered is True
    assert len(posted) == 1
    call = posted[0]
    assert call['url'] == 'http://realtime.test/notify'
    assert call['timeout'] == 2
    assert call['headers']['Authorization'] == 'Bearer secret'
    assert call['json']['event'] == BOOKING_CREATED_EVENT
    assert call['json']['data'] == {
        'bookingId': 'b-1',
        'braiderId': 'br-1',
        'date': '2030-05-10',
        'time': '14:00',
        'status': 'pending',
    }
    assert 'sentAt' in call['json']


def test_notifier_omits_authorization_without_token(posted: list[dict]) -> None:
    BookingNotifier(url='http://realtime.test/notify').notify_booking_status_changed('b-1', 'br-1', 'confirmed')

    assert 'Authorization' not in posted[0]['headers']
    assert posted[0]['json']['event'] == BOOKING_STATUS_CHANGED_EVENT
    assert posted[0]['json']['data']['status'] == 'confirmed'


@pytest.mark.parametrize(
    'failure',
    [
        requests.ConnectionError('connection refused'),
        requests.Timeout('timed out'),
    ],
)
def test_notifier_swallows_transport_errors(monkeypatch: pytest.MonkeyPatch, caplog, failure) -> None:
    def failing_post(*args, **kwargs):
        raise failure

    monkeypatch.setattr(notifier_module.requests, 'post', failing_post)

    with caplog.at_level('WARNING', logger='backend.services.notifier'):
        delivered = BookingNotifier(url='http://realtime.test/notify').send(BOOKING_CREATED_EVENT, {})

    assert delivered is False
    assert 'Failed to deliver booking_created notification' in caplog.text


def test_notifier_treats_error_status_as_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(notifier_module.requests, 'post', lambda *args, **kwargs: FakeResponse(503))

    assert BookingNotifier(url='http://realtime.test/notify').send(BOOKING_CREATED_EVENT, {}) is False
