"""Best-effort booking events for the real-time layer.

Notifications are scheduled with FastAPI ``BackgroundTasks`` after the
response has been decided. Delivery is at most once: failures are logged and
dropped, never raised back into the request.
"""

import logging
from datetime import datetime, timezone
from typing import Any

import requests

from backend.core import config

logger = logging.getLogger(__name__)

BOOKING_CREATED_EVENT = 'booking_created'
BOOKING_STATUS_CHANGED_EVENT = 'booking_status_changed'


class BookingNotifier:
    def __init__(self, url: str, token: str = '', timeout_seconds: float = 3.0) -> None:
        self.url = url
        self.token = token
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _headers(self) -> dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def send(self, event: str, data: dict[str, Any]) -> bool:
        if not self.enabled:
            logger.debug('Real-time notifications disabled; dropping %s', event)
            return False

        payload = {
            'event': event,
            'sentAt': datetime.now(timezone.utc).isoformat(),
            'data': data,
        }
        try:
            response = requests.post(
                self.url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except Exception:
            logger.warning('Failed to deliver %s notification', event, exc_info=True)
            return False

        logger.debug('Delivered %s notification', event)
        return True

    def notify_booking_created(
        self,
        booking_id: str,
        braider_id: str,
        booking_date: str,
        booking_time: str,
        status: str,
    ) -> bool:
        return self.send(
            BOOKING_CREATED_EVENT,
            {
                'bookingId': booking_id,
                'braiderId': braider_id,
                'date': booking_date,
                'time': booking_time,
                'status': status,
            },
        )

    def notify_booking_status_changed(self, booking_id: str, braider_id: str, status: str) -> bool:
        return self.send(
            BOOKING_STATUS_CHANGED_EVENT,
            {
                'bookingId': booking_id,
                'braiderId': braider_id,
                'status': status,
            },
        )


booking_notifier = BookingNotifier(
    url=config.REALTIME_NOTIFY_URL,
    token=config.REALTIME_NOTIFY_TOKEN,
    timeout_seconds=config.REALTIME_NOTIFY_TIMEOUT_SECONDS,
)


def get_booking_notifier() -> BookingNotifier:
    return booking_notifier
