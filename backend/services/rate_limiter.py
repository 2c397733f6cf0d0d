"""Trailing-window admission control backed by the database.

Every admitted attempt is stored as a ``rate_limit_hits`` row, so counters are
shared by every process instance and the window is exact: an attempt is
admitted only while fewer than ``max_requests`` hits fall inside the last
``window_minutes``. Count and insert happen while holding the row lock of the
identifier/action bucket, so concurrent requests for the same caller are
serialized and cannot both slip under the limit.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.rate_limit import RateLimitBucket, RateLimitHit

logger = logging.getLogger(__name__)

UNKNOWN_IDENTIFIER = 'unknown'
BUCKET_LOCK_ATTEMPTS = 2


class RateLimitReason(str, Enum):
    EXCEEDED = 'exceeded'
    UNAVAILABLE = 'unavailable'


class RateLimitStoreError(Exception):
    """The bucket for an identifier and action could not be locked."""


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reason: RateLimitReason | None = None


def client_identifier(request: Request) -> str:
    forwarded_for = request.headers.get('x-forwarded-for', '')
    first_hop = forwarded_for.split(',')[0].strip()
    if first_hop:
        return first_hop

    real_ip = request.headers.get('x-real-ip', '').strip()
    if real_ip:
        return real_ip

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_IDENTIFIER


class RateLimiter:
    """Admits at most ``max_requests`` per identifier and action per trailing window."""

    def __init__(
        self,
        max_requests: int,
        window_minutes: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_requests <= 0 or window_minutes <= 0:
            raise ValueError('Rate limit and window must be positive integers.')
        self.max_requests = max_requests
        self.window_seconds = window_minutes * 60
        self._clock = clock

    def check(self, db: Session, identifier: str, action: str) -> RateLimitDecision:
        """Count one attempt and decide whether it is admitted.

        Any datastore failure denies the request.
        """
        identifier = (identifier or '').strip() or UNKNOWN_IDENTIFIER

        try:
            admitted = self._admit(db, identifier, action)
        except (SQLAlchemyError, RateLimitStoreError):
            logger.exception('Rate limit check failed for identifier=%s action=%s', identifier, action)
            try:
                db.rollback()
            except SQLAlchemyError:
                logger.exception('Rollback after rate limit failure also failed')
            return RateLimitDecision(allowed=False, reason=RateLimitReason.UNAVAILABLE)

        if not admitted:
            logger.warning('Rate limit exceeded for identifier=%s action=%s', identifier, action)
            return RateLimitDecision(allowed=False, reason=RateLimitReason.EXCEEDED)

        return RateLimitDecision(allowed=True)

    def _admit(self, db: Session, identifier: str, action: str) -> bool:
        now = self._clock()
        cutoff = now - self.window_seconds
        bucket = self._lock_bucket(db, identifier, action)

        admitted_in_window = db.query(func.count(RateLimitHit.id)).filter(
            RateLimitHit.bucket_id == bucket.id,
            RateLimitHit.hit_at > cutoff,
        ).scalar()
        if admitted_in_window >= self.max_requests:
            db.rollback()
            return False

        db.add(RateLimitHit(bucket_id=bucket.id, hit_at=now))
        db.query(RateLimitHit).filter(
            RateLimitHit.bucket_id == bucket.id,
            RateLimitHit.hit_at <= cutoff,
        ).delete(synchronize_session=False)
        db.commit()
        return True

    def _lock_bucket(self, db: Session, identifier: str, action: str) -> RateLimitBucket:
        for _ in range(BUCKET_LOCK_ATTEMPTS):
            bucket = db.query(RateLimitBucket).filter(
                RateLimitBucket.identifier == identifier,
                RateLimitBucket.action == action,
            ).with_for_update().first()
            if bucket is not None:
                return bucket

            bucket = RateLimitBucket(identifier=identifier, action=action)
            db.add(bucket)
            try:
                db.flush()
            except IntegrityError:
                # Another request created the bucket first; lock its row instead.
                db.rollback()
                continue
            return bucket

        raise RateLimitStoreError(f'Could not lock rate limit bucket {identifier}/{action}')


booking_rate_limiter = RateLimiter(
    max_requests=config.BOOKING_RATE_LIMIT_MAX,
    window_minutes=config.BOOKING_RATE_LIMIT_WINDOW_MINUTES,
)


def get_booking_rate_limiter() -> RateLimiter:
    return booking_rate_limiter
