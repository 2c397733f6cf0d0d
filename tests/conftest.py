import os
from datetime import date, time, timedelta
from decimal import Decimal
from types import SimpleNamespace

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('REALTIME_NOTIFY_URL', '')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from backend.auth import jwt_handler  # noqa: E402
from backend.database import Base, build_engine, get_db  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models.availability import BraiderAvailability  # noqa: E402
from backend.models.braider import Braider, Service  # noqa: E402
from backend.models.user import User  # noqa: E402
from backend.services.notifier import BookingNotifier, get_booking_notifier  # noqa: E402
from backend.services.rate_limiter import RateLimiter, get_booking_rate_limiter  # noqa: E402


class RecordingNotifier(BookingNotifier):
    def __init__(self) -> None:
        super().__init__(url='http://realtime.test/notify')
        self.sent: list[tuple[str, dict]] = []

    def send(self, event, data):
        self.sent.append((event, data))
        return True


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def rate_limiter():
    return RateLimiter(max_requests=100, window_minutes=60)


@pytest.fixture
def client(session_factory, notifier, rate_limiter):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_booking_notifier] = lambda: notifier
    app.dependency_overrides[get_booking_rate_limiter] = lambda: rate_limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def marketplace(session_factory):
    """One braider with a user account, a priced service and an open slot."""
    booking_date = date.today() + timedelta(days=7)

    with session_factory() as db:
        owner = User(email='ana@trancas.pt', name='Ana', role='braider')
        client_user = User(email='cliente@example.com', name='Cliente', role='customer')
        db.add_all([owner, client_user])
        db.flush()

        braider = Braider(
            user_id=owner.id,
            name='Ana Tranças',
            contact_email='ana@trancas.pt',
            contact_phone='+351912345678',
            location='Lisboa',
            status='approved',
        )
        db.add(braider)
        db.flush()

        service = Service(braider_id=braider.id, name='Box braids', price=Decimal('80.00'), duration_minutes=240)
        slot = BraiderAvailability(
            braider_id=braider.id,
            available_date=booking_date,
            start_time=time(14, 0),
            end_time=time(18, 0),
            is_booked=False,
        )
        db.add_all([service, slot])
        db.commit()

        return SimpleNamespace(
            owner_id=owner.id,
            owner_email=owner.email,
            client_user_id=client_user.id,
            client_email=client_user.email,
            braider_id=braider.id,
            service_id=service.id,
            slot_id=slot.id,
            booking_date=booking_date,
        )


@pytest.fixture
def booking_payload(marketplace):
    return {
        'braiderId': marketplace.braider_id,
        'serviceId': marketplace.service_id,
        'clientName': 'João Silva',
        'clientEmail': 'joao@example.com',
        'clientPhone': '(11) 99999-9999',
        'date': marketplace.booking_date.isoformat(),
        'time': '14:00',
        'bookingType': 'trancista',
        'clientAddress': '',
        'notes': 'Primeira vez',
    }


@pytest.fixture
def auth_headers():
    def build(email: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {jwt_handler.create_access_token(subject=email)}"}

    return build
