from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.core import config


def _configure_sqlite(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write; take the write lock up
    # front so check-then-write sequences are serialized between connections.
    # Read-only sessions take the lock too, so on SQLite (development and
    # tests only) every request runs one at a time, waiting at most the busy
    # timeout. PostgreSQL never gets this hook.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    timeout_ms = config.DB_STATEMENT_TIMEOUT_MS

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout_ms / 1000}
        if ":memory:" in database_url or database_url in {"sqlite://", "sqlite:///"}:
            # One shared connection; there is no second writer to serialize against.
            return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
        engine = create_engine(database_url, connect_args=connect_args)
        _configure_sqlite(engine)
        return engine

    return create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args={"options": f"-c statement_timeout={timeout_ms}"},
    )


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_booking_schema_checked = False


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(engine)

        if 'braider_availability' not in inspector.get_table_names():
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('braider_availability')}
        migration_steps = [
            ('is_booked', 'ALTER TABLE braider_availability ADD COLUMN is_booked BOOLEAN DEFAULT FALSE'),
            ('updated_at', 'ALTER TABLE braider_availability ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_braider_availability_braider_date '
                    'ON braider_availability(braider_id, available_date, start_time)'
                )
            )

        _availability_schema_checked = True


def ensure_booking_schema() -> None:
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(engine)

        if 'bookings' not in inspector.get_table_names():
            _booking_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('bookings')}
        migration_steps = [
            ('availability_id', 'ALTER TABLE bookings ADD COLUMN availability_id VARCHAR(36)'),
            ('client_address', 'ALTER TABLE bookings ADD COLUMN client_address VARCHAR'),
            ('notes', 'ALTER TABLE bookings ADD COLUMN notes VARCHAR'),
            ('updated_at', 'ALTER TABLE bookings ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            # Older tables predate the one-active-booking-per-slot guarantee.
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_active_slot '
                    'ON bookings(braider_id, booking_date, booking_time) '
                    "WHERE status <> 'cancelled'"
                )
            )
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_bookings_client_slot '
                    'ON bookings(client_email, booking_date, booking_time)'
                )
            )

        _booking_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
