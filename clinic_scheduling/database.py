import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic_scheduling.db")

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_shift_schema_checked = False
_appointment_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_shift_schema() -> None:
    global _shift_schema_checked

    if _shift_schema_checked:
        return

    with _schema_lock:
        if _shift_schema_checked:
            return

        inspector = inspect(engine)
        table_names = inspector.get_table_names()

        with engine.begin() as connection:
            if 'staff_shifts' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('staff_shifts')}
                migration_steps = [
                    ('shift_type', "ALTER TABLE staff_shifts ADD COLUMN shift_type VARCHAR(20) DEFAULT 'regular'"),
                    ('is_available', 'ALTER TABLE staff_shifts ADD COLUMN is_available BOOLEAN DEFAULT TRUE'),
                    ('notes', 'ALTER TABLE staff_shifts ADD COLUMN notes TEXT'),
                    ('updated_at', 'ALTER TABLE staff_shifts ADD COLUMN updated_at TIMESTAMP'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_staff_shifts_staff_date ON staff_shifts(staff_id, date)')
                )

            if 'doctor_default_shifts' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('doctor_default_shifts')}
                if 'updated_at' not in existing_columns:
                    connection.execute(text('ALTER TABLE doctor_default_shifts ADD COLUMN updated_at TIMESTAMP'))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_default_shifts_user ON doctor_default_shifts(user_id)')
                )

        _shift_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('description', 'ALTER TABLE appointments ADD COLUMN description TEXT'),
            ('type', "ALTER TABLE appointments ADD COLUMN type VARCHAR(20) DEFAULT 'consultation'"),
            ('created_by', 'ALTER TABLE appointments ADD COLUMN created_by INTEGER'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_provider_scheduled '
                    'ON appointments(provider_id, scheduled_at)'
                )
            )
            # One active booking per provider start time; cancelled rows free the slot.
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot '
                    'ON appointments(organization_id, provider_id, scheduled_at) '
                    "WHERE status <> 'cancelled'"
                )
            )

        _appointment_schema_checked = True
