import os
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_scheduling.database import Base  # noqa: E402
from clinic_scheduling.models.appointment import Appointment  # noqa: E402
from clinic_scheduling.models.shift import RecurringDefault, ShiftOverride  # noqa: E402
from clinic_scheduling.models.user import User  # noqa: E402

TABLES = [User.__table__, ShiftOverride.__table__, RecurringDefault.__table__, Appointment.__table__]


@pytest.fixture
def schedule_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture(autouse=True)
def skip_schema_migration(monkeypatch: pytest.MonkeyPatch) -> None:
    for module in ('shift_routes', 'availability_routes', 'appointment_routes'):
        monkeypatch.setattr(f'clinic_scheduling.routes.{module}.ensure_database_ready', lambda: None)


@pytest.fixture
def make_user(schedule_db):
    def _make_user(email: str, role: str, organization_id: int = 1, **fields) -> User:
        user = User(email=email, role=role, organization_id=organization_id, **fields)
        schedule_db.add(user)
        schedule_db.commit()
        schedule_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(make_user) -> User:
    return make_user('admin@clinic.test', 'admin')


@pytest.fixture
def doctor(make_user) -> User:
    return make_user('doctor@clinic.test', 'doctor', first_name='Ada', last_name='Moss')


@pytest.fixture
def receptionist(make_user) -> User:
    return make_user('desk@clinic.test', 'receptionist')


@pytest.fixture
def next_monday() -> date:
    # Always a Monday at least a week out, so bookings land in the future.
    today = date.today()
    return today + timedelta(days=7 - today.weekday() + 7)
