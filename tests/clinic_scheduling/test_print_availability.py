from datetime import date, datetime, time

import pytest

from clinic_scheduling import print_availability
from clinic_scheduling.models.appointment import Appointment
from clinic_scheduling.models.shift import ShiftOverride


def test_main_prints_slots_with_reasons(schedule_db, doctor, capsys, monkeypatch: pytest.MonkeyPatch) -> None:
    schedule_db.add(ShiftOverride(
        organization_id=1,
        staff_id=doctor.id,
        date=date(2024, 6, 10),
        start_time=time(9, 0),
        end_time=time(10, 0),
    ))
    schedule_db.add(Appointment(
        organization_id=1,
        provider_id=doctor.id,
        patient_id=5,
        title='Checkup',
        scheduled_at=datetime(2024, 6, 10, 9, 30),
    ))
    schedule_db.commit()
    monkeypatch.setattr(print_availability, 'SessionLocal', lambda: schedule_db)

    print_availability.main([
        '--organization', '1',
        '--provider', str(doctor.id),
        '--date', '2024-06-10',
        '--granularity', '30',
    ])

    output = capsys.readouterr().out.splitlines()
    assert output[0] == f'Provider {doctor.id} on 2024-06-10 (Monday): 09:00-10:00 [override]'
    assert output[1:] == ['  09:00  open', '  09:30  booked', '  10:00  open']


def test_main_reports_missing_shift(schedule_db, doctor, capsys, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(print_availability, 'SessionLocal', lambda: schedule_db)

    print_availability.main(['--organization', '1', '--provider', str(doctor.id), '--date', '2024-06-11'])

    assert capsys.readouterr().out.strip() == f'No shift for provider {doctor.id} on 2024-06-11 (Tuesday).'


@pytest.mark.parametrize(
    'argv',
    [
        ['--organization', '1', '--provider', '3', '--date', '10/06/2024'],
        ['--organization', '1', '--provider', '3', '--date', '2024-06-10', '--granularity', '0'],
    ],
)
def test_main_exits_on_invalid_arguments(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exit_info:
        print_availability.main(argv)

    assert exit_info.value.code == 1
