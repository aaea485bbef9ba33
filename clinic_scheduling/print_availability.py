"""Print a provider's slots for one date to stdout.

Usage:
    python -m clinic_scheduling.print_availability --organization 1 --provider 3 --date 2024-06-10
"""
import argparse
import sys
from datetime import date

from clinic_scheduling.database import SessionLocal
from clinic_scheduling.scheduling.loader import build_availability_view
from clinic_scheduling.scheduling.shifts import weekday_name


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Show bookable slots for a provider on a date.")
    parser.add_argument("--organization", type=int, required=True)
    parser.add_argument("--provider", type=int, required=True)
    parser.add_argument("--date", required=True, help="Calendar date, YYYY-MM-DD.")
    parser.add_argument("--granularity", type=int, default=None, help="Minutes between slots.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        slot_date = date.fromisoformat(args.date)
    except ValueError:
        print(f"Invalid date: {args.date!r}. Expected YYYY-MM-DD.", file=sys.stderr)
        sys.exit(1)

    if args.granularity is not None and args.granularity <= 0:
        print("Granularity must be a positive number of minutes.", file=sys.stderr)
        sys.exit(1)

    db = SessionLocal()
    try:
        view = build_availability_view(db, args.organization, [args.provider], slot_date, args.granularity)
    finally:
        db.close()

    window = view.resolve_shift(args.provider, slot_date)
    if window is None:
        print(f"No shift for provider {args.provider} on {slot_date} ({weekday_name(slot_date)}).")
        return

    print(f"Provider {args.provider} on {slot_date} ({weekday_name(slot_date)}): "
          f"{window.start:%H:%M}-{window.end:%H:%M} [{window.source}]")
    for slot in view.describe_slots(args.provider, slot_date):
        print(f"  {slot.time:%H:%M}  {slot.reason}")


if __name__ == "__main__":
    main()
