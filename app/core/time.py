from datetime import UTC, date, datetime


def now_utc() -> datetime:
    # Naive UTC, matching the DateTime columns.
    return datetime.now(UTC).replace(tzinfo=None)


def today_utc() -> date:
    return now_utc().date()
