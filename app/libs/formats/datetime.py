from datetime import datetime, timezone


def now() -> datetime:
    """Current UTC time without tzinfo.
    All timestamps are stored naive in UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_tzinfo() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    """Convert a datetime (aware or naive) to naive UTC.
    - None -> None
    - aware -> converted to UTC, tzinfo dropped
    - naive -> assumed UTC already
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def iso(dt: datetime | None) -> str | None:
    """Render a stored timestamp the way JavaScript's toISOString does."""
    if dt is None:
        return None
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"

