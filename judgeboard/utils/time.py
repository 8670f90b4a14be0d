from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp; the database stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    # If aware, convert to UTC and drop tzinfo so it compares with stored values
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt
