from datetime import datetime, timezone

from ..domain.errors import ValidationError


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_storage(ts: datetime) -> str:
    """Render a timestamp as fixed-width UTC ISO text.

    Every stored value has the same width and offset, so string comparison in
    SQL orders the same way as the datetimes do. Naive values are taken as UTC.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_storage(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


def parse_timestamp(raw: str, field: str = "timestamp") -> datetime:
    """Parse an ISO-8601 date or datetime from a query string.

    A bare date means midnight UTC, matching what browsers send from a date
    picker.
    """
    try:
        ts = datetime.fromisoformat(raw.strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}: {raw!r}, expected ISO-8601 date or datetime")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)
