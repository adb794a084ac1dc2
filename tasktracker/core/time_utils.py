from datetime import datetime, timezone


def utc_now() -> datetime:
    """Naive UTC now; every timestamp column in the schema is naive UTC."""
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
