# (c) Copyright Datacraft, 2026
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (some engines, e.g. SQLite, drop
    the timezone on the way back)
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def mask_destination(destination: str) -> str:
    """Masks phone number or email address for log output

    >>> mask_destination("+244923456789")
    '*********6789'
    >>> mask_destination("john@example.com")
    'j***@example.com'
    """
    if "@" in destination:
        local, _, domain = destination.partition("@")
        return f"{local[:1]}***@{domain}"

    return "*" * max(len(destination) - 4, 0) + destination[-4:]
