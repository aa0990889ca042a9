# backend/ptcoach/core/timeutils.py
from datetime import datetime, UTC


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Приводит дату к aware-UTC. SQLite отдает DateTime(timezone=True)
    без смещения, Postgres уже со смещением.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
