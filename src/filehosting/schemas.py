from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

# SQLite INTEGER is a signed 64-bit value.
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1


def to_datetime(epoch_seconds: int) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=UTC)


def parse_timestamp(value: str, *, end_of_day: bool = False) -> int:
    """Parse unix seconds or an ISO-8601 date/datetime into unix seconds.

    Naive datetimes and bare dates are read as UTC. With ``end_of_day`` a bare
    date resolves to its last second instead of midnight.
    """
    raw = value.strip()
    if not raw:
        raise ValueError("timestamp must not be empty")
    if raw.lstrip("-").isdigit():
        return _check_range(int(raw), value)

    try:
        day = date.fromisoformat(raw)
    except ValueError:
        day = None
    if day is not None and len(raw) == 10:
        parsed = datetime(day.year, day.month, day.day, tzinfo=UTC)
        if end_of_day:
            parsed += timedelta(days=1, seconds=-1)
        return int(parsed.timestamp())

    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f"invalid timestamp: {value}") from exc
    if parsed.tzinfo is None or parsed.tzinfo.utcoffset(parsed) is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp())


def _check_range(seconds: int, raw: str) -> int:
    if not SQLITE_INT_MIN <= seconds <= SQLITE_INT_MAX:
        raise ValueError(f"timestamp out of range: {raw.strip()}")
    return seconds


class DTOBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class FileRecord(DTOBase):
    id: int = Field(ge=1)
    filename: str = Field(min_length=1)
    size: int = Field(ge=0)
    uploaded_at: int = Field(ge=0)

    @property
    def uploaded_at_datetime(self) -> datetime:
        return to_datetime(self.uploaded_at)
