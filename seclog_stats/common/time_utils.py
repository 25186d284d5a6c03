"""Time helpers for run metadata and local wall-clock windows."""

from __future__ import annotations

from datetime import datetime, timezone

from seclog_stats.common.constants import FILE_STAMP_FORMAT, LOCAL_DATETIME_FORMAT
from seclog_stats.common.errors import ConfigError


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def local_now() -> datetime:
    return datetime.now().astimezone()


def parse_local_datetime(value: str) -> datetime:
    """Parse ``YYYY-MM-DD HH:MM:SS`` as a local wall-clock instant."""

    try:
        parsed = datetime.strptime(value.strip(), LOCAL_DATETIME_FORMAT)
    except ValueError as exc:
        raise ConfigError(f"Invalid date and time {value!r}, expected YYYY-MM-DD HH:MM:SS") from exc
    return parsed.astimezone()


def epoch_to_local(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp).astimezone()


def format_local(moment: datetime | None) -> str:
    if moment is None:
        return "beginning of stream"
    return moment.astimezone().strftime(LOCAL_DATETIME_FORMAT)


def file_stamp(moment: datetime | None = None) -> str:
    return (moment or local_now()).strftime(FILE_STAMP_FORMAT)


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    minutes, secs = divmod(seconds, 60)
    if minutes < 1:
        return f"{secs:.3f}s"
    hours, minutes = divmod(int(minutes), 60)
    if hours:
        return f"{hours}h{minutes}m{secs:.3f}s"
    return f"{minutes}m{secs:.3f}s"
