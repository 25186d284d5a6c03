"""Resolve the analysis time window from flags or interactive menus.

Nothing in the engine prompts; this module turns user choices into a
``TimeWindow`` value before the run starts.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

from seclog_stats.common.constants import SINCE_PRESETS
from seclog_stats.common.errors import ConfigError
from seclog_stats.common.models import TimeWindow
from seclog_stats.common.time_utils import local_now, parse_local_datetime

START_MENU = (
    ("1", "Last 1 hour", "1h"),
    ("2", "Last 6 hours", "6h"),
    ("3", "Last 12 hours", "12h"),
    ("4", "Last 1 day", "1d"),
    ("5", "Last 7 days", "7d"),
    ("6", "Last 30 days", "30d"),
    ("7", "All available data", "all"),
    ("8", "Specify custom date and time", None),
)


def start_from_preset(end: datetime, since: str) -> datetime | None:
    if since not in SINCE_PRESETS:
        raise ConfigError(f"Unknown --since value {since!r}; choose from {', '.join(SINCE_PRESETS)}")
    seconds = SINCE_PRESETS[since]
    if seconds is None:
        return None
    return end - timedelta(seconds=seconds)


def resolve_window(
    *,
    start: str | None = None,
    end: str | None = None,
    since: str | None = None,
    now: datetime | None = None,
) -> TimeWindow:
    """Build a window from local ``YYYY-MM-DD HH:MM:SS`` strings or a preset.

    ``end`` defaults to now. Without ``start`` or ``since`` the window is
    unbounded at the start.
    """

    if start and since:
        raise ConfigError("Use either a start time or --since, not both")
    end_at = parse_local_datetime(end) if end else (now or local_now())
    if start:
        return TimeWindow(start=parse_local_datetime(start), end=end_at)
    if since:
        return TimeWindow(start=start_from_preset(end_at, since), end=end_at)
    return TimeWindow(start=None, end=end_at)


def _read_datetime(prompt: str, input_fn: Callable[[str], str], output_fn: Callable[[str], None]) -> datetime:
    while True:
        raw = input_fn(prompt)
        try:
            return parse_local_datetime(raw)
        except ConfigError:
            output_fn("Invalid date and time format. Please use YYYY-MM-DD HH:MM:SS.")


def prompt_end(
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
    now: datetime | None = None,
) -> datetime:
    while True:
        output_fn("Choose end time option:")
        output_fn("1. Current date and time")
        output_fn("2. Specify date and time")
        choice = input_fn("Enter your choice (1 or 2): ").strip()
        if choice == "1":
            return now or local_now()
        if choice == "2":
            return _read_datetime("Enter the end date and time (YYYY-MM-DD HH:MM:SS): ", input_fn, output_fn)
        output_fn("Invalid choice. Please enter 1 or 2.")


def prompt_start(
    end: datetime,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> datetime | None:
    while True:
        output_fn("\nChoose start time option:")
        for key, label, _preset in START_MENU:
            output_fn(f"{key}. {label}")
        choice = input_fn(f"Enter your choice (1-{len(START_MENU)}): ").strip()
        for key, _label, preset in START_MENU:
            if choice != key:
                continue
            if preset is not None:
                return start_from_preset(end, preset)
            while True:
                start = _read_datetime("Enter the start date and time (YYYY-MM-DD HH:MM:SS): ", input_fn, output_fn)
                if start <= end:
                    return start
                output_fn("Start must not be after the end time.")
        output_fn(f"Invalid choice. Please enter a number between 1 and {len(START_MENU)}.")


def prompt_window(
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
    now: datetime | None = None,
) -> TimeWindow:
    end = prompt_end(input_fn, output_fn, now)
    start = prompt_start(end, input_fn, output_fn)
    return TimeWindow(start=start, end=end)
