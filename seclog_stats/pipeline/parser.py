"""Decode and validate raw record values into parsed entries."""

from __future__ import annotations

import json

from seclog_stats.common.constants import EXPECTED_SOURCE
from seclog_stats.common.errors import InvalidTimestamp, MalformedRecord, UnexpectedSource
from seclog_stats.common.models import ParsedEntry


def _decode(value: bytes | str) -> dict:
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRecord(f"Record is not valid UTF-8: {exc}") from exc
    try:
        payload = json.loads(value)
    except ValueError as exc:
        raise MalformedRecord(f"Failed to parse JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedRecord(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


def _string_field(payload: dict, name: str) -> str:
    value = payload.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedRecord(f"Field {name} must be a string")
    return value


def _timestamp_field(payload: dict) -> float:
    value = payload.get("timestamp")
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecord("Field timestamp must be a number")
    return float(value)


def _embedded_time(payload: dict) -> float | None:
    value = payload.get("timestamp")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value == 0:
        return None
    return float(value)


def parse_record(value: bytes | str, expected_source: str = EXPECTED_SOURCE) -> ParsedEntry:
    """Return a ParsedEntry, or raise a ``RecordError`` subclass.

    Missing fields behave like zero values: an absent ``file_name`` is a
    source mismatch and an absent ``timestamp`` is an invalid timestamp.
    Errors raised after the JSON object decoded carry its embedded timestamp
    as ``event_time``.
    """

    payload = _decode(value)
    event_time = _embedded_time(payload)
    try:
        file_name = _string_field(payload, "file_name")
        content = _string_field(payload, "content")
        timestamp = _timestamp_field(payload)
    except MalformedRecord as exc:
        raise MalformedRecord(str(exc), event_time=event_time) from exc

    if file_name != expected_source:
        raise UnexpectedSource(f"unexpected file_name: {file_name}", event_time=event_time)
    if timestamp == 0:
        raise InvalidTimestamp(f"invalid timestamp: {timestamp}")

    return ParsedEntry(file_name=file_name, content=content, timestamp=timestamp)
