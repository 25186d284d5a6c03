from __future__ import annotations

import json
import threading
from types import SimpleNamespace
from typing import Iterator

import geoip2.errors
import pytest

from seclog_stats.common.errors import PartitionError, SourceConnectionError
from seclog_stats.common.models import SourceRecord
from seclog_stats.pipeline.enrich import GeoIPEnricher

COUNTRIES = {
    "10.0.0.1": "Thailand",
    "10.0.0.2": "Thailand",
    "203.0.113.7": "Japan",
    "198.51.100.9": "Germany",
}
ASNS = {
    "10.0.0.1": 64500,
    "203.0.113.7": 64501,
}


class FakeCountryReader:
    def __init__(self, table: dict[str, str]) -> None:
        self.table = table
        self.closed = False

    def country(self, ip: str):
        if ip not in self.table:
            raise geoip2.errors.AddressNotFoundError(f"The address {ip} is not in the database.")
        return SimpleNamespace(country=SimpleNamespace(names={"en": self.table[ip]}))

    def close(self) -> None:
        self.closed = True


class FakeAsnReader:
    def __init__(self, table: dict[str, int]) -> None:
        self.table = table
        self.closed = False

    def asn(self, ip: str):
        if ip not in self.table:
            raise geoip2.errors.AddressNotFoundError(f"The address {ip} is not in the database.")
        return SimpleNamespace(autonomous_system_number=self.table[ip])

    def close(self) -> None:
        self.closed = True


class MemoryCursor:
    def __init__(self, records, stop_event: threading.Event, fail_after: int | None) -> None:
        self.records = list(records)
        self.stop_event = stop_event
        self.fail_after = fail_after
        self.closed = False
        self.consumed = 0

    def __iter__(self) -> Iterator[SourceRecord]:
        for record in self.records:
            if self.stop_event.is_set():
                return
            if self.fail_after is not None and self.consumed >= self.fail_after:
                raise SourceConnectionError("connection reset by broker")
            self.consumed += 1
            yield record

    def close(self) -> None:
        self.closed = True


class MemorySource:
    """In-memory partitions keyed by (topic, partition)."""

    def __init__(
        self,
        partitions: dict[tuple[str, int], list[SourceRecord]],
        *,
        fail_open: set[tuple[str, int]] | None = None,
        fail_after: dict[tuple[str, int], int] | None = None,
        unreachable: bool = False,
    ) -> None:
        self.partitions = partitions
        self.fail_open = fail_open or set()
        self.fail_after = fail_after or {}
        self.unreachable = unreachable
        self.cursors: dict[tuple[str, int], MemoryCursor] = {}
        self.lock = threading.Lock()

    def list_partitions(self, topic: str) -> list[int]:
        if self.unreachable:
            raise SourceConnectionError("broker unreachable")
        found = sorted(partition for (name, partition) in self.partitions if name == topic)
        if not found:
            raise PartitionError(f"Topic {topic} not found")
        return found

    def open_partition(self, topic, partition, start_from, stop_event):
        key = (topic, partition)
        if key in self.fail_open:
            raise PartitionError(f"cannot open {topic}/{partition}")
        cursor = MemoryCursor(self.partitions[key], stop_event, self.fail_after.get(key))
        with self.lock:
            self.cursors[key] = cursor
        return cursor

    def close(self) -> None:
        return None


def make_value(content: str, timestamp: float, file_name: str = "security.log") -> str:
    return json.dumps({"file_name": file_name, "content": content, "timestamp": timestamp})


def make_record(
    content: str,
    timestamp: float,
    *,
    topic: str = "logCentral",
    partition: int = 0,
    offset: int = 0,
    file_name: str = "security.log",
    arrival: float | None = None,
) -> SourceRecord:
    """Record whose transport timestamp is ``arrival``, or the event time when unset."""

    return SourceRecord(
        topic=topic,
        partition=partition,
        offset=offset,
        value=make_value(content, timestamp, file_name),
        timestamp=timestamp if arrival is None else arrival,
    )


@pytest.fixture
def enricher() -> GeoIPEnricher:
    return GeoIPEnricher(FakeCountryReader(dict(COUNTRIES)), FakeAsnReader(dict(ASNS)))


@pytest.fixture
def records():
    return SimpleNamespace(make=make_record, value=make_value, source=MemorySource)
