"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from seclog_stats.common.deterministic import sorted_mapping, sorted_nested_mapping
from seclog_stats.common.errors import ConfigError


@dataclass(frozen=True)
class SourceRecord:
    """One record as delivered by a partition cursor, before decoding."""

    topic: str
    partition: int
    offset: int
    value: bytes | str
    timestamp: float | None = None


@dataclass(frozen=True)
class ParsedEntry:
    file_name: str
    content: str
    timestamp: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExtractedSignal:
    address: str = ""
    domain: str = ""


@dataclass(frozen=True)
class EnrichedSignal:
    address: str
    domain: str
    country: str
    asn: int

    @property
    def label(self) -> str:
        return f"{self.address} (ASN: {self.asn})"


@dataclass(frozen=True)
class TimeWindow:
    """Event-time window; both bounds inclusive, ``start=None`` is unbounded."""

    end: datetime
    start: datetime | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.start > self.end:
            raise ConfigError(f"Window start {self.start.isoformat()} is after end {self.end.isoformat()}")

    @property
    def start_ts(self) -> float | None:
        return None if self.start is None else self.start.timestamp()

    @property
    def end_ts(self) -> float:
        return self.end.timestamp()

    def before_start(self, event_time: float) -> bool:
        start_ts = self.start_ts
        return start_ts is not None and event_time < start_ts

    def after_end(self, event_time: float) -> bool:
        return event_time > self.end_ts


def _earliest(a: ParsedEntry | None, b: ParsedEntry | None) -> ParsedEntry | None:
    if a is None:
        return b
    if b is None:
        return a
    return a if (a.timestamp, a.content) <= (b.timestamp, b.content) else b


def _latest(a: ParsedEntry | None, b: ParsedEntry | None) -> ParsedEntry | None:
    if a is None:
        return b
    if b is None:
        return a
    return a if (a.timestamp, a.content) >= (b.timestamp, b.content) else b


@dataclass
class Aggregate:
    """Counts accumulated for one partition, or merged across all of them.

    A worker owns its instance exclusively until it hands it off; the merged
    instance is owned by the aggregator until merging completes.
    """

    ip_country: dict[str, dict[str, int]] = field(default_factory=dict)
    domains: dict[str, int] = field(default_factory=dict)
    denied: int = 0
    processed: int = 0
    skipped: int = 0
    out_of_window: int = 0
    first: ParsedEntry | None = None
    last: ParsedEntry | None = None

    @property
    def observed(self) -> int:
        return self.processed + self.skipped

    def count_address(self, country: str, label: str, count: int = 1) -> None:
        labels = self.ip_country.setdefault(country, {})
        labels[label] = labels.get(label, 0) + count

    def count_domain(self, domain: str, count: int = 1) -> None:
        self.domains[domain] = self.domains.get(domain, 0) + count

    def observe_entry(self, entry: ParsedEntry) -> None:
        self.first = _earliest(self.first, entry)
        self.last = _latest(self.last, entry)

    def absorb(self, other: "Aggregate") -> None:
        for country, labels in other.ip_country.items():
            for label, count in labels.items():
                self.count_address(country, label, count)
        for domain, count in other.domains.items():
            self.count_domain(domain, count)
        self.denied += other.denied
        self.processed += other.processed
        self.skipped += other.skipped
        self.out_of_window += other.out_of_window
        self.first = _earliest(self.first, other.first)
        self.last = _latest(self.last, other.last)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ip_country": sorted_nested_mapping(self.ip_country),
            "domains": sorted_mapping(self.domains),
            "denied": self.denied,
            "processed": self.processed,
            "skipped": self.skipped,
            "out_of_window": self.out_of_window,
            "first": self.first.to_dict() if self.first else None,
            "last": self.last.to_dict() if self.last else None,
        }


@dataclass(frozen=True)
class PartialAggregate:
    """Hand-off envelope for one partition worker's private counts."""

    topic: str
    partition: int
    aggregate: Aggregate
    complete: bool = True
    stopped_early: bool = False
