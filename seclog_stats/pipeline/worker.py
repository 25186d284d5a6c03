"""Per-partition consumption: time window, parsing, and private accumulation.

Each worker owns its Aggregate for its whole lifetime and returns it once;
nothing here is shared with sibling workers except the read-only enricher
and the stop signal.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

from seclog_stats.common.constants import DENIED_MARKER, EXPECTED_SOURCE, START_OLDEST
from seclog_stats.common.errors import RecordError
from seclog_stats.common.logging import log_event
from seclog_stats.common.models import Aggregate, ParsedEntry, PartialAggregate, SourceRecord, TimeWindow
from seclog_stats.pipeline.enrich import GeoIPEnricher
from seclog_stats.pipeline.extract import extract_signal, is_denied
from seclog_stats.pipeline.parser import parse_record
from seclog_stats.source.base import RecordSource

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordRules:
    expected_source: str = EXPECTED_SOURCE
    denied_marker: str = DENIED_MARKER


def _try_parse(record: SourceRecord, rules: RecordRules) -> tuple[ParsedEntry | None, float | None, bool]:
    """Return ``(entry, event_time, embedded)``.

    ``embedded`` is false when the only usable time is the transport
    timestamp of a value that did not decode.
    """

    try:
        entry = parse_record(record.value, rules.expected_source)
    except RecordError as exc:
        LOGGER.debug("Skipping %s/%s@%s: %s", record.topic, record.partition, record.offset, exc)
        if exc.event_time is not None:
            return None, exc.event_time, True
        return None, record.timestamp, False
    return entry, entry.timestamp, True


def analyze_entry(aggregate: Aggregate, entry: ParsedEntry, enricher: GeoIPEnricher, rules: RecordRules) -> None:
    """Count one parsed entry; only denied entries are extracted and enriched."""

    aggregate.processed += 1
    aggregate.observe_entry(entry)

    if not is_denied(entry.content, rules.denied_marker):
        return

    aggregate.denied += 1
    signal = extract_signal(entry.content)
    if signal.address:
        enriched = enricher.enrich(signal)
        aggregate.count_address(enriched.country, enriched.label)
    if signal.domain:
        aggregate.count_domain(signal.domain)


def run_partition(
    source: RecordSource,
    topic: str,
    partition: int,
    *,
    window: TimeWindow,
    enricher: GeoIPEnricher,
    stop_event: threading.Event,
    rules: RecordRules | None = None,
    start_from: str = START_OLDEST,
    early_exit: bool = True,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> PartialAggregate:
    """Consume one partition and return its partial aggregate.

    Records before the window start are passed over. The first record whose
    embedded event time is past the window end stops the stream when
    ``early_exit`` is set, which assumes event time does not decrease within
    a partition. Undecodable values fall back to the transport timestamp for
    the window check but never stop the stream. Raises
    ``PartitionError`` if the partition cannot be opened; a transport failure
    while reading propagates as ``SourceConnectionError``.
    """

    rules = rules or RecordRules()
    logger = logger or LOGGER
    aggregate = Aggregate()
    stopped_early = False
    started = time.monotonic()
    records_in = 0

    cursor = source.open_partition(topic, partition, start_from, stop_event)
    log_event(
        logger,
        f"consuming {topic}/{partition}",
        run_id=run_id,
        stage="consume",
        topic=topic,
        partition=partition,
        event="PARTITION_START",
        status="ok",
    )
    try:
        for record in cursor:
            if stop_event.is_set():
                break
            records_in += 1

            entry, event_time, embedded = _try_parse(record, rules)
            if event_time is not None:
                if window.before_start(event_time):
                    aggregate.out_of_window += 1
                    continue
                if window.after_end(event_time):
                    aggregate.out_of_window += 1
                    # Only embedded event time may end the stream.
                    if early_exit and embedded:
                        stopped_early = True
                        break
                    continue

            if entry is None:
                aggregate.skipped += 1
                continue

            analyze_entry(aggregate, entry, enricher, rules)
    finally:
        cursor.close()

    complete = stopped_early or not stop_event.is_set()
    log_event(
        logger,
        f"finished {topic}/{partition}" + ("" if complete else " (interrupted)"),
        run_id=run_id,
        stage="consume",
        topic=topic,
        partition=partition,
        event="PARTITION_END",
        status="ok" if complete else "partial",
        duration_ms=int((time.monotonic() - started) * 1000),
        records_in=records_in,
        records_out=aggregate.processed,
    )
    return PartialAggregate(
        topic=topic,
        partition=partition,
        aggregate=aggregate,
        complete=complete,
        stopped_early=stopped_early,
    )
