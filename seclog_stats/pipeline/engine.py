"""Run coordination: one worker per partition, barrier, then sequential merge."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Iterable

from seclog_stats.common.constants import START_OLDEST
from seclog_stats.common.errors import PartitionError, PipelineError
from seclog_stats.common.ids import partition_key
from seclog_stats.common.logging import log_event
from seclog_stats.common.models import Aggregate, TimeWindow
from seclog_stats.pipeline.aggregate import Aggregator
from seclog_stats.pipeline.enrich import GeoIPEnricher
from seclog_stats.pipeline.worker import RecordRules, run_partition
from seclog_stats.source.base import RecordSource

LOGGER = logging.getLogger(__name__)


@dataclass
class RunResult:
    aggregate: Aggregate
    window: TimeWindow
    partitions: list[str] = field(default_factory=list)
    failed_partitions: dict[str, str] = field(default_factory=dict)
    incomplete_partitions: list[str] = field(default_factory=list)
    aborted: bool = False
    abort_reason: str | None = None
    consume_duration: float = 0.0
    process_duration: float = 0.0

    @property
    def consumed_partitions(self) -> list[str]:
        return [key for key in self.partitions if key not in self.failed_partitions]

    @property
    def degraded(self) -> bool:
        return bool(self.failed_partitions or self.incomplete_partitions)

    def to_dict(self) -> dict:
        return {
            "window": {
                "start": self.window.start.isoformat() if self.window.start else None,
                "end": self.window.end.isoformat(),
            },
            "partitions": list(self.partitions),
            "failed_partitions": dict(sorted(self.failed_partitions.items())),
            "incomplete_partitions": sorted(self.incomplete_partitions),
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "consume_duration_seconds": round(self.consume_duration, 6),
            "process_duration_seconds": round(self.process_duration, 6),
            "counts": {
                "processed": self.aggregate.processed,
                "skipped": self.aggregate.skipped,
                "denied": self.aggregate.denied,
                "out_of_window": self.aggregate.out_of_window,
            },
        }


def _error_code(exc: BaseException) -> str:
    if isinstance(exc, PipelineError):
        return exc.error_code
    return "UNEXPECTED_ERROR"


def list_topic_partitions(
    source: RecordSource,
    topics: Iterable[str],
    *,
    logger: logging.Logger,
    run_id: str | None = None,
) -> tuple[list[tuple[str, int]], dict[str, str]]:
    """Resolve (topic, partition) tasks; unreachable sources raise, unknown topics are recorded."""

    tasks: list[tuple[str, int]] = []
    failed: dict[str, str] = {}
    for topic in dict.fromkeys(topics):
        try:
            partitions = source.list_partitions(topic)
        except PartitionError as exc:
            failed[f"{topic}/*"] = exc.error_code
            log_event(
                logger,
                f"failed to get partitions for topic {topic}: {exc}",
                run_id=run_id,
                stage="discover",
                topic=topic,
                event="PARTITIONS_LISTED",
                status="error",
                error_code=exc.error_code,
            )
            continue
        log_event(
            logger,
            f"topic {topic} has {len(partitions)} partitions",
            run_id=run_id,
            stage="discover",
            topic=topic,
            event="PARTITIONS_LISTED",
            status="ok",
            records_out=len(partitions),
        )
        tasks.extend((topic, partition) for partition in partitions)
    return sorted(tasks), failed


def run_engine(
    source: RecordSource,
    topics: Iterable[str],
    window: TimeWindow,
    enricher: GeoIPEnricher,
    *,
    rules: RecordRules | None = None,
    start_from: str = START_OLDEST,
    early_exit: bool = True,
    max_workers: int | None = None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
    stop_event: threading.Event | None = None,
) -> RunResult:
    """Consume every partition of ``topics`` concurrently and merge the results.

    A ``SourceConnectionError`` (or any unexpected failure) from one worker
    signals the others to stop; whatever they accumulated is still merged and
    the result is flagged as aborted. Only failures while listing partitions
    on an unreachable source propagate to the caller.
    """

    logger = logger or LOGGER
    stop_event = stop_event or threading.Event()
    consume_started = time.monotonic()

    tasks, failed_topics = list_topic_partitions(source, topics, logger=logger, run_id=run_id)
    aggregator = Aggregator(expected=len(tasks))
    aborted = False
    abort_reason: str | None = None
    futures: dict[Future, tuple[str, int]] = {}

    if tasks:
        pool_size = min(len(tasks), max_workers) if max_workers else len(tasks)
        with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="partition") as executor:
            for topic, partition in tasks:
                future = executor.submit(
                    run_partition,
                    source,
                    topic,
                    partition,
                    window=window,
                    enricher=enricher,
                    stop_event=stop_event,
                    rules=rules,
                    start_from=start_from,
                    early_exit=early_exit,
                    logger=logger,
                    run_id=run_id,
                )
                futures[future] = (topic, partition)

            pending = set(futures)
            try:
                while pending:
                    done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                    for future in done:
                        exc = future.exception()
                        if exc is None or isinstance(exc, PartitionError) or aborted:
                            continue
                        aborted = True
                        abort_reason = f"{_error_code(exc)}: {exc}"
                        stop_event.set()
                        topic, partition = futures[future]
                        log_event(
                            logger,
                            f"aborting run after failure on {topic}/{partition}: {exc}",
                            run_id=run_id,
                            stage="consume",
                            topic=topic,
                            partition=partition,
                            event="RUN_ABORT",
                            status="error",
                            error_code=_error_code(exc),
                        )
            except KeyboardInterrupt:
                aborted = True
                abort_reason = "INTERRUPTED"
                stop_event.set()
                log_event(logger, "interrupted, stopping workers", run_id=run_id, event="RUN_ABORT", status="error")

    consume_duration = time.monotonic() - consume_started
    process_started = time.monotonic()

    # Merge in partition order; completion order never reaches the counts.
    for future, (topic, partition) in sorted(futures.items(), key=lambda item: item[1]):
        # The executor has shut down, so every future is settled here.
        exc = future.exception()
        if exc is None:
            aggregator.add(future.result())
            continue
        error_code = _error_code(exc)
        aggregator.add_failure(topic, partition, error_code)
        log_event(
            logger,
            f"partition {topic}/{partition} excluded: {exc}",
            run_id=run_id,
            stage="consume",
            topic=topic,
            partition=partition,
            event="PARTITION_FAIL",
            status="error",
            error_code=error_code,
        )

    aggregate = aggregator.result()
    process_duration = time.monotonic() - process_started
    log_event(
        logger,
        "merge complete",
        run_id=run_id,
        stage="merge",
        event="MERGE_END",
        status="error" if aborted else "ok",
        duration_ms=int(process_duration * 1000),
        records_in=aggregate.observed,
        records_out=aggregate.processed,
    )

    failed = dict(failed_topics)
    failed.update(aggregator.failed)
    return RunResult(
        aggregate=aggregate,
        window=window,
        partitions=[partition_key(topic, partition) for topic, partition in tasks],
        failed_partitions=failed,
        incomplete_partitions=sorted(aggregator.incomplete),
        aborted=aborted,
        abort_reason=abort_reason,
        consume_duration=consume_duration,
        process_duration=process_duration,
    )
