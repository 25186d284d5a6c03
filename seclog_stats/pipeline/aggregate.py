"""Fan-in merge of per-partition partial aggregates."""

from __future__ import annotations

from typing import Iterable

from seclog_stats.common.errors import StageError
from seclog_stats.common.ids import partition_key
from seclog_stats.common.models import Aggregate, PartialAggregate


def merge_aggregates(aggregates: Iterable[Aggregate]) -> Aggregate:
    """Additive merge; the result does not depend on input order."""

    merged = Aggregate()
    for aggregate in aggregates:
        merged.absorb(aggregate)
    return merged


class Aggregator:
    """Single-consumer merge point for a known number of partition workers.

    Workers never touch this object; the coordinator feeds it one outcome per
    partition after every worker has finished.
    """

    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.merged = Aggregate()
        self.completed: list[str] = []
        self.incomplete: list[str] = []
        self.failed: dict[str, str] = {}
        self._seen: set[str] = set()

    def _claim(self, key: str) -> None:
        if key in self._seen:
            raise StageError(f"Partition {key} reported more than once")
        if len(self._seen) >= self.expected:
            raise StageError(f"Received more than {self.expected} partition results")
        self._seen.add(key)

    def add(self, partial: PartialAggregate) -> None:
        key = partition_key(partial.topic, partial.partition)
        self._claim(key)
        self.merged.absorb(partial.aggregate)
        self.completed.append(key)
        if not partial.complete:
            self.incomplete.append(key)

    def add_failure(self, topic: str, partition: int, error_code: str) -> None:
        key = partition_key(topic, partition)
        self._claim(key)
        self.failed[key] = error_code

    @property
    def pending(self) -> int:
        return self.expected - len(self._seen)

    def result(self) -> Aggregate:
        if self.pending:
            raise StageError(f"{self.pending} partition results still outstanding")
        return self.merged
