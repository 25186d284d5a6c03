"""Contracts every record source implements.

The engine only talks to these protocols, so transports can be swapped
without touching partition workers or aggregation.
"""

from __future__ import annotations

import threading
from typing import Iterator, Protocol

from seclog_stats.common.models import SourceRecord


class PartitionCursor(Protocol):
    """Sequential reader over one partition, in partition order."""

    def __iter__(self) -> Iterator[SourceRecord]:
        ...

    def close(self) -> None:
        ...


class RecordSource(Protocol):
    def list_partitions(self, topic: str) -> list[int]:
        """Return partition ids for ``topic``.

        Raises ``SourceConnectionError`` when the source is unreachable and
        ``PartitionError`` when only this topic is unavailable.
        """
        ...

    def open_partition(
        self,
        topic: str,
        partition: int,
        start_from: str,
        stop_event: threading.Event,
    ) -> PartitionCursor:
        """Open a cursor; raises ``PartitionError`` if the partition cannot be read."""
        ...

    def close(self) -> None:
        ...
