"""Record source replaying partitions from local JSON-lines files.

Layout: ``<root>/<topic>/<partition>.jsonl``, one raw record value per line.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import IO, Iterator

from seclog_stats.common.constants import START_NEWEST
from seclog_stats.common.errors import PartitionError, SourceConnectionError
from seclog_stats.common.models import SourceRecord


class FileCursor:
    def __init__(self, handle: IO[str] | None, topic: str, partition: int, stop_event: threading.Event) -> None:
        self._handle = handle
        self.topic = topic
        self.partition = partition
        self._stop = stop_event

    def __iter__(self) -> Iterator[SourceRecord]:
        if self._handle is None:
            return
        for offset, line in enumerate(self._handle):
            if self._stop.is_set():
                return
            value = line.rstrip("\r\n")
            if not value.strip():
                continue
            yield SourceRecord(topic=self.topic, partition=self.partition, offset=offset, value=value)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


class FileSource:
    def __init__(self, root: Path) -> None:
        self.root = root

    def _partition_paths(self, topic: str) -> dict[int, Path]:
        if not self.root.is_dir():
            raise SourceConnectionError(f"Record source directory not found: {self.root}")
        topic_dir = self.root / topic
        if not topic_dir.is_dir():
            raise PartitionError(f"Topic {topic} not found under {self.root}")
        paths: dict[int, Path] = {}
        for path in topic_dir.glob("*.jsonl"):
            try:
                paths[int(path.stem)] = path
            except ValueError:
                continue
        return paths

    def list_partitions(self, topic: str) -> list[int]:
        return sorted(self._partition_paths(topic))

    def open_partition(
        self,
        topic: str,
        partition: int,
        start_from: str,
        stop_event: threading.Event,
    ) -> FileCursor:
        path = self.root / topic / f"{partition}.jsonl"
        if start_from == START_NEWEST:
            # A replayed file has no live tail; nothing arrives after opening.
            if not path.is_file():
                raise PartitionError(f"Partition file not found: {path}")
            return FileCursor(None, topic, partition, stop_event)
        try:
            handle = path.open("r", encoding="utf-8", errors="replace")
        except OSError as exc:
            raise PartitionError(f"Cannot open partition file {path}: {exc}") from exc
        return FileCursor(handle, topic, partition, stop_event)

    def close(self) -> None:
        return None
