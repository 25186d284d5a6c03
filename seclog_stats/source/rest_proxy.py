"""Record source backed by a Kafka REST Proxy (v2 API)."""

from __future__ import annotations

import base64
import binascii
import threading
from typing import Iterator
from urllib.parse import quote

from seclog_stats.common.constants import START_NEWEST
from seclog_stats.common.errors import PartitionError
from seclog_stats.common.http import HttpClient, HttpRequestError
from seclog_stats.common.models import SourceRecord

BINARY_V2 = "application/vnd.kafka.binary.v2+json"
DEFAULT_PAGE_SIZE = 500


def _decode_value(value: object) -> bytes:
    if value is None:
        return b""
    try:
        return base64.b64decode(str(value), validate=True)
    except (binascii.Error, ValueError):
        # Keep the raw text so the record parser can reject it.
        return str(value).encode("utf-8", errors="replace")


def _record_timestamp(item: dict) -> float | None:
    raw = item.get("timestamp")
    if raw is None:
        return None
    try:
        return float(raw) / 1000.0
    except (TypeError, ValueError):
        return None


class RestProxyCursor:
    def __init__(
        self,
        client: HttpClient,
        base_url: str,
        topic: str,
        partition: int,
        start_offset: int,
        end_offset: int,
        *,
        page_size: int,
        follow: bool,
        poll_interval: float,
        stop_event: threading.Event,
    ) -> None:
        self._client = client
        self._url = f"{base_url}/topics/{quote(topic, safe='')}/partitions/{partition}/messages"
        self.topic = topic
        self.partition = partition
        self.offset = start_offset
        self.end_offset = end_offset
        self._page_size = page_size
        self._follow = follow
        self._poll_interval = poll_interval
        self._stop = stop_event
        self._closed = False

    def _fetch(self, count: int) -> list[dict]:
        payload = self._client.get_json(
            self._url,
            params={"offset": self.offset, "count": count},
            headers={"Accept": BINARY_V2},
        )
        if not isinstance(payload, list):
            raise HttpRequestError(f"Unexpected messages payload from {self._url}")
        return payload

    def __iter__(self) -> Iterator[SourceRecord]:
        while not self._closed and not self._stop.is_set():
            remaining = self.end_offset - self.offset
            if not self._follow and remaining <= 0:
                return
            count = self._page_size if self._follow else min(self._page_size, remaining)
            page = self._fetch(count)
            if not page:
                if not self._follow:
                    return
                self._stop.wait(self._poll_interval)
                continue
            for item in page:
                offset = int(item.get("offset", self.offset))
                self.offset = offset + 1
                yield SourceRecord(
                    topic=self.topic,
                    partition=self.partition,
                    offset=offset,
                    value=_decode_value(item.get("value")),
                    timestamp=_record_timestamp(item),
                )
                if self._closed or self._stop.is_set():
                    return

    def close(self) -> None:
        self._closed = True


class RestProxySource:
    def __init__(
        self,
        client: HttpClient,
        base_url: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        follow: bool = False,
        poll_interval: float = 1.0,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.follow = follow
        self.poll_interval = poll_interval

    def _topic_url(self, topic: str) -> str:
        return f"{self.base_url}/topics/{quote(topic, safe='')}"

    def list_partitions(self, topic: str) -> list[int]:
        try:
            payload = self.client.get_json(f"{self._topic_url(topic)}/partitions")
        except HttpRequestError as exc:
            if exc.status_code == 404:
                raise PartitionError(f"Topic {topic} not found") from exc
            raise
        if not isinstance(payload, list):
            raise HttpRequestError(f"Unexpected partitions payload for topic {topic}")
        return sorted(int(item["partition"]) for item in payload)

    def open_partition(
        self,
        topic: str,
        partition: int,
        start_from: str,
        stop_event: threading.Event,
    ) -> RestProxyCursor:
        url = f"{self._topic_url(topic)}/partitions/{partition}/offsets"
        try:
            offsets = self.client.get_json(url)
            beginning = int(offsets["beginning_offset"])
            end = int(offsets["end_offset"])
        except (HttpRequestError, KeyError, TypeError, ValueError) as exc:
            raise PartitionError(f"Cannot open partition {partition} of {topic}: {exc}") from exc

        start = end if start_from == START_NEWEST else beginning
        return RestProxyCursor(
            self.client,
            self.base_url,
            topic,
            partition,
            start,
            end,
            page_size=self.page_size,
            follow=self.follow,
            poll_interval=self.poll_interval,
            stop_event=stop_event,
        )

    def close(self) -> None:
        self.client.close()
