"""Deterministic top-N rankings.

Ties on count are broken by key in ascending lexicographic order so that
reports are reproducible regardless of dict insertion order.
"""

from __future__ import annotations

from typing import Mapping

from seclog_stats.common.deterministic import stable_sorted


def _rank_key(item: tuple[str, int]) -> tuple[int, str]:
    key, count = item
    return (-count, key)


def ranked(counter: Mapping[str, int]) -> list[tuple[str, int]]:
    return stable_sorted(counter.items(), key=_rank_key)


def top_n(counter: Mapping[str, int], n: int) -> list[tuple[str, int]]:
    if n <= 0:
        return []
    return ranked(counter)[:n]


def country_totals(ip_country: Mapping[str, Mapping[str, int]]) -> dict[str, int]:
    return {country: sum(labels.values()) for country, labels in ip_country.items()}


def top_countries(ip_country: Mapping[str, Mapping[str, int]], n: int) -> list[tuple[str, int]]:
    return top_n(country_totals(ip_country), n)
