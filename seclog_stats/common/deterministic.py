"""Helpers for deterministic ordering and serialisation."""

from __future__ import annotations

from typing import Callable, Iterable, Mapping, TypeVar

T = TypeVar("T")


def stable_sorted(items: Iterable[T], key: Callable[[T], object]) -> list[T]:
    return sorted(items, key=key)


def sorted_mapping(counter: Mapping[str, int]) -> dict[str, int]:
    return {key: counter[key] for key in sorted(counter)}


def sorted_nested_mapping(counter: Mapping[str, Mapping[str, int]]) -> dict[str, dict[str, int]]:
    return {key: sorted_mapping(counter[key]) for key in sorted(counter)}
