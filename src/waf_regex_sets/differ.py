"""Diff engine for regex set items.

Turns an (old, new) pair of item collections into the ordered list of
DELETE/INSERT updates that WAF needs to move a set from one to the other.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .models import RegexMatchTuple, sorted_items

INSERT = "INSERT"
DELETE = "DELETE"

T = TypeVar("T", bound=Hashable)


@dataclass(frozen=True)
class Update(Generic[T]):
    """A single item change."""

    action: str  # "INSERT" or "DELETE"
    value: T


def diff_items(old: Iterable[T], new: Iterable[T]) -> list[Update[T]]:
    """Compute the updates that turn ``old`` into ``new``.

    Items present in both are left alone. Every DELETE is emitted before any
    INSERT, so a changed item becomes one DELETE followed later by one INSERT.

    Args:
        old: Items currently in the set.
        new: Items the set should hold.

    Returns:
        DELETE updates in ``old`` order, then INSERT updates in ``new`` order.
    """
    remaining = list(new)
    updates: list[Update[T]] = []

    for item in old:
        if item in remaining:
            remaining.remove(item)
            continue
        updates.append(Update(action=DELETE, value=item))

    updates.extend(Update(action=INSERT, value=item) for item in remaining)
    return updates


def regex_pattern_set_updates(old: Iterable[str], new: Iterable[str]) -> list[dict[str, Any]]:
    """Build ``UpdateRegexPatternSet`` updates."""
    return [
        {"Action": u.action, "RegexPatternString": u.value}
        for u in diff_items(sorted_items(old), sorted_items(new))
    ]


def regex_match_set_updates(
    old: Iterable[RegexMatchTuple],
    new: Iterable[RegexMatchTuple],
) -> list[dict[str, Any]]:
    """Build ``UpdateRegexMatchSet`` updates."""
    return [
        {"Action": u.action, "RegexMatchTuple": u.value.to_api()}
        for u in diff_items(sorted_items(old), sorted_items(new))
    ]
