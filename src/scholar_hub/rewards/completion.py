"""Detect completions between two versions of a task or routine list."""

from collections.abc import Sequence
from typing import Literal, Protocol


class Completable(Protocol):
    id: str
    is_completed: bool


def count_completed(items: Sequence[Completable]) -> int:
    return sum(1 for item in items if item.is_completed)


def newly_completed_ids(
    before: Sequence[Completable], after: Sequence[Completable]
) -> list[str]:
    """Ids that were incomplete (or absent) before and are complete after."""
    done_before = {item.id for item in before if item.is_completed}
    return [item.id for item in after if item.is_completed and item.id not in done_before]


def completion_happened(
    before: Sequence[Completable],
    after: Sequence[Completable],
    mode: Literal["count", "id"] = "count",
) -> bool:
    """Decide whether a batch replacement should fire a completion reward.

    ``count`` compares aggregate completed counts, so a batch that completes
    one item while un-completing another fires nothing. ``id`` looks for any
    item that flipped to complete.
    """
    if mode == "id":
        return bool(newly_completed_ids(before, after))
    return count_completed(after) > count_completed(before)
