import math
from collections.abc import Iterable
from typing import Protocol


class _HasCompleted(Protocol):
    completed: bool


def calculate_progress(milestones: Iterable[_HasCompleted]) -> int:
    """
    Percentage of completed milestones, rounded half up.

    Returns 0 for an empty milestone set.
    """
    items = list(milestones)
    if not items:
        return 0
    completed = sum(1 for m in items if m.completed)
    return int(math.floor(100 * completed / len(items) + 0.5))
