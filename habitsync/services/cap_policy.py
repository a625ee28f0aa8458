"""
Per-scope habit cap.

The store does not check the cap itself; callers enforce it before add().
"""
from typing import List, Sequence, TypeVar

from habitsync.constants import MAX_HABITS_PER_SCOPE
from habitsync.exceptions import HabitCapReachedException

T = TypeVar("T")


def can_add(current_count: int, cap: int = MAX_HABITS_PER_SCOPE) -> bool:
    """True while the scope holds fewer than `cap` habits"""
    return current_count < cap


def ensure_can_add(current_count: int, cap: int = MAX_HABITS_PER_SCOPE) -> None:
    """
    Raises:
        HabitCapReachedException: If the scope is already full
    """
    if not can_add(current_count, cap):
        raise HabitCapReachedException(cap)


def limit(habits: Sequence[T], cap: int = MAX_HABITS_PER_SCOPE) -> List[T]:
    """First `cap` habits"""
    return list(habits[:cap])
