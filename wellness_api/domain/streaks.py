"""Streak reducer for habits.

The streak is an aggregate over completion events. ``apply_completion`` is the
incremental step used for in-order logging; ``recompute_from_history`` rebuilds
the state when a completion lands before the last completed day.
"""
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from .dates import local_day


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
    last_completed: Optional[datetime] = None


@dataclass(frozen=True)
class CompletionEvent:
    occurred_at: datetime
    previous_day_completed: bool


def apply_completion(state: StreakState, event: CompletionEvent) -> StreakState:
    current = state.current + 1 if event.previous_day_completed else 1
    return replace(state, current=current, longest=max(state.longest, current), last_completed=event.occurred_at)


def is_backfill(state: StreakState, moment: datetime) -> bool:
    """True when ``moment`` does not fall after the last completed day."""
    if state.last_completed is None:
        return False
    return local_day(moment) <= local_day(state.last_completed)


def _runs(days: List[date]) -> List[int]:
    runs: List[int] = []
    previous: Optional[date] = None
    for day in days:
        if previous is not None and day - previous == timedelta(days=1):
            runs[-1] += 1
        else:
            runs.append(1)
        previous = day
    return runs


def recompute_from_history(completions: Iterable[datetime], longest: int = 0) -> StreakState:
    moments = sorted(completions, key=local_day)
    if not moments:
        return StreakState(current=0, longest=longest)
    days = sorted({local_day(moment) for moment in moments})
    runs = _runs(days)
    current = runs[-1]
    return StreakState(current=current, longest=max(longest, max(runs)), last_completed=moments[-1])
