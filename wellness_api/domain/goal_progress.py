import math
from typing import Tuple

PAUSED = "paused"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage_for(current: float, target: float, previous: int = 0) -> int:
    """Share of ``target`` reached, clamped to 0..100.

    A non-positive target leaves ``previous`` untouched.
    """
    if target <= 0:
        return previous
    return max(0, min(100, _round_half_up(current / target * 100)))


def status_for(percentage: float) -> str:
    if percentage >= 100:
        return "completed"
    if percentage > 0:
        return "in-progress"
    return "not-started"


def recompute(current: float, target: float, percentage: int, status: str) -> Tuple[int, str]:
    # paused is only ever left by an explicit status change
    percentage = percentage_for(current, target, percentage)
    if status == PAUSED:
        return percentage, status
    return percentage, status_for(percentage)


def completion_percentage(value: float, target: float) -> int:
    if not target:
        return 0
    return max(0, min(100, _round_half_up(value / target * 100)))
