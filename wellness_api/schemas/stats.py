from .base import CamelModel


class UserStats(CamelModel):
    total_habits: int
    active_habits: int
    completed_goals: int
    current_streak: int
    longest_streak: int
    total_days: int
