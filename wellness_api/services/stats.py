from sqlalchemy import case, distinct, func, select

from ..db.models import GoalRecord, HabitRecord, ProgressRecord
from ..db.session import Database
from ..schemas.stats import UserStats


async def user_stats(db: Database, user_id: str) -> UserStats:
    habits = select(
        func.count(HabitRecord.id),
        func.coalesce(func.sum(case((HabitRecord.is_active.is_(True), 1), else_=0)), 0),
        func.coalesce(func.max(case((HabitRecord.is_active.is_(True), HabitRecord.streak_current))), 0),
        func.coalesce(func.max(HabitRecord.streak_longest), 0),
    ).where(HabitRecord.user_id == user_id)
    async with db.session_scope() as session:
        total, active, current, longest = (await session.execute(habits)).one()
        completed_goals = await session.scalar(
            select(func.count(GoalRecord.id)).where(GoalRecord.user_id == user_id, GoalRecord.status == "completed")
        )
        total_days = await session.scalar(
            select(func.count(distinct(ProgressRecord.day_key))).where(ProgressRecord.user_id == user_id)
        )
    return UserStats(
        total_habits=total,
        active_habits=active,
        completed_goals=completed_goals or 0,
        current_streak=current,
        longest_streak=longest,
        total_days=total_days or 0,
    )
