"""Progress recording and the habit streak engine.

A progress entry is the single observation of a habit for one calendar day.
Recording a completed entry advances the habit streak in the same
transaction, under the habit's lock.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import HabitRecord, ProgressRecord
from ..db.session import Database, is_unique_violation
from ..domain import dates
from ..domain.goal_progress import completion_percentage
from ..domain.streaks import CompletionEvent, StreakState, apply_completion, is_backfill, recompute_from_history
from ..errors import DuplicateEntry, NotFound, StorageFailure
from ..schemas.habit import Habit, HabitSummary
from ..schemas.progress import CountBucket, ProgressCreate, ProgressEntry, ProgressSummary, ProgressUpdate, ProgressView
from ..utils.ids import new_id
from .habits import day_range, habit_lock, require_habit

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Progress already logged for this date"
CLEARABLE_FIELDS = ("notes", "time_spent", "location")


def target_met(value: float, target: float) -> bool:
    return value >= target


def present(entry: ProgressEntry, habit: Optional[Habit]) -> ProgressView:
    summary = None
    percentage = 0
    if habit is not None:
        summary = HabitSummary(id=habit.id, name=habit.name, category=habit.category, target=habit.target)
        percentage = completion_percentage(entry.value, habit.target.value)
    return ProgressView(**{**entry.model_dump(), "habit": summary, "completion_percentage": percentage})


def _unchanged_streak(state: StreakState) -> List[Any]:
    last = HabitRecord.streak_last_completed
    return [
        HabitRecord.streak_current == state.current,
        HabitRecord.streak_longest == state.longest,
        last.is_(None) if state.last_completed is None else last == state.last_completed,
    ]


async def update_streak(session: AsyncSession, habit: HabitRecord, moment: datetime) -> HabitRecord:
    """Credit a completion on ``moment``'s day to the habit streak.

    Must run while holding the habit lock, after the completed entry is flushed.
    The write only lands if the stored streak still equals the one read here.
    """
    state = StreakState(
        current=habit.streak_current,
        longest=habit.streak_longest,
        last_completed=habit.streak_last_completed,
    )
    owned = (ProgressRecord.user_id == habit.user_id, ProgressRecord.habit_id == habit.id)
    if is_backfill(state, moment):
        moments = (await session.scalars(select(ProgressRecord.date).where(*owned, ProgressRecord.completed.is_(True)))).all()
        next_state = recompute_from_history(moments, state.longest)
        logger.info("Recomputed streak for habit %s from %d completions", habit.id, len(moments))
    else:
        yesterday = await session.scalar(
            select(ProgressRecord.id).where(
                *owned,
                ProgressRecord.day_key == dates.previous_day_key(moment),
                ProgressRecord.completed.is_(True),
            )
        )
        next_state = apply_completion(state, CompletionEvent(occurred_at=moment, previous_day_completed=yesterday is not None))
    result = await session.execute(
        update(HabitRecord)
        .where(HabitRecord.id == habit.id, *_unchanged_streak(state))
        .values(
            streak_current=next_state.current,
            streak_longest=next_state.longest,
            streak_last_completed=next_state.last_completed,
            updated_at=dates.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StorageFailure("Habit streak changed during update")
    await session.refresh(habit)
    logger.debug("Habit %s streak %d -> %d (longest %d)", habit.id, state.current, next_state.current, next_state.longest)
    return habit


async def record_progress(db: Database, user_id: str, payload: ProgressCreate) -> ProgressView:
    moment = dates.to_utc(payload.date) if payload.date else dates.utcnow()
    key = dates.day_key(moment)
    async with db.lock(habit_lock(payload.habit)):
        async with db.session_scope() as session:
            # read under the lock so a delete queued ahead of us is already visible
            habit = await require_habit(session, user_id, payload.habit)
            existing = await session.scalar(
                select(ProgressRecord.id).where(
                    ProgressRecord.user_id == user_id,
                    ProgressRecord.habit_id == habit.id,
                    ProgressRecord.day_key == key,
                )
            )
            if existing:
                raise DuplicateEntry(DUPLICATE_MESSAGE)
            timestamp = dates.utcnow()
            entry = ProgressEntry(
                id=new_id(),
                user=user_id,
                date=moment,
                day_key=key,
                completed=target_met(payload.value, habit.target_value),
                created_at=timestamp,
                updated_at=timestamp,
                **payload.model_dump(exclude={"date"}),
            )
            session.add(ProgressRecord.from_schema(entry))
            try:
                await session.flush()
            except IntegrityError as error:
                if is_unique_violation(error):
                    raise DuplicateEntry(DUPLICATE_MESSAGE) from error
                raise
            if entry.completed:
                habit = await update_streak(session, habit, moment)
            view = present(entry, habit.to_schema())
    logger.info("Logged progress %s for habit %s on %s (completed=%s)", entry.id, habit.id, key, entry.completed)
    return view


async def _require_entry(session: AsyncSession, user_id: str, entry_id: str) -> ProgressRecord:
    record = await session.scalar(
        select(ProgressRecord).where(ProgressRecord.id == entry_id, ProgressRecord.user_id == user_id)
    )
    if record is None:
        raise NotFound("Progress entry not found")
    return record


async def _habit_for(session: AsyncSession, entry: ProgressRecord) -> Optional[Habit]:
    record = await session.get(HabitRecord, entry.habit_id)
    return record.to_schema() if record is not None else None


async def get_progress(db: Database, user_id: str, entry_id: str) -> ProgressView:
    async with db.session_scope() as session:
        record = await _require_entry(session, user_id, entry_id)
        habit = await _habit_for(session, record)
    return present(record.to_schema(), habit)


async def update_progress(db: Database, user_id: str, entry_id: str, payload: ProgressUpdate) -> ProgressView:
    changes = payload.updates(nullable=CLEARABLE_FIELDS)
    async with db.session_scope() as session:
        record = await _require_entry(session, user_id, entry_id)
        habit = await _habit_for(session, record)
        entry = record.to_schema()
        # completion follows the value; the streak is a write-time effect and is left alone
        if "value" in changes and habit is not None:
            changes["completed"] = target_met(changes["value"], habit.target.value)
        updated = ProgressEntry(**{**entry.model_dump(), **changes, "updated_at": dates.utcnow()})
        record.assign(updated)
    return present(updated, habit)


async def delete_progress(db: Database, user_id: str, entry_id: str) -> None:
    async with db.session_scope() as session:
        record = await _require_entry(session, user_id, entry_id)
        await session.delete(record)


async def list_progress(
    db: Database,
    user_id: str,
    habit_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 50,
) -> List[ProgressView]:
    query = (
        select(ProgressRecord, HabitRecord)
        .outerjoin(HabitRecord, HabitRecord.id == ProgressRecord.habit_id)
        .where(ProgressRecord.user_id == user_id, *day_range(start, end))
    )
    if habit_id:
        query = query.where(ProgressRecord.habit_id == habit_id)
    async with db.session_scope() as session:
        rows = (await session.execute(query.order_by(ProgressRecord.date.desc()).limit(limit))).all()
    return [present(entry.to_schema(), habit.to_schema() if habit is not None else None) for entry, habit in rows]


async def _buckets(session: AsyncSession, column: Any, conditions: List[Any]) -> List[CountBucket]:
    count = func.count(ProgressRecord.id)
    rows = await session.execute(select(column, count).where(*conditions).group_by(column).order_by(count.desc(), column))
    return [CountBucket(id=value, count=total) for value, total in rows]


async def progress_summary(
    db: Database,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Dict[str, Any]:
    conditions = [ProgressRecord.user_id == user_id, *day_range(start, end)]
    async with db.session_scope() as session:
        total, completed, average = (
            await session.execute(
                select(
                    func.count(ProgressRecord.id),
                    func.coalesce(func.sum(case((ProgressRecord.completed.is_(True), 1), else_=0)), 0),
                    func.avg(ProgressRecord.value),
                ).where(*conditions)
            )
        ).one()
        mood = await _buckets(session, ProgressRecord.mood, conditions)
        difficulty = await _buckets(session, ProgressRecord.difficulty, conditions)
    rate = completed / total * 100 if total else 0
    summary = ProgressSummary(
        total_entries=total,
        completed_entries=completed,
        completion_rate=round(rate, 2),
        average_value=average or 0,
    )
    return {"summary": summary, "moodStats": mood, "difficultyStats": difficulty}
