import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import HabitRecord, ProgressRecord
from ..db.session import Database
from ..domain import dates
from ..errors import NotFound
from ..schemas.habit import Habit, HabitCreate, HabitUpdate, Streak
from ..schemas.progress import ProgressEntry
from ..utils.ids import new_id

logger = logging.getLogger(__name__)


def day_range(start: Optional[datetime], end: Optional[datetime]) -> List[Any]:
    """Conditions covering every calendar day from ``start`` to ``end`` inclusive."""
    if start is None or end is None:
        return []
    return [ProgressRecord.day_key >= dates.day_key(start), ProgressRecord.day_key <= dates.day_key(end)]


def habit_lock(habit_id: str) -> str:
    return f"habit:{habit_id}"


async def require_habit(session: AsyncSession, user_id: str, habit_id: str) -> HabitRecord:
    record = await session.scalar(
        select(HabitRecord).where(HabitRecord.id == habit_id, HabitRecord.user_id == user_id)
    )
    if record is None:
        raise NotFound("Habit not found")
    return record


async def list_habits(
    db: Database,
    user_id: str,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> List[Habit]:
    query = select(HabitRecord).where(HabitRecord.user_id == user_id)
    if category:
        query = query.where(HabitRecord.category == category)
    if is_active is not None:
        query = query.where(HabitRecord.is_active == is_active)
    async with db.session_scope() as session:
        records = (await session.scalars(query.order_by(HabitRecord.created_at.desc(), HabitRecord.id.desc()))).all()
    return [record.to_schema() for record in records]


async def create_habit(db: Database, user_id: str, payload: HabitCreate) -> Habit:
    timestamp = dates.utcnow()
    habit = Habit(
        id=new_id(),
        user=user_id,
        streak=Streak(),
        created_at=timestamp,
        updated_at=timestamp,
        **payload.model_dump(),
    )
    async with db.session_scope() as session:
        session.add(HabitRecord.from_schema(habit))
    logger.info("Created habit %s for user %s", habit.id, user_id)
    return habit


async def get_habit(db: Database, user_id: str, habit_id: str) -> Habit:
    async with db.session_scope() as session:
        record = await require_habit(session, user_id, habit_id)
    return record.to_schema()


async def update_habit(db: Database, user_id: str, habit_id: str, payload: HabitUpdate) -> Habit:
    changes = payload.updates(nullable=("description",))
    async with db.lock(habit_lock(habit_id)):
        async with db.session_scope() as session:
            record = await require_habit(session, user_id, habit_id)
            habit = record.to_schema()
            if "target" in changes:
                target = {key: value for key, value in changes["target"].items() if value is not None}
                changes["target"] = {**habit.target.model_dump(), **target}
            # streak is owned by the recorder and never taken from the payload
            updated = Habit(**{**habit.model_dump(), **changes, "updated_at": dates.utcnow()})
            record.assign(updated)
    return updated


async def delete_habit(db: Database, user_id: str, habit_id: str) -> int:
    """Delete a habit together with its progress entries; returns the number of entries removed."""
    async with db.lock(habit_lock(habit_id)):
        async with db.session_scope() as session:
            record = await require_habit(session, user_id, habit_id)
            result = await session.execute(delete(ProgressRecord).where(ProgressRecord.habit_id == habit_id))
            await session.delete(record)
    logger.info("Deleted habit %s and %d progress entries", habit_id, result.rowcount)
    return result.rowcount


async def toggle_habit(db: Database, user_id: str, habit_id: str) -> Habit:
    async with db.lock(habit_lock(habit_id)):
        async with db.session_scope() as session:
            record = await require_habit(session, user_id, habit_id)
            record.is_active = not record.is_active
            record.updated_at = dates.utcnow()
    return record.to_schema()


async def list_habit_progress(
    db: Database,
    user_id: str,
    habit_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[ProgressEntry]:
    query = (
        select(ProgressRecord)
        .where(ProgressRecord.habit_id == habit_id, ProgressRecord.user_id == user_id, *day_range(start, end))
        .order_by(ProgressRecord.date.desc())
    )
    async with db.session_scope() as session:
        records = (await session.scalars(query)).all()
    return [record.to_schema() for record in records]
