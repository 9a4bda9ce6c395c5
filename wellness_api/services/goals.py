import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import GoalRecord
from ..db.session import Database
from ..domain import dates
from ..domain.goal_progress import recompute
from ..errors import NotFound
from ..schemas.goal import Goal, GoalCreate, GoalProgress, GoalUpdate, Milestone, MilestoneCreate
from ..utils.ids import new_id

logger = logging.getLogger(__name__)


def _goal_lock(goal_id: str) -> str:
    return f"goal:{goal_id}"


async def _require_goal(session: AsyncSession, user_id: str, goal_id: str) -> GoalRecord:
    record = await session.scalar(select(GoalRecord).where(GoalRecord.id == goal_id, GoalRecord.user_id == user_id))
    if record is None:
        raise NotFound("Goal not found")
    return record


def _save(record: GoalRecord, goal: Goal, changes: Dict[str, Any]) -> Goal:
    updated = Goal(**{**goal.model_dump(), **changes, "updated_at": dates.utcnow()})
    record.assign(updated)
    return updated


async def list_goals(
    db: Database,
    user_id: str,
    category: Optional[str] = None,
    status: Optional[str] = None,
    goal_type: Optional[str] = None,
) -> List[Goal]:
    query = select(GoalRecord).where(GoalRecord.user_id == user_id)
    if category:
        query = query.where(GoalRecord.category == category)
    if status:
        query = query.where(GoalRecord.status == status)
    if goal_type:
        query = query.where(GoalRecord.goal_type == goal_type)
    async with db.session_scope() as session:
        records = (await session.scalars(query.order_by(GoalRecord.created_at.desc(), GoalRecord.id.desc()))).all()
    return [record.to_schema() for record in records]


async def create_goal(db: Database, user_id: str, payload: GoalCreate) -> Goal:
    timestamp = dates.utcnow()
    fields = payload.model_dump(exclude={"milestones"})
    goal = Goal(
        id=new_id(),
        user=user_id,
        progress=GoalProgress(),
        milestones=[Milestone(id=new_id(), **milestone.model_dump()) for milestone in payload.milestones],
        created_at=timestamp,
        updated_at=timestamp,
        **fields,
    )
    async with db.session_scope() as session:
        session.add(GoalRecord.from_schema(goal))
    logger.info("Created goal %s for user %s", goal.id, user_id)
    return goal


async def get_goal(db: Database, user_id: str, goal_id: str) -> Goal:
    async with db.session_scope() as session:
        record = await _require_goal(session, user_id, goal_id)
    return record.to_schema()


async def update_goal(db: Database, user_id: str, goal_id: str, payload: GoalUpdate) -> Goal:
    changes = payload.updates(nullable=("description",))
    async with db.lock(_goal_lock(goal_id)):
        async with db.session_scope() as session:
            record = await _require_goal(session, user_id, goal_id)
            goal = record.to_schema()
            if "target" in changes:
                target = {key: value for key, value in changes["target"].items() if value is not None}
                changes["target"] = {**goal.target.model_dump(), **target}
            return _save(record, goal, changes)


async def delete_goal(db: Database, user_id: str, goal_id: str) -> None:
    async with db.lock(_goal_lock(goal_id)):
        async with db.session_scope() as session:
            await session.delete(await _require_goal(session, user_id, goal_id))


async def update_goal_progress(db: Database, user_id: str, goal_id: str, current: float) -> Goal:
    async with db.lock(_goal_lock(goal_id)):
        async with db.session_scope() as session:
            record = await _require_goal(session, user_id, goal_id)
            goal = record.to_schema()
            percentage, status = recompute(current, goal.target.value, goal.progress.percentage, goal.status)
            logger.info("Goal %s progress %s/%s -> %d%% (%s)", goal_id, current, goal.target.value, percentage, status)
            progress = GoalProgress(current=current, percentage=percentage)
            return _save(record, goal, {"progress": progress, "status": status})


async def add_milestone(db: Database, user_id: str, goal_id: str, payload: MilestoneCreate) -> Goal:
    async with db.lock(_goal_lock(goal_id)):
        async with db.session_scope() as session:
            record = await _require_goal(session, user_id, goal_id)
            goal = record.to_schema()
            milestone = Milestone(id=new_id(), **payload.model_dump())
            return _save(record, goal, {"milestones": [*goal.milestones, milestone]})


async def toggle_milestone(db: Database, user_id: str, goal_id: str, milestone_id: str) -> Goal:
    async with db.lock(_goal_lock(goal_id)):
        async with db.session_scope() as session:
            record = await _require_goal(session, user_id, goal_id)
            goal = record.to_schema()
            if not any(milestone.id == milestone_id for milestone in goal.milestones):
                raise NotFound("Milestone not found")
            milestones = []
            for milestone in goal.milestones:
                if milestone.id == milestone_id:
                    completed = not milestone.completed
                    milestone = milestone.model_copy(
                        update={"completed": completed, "completed_at": dates.utcnow() if completed else None}
                    )
                milestones.append(milestone)
            return _save(record, goal, {"milestones": milestones})
