from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from ..auth import current_user
from ..schemas.goal import GoalCategory, GoalCreate, GoalProgressUpdate, GoalStatus, GoalType, GoalUpdate, MilestoneCreate
from ..services import goals as goal_service
from ..db.session import Database, get_database
from .common import serialize

router = APIRouter(prefix="/api/goals", tags=["goals"])


@router.get("")
async def list_goals(
    category: Optional[GoalCategory] = None,
    status: Optional[GoalStatus] = None,
    goal_type: Optional[GoalType] = Query(default=None, alias="type"),
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    goals = await goal_service.list_goals(db, user_id, category, status, goal_type)
    return {"goals": serialize(goals)}


@router.post("", status_code=201)
async def create_goal(body: GoalCreate, user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    goal = await goal_service.create_goal(db, user_id, body)
    return {"message": "Goal created successfully", "goal": serialize(goal)}


@router.get("/{goal_id}")
async def get_goal(goal_id: str, user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    return {"goal": serialize(await goal_service.get_goal(db, user_id, goal_id))}


@router.put("/{goal_id}")
async def update_goal(
    goal_id: str,
    body: GoalUpdate,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    goal = await goal_service.update_goal(db, user_id, goal_id, body)
    return {"message": "Goal updated successfully", "goal": serialize(goal)}


@router.delete("/{goal_id}")
async def delete_goal(goal_id: str, user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    await goal_service.delete_goal(db, user_id, goal_id)
    return {"message": "Goal deleted successfully"}


@router.put("/{goal_id}/progress")
async def update_goal_progress(
    goal_id: str,
    body: GoalProgressUpdate,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    goal = await goal_service.update_goal_progress(db, user_id, goal_id, body.current)
    return {"message": "Goal progress updated successfully", "goal": serialize(goal)}


@router.post("/{goal_id}/milestones")
async def add_milestone(
    goal_id: str,
    body: MilestoneCreate,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    goal = await goal_service.add_milestone(db, user_id, goal_id, body)
    return {"message": "Milestone added successfully", "goal": serialize(goal)}


@router.put("/{goal_id}/milestones/{milestone_id}")
async def toggle_milestone(
    goal_id: str,
    milestone_id: str,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    goal = await goal_service.toggle_milestone(db, user_id, goal_id, milestone_id)
    return {"message": "Milestone updated successfully", "goal": serialize(goal)}
