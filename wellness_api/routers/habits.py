from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from ..auth import current_user
from ..schemas.habit import HabitCategory, HabitCreate, HabitUpdate
from ..services import habits as habit_service
from ..db.session import Database, get_database
from .common import serialize

router = APIRouter(prefix="/api/habits", tags=["habits"])


@router.get("")
async def list_habits(
    category: Optional[HabitCategory] = None,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    habits = await habit_service.list_habits(db, user_id, category, is_active)
    return {"habits": serialize(habits)}


@router.post("", status_code=201)
async def create_habit(
    body: HabitCreate,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    habit = await habit_service.create_habit(db, user_id, body)
    return {"message": "Habit created successfully", "habit": serialize(habit)}


@router.get("/{habit_id}")
async def get_habit(habit_id: str, user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    habit = await habit_service.get_habit(db, user_id, habit_id)
    return {"habit": serialize(habit)}


@router.put("/{habit_id}")
async def update_habit(
    habit_id: str,
    body: HabitUpdate,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    habit = await habit_service.update_habit(db, user_id, habit_id, body)
    return {"message": "Habit updated successfully", "habit": serialize(habit)}


@router.delete("/{habit_id}")
async def delete_habit(habit_id: str, user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    removed = await habit_service.delete_habit(db, user_id, habit_id)
    return {"message": "Habit deleted successfully", "deletedProgress": removed}


@router.post("/{habit_id}/toggle")
async def toggle_habit(habit_id: str, user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    habit = await habit_service.toggle_habit(db, user_id, habit_id)
    state = "activated" if habit.is_active else "deactivated"
    return {"message": f"Habit {state} successfully", "habit": serialize(habit)}


@router.get("/{habit_id}/progress")
async def habit_progress(
    habit_id: str,
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    entries = await habit_service.list_habit_progress(db, user_id, habit_id, start_date, end_date)
    return {"progress": serialize(entries)}
