from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from ..auth import current_user
from ..config import get_settings
from ..schemas.progress import ProgressCreate, ProgressUpdate
from ..services import progress as progress_service
from ..db.session import Database, get_database
from .common import serialize

router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("")
async def list_progress(
    habit: Optional[str] = None,
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    limit: Optional[int] = Query(default=None, ge=1),
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    entries = await progress_service.list_progress(
        db, user_id, habit, start_date, end_date, limit or get_settings().PROGRESS_LIST_LIMIT
    )
    return {"progress": serialize(entries)}


@router.post("", status_code=201)
async def record_progress(
    body: ProgressCreate,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    entry = await progress_service.record_progress(db, user_id, body)
    return {"message": "Progress logged successfully", "progress": serialize(entry)}


@router.get("/stats/summary")
async def progress_summary(
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    return serialize(await progress_service.progress_summary(db, user_id, start_date, end_date))


@router.get("/{entry_id}")
async def get_progress(entry_id: str, user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    entry = await progress_service.get_progress(db, user_id, entry_id)
    return {"progress": serialize(entry)}


@router.put("/{entry_id}")
async def update_progress(
    entry_id: str,
    body: ProgressUpdate,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    entry = await progress_service.update_progress(db, user_id, entry_id, body)
    return {"message": "Progress updated successfully", "progress": serialize(entry)}


@router.delete("/{entry_id}")
async def delete_progress(entry_id: str, user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    await progress_service.delete_progress(db, user_id, entry_id)
    return {"message": "Progress entry deleted successfully"}
