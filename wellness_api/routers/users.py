from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ..auth import current_user
from ..config import get_settings
from ..db.session import Database, get_database
from ..schemas.user import Role, UserProfileUpdate
from ..services import users as user_service
from ..services.stats import user_stats
from .common import serialize

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile")
async def get_profile(user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    return {"user": serialize(await user_service.get_profile(db, user_id))}


@router.put("/profile")
async def update_profile(
    body: UserProfileUpdate,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    user = await user_service.update_profile(db, user_id, body)
    return {"message": "Profile updated successfully", "user": serialize(user)}


@router.get("/stats")
async def stats(user_id: str = Depends(current_user), db: Database = Depends(get_database)) -> Dict[str, Any]:
    return {"stats": serialize(await user_stats(db, user_id))}


@router.get("/search")
async def search(
    q: Optional[str] = None,
    role: Optional[Role] = None,
    user_id: str = Depends(current_user),
    db: Database = Depends(get_database),
) -> Dict[str, Any]:
    users = await user_service.search_users(db, user_id, q, role, get_settings().USER_SEARCH_LIMIT)
    return {"users": serialize(users)}
