import logging
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import UserRecord
from ..db.session import Database, is_unique_violation
from ..domain import dates
from ..errors import DuplicateEntry, Forbidden
from ..schemas.user import SEARCH_ROLES, UserProfile, UserProfileUpdate

logger = logging.getLogger(__name__)


async def _profile_record(session: AsyncSession, user_id: str) -> UserRecord:
    """The caller's profile row, created with defaults the first time they are seen."""
    record = await session.get(UserRecord, user_id)
    if record is None:
        timestamp = dates.utcnow()
        record = UserRecord.from_schema(UserProfile(id=user_id, name=user_id, created_at=timestamp, updated_at=timestamp))
        session.add(record)
        await session.flush()
        logger.info("Created profile for user %s", user_id)
    return record


async def get_profile(db: Database, user_id: str) -> UserProfile:
    async with db.lock(f"user:{user_id}"):
        async with db.session_scope() as session:
            record = await _profile_record(session, user_id)
    return record.to_schema()


async def update_profile(db: Database, user_id: str, payload: UserProfileUpdate) -> UserProfile:
    changes = payload.updates(nullable=("email",))
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
    async with db.lock(f"user:{user_id}"):
        async with db.session_scope() as session:
            record = await _profile_record(session, user_id)
            user = record.to_schema()
            if "profile" in changes:
                changes["profile"] = {**user.profile.model_dump(), **changes["profile"]}
            updated = UserProfile(**{**user.model_dump(), **changes, "updated_at": dates.utcnow()})
            record.assign(updated)
            try:
                await session.flush()
            except IntegrityError as error:
                if is_unique_violation(error):
                    raise DuplicateEntry("Email already in use") from error
                raise
    return updated


async def search_users(
    db: Database,
    user_id: str,
    query: Optional[str] = None,
    role: Optional[str] = None,
    limit: int = 20,
) -> List[UserProfile]:
    """Active users matching ``query`` on name or email; only teachers and mentors may search."""
    async with db.lock(f"user:{user_id}"):
        async with db.session_scope() as session:
            caller = await _profile_record(session, user_id)
    if caller.role not in SEARCH_ROLES:
        raise Forbidden("Only teachers and mentors can search users")
    statement = select(UserRecord).where(UserRecord.is_active.is_(True))
    if query:
        needle = query.lower()
        statement = statement.where(
            or_(
                func.lower(UserRecord.name).contains(needle, autoescape=True),
                func.lower(UserRecord.email).contains(needle, autoescape=True),
            )
        )
    if role:
        statement = statement.where(UserRecord.role == role)
    async with db.session_scope() as session:
        records = (await session.scalars(statement.order_by(UserRecord.name, UserRecord.id).limit(limit))).all()
    return [record.to_schema() for record in records]
