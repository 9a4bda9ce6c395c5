"""Tables for habits, progress entries, goals and user profiles.

Each record converts to the camelCase document the API returns
(``to_document``) and takes its column values from the matching pydantic
model (``assign``), so services work on validated models and persist rows.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..domain.dates import to_iso
from ..schemas.goal import Goal
from ..schemas.habit import Habit
from ..schemas.progress import ProgressEntry
from ..schemas.user import UserProfile
from .base import Base

PROGRESS_DAY_CONSTRAINT = "uq_progress_user_habit_day"


def _iso(moment: Optional[datetime]) -> Optional[str]:
    return to_iso(moment) if moment is not None else None


class HabitRecord(Base):
    __tablename__ = "habits"

    id: Mapped[str] = mapped_column(String(24), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    name: Mapped[str] = mapped_column(String(128))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(32), index=True)
    target_value: Mapped[float] = mapped_column(Float)
    target_unit: Mapped[str] = mapped_column(String(32))
    target_frequency: Mapped[str] = mapped_column(String(16), default="daily")
    color: Mapped[str] = mapped_column(String(16), default="#3B82F6")
    icon: Mapped[str] = mapped_column(String(16), default="📝")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    reminder: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    streak_current: Mapped[int] = mapped_column(Integer, default=0)
    streak_longest: Mapped[int] = mapped_column(Integer, default=0)
    streak_last_completed: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    created_at: Mapped[datetime]
    updated_at: Mapped[datetime]

    @classmethod
    def from_schema(cls, habit: Habit) -> "HabitRecord":
        record = cls(id=habit.id, user_id=habit.user, created_at=habit.created_at)
        record.assign(habit)
        return record

    def assign(self, habit: Habit) -> None:
        self.name = habit.name
        self.description = habit.description
        self.category = habit.category
        self.target_value = habit.target.value
        self.target_unit = habit.target.unit
        self.target_frequency = habit.target.frequency
        self.color = habit.color
        self.icon = habit.icon
        self.is_active = habit.is_active
        self.reminder = habit.reminder.to_document()
        self.streak_current = habit.streak.current
        self.streak_longest = habit.streak.longest
        self.streak_last_completed = habit.streak.last_completed
        self.updated_at = habit.updated_at

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user": self.user_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "target": {"value": self.target_value, "unit": self.target_unit, "frequency": self.target_frequency},
            "color": self.color,
            "icon": self.icon,
            "isActive": self.is_active,
            "reminder": dict(self.reminder or {}),
            "streak": {
                "current": self.streak_current,
                "longest": self.streak_longest,
                "lastCompleted": _iso(self.streak_last_completed),
            },
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_schema(self) -> Habit:
        return Habit(**self.to_document())


class ProgressRecord(Base):
    __tablename__ = "progress"
    __table_args__ = (UniqueConstraint("user_id", "habit_id", "day_key", name=PROGRESS_DAY_CONSTRAINT),)

    id: Mapped[str] = mapped_column(String(24), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    habit_id: Mapped[str] = mapped_column(ForeignKey("habits.id", ondelete="CASCADE"), index=True)
    date: Mapped[datetime] = mapped_column(index=True)
    day_key: Mapped[str] = mapped_column(String(10), index=True)
    value: Mapped[float] = mapped_column(Float)
    unit: Mapped[str] = mapped_column(String(32))
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mood: Mapped[str] = mapped_column(String(16), default="good")
    difficulty: Mapped[str] = mapped_column(String(16), default="moderate")
    time_spent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime]
    updated_at: Mapped[datetime]

    @classmethod
    def from_schema(cls, entry: ProgressEntry) -> "ProgressRecord":
        record = cls(
            id=entry.id,
            user_id=entry.user,
            habit_id=entry.habit,
            date=entry.date,
            day_key=entry.day_key,
            created_at=entry.created_at,
        )
        record.assign(entry)
        return record

    def assign(self, entry: ProgressEntry) -> None:
        self.value = entry.value
        self.unit = entry.unit
        self.completed = entry.completed
        self.notes = entry.notes
        self.mood = entry.mood
        self.difficulty = entry.difficulty
        self.time_spent = entry.time_spent
        self.location = entry.location
        self.tags = list(entry.tags)
        self.updated_at = entry.updated_at

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user": self.user_id,
            "habit": self.habit_id,
            "date": _iso(self.date),
            "dayKey": self.day_key,
            "value": self.value,
            "unit": self.unit,
            "completed": self.completed,
            "notes": self.notes,
            "mood": self.mood,
            "difficulty": self.difficulty,
            "timeSpent": self.time_spent,
            "location": self.location,
            "tags": list(self.tags or []),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_schema(self) -> ProgressEntry:
        return ProgressEntry(**self.to_document())


class GoalRecord(Base):
    __tablename__ = "goals"

    id: Mapped[str] = mapped_column(String(24), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    title: Mapped[str] = mapped_column(String(256))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(32), index=True)
    goal_type: Mapped[str] = mapped_column(String(16), index=True)
    target_value: Mapped[float] = mapped_column(Float)
    target_unit: Mapped[str] = mapped_column(String(32))
    target_deadline: Mapped[datetime]
    progress_current: Mapped[float] = mapped_column(Float, default=0)
    progress_percentage: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(16), default="not-started", index=True)
    priority: Mapped[str] = mapped_column(String(8), default="medium")
    milestones: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    color: Mapped[str] = mapped_column(String(16), default="#10B981")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime]
    updated_at: Mapped[datetime]

    @classmethod
    def from_schema(cls, goal: Goal) -> "GoalRecord":
        record = cls(id=goal.id, user_id=goal.user, created_at=goal.created_at)
        record.assign(goal)
        return record

    def assign(self, goal: Goal) -> None:
        self.title = goal.title
        self.description = goal.description
        self.category = goal.category
        self.goal_type = goal.goal_type
        self.target_value = goal.target.value
        self.target_unit = goal.target.unit
        self.target_deadline = goal.target.deadline
        self.progress_current = goal.progress.current
        self.progress_percentage = goal.progress.percentage
        self.status = goal.status
        self.priority = goal.priority
        self.milestones = [milestone.to_document() for milestone in goal.milestones]
        self.color = goal.color
        self.is_active = goal.is_active
        self.updated_at = goal.updated_at

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user": self.user_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "type": self.goal_type,
            "target": {"value": self.target_value, "unit": self.target_unit, "deadline": _iso(self.target_deadline)},
            "progress": {"current": self.progress_current, "percentage": self.progress_percentage},
            "status": self.status,
            "priority": self.priority,
            "milestones": [dict(milestone) for milestone in self.milestones or []],
            "color": self.color,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_schema(self) -> Goal:
        return Goal(**self.to_document())


class UserRecord(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), index=True)
    email: Mapped[Optional[str]] = mapped_column(String(256), unique=True, nullable=True)
    role: Mapped[str] = mapped_column(String(16), default="student", index=True)
    profile: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime]
    updated_at: Mapped[datetime]

    @classmethod
    def from_schema(cls, user: UserProfile) -> "UserRecord":
        record = cls(id=user.id, created_at=user.created_at)
        record.assign(user)
        return record

    def assign(self, user: UserProfile) -> None:
        self.name = user.name
        self.email = user.email
        self.role = user.role
        self.profile = user.profile.to_document()
        self.is_active = user.is_active
        self.updated_at = user.updated_at

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "profile": dict(self.profile or {}),
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_schema(self) -> UserProfile:
        return UserProfile(**self.to_document())
