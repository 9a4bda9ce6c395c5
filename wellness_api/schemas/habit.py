from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel

HabitCategory = Literal["study", "sleep", "exercise", "meditation", "water", "nutrition", "social", "other"]
HabitUnit = Literal["hours", "minutes", "glasses", "times", "pages", "steps", "calories"]
Frequency = Literal["daily", "weekly", "monthly"]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class HabitTarget(CamelModel):
    value: float = Field(..., ge=0)
    unit: HabitUnit
    frequency: Frequency = "daily"


class HabitTargetUpdate(CamelModel):
    value: Optional[float] = Field(default=None, ge=0)
    unit: Optional[HabitUnit] = None
    frequency: Optional[Frequency] = None


class Reminder(CamelModel):
    enabled: bool = False
    time: str = Field(default="09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    days: List[Weekday] = Field(default_factory=list)


class Streak(CamelModel):
    current: int = Field(default=0, ge=0)
    longest: int = Field(default=0, ge=0)
    last_completed: Optional[datetime] = None


class HabitCreate(CamelModel):
    name: str = Field(..., min_length=1)
    category: HabitCategory
    description: Optional[str] = None
    target: HabitTarget
    color: str = "#3B82F6"
    icon: str = "📝"
    is_active: bool = True
    reminder: Reminder = Field(default_factory=Reminder)


class HabitUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[HabitCategory] = None
    description: Optional[str] = None
    target: Optional[HabitTargetUpdate] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    reminder: Optional[Reminder] = None


class Habit(CamelModel):
    id: str
    user: str
    name: str
    category: HabitCategory
    description: Optional[str] = None
    target: HabitTarget
    color: str
    icon: str
    is_active: bool
    reminder: Reminder
    streak: Streak
    created_at: datetime
    updated_at: datetime


class HabitSummary(CamelModel):
    id: str
    name: str
    category: HabitCategory
    target: HabitTarget
