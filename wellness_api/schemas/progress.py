from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel
from .habit import HabitSummary

Mood = Literal["excellent", "good", "okay", "bad", "terrible"]
Difficulty = Literal["very-easy", "easy", "moderate", "hard", "very-hard"]


class ProgressCreate(CamelModel):
    habit: str = Field(..., min_length=1)
    value: float = Field(..., ge=0)
    unit: str = Field(..., min_length=1)
    date: Optional[datetime] = None
    notes: Optional[str] = None
    mood: Mood = "good"
    difficulty: Difficulty = "moderate"
    time_spent: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class ProgressUpdate(CamelModel):
    value: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    mood: Optional[Mood] = None
    difficulty: Optional[Difficulty] = None
    time_spent: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    tags: Optional[List[str]] = None


class ProgressEntry(CamelModel):
    id: str
    user: str
    habit: str
    date: datetime
    day_key: str
    value: float
    unit: str
    completed: bool
    notes: Optional[str] = None
    mood: Mood = "good"
    difficulty: Difficulty = "moderate"
    time_spent: Optional[float] = None
    location: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ProgressView(ProgressEntry):
    habit: Optional[HabitSummary] = None  # type: ignore[assignment]
    completion_percentage: int = 0


class CountBucket(CamelModel):
    id: Optional[str] = Field(default=None, alias="_id")
    count: int


class ProgressSummary(CamelModel):
    total_entries: int
    completed_entries: int
    completion_rate: float
    average_value: float
