from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel

GoalCategory = Literal["academic", "fitness", "wellness", "personal", "career", "social"]
GoalType = Literal["short-term", "long-term"]
GoalStatus = Literal["not-started", "in-progress", "completed", "paused"]
Priority = Literal["low", "medium", "high"]


class GoalTarget(CamelModel):
    value: float
    unit: str = Field(..., min_length=1)
    deadline: datetime


class GoalTargetUpdate(CamelModel):
    value: Optional[float] = None
    unit: Optional[str] = Field(default=None, min_length=1)
    deadline: Optional[datetime] = None


class GoalProgress(CamelModel):
    current: float = 0
    percentage: int = Field(default=0, ge=0, le=100)


class MilestoneCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    target_value: Optional[float] = None


class Milestone(MilestoneCreate):
    id: str
    completed: bool = False
    completed_at: Optional[datetime] = None


class GoalCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: GoalCategory
    goal_type: GoalType = Field(..., alias="type")
    target: GoalTarget
    status: GoalStatus = "not-started"
    priority: Priority = "medium"
    milestones: List[MilestoneCreate] = Field(default_factory=list)
    color: str = "#10B981"
    is_active: bool = True


class GoalUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[GoalCategory] = None
    goal_type: Optional[GoalType] = Field(default=None, alias="type")
    target: Optional[GoalTargetUpdate] = None
    status: Optional[GoalStatus] = None
    priority: Optional[Priority] = None
    color: Optional[str] = None
    is_active: Optional[bool] = None


class GoalProgressUpdate(CamelModel):
    current: float


class Goal(CamelModel):
    id: str
    user: str
    title: str
    description: Optional[str] = None
    category: GoalCategory
    goal_type: GoalType = Field(..., alias="type")
    target: GoalTarget
    progress: GoalProgress = Field(default_factory=GoalProgress)
    status: GoalStatus = "not-started"
    priority: Priority = "medium"
    milestones: List[Milestone] = Field(default_factory=list)
    color: str = "#10B981"
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
