from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel

Role = Literal["student", "teacher", "mentor"]
Gender = Literal["male", "female", "other", "prefer-not-to-say"]
FitnessGoal = Literal["weight-loss", "muscle-gain", "endurance", "flexibility", "general-fitness"]
Theme = Literal["light", "dark"]

SEARCH_ROLES = ("teacher", "mentor")


class NotificationPreferences(CamelModel):
    email: bool = True
    push: bool = True


class Preferences(CamelModel):
    theme: Theme = "light"
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)


class Profile(CamelModel):
    avatar: str = ""
    age: Optional[int] = Field(default=None, ge=13, le=100)
    gender: Optional[Gender] = None
    height: Optional[float] = Field(default=None, ge=100, le=250)
    weight: Optional[float] = Field(default=None, ge=30, le=300)
    fitness_goals: List[FitnessGoal] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)


class ProfileUpdate(CamelModel):
    avatar: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=13, le=100)
    gender: Optional[Gender] = None
    height: Optional[float] = Field(default=None, ge=100, le=250)
    weight: Optional[float] = Field(default=None, ge=30, le=300)
    fitness_goals: Optional[List[FitnessGoal]] = None
    preferences: Optional[Preferences] = None


class UserProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: Optional[Role] = None
    profile: Optional[ProfileUpdate] = None


class UserProfile(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    role: Role = "student"
    profile: Profile = Field(default_factory=Profile)
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
