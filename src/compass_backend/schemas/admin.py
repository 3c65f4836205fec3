from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RecentUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime


class RecentCourse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    price: float
    created_at: datetime


class DashboardStats(BaseModel):
    total_users: int
    total_courses: int
    total_notes: int
    total_blogs: int
    total_exams: int
    total_downloads: int
    recent_users: list[RecentUser] = Field(default_factory=list)
    recent_courses: list[RecentCourse] = Field(default_factory=list)


class UserStatus(BaseModel):
    id: int
    is_active: bool
