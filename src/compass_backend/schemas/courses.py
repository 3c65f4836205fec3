from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class Course(BaseModel):
    id: str
    title: str
    description: str
    instructor: str
    category: str
    level: str
    price: float
    original_price: float
    duration: str
    thumbnail: str
    tags: list[str]
    rating: float
    total_ratings: int
    enrolled_students: int
    likes_count: int
    is_published: bool
    created_by: int
    created_at: datetime
    updated_at: datetime
