from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class Exam(BaseModel):
    id: str
    name: str
    full_name: str
    category: str
    level: str
    exam_date: str
    application_deadline: str
    eligibility: str
    pattern: str
    colleges: int
    description: str
    subjects: list[str]
    created_at: datetime
    updated_at: datetime


class ExamCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    full_name: str = Field(min_length=1, max_length=500)
    category: str = Field(min_length=1, max_length=200)
    level: str = Field(min_length=1, max_length=100)
    exam_date: str = Field(min_length=1, max_length=100)
    application_deadline: str = Field(min_length=1, max_length=100)
    eligibility: str = Field(min_length=1)
    pattern: str = Field(min_length=1)
    colleges: int = Field(ge=0)
    description: str = Field(min_length=1)
    subjects: list[str] = Field(min_length=1)


class ExamPatchRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    full_name: str | None = Field(default=None, min_length=1, max_length=500)
    category: str | None = Field(default=None, min_length=1, max_length=200)
    level: str | None = Field(default=None, min_length=1, max_length=100)
    exam_date: str | None = Field(default=None, min_length=1, max_length=100)
    application_deadline: str | None = Field(default=None, min_length=1, max_length=100)
    eligibility: str | None = Field(default=None, min_length=1)
    pattern: str | None = Field(default=None, min_length=1)
    colleges: int | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, min_length=1)
    subjects: list[str] | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _ensure_any_field_present(self) -> "ExamPatchRequest":
        if not self.model_dump(exclude_none=True):
            raise ValueError("at least one field must be provided")
        return self


class ExamList(BaseModel):
    items: list[Exam] = Field(default_factory=list)
    limit: int
    offset: int
