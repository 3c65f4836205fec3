"""Field rules for attachment-backed records (notes and blogs).

Everything here is pure: functions take plain mappings and either return the
canonical field dict or raise ValidationFailed. No storage is touched.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, Union

from compass_backend.errors import ValidationFailed

NOTE_TYPE_COLLEGE = "College"
NOTE_TYPE_GOVERNMENT_EXAM = "Government Exam"
NOTE_TYPE_OTHER = "Other"

_NOTE_TYPE_ALIASES = {
    "college": NOTE_TYPE_COLLEGE,
    "government exam": NOTE_TYPE_GOVERNMENT_EXAM,
    "governmentexam": NOTE_TYPE_GOVERNMENT_EXAM,
    "other": NOTE_TYPE_OTHER,
}

_PUBLISH_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def clean_text(value: object) -> str | None:
    """Strip strings; empty strings count as absent."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def _required_text(fields: Mapping[str, object], field: str, reason: str) -> str:
    value = clean_text(fields.get(field))
    if value is None:
        raise ValidationFailed(field, reason)
    return value


def normalize_note_type(value: object) -> str:
    raw = clean_text(value)
    if raw is None:
        raise ValidationFailed("note_type", "required")
    note_type = _NOTE_TYPE_ALIASES.get(raw.lower())
    if note_type is None:
        raise ValidationFailed("note_type", "must be one of College, Government Exam, Other")
    return note_type


@dataclass(frozen=True)
class CollegeNote:
    note_type: ClassVar[str] = NOTE_TYPE_COLLEGE

    branch: str
    year: str
    subject: str

    def fields(self) -> dict[str, str | None]:
        return {
            "note_type": self.note_type,
            "branch": self.branch,
            "year": self.year,
            "subject": self.subject,
            "exam_name": None,
        }


@dataclass(frozen=True)
class GovernmentExamNote:
    note_type: ClassVar[str] = NOTE_TYPE_GOVERNMENT_EXAM

    subject: str
    exam_name: str

    def fields(self) -> dict[str, str | None]:
        return {
            "note_type": self.note_type,
            "branch": None,
            "year": None,
            "subject": self.subject,
            "exam_name": self.exam_name,
        }


@dataclass(frozen=True)
class OtherNote:
    note_type: ClassVar[str] = NOTE_TYPE_OTHER

    def fields(self) -> dict[str, str | None]:
        return {
            "note_type": self.note_type,
            "branch": None,
            "year": None,
            "subject": None,
            "exam_name": None,
        }


NoteVariant = Union[CollegeNote, GovernmentExamNote, OtherNote]


def build_note_variant(fields: Mapping[str, object]) -> NoteVariant:
    note_type = normalize_note_type(fields.get("note_type"))
    if note_type == NOTE_TYPE_COLLEGE:
        reason = "required for College notes"
        return CollegeNote(
            branch=_required_text(fields, "branch", reason),
            year=_required_text(fields, "year", reason),
            subject=_required_text(fields, "subject", reason),
        )
    if note_type == NOTE_TYPE_GOVERNMENT_EXAM:
        reason = "required for Government Exam notes"
        return GovernmentExamNote(
            subject=_required_text(fields, "subject", reason),
            exam_name=_required_text(fields, "exam_name", reason),
        )
    return OtherNote()


def normalize_tags(value: object) -> list[str]:
    """Accept a JSON-encoded array string or a native sequence of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationFailed("tags", "invalid tags format") from None
    if not isinstance(value, (list, tuple)):
        raise ValidationFailed("tags", "must be an array")

    tags: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValidationFailed("tags", "must be an array of strings")
        item = item.strip()
        if item:
            tags.append(item)
    return tags


def parse_publish_date(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    raw = clean_text(value)
    if raw is None:
        raise ValidationFailed("publish_date", "required")
    if not _PUBLISH_DATE_RE.match(raw):
        raise ValidationFailed("publish_date", "invalid publish date format, use YYYY-MM-DD")
    try:
        parsed = datetime.strptime(raw, "%Y-%m-%d")
    except ValueError:
        raise ValidationFailed("publish_date", "not a calendar date") from None
    return parsed.replace(tzinfo=timezone.utc)


def validate_note_fields(fields: Mapping[str, object]) -> dict[str, object]:
    out: dict[str, object] = {
        "title": _required_text(fields, "title", "required"),
        "description": _required_text(fields, "description", "required"),
        "tags": normalize_tags(fields.get("tags")),
    }
    out.update(build_note_variant(fields).fields())
    return out


BLOG_REQUIRED_FIELDS = (
    "title",
    "summary",
    "excerpt",
    "content",
    "category",
    "author",
    "read_time",
)


def validate_blog_fields(fields: Mapping[str, object]) -> dict[str, object]:
    out: dict[str, object] = {
        name: _required_text(fields, name, "required") for name in BLOG_REQUIRED_FIELDS
    }
    out["publish_date"] = parse_publish_date(fields.get("publish_date"))
    out["tags"] = normalize_tags(fields.get("tags"))
    return out
