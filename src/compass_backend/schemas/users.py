from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=72)
    new_password: str = Field(min_length=6, max_length=72)


class DeleteAccountRequest(BaseModel):
    password: str = Field(min_length=1, max_length=72)


class SavedItem(BaseModel):
    item_type: Literal["course", "note", "blog"]
    item_id: str = Field(min_length=1, max_length=36)


class SavedItems(BaseModel):
    # Set by add (true) and remove (false).
    active: bool | None = None
    items: list[SavedItem] = Field(default_factory=list)
