from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import timedelta
from typing import Any, Generic, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from compass_backend.errors import NotFound, PersistenceFailed, ValidationFailed
from compass_backend.models import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SQLModel)

FieldValidator = Callable[[Mapping[str, object]], dict[str, object]]


def _col(model: type[SQLModel], name: str) -> ColumnElement[Any]:
    return cast(ColumnElement[Any], getattr(model, name))


def _check_blob_ref(fields: Mapping[str, object]) -> None:
    if "external_id" not in fields and "retrieval_url" not in fields:
        return
    if bool(fields.get("external_id")) != bool(fields.get("retrieval_url")):
        raise ValidationFailed("external_id", "external id and retrieval url must be set together")


class RecordRepository(Generic[T]):
    """Single-table repository: one instance per entity type and session.

    ``create``/``update`` validate the resulting field set before anything is
    written; an invalid record is never persisted.
    """

    def __init__(
        self,
        session: AsyncSession,
        model: type[T],
        *,
        validate: FieldValidator | None = None,
        label: str | None = None,
    ) -> None:
        self._session = session
        self._model = model
        self._validate = validate
        self.label = label or model.__name__.lower()

    def _validated(self, merged: Mapping[str, object], fields: Mapping[str, object]) -> dict[str, object]:
        out = dict(fields)
        if self._validate is not None:
            out.update(self._validate(merged))
        _check_blob_ref({**merged, **out})
        return out

    async def find_recent(self, *, owner_id: int, title: str, window_seconds: int) -> T | None:
        since = utc_now() - timedelta(seconds=window_seconds)
        stmt = (
            select(self._model)
            .where(_col(self._model, "uploaded_by") == owner_id)
            .where(_col(self._model, "title") == title)
            .where(_col(self._model, "created_at") >= since)
        )
        return (await self._session.exec(stmt)).first()

    async def get(self, record_id: str) -> T:
        row = await self._session.get(self._model, record_id)
        if row is None:
            raise NotFound(f"{self.label} not found")
        return row

    async def list_recent(self, *, limit: int = 100, offset: int = 0) -> list[T]:
        stmt = (
            select(self._model)
            .order_by(_col(self._model, "created_at").desc())
            .offset(offset)
            .limit(limit)
        )
        return list((await self._session.exec(stmt)).all())

    async def create(self, fields: Mapping[str, object]) -> T:
        values = self._validated(fields, fields)
        row = self._model(**values)
        await self._commit(row, action="create")
        return row

    async def update(self, record_id: str, fields: Mapping[str, object]) -> T:
        row = await self.get(record_id)
        merged = {**row.model_dump(), **fields}
        values = self._validated(merged, fields)
        for key, value in values.items():
            setattr(row, key, value)
        if "updated_at" in self._model.model_fields:
            setattr(row, "updated_at", utc_now())
        await self._commit(row, action="update")
        return row

    async def save(self, row: T) -> T:
        """Persist in-place counter/toggle changes on a loaded row."""
        await self._commit(row, action="save")
        return row

    async def delete(self, record_id: str) -> bool:
        row = await self._session.get(self._model, record_id)
        if row is None:
            return False
        try:
            await self._session.delete(row)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.warning("%s delete failed id=%s", self.label, record_id, exc_info=True)
            raise PersistenceFailed(f"failed to delete {self.label}") from e
        return True

    async def _commit(self, row: T, *, action: str) -> None:
        try:
            self._session.add(row)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.warning("%s %s failed", self.label, action, exc_info=True)
            raise PersistenceFailed(f"failed to {action} {self.label}") from e
        await self._session.refresh(row)
