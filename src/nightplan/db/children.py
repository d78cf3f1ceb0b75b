"""Data access helpers for child profiles."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from sqlalchemy import select

from nightplan.models.context import ChildProfile

from .models import ChildORM
from .repository import session_scope


def _to_model(row: ChildORM) -> ChildProfile:
    return ChildProfile.model_validate(
        {
            "birthdate": row.birthdate,
            "survey_data": row.survey_data,
        }
    )


def save_child(
    child_id: str,
    *,
    name: Optional[str] = None,
    birthdate: Optional[date] = None,
    survey_data: Optional[dict[str, Any]] = None,
) -> ChildProfile:
    """Insert or update a child profile (upsert on id)."""

    with session_scope() as session:
        row = session.execute(select(ChildORM).where(ChildORM.id == child_id)).scalar_one_or_none()
        if row is None:
            row = ChildORM(id=child_id)
            session.add(row)
        if name is not None:
            row.name = name
        if birthdate is not None:
            row.birthdate = birthdate
        if survey_data is not None:
            row.survey_data = survey_data
        session.flush()
        return _to_model(row)


def find_child(child_id: str) -> ChildProfile | None:
    """Return the child's profile, if present."""

    with session_scope() as session:
        row = session.execute(select(ChildORM).where(ChildORM.id == child_id)).scalar_one_or_none()
        return _to_model(row) if row is not None else None


class SqlChildProfileLookup:
    """ChildProfileLookup backed by the ``children`` table."""

    def find_by_id(self, child_id: str) -> ChildProfile | None:
        return find_child(child_id)


__all__ = ["SqlChildProfileLookup", "find_child", "save_child"]
