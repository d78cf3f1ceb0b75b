"""Data access helpers for logged child events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from .models import EventORM
from .repository import session_scope


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def record_event(
    child_id: str,
    event_type: str,
    start_time: datetime,
    *,
    notes: Optional[str] = None,
) -> int:
    """Insert an event and return its identifier."""

    normalized_type = event_type.strip()
    if not normalized_type:
        raise ValueError("event_type must not be blank")
    with session_scope() as session:
        row = EventORM(
            child_id=child_id,
            event_type=normalized_type,
            start_time=_to_naive_utc(start_time),
            notes=notes,
        )
        session.add(row)
        try:
            session.flush()
        except IntegrityError as exc:
            raise ValueError(f"unknown child: {child_id}") from exc
        return row.id


def count_events_by_type(child_id: str, from_: datetime, to: datetime) -> dict[str, int]:
    """Return event counts keyed by type for events starting inside ``[from_, to)``."""

    start = _to_naive_utc(from_)
    end = _to_naive_utc(to)
    if start >= end:
        raise ValueError("from_ must be strictly before to")

    with session_scope() as session:
        rows = session.execute(
            select(EventORM.event_type, func.count(EventORM.id))
            .where(
                EventORM.child_id == child_id,
                EventORM.start_time >= start,
                EventORM.start_time < end,
            )
            .group_by(EventORM.event_type)
            .order_by(EventORM.event_type)
        ).all()
    return {event_type: int(count) for event_type, count in rows if count > 0}


class SqlEventStatsCollector:
    """EventStatsCollector backed by the ``events`` table."""

    def count_by_types(self, child_id: str, from_: datetime, to: datetime) -> dict[str, int]:
        return count_events_by_type(child_id, from_, to)


__all__ = ["SqlEventStatsCollector", "count_events_by_type", "record_event"]
