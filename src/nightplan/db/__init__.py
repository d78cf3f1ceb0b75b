"""SQL-backed repository collaborators for the plan engine."""

from nightplan.db.children import SqlChildProfileLookup, find_child, save_child
from nightplan.db.events import SqlEventStatsCollector, count_events_by_type, record_event
from nightplan.db.repository import get_engine, reset_repository_state, session_scope

__all__ = [
    "SqlChildProfileLookup",
    "SqlEventStatsCollector",
    "count_events_by_type",
    "find_child",
    "get_engine",
    "record_event",
    "reset_repository_state",
    "save_child",
    "session_scope",
]
