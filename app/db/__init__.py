from app.db.models import Assignment, Base, Event, EventStatus, Participant
from app.db.session import create_session_factory, session_scope

__all__ = [
    "Assignment",
    "Base",
    "Event",
    "EventStatus",
    "Participant",
    "create_session_factory",
    "session_scope",
]
