from app.services.assignment import (
    AssignmentError,
    AssignmentInvariantViolation,
    InsufficientParticipantsError,
    MalformedParticipantError,
    generate_assignments,
    validate,
)
from app.services.notifications import NotificationError
from app.services.submission import SubmissionError

__all__ = [
    "AssignmentError",
    "AssignmentInvariantViolation",
    "InsufficientParticipantsError",
    "MalformedParticipantError",
    "generate_assignments",
    "validate",
    "NotificationError",
    "SubmissionError",
]
