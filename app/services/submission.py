from __future__ import annotations

import datetime
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from app.services.assignment import MIN_PARTICIPANTS

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SubmissionError(ValueError):
    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


@dataclass(frozen=True)
class ParticipantSubmission:
    name: str
    email: str
    wish_list: Optional[str] = None


@dataclass(frozen=True)
class EventSubmission:
    name: str
    exchange_date: Optional[datetime.date]
    organizer_email: str
    participants: Tuple[ParticipantSubmission, ...]
    budget: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: dict) -> "EventSubmission":
        if not isinstance(data, dict):
            raise SubmissionError(["Submission must be a JSON object"])
        event = data.get("event") or {}
        if not isinstance(event, dict):
            raise SubmissionError(["Event must be a JSON object"])
        items = data.get("participants") or []
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise SubmissionError(["Participants must be a list of JSON objects"])
        participants = tuple(
            ParticipantSubmission(
                name=_clean(item.get("name")) or "",
                email=_clean(item.get("email")) or "",
                wish_list=_clean(item.get("wishList")),
            )
            for item in items
        )
        return cls(
            name=_clean(event.get("name")) or "",
            exchange_date=_parse_date(event.get("exchangeDate")),
            organizer_email=_clean(event.get("organizerEmail")) or "",
            participants=participants,
            budget=_parse_budget(event.get("budget")),
        )


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_date(value) -> Optional[datetime.date]:
    if isinstance(value, datetime.date):
        return value
    text = _clean(value)
    if not text:
        return None
    try:
        return datetime.date.fromisoformat(text)
    except ValueError as exc:
        raise SubmissionError([f"Exchange date '{text}' is not a valid date"]) from exc


def _parse_budget(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        budget = Decimal(str(value))
    except InvalidOperation as exc:
        raise SubmissionError([f"Budget '{value}' is not a number"]) from exc
    if not budget.is_finite():
        raise SubmissionError([f"Budget '{value}' is not a number"])
    return budget


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_PATTERN.fullmatch(email) is not None


def validate_submission(submission: EventSubmission, today: Optional[datetime.date] = None) -> None:
    """Collect every problem with an organizer's form and raise them together."""
    today = today or datetime.date.today()
    errors: List[str] = []

    if not submission.name.strip():
        errors.append("Event name is required")

    if submission.exchange_date is None:
        errors.append("Exchange date is required")
    elif submission.exchange_date < today:
        errors.append("Exchange date must be in the future")

    if not submission.organizer_email.strip():
        errors.append("Organizer email is required")
    elif not is_valid_email(submission.organizer_email):
        errors.append("Organizer email is not a valid email address")

    if submission.budget is not None:
        if not submission.budget.is_finite():
            errors.append("Budget is not a number")
        elif submission.budget < 0:
            errors.append("Budget cannot be negative")

    if len(submission.participants) < MIN_PARTICIPANTS:
        errors.append(f"You must have at least {MIN_PARTICIPANTS} participants")

    seen_emails = set()
    for position, participant in enumerate(submission.participants, start=1):
        if not participant.name.strip():
            errors.append(f"Participant {position}: name is required")
        email = participant.email.strip()
        if not email:
            errors.append(f"Participant {position}: email is required")
        elif not is_valid_email(email):
            errors.append(f"Participant {position}: invalid email format")
        elif email.lower() in seen_emails:
            errors.append(f"Participant {position}: duplicate email address")
        else:
            seen_emails.add(email.lower())

    if errors:
        raise SubmissionError(errors)
