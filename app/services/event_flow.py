from __future__ import annotations

import datetime
import random
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError

from app.db import Event, EventStatus, Participant, repo, session_scope
from app.services.assignment import (
    Assignment,
    AssignmentError,
    AssignmentSet,
    generate_assignments,
    validate,
)
from app.services.notifications import (
    NotificationReport,
    Notifier,
    build_organizer_message,
    build_participant_messages,
)
from app.services.submission import EventSubmission, validate_submission


class EventNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class CreatedEvent:
    event: Event
    participants: List[Participant]


@dataclass(frozen=True)
class AssignmentResult:
    assignment_set: AssignmentSet
    participants: List[Participant]
    event: Event


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.timezone.utc)


def create_event(
    session,
    submission: EventSubmission,
    today: Optional[datetime.date] = None,
) -> CreatedEvent:
    validate_submission(submission, today=today)

    event = repo.create_event(
        session,
        name=submission.name,
        exchange_date=submission.exchange_date,
        organizer_email=submission.organizer_email,
        budget=submission.budget,
    )
    participants = repo.add_participants(session, event.id, submission.participants)
    logger.bind(event_id=event.id).info(
        "Event created with {count} participants", count=len(participants)
    )
    return CreatedEvent(event=event, participants=participants)


def get_event(session, event_id: str) -> Event:
    event = repo.get_event(session, event_id)
    if event is None:
        raise EventNotFoundError(f"Event {event_id} does not exist.")
    return event


def assign_event(
    session,
    event: Event,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> AssignmentResult:
    if event.status != EventStatus.CREATED:
        raise AssignmentError("Secret Santa has already been assigned for this event.")

    participants = repo.list_participants(session, event.id)
    assignment_set = generate_assignments(participants, seed=seed, rng=rng)

    try:
        repo.create_assignments(session, event.id, assignment_set)
    except IntegrityError as exc:
        raise AssignmentError("Secret Santa assignments already exist for this event.") from exc
    repo.update_event_status(session, event, EventStatus.ASSIGNED, assigned_at=_utcnow())
    logger.bind(event_id=event.id).info(
        "Assignments generated for {count} participants", count=len(assignment_set)
    )

    return AssignmentResult(assignment_set=assignment_set, participants=participants, event=event)


def load_assignments(session, event: Event) -> AssignmentSet:
    participants = repo.list_participants(session, event.id)
    by_id = {participant.id: participant for participant in participants}
    rows = repo.list_assignments(session, event.id)

    assignments = []
    for row in rows:
        receiver = by_id.get(row.receiver_participant_id)
        assignments.append(
            Assignment(
                giver_id=row.giver_participant_id,
                receiver_id=row.receiver_participant_id,
                receiver_name=receiver.name if receiver else "",
                receiver_wish_list=receiver.wish_list if receiver else None,
            )
        )

    assignment_set = AssignmentSet(tuple(assignments))
    validate(assignment_set, participants)
    return assignment_set


def assignments_complete(session, event: Event) -> bool:
    return repo.assignments_complete(session, event.id)


async def notify_event(session_factory, event_id: str, notifier: Notifier) -> NotificationReport:
    with session_scope(session_factory) as session:
        event = get_event(session, event_id)
        if event.status == EventStatus.CREATED:
            raise AssignmentError("Assignments have not been generated for this event yet.")
        participants = repo.list_participants(session, event.id)
        assignment_set = load_assignments(session, event)
        messages = build_participant_messages(event, participants, assignment_set)
        messages.append(build_organizer_message(event, len(participants)))

    report = await notifier.send_all(messages)

    if report.all_participants_notified:
        with session_scope(session_factory) as session:
            event = get_event(session, event_id)
            repo.update_event_status(session, event, EventStatus.NOTIFIED, notified_at=_utcnow())
    else:
        logger.bind(event_id=event_id).warning(
            "{failed} participant emails failed; event left as assigned",
            failed=len(report.participant_failures),
        )
    return report
