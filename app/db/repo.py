from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func, select

from app.db.models import Assignment, Event, EventStatus, Participant


def create_event(
    session,
    name: str,
    exchange_date: datetime.date,
    organizer_email: str,
    budget: Optional[Decimal] = None,
) -> Event:
    event = Event(
        name=name,
        exchange_date=exchange_date,
        organizer_email=organizer_email,
        budget=budget,
        status=EventStatus.CREATED,
    )
    session.add(event)
    session.flush()
    return event


def get_event(session, event_id: str) -> Optional[Event]:
    return session.scalar(select(Event).where(Event.id == event_id))


def add_participants(session, event_id: str, participants: Iterable) -> List[Participant]:
    rows = [
        Participant(
            event_id=event_id,
            position=position,
            name=participant.name,
            email=participant.email,
            wish_list=participant.wish_list,
        )
        for position, participant in enumerate(participants)
    ]
    session.add_all(rows)
    session.flush()
    return rows


def list_participants(session, event_id: str) -> List[Participant]:
    return list(
        session.scalars(
            select(Participant)
            .where(Participant.event_id == event_id)
            .order_by(Participant.position)
        ).all()
    )


def count_participants(session, event_id: str) -> int:
    return session.scalar(
        select(func.count()).select_from(Participant).where(Participant.event_id == event_id)
    )


def update_event_status(
    session,
    event: Event,
    status: EventStatus,
    assigned_at: Optional[datetime.datetime] = None,
    notified_at: Optional[datetime.datetime] = None,
) -> None:
    event.status = status
    if assigned_at is not None:
        event.assigned_at = assigned_at
    if notified_at is not None:
        event.notified_at = notified_at


def create_assignments(session, event_id: str, assignments: Iterable) -> None:
    rows = [
        Assignment(
            event_id=event_id,
            giver_participant_id=item.giver_id,
            receiver_participant_id=item.receiver_id,
        )
        for item in assignments
    ]
    session.add_all(rows)
    session.flush()


def list_assignments(session, event_id: str) -> List[Assignment]:
    return list(
        session.scalars(
            select(Assignment).where(Assignment.event_id == event_id).order_by(Assignment.id)
        ).all()
    )


def count_assignments(session, event_id: str) -> int:
    return session.scalar(
        select(func.count()).select_from(Assignment).where(Assignment.event_id == event_id)
    )


def assignments_complete(session, event_id: str) -> bool:
    participant_total = count_participants(session, event_id)
    if participant_total == 0:
        return False
    givers_with_assignment = session.scalar(
        select(func.count(func.distinct(Assignment.giver_participant_id))).where(
            Assignment.event_id == event_id
        )
    )
    return (
        givers_with_assignment == participant_total
        and count_assignments(session, event_id) == participant_total
    )
