from __future__ import annotations

import enum
import uuid

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class EventStatus(str, enum.Enum):
    CREATED = "created"
    ASSIGNED = "assigned"
    NOTIFIED = "notified"


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    exchange_date = Column(Date, nullable=False)
    budget = Column(Numeric(10, 2), nullable=True)
    organizer_email = Column(String, nullable=False)
    status = Column(
        Enum(
            EventStatus,
            name="event_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=EventStatus.CREATED,
        server_default=EventStatus.CREATED.value,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    notified_at = Column(DateTime(timezone=True), nullable=True)

    participants = relationship(
        "Participant",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Participant.position",
    )
    assignments = relationship("Assignment", back_populates="event", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name!r}, status={self.status})>"


class Participant(Base):
    __tablename__ = "participants"

    id = Column(String(36), primary_key=True, default=_new_id)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    wish_list = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_participants_event_email"),
    )

    def __repr__(self) -> str:
        return "<Participant(id={0}, event_id={1}, name={2!r})>".format(
            self.id, self.event_id, self.name
        )


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    giver_participant_id = Column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    receiver_participant_id = Column(
        String(36), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="assignments")
    giver = relationship("Participant", foreign_keys=[giver_participant_id])
    receiver = relationship("Participant", foreign_keys=[receiver_participant_id])

    __table_args__ = (
        UniqueConstraint("event_id", "giver_participant_id", name="uq_assignments_event_giver"),
    )
