from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Hashable, Iterator, List, Optional, Sequence, Tuple

MIN_PARTICIPANTS = 3

_REQUIRED_FIELDS = ("id", "name", "email")


class AssignmentError(RuntimeError):
    pass


class InsufficientParticipantsError(AssignmentError):
    def __init__(self, count: int) -> None:
        super().__init__(f"Need at least {MIN_PARTICIPANTS} participants, got {count}.")
        self.count = count


class MalformedParticipantError(AssignmentError):
    def __init__(self, index: int, missing: Sequence[str]) -> None:
        super().__init__(
            "Participant at position {0} is missing: {1}".format(index, ", ".join(missing))
        )
        self.index = index
        self.missing = tuple(missing)


class AssignmentInvariantViolation(AssignmentError):
    """Raised when a produced assignment set fails validation.

    Reaching this means the generator is broken, so callers should report it
    instead of retrying with different randomness.
    """


class SelfAssignmentError(AssignmentInvariantViolation):
    def __init__(self, participant_id: Hashable) -> None:
        super().__init__(f"Participant {participant_id!r} is assigned to themselves.")
        self.participant_id = participant_id


class IncompleteCoverageError(AssignmentInvariantViolation):
    def __init__(self, role: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Expected {expected} distinct {role}s, found {actual}."
        )
        self.role = role
        self.expected = expected
        self.actual = actual


class UnknownParticipantError(AssignmentInvariantViolation):
    def __init__(self, participant_id: Hashable) -> None:
        super().__init__(f"Participant {participant_id!r} is not part of this event.")
        self.participant_id = participant_id


@dataclass(frozen=True)
class Participant:
    id: Hashable
    name: str
    email: str
    wish_list: Optional[str] = None


@dataclass(frozen=True)
class Assignment:
    giver_id: Hashable
    receiver_id: Hashable
    receiver_name: str
    receiver_wish_list: Optional[str] = None


@dataclass(frozen=True)
class AssignmentSet:
    assignments: Tuple[Assignment, ...]

    def __iter__(self) -> Iterator[Assignment]:
        return iter(self.assignments)

    def __len__(self) -> int:
        return len(self.assignments)

    def as_mapping(self) -> Dict[Hashable, Hashable]:
        return {item.giver_id: item.receiver_id for item in self.assignments}

    def for_giver(self, giver_id: Hashable) -> Optional[Assignment]:
        for item in self.assignments:
            if item.giver_id == giver_id:
                return item
        return None


def _is_blank(value) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _check_participants(participants: Sequence) -> None:
    if len(participants) < MIN_PARTICIPANTS:
        raise InsufficientParticipantsError(len(participants))
    for index, participant in enumerate(participants):
        missing = [
            field for field in _REQUIRED_FIELDS if _is_blank(getattr(participant, field, None))
        ]
        if missing:
            raise MalformedParticipantError(index, missing)


def _shuffle(items: List, rng) -> None:
    # Fisher-Yates, in place on our own copy.
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]


def find_violations(
    assignment_set: AssignmentSet,
    participants: Sequence,
) -> List[AssignmentInvariantViolation]:
    """Run every check and return all violations in check order."""
    expected = len(participants)
    known_ids = {participant.id for participant in participants}
    violations: List[AssignmentInvariantViolation] = []

    for item in assignment_set:
        if item.giver_id == item.receiver_id:
            violations.append(SelfAssignmentError(item.giver_id))

    giver_ids = [item.giver_id for item in assignment_set]
    distinct_givers = len(set(giver_ids))
    if distinct_givers != expected or len(giver_ids) != expected:
        violations.append(IncompleteCoverageError("giver", expected, distinct_givers))

    receiver_ids = [item.receiver_id for item in assignment_set]
    distinct_receivers = len(set(receiver_ids))
    if distinct_receivers != expected or len(receiver_ids) != expected:
        violations.append(IncompleteCoverageError("receiver", expected, distinct_receivers))

    seen_unknown = set()
    for participant_id in giver_ids + receiver_ids:
        if participant_id not in known_ids and participant_id not in seen_unknown:
            seen_unknown.add(participant_id)
            violations.append(UnknownParticipantError(participant_id))

    return violations


def validate(assignment_set: AssignmentSet, participants: Sequence) -> None:
    violations = find_violations(assignment_set, participants)
    if violations:
        raise violations[0]


def generate_assignments(
    participants: Sequence,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> AssignmentSet:
    """Pair every participant with a secret receiver.

    The participants are shuffled and each one gives to the next in the
    shuffled order, wrapping around at the end, so the result is a single
    cycle through everyone. ``rng`` wins over ``seed``; with neither, draws
    come from the operating system's random source.
    """
    _check_participants(participants)

    if rng is None:
        rng = random.Random(seed) if seed is not None else random.SystemRandom()

    shuffled = list(participants)
    _shuffle(shuffled, rng)

    count = len(shuffled)
    assignments: List[Assignment] = []
    for k, giver in enumerate(shuffled):
        receiver = shuffled[(k + 1) % count]
        assignments.append(
            Assignment(
                giver_id=giver.id,
                receiver_id=receiver.id,
                receiver_name=receiver.name,
                receiver_wish_list=getattr(receiver, "wish_list", None),
            )
        )

    assignment_set = AssignmentSet(tuple(assignments))
    validate(assignment_set, participants)
    return assignment_set
