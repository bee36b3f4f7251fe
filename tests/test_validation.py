import pytest

from app.services.assignment import (
    Assignment,
    AssignmentSet,
    IncompleteCoverageError,
    Participant,
    SelfAssignmentError,
    UnknownParticipantError,
    find_violations,
    validate,
)

PARTICIPANTS = [
    Participant(id=1, name="Ana", email="ana@example.com"),
    Participant(id=2, name="Bo", email="bo@example.com"),
    Participant(id=3, name="Cy", email="cy@example.com"),
]


def make_set(pairs):
    return AssignmentSet(
        tuple(Assignment(giver_id=g, receiver_id=r, receiver_name=f"#{r}") for g, r in pairs)
    )


def test_valid_cycle_passes():
    validate(make_set([(1, 2), (2, 3), (3, 1)]), PARTICIPANTS)
    assert find_violations(make_set([(1, 3), (3, 2), (2, 1)]), PARTICIPANTS) == []


def test_self_assignment_is_reported_first():
    with pytest.raises(SelfAssignmentError) as exc_info:
        validate(make_set([(1, 1), (2, 3), (3, 2)]), PARTICIPANTS)
    assert exc_info.value.participant_id == 1


def test_missing_giver_is_incomplete_coverage():
    with pytest.raises(IncompleteCoverageError) as exc_info:
        validate(make_set([(1, 2), (2, 1)]), PARTICIPANTS)
    assert exc_info.value.role == "giver"
    assert exc_info.value.expected == 3


def test_duplicate_giver_is_incomplete_coverage():
    with pytest.raises(IncompleteCoverageError) as exc_info:
        validate(make_set([(1, 2), (1, 3), (3, 1)]), PARTICIPANTS)
    assert exc_info.value.role == "giver"


def test_duplicate_receiver_is_incomplete_coverage():
    with pytest.raises(IncompleteCoverageError) as exc_info:
        validate(make_set([(1, 2), (2, 3), (3, 2)]), PARTICIPANTS)
    assert exc_info.value.role == "receiver"


def test_unknown_participant_is_rejected():
    with pytest.raises(UnknownParticipantError) as exc_info:
        validate(make_set([(1, 2), (2, 3), (3, 4)]), PARTICIPANTS)
    # receiver coverage still holds (2, 3, 4 are distinct)
    assert exc_info.value.participant_id == 4


def test_find_violations_collects_every_problem_in_order():
    violations = find_violations(make_set([(1, 1), (1, 9)]), PARTICIPANTS)
    kinds = [type(violation) for violation in violations]
    assert kinds == [
        SelfAssignmentError,
        IncompleteCoverageError,
        IncompleteCoverageError,
        UnknownParticipantError,
    ]
    assert [v.role for v in violations if isinstance(v, IncompleteCoverageError)] == [
        "giver",
        "receiver",
    ]
