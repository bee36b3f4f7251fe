import random
from collections import Counter

import pytest

from app.services.assignment import (
    AssignmentSet,
    InsufficientParticipantsError,
    MalformedParticipantError,
    Participant,
    generate_assignments,
    validate,
)


def make_participants(count):
    return [
        Participant(id=index, name=f"Person {index}", email=f"person{index}@example.com")
        for index in range(1, count + 1)
    ]


def follow_chain(mapping, start):
    visited = [start]
    current = mapping[start]
    while current != start:
        visited.append(current)
        current = mapping[current]
    return visited


class ScriptedRandom:
    def __init__(self, draws):
        self.draws = list(draws)
        self.calls = []

    def randint(self, a, b):
        self.calls.append((a, b))
        return self.draws.pop(0)


class ExplodingRandom:
    def randint(self, a, b):
        raise AssertionError("randomness must not be drawn for invalid input")


@pytest.mark.parametrize("count", [3, 4, 5, 10, 37])
def test_assignment_basic_bijection(count):
    participants = make_participants(count)
    ids = [p.id for p in participants]
    for seed in range(25):
        result = generate_assignments(participants, seed=seed)
        assert len(result) == count
        assert sorted(item.giver_id for item in result) == ids
        assert sorted(item.receiver_id for item in result) == ids


@pytest.mark.parametrize("count", [3, 4, 6, 9])
def test_assignment_has_no_fixed_points(count):
    participants = make_participants(count)
    for seed in range(50):
        result = generate_assignments(participants, seed=seed)
        assert all(item.giver_id != item.receiver_id for item in result)


@pytest.mark.parametrize("count", [3, 5, 8, 20])
def test_assignment_forms_single_cycle(count):
    participants = make_participants(count)
    mapping = generate_assignments(participants, seed=count).as_mapping()
    for start in mapping:
        chain = follow_chain(mapping, start)
        assert len(chain) == count
        assert set(chain) == set(mapping)


@pytest.mark.parametrize("count", [0, 1, 2])
def test_assignment_fails_for_too_few_participants(count):
    with pytest.raises(InsufficientParticipantsError):
        generate_assignments(make_participants(count), seed=1)


def test_assignment_three_people_is_a_three_cycle():
    participants = make_participants(3)
    cycles = {
        ((1, 2), (2, 3), (3, 1)),
        ((1, 3), (2, 1), (3, 2)),
    }
    seen = set()
    for seed in range(40):
        mapping = generate_assignments(participants, seed=seed).as_mapping()
        pairs = tuple(sorted(mapping.items()))
        assert pairs in cycles
        seen.add(pairs)
    assert seen == cycles


def test_assignment_duplicate_looking_participants():
    participants = [
        Participant(id=f"id-{index}", name="Sam", email="sam@example.com") for index in range(4)
    ]
    result = generate_assignments(participants, seed=3)
    assert len({item.giver_id for item in result}) == 4
    assert len({item.receiver_id for item in result}) == 4
    assert all(item.giver_id != item.receiver_id for item in result)


@pytest.mark.parametrize(
    "broken",
    [
        Participant(id=4, name="Dana", email=""),
        Participant(id=4, name="Dana", email=None),
        Participant(id=4, name="   ", email="dana@example.com"),
        Participant(id=None, name="Dana", email="dana@example.com"),
    ],
)
def test_assignment_rejects_malformed_participant_before_shuffle(broken):
    participants = make_participants(3) + [broken]
    with pytest.raises(MalformedParticipantError) as exc_info:
        generate_assignments(participants, rng=ExplodingRandom())
    assert exc_info.value.index == 3


def test_assignment_rejects_record_without_email_attribute():
    class Partial:
        id = 9
        name = "No Email"

    with pytest.raises(MalformedParticipantError) as exc_info:
        generate_assignments(make_participants(3) + [Partial()], rng=ExplodingRandom())
    assert exc_info.value.missing == ("email",)


def test_assignment_does_not_mutate_input():
    participants = make_participants(6)
    snapshot = list(participants)
    generate_assignments(participants, seed=11)
    assert participants == snapshot


def test_assignment_deterministic_seed():
    participants = make_participants(7)
    first = generate_assignments(participants, seed=123)
    second = generate_assignments(participants, seed=123)
    assert first == second


def test_assignment_uses_fisher_yates_draws():
    a, b, c = make_participants(3)
    rng = ScriptedRandom([0, 1])
    result = generate_assignments([a, b, c], rng=rng)
    # i=2 swaps with 0 -> [c, b, a]; i=1 stays -> [c, b, a]
    assert rng.calls == [(0, 2), (0, 1)]
    assert [(item.giver_id, item.receiver_id) for item in result] == [(3, 2), (2, 1), (1, 3)]


def test_assignment_carries_receiver_details():
    participants = [
        Participant(id=1, name="Ana", email="ana@example.com", wish_list="Books"),
        Participant(id=2, name="Bo", email="bo@example.com"),
        Participant(id=3, name="Cy", email="cy@example.com", wish_list="Tea"),
    ]
    by_id = {p.id: p for p in participants}
    for item in generate_assignments(participants, seed=8):
        receiver = by_id[item.receiver_id]
        assert item.receiver_name == receiver.name
        assert item.receiver_wish_list == receiver.wish_list


def test_assignment_validation_is_idempotent():
    participants = make_participants(12)
    result = generate_assignments(participants, seed=99)
    validate(result, participants)
    validate(result, participants)
    assert isinstance(result, AssignmentSet)


def test_assignment_without_seed_uses_system_random():
    participants = make_participants(5)
    result = generate_assignments(participants)
    validate(result, participants)


def test_assignment_receiver_distribution_is_uniform():
    participants = make_participants(4)
    rng = random.Random(2024)
    trials = 3000
    counts = Counter(
        generate_assignments(participants, rng=rng).as_mapping()[1] for _ in range(trials)
    )
    assert set(counts) == {2, 3, 4}
    expected = trials / 3
    chi_square = sum((observed - expected) ** 2 / expected for observed in counts.values())
    # df=2; 20 is far beyond the 0.1% critical value of 13.8
    assert chi_square < 20
