"""Bracket layout: size selection, slot placement, byes carried into round 2."""
import pytest

from gbv.services.bracket_layout import (
    BracketLayoutError,
    bracket_size_for,
    next_slot,
    plan_bracket,
    round_count,
    seed_slots,
)


def _rows(plan, bracket_round):
    return sorted(
        (m for m in plan.matches if m.bracket_round == bracket_round), key=lambda m: m.bracket_match_index
    )


@pytest.mark.parametrize(
    "n,size",
    [(1, 2), (2, 2), (3, 4), (4, 4), (5, 8), (6, 8), (7, 8), (8, 8)],
)
def test_bracket_size_is_smallest_fitting_power_of_two(n, size):
    assert bracket_size_for(n) == size


def test_bracket_size_errors():
    with pytest.raises(BracketLayoutError, match="No advancing teams"):
        bracket_size_for(0)
    with pytest.raises(BracketLayoutError, match=r"Total advancers \(9\) exceed supported bracket size \(8\)"):
        bracket_size_for(9)


def test_seed_slot_tables():
    assert seed_slots(2) == [1, 2]
    assert seed_slots(4) == [1, 4, 2, 3]
    assert seed_slots(8) == [1, 8, 4, 5, 3, 6, 2, 7]
    with pytest.raises(BracketLayoutError):
        seed_slots(16)


def test_next_slot_routing():
    assert next_slot(0) == (0, "team1")
    assert next_slot(1) == (0, "team2")
    assert next_slot(2) == (1, "team1")
    assert next_slot(3) == (1, "team2")
    assert round_count(2) == 1
    assert round_count(4) == 2
    assert round_count(8) == 3


def test_full_eight_team_bracket():
    seeds = [101, 102, 103, 104, 105, 106, 107, 108]
    plan = plan_bracket(seeds)

    assert (plan.bracket_size, plan.rounds) == (8, 3)
    r1 = _rows(plan, 1)
    assert [(m.team1_id, m.team2_id) for m in r1] == [(101, 108), (104, 105), (103, 106), (102, 107)]
    assert all(m.team1_id is None and m.team2_id is None for m in _rows(plan, 2) + _rows(plan, 3))
    assert len(plan.matches) == 7
    assert plan.bye_carries == {}


def test_five_teams_in_eight_bracket():
    a, b, c, d, e = 1, 2, 3, 4, 5
    plan = plan_bracket([a, b, c, d, e])

    r1 = _rows(plan, 1)
    # Only the 4 v 5 pair is real; its index stays 1 (slot pair 2&3).
    assert [(m.bracket_match_index, m.team1_id, m.team2_id) for m in r1] == [(1, d, e)]

    r2 = _rows(plan, 2)
    assert [(m.team1_id, m.team2_id) for m in r2] == [(a, None), (c, b)]
    assert _rows(plan, 3)[0].team1_id is None and _rows(plan, 3)[0].team2_id is None

    assert plan.bye_carries == {a: (2, 0, "team1"), c: (2, 1, "team1"), b: (2, 1, "team2")}


def test_three_teams_in_four_bracket():
    plan = plan_bracket([10, 20, 30])

    assert (plan.bracket_size, plan.rounds) == (4, 2)
    assert [(m.bracket_match_index, m.team1_id, m.team2_id) for m in _rows(plan, 1)] == [(1, 20, 30)]
    final = _rows(plan, 2)
    assert [(m.team1_id, m.team2_id) for m in final] == [(10, None)]


def test_two_teams_is_a_single_final():
    plan = plan_bracket([10, 20])
    assert plan.rounds == 1
    assert [(m.bracket_round, m.bracket_match_index, m.team1_id, m.team2_id) for m in plan.matches] == [
        (1, 0, 10, 20)
    ]


def test_single_team_gets_a_bye_final():
    plan = plan_bracket([10])
    assert [(m.bracket_round, m.team1_id, m.team2_id) for m in plan.matches] == [(1, 10, None)]


@pytest.mark.parametrize("n", range(1, 9))
def test_every_team_appears_exactly_once(n):
    seeds = list(range(100, 100 + n))
    plan = plan_bracket(seeds)

    placed = [t for m in plan.matches for t in (m.team1_id, m.team2_id) if t is not None]
    assert sorted(placed) == seeds
    keys = [(m.bracket_round, m.bracket_match_index) for m in plan.matches]
    assert len(keys) == len(set(keys))
    assert (plan.rounds, 0) in keys


def test_round_one_matches_always_have_two_teams():
    for n in range(2, 9):
        plan = plan_bracket(list(range(1, n + 1)))
        if plan.rounds == 1:
            continue
        assert all(m.team1_id is not None and m.team2_id is not None for m in _rows(plan, 1))


def test_too_many_advancers():
    with pytest.raises(BracketLayoutError):
        plan_bracket(list(range(9)))
