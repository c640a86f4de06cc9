"""
Single-elimination bracket layout from an ordered seed list.

Seeds are placed into bracket slots by a fixed pattern per bracket size;
consecutive slots form round-1 pairs. A pair holding only one team is a bye:
no round-1 row is planned for it and the team is carried straight into its
round-2 slot. Pure functions only; persistence lives in bracket_service.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

# Largest bracket offered. Adding a slot table below is enough to go larger.
MAX_BRACKET_SIZE = 8

# Seed number occupying each bracket slot, top to bottom.
SEED_SLOT_TABLES: Dict[int, List[int]] = {
    2: [1, 2],
    4: [1, 4, 2, 3],
    8: [1, 8, 4, 5, 3, 6, 2, 7],
}


class BracketLayoutError(ValueError):
    pass


@dataclass(frozen=True)
class PlannedMatch:
    bracket_round: int
    bracket_match_index: int
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None


@dataclass
class BracketPlan:
    bracket_size: int
    rounds: int
    matches: List[PlannedMatch] = field(default_factory=list)
    # team id -> (round, match index, slot) it was carried into by a bye
    bye_carries: Dict[int, Tuple[int, int, str]] = field(default_factory=dict)


def bracket_size_for(n: int, max_size: int = MAX_BRACKET_SIZE) -> int:
    """Smallest supported bracket size holding n teams."""
    if n <= 0:
        raise BracketLayoutError("No advancing teams found (check pool advancement rules and scores).")
    for size in sorted(SEED_SLOT_TABLES):
        if size > max_size:
            break
        if size >= n:
            return size
    raise BracketLayoutError(f"Total advancers ({n}) exceed supported bracket size ({max_size}).")


def seed_slots(size: int) -> List[int]:
    try:
        return list(SEED_SLOT_TABLES[size])
    except KeyError:
        raise BracketLayoutError(f"No seed slot table for bracket size {size}")


def round_count(size: int) -> int:
    return size.bit_length() - 1


def next_slot(bracket_match_index: int) -> Tuple[int, str]:
    """Index of the next-round match and the slot ("team1"/"team2") a winner moves into."""
    return bracket_match_index // 2, ("team1" if bracket_match_index % 2 == 0 else "team2")


def plan_bracket(seeds: Sequence[int], max_size: int = MAX_BRACKET_SIZE) -> BracketPlan:
    """
    Lay out bracket matches for seeds (team ids, best seed first).

    Round 1 holds only pairs with two real teams; bye teams are pre-filled into
    round 2. Rounds after 2 start empty. A 2-team bracket is just the final.
    """
    n = len(seeds)
    size = bracket_size_for(n, max_size)
    rounds = round_count(size)
    slots: List[Optional[int]] = [seeds[s - 1] if s <= n else None for s in seed_slots(size)]

    plan = BracketPlan(bracket_size=size, rounds=rounds)

    if rounds == 1:
        plan.matches.append(PlannedMatch(1, 0, slots[0], slots[1]))
        return plan

    round2: Dict[int, Dict[str, Optional[int]]] = {i: {"team1": None, "team2": None} for i in range(size >> 2)}

    for i in range(size >> 1):
        a, b = slots[2 * i], slots[2 * i + 1]
        if a is not None and b is not None:
            plan.matches.append(PlannedMatch(1, i, a, b))
        elif a is not None or b is not None:
            carried = a if a is not None else b
            next_index, side = next_slot(i)
            round2[next_index][side] = carried
            plan.bye_carries[carried] = (2, next_index, side)

    for r in range(2, rounds + 1):
        for i in range(size >> r):
            if r == 2:
                plan.matches.append(PlannedMatch(2, i, round2[i]["team1"], round2[i]["team2"]))
            else:
                plan.matches.append(PlannedMatch(r, i))

    return plan
