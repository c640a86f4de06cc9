"""
Read-side bracket projection for rendering: byes, courts and referees.

Nothing here writes to the database. Courts and referees are derived on every
read from the bracket matches as they currently stand.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from gbv.models.match import Match
from gbv.services.bracket_layout import next_slot
from gbv.services.standings import is_completed, loser_of, winner_of
from gbv.utils.courts import court_for_index

BracketKey = Tuple[int, int]


@dataclass
class BracketMatchView:
    match_id: int
    bracket_round: int
    bracket_match_index: int
    round_label: str
    team1_id: Optional[int]
    team2_id: Optional[int]
    team1_score: Optional[int]
    team2_score: Optional[int]
    winner_id: Optional[int]
    is_live: bool
    live_score_team1: Optional[int]
    live_score_team2: Optional[int]
    is_bye: bool
    court: Optional[str]
    ref_team_id: Optional[int]


def _ordered(matches: Iterable[Match]) -> List[Match]:
    return sorted(
        (m for m in matches if m.bracket_round is not None and m.bracket_match_index is not None),
        key=lambda m: (m.bracket_round, m.bracket_match_index),
    )


def _by_key(matches: Iterable[Match]) -> Dict[BracketKey, Match]:
    return {(m.bracket_round, m.bracket_match_index): m for m in _ordered(matches)}


def is_bye(match: Match, by_key: Dict[BracketKey, Match]) -> bool:
    """
    A bye holds exactly one team and nothing can ever fill the other slot:
    there is no feeder match for the empty side (always true in round 1).
    """
    filled = [t for t in (match.team1_id, match.team2_id) if t is not None]
    if len(filled) != 1:
        return False
    empty_side_index = 0 if match.team1_id is None else 1
    feeder = by_key.get((match.bracket_round - 1, match.bracket_match_index * 2 + empty_side_index))
    return feeder is None


def is_playable(match: Match) -> bool:
    return match.team1_id is not None and match.team2_id is not None


def round_label(bracket_round: int, total_rounds: int) -> str:
    remaining = total_rounds - bracket_round
    if remaining == 0:
        return "Final"
    if remaining == 1:
        return "Semifinals"
    if remaining == 2:
        return "Quarterfinals"
    return f"Round {bracket_round}"


def assign_courts(matches: Iterable[Match], courts: Sequence[str]) -> Dict[int, Optional[str]]:
    """
    Court per match id: round-robin over courts by order within the round.
    Byes take no court and do not advance the rotation.
    """
    ordered = _ordered(matches)
    by_key = _by_key(ordered)
    result: Dict[int, Optional[str]] = {}
    position_in_round: Dict[int, int] = {}
    for m in ordered:
        if is_bye(m, by_key):
            result[m.id] = None
            continue
        k = position_in_round.get(m.bracket_round, 0)
        result[m.id] = court_for_index(courts, k)
        position_in_round[m.bracket_round] = k + 1
    return result


def infer_referees(matches: Iterable[Match]) -> Dict[int, Optional[int]]:
    """
    Referee team per match id, scanning matches by (round, index).

    Default: the loser of the most recently processed played match. A round-1
    match whose next-round opponent is already waiting (the other slot of the
    next match is filled, usually by a bye team) is refereed by that team. Byes
    and matches still missing a team get no referee; a team never referees its
    own match.
    """
    ordered = _ordered(matches)
    by_key = _by_key(ordered)
    refs: Dict[int, Optional[int]] = {}
    last_loser: Optional[int] = None

    for m in ordered:
        if is_bye(m, by_key) or not is_playable(m):
            refs[m.id] = None
            continue

        ref: Optional[int] = last_loser
        if m.bracket_round == 1:
            next_index, side = next_slot(m.bracket_match_index)
            nxt = by_key.get((2, next_index))
            if nxt is not None:
                waiting = nxt.team2_id if side == "team1" else nxt.team1_id
                if waiting is not None:
                    ref = waiting

        if ref in (m.team1_id, m.team2_id):
            ref = None
        refs[m.id] = ref
        last_loser = loser_of(m) if is_completed(m) else None

    return refs


def build_bracket_view(matches: Iterable[Match], courts: Sequence[str]) -> List[BracketMatchView]:
    ordered = _ordered(matches)
    by_key = _by_key(ordered)
    total_rounds = max((m.bracket_round for m in ordered), default=0)
    court_by_match = assign_courts(ordered, courts)
    ref_by_match = infer_referees(ordered)

    return [
        BracketMatchView(
            match_id=m.id,
            bracket_round=m.bracket_round,
            bracket_match_index=m.bracket_match_index,
            round_label=round_label(m.bracket_round, total_rounds),
            team1_id=m.team1_id,
            team2_id=m.team2_id,
            team1_score=m.team1_score,
            team2_score=m.team2_score,
            winner_id=winner_of(m),
            is_live=m.is_live,
            live_score_team1=m.live_score_team1,
            live_score_team2=m.live_score_team2,
            is_bye=is_bye(m, by_key),
            court=court_by_match.get(m.id),
            ref_team_id=ref_by_match.get(m.id),
        )
        for m in ordered
    ]
