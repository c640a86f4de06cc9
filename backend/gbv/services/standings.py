"""
Pool standings.

Standings are recomputed on demand from completed pool matches; nothing here
is persisted. Ranking: wins desc, then the tournament's tiebreaker order,
then pool seed asc, then name.

Tiebreakers:
  head_to_head - only when exactly two teams share the win total; the winner of
                 their direct completed match ranks first
  set_ratio    - sets won / sets played, desc
  point_diff   - points for - points against, desc
  random       - deterministic stand-in: lexical compare of team ids
"""
from collections import defaultdict
from dataclasses import asdict, dataclass
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Sequence

from sqlmodel import Session, select

from gbv.models.match import MATCH_TYPE_POOL, Match
from gbv.models.team import Team
from gbv.services.advancement_rules import (
    TB_HEAD_TO_HEAD,
    TB_POINT_DIFF,
    TB_RANDOM,
    TB_SET_RATIO,
    load_advancement_rules,
)


@dataclass
class Standing:
    team_id: int
    name: str
    pool_id: int
    seed: Optional[int] = None
    wins: int = 0
    losses: int = 0
    played: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    set_ratio: float = 0.0
    points_for: int = 0
    points_against: int = 0
    point_diff: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def is_completed(match: Match) -> bool:
    return match.team1_score is not None and match.team2_score is not None


def winner_of(match: Match) -> Optional[int]:
    """Winner of a completed match, or None. A winner outside the two slots is ignored."""
    if not is_completed(match) or match.winner_id is None:
        return None
    if match.winner_id not in (match.team1_id, match.team2_id):
        return None
    return match.winner_id


def loser_of(match: Match) -> Optional[int]:
    winner = winner_of(match)
    if winner is None or match.team1_id is None or match.team2_id is None:
        return None
    return match.team2_id if winner == match.team1_id else match.team1_id


def _credit(st: Standing, scored: int, conceded: int, won: bool) -> None:
    st.played += 1
    st.points_for += scored
    st.points_against += conceded
    st.point_diff += scored - conceded
    if won:
        st.wins += 1
        st.sets_won += 1
    else:
        st.losses += 1
        st.sets_lost += 1


def _text_cmp(a: str, b: str) -> int:
    ka, kb = (a.casefold(), a), (b.casefold(), b)
    if ka == kb:
        return 0
    return -1 if ka < kb else 1


def _id_cmp(a: Standing, b: Standing) -> int:
    al, bl = str(a.team_id), str(b.team_id)
    if al == bl:
        return 0
    return -1 if al < bl else 1


def _fallback_cmp(a: Standing, b: Standing) -> int:
    if a.seed is not None and b.seed is not None and a.seed != b.seed:
        return a.seed - b.seed
    return _text_cmp(a.name, b.name)


def compare_stat_tiebreaker(tb: str, a: Standing, b: Standing) -> int:
    """Negative when a ranks ahead of b on one non-head-to-head tiebreaker, 0 when undecided."""
    if tb == TB_SET_RATIO:
        if a.set_ratio != b.set_ratio:
            return -1 if a.set_ratio > b.set_ratio else 1
    elif tb == TB_POINT_DIFF:
        if a.point_diff != b.point_diff:
            return b.point_diff - a.point_diff
    elif tb == TB_RANDOM:
        return _id_cmp(a, b)
    return 0


def _head_to_head(matches: Sequence[Match], a_id: int, b_id: int) -> int:
    for m in matches:
        if {m.team1_id, m.team2_id} != {a_id, b_id} or not is_completed(m):
            continue
        winner = winner_of(m)
        if winner == a_id:
            return -1
        if winner == b_id:
            return 1
        return 0
    return 0


def compute_pool_standings(
    pool_id: int,
    teams: Iterable[Team],
    matches: Iterable[Match],
    tiebreakers: Sequence[str],
) -> List[Standing]:
    """
    Rank the teams of one pool from its completed pool matches (best first).

    Teams outside the pool and non-pool matches are ignored; a match side whose
    team is not in the pool contributes nothing.
    """
    pool_teams = sorted((t for t in teams if t.pool_id == pool_id), key=lambda t: t.id)
    if not pool_teams:
        return []

    base: Dict[int, Standing] = {
        t.id: Standing(team_id=t.id, name=t.full_team_name, pool_id=pool_id, seed=t.seed_in_pool)
        for t in pool_teams
    }

    pool_matches = [m for m in matches if m.match_type == MATCH_TYPE_POOL and m.pool_id == pool_id]
    completed = [m for m in pool_matches if is_completed(m) and m.team1_id and m.team2_id]

    for m in completed:
        winner = winner_of(m)
        if m.team1_id in base:
            _credit(base[m.team1_id], m.team1_score, m.team2_score, winner == m.team1_id)
        if m.team2_id in base:
            _credit(base[m.team2_id], m.team2_score, m.team1_score, winner == m.team2_id)

    for st in base.values():
        sets_total = st.sets_won + st.sets_lost
        st.set_ratio = st.sets_won / sets_total if sets_total > 0 else 0.0

    tie_group_size: Dict[int, int] = defaultdict(int)
    for st in base.values():
        tie_group_size[st.wins] += 1

    def cmp(a: Standing, b: Standing) -> int:
        if a.wins != b.wins:
            return b.wins - a.wins
        for tb in tiebreakers:
            if tb == TB_HEAD_TO_HEAD:
                if tie_group_size[a.wins] == 2:
                    h2h = _head_to_head(completed, a.team_id, b.team_id)
                    if h2h != 0:
                        return h2h
                continue
            result = compare_stat_tiebreaker(tb, a, b)
            if result != 0:
                return result
        return _fallback_cmp(a, b)

    return sorted(base.values(), key=cmp_to_key(cmp))


def compare_global(tiebreakers: Sequence[str]):
    """Cross-pool comparator: head-to-head is skipped since the teams never met."""

    def cmp(a: Standing, b: Standing) -> int:
        if a.wins != b.wins:
            return b.wins - a.wins
        for tb in tiebreakers:
            if tb == TB_HEAD_TO_HEAD:
                continue
            result = compare_stat_tiebreaker(tb, a, b)
            if result != 0:
                return result
        return _fallback_cmp(a, b)

    return cmp


def load_standings_by_pool(session: Session, tournament_id: int, tiebreakers: Sequence[str]) -> Dict[int, List[Standing]]:
    """Standings for every pool of a tournament that has at least one team, keyed by pool id."""
    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.match_type == MATCH_TYPE_POOL)
    ).all()

    pool_ids = sorted({t.pool_id for t in teams if t.pool_id is not None})
    return {pid: compute_pool_standings(pid, teams, matches, tiebreakers) for pid in pool_ids}


def tiebreakers_for(tournament) -> List[str]:
    return load_advancement_rules(tournament.advancement_rules).tiebreaker_order()
