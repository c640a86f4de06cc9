"""Row builders shared by DB-backed tests."""
from itertools import combinations
from typing import List, Optional, Tuple

from sqlmodel import Session

from gbv.models.match import MATCH_TYPE_BRACKET, MATCH_TYPE_POOL, Match
from gbv.models.pool import Pool
from gbv.models.team import Team, compose_team_name
from gbv.models.tournament import Tournament


def make_tournament(session: Session, name: str = "Summer Open", **kwargs) -> Tournament:
    tournament = Tournament(name=name, **kwargs)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


def make_pool(
    session: Session,
    tournament: Tournament,
    name: str,
    size: int,
    court_assignment: Optional[str] = None,
    named: bool = True,
) -> Tuple[Pool, List[Team]]:
    """A pool with `size` teams seeded 1..size. Unnamed teams have no partner yet."""
    pool = Pool(tournament_id=tournament.id, name=name, court_assignment=court_assignment)
    session.add(pool)
    session.commit()
    session.refresh(pool)

    teams = []
    for seed in range(1, size + 1):
        player = f"{name} Player {seed}"
        partner = f"{name} Partner {seed}" if named else None
        teams.append(
            Team(
                tournament_id=tournament.id,
                pool_id=pool.id,
                seeded_player_name=player,
                partner_name=partner,
                full_team_name=compose_team_name(player, partner),
                seed_in_pool=seed,
            )
        )
    session.add_all(teams)
    session.commit()
    for t in teams:
        session.refresh(t)
    return pool, teams


def add_pool_match(
    session: Session,
    pool: Pool,
    team1: Team,
    team2: Team,
    score1: Optional[int] = None,
    score2: Optional[int] = None,
    round_number: int = 1,
) -> Match:
    winner = None
    if score1 is not None and score2 is not None:
        winner = team1.id if score1 > score2 else team2.id
    match = Match(
        tournament_id=pool.tournament_id,
        pool_id=pool.id,
        match_type=MATCH_TYPE_POOL,
        round_number=round_number,
        team1_id=team1.id,
        team2_id=team2.id,
        team1_score=score1,
        team2_score=score2,
        winner_id=winner,
    )
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


def play_round_robin(session: Session, pool: Pool, teams: List[Team], margin: int = 2) -> List[Match]:
    """Every pair plays once; the better pool seed always wins 21-(21-margin)."""
    matches = []
    for i, (a, b) in enumerate(combinations(sorted(teams, key=lambda t: t.seed_in_pool), 2)):
        matches.append(add_pool_match(session, pool, a, b, 21, 21 - margin, round_number=i + 1))
    return matches


def add_bracket_match(
    session: Session,
    tournament: Tournament,
    bracket_round: int,
    index: int,
    team1: Optional[int] = None,
    team2: Optional[int] = None,
) -> Match:
    match = Match(
        tournament_id=tournament.id,
        match_type=MATCH_TYPE_BRACKET,
        bracket_round=bracket_round,
        bracket_match_index=index,
        team1_id=team1,
        team2_id=team2,
    )
    session.add(match)
    session.commit()
    session.refresh(match)
    return match
