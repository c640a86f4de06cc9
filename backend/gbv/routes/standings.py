"""
Standings and seeding routes. Everything here is computed on read.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session, select

from gbv.database import get_session
from gbv.models.match import MATCH_TYPE_POOL, Match
from gbv.models.pool import Pool
from gbv.models.team import Team
from gbv.services.bracket_service import seed_advancers
from gbv.services.standings import Standing, compute_pool_standings, tiebreakers_for
from gbv.utils.guards import require_tournament

router = APIRouter()


class StandingResponse(BaseModel):
    rank: int
    team_id: int
    name: str
    seed: Optional[int] = None
    wins: int
    losses: int
    played: int
    sets_won: int
    sets_lost: int
    set_ratio: float
    points_for: int
    points_against: int
    point_diff: int


class PoolStandingsResponse(BaseModel):
    pool_id: int
    pool_name: str
    tiebreakers: List[str]
    standings: List[StandingResponse]


class SeedEntry(BaseModel):
    seed: int
    team_id: int
    name: str


class SeedsResponse(BaseModel):
    seeds: List[SeedEntry]
    winners: List[int]
    runners: List[int]


def _ranked(standings: List[Standing]) -> List[StandingResponse]:
    return [
        StandingResponse(rank=i + 1, **{k: v for k, v in st.to_dict().items() if k != "pool_id"})
        for i, st in enumerate(standings)
    ]


def _pool_standings(session: Session, pool: Pool, tiebreakers: List[str]) -> PoolStandingsResponse:
    teams = session.exec(select(Team).where(Team.pool_id == pool.id)).all()
    matches = session.exec(
        select(Match).where(Match.pool_id == pool.id, Match.match_type == MATCH_TYPE_POOL)
    ).all()
    standings = compute_pool_standings(pool.id, teams, matches, tiebreakers)
    return PoolStandingsResponse(
        pool_id=pool.id, pool_name=pool.name, tiebreakers=tiebreakers, standings=_ranked(standings)
    )


@router.get("/tournaments/{tournament_id}/standings", response_model=List[PoolStandingsResponse])
def tournament_standings(tournament_id: int, session: Session = Depends(get_session)):
    """Standings of every pool, pools ordered by name"""
    tournament = require_tournament(session, tournament_id)
    tiebreakers = tiebreakers_for(tournament)
    pools = session.exec(select(Pool).where(Pool.tournament_id == tournament_id).order_by(Pool.name)).all()
    return [_pool_standings(session, p, tiebreakers) for p in pools]


@router.get("/tournaments/{tournament_id}/pools/{pool_id}/standings", response_model=PoolStandingsResponse)
def pool_standings(tournament_id: int, pool_id: int, session: Session = Depends(get_session)):
    tournament = require_tournament(session, tournament_id)
    pool = session.get(Pool, pool_id)
    if not pool or pool.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Pool not found")
    return _pool_standings(session, pool, tiebreakers_for(tournament))


@router.get("/tournaments/{tournament_id}/seeds", response_model=SeedsResponse)
def tournament_seeds(tournament_id: int, session: Session = Depends(get_session)):
    """Bracket seed order from current standings (best seed first)"""
    tournament = require_tournament(session, tournament_id)
    result = seed_advancers(session, tournament)
    names = {t.id: t.full_team_name for t in session.exec(select(Team).where(Team.tournament_id == tournament_id))}
    return SeedsResponse(
        seeds=[SeedEntry(seed=i + 1, team_id=tid, name=names.get(tid, "")) for i, tid in enumerate(result.seeds)],
        winners=result.winners,
        runners=result.runners,
    )
