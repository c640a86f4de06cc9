"""
Pool and Team Management API Routes
Pools group teams for round-robin play; teams carry the seeded player, the
partner once assigned, and the in-pool seed used by schedule templates.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from gbv.database import get_session
from gbv.models.pool import Pool
from gbv.models.team import Team, compose_team_name
from gbv.utils.guards import require_tournament

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PoolCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    court_assignment: Optional[str] = None


class PoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    name: str
    court_assignment: Optional[str] = None


class TeamCreateRequest(BaseModel):
    seeded_player_name: str = Field(min_length=1)
    partner_name: Optional[str] = None
    pool_id: Optional[int] = None
    seed_in_pool: Optional[int] = Field(default=None, ge=1)
    seed_global: Optional[int] = Field(default=None, ge=1)


class TeamUpdateRequest(BaseModel):
    partner_name: Optional[str] = None
    pool_id: Optional[int] = None
    seed_in_pool: Optional[int] = Field(default=None, ge=1)


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    pool_id: Optional[int] = None
    seeded_player_name: str
    partner_name: Optional[str] = None
    full_team_name: str
    seed_in_pool: Optional[int] = None
    seed_global: Optional[int] = None


def _require_pool(session: Session, tournament_id: int, pool_id: int) -> Pool:
    pool = session.get(Pool, pool_id)
    if not pool or pool.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Pool not found")
    return pool


# ============================================================================
# Pool Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/pools", response_model=List[PoolResponse])
def list_pools(tournament_id: int, session: Session = Depends(get_session)):
    """Pools of a tournament ordered by name"""
    require_tournament(session, tournament_id)
    return session.exec(select(Pool).where(Pool.tournament_id == tournament_id).order_by(Pool.name)).all()


@router.post("/tournaments/{tournament_id}/pools", response_model=PoolResponse, status_code=201)
def create_pool(tournament_id: int, request: PoolCreateRequest, session: Session = Depends(get_session)):
    """
    Create a pool.

    Constraints:
    - (tournament_id, name) must be unique
    """
    require_tournament(session, tournament_id)
    pool = Pool(tournament_id=tournament_id, name=request.name.strip(), court_assignment=request.court_assignment)
    try:
        session.add(pool)
        session.commit()
        session.refresh(pool)
        return pool
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Pool '{request.name}' already exists for this tournament")


# ============================================================================
# Team Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def list_teams(tournament_id: int, session: Session = Depends(get_session)):
    """
    Teams of a tournament in deterministic order:
    1. seed_global ascending (nulls last)
    2. id ascending
    """
    require_tournament(session, tournament_id)
    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    return sorted(teams, key=lambda t: (t.seed_global is None, t.seed_global or 0, t.id))


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(tournament_id: int, request: TeamCreateRequest, session: Session = Depends(get_session)):
    """
    Create a team.

    Constraints:
    - (pool_id, seed_in_pool) must be unique
    - (tournament_id, seed_global) must be unique
    """
    require_tournament(session, tournament_id)
    if request.pool_id is not None:
        _require_pool(session, tournament_id, request.pool_id)

    team = Team(
        tournament_id=tournament_id,
        pool_id=request.pool_id,
        seeded_player_name=request.seeded_player_name.strip(),
        partner_name=(request.partner_name or "").strip() or None,
        full_team_name=compose_team_name(request.seeded_player_name, request.partner_name),
        seed_in_pool=request.seed_in_pool,
        seed_global=request.seed_global,
    )
    try:
        session.add(team)
        session.commit()
        session.refresh(team)
        return team
    except IntegrityError as e:
        session.rollback()
        if "seed_global" in str(e.orig):
            raise HTTPException(status_code=409, detail=f"Seed {request.seed_global} is already taken in this tournament")
        raise HTTPException(status_code=409, detail=f"Seed {request.seed_in_pool} is already taken in this pool")


@router.patch("/tournaments/{tournament_id}/teams/{team_id}", response_model=TeamResponse)
def update_team(
    tournament_id: int, team_id: int, request: TeamUpdateRequest, session: Session = Depends(get_session)
):
    """Assign a partner, move a team between pools or change its pool seed"""
    require_tournament(session, tournament_id)
    team = session.get(Team, team_id)
    if not team or team.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Team not found")

    update_data = request.model_dump(exclude_unset=True)
    if update_data.get("pool_id") is not None:
        _require_pool(session, tournament_id, update_data["pool_id"])
    if "partner_name" in update_data:
        partner = (update_data["partner_name"] or "").strip() or None
        team.partner_name = partner
        team.full_team_name = compose_team_name(team.seeded_player_name, partner)
    if "pool_id" in update_data:
        team.pool_id = update_data["pool_id"]
    if "seed_in_pool" in update_data:
        team.seed_in_pool = update_data["seed_in_pool"]

    try:
        session.add(team)
        session.commit()
        session.refresh(team)
        return team
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Seed {request.seed_in_pool} is already taken in this pool")
