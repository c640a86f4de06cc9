"""
Bracket routes: readiness report, generation, guarded rebuild, the rendered
bracket with derived courts/referees/byes, and manual advancement repair.
"""
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session, select

from gbv.database import get_session
from gbv.models.match import MATCH_TYPE_BRACKET, Match
from gbv.models.pool import Pool
from gbv.models.team import Team
from gbv.models.tournament import Tournament
from gbv.services.advancement_service import apply_advancement_for_final_match, resolve_all_dependencies
from gbv.services.bracket_service import check_bracket_prerequisites, generate_bracket, rebuild_bracket
from gbv.services.bracket_view import build_bracket_view
from gbv.services.errors import KIND_NOT_FOUND, KIND_STATE_GUARD, KIND_VALIDATION
from gbv.utils.courts import parse_court_names, sort_court_labels
from gbv.utils.guards import raise_for_failure, require_match, require_tournament

router = APIRouter()


class UnscoredMatchResponse(BaseModel):
    match_id: int
    pool_id: Optional[int] = None
    pool_name: Optional[str] = None


class BracketPrereqResponse(BaseModel):
    ok: bool
    errors: List[str]
    infos: List[str]
    stats: Dict[str, Any]
    unscored: List[UnscoredMatchResponse]
    teams_without_pool: int


class BracketGenerateResponse(BaseModel):
    inserted: int
    bracket_size: int
    rounds: int
    seeds: List[int]


class BracketMatchResponse(BaseModel):
    match_id: int
    bracket_round: int
    bracket_match_index: int
    round_label: str
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    team1_name: Optional[str] = None
    team2_name: Optional[str] = None
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    winner_id: Optional[int] = None
    is_live: bool
    live_score_team1: Optional[int] = None
    live_score_team2: Optional[int] = None
    is_bye: bool
    court: Optional[str] = None
    ref_team_id: Optional[int] = None
    ref_team_name: Optional[str] = None


class BracketResponse(BaseModel):
    tournament_id: int
    bracket_started: bool
    courts: List[str]
    matches: List[BracketMatchResponse]


class ResolveResponse(BaseModel):
    matches_processed: int
    teams_advanced: int
    conflicts: int


class AdvanceResponse(BaseModel):
    updated_next: bool
    next_match_id: Optional[int] = None
    slot: Optional[str] = None


def bracket_courts(session: Session, tournament: Tournament) -> List[str]:
    """
    Courts used for bracket play: the tournament's court names, else the labels
    assigned to its pools. Ordered numerically, then alphabetically.
    """
    labels = parse_court_names(tournament.court_names)
    if not labels:
        pools = session.exec(select(Pool).where(Pool.tournament_id == tournament.id)).all()
        for p in pools:
            for label in parse_court_names(p.court_assignment):
                if label not in labels:
                    labels.append(label)
    return sort_court_labels(labels)


def _generation_response(result) -> BracketGenerateResponse:
    if not result.ok:
        raise_for_failure(result.error_kind, result.errors)
    return BracketGenerateResponse(
        inserted=result.inserted, bracket_size=result.bracket_size, rounds=result.rounds, seeds=result.seeds
    )


@router.get("/tournaments/{tournament_id}/bracket/prerequisites", response_model=BracketPrereqResponse)
def bracket_prerequisites(tournament_id: int, session: Session = Depends(get_session)):
    """Read-only readiness report; never writes"""
    report = check_bracket_prerequisites(session, tournament_id)
    if report is None:
        raise_for_failure(KIND_NOT_FOUND, ["Tournament not found"])
    return BracketPrereqResponse(
        ok=report.ok,
        errors=report.errors,
        infos=report.infos,
        stats=report.stats,
        unscored=[UnscoredMatchResponse(**asdict(u)) for u in report.unscored],
        teams_without_pool=report.teams_without_pool,
    )


@router.post("/tournaments/{tournament_id}/bracket/generate", response_model=BracketGenerateResponse)
def create_bracket(tournament_id: int, session: Session = Depends(get_session)):
    """
    Generate the bracket from current standings.

    Raises:
        HTTPException 409: A bracket already exists
        HTTPException 422: No advancers, or too many for the largest bracket
    """
    return _generation_response(generate_bracket(session, tournament_id))


@router.post("/tournaments/{tournament_id}/bracket/rebuild", response_model=BracketGenerateResponse)
def recreate_bracket(tournament_id: int, session: Session = Depends(get_session)):
    """
    Delete and regenerate the bracket.

    Raises:
        HTTPException 409: Bracket play already started
    """
    return _generation_response(rebuild_bracket(session, tournament_id))


@router.get("/tournaments/{tournament_id}/bracket", response_model=BracketResponse)
def read_bracket(tournament_id: int, session: Session = Depends(get_session)):
    tournament = require_tournament(session, tournament_id)
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.match_type == MATCH_TYPE_BRACKET)
    ).all()
    names = {t.id: t.full_team_name for t in session.exec(select(Team).where(Team.tournament_id == tournament_id))}
    courts = bracket_courts(session, tournament)

    views = build_bracket_view(matches, courts)
    return BracketResponse(
        tournament_id=tournament_id,
        bracket_started=tournament.bracket_started,
        courts=courts,
        matches=[
            BracketMatchResponse(
                **asdict(v),
                team1_name=names.get(v.team1_id),
                team2_name=names.get(v.team2_id),
                ref_team_name=names.get(v.ref_team_id),
            )
            for v in views
        ],
    )


@router.post(
    "/tournaments/{tournament_id}/bracket/matches/{match_id}/advance", response_model=AdvanceResponse
)
def advance_winner(tournament_id: int, match_id: int, session: Session = Depends(get_session)):
    """
    Re-apply advancement for a completed bracket match.

    Idempotent; never overwrites a next-round slot holding a different team.

    Raises:
        HTTPException 409: Next slot holds a different team
        HTTPException 422: Not a bracket match, no winner, or no next match
    """
    require_match(session, tournament_id, match_id)
    result = apply_advancement_for_final_match(session, match_id)
    if result.error:
        kind = KIND_STATE_GUARD if result.next_match_id is not None else KIND_VALIDATION
        raise_for_failure(kind, [result.error])
    return AdvanceResponse(updated_next=result.updated_next, next_match_id=result.next_match_id, slot=result.slot)


@router.post("/tournaments/{tournament_id}/bracket/resolve", response_model=ResolveResponse)
def resolve_bracket(tournament_id: int, session: Session = Depends(get_session)):
    """Re-apply advancement for every completed bracket match; slots held by other teams are counted as conflicts"""
    require_tournament(session, tournament_id)
    return ResolveResponse(**resolve_all_dependencies(session, tournament_id))
