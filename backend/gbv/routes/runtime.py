"""
Match runtime routes: live-scoring lease (claim / heartbeat / release) and
final result submission.

Scorer clients send an opaque owner_id identifying their session and should
heartbeat about every 10 seconds while they hold a match.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from gbv.database import get_session
from gbv.services.live_lease import LeaseResult, claim_match, heartbeat, release_match
from gbv.services.match_results import submit_result
from gbv.utils.guards import raise_for_failure, require_match

router = APIRouter()


class LeaseRequest(BaseModel):
    owner_id: str = Field(min_length=1)


class HeartbeatRequest(LeaseRequest):
    live_score_team1: Optional[int] = Field(default=None, ge=0)
    live_score_team2: Optional[int] = Field(default=None, ge=0)


class LeaseResponse(BaseModel):
    match_id: int
    owner_id: Optional[str] = None
    state: str
    expires_at: Optional[datetime] = None


class ResultRequest(BaseModel):
    team1_score: int = Field(ge=0)
    team2_score: int = Field(ge=0)
    owner_id: Optional[str] = None


class ResultResponse(BaseModel):
    match_id: int
    winner_id: int
    advanced: bool
    next_match_id: Optional[int] = None
    advancement_error: Optional[str] = None


def _lease_response(result: LeaseResult) -> LeaseResponse:
    if not result.ok:
        raise_for_failure(result.error_kind, result.errors)
    return LeaseResponse(
        match_id=result.match_id, owner_id=result.owner_id, state=result.state.value, expires_at=result.expires_at
    )


@router.post("/tournaments/{tournament_id}/matches/{match_id}/live/claim", response_model=LeaseResponse)
def claim(tournament_id: int, match_id: int, request: LeaseRequest, session: Session = Depends(get_session)):
    """
    Take the live-scoring lease.

    Raises:
        HTTPException 409: Another session holds an unexpired lease
        HTTPException 422: Match not ready for scoring or already final
    """
    require_match(session, tournament_id, match_id)
    return _lease_response(claim_match(session, match_id, request.owner_id))


@router.post("/tournaments/{tournament_id}/matches/{match_id}/live/heartbeat", response_model=LeaseResponse)
def keep_alive(tournament_id: int, match_id: int, request: HeartbeatRequest, session: Session = Depends(get_session)):
    """Renew the lease and optionally push live scores. 409 once the lease is lost."""
    require_match(session, tournament_id, match_id)
    return _lease_response(
        heartbeat(
            session,
            match_id,
            request.owner_id,
            live_score_team1=request.live_score_team1,
            live_score_team2=request.live_score_team2,
        )
    )


@router.post("/tournaments/{tournament_id}/matches/{match_id}/live/release", response_model=LeaseResponse)
def release(tournament_id: int, match_id: int, request: LeaseRequest, session: Session = Depends(get_session)):
    require_match(session, tournament_id, match_id)
    return _lease_response(release_match(session, match_id, request.owner_id))


@router.post("/tournaments/{tournament_id}/matches/{match_id}/result", response_model=ResultResponse)
def submit_final(tournament_id: int, match_id: int, request: ResultRequest, session: Session = Depends(get_session)):
    """
    Record the final score.

    Bracket winners advance automatically; an advancement problem (such as a
    manually filled next slot) is reported without failing the submission.

    Raises:
        HTTPException 409: Match is being scored by another session
        HTTPException 422: Tied scores or teams not set
    """
    require_match(session, tournament_id, match_id)
    result = submit_result(session, match_id, request.team1_score, request.team2_score, owner_id=request.owner_id)
    if not result.ok:
        raise_for_failure(result.error_kind, result.errors)
    adv = result.advancement
    return ResultResponse(
        match_id=match_id,
        winner_id=result.winner_id,
        advanced=bool(adv and adv.updated_next),
        next_match_id=adv.next_match_id if adv else None,
        advancement_error=adv.error if adv else None,
    )
