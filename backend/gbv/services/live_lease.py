"""
Live-scoring lease: one scorer session at a time may drive a match's live score.

State machine per match:

    IDLE --claim--> CLAIMED(owner, expires_at) --heartbeat--> CLAIMED (renewed)
    CLAIMED --release / final result--> IDLE
    CLAIMED --no heartbeat within the window--> EXPIRED --claim by anyone--> CLAIMED

Every transition is a single conditional UPDATE whose predicate encodes the
allowed source states, so two sessions racing for the same match cannot both win.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session

from gbv.models.match import MATCH_TYPE_BRACKET, Match
from gbv.services.bracket_service import mark_bracket_started
from gbv.services.errors import KIND_LEASE_CONFLICT, KIND_NOT_FOUND, KIND_VALIDATION
from gbv.settings import LIVE_LEASE_SECONDS
from gbv.utils.sql import conditional_update

logger = logging.getLogger(__name__)


class LeaseState(str, Enum):
    IDLE = "idle"
    CLAIMED = "claimed"
    EXPIRED = "expired"


@dataclass
class LeaseResult:
    ok: bool
    match_id: int
    owner_id: Optional[str] = None
    state: Optional[LeaseState] = None
    expires_at: Optional[datetime] = None
    errors: List[str] = field(default_factory=list)
    error_kind: Optional[str] = None


def lease_window(seconds: Optional[int] = None) -> timedelta:
    return timedelta(seconds=LIVE_LEASE_SECONDS if seconds is None else seconds)


def lease_expires_at(match: Match, window: Optional[timedelta] = None) -> Optional[datetime]:
    if not match.is_live or match.live_last_active_at is None:
        return None
    return match.live_last_active_at + (window or lease_window())


def lease_state(match: Match, now: Optional[datetime] = None, window: Optional[timedelta] = None) -> LeaseState:
    if not match.is_live:
        return LeaseState.IDLE
    expires_at = lease_expires_at(match, window)
    if expires_at is None or (now or datetime.utcnow()) >= expires_at:
        return LeaseState.EXPIRED
    return LeaseState.CLAIMED


def claimable_by(owner_id: str, now: datetime, window: timedelta):
    """Predicate: the match is idle, already held by owner_id, or its lease has expired."""
    return or_(
        Match.is_live == False,  # noqa: E712
        Match.live_owner_id == owner_id,
        Match.live_last_active_at.is_(None),
        Match.live_last_active_at <= now - window,
    )


def held_by(owner_id: str, now: datetime, window: timedelta):
    """Predicate: owner_id holds an unexpired lease."""
    return (
        (Match.is_live == True)  # noqa: E712
        & (Match.live_owner_id == owner_id)
        & (Match.live_last_active_at > now - window)
    )


def _validate_scores(*scores: Optional[int]) -> List[str]:
    return [f"Score {s} is invalid; scores must be non-negative integers." for s in scores if s is not None and s < 0]


def _conflict(session: Session, match_id: int, now: datetime, window: timedelta, message: str) -> LeaseResult:
    session.rollback()
    match = session.get(Match, match_id)
    logger.warning("Match %d: lease conflict (%s)", match_id, message)
    return LeaseResult(
        ok=False,
        match_id=match_id,
        owner_id=match.live_owner_id if match else None,
        state=lease_state(match, now, window) if match else None,
        expires_at=lease_expires_at(match, window) if match else None,
        errors=[message],
        error_kind=KIND_LEASE_CONFLICT,
    )


def _ok(session: Session, match_id: int, now: datetime, window: timedelta) -> LeaseResult:
    match = session.get(Match, match_id)
    return LeaseResult(
        ok=True,
        match_id=match_id,
        owner_id=match.live_owner_id,
        state=lease_state(match, now, window),
        expires_at=lease_expires_at(match, window),
    )


def claim_match(
    session: Session,
    match_id: int,
    owner_id: str,
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
) -> LeaseResult:
    """
    Take (or re-take) the live-scoring lease on a match.

    Succeeds if the match is idle, already held by owner_id, or its lease expired.
    Claiming a bracket match marks the tournament's bracket as started.
    """
    now = now or datetime.utcnow()
    window = window or lease_window()

    match = session.get(Match, match_id)
    if not match:
        return LeaseResult(ok=False, match_id=match_id, errors=["Match not found"], error_kind=KIND_NOT_FOUND)
    if not owner_id or not owner_id.strip():
        return LeaseResult(ok=False, match_id=match_id, errors=["owner_id is required"], error_kind=KIND_VALIDATION)
    if match.team1_id is None or match.team2_id is None:
        return LeaseResult(
            ok=False, match_id=match_id, errors=["Both teams must be set before scoring"], error_kind=KIND_VALIDATION
        )
    if match.team1_score is not None and match.team2_score is not None:
        return LeaseResult(
            ok=False, match_id=match_id, errors=["Match already has a final score"], error_kind=KIND_VALIDATION
        )

    claimed = conditional_update(
        session,
        Match,
        Match.id == match_id,
        Match.team1_score.is_(None),
        claimable_by(owner_id, now, window),
        is_live=True,
        live_owner_id=owner_id,
        live_last_active_at=now,
        live_score_team1=func.coalesce(Match.live_score_team1, 0),
        live_score_team2=func.coalesce(Match.live_score_team2, 0),
    )
    if claimed != 1:
        return _conflict(session, match_id, now, window, "Match is being scored by another session")

    if match.match_type == MATCH_TYPE_BRACKET:
        mark_bracket_started(session, match.tournament_id)
    session.commit()
    logger.info("Match %d: lease claimed by %s", match_id, owner_id)
    return _ok(session, match_id, now, window)


def heartbeat(
    session: Session,
    match_id: int,
    owner_id: str,
    live_score_team1: Optional[int] = None,
    live_score_team2: Optional[int] = None,
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
) -> LeaseResult:
    """Renew the lease (and optionally push live scores). Fails once the lease is lost."""
    now = now or datetime.utcnow()
    window = window or lease_window()

    if session.get(Match, match_id) is None:
        return LeaseResult(ok=False, match_id=match_id, errors=["Match not found"], error_kind=KIND_NOT_FOUND)
    errors = _validate_scores(live_score_team1, live_score_team2)
    if errors:
        return LeaseResult(ok=False, match_id=match_id, errors=errors, error_kind=KIND_VALIDATION)

    values = {"live_last_active_at": now}
    if live_score_team1 is not None:
        values["live_score_team1"] = live_score_team1
    if live_score_team2 is not None:
        values["live_score_team2"] = live_score_team2

    renewed = conditional_update(session, Match, Match.id == match_id, held_by(owner_id, now, window), **values)
    if renewed != 1:
        return _conflict(session, match_id, now, window, "Lease lost; another session may have taken over")
    session.commit()
    return _ok(session, match_id, now, window)


def release_match(
    session: Session,
    match_id: int,
    owner_id: str,
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
) -> LeaseResult:
    """Give the lease back (pause or leaving the scoreboard). Live scores are kept."""
    now = now or datetime.utcnow()
    window = window or lease_window()

    if session.get(Match, match_id) is None:
        return LeaseResult(ok=False, match_id=match_id, errors=["Match not found"], error_kind=KIND_NOT_FOUND)

    released = conditional_update(
        session,
        Match,
        Match.id == match_id,
        Match.live_owner_id == owner_id,
        is_live=False,
        live_owner_id=None,
        live_last_active_at=None,
    )
    if released != 1:
        return _conflict(session, match_id, now, window, "Lease is not held by this session")
    session.commit()
    logger.info("Match %d: lease released by %s", match_id, owner_id)
    return _ok(session, match_id, now, window)
