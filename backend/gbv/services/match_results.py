"""
Final score submission.

Writes both scores and the winner, ends any live lease, and for bracket
matches marks the bracket as started and advances the winner.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from gbv.models.match import MATCH_TYPE_BRACKET, Match
from gbv.services.advancement_service import AdvancementResult, apply_advancement_for_final_match
from gbv.services.bracket_service import mark_bracket_started
from gbv.services.errors import KIND_LEASE_CONFLICT, KIND_NOT_FOUND, KIND_VALIDATION
from gbv.services.live_lease import claimable_by, lease_window
from gbv.utils.sql import conditional_update

logger = logging.getLogger(__name__)


@dataclass
class ResultSubmission:
    ok: bool
    match_id: int
    winner_id: Optional[int] = None
    advancement: Optional[AdvancementResult] = None
    errors: List[str] = field(default_factory=list)
    error_kind: Optional[str] = None


def has_later_round(session: Session, match: Match) -> bool:
    """True when the bracket has a round after this match's round."""
    later = session.exec(
        select(Match.id).where(
            Match.tournament_id == match.tournament_id,
            Match.match_type == MATCH_TYPE_BRACKET,
            Match.bracket_round > match.bracket_round,
        )
    ).first()
    return later is not None


def validate_final_scores(match: Match, team1_score: int, team2_score: int) -> List[str]:
    errors: List[str] = []
    if match.team1_id is None or match.team2_id is None:
        errors.append("Both teams must be set before a result can be recorded.")
    for score in (team1_score, team2_score):
        if not isinstance(score, int) or isinstance(score, bool) or score < 0:
            errors.append(f"Score {score!r} is invalid; scores must be non-negative integers.")
    if not errors and team1_score == team2_score:
        errors.append("Scores are tied; a match needs a winner.")
    return errors


def submit_result(
    session: Session,
    match_id: int,
    team1_score: int,
    team2_score: int,
    owner_id: Optional[str] = None,
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
) -> ResultSubmission:
    """
    Record the final score of a match.

    Without owner_id (admin entry) the match must not be under another session's
    unexpired lease; with owner_id the caller may also be the lease holder.
    """
    now = now or datetime.utcnow()
    window = window or lease_window()

    match = session.get(Match, match_id)
    if not match:
        return ResultSubmission(ok=False, match_id=match_id, errors=["Match not found"], error_kind=KIND_NOT_FOUND)

    errors = validate_final_scores(match, team1_score, team2_score)
    if errors:
        return ResultSubmission(ok=False, match_id=match_id, errors=errors, error_kind=KIND_VALIDATION)

    winner_id = match.team1_id if team1_score > team2_score else match.team2_id
    if owner_id:
        lease_ok = claimable_by(owner_id, now, window)
    else:
        lease_ok = or_(
            Match.is_live == False,  # noqa: E712
            Match.live_last_active_at.is_(None),
            Match.live_last_active_at <= now - window,
        )

    written = conditional_update(
        session,
        Match,
        Match.id == match_id,
        lease_ok,
        team1_score=team1_score,
        team2_score=team2_score,
        winner_id=winner_id,
        is_live=False,
        live_owner_id=None,
        live_last_active_at=None,
        live_score_team1=None,
        live_score_team2=None,
    )
    if written != 1:
        session.rollback()
        logger.warning("Match %d: result refused, match is being scored by another session", match_id)
        return ResultSubmission(
            ok=False,
            match_id=match_id,
            errors=["Match is being scored by another session"],
            error_kind=KIND_LEASE_CONFLICT,
        )

    is_bracket = match.match_type == MATCH_TYPE_BRACKET
    advances = is_bracket and match.bracket_round is not None and has_later_round(session, match)
    tournament_id = match.tournament_id
    if is_bracket:
        mark_bracket_started(session, tournament_id)
    session.commit()
    logger.info("Match %d: final %d-%d, winner team %d", match_id, team1_score, team2_score, winner_id)

    # The last round has nowhere to advance to
    advancement = apply_advancement_for_final_match(session, match_id) if advances else None
    return ResultSubmission(ok=True, match_id=match_id, winner_id=winner_id, advancement=advancement)
