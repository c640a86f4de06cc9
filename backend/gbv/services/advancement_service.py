"""
Bracket advancement: when a bracket match has a winner, move the winner into
the next round.

Routing is positional: match i of round r feeds match floor(i/2) of round r+1,
slot team1 when i is even, team2 when odd. A slot that already holds a
different team (manual override) is never overwritten.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlmodel import Session, select

from gbv.models.match import MATCH_TYPE_BRACKET, Match
from gbv.services.bracket_layout import next_slot
from gbv.services.standings import winner_of
from gbv.utils.sql import conditional_update

logger = logging.getLogger(__name__)


@dataclass
class AdvancementResult:
    updated_next: bool = False
    next_match_id: Optional[int] = None
    slot: Optional[str] = None
    error: Optional[str] = None


def find_next_match(session: Session, match: Match) -> Optional[Match]:
    next_index, _ = next_slot(match.bracket_match_index)
    return session.exec(
        select(Match).where(
            Match.tournament_id == match.tournament_id,
            Match.match_type == MATCH_TYPE_BRACKET,
            Match.bracket_round == match.bracket_round + 1,
            Match.bracket_match_index == next_index,
        )
    ).first()


def apply_advancement_for_final_match(session: Session, match_id: int) -> AdvancementResult:
    """
    Advance the winner of a completed bracket match into the next round.

    The slot is written only if it is currently empty (conditional write).
    Idempotent: a slot already holding the winner is reported as not updated,
    without error. Commits when a slot was filled.
    """
    match = session.get(Match, match_id)
    if not match:
        return AdvancementResult(error="Match not found")
    if match.match_type != MATCH_TYPE_BRACKET or match.bracket_round is None or match.bracket_match_index is None:
        return AdvancementResult(error="Not a bracket match or missing bracket indices")
    winner_id = winner_of(match)
    if winner_id is None:
        return AdvancementResult(error="Winner not set")

    nxt = find_next_match(session, match)
    if nxt is None:
        return AdvancementResult(error="No next match (final or missing row)")

    _, side = next_slot(match.bracket_match_index)
    column = Match.team1_id if side == "team1" else Match.team2_id
    current = nxt.team1_id if side == "team1" else nxt.team2_id

    if current == winner_id:
        return AdvancementResult(next_match_id=nxt.id, slot=side)
    if current is not None:
        logger.warning(
            "Match %d: next slot %s of match %d holds team %d; not overwriting with %d",
            match.id,
            side,
            nxt.id,
            current,
            winner_id,
        )
        return AdvancementResult(
            next_match_id=nxt.id,
            slot=side,
            error="Next slot already filled by a different team; not overwriting",
        )

    updated = conditional_update(
        session,
        Match,
        Match.id == nxt.id,
        column.is_(None),
        **{f"{side}_id": winner_id},
    )
    session.commit()
    if updated != 1:
        # Filled concurrently between the read and the write.
        session.refresh(nxt)
        current = nxt.team1_id if side == "team1" else nxt.team2_id
        if current == winner_id:
            return AdvancementResult(next_match_id=nxt.id, slot=side)
        return AdvancementResult(
            next_match_id=nxt.id,
            slot=side,
            error="Next slot already filled by a different team; not overwriting",
        )

    logger.info("Match %d: advanced team %d into match %d (%s)", match.id, winner_id, nxt.id, side)
    return AdvancementResult(updated_next=True, next_match_id=nxt.id, slot=side)


def resolve_all_dependencies(session: Session, tournament_id: int) -> Dict[str, int]:
    """
    Re-run advancement for every completed bracket match of a tournament.

    Processes rounds in order so a repaired slot can feed the next round in the
    same pass. Idempotent.

    Returns:
        Dict with matches_processed, teams_advanced, conflicts
    """
    completed = session.exec(
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.match_type == MATCH_TYPE_BRACKET,
            Match.winner_id.is_not(None),
        )
        .order_by(Match.bracket_round, Match.bracket_match_index)
    ).all()

    matches_processed = 0
    teams_advanced = 0
    conflicts = 0
    for match in completed:
        if winner_of(match) is None:
            continue
        result = apply_advancement_for_final_match(session, match.id)
        matches_processed += 1
        if result.updated_next:
            teams_advanced += 1
        elif result.error and result.next_match_id is not None:
            conflicts += 1

    return {
        "matches_processed": matches_processed,
        "teams_advanced": teams_advanced,
        "conflicts": conflicts,
    }
