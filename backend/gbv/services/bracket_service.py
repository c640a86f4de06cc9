"""
Bracket generation, rebuild and readiness checks.

Generation is protective: it refuses when any bracket match already exists.
Rebuild deletes and regenerates, but only while the tournament's
bracket_started flag is false. Both run in one transaction; on any failure
nothing is written.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from gbv.models.match import MATCH_TYPE_BRACKET, MATCH_TYPE_POOL, Match
from gbv.models.pool import Pool
from gbv.models.team import Team
from gbv.models.tournament import STATUS_BRACKET, Tournament
from gbv.services.advancement_rules import load_advancement_rules
from gbv.services.bracket_layout import (
    MAX_BRACKET_SIZE,
    BracketLayoutError,
    bracket_size_for,
    plan_bracket,
    round_count,
)
from gbv.services.errors import KIND_NOT_FOUND, KIND_STATE_GUARD, KIND_STORE, KIND_VALIDATION
from gbv.services.seeding import SeedResult, compute_seeds
from gbv.services.standings import load_standings_by_pool
from gbv.utils.sql import conditional_update

logger = logging.getLogger(__name__)

BRACKET_EXISTS_ERROR = "Bracket already exists. Use Rebuild Bracket to overwrite when allowed."
BRACKET_STARTED_ERROR = "Bracket play has already started; the bracket can no longer be rebuilt."


@dataclass
class BracketGenerationResult:
    inserted: int = 0
    bracket_size: int = 0
    rounds: int = 0
    seeds: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.errors


def _failure(kind: str, message: str) -> BracketGenerationResult:
    return BracketGenerationResult(errors=[message], error_kind=kind)


def seed_advancers(session: Session, tournament: Tournament) -> SeedResult:
    """Ordered bracket seeds for a tournament from current pool standings."""
    rules = load_advancement_rules(tournament.advancement_rules)
    tiebreakers = rules.tiebreaker_order()
    standings = load_standings_by_pool(session, tournament.id, tiebreakers)
    return compute_seeds(standings, tiebreakers, rules.advance_counts())


def bracket_exists(session: Session, tournament_id: int) -> bool:
    existing = session.exec(
        select(Match.id).where(Match.tournament_id == tournament_id, Match.match_type == MATCH_TYPE_BRACKET).limit(1)
    ).first()
    return existing is not None


def bracket_has_activity(session: Session, tournament_id: int) -> bool:
    """True once any bracket match is live or holds a score."""
    active = session.exec(
        select(Match.id)
        .where(
            Match.tournament_id == tournament_id,
            Match.match_type == MATCH_TYPE_BRACKET,
            (Match.is_live == True)  # noqa: E712
            | (Match.team1_score.is_not(None))
            | (Match.team2_score.is_not(None)),
        )
        .limit(1)
    ).first()
    return active is not None


def mark_bracket_started(session: Session, tournament_id: int) -> bool:
    """
    Flip bracket_started to true if it is still false (conditional write).
    Returns True only for the call that flipped it. Caller commits.
    """
    flipped = (
        conditional_update(
            session,
            Tournament,
            Tournament.id == tournament_id,
            Tournament.bracket_started == False,  # noqa: E712
            bracket_started=True,
            updated_at=datetime.utcnow(),
        )
        == 1
    )
    if flipped:
        logger.info("Tournament %d: bracket started", tournament_id)
    return flipped


def _build_rows(session: Session, tournament: Tournament) -> BracketGenerationResult:
    """Plan and stage bracket rows in the session without committing."""
    seeds = seed_advancers(session, tournament).seeds
    try:
        plan = plan_bracket(seeds, MAX_BRACKET_SIZE)
    except BracketLayoutError as e:
        return _failure(KIND_VALIDATION, str(e))

    rows = [
        Match(
            tournament_id=tournament.id,
            pool_id=None,
            match_type=MATCH_TYPE_BRACKET,
            round_number=None,
            bracket_round=pm.bracket_round,
            bracket_match_index=pm.bracket_match_index,
            team1_id=pm.team1_id,
            team2_id=pm.team2_id,
            team1_score=None,
            team2_score=None,
            winner_id=None,
            is_live=False,
        )
        for pm in plan.matches
    ]
    session.add_all(rows)

    tournament.status = STATUS_BRACKET
    tournament.bracket_generated_at = datetime.utcnow()
    tournament.updated_at = datetime.utcnow()
    session.add(tournament)

    return BracketGenerationResult(
        inserted=len(rows),
        bracket_size=plan.bracket_size,
        rounds=plan.rounds,
        seeds=list(seeds),
    )


def _commit_rows(session: Session, tournament_id: int, result: BracketGenerationResult) -> BracketGenerationResult:
    if not result.ok:
        session.rollback()
        return result
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.exception("Tournament %d: bracket insert rejected by store", tournament_id)
        return _failure(KIND_STORE, f"Failed to insert bracket matches: {e.orig}")
    return result


def generate_bracket(session: Session, tournament_id: int) -> BracketGenerationResult:
    """
    Generate bracket matches from current standings.

    Refuses (zero inserted, one error) if any bracket match exists. On success the
    tournament moves to the bracket phase; bracket_started stays false.
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        return _failure(KIND_NOT_FOUND, "Tournament not found")

    if bracket_exists(session, tournament_id):
        logger.warning("Tournament %d: bracket generation refused, bracket exists", tournament_id)
        return _failure(KIND_STATE_GUARD, BRACKET_EXISTS_ERROR)

    result = _commit_rows(session, tournament_id, _build_rows(session, tournament))
    if result.ok:
        logger.info(
            "Tournament %d: bracket generated (size=%d, rounds=%d, matches=%d)",
            tournament_id,
            result.bracket_size,
            result.rounds,
            result.inserted,
        )
    return result


def rebuild_bracket(session: Session, tournament_id: int) -> BracketGenerationResult:
    """
    Delete all bracket matches and regenerate, only while the bracket has not started.
    A failed regeneration rolls back the deletion.
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        return _failure(KIND_NOT_FOUND, "Tournament not found")

    if tournament.bracket_started or bracket_has_activity(session, tournament_id):
        logger.warning("Tournament %d: bracket rebuild refused, bracket started", tournament_id)
        return _failure(KIND_STATE_GUARD, BRACKET_STARTED_ERROR)

    # Re-assert the guard as a conditional write so a concurrent start blocks the rebuild.
    guarded = conditional_update(
        session,
        Tournament,
        Tournament.id == tournament_id,
        Tournament.bracket_started == False,  # noqa: E712
        updated_at=datetime.utcnow(),
    )
    if guarded != 1:
        session.rollback()
        return _failure(KIND_STATE_GUARD, BRACKET_STARTED_ERROR)

    existing = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.match_type == MATCH_TYPE_BRACKET)
    ).all()
    for match in existing:
        session.delete(match)
    session.flush()

    session.refresh(tournament)
    result = _commit_rows(session, tournament_id, _build_rows(session, tournament))
    if result.ok:
        logger.info(
            "Tournament %d: bracket rebuilt (deleted=%d, inserted=%d)", tournament_id, len(existing), result.inserted
        )
    return result


@dataclass
class UnscoredMatch:
    match_id: int
    pool_id: Optional[int]
    pool_name: Optional[str]


@dataclass
class BracketPrereqReport:
    ok: bool
    errors: List[str] = field(default_factory=list)
    infos: List[str] = field(default_factory=list)
    stats: Dict[str, object] = field(default_factory=dict)
    unscored: List[UnscoredMatch] = field(default_factory=list)
    teams_without_pool: int = 0


def check_bracket_prerequisites(session: Session, tournament_id: int) -> Optional[BracketPrereqReport]:
    """
    Report whether a bracket can be generated, with precise blockers.
    Returns None when the tournament does not exist.
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        return None

    errors: List[str] = []
    infos: List[str] = []
    rules = load_advancement_rules(tournament.advancement_rules)
    if rules.uses_default_tiebreakers:
        infos.append("Using default tiebreakers: head_to_head, set_ratio, point_diff, random.")

    pools = session.exec(select(Pool).where(Pool.tournament_id == tournament_id).order_by(Pool.name)).all()
    pool_name_by_id = {p.id: p.name for p in pools}
    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()

    size_by_pool: Dict[int, int] = {}
    teams_without_pool = 0
    for t in teams:
        if t.pool_id is None:
            teams_without_pool += 1
            continue
        size_by_pool[t.pool_id] = size_by_pool.get(t.pool_id, 0) + 1

    pool_size_errors = 0
    expected_advancers = 0
    for p in pools:
        size = size_by_pool.get(p.id, 0)
        if size < 2:
            errors.append(f"Pool '{p.name}' has only {size} team(s). Need at least 2 to advance.")
            pool_size_errors += 1
            continue
        expected_advancers += min(rules.advance_count_for(size), size)
    if teams_without_pool:
        infos.append(f"{teams_without_pool} team(s) are not assigned to any pool.")

    pool_matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.match_type == MATCH_TYPE_POOL)
    ).all()
    unscored = [
        UnscoredMatch(match_id=m.id, pool_id=m.pool_id, pool_name=pool_name_by_id.get(m.pool_id))
        for m in pool_matches
        if m.team1_id is not None and m.team2_id is not None and (m.team1_score is None or m.team2_score is None)
    ]
    if unscored:
        errors.append(f"{len(unscored)} pool match(es) are missing scores.")

    exists = bracket_exists(session, tournament_id)
    if exists:
        errors.append(BRACKET_EXISTS_ERROR)

    actual_advancers = 0
    bracket_size = 0
    rounds = 0
    if pool_size_errors == 0 and not unscored:
        actual_advancers = len(seed_advancers(session, tournament).seeds)
        try:
            bracket_size = bracket_size_for(actual_advancers, MAX_BRACKET_SIZE)
            rounds = round_count(bracket_size)
        except BracketLayoutError as e:
            errors.append(str(e))
            bracket_size = -1 if actual_advancers else 0

    if expected_advancers >= 2 and actual_advancers > 0 and actual_advancers != expected_advancers:
        infos.append(f"Expected {expected_advancers} advancers (per pool rules), computed {actual_advancers}.")

    return BracketPrereqReport(
        ok=not errors,
        errors=errors,
        infos=infos,
        stats={
            "pool_count": len(pools),
            "team_count": len(teams),
            "unscored_count": len(unscored),
            "expected_advancers": expected_advancers,
            "actual_advancers": actual_advancers,
            "bracket_exists": exists,
            "bracket_size": bracket_size,
            "rounds": rounds,
        },
        unscored=unscored,
        teams_without_pool=teams_without_pool,
    )
