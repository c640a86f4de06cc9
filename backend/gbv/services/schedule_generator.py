"""
Pool-play schedule generation from per-pool-size round templates.

Templates reference in-pool seed numbers; generation resolves them to the
pool's teams. Prerequisites are checked first and generation is all-or-nothing:
any failed check (or a store rejection) leaves the database untouched.
Existing pool matches are not removed here; callers clear them first.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from gbv.models.match import MATCH_TYPE_POOL, Match
from gbv.models.pool import Pool
from gbv.models.schedule_template import ScheduleTemplate
from gbv.models.team import Team, has_real_name
from gbv.models.tournament import STATUS_DRAFT, STATUS_POOL_PLAY, STATUS_SETUP, Tournament
from gbv.services.default_templates import SUPPORTED_POOL_SIZES, default_template_for_pool_size
from gbv.services.errors import KIND_NOT_FOUND, KIND_STORE, KIND_VALIDATION
from gbv.utils.schedule_template import TemplateFormatError, TemplateRound, parse_template

logger = logging.getLogger(__name__)


@dataclass
class SchedulePrereqResult:
    ok: bool
    errors: List[str] = field(default_factory=list)
    infos: List[str] = field(default_factory=list)
    templates: Dict[int, List[TemplateRound]] = field(default_factory=dict)
    created_templates: List[int] = field(default_factory=list)


@dataclass
class ScheduleGenerationResult:
    inserted: int = 0
    errors: List[str] = field(default_factory=list)
    error_kind: Optional[str] = None
    created_templates: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _supported_sizes_text() -> str:
    return "–".join(str(s) for s in (min(SUPPORTED_POOL_SIZES), max(SUPPORTED_POOL_SIZES)))


def get_template(session: Session, tournament_id: int, pool_size: int) -> Optional[ScheduleTemplate]:
    return session.exec(
        select(ScheduleTemplate).where(
            ScheduleTemplate.tournament_id == tournament_id, ScheduleTemplate.pool_size == pool_size
        )
    ).first()


def check_schedule_prerequisites(
    session: Session, tournament_id: int, create_missing_templates: bool = False
) -> SchedulePrereqResult:
    """
    Validate everything pool schedule generation relies on.

    - every team has a real name (partner set, not the seed placeholder)
    - every pool with teams has a supported size
    - every team in a sized pool has a unique in-range seed
    - a valid template exists for every pool size in use; missing ones with a
      built-in default are staged when create_missing_templates is set
    """
    errors: List[str] = []
    infos: List[str] = []

    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    pools = session.exec(select(Pool).where(Pool.tournament_id == tournament_id).order_by(Pool.name)).all()

    unnamed = [t for t in teams if not has_real_name(t)]
    if unnamed:
        errors.append(f"Partner assignment incomplete: {len(unnamed)} team(s) missing a real team name.")

    teams_by_pool: Dict[int, List[Team]] = defaultdict(list)
    for t in teams:
        if t.pool_id is not None:
            teams_by_pool[t.pool_id].append(t)

    sizes_in_use = set()
    for p in pools:
        group = teams_by_pool.get(p.id, [])
        size = len(group)
        if size == 0:
            continue
        if size not in SUPPORTED_POOL_SIZES:
            errors.append(
                f"Unsupported pool size {size} in '{p.name}'. Only {_supported_sizes_text()} are supported."
            )
            continue
        sizes_in_use.add(size)

        seen: Dict[int, str] = {}
        for t in sorted(group, key=lambda t: t.id):
            if t.seed_in_pool is None:
                errors.append(f"Team '{t.full_team_name}' in '{p.name}' has no seed.")
            elif not 1 <= t.seed_in_pool <= size:
                errors.append(f"Team '{t.full_team_name}' in '{p.name}' has seed {t.seed_in_pool} outside 1–{size}.")
            elif t.seed_in_pool in seen:
                errors.append(
                    f"Seed {t.seed_in_pool} in '{p.name}' is shared by '{seen[t.seed_in_pool]}' and '{t.full_team_name}'."
                )
            else:
                seen[t.seed_in_pool] = t.full_team_name

    templates: Dict[int, List[TemplateRound]] = {}
    created: List[int] = []
    for size in sorted(sizes_in_use):
        tmpl = get_template(session, tournament_id, size)
        if tmpl is None:
            default = default_template_for_pool_size(size)
            if not default:
                errors.append(f"Missing schedule template for pool size {size}.")
                continue
            if create_missing_templates:
                tmpl = ScheduleTemplate(tournament_id=tournament_id, pool_size=size, template_data=default)
                session.add(tmpl)
                created.append(size)
            else:
                infos.append(f"No template for pool size {size}; the built-in default will be used.")
            raw = default
        else:
            raw = tmpl.template_data
        try:
            templates[size] = parse_template(raw, pool_size=size)
        except TemplateFormatError as e:
            errors.extend(f"Template for pool size {size}: {msg}" for msg in e.messages)

    return SchedulePrereqResult(
        ok=not errors, errors=errors, infos=infos, templates=templates, created_templates=created
    )


def build_pool_matches(
    tournament_id: int, pool: Pool, teams: List[Team], rounds: List[TemplateRound]
) -> List[Match]:
    """One match per (round, pairing); seeds with no team resolve to an empty slot."""
    by_seed = {t.seed_in_pool: t.id for t in teams if t.seed_in_pool is not None}
    rows: List[Match] = []
    for r in rounds:
        for i, (seed_a, seed_b) in enumerate(r.play):
            ref_seed = r.ref_seed_for(i)
            rows.append(
                Match(
                    tournament_id=tournament_id,
                    pool_id=pool.id,
                    match_type=MATCH_TYPE_POOL,
                    round_number=r.round,
                    team1_id=by_seed.get(seed_a),
                    team2_id=by_seed.get(seed_b),
                    ref_team_id=by_seed.get(ref_seed) if ref_seed is not None else None,
                    is_live=False,
                )
            )
    return rows


def generate_pool_schedule(session: Session, tournament_id: int) -> ScheduleGenerationResult:
    """
    Create pool matches for every pool from its size's template.

    Auto-creates missing default templates as part of the same transaction.
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        return ScheduleGenerationResult(errors=["Tournament not found"], error_kind=KIND_NOT_FOUND)

    prereq = check_schedule_prerequisites(session, tournament_id, create_missing_templates=True)
    if not prereq.ok:
        session.rollback()
        logger.warning("Tournament %d: schedule generation blocked (%d issues)", tournament_id, len(prereq.errors))
        return ScheduleGenerationResult(errors=prereq.errors, error_kind=KIND_VALIDATION)

    pools = session.exec(select(Pool).where(Pool.tournament_id == tournament_id).order_by(Pool.name)).all()
    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    teams_by_pool: Dict[int, List[Team]] = defaultdict(list)
    for t in teams:
        if t.pool_id is not None:
            teams_by_pool[t.pool_id].append(t)

    rows: List[Match] = []
    for p in pools:
        group = teams_by_pool.get(p.id, [])
        rounds = prereq.templates.get(len(group))
        if not group or rounds is None:
            continue
        rows.extend(build_pool_matches(tournament_id, p, group, rounds))

    session.add_all(rows)
    if tournament.status in (STATUS_DRAFT, STATUS_SETUP):
        tournament.status = STATUS_POOL_PLAY
        session.add(tournament)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.exception("Tournament %d: pool match insert rejected by store", tournament_id)
        return ScheduleGenerationResult(errors=[f"Failed to insert pool matches: {e.orig}"], error_kind=KIND_STORE)

    logger.info(
        "Tournament %d: generated %d pool matches (templates created for sizes %s)",
        tournament_id,
        len(rows),
        prereq.created_templates,
    )
    return ScheduleGenerationResult(inserted=len(rows), created_templates=prereq.created_templates)


def clear_pool_matches(session: Session, tournament_id: int) -> int:
    """Delete every pool match of a tournament; returns how many were removed."""
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.match_type == MATCH_TYPE_POOL)
    ).all()
    for match in matches:
        session.delete(match)
    session.commit()
    logger.info("Tournament %d: cleared %d pool matches", tournament_id, len(matches))
    return len(matches)
