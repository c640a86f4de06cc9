"""Pool schedule generation: prerequisites, template resolution, all-or-nothing inserts."""
from sqlmodel import Session, select

from gbv.models.match import MATCH_TYPE_POOL, Match
from gbv.models.schedule_template import ScheduleTemplate
from gbv.models.tournament import STATUS_POOL_PLAY
from gbv.services.default_templates import default_template_for_pool_size
from gbv.services.errors import KIND_NOT_FOUND, KIND_VALIDATION
from gbv.services.schedule_generator import (
    build_pool_matches,
    check_schedule_prerequisites,
    clear_pool_matches,
    generate_pool_schedule,
    get_template,
)
from gbv.utils.schedule_template import parse_template
from tests.helpers import make_pool, make_tournament


def _pool_matches(session: Session, tournament_id: int):
    return session.exec(
        select(Match)
        .where(Match.tournament_id == tournament_id, Match.match_type == MATCH_TYPE_POOL)
        .order_by(Match.pool_id, Match.round_number)
    ).all()


def test_generate_uses_default_templates_and_creates_them(session: Session):
    tournament = make_tournament(session)
    pool_a, a_teams = make_pool(session, tournament, "Pool A", 4)
    pool_b, b_teams = make_pool(session, tournament, "Pool B", 5)

    result = generate_pool_schedule(session, tournament.id)

    assert result.ok
    assert result.inserted == 6 + 10
    assert result.created_templates == [4, 5]
    assert get_template(session, tournament.id, 4).template_data == default_template_for_pool_size(4)

    rows = _pool_matches(session, tournament.id)
    a_rows = [m for m in rows if m.pool_id == pool_a.id]
    by_seed = {t.seed_in_pool: t.id for t in a_teams}
    # Round 1 of the 4-team default: 1 v 4, refereed by 2
    first = a_rows[0]
    assert (first.round_number, first.team1_id, first.team2_id, first.ref_team_id) == (
        1,
        by_seed[1],
        by_seed[4],
        by_seed[2],
    )
    assert all(m.team1_score is None and not m.is_live for m in rows)

    session.refresh(tournament)
    assert tournament.status == STATUS_POOL_PLAY


def test_stored_template_takes_precedence(session: Session):
    tournament = make_tournament(session)
    _, teams = make_pool(session, tournament, "Pool A", 4)
    session.add(
        ScheduleTemplate(
            tournament_id=tournament.id,
            pool_size=4,
            template_data=[{"round": 1, "play": [[1, 2], [3, 4]]}],
        )
    )
    session.commit()

    result = generate_pool_schedule(session, tournament.id)

    assert result.ok
    assert result.inserted == 2
    assert result.created_templates == []
    rows = _pool_matches(session, tournament.id)
    assert all(m.ref_team_id is None for m in rows)


def test_unnamed_teams_block_generation(session: Session):
    tournament = make_tournament(session)
    make_pool(session, tournament, "Pool A", 4, named=False)

    result = generate_pool_schedule(session, tournament.id)

    assert not result.ok
    assert result.error_kind == KIND_VALIDATION
    assert result.errors == ["Partner assignment incomplete: 4 team(s) missing a real team name."]
    assert _pool_matches(session, tournament.id) == []
    # Nothing staged leaks out of a refused run.
    assert get_template(session, tournament.id, 4) is None


def test_unsupported_pool_size_is_reported(session: Session):
    tournament = make_tournament(session)
    make_pool(session, tournament, "Pool A", 3)

    report = check_schedule_prerequisites(session, tournament.id)

    assert not report.ok
    assert report.errors == ["Unsupported pool size 3 in 'Pool A'. Only 4–5 are supported."]


def test_seed_problems_are_reported(session: Session):
    tournament = make_tournament(session)
    _, teams = make_pool(session, tournament, "Pool A", 4)
    teams[3].seed_in_pool = None
    teams[2].seed_in_pool = 9
    session.add_all(teams)
    session.commit()

    report = check_schedule_prerequisites(session, tournament.id)

    assert not report.ok
    assert any("has no seed" in e for e in report.errors)
    assert any("seed 9 outside 1–4" in e for e in report.errors)


def test_prerequisites_report_missing_template_as_info(session: Session):
    tournament = make_tournament(session)
    make_pool(session, tournament, "Pool A", 5)

    report = check_schedule_prerequisites(session, tournament.id)

    assert report.ok
    assert report.infos == ["No template for pool size 5; the built-in default will be used."]
    assert sorted(report.templates) == [5]
    session.rollback()
    assert get_template(session, tournament.id, 5) is None


def test_malformed_stored_template_is_reported(session: Session):
    tournament = make_tournament(session)
    make_pool(session, tournament, "Pool A", 4)
    session.add(
        ScheduleTemplate(
            tournament_id=tournament.id,
            pool_size=4,
            template_data=[{"round": 1, "play": [[1, 7]]}, {"round": "x", "play": []}],
        )
    )
    session.commit()

    result = generate_pool_schedule(session, tournament.id)

    assert not result.ok
    assert any("seed 7 exceeds pool size 4" in e for e in result.errors)
    assert any(e.startswith("Template for pool size 4: round entry 2") for e in result.errors)
    assert _pool_matches(session, tournament.id) == []


def test_unresolved_seed_yields_empty_slot(session: Session):
    tournament = make_tournament(session)
    pool, teams = make_pool(session, tournament, "Pool A", 4)
    rounds = parse_template([{"round": 1, "play": [[1, 5]], "ref": [6]}])

    rows = build_pool_matches(tournament.id, pool, teams, rounds)

    assert len(rows) == 1
    assert rows[0].team1_id == teams[0].id
    assert rows[0].team2_id is None
    assert rows[0].ref_team_id is None


def test_clear_pool_matches(session: Session):
    tournament = make_tournament(session)
    make_pool(session, tournament, "Pool A", 4)
    generate_pool_schedule(session, tournament.id)

    assert clear_pool_matches(session, tournament.id) == 6
    assert _pool_matches(session, tournament.id) == []
    assert clear_pool_matches(session, tournament.id) == 0


def test_generate_missing_tournament(session: Session):
    assert generate_pool_schedule(session, 777).error_kind == KIND_NOT_FOUND
