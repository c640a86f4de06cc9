"""End-to-end over HTTP: schedule, pool results, standings, seeds, bracket, live scoring."""
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from gbv.models.match import MATCH_TYPE_BRACKET, MATCH_TYPE_POOL, Match
from gbv.models.team import Team


def _setup_tournament(client: TestClient) -> int:
    tid = client.post("/api/tournaments", json={"name": "Beach Classic", "court_names": ["2", "1"]}).json()["id"]
    for pool_name in ("Pool A", "Pool B"):
        pool_id = client.post(f"/api/tournaments/{tid}/pools", json={"name": pool_name}).json()["id"]
        for seed in range(1, 5):
            response = client.post(
                f"/api/tournaments/{tid}/teams",
                json={
                    "seeded_player_name": f"{pool_name} Player {seed}",
                    "partner_name": f"{pool_name} Partner {seed}",
                    "pool_id": pool_id,
                    "seed_in_pool": seed,
                },
            )
            assert response.status_code == 201, response.text
    return tid


def _matches(session: Session, tid: int, match_type: str):
    session.expire_all()
    return session.exec(
        select(Match)
        .where(Match.tournament_id == tid, Match.match_type == match_type)
        .order_by(Match.bracket_round, Match.bracket_match_index, Match.id)
    ).all()


def _seed_of(session: Session, team_id: int) -> int:
    return session.get(Team, team_id).seed_in_pool


@pytest.fixture
def scheduled(client: TestClient) -> int:
    tid = _setup_tournament(client)
    response = client.post(f"/api/tournaments/{tid}/schedule/generate")
    assert response.status_code == 200, response.text
    assert response.json() == {"inserted": 12, "created_templates": [4]}
    return tid


@pytest.fixture
def pool_play_done(client: TestClient, session: Session, scheduled: int) -> int:
    """Every pool match scored; the better pool seed always wins."""
    tid = scheduled
    for m in _matches(session, tid, MATCH_TYPE_POOL):
        team1_better = _seed_of(session, m.team1_id) < _seed_of(session, m.team2_id)
        scores = {"team1_score": 21, "team2_score": 16} if team1_better else {"team1_score": 16, "team2_score": 21}
        response = client.post(f"/api/tournaments/{tid}/matches/{m.id}/result", json=scores)
        assert response.status_code == 200, response.text
    return tid


def test_schedule_generation_guards(client: TestClient, scheduled: int):
    tid = scheduled

    again = client.post(f"/api/tournaments/{tid}/schedule/generate")
    assert again.status_code == 409
    assert again.json()["detail"]["kind"] == "state_guard"

    cleared = client.delete(f"/api/tournaments/{tid}/schedule/pool-matches")
    assert cleared.json() == {"deleted": 12}
    assert client.post(f"/api/tournaments/{tid}/schedule/generate").status_code == 200


def test_schedule_prerequisites_endpoint(client: TestClient):
    tid = client.post("/api/tournaments", json={"name": "Solo"}).json()["id"]
    pool_id = client.post(f"/api/tournaments/{tid}/pools", json={"name": "Pool A"}).json()["id"]
    for seed in range(1, 5):
        client.post(
            f"/api/tournaments/{tid}/teams",
            json={"seeded_player_name": f"P{seed}", "pool_id": pool_id, "seed_in_pool": seed},
        )

    body = client.get(f"/api/tournaments/{tid}/schedule/prerequisites").json()
    assert body["ok"] is False
    assert body["errors"] == ["Partner assignment incomplete: 4 team(s) missing a real team name."]

    generate = client.post(f"/api/tournaments/{tid}/schedule/generate")
    assert generate.status_code == 422
    assert generate.json()["detail"]["errors"] == body["errors"]


def test_schedule_template_endpoints(client: TestClient):
    tid = client.post("/api/tournaments", json={"name": "Templates"}).json()["id"]

    default = client.get(f"/api/tournaments/{tid}/schedule-templates/4").json()
    assert default["is_default"] is True
    assert len(default["template_data"]) == 6

    bad = client.put(
        f"/api/tournaments/{tid}/schedule-templates/4",
        json={"template_data": [{"round": 1, "play": [[1, 9]]}]},
    )
    assert bad.status_code == 422
    assert bad.json()["detail"]["errors"] == ["round 1: seed 9 exceeds pool size 4"]

    saved = client.put(
        f"/api/tournaments/{tid}/schedule-templates/4",
        json={"template_data": [{"round": 1, "play": [[1, 2], [3, 4]], "ref": [3]}]},
    )
    assert saved.status_code == 200
    stored = client.get(f"/api/tournaments/{tid}/schedule-templates/4").json()
    assert stored["is_default"] is False
    assert stored["template_data"] == [{"round": 1, "play": [[1, 2], [3, 4]], "ref": [3]}]

    assert client.get(f"/api/tournaments/{tid}/schedule-templates/3").status_code == 422


def test_standings_and_seeds(client: TestClient, pool_play_done: int):
    tid = pool_play_done

    standings = client.get(f"/api/tournaments/{tid}/standings").json()
    assert [p["pool_name"] for p in standings] == ["Pool A", "Pool B"]
    top = standings[0]["standings"][0]
    assert (top["rank"], top["seed"], top["wins"], top["losses"]) == (1, 1, 3, 0)
    assert standings[0]["tiebreakers"] == ["head_to_head", "set_ratio", "point_diff", "random"]

    pool_id = standings[1]["pool_id"]
    single = client.get(f"/api/tournaments/{tid}/pools/{pool_id}/standings").json()
    assert single == standings[1]

    seeds = client.get(f"/api/tournaments/{tid}/seeds").json()
    assert [s["seed"] for s in seeds["seeds"]] == [1, 2, 3, 4]
    assert len(seeds["winners"]) == 2 and len(seeds["runners"]) == 2
    assert seeds["seeds"][0]["name"].endswith("Partner 1")


def test_bracket_lifecycle(client: TestClient, session: Session, pool_play_done: int):
    tid = pool_play_done

    prereq = client.get(f"/api/tournaments/{tid}/bracket/prerequisites").json()
    assert prereq["ok"] is True
    assert prereq["stats"]["bracket_size"] == 4

    generated = client.post(f"/api/tournaments/{tid}/bracket/generate")
    assert generated.status_code == 200
    assert generated.json()["inserted"] == 3
    dup = client.post(f"/api/tournaments/{tid}/bracket/generate")
    assert dup.status_code == 409
    assert dup.json()["detail"]["errors"] == ["Bracket already exists. Use Rebuild Bracket to overwrite when allowed."]

    bracket = client.get(f"/api/tournaments/{tid}/bracket").json()
    assert bracket["courts"] == ["1", "2"]
    assert bracket["bracket_started"] is False
    semi1, semi2, final = bracket["matches"]
    assert (semi1["round_label"], final["round_label"]) == ("Semifinals", "Final")
    assert (semi1["court"], semi2["court"], final["court"]) == ("1", "2", "1")
    assert semi1["ref_team_id"] is None and semi2["ref_team_id"] is None
    assert not any(m["is_bye"] for m in bracket["matches"])

    # Rebuild is allowed before anything starts.
    assert client.post(f"/api/tournaments/{tid}/bracket/rebuild").status_code == 200
    semi1_id = _matches(session, tid, MATCH_TYPE_BRACKET)[0].id
    live = f"/api/tournaments/{tid}/matches/{semi1_id}/live"

    claim = client.post(f"{live}/claim", json={"owner_id": "ipad-1"})
    assert claim.status_code == 200
    assert claim.json()["state"] == "claimed"
    assert client.post(f"{live}/claim", json={"owner_id": "ipad-2"}).status_code == 409

    beat = client.post(f"{live}/heartbeat", json={"owner_id": "ipad-1", "live_score_team1": 5, "live_score_team2": 3})
    assert beat.status_code == 200

    rebuild = client.post(f"/api/tournaments/{tid}/bracket/rebuild")
    assert rebuild.status_code == 409
    assert rebuild.json()["detail"]["kind"] == "state_guard"

    result_url = f"/api/tournaments/{tid}/matches/{semi1_id}/result"
    assert client.post(result_url, json={"team1_score": 21, "team2_score": 18}).status_code == 409
    done = client.post(result_url, json={"team1_score": 21, "team2_score": 18, "owner_id": "ipad-1"})
    assert done.status_code == 200
    body = done.json()
    assert body["advanced"] is True

    bracket = client.get(f"/api/tournaments/{tid}/bracket").json()
    semi1, semi2, final = bracket["matches"]
    assert bracket["bracket_started"] is True
    assert final["team1_id"] == body["winner_id"]
    assert semi1["winner_id"] == body["winner_id"]
    assert semi1["is_live"] is False
    # The first semi winner, already waiting in the final, referees the second.
    assert semi2["ref_team_id"] == body["winner_id"]
    assert semi2["ref_team_name"] is not None

    repair = client.post(f"/api/tournaments/{tid}/bracket/matches/{semi1_id}/advance")
    assert repair.status_code == 200
    assert repair.json()["updated_next"] is False

    resolved = client.post(f"/api/tournaments/{tid}/bracket/resolve").json()
    assert resolved == {"matches_processed": 1, "teams_advanced": 0, "conflicts": 0}

    unfinished = client.post(f"/api/tournaments/{tid}/bracket/matches/{final['match_id']}/advance")
    assert unfinished.status_code == 422


def test_live_routes_check_match_ownership(client: TestClient, scheduled: int, session: Session):
    tid = scheduled
    other = client.post("/api/tournaments", json={"name": "Other"}).json()["id"]
    match_id = _matches(session, tid, MATCH_TYPE_POOL)[0].id

    response = client.post(f"/api/tournaments/{other}/matches/{match_id}/live/claim", json={"owner_id": "x"})
    assert response.status_code == 404

    url = f"/api/tournaments/{tid}/matches/{match_id}"
    assert client.post(f"{url}/live/claim", json={"owner_id": ""}).status_code == 422
    assert client.post(f"{url}/result", json={"team1_score": -1, "team2_score": 21}).status_code == 422
    assert client.post(f"{url}/result", json={"team1_score": 21, "team2_score": 21}).status_code == 422

    client.post(f"{url}/live/claim", json={"owner_id": "ipad-1"})
    released = client.post(f"{url}/live/release", json={"owner_id": "ipad-1"})
    assert released.status_code == 200
    assert released.json()["state"] == "idle"
    assert client.post(f"{url}/live/release", json={"owner_id": "ipad-1"}).status_code == 409


def test_bracket_prerequisites_missing_tournament(client: TestClient):
    response = client.get("/api/tournaments/999/bracket/prerequisites")
    assert response.status_code == 404
