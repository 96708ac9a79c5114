from fastapi.testclient import TestClient

from football.models import Team, Tournament
from tests.conftest import make_tournament


def test_storage_starts_remote_active(client: TestClient):
    response = client.get("/api/storage/status")

    assert response.status_code == 200
    assert response.json() == {
        "phase": "remote-active",
        "isRemoteActive": True,
        "lastError": None,
        "isLoading": False,
        "tournamentCount": 0,
        "pendingLocalCount": 0,
    }


def test_save_and_list_tournament(client: TestClient):
    payload = make_tournament().to_dict()

    response = client.put("/api/tournaments/t1", json=payload)
    assert response.status_code == 200
    saved = response.json()
    assert saved["status"] == "completed"
    assert saved["fixtures"][0]["score1"] == 2
    assert saved["fixtures"][0]["goals"][0]["minute"] == 10

    listed = client.get("/api/tournaments").json()
    assert [t["id"] for t in listed] == ["t1"]


def test_save_rejects_invalid_tournament(client: TestClient):
    payload = make_tournament().to_dict()
    payload["name"] = ""

    response = client.put("/api/tournaments/t1", json=payload)

    assert response.status_code == 422
    assert "missing ID or name" in response.json()["detail"]
    assert client.get("/api/tournaments").json() == []


def test_save_rejects_mismatched_id(client: TestClient):
    response = client.put("/api/tournaments/other", json=make_tournament().to_dict())

    assert response.status_code == 422


def test_unknown_tournament_returns_404(client: TestClient):
    assert client.get("/api/tournaments/missing").status_code == 404
    assert client.get("/api/tournaments/missing/standings").status_code == 404


def test_generate_fixtures_and_standings(client: TestClient):
    t = Tournament(id="t5", name="Sunday Five", date="2024-06-02", teams=[
        Team(id="A", name="Alpha"), Team(id="B", name="Beta"), Team(id="C", name="Gamma"),
    ])
    client.put("/api/tournaments/t5", json=t.to_dict())

    response = client.post("/api/tournaments/t5/fixtures")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "active"
    assert len(body["fixtures"]) == 3

    standings = client.get("/api/tournaments/t5/standings").json()
    assert [row["points"] for row in standings] == [0, 0, 0]


def test_fixtures_need_two_teams(client: TestClient):
    client.put("/api/tournaments/t6", json=Tournament(id="t6", name="Lonely").to_dict())

    assert client.post("/api/tournaments/t6/fixtures").status_code == 422


def test_delete_tournament(client: TestClient):
    client.put("/api/tournaments/t1", json=make_tournament().to_dict())

    response = client.delete("/api/tournaments/t1")

    assert response.status_code == 204
    assert client.get("/api/tournaments").json() == []


def test_cleanup_and_integrity_endpoints(client: TestClient):
    payload = make_tournament().to_dict()
    payload["teams"] = []
    payload["fixtures"] = []
    client.put("/api/tournaments/t1", json=payload)

    cleanup = client.post("/api/storage/cleanup").json()
    assert cleanup == {
        "success": True, "message": "Data cleanup completed",
        "backReferencesFixed": 0, "orphansRemoved": 0,
    }

    integrity = client.get("/api/storage/integrity").json()
    assert integrity["ok"] is False
    assert integrity["issues"] == ['Tournament "Cup" has no teams']


def test_retry_and_migrate_when_remote_is_reachable(client: TestClient):
    assert client.post("/api/storage/retry").json()["phase"] == "remote-active"
    assert client.post("/api/storage/migrate").json()["isRemoteActive"] is True


def test_create_tournament_assigns_id(client: TestClient):
    response = client.post("/api/tournaments", json={
        "name": "Friday Cup", "date": "2024-07-05", "rounds": 2, "teamSize": 3, "hasHalfTime": "false",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["id"].isdigit()
    assert body["status"] == "setup"
    assert (body["rounds"], body["teamSize"], body["hasHalfTime"]) == (2, 3, False)
    assert [t["id"] for t in client.get("/api/tournaments").json()] == [body["id"]]


def test_create_tournament_requires_name(client: TestClient):
    response = client.post("/api/tournaments", json={"date": "2024-07-05"})

    assert response.status_code == 422
    assert client.get("/api/tournaments").json() == []


def test_save_recomputes_cached_stats(client: TestClient):
    payload = make_tournament().to_dict()
    payload["teams"][1]["stats"]["points"] = 99

    saved = client.put("/api/tournaments/t1", json=payload).json()

    assert [t["stats"]["points"] for t in saved["teams"]] == [3, 0]
    assert saved["teams"][0]["players"][0]["goals"] == 1


def test_draw_teams_during_setup(client: TestClient):
    tid = client.post("/api/tournaments", json={"name": "Draw", "teamSize": 2}).json()["id"]
    players = [
        {"name": "Ann", "hat": "first"}, {"name": "Bob", "hat": "second"},
        {"name": "Cid", "hat": "first"}, {"name": "Dee", "hat": "second"},
        {"name": "Eve", "hat": "first"},
    ]

    response = client.post(f"/api/tournaments/{tid}/teams", json={"players": players})

    assert response.status_code == 200
    teams = response.json()["teams"]
    assert len(teams) == 2
    assert all(len(t["players"]) == 2 for t in teams)
    assert all({p["hat"] for p in t["players"]} == {"first", "second"} for t in teams)


def test_draw_teams_rejected_outside_setup(client: TestClient):
    client.put("/api/tournaments/t1", json=make_tournament().to_dict())

    response = client.post("/api/tournaments/t1/teams", json={"players": [{"name": "Ann"}] * 4})

    assert response.status_code == 409


def test_draw_teams_needs_enough_players(client: TestClient):
    tid = client.post("/api/tournaments", json={"name": "Small"}).json()["id"]

    response = client.post(f"/api/tournaments/{tid}/teams", json={"players": [{"name": "Ann"}, {"name": "Bob"}]})

    assert response.status_code == 422


def test_add_goal_updates_score_and_player_totals(client: TestClient):
    t = make_tournament(goals=[])
    t.matches[0].status = "pending"
    t.matches[0].score1 = t.matches[0].score2 = 0
    client.put("/api/tournaments/t1", json=t.to_dict())

    response = client.post("/api/tournaments/t1/matches/t1_m1/goals", json={"playerId": "t1_p3", "minute": 12})

    assert response.status_code == 201
    body = response.json()
    match = body["fixtures"][0]
    assert match["status"] == "live"
    assert (match["score1"], match["score2"]) == (0, 1)
    assert match["goals"][0]["playerName"] == "Cid"
    assert match["goals"][0]["teamId"] == "t1_B"
    assert body["teams"][1]["players"][0]["goals"] == 1


def test_add_goal_rejects_unknown_player_and_match(client: TestClient):
    t = make_tournament(goals=[])
    t.matches[0].status = "live"
    client.put("/api/tournaments/t1", json=t.to_dict())

    assert client.post("/api/tournaments/t1/matches/t1_m1/goals", json={"playerId": "nobody", "minute": 3}).status_code == 422
    assert client.post("/api/tournaments/t1/matches/t1_m1/goals", json={"playerId": "t1_p1", "minute": "soon"}).status_code == 422
    assert client.post("/api/tournaments/t1/matches/nope/goals", json={"playerId": "t1_p1", "minute": 3}).status_code == 404


def test_add_goal_rejected_for_completed_match(client: TestClient):
    client.put("/api/tournaments/t1", json=make_tournament().to_dict())

    response = client.post("/api/tournaments/t1/matches/t1_m1/goals", json={"playerId": "t1_p1", "minute": 80})

    assert response.status_code == 409
