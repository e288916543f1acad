import asyncio
import json

from aiohttp.test_utils import TestClient, TestServer

from pubgolf.config import GolfConfig
from pubgolf.errors import StoreError
from pubgolf.scoreboard import PubGolfSystem

USER = {"Authorization": "Bearer team-token"}
OTHER = {"Authorization": "Bearer other-token"}
ADMIN = {"Authorization": "Bearer admin-token"}


def run_app(tmp_path, scenario, settings=None):
    config_path = tmp_path / "pubgolf_config.json"
    config_path.write_text(
        json.dumps(
            {
                "auth": {
                    "users": {
                        "team-token": {"id": "user-1"},
                        "other-token": {"id": "user-2"},
                        "admin-token": {"id": "admin-1", "role": "admin"},
                    }
                },
                **(settings or {}),
            }
        )
    )
    system = PubGolfSystem(db_path=str(tmp_path / "web.db"), config=GolfConfig(str(config_path)))

    async def runner():
        await system.init_db()
        async with TestClient(TestServer(system.build_app())) as client:
            return await scenario(client, system)

    return asyncio.run(runner())


async def _register(client, headers=USER, name="Alpha", players=("Ay", "Bee")):
    resp = await client.post(
        "/api/team", json={"team_name": name, "players": list(players)}, headers=headers
    )
    assert resp.status == 201
    return await resp.json()


def test_anonymous_index_asks_to_sign_in(tmp_path):
    async def scenario(client, _):
        resp = await client.get("/")
        return resp.status, await resp.text()

    status, text = run_app(tmp_path, scenario)

    assert status == 401
    assert "Log ind" in text


def test_index_shows_setup_then_scorecard(tmp_path):
    async def scenario(client, _):
        before = await (await client.get("/", headers=USER)).text()
        resp = await client.post(
            "/team",
            data=[("team_name", "Alpha"), ("player", "Ay"), ("player", ""), ("player", "Bee")],
            headers=USER,
            allow_redirects=False,
        )
        after = await (await client.get("/", headers=USER)).text()
        return before, resp.status, after

    before, status, after = run_app(tmp_path, scenario)

    assert "Opret dit hold" in before
    assert status == 303
    assert "Alpha" in after
    assert "Die Kleine Bierstube" in after


def test_setup_form_errors_render_notice(tmp_path):
    async def scenario(client, _):
        resp = await client.post("/team", data=[("team_name", ""), ("player", "Ay")], headers=USER)
        return resp.status, await resp.text()

    status, text = run_app(tmp_path, scenario)

    assert status == 400
    assert "Indtast et holdnavn" in text


def test_register_and_score_through_api(tmp_path):
    async def scenario(client, _):
        team = await _register(client)
        ay, bee = team["players"]
        await client.post("/api/scores", json={"player_id": ay["id"], "hole_number": 1, "score": "3"}, headers=USER)
        await client.post("/api/scores", json={"player_id": ay["id"], "hole_number": 2, "score": 2}, headers=USER)
        resp = await client.post("/api/scores", json={"player_id": bee["id"], "hole_number": 1, "score": "4"}, headers=USER)
        result = await resp.json()
        card = await (await client.get("/api/scorecard?reload=1", headers=USER)).json()
        return result, card

    result, card = run_app(tmp_path, scenario)

    assert result["score"] == 4
    assert result["hole_total"] == 7
    assert result["team_total"] == 9
    assert card["team_total"] == 9
    assert card["players"][0]["total"] == 5


def test_empty_score_records_zero(tmp_path):
    async def scenario(client, system):
        team = await _register(client)
        player_id = team["players"][0]["id"]
        resp = await client.post("/api/scores", json={"player_id": player_id, "hole_number": 4, "score": ""}, headers=USER)
        return resp.status, await resp.json(), await system.db.select("scores")

    status, body, rows = run_app(tmp_path, scenario)

    assert status == 200
    assert body["score"] == 0
    assert [(r["hole_number"], r["score"]) for r in rows] == [(4, 0)]


def test_invalid_hole_is_rejected(tmp_path):
    async def scenario(client, _):
        team = await _register(client)
        player_id = team["players"][0]["id"]
        resp = await client.post("/api/scores", json={"player_id": player_id, "hole_number": 12, "score": 3}, headers=USER)
        return resp.status, await resp.json()

    status, body = run_app(tmp_path, scenario)

    assert status == 400
    assert body["notice"]["variant"] == "destructive"


def test_cannot_score_for_another_team(tmp_path):
    async def scenario(client, _):
        team = await _register(client)
        await _register(client, headers=OTHER, name="Bravo", players=("Cee",))
        resp = await client.post(
            "/api/scores",
            json={"player_id": team["players"][0]["id"], "hole_number": 1, "score": 3},
            headers=OTHER,
        )
        return resp.status

    assert run_app(tmp_path, scenario) == 400


def test_failed_store_write_keeps_optimistic_total(tmp_path):
    async def scenario(client, system):
        team = await _register(client)
        player_id = team["players"][0]["id"]
        await client.get("/api/scorecard", headers=USER)

        async def offline(*args, **kwargs):
            raise StoreError("network down")

        system.db.upsert = offline
        resp = await client.post("/api/scores", json={"player_id": player_id, "hole_number": 1, "score": 6}, headers=USER)
        card = await (await client.get("/api/scorecard", headers=USER)).json()
        return resp.status, await resp.json(), card

    status, body, card = run_app(tmp_path, scenario)

    assert status == 502
    assert body["notice"]["description"] == "network down"
    assert body["team_total"] == 6
    assert card["team_total"] == 6


def test_leaderboard_is_admin_only(tmp_path):
    async def scenario(client, _):
        page = await client.get("/leaderboard", headers=USER)
        api = await client.get("/api/leaderboard", headers=USER)
        penalties = await client.get("/admin/penalties", headers=USER)
        return page.status, await page.text(), api.status, penalties.status

    page_status, text, api_status, penalties_status = run_app(tmp_path, scenario)

    assert page_status == 403
    assert "Kun administratorer" in text
    assert api_status == 403
    assert penalties_status == 403


def test_leaderboard_follows_score_changes(tmp_path):
    async def scenario(client, system):
        alpha = await _register(client)
        bravo = await _register(client, headers=OTHER, name="Bravo", players=("Cee",))
        await client.post("/api/scores", json={"player_id": alpha["players"][0]["id"], "hole_number": 1, "score": 30}, headers=USER)
        await client.post("/api/scores", json={"player_id": bravo["players"][0]["id"], "hole_number": 1, "score": 12}, headers=OTHER)
        await system.leaderboard.wait_idle()
        first = await (await client.get("/api/leaderboard", headers=ADMIN)).json()

        await client.post("/api/scores", json={"player_id": bravo["players"][0]["id"], "hole_number": 2, "score": 40}, headers=OTHER)
        await system.leaderboard.wait_idle()
        second = await (await client.get("/api/leaderboard", headers=ADMIN)).json()
        page = await (await client.get("/leaderboard", headers=ADMIN)).text()
        return first, second, page

    first, second, page = run_app(tmp_path, scenario)

    assert [(s["team_name"], s["total_score"]) for s in first["standings"]] == [("Bravo", 12), ("Alpha", 30)]
    assert [(s["team_name"], s["total_score"]) for s in second["standings"]] == [("Alpha", 30), ("Bravo", 52)]
    assert second["standings"][0]["medal"] == "🥇"
    assert first["total_par"] == 19
    assert "Alpha" in page


def test_manual_refresh_picks_up_new_teams(tmp_path):
    async def scenario(client, _):
        await _register(client)
        resp = await client.post("/api/leaderboard/refresh", headers=ADMIN)
        return await resp.json()

    body = run_app(tmp_path, scenario)

    assert [s["team_name"] for s in body["standings"]] == ["Alpha"]


def test_admin_bonus_lowers_total(tmp_path):
    async def scenario(client, system):
        team = await _register(client)
        await client.post("/api/scores", json={"player_id": team["players"][0]["id"], "hole_number": 1, "score": 5}, headers=USER)
        resp = await client.post(
            "/api/penalties",
            json={"team_id": team["team"]["id"], "points": 2, "reason": "Split the G", "kind": "bonus"},
            headers=ADMIN,
        )
        created = await resp.json()
        await system.leaderboard.wait_idle()
        board = await (await client.get("/api/leaderboard", headers=ADMIN)).json()
        history = await (await client.get("/api/penalties", headers=ADMIN)).json()
        return resp.status, created, board, history

    status, created, board, history = run_app(tmp_path, scenario)

    assert status == 201
    assert created["adjustment"]["points"] == -2
    assert created["adjustment"]["created_by"] == "admin-1"
    assert board["standings"][0]["total_score"] == 3
    assert history["history"][0]["reason"] == "Split the G"
    assert history["history"][0]["team_name"] == "Alpha"


def test_adjustment_validation_errors(tmp_path):
    async def scenario(client, _):
        team = await _register(client)
        resp = await client.post(
            "/api/penalties",
            json={"team_id": team["team"]["id"], "points": 3, "reason": "  "},
            headers=ADMIN,
        )
        return resp.status, await resp.json()

    status, body = run_app(tmp_path, scenario)

    assert status == 400
    assert body["notice"]["description"] == "Udfyld alle felter"


def test_penalty_form_page(tmp_path):
    async def scenario(client, _):
        team = await _register(client)
        resp = await client.post(
            "/admin/penalties",
            data={"team_id": team["team"]["id"], "points": "3", "reason": "Kaste op", "kind": "penalty"},
            headers=ADMIN,
        )
        return resp.status, await resp.text()

    status, text = run_app(tmp_path, scenario)

    assert status == 200
    assert "Strafpoint tilføjet" in text
    assert "+3" in text
    assert "Kaste op" in text


def test_sign_out_ends_session(tmp_path):
    async def scenario(client, _):
        resp = await client.post("/auth/signout", headers=USER)
        after = await client.get("/api/scorecard", headers=USER)
        return await resp.json(), after.status

    body, status = run_app(tmp_path, scenario)

    assert body == {"signed_out": True}
    assert status == 401


def test_course_and_rules_are_public(tmp_path):
    async def scenario(client, _):
        course = await (await client.get("/api/course")).json()
        rules = await client.get("/rules")
        return course, rules.status, await rules.text()

    course, status, text = run_app(tmp_path, scenario)

    assert course["total_par"] == 19
    assert course["holes"][5]["special_label"] == "Stum"
    assert status == 200
    assert "Water Hazard" in text


def test_websocket_pushes_standings(tmp_path):
    async def scenario(client, _):
        team = await _register(client)
        await client.post("/api/leaderboard/refresh", headers=ADMIN)
        async with client.ws_connect("/ws/leaderboard", headers=ADMIN) as ws:
            first = await ws.receive_json(timeout=5)
            await client.post(
                "/api/scores",
                json={"player_id": team["players"][0]["id"], "hole_number": 1, "score": 3},
                headers=USER,
            )
            second = await ws.receive_json(timeout=5)
        return first, second

    first, second = run_app(tmp_path, scenario)

    assert first["standings"][0]["total_score"] == 0
    assert second["standings"][0]["total_score"] == 3


def test_websocket_disabled_without_live_updates(tmp_path):
    async def scenario(client, _):
        resp = await client.get("/ws/leaderboard", headers=ADMIN)
        return resp.status

    assert run_app(tmp_path, scenario, {"features": {"live_updates": False}}) == 404


def test_scorecard_form_post(tmp_path):
    async def scenario(client, system):
        team = await _register(client)
        resp = await client.post(
            "/scores",
            data={"player_id": team["players"][1]["id"], "hole_number": "9", "score": "3"},
            headers=USER,
            allow_redirects=False,
        )
        bad = await client.post(
            "/scores",
            data={"player_id": team["players"][1]["id"], "hole_number": "0", "score": "3"},
            headers=USER,
        )
        return resp.status, bad.status, await system.db.select("scores")

    status, bad_status, rows = run_app(tmp_path, scenario)

    assert status == 303
    assert bad_status == 400
    assert [(r["hole_number"], r["score"]) for r in rows] == [(9, 3)]


def test_oversized_score_gets_notice_not_server_error(tmp_path):
    async def scenario(client, system):
        team = await _register(client)
        player_id = team["players"][0]["id"]
        resp = await client.post(
            "/api/scores",
            json={"player_id": player_id, "hole_number": 1, "score": "99999999999999999999"},
            headers=USER,
        )
        card = await (await client.get("/api/scorecard", headers=USER)).json()
        return resp.status, await resp.json(), card

    status, body, card = run_app(tmp_path, scenario)

    assert status == 400
    assert body["notice"]["variant"] == "destructive"
    assert card["team_total"] == 0


def test_registration_with_non_text_players_is_rejected(tmp_path):
    async def scenario(client, system):
        resp = await client.post(
            "/api/team", json={"team_name": "Alpha", "players": [1]}, headers=USER
        )
        return resp.status, await resp.json(), await system.db.count("teams")

    status, body, teams = run_app(tmp_path, scenario)

    assert status == 400
    assert body["notice"]["variant"] == "destructive"
    assert teams == 0
