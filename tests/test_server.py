"""Tests for the FastAPI match service."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from dicy.engine.match import MatchSettings
from dicy.engine.probability import win_probability
from dicy.server.main import app, sessions
from dicy.server.session import MatchSessionManager
from dicy.utils.constants import MAX_DICE_PER_TERRITORY, MAX_DICE_SIDES

HUMAN_FIRST = {
    "type": "scenario",
    "width": 3,
    "height": 3,
    "diceSides": 1,
    "players": [{"id": 0}, {"id": 1, "isBot": True}],
    "tiles": [
        {"x": 0, "y": 0, "owner": 0, "dice": 3},
        {"x": 1, "y": 0, "owner": 1, "dice": 1},
        {"x": 0, "y": 1, "owner": 0, "dice": 1},
        {"x": 1, "y": 1, "owner": 1, "dice": 2},
    ],
}


@pytest.fixture
def client():
    with TestClient(app) as client:
        yield client


def create(client, **body):
    response = client.post("/api/matches", json=body)
    assert response.status_code == 200, response.text
    return response.json()


class TestMatches:
    def test_health(self, client):
        response = client.get("/api")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_create_from_settings(self, client):
        data = create(client, width=7, height=5, humans=1, bots=2, seed=42, mapStyle="full")

        assert data["matchId"].startswith("match-")
        assert data["seed"] == 42
        assert data["state"]["width"] == 7
        assert len(data["state"]["players"]) == 3
        assert len(data["state"]["tiles"]) == 35

    def test_same_seed_same_board(self, client):
        a = create(client, seed=5, humans=2, bots=0)
        b = create(client, seed=5, humans=2, bots=0)
        assert a["state"]["tiles"] == b["state"]["tiles"]

    def test_invalid_settings(self, client):
        response = client.post("/api/matches", json={"humans": 1, "bots": 0})
        assert response.status_code == 400

    def test_invalid_level(self, client):
        response = client.post("/api/matches", json={"level": {"type": "scenario", "width": 3}})
        assert response.status_code == 422

    def test_over_cap_config_level(self, client):
        level = {"type": "config", "mapSize": "5x5", "humans": 1, "bots": 1, "maxDice": 40}
        response = client.post("/api/matches", json={"level": level})
        assert response.status_code == 422

    def test_state(self, client):
        match_id = create(client, seed=1, humans=2, bots=0)["matchId"]

        response = client.get(f"/api/matches/{match_id}/state")

        assert response.status_code == 200
        data = response.json()
        assert data["turn"] == 1
        assert data["gameOver"] is False
        assert len(data["stats"]) == 2

    def test_unknown_match(self, client):
        assert client.get("/api/matches/match-nope/state").status_code == 404
        assert client.post("/api/matches/match-nope/end-turn").status_code == 404
        assert client.delete("/api/matches/match-nope").status_code == 404

    def test_delete(self, client):
        match_id = create(client, humans=2, bots=0)["matchId"]
        assert client.delete(f"/api/matches/{match_id}").status_code == 200
        assert client.get(f"/api/matches/{match_id}/state").status_code == 404


class TestMoves:
    @pytest.fixture
    def match_id(self, client):
        return create(client, level=HUMAN_FIRST, seed=3)["matchId"]

    def test_attack(self, client, match_id):
        response = client.post(f"/api/matches/{match_id}/attack", json={"from": [0, 0], "to": [1, 0]})

        assert response.status_code == 200
        data = response.json()
        assert data["result"]["won"] is True
        assert data["gameOver"] is False

    def test_rejected_attack_reports_reason(self, client, match_id):
        response = client.post(f"/api/matches/{match_id}/attack", json={"from": [0, 1], "to": [1, 1]})

        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "not_enough_dice"

    def test_end_turn_then_bot_turn(self, client, match_id):
        response = client.post(f"/api/matches/{match_id}/end-turn")
        assert response.status_code == 200
        assert response.json()["currentPlayerId"] == 1

        # Humans cannot move for the bot
        response = client.post(f"/api/matches/{match_id}/attack", json={"from": [0, 0], "to": [1, 0]})
        assert response.status_code == 400

        response = client.post(f"/api/matches/{match_id}/bot-turn")
        assert response.status_code == 200
        data = response.json()
        assert len(data["reports"]) == 1
        assert data["reports"][0]["agentId"] == "easy"
        assert data["reports"][0]["status"] in {"completed", "timed_out"}
        assert data["currentPlayerId"] == 0 or data["gameOver"]

    def test_bot_turn_on_human_turn(self, client, match_id):
        response = client.post(f"/api/matches/{match_id}/bot-turn")
        assert response.status_code == 400

    def test_moves_after_game_over(self, client):
        level = {**HUMAN_FIRST, "tiles": HUMAN_FIRST["tiles"][:3]}
        match_id = create(client, level=level)["matchId"]

        response = client.post(f"/api/matches/{match_id}/attack", json={"from": [0, 0], "to": [1, 0]})
        assert response.json()["gameOver"] is True
        assert response.json()["winnerId"] == 0

        assert client.post(f"/api/matches/{match_id}/end-turn").status_code == 400


def test_startup_fills_probability_tables():
    win_probability.cache_clear()
    with TestClient(app):
        assert win_probability.cache_info().currsize >= MAX_DICE_SIDES * MAX_DICE_PER_TERRITORY**2


def test_list_agents(client):
    response = client.get("/api/agents")
    assert response.status_code == 200
    agents = response.json()["agents"]
    assert [a["id"] for a in agents[:4]] == ["easy", "medium", "hard", "adaptive"]
    assert "code" not in agents[0]


def test_websocket_connect(client):
    match_id = create(client, humans=2, bots=0)["matchId"]

    with client.websocket_connect(f"/ws/matches/{match_id}") as ws:
        hello = ws.receive_json()
        assert hello["type"] == "CONNECTED"
        assert hello["matchId"] == match_id
        ws.send_json({"type": "PING"})
        assert ws.receive_json() == {"type": "PONG"}


class FakeWebSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(message)

    async def close(self):
        pass


class TestSessions:
    def test_events_are_broadcast(self):
        manager = MatchSessionManager()
        session = manager.create_session(MatchSettings(humans=2, bots=0), seed=9)
        good, broken = FakeWebSocket(), FakeWebSocket(fail=True)
        session.add_connection(good)
        session.add_connection(broken)

        session.engine.end_turn()
        asyncio.run(session.flush())

        types = [m["type"] for m in good.sent]
        assert types[:2] == ["game_started", "turn_started"]
        assert "reinforcements_applied" in types
        assert session.pending == []
        assert session.connections == [good]

    def test_requires_settings_or_level(self):
        with pytest.raises(ValueError):
            MatchSessionManager().create_session()

    def test_cleanup(self):
        manager = MatchSessionManager()
        manager.create_session(MatchSettings(humans=2, bots=0))
        asyncio.run(manager.cleanup_all())
        assert manager.sessions == {}
