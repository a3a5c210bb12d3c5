"""Tests for the agent sandbox: API, policy, worker and process runner."""

import asyncio

import pytest

from dicy.agent.registry import AgentRepository
from dicy.engine.match import MatchEngine
from dicy.engine.probability import win_probability
from dicy.models.agent import AgentDefinition
from dicy.models.player import Player
from dicy.sandbox.api import MAX_MOVES, TURN_ENDED, AgentAPI
from dicy.sandbox.policy import PolicyViolation, check_source
from dicy.sandbox.protocol import (
    AttackIntent,
    DoneMessage,
    EndTurnIntent,
    ErrorMessage,
    LogMessage,
    TurnRequest,
    decode_message,
    encode_message,
)
from dicy.sandbox.runner import AgentSandbox, AgentTurnState
from dicy.sandbox.snapshot import restore_game_state, serialize_game_state
from dicy.sandbox.worker import run_turn
from dicy.utils.constants import AGENT_MAX_LOG_CHARS
from dicy.utils.rng import GameRNG

ROWS = [
    "0:3 1:2 1:1",
    "0:1 1:1 #",
]


@pytest.fixture
def board(make_board):
    return make_board(ROWS)


@pytest.fixture
def players():
    return [Player(id=0, is_bot=True, stored_dice=2), Player(id=1, is_bot=True)]


def make_api(board, players, **kwargs):
    sent = []
    api = AgentAPI(board, players, my_id=0, turn=3, dice_sides=6, emit=sent.append, **kwargs)
    return api, sent


class TestAgentAPI:
    def test_queries(self, board, players):
        api, _ = make_api(board, players)

        assert api.my_id == 0
        assert api.turn == 3
        assert (api.width, api.height, api.max_dice, api.dice_sides) == (3, 2, 8, 6)
        assert {(t.x, t.y) for t in api.my_tiles()} == {(0, 0), (0, 1)}
        assert len(api.enemy_tiles()) == 3
        assert api.tile_at(2, 1) is None
        assert api.tile_at(1, 0).dice == 2
        assert {(t.x, t.y) for t in api.adjacent_tiles(1, 1)} == {(0, 1), (1, 0)}
        assert api.player_info(1).is_bot
        assert api.player_info(9) is None

    def test_reinforcements_include_store(self, board, players):
        api, _ = make_api(board, players)
        assert api.largest_connected_region(0) == 2
        assert api.reinforcements_for(0) == 4
        assert api.reinforcements_for(1) == 3

    def test_win_probability_is_exact(self, board, players):
        api, _ = make_api(board, players)
        assert api.win_probability(3, 2) == win_probability(3, 2, 6)
        assert api.win_probability(1, 1, sides=2) == pytest.approx(0.25)

    def test_attack_queues_intent_and_updates_local_view(self, board, players):
        api, sent = make_api(board, players)

        result = api.attack(0, 0, 1, 0)

        assert result.success and result.expected_win
        assert sent == [AttackIntent(from_pos=(0, 0), to_pos=(1, 0))]
        assert api.tile_at(1, 0).owner == 0
        assert api.tile_at(1, 0).dice == 2
        assert api.tile_at(0, 0).dice == 1
        assert api.moves == 1

    def test_local_loss_prediction(self, make_board, players):
        api, _ = make_api(make_board(["0:2 1:2"]), players)

        result = api.attack(0, 0, 1, 0)

        assert result.success and not result.expected_win
        assert api.tile_at(1, 0).owner == 1
        assert api.tile_at(0, 0).dice == 1

    def test_rejected_attack_queues_nothing(self, board, players):
        api, sent = make_api(board, players)

        result = api.attack(0, 1, 1, 1)

        assert not result.success
        assert result.reason == "not_enough_dice"
        assert sent == []

    def test_bad_arguments(self, board, players):
        api, sent = make_api(board, players)
        assert api.attack("0", 0, 1, 0).reason == "invalid_arguments"
        assert api.tile_at(0.5, 0) is None
        assert sent == []

    def test_move_budget(self, make_board, players):
        api, sent = make_api(make_board(["0:3 1:1", "0:3 1:1"]), players, max_moves=1)

        assert api.attack(0, 0, 1, 0).success
        result = api.attack(0, 1, 1, 1)

        assert result.reason == MAX_MOVES
        assert len([m for m in sent if isinstance(m, AttackIntent)]) == 1

    def test_move_counters_are_read_only(self, make_board, players):
        api, _ = make_api(make_board(["0:3 1:1", "0:3 1:1"]), players, max_moves=1)
        api.attack(0, 0, 1, 0)

        with pytest.raises(AttributeError):
            api.moves = 0
        with pytest.raises(AttributeError):
            api.turn_ended = False
        assert api.attack(0, 1, 1, 1).reason == MAX_MOVES

    def test_adjacent_tiles_of_missing_cells(self, board, players):
        api, _ = make_api(board, players)
        assert api.adjacent_tiles(-1, 0) == []
        assert api.adjacent_tiles(3, 1) == []
        assert api.adjacent_tiles(2, 1) == []  # Blocked

    def test_end_turn_is_final(self, board, players):
        api, sent = make_api(board, players)
        api.end_turn()
        api.end_turn()

        assert api.attack(0, 0, 1, 0).reason == TURN_ENDED
        assert [m for m in sent if isinstance(m, EndTurnIntent)] == [EndTurnIntent()]

    def test_simulate_attack_is_side_effect_free(self, board, players):
        api, sent = make_api(board, players)
        before = board.copy()

        outlook = api.simulate_attack(0, 0, 1, 0)

        assert outlook.success and outlook.expected_win
        assert outlook.win_probability == pytest.approx(win_probability(3, 2))
        assert outlook.my_region == 3
        assert outlook.enemy_region == 1  # (2, 0) and (1, 1) only touch diagonally
        assert outlook.my_reinforcements == 5
        assert board == before
        assert sent == []

    def test_simulate_invalid_attack(self, board, players):
        api, _ = make_api(board, players)
        assert api.simulate_attack(0, 0, 0, 1).reason == "cannot_attack_self"

    def test_storage(self, board, players):
        api, _ = make_api(board, players, storage={"wins": 2})

        api.save("wins", api.load("wins") + 1)
        assert api.load("missing", "x") == "x"
        assert api.storage() == {"wins": 3}
        with pytest.raises(TypeError):
            api.save("bad", object())
        with pytest.raises(TypeError):
            api.save(1, "value")

    def test_storage_size_is_capped(self, board, players):
        api, _ = make_api(board, players, storage={"wins": 2})
        with pytest.raises(ValueError):
            api.save("blob", "x" * 2_000_000)
        assert api.storage() == {"wins": 2}

    def test_log(self, board, players):
        api, sent = make_api(board, players)
        api.log("score", 3)
        assert sent == [LogMessage(message="score 3")]

    def test_long_log_lines_are_truncated(self, board, players):
        api, sent = make_api(board, players)
        api.log("x" * (AGENT_MAX_LOG_CHARS * 3))
        assert len(sent[0].message) == AGENT_MAX_LOG_CHARS + 3


class TestPolicy:
    @pytest.mark.parametrize(
        "code",
        [
            "import os",
            "from os import path",
            "x = ().__class__",
            "x = __builtins__",
            "def f():\n    global y",
            "f = (lambda: 0)\nf.gi_frame",
            "'{0.__class__}'.format(1)",
        ],
    )
    def test_denied(self, code):
        with pytest.raises(PolicyViolation):
            check_source(code)

    def test_allowed(self):
        check_source("def score(t):\n    return t.dice * 2\n\nclass Plan:\n    size = 1\n")

    def test_syntax_error(self):
        with pytest.raises(SyntaxError):
            check_source("def broken(:")


class TestWorker:
    """run_turn in-process, with messages captured instead of written to stdout."""

    def run(self, code, board, players, max_moves=10, **kwargs):
        messages = []
        request = TurnRequest(
            code=code,
            state=serialize_game_state(board, players, 0, 1, 6),
            max_moves=max_moves,
            **kwargs,
        )
        run_turn(request, messages.append)
        return messages

    def test_completed_turn(self, board, players):
        code = "api.attack(0, 0, 1, 0)\nprint('done', api.load('n', 0))\napi.save('n', 1)"
        messages = self.run(code, board, players)

        assert isinstance(messages[0], AttackIntent)
        assert messages[1] == LogMessage(message="done 0")
        assert isinstance(messages[2], EndTurnIntent)
        assert messages[3] == DoneMessage(storage={"n": 1}, moves=1)

    def test_classes_and_math(self, board, players):
        code = "class Plan:\n    size = math.floor(2.5)\napi.log(Plan.size)"
        messages = self.run(code, board, players)
        assert LogMessage(message="2") in messages
        assert isinstance(messages[-1], DoneMessage)

    def test_print_keywords(self, board, players):
        code = "print('a', 'b', sep=',', end='')\nprint('x', end='!\\n')\nprint(1, 2, file=None, flush=True)"
        messages = self.run(code, board, players)

        logs = [m.message for m in messages if isinstance(m, LogMessage)]
        assert logs == ["a,b", "x!", "1 2"]
        assert isinstance(messages[-1], DoneMessage)

    def test_move_counter_cannot_be_reset(self, make_board, players):
        code = (
            "api.attack(0, 0, 1, 0)\n"
            "try:\n"
            "    api.moves = 0\n"
            "except AttributeError:\n"
            "    pass\n"
            "api.save('reason', api.attack(0, 1, 1, 1).reason)"
        )
        messages = self.run(code, make_board(["0:3 1:1", "0:3 1:1"]), players, max_moves=1)

        assert len([m for m in messages if isinstance(m, AttackIntent)]) == 1
        assert messages[-1] == DoneMessage(storage={"reason": MAX_MOVES}, moves=1)

    def test_oversized_storage_fails_the_turn(self, board, players):
        messages = self.run("api.save('k', 'x' * 2000000)", board, players)
        assert messages[-1].kind == "runtime"
        assert "storage limit" in messages[-1].error

    @pytest.mark.parametrize(
        "code,kind",
        [
            ("def broken(:", "syntax"),
            ("import os", "policy"),
            ("open('x')", "runtime"),
            ("raise ValueError('boom')", "runtime"),
        ],
    )
    def test_failures(self, board, players, code, kind):
        messages = self.run(code, board, players)
        assert isinstance(messages[-1], ErrorMessage)
        assert messages[-1].kind == kind

    def test_intents_before_failure_are_streamed(self, board, players):
        messages = self.run("api.attack(0, 0, 1, 0)\nraise RuntimeError('late')", board, players)
        assert isinstance(messages[0], AttackIntent)
        assert "late" in messages[-1].error

    def test_unsupported_api_version(self, board, players):
        messages = self.run("pass", board, players, api_version=99)
        assert messages == [ErrorMessage(kind="protocol", error="Unsupported API version 99")]

    def test_bad_state(self):
        messages = []
        run_turn(TurnRequest(code="pass", state={"width": 3}, max_moves=1), messages.append)
        assert messages[0].kind == "protocol"


class TestProtocol:
    def test_attack_uses_wire_names(self):
        line = encode_message(AttackIntent(from_pos=(1, 2), to_pos=(2, 2)))
        assert '"from":[1,2]' in line
        assert decode_message(line) == AttackIntent(from_pos=(1, 2), to_pos=(2, 2))

    @pytest.mark.parametrize("line", ["", "not json", '{"type": "teleport"}', '{"type": "attack"}'])
    def test_malformed_lines_ignored(self, line):
        assert decode_message(line) is None


def test_snapshot_restores_board(board, players):
    restored, roster = restore_game_state(serialize_game_state(board, players, 0, 4, 6))
    assert restored == board
    assert [p.stored_dice for p in roster] == [2, 0]


class TestAgentSandbox:
    """Real worker processes."""

    def agent(self, code, **kwargs):
        return AgentDefinition(id="custom_test", name="Test", code=code, **kwargs)

    def take_turn(self, sandbox, agent, board, players):
        return asyncio.run(
            sandbox.take_turn(agent, board, players[0], players=players, turn=1, dice_sides=6)
        )

    def test_completed_turn_saves_storage(self, board, players):
        repository = AgentRepository()
        sandbox = AgentSandbox(repository, timeout=10)
        code = "api.attack(0, 0, 1, 0)\napi.log('hello')\napi.save('runs', api.load('runs', 0) + 1)"

        outcome = self.take_turn(sandbox, self.agent(code), board, players)

        assert outcome.status == AgentTurnState.COMPLETED
        assert outcome.intents == [AttackIntent(from_pos=(0, 0), to_pos=(1, 0)), EndTurnIntent()]
        assert outcome.logs == ["hello"]
        assert repository.load_storage("custom_test") == {"runs": 1}
        assert sandbox.transitions == [AgentTurnState.DISPATCHED, AgentTurnState.COMPLETED]
        # The authoritative board is never touched by the agent
        assert board.tile_at(1, 0).owner == 1

    def test_exception_yields_no_intents(self, board, players):
        sandbox = AgentSandbox(AgentRepository(), timeout=10)
        outcome = self.take_turn(sandbox, self.agent("raise ValueError('boom')"), board, players)

        assert outcome.status == AgentTurnState.ERRORED
        assert outcome.intents == []
        assert "boom" in outcome.error

    def test_infinite_loop_times_out_keeping_queued_intents(self, board, players):
        sandbox = AgentSandbox(AgentRepository(), timeout=3)
        code = "api.attack(0, 0, 1, 0)\nwhile True:\n    pass"

        outcome = self.take_turn(sandbox, self.agent(code), board, players)

        assert outcome.status == AgentTurnState.TIMED_OUT
        assert outcome.intents == [AttackIntent(from_pos=(0, 0), to_pos=(1, 0))]
        assert outcome.elapsed < 10

    def test_agent_timeout_overrides_default(self, board, players):
        sandbox = AgentSandbox(AgentRepository(), timeout=30)
        outcome = self.take_turn(sandbox, self.agent("while True:\n    pass", timeout=1.5), board, players)
        assert outcome.status == AgentTurnState.TIMED_OUT
        assert outcome.elapsed < 10


class TestMatchWithSandbox:
    """Faulty agents never stop a match."""

    @pytest.fixture
    def repository(self):
        repository = AgentRepository()
        repository.register("Crasher", "raise ValueError('boom')", agent_id="crasher")
        repository.register("Looper", "while True:\n    pass", agent_id="looper", timeout=1.5)
        repository.register("Shouter", "api.log('x' * 20000000)", agent_id="shouter")
        repository.register("Hoarder", "api.save('k', 'x' * 20000000)", agent_id="hoarder")
        repository.register(
            "Packer", "api.attack(0, 0, 1, 0)\napi.save('k', 'x' * 5000)", agent_id="packer"
        )
        return repository

    def start(self, repository, make_scenario, agent_id):
        engine = MatchEngine(
            rng=GameRNG(1),
            sandbox=AgentSandbox(repository, timeout=10),
            repository=repository,
        )
        players = [{"id": 0, "isBot": True, "botAI": agent_id}, {"id": 1, "isBot": True}]
        engine.load_scenario(make_scenario([(0, 0, 0, 3), (1, 0, 1, 2), (2, 0, 1, 1)], players=players))
        return engine

    def test_throwing_agent_forfeits_turn(self, repository, make_scenario):
        engine = self.start(repository, make_scenario, "crasher")

        report = asyncio.run(engine.play_bot_turn())

        assert report.status == "errored"
        assert report.applied == 0
        assert not engine.game_over
        assert engine.current_player.id == 1
        assert engine.turn == 2
        assert engine.sandbox.transitions == [
            AgentTurnState.DISPATCHED,
            AgentTurnState.ERRORED,
            AgentTurnState.APPLIED,
            AgentTurnState.IDLE,
        ]

    def test_looping_agent_times_out_and_play_continues(self, repository, make_scenario):
        engine = self.start(repository, make_scenario, "looper")

        report = asyncio.run(engine.play_bot_turn())

        assert report.status == "timed_out"
        assert engine.current_player.id == 1
        assert engine.sandbox.state == AgentTurnState.IDLE

    def test_huge_log_line_is_truncated(self, repository, make_scenario):
        engine = self.start(repository, make_scenario, "shouter")

        report = asyncio.run(engine.play_bot_turn())

        assert report.status == "completed"
        assert len(report.logs[0]) == AGENT_MAX_LOG_CHARS + 3
        assert engine.sandbox.state == AgentTurnState.IDLE

    def test_huge_storage_forfeits_turn(self, repository, make_scenario):
        engine = self.start(repository, make_scenario, "hoarder")

        report = asyncio.run(engine.play_bot_turn())

        assert report.status == "errored"
        assert "storage limit" in report.error
        assert engine.current_player.id == 1
        assert repository.load_storage("hoarder") == {}

    def test_unreadable_worker_output_forfeits_turn(self, repository, make_scenario, monkeypatch):
        monkeypatch.setattr("dicy.sandbox.runner.STREAM_LIMIT", 1024)
        engine = self.start(repository, make_scenario, "packer")

        report = asyncio.run(engine.play_bot_turn())

        assert report.status == "errored"
        assert "ValueError" in report.error
        assert engine.current_player.id == 1
        assert engine.sandbox.transitions == [
            AgentTurnState.DISPATCHED,
            AgentTurnState.ERRORED,
            AgentTurnState.APPLIED,
            AgentTurnState.IDLE,
        ]

        # The sandbox is free for the next bot
        report = asyncio.run(engine.play_bot_turn())
        assert report.player_id == 1
