"""Match orchestration.

The MatchEngine owns the authoritative board and roster. Human moves come
in through ``attack``/``end_turn``; automated seats are played through the
agent sandbox and their intents replayed through the very same calls, so a
bot can never do anything a human could not.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..agent.builtin import BUILTIN_AGENTS
from ..agent.registry import AgentRepository
from ..models.battle import BattleResult, ReinforcementResult
from ..models.board import Board, Position
from ..models.level import ScenarioLevel
from ..models.player import Player
from ..models.tile import Tile
from ..sandbox.protocol import AttackIntent, EndTurnIntent
from ..sandbox.runner import AgentSandbox
from ..utils.constants import (
    BOT_COLORS,
    DEFAULT_DICE_SIDES,
    DEFAULT_MAX_DICE,
    GAME_MODES,
    HUMAN_COLORS,
    MAX_DICE_PER_TERRITORY,
    MAX_DICE_SIDES,
    MAX_TURNS,
    MIN_PLAYERS,
)
from ..utils.rng import GameRNG
from .combat import CombatResolver, InvalidAttackError
from .events import (
    AgentTurnFinished,
    AttackResolved,
    EventBus,
    GameOver,
    GameStarted,
    PlayerEliminated,
    ReinforcementsApplied,
    TurnStarted,
)
from .game_modes import apply_game_mode
from .map_generator import generate_board
from .reinforcement import distribute_reinforcements
from .territory import largest_connected_region

logger = logging.getLogger(__name__)

DEFAULT_BOT_AGENT = "easy"


class GameOverError(RuntimeError):
    """Raised when a move is attempted on a finished (or unstarted) match."""


@dataclass
class MatchSettings:
    """Configuration for a procedurally generated match."""

    width: int = 6
    height: int = 6
    humans: int = 1
    bots: int = 1
    max_dice: int = DEFAULT_MAX_DICE
    dice_sides: int = DEFAULT_DICE_SIDES
    map_style: str = "random"
    game_mode: str = "classic"
    bot_agent: str = DEFAULT_BOT_AGENT
    bot_agents: List[str] = field(default_factory=list)  # Per-bot override, cycled
    preset_layout: Optional[List[Tuple[int, int]]] = None

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Invalid board size: {self.width}x{self.height}")
        if self.humans < 0 or self.bots < 0:
            raise ValueError("Player counts cannot be negative")
        if self.humans + self.bots < MIN_PLAYERS:
            raise ValueError(f"Need at least {MIN_PLAYERS} players, got {self.humans + self.bots}")
        if not 1 <= self.max_dice <= MAX_DICE_PER_TERRITORY:
            raise ValueError(f"Invalid max_dice: {self.max_dice} (must be 1-{MAX_DICE_PER_TERRITORY})")
        if not 1 <= self.dice_sides <= MAX_DICE_SIDES:
            raise ValueError(f"Invalid dice_sides: {self.dice_sides} (must be 1-{MAX_DICE_SIDES})")
        if self.game_mode not in GAME_MODES:
            raise ValueError(f"Unknown game mode: {self.game_mode}")

    def agent_for_bot(self, bot_index: int) -> str:
        if self.bot_agents:
            return self.bot_agents[bot_index % len(self.bot_agents)]
        return self.bot_agent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "humans": self.humans,
            "bots": self.bots,
            "maxDice": self.max_dice,
            "diceSides": self.dice_sides,
            "mapStyle": self.map_style,
            "gameMode": self.game_mode,
            "botAgent": self.bot_agent,
            "botAgents": list(self.bot_agents),
            "presetLayout": [list(p) for p in self.preset_layout] if self.preset_layout else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchSettings":
        layout = data.get("presetLayout")
        return cls(
            width=data["width"],
            height=data["height"],
            humans=data.get("humans", 1),
            bots=data.get("bots", 1),
            max_dice=data.get("maxDice", DEFAULT_MAX_DICE),
            dice_sides=data.get("diceSides", DEFAULT_DICE_SIDES),
            map_style=data.get("mapStyle", "random"),
            game_mode=data.get("gameMode", "classic"),
            bot_agent=data.get("botAgent", DEFAULT_BOT_AGENT),
            bot_agents=list(data.get("botAgents", [])),
            preset_layout=[tuple(p) for p in layout] if layout else None,
        )


@dataclass
class BotTurnReport:
    """What happened during one automated turn.

    Attributes:
        player_id: Seat that played
        agent_id: Strategy that ran
        status: Sandbox outcome (completed, timed_out, errored)
        applied: Intents that passed re-validation and were resolved
        skipped: Stale or invalid intents dropped
        battles: Results of the applied attacks
        reinforcement: End-of-turn reinforcement (None if the game ended)
        error: Sandbox error, if any
        logs: Lines the agent logged
    """

    player_id: int
    agent_id: str
    status: str
    applied: int = 0
    skipped: int = 0
    battles: List[BattleResult] = field(default_factory=list)
    reinforcement: Optional[ReinforcementResult] = None
    error: Optional[str] = None
    logs: List[str] = field(default_factory=list)


class MatchEngine:
    """Authoritative state and turn flow for one match at a time."""

    def __init__(
        self,
        rng: Optional[GameRNG] = None,
        events: Optional[EventBus] = None,
        sandbox: Optional[AgentSandbox] = None,
        repository: Optional[AgentRepository] = None,
    ):
        self.rng = rng or GameRNG()
        self.events = events or EventBus()
        self.repository = repository or (sandbox.repository if sandbox else None) or AgentRepository()
        self.sandbox = sandbox or AgentSandbox(self.repository)
        self.combat = CombatResolver(self.rng)

        self.settings: Optional[MatchSettings] = None
        self.board: Optional[Board] = None
        self.players: List[Player] = []
        self.current_index = 0
        self.turn = 1
        self.game_over = False
        self.winner: Optional[int] = None

    # Setup

    def _reset(self) -> None:
        self.combat = CombatResolver(self.rng)
        self.current_index = 0
        self.turn = 1
        self.game_over = False
        self.winner = None

    def start(self, settings: MatchSettings) -> None:
        """Create the roster, generate the board and begin turn 1.

        Humans are created first, then bots; the roster is then shuffled so
        seat order (and the starting player) is random.
        """
        self._reset()
        self.settings = settings

        players = [
            Player(id=i, is_bot=False, color=HUMAN_COLORS[i % len(HUMAN_COLORS)])
            for i in range(settings.humans)
        ]
        for i in range(settings.bots):
            players.append(
                Player(
                    id=settings.humans + i,
                    is_bot=True,
                    color=BOT_COLORS[i % len(BOT_COLORS)],
                    agent_id=settings.agent_for_bot(i),
                )
            )
        self.rng.shuffle(players)
        self.players = players

        self.board = generate_board(
            settings.width,
            settings.height,
            self.players,
            settings.max_dice,
            settings.map_style,
            self.rng,
            preset_layout=settings.preset_layout,
        )
        apply_game_mode(settings.game_mode, self.board, self.players, self.rng)

        logger.info(
            f"Match started: {settings.width}x{settings.height} {settings.map_style}/{settings.game_mode}, "
            f"seats {[p.id for p in self.players]}"
        )
        self._begin()

    def load_scenario(self, level: ScenarioLevel) -> None:
        """Start a match from a fixed level.

        ``scenario`` levels are applied verbatim. ``map`` levels only supply
        the playable layout; ownership and dice are dealt as usual.
        """
        self._reset()
        self.players = [
            Player(
                id=p.id,
                is_bot=p.is_bot,
                color=p.color,
                stored_dice=p.stored_dice,
                name=p.name,
                agent_id=(p.agent_id or DEFAULT_BOT_AGENT) if p.is_bot else None,
            )
            for p in level.players
        ]
        humans = sum(1 for p in self.players if not p.is_bot)
        layout = [(t.x, t.y) for t in level.tiles]
        self.settings = MatchSettings(
            width=level.width,
            height=level.height,
            humans=humans,
            bots=len(self.players) - humans,
            max_dice=level.max_dice,
            dice_sides=level.dice_sides,
            map_style="preset",
            game_mode="classic",
            preset_layout=layout,
        )

        if level.type == "map":
            self.board = generate_board(
                level.width, level.height, self.players, level.max_dice, "preset", self.rng, preset_layout=layout
            )
        else:
            self.board = Board(width=level.width, height=level.height, max_dice=level.max_dice)
            for t in level.tiles:
                self.board.tiles[self.board.index(t.x, t.y)] = Tile(owner=t.owner, dice=t.dice or 1, blocked=False)

        logger.info(f"Scenario loaded: {level.name or level.id or 'unnamed'} ({level.width}x{level.height})")
        self._begin()

    def _begin(self) -> None:
        self.events.publish(
            GameStarted(
                player_ids=[p.id for p in self.players],
                width=self.board.width,
                height=self.board.height,
                game_mode=self.settings.game_mode,
                map_style=self.settings.map_style,
            )
        )
        self.check_win_condition()
        if self.game_over:
            return
        if not self.current_player.alive:
            self._advance()
        self._start_turn()

    # Queries

    @property
    def current_player(self) -> Player:
        return self.players[self.current_index]

    @property
    def dice_sides(self) -> int:
        return self.settings.dice_sides if self.settings else DEFAULT_DICE_SIDES

    @property
    def history(self) -> List[BattleResult]:
        return self.combat.history

    def get_player(self, player_id: int) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def player_stats(self) -> List[Dict[str, Any]]:
        stats = []
        for p in self.players:
            owned = self.board.owned_positions(p.id) if self.board else []
            stats.append(
                {
                    "id": p.id,
                    "name": p.name,
                    "color": p.color,
                    "isBot": p.is_bot,
                    "agentId": p.agent_id,
                    "alive": p.alive,
                    "tileCount": len(owned),
                    "totalDice": self.board.total_dice(p.id) if self.board else 0,
                    "connectedTiles": largest_connected_region(self.board, p.id) if owned else 0,
                    "storedDice": p.stored_dice,
                }
            )
        return stats

    def snapshot(self) -> Dict[str, Any]:
        """Complete, JSON-compatible view of the match."""
        if self.board is None:
            raise GameOverError("No match in progress")
        return {
            "turn": self.turn,
            "currentPlayerId": self.current_player.id,
            "gameOver": self.game_over,
            "winnerId": self.winner,
            "width": self.board.width,
            "height": self.board.height,
            "maxDice": self.board.max_dice,
            "diceSides": self.dice_sides,
            "settings": self.settings.to_dict(),
            "players": [
                {
                    "id": p.id,
                    "name": p.name,
                    "isBot": p.is_bot,
                    "color": p.color,
                    "alive": p.alive,
                    "storedDice": p.stored_dice,
                    "agentId": p.agent_id,
                }
                for p in self.players
            ],
            "tiles": [
                {"x": x, "y": y, "owner": t.owner, "dice": t.dice}
                for x, y, t in self.board.positions()
                if not t.blocked
            ],
        }

    # Moves

    def _require_active(self) -> None:
        if self.board is None:
            raise GameOverError("No match in progress")
        if self.game_over:
            raise GameOverError("The match is over")

    def attack(self, from_pos: Position, to_pos: Position) -> BattleResult:
        """Attack for the current player.

        Raises:
            GameOverError: If the match is over
            InvalidAttackError: If the attack is not legal (board untouched)
        """
        self._require_active()
        result = self.combat.resolve_attack(
            self.board, self.current_player.id, self.dice_sides, tuple(from_pos), tuple(to_pos)
        )
        self.events.publish(AttackResolved(turn=self.turn, result=result))
        self.check_win_condition()
        return result

    def end_turn(self) -> ReinforcementResult:
        """Reinforce the current player and pass to the next living one.

        Raises:
            GameOverError: If the match is over
        """
        self._require_active()
        player = self.current_player
        result = distribute_reinforcements(self.board, player, self.rng)
        self.events.publish(ReinforcementsApplied(turn=self.turn, result=result))

        self._advance()
        self.turn += 1
        self._start_turn()
        return result

    def _advance(self) -> None:
        for _ in range(len(self.players)):
            self.current_index = (self.current_index + 1) % len(self.players)
            if self.current_player.alive:
                return
        self._finish(None, "no_players")

    def _start_turn(self) -> None:
        if self.game_over:
            return
        player = self.current_player
        logger.debug(f"Turn {self.turn}: player {player.id}{' (bot)' if player.is_bot else ''}")
        self.events.publish(TurnStarted(turn=self.turn, player_id=player.id, is_bot=player.is_bot))

    def check_win_condition(self) -> Optional[int]:
        """Eliminate players with no tiles and detect a winner.

        Returns:
            Winner id once a single owner remains, otherwise None
        """
        owners = self.board.owners()
        for player in self.players:
            if player.alive and player.id not in owners:
                player.alive = False
                logger.info(f"Player {player.id} eliminated on turn {self.turn}")
                self.events.publish(PlayerEliminated(turn=self.turn, player_id=player.id))

        if not self.game_over and len(owners) <= 1:
            self._finish(next(iter(owners), None), "conquest")
        return self.winner

    def _finish(self, winner: Optional[int], reason: str) -> None:
        self.game_over = True
        self.winner = winner
        logger.info(f"Game over on turn {self.turn}: winner {winner} ({reason})")
        self.events.publish(GameOver(turn=self.turn, winner_id=winner, reason=reason))

    # Automated play

    def _agent_for(self, player: Player):
        agent = self.repository.get(player.agent_id or DEFAULT_BOT_AGENT)
        if agent is None:
            logger.warning(f"Unknown agent '{player.agent_id}' for player {player.id}, using {DEFAULT_BOT_AGENT}")
            agent = BUILTIN_AGENTS[DEFAULT_BOT_AGENT]
        return agent

    async def play_bot_turn(self) -> BotTurnReport:
        """Run the current bot's agent and replay its intents.

        Intents are re-validated against the real board one by one; stale
        ones are skipped. Replay stops at the first end-turn intent, then
        the turn is ended normally.

        Raises:
            GameOverError: If the match is over
            ValueError: If the current player is not a bot
        """
        self._require_active()
        player = self.current_player
        if not player.is_bot:
            raise ValueError(f"Player {player.id} is not a bot")

        agent = self._agent_for(player)
        outcome = await self.sandbox.take_turn(
            agent, self.board, player, players=self.players, turn=self.turn, dice_sides=self.dice_sides
        )

        report = BotTurnReport(
            player_id=player.id,
            agent_id=agent.id,
            status=outcome.status.value,
            error=outcome.error,
            logs=list(outcome.logs),
        )
        for intent in outcome.intents:
            if self.game_over or isinstance(intent, EndTurnIntent):
                break
            if not isinstance(intent, AttackIntent):
                continue
            try:
                report.battles.append(self.attack(intent.from_pos, intent.to_pos))
                report.applied += 1
            except InvalidAttackError as e:
                report.skipped += 1
                logger.debug(f"Skipping stale intent from {agent.id}: {e}")
        self.sandbox.mark_applied()

        self.events.publish(
            AgentTurnFinished(
                turn=self.turn,
                player_id=player.id,
                agent_id=agent.id,
                status=report.status,
                applied=report.applied,
                skipped=report.skipped,
                error=report.error,
                logs=report.logs,
            )
        )
        if not self.game_over:
            report.reinforcement = self.end_turn()
        return report

    async def run(self, max_turns: int = MAX_TURNS) -> Optional[int]:
        """Play automated seats until the match ends or a human must move.

        Reaching ``max_turns`` ends the match without a winner.

        Returns:
            Winner id, or None
        """
        while not self.game_over:
            if self.turn > max_turns:
                self._finish(None, "turn_limit")
                break
            if not self.current_player.is_bot:
                break
            await self.play_bot_turn()
        return self.winner
