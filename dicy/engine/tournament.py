"""Headless bot-only tournaments."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..agent.registry import AgentRepository
from ..sandbox.runner import AgentSandbox
from ..utils.rng import GameRNG
from .match import MatchEngine, MatchSettings

logger = logging.getLogger(__name__)

TOURNAMENT_MAX_TURNS = 2000


@dataclass
class TournamentResult:
    """Aggregate results of a tournament.

    Attributes:
        games: Games played
        wins: Wins per "<agent> <seat id>" label
        agent_wins: Wins per agent id
        draws: Games that hit the turn limit
        turns: Turn count of each game
    """

    games: int
    wins: Dict[str, int] = field(default_factory=dict)
    agent_wins: Dict[str, int] = field(default_factory=dict)
    draws: int = 0
    turns: List[int] = field(default_factory=list)

    def standings(self) -> List[tuple]:
        """(label, wins, percent) sorted by wins."""
        rows = sorted(self.wins.items(), key=lambda item: item[1], reverse=True)
        return [(label, wins, 100.0 * wins / self.games if self.games else 0.0) for label, wins in rows]


async def run_tournament(
    settings: MatchSettings,
    games: int,
    repository: Optional[AgentRepository] = None,
    seed: Optional[int] = None,
    max_turns: int = TOURNAMENT_MAX_TURNS,
    sandbox: Optional[AgentSandbox] = None,
    on_game: Optional[Callable[[int, MatchEngine], None]] = None,
) -> TournamentResult:
    """Play ``games`` bot-only matches and tally the winners.

    Args:
        settings: Match settings; ``humans`` must be 0
        games: Number of games
        repository: Agent repository (in-memory if None)
        seed: Seed for the first game; game ``i`` uses ``seed + i``
        max_turns: Turn limit per game (reaching it is a draw)
        sandbox: Sandbox to reuse across games
        on_game: Called after each game with (index, engine)

    Returns:
        TournamentResult

    Raises:
        ValueError: If the settings include human seats or fewer than 2 bots
    """
    if settings.humans:
        raise ValueError("Tournaments are bot-only")
    if settings.bots < 2:
        raise ValueError("Need at least 2 bots for a tournament")

    repository = repository or AgentRepository()
    sandbox = sandbox or AgentSandbox(repository)
    result = TournamentResult(games=games)
    wins: Counter = Counter()
    agent_wins: Counter = Counter()

    for i in range(games):
        rng = GameRNG(seed + i if seed is not None else None)
        engine = MatchEngine(rng=rng, sandbox=sandbox, repository=repository)
        engine.start(settings)
        winner = await engine.run(max_turns=max_turns)
        result.turns.append(engine.turn)

        if winner is None:
            result.draws += 1
        else:
            player = engine.get_player(winner)
            wins[f"{player.agent_id} {winner}"] += 1
            agent_wins[player.agent_id] += 1

        logger.info(f"Tournament game {i + 1}/{games}: winner {winner} after {engine.turn} turns")
        if on_game:
            on_game(i, engine)

    result.wins = dict(wins)
    result.agent_wins = dict(agent_wins)
    return result
