"""FastAPI server for Dicy matches.

Provides an HTTP/WebSocket API so humans can play against sandboxed bots.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from ..agent.registry import AgentRepository
from ..engine.combat import InvalidAttackError
from ..engine.match import GameOverError, MatchSettings
from ..engine.probability import precompute_tables
from .schemas.requests import AttackRequest, CreateMatchRequest
from .schemas.responses import (
    AgentInfo,
    AgentListResponse,
    AttackResponse,
    BotTurnResponse,
    CreateMatchResponse,
    EndTurnResponse,
    MatchStateResponse,
)
from .session import MatchSession, MatchSessionManager, report_to_dict

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_repository() -> AgentRepository:
    """Agent repository backed by DICY_AGENTS_FILE, or in memory if unset."""
    path = os.environ.get("DICY_AGENTS_FILE")
    return AgentRepository(Path(path) if path else None)


# Global session manager
sessions = MatchSessionManager(create_repository())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    logger.info("Dicy server starting...")
    precompute_tables()
    yield
    logger.info("Dicy server shutting down...")
    await sessions.cleanup_all()


app = FastAPI(
    title="Dicy API",
    description="Web API for dice-conquest matches between humans and sandboxed agents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_session(match_id: str) -> MatchSession:
    session = sessions.get(match_id)
    if not session:
        raise HTTPException(status_code=404, detail="Match not found")
    return session


# ============================================
# API ENDPOINTS
# ============================================


@app.get("/api")
async def api_root():
    """API root endpoint - server health check."""
    return {
        "service": "Dicy",
        "status": "operational",
        "activeMatches": len(sessions.sessions),
    }


@app.post("/api/matches", response_model=CreateMatchResponse)
async def create_match(request: CreateMatchRequest):
    """Create a match from settings, or from a level record.

    Example:
        POST /api/matches
        {"width": 8, "height": 8, "humans": 1, "bots": 3, "gameMode": "madness", "seed": 42}
    """
    try:
        settings = None
        if request.level is None:
            settings = MatchSettings(
                width=request.width,
                height=request.height,
                humans=request.humans,
                bots=request.bots,
                max_dice=request.maxDice,
                dice_sides=request.diceSides,
                map_style=request.mapStyle,
                game_mode=request.gameMode,
                bot_agent=request.botAgent,
            )
        session = sessions.create_session(settings=settings, level=request.level, seed=request.seed)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid level: {e}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await session.flush()
    return CreateMatchResponse(matchId=session.id, seed=session.seed, state=session.get_state())


@app.get("/api/matches/{match_id}/state", response_model=MatchStateResponse)
async def get_match_state(match_id: str):
    session = get_session(match_id)
    engine = session.engine
    return MatchStateResponse(
        matchId=match_id,
        turn=engine.turn,
        currentPlayerId=engine.current_player.id,
        gameOver=engine.game_over,
        winnerId=engine.winner,
        state=session.get_state(),
        stats=engine.player_stats(),
    )


@app.post("/api/matches/{match_id}/attack", response_model=AttackResponse)
async def attack(match_id: str, request: AttackRequest):
    """Attack on behalf of the current (human) player.

    Rejected attacks return 400 with the reason code and leave the board unchanged.
    """
    session = get_session(match_id)
    engine = session.engine
    if not engine.game_over and engine.current_player.is_bot:
        raise HTTPException(status_code=400, detail="It is a bot's turn")

    try:
        result = engine.attack(request.from_pos, request.to_pos)
    except InvalidAttackError as e:
        logger.info(f"Match {match_id}: rejected attack {e.from_pos}->{e.to_pos} ({e.reason.value})")
        raise HTTPException(status_code=400, detail={"reason": e.reason.value, "message": str(e)})
    except GameOverError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await session.flush()
    return AttackResponse(result=result.to_dict(), gameOver=engine.game_over, winnerId=engine.winner)


@app.post("/api/matches/{match_id}/end-turn", response_model=EndTurnResponse)
async def end_turn(match_id: str):
    session = get_session(match_id)
    engine = session.engine
    if not engine.game_over and engine.current_player.is_bot:
        raise HTTPException(status_code=400, detail="It is a bot's turn")

    try:
        result = engine.end_turn()
    except GameOverError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await session.flush()
    return EndTurnResponse(
        reinforcement=result.to_dict(),
        turn=engine.turn,
        currentPlayerId=engine.current_player.id,
        gameOver=engine.game_over,
    )


@app.post("/api/matches/{match_id}/bot-turn", response_model=BotTurnResponse)
async def bot_turn(match_id: str, until_human: bool = False):
    """Play the current bot's turn in its sandbox.

    With ``until_human=true`` bots keep playing until a human must move or
    the match ends. Agent faults never fail the request; they are reported
    per turn.
    """
    session = get_session(match_id)
    engine = session.engine
    if engine.game_over:
        raise HTTPException(status_code=400, detail="The match is over")
    if not engine.current_player.is_bot:
        raise HTTPException(status_code=400, detail="It is a human's turn")

    reports = await session.play_bots(until_human=until_human)
    await session.flush()
    return BotTurnResponse(
        reports=[report_to_dict(r) for r in reports],
        turn=engine.turn,
        currentPlayerId=engine.current_player.id,
        gameOver=engine.game_over,
        winnerId=engine.winner,
    )


@app.delete("/api/matches/{match_id}")
async def delete_match(match_id: str):
    if sessions.delete(match_id):
        return {"message": f"Match {match_id} deleted"}
    raise HTTPException(status_code=404, detail="Match not found")


@app.get("/api/agents", response_model=AgentListResponse)
async def list_agents():
    return AgentListResponse(
        agents=[
            AgentInfo(id=a.id, name=a.name, description=a.description, builtin=a.builtin)
            for a in sessions.repository.list_agents()
        ]
    )


# ============================================
# WEBSOCKET ENDPOINT
# ============================================


@app.websocket("/ws/matches/{match_id}")
async def websocket_endpoint(websocket: WebSocket, match_id: str):
    """WebSocket connection for live match events.

    Clients receive CONNECTED with the current state, then every domain event
    (game_started, turn_started, attack_resolved and so on) as it is flushed.
    """
    session = sessions.get(match_id)
    if not session:
        await websocket.close(code=1008, reason="Match not found")
        return

    await websocket.accept()
    session.add_connection(websocket)

    try:
        await websocket.send_json(
            {"type": "CONNECTED", "matchId": match_id, "state": session.get_state()}
        )
        while True:
            data = await websocket.receive_json()
            if data.get("type") == "PING":
                await websocket.send_json({"type": "PONG"})
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected from match {match_id}")
    except Exception as e:
        logger.error(f"WebSocket error in match {match_id}: {e}", exc_info=True)
    finally:
        session.remove_connection(websocket)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
