"""FastAPI REST interface: one shared ban-chess game that peers keep in sync."""

import logging
import threading
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from banchess.config import CONFIG
from banchess.core.errors import NotationError, SearchExhaustedError
from banchess.core.game import BanChess
from banchess.core.notation import serialize_action
from banchess.core.search import SearchEngine
from banchess.core.types import SyncState

logging.basicConfig(level=CONFIG.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=CONFIG.api.title, version="1.0.0")

# Shared game and engine, each guarded by its own lock. A search holds only
# the engine lock, so the game stays available while it runs.
engine = SearchEngine(depth=CONFIG.api.search_depth or CONFIG.search.max_depth)
game = BanChess()
_game_lock = threading.Lock()
_engine_lock = threading.Lock()


class FenRequest(BaseModel):
    fen: str


class ActionRequest(BaseModel):
    action: str  # BCN, e.g. "b:e2e4" or "m:d2d4"


class SyncRequest(BaseModel):
    fen: str
    ply: int
    lastAction: Optional[str] = None


class SearchRequest(BaseModel):
    depth: Optional[int] = None
    timeLimitMs: Optional[int] = None


def _state():
    return {
        "fen": game.fen(),
        "ply": game.ply,
        "lastAction": game.last_action_serialized(),
        "activePlayer": "white" if game.active_player else "black",
        "actionType": game.action_type.value,
        "legalActions": [serialize_action(a) for a in game.legal_actions()],
        "gameOver": game.game_over(),
        "result": game.result(),
    }


@app.get("/state")
def get_state():
    with _game_lock:
        return _state()


@app.get("/pgn")
def get_pgn():
    with _game_lock:
        return {"pgn": game.pgn()}


@app.post("/action")
def play_action(req: ActionRequest):
    with _game_lock:
        result = game.play_serialized_action(req.action)
        if not result.success:
            raise HTTPException(status_code=400, detail=result.error)
        return {"san": result.san, "sync": game.sync_state().to_dict(), "state": _state()}


@app.post("/position")
def set_position(req: FenRequest):
    with _game_lock:
        try:
            game.load_fen(req.fen)
        except NotationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state()


@app.post("/sync")
def load_sync(req: SyncRequest):
    with _game_lock:
        try:
            game.load_sync_state(SyncState(fen=req.fen, ply=req.ply, last_action=req.lastAction))
        except NotationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return game.sync_state().to_dict()


@app.post("/search")
def search_action(req: SearchRequest = SearchRequest()):
    with _game_lock:
        if game.game_over():
            raise HTTPException(status_code=400, detail="Game is already over")
        search_game = game.clone()
    depth = req.depth or CONFIG.api.search_depth or CONFIG.search.max_depth

    try:
        with _engine_lock:
            result = engine.search(search_game, req.timeLimitMs, depth=depth)
    except SearchExhaustedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("search %s -> %s", search_game.fen(), result.best_action)
    return {
        "bestAction": serialize_action(result.best_action),
        "score": result.score,
        "depth": result.depth,
        "nodes": result.nodes,
        "pv": [serialize_action(a) for a in result.pv],
        "fen": search_game.fen(),
    }


@app.post("/reset")
def reset_game():
    with _game_lock:
        game.reset()
        state = _state()
    with _engine_lock:
        engine.tt.clear()
    return state
