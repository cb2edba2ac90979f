"""FastAPI app entry point for Mini Medieval Tactics."""

import logging

from fastapi import FastAPI

from api.game import router as game_router
from api.ws import router as ws_router
from config import GAME_ID, GAME_NAME, INITIAL_MAP, LOG_LEVEL
from engine.turns import create_game

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=GAME_NAME,
    description="A headless turn-based tactics engine for a tile-grid game",
    version="0.1.0",
)

app.state.game = create_game(GAME_ID, INITIAL_MAP)

app.include_router(game_router, prefix="/game", tags=["Game"])
app.include_router(ws_router, prefix="/game", tags=["WebSocket"])


@app.get("/")
def root() -> dict:
    """Root endpoint returning server info."""
    return {"name": GAME_NAME, "version": "0.1.0", "status": "running"}


@app.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"healthy": True}
