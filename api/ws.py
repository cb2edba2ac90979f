"""WebSocket endpoint for real-time turn notifications."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from models.game_state import GameState, TurnHistoryEntry

logger = logging.getLogger(__name__)

router = APIRouter()

# Connected renderer/input clients
connections: list[WebSocket] = []


async def broadcast(message: dict[str, Any]) -> None:
    """Push one turn notification to every connected client.

    Clients whose socket has gone away are dropped from ``connections``.
    """
    for ws in list(connections):
        try:
            await ws.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Dropping WebSocket client: %s", exc)
            if ws in connections:
                connections.remove(ws)


async def notify_history(entries: Iterable[TurnHistoryEntry]) -> None:
    """Notify all clients of turn history entries, in order."""
    for entry in entries:
        await broadcast({
            "type": "action_result",
            **entry.model_dump(mode="json"),
        })


async def notify_turn_start(game_state: GameState) -> None:
    """Notify all clients whose turn it is."""
    await broadcast({
        "type": "turn_start",
        "current_turn": game_state.turn.current_turn.value,
        "round_number": game_state.turn.round_number,
        "status": game_state.status.value,
    })


async def notify_map_exit(map_name: str) -> None:
    """Notify all clients that a new map has been loaded."""
    await broadcast({
        "type": "map_exit",
        "map_name": map_name,
    })


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time turn notifications."""
    await websocket.accept()
    connections.append(websocket)

    try:
        game_state = websocket.app.state.game
        await websocket.send_json({
            "type": "connected",
            "map_name": game_state.map_name,
            "current_turn": game_state.turn.current_turn.value,
        })

        # Inbound messages are ignored; input goes through POST /game/action
        async for _ in websocket.iter_text():
            pass
    finally:
        if websocket in connections:
            connections.remove(websocket)
