"""Path preview, action submission, state retrieval, and turn log endpoints."""

from fastapi import APIRouter, FastAPI, HTTPException, Request

from api.ws import notify_history, notify_map_exit, notify_turn_start
from config import GAME_ID, INITIAL_MAP
from engine.turns import (
    MapExitHandler,
    create_game,
    player_attack,
    player_move,
    player_skip,
    preview_player_path,
)
from models.actions import ActionRequest, ActionResult, ActionType, PathPreview, PathPreviewRequest
from models.game_state import GameState, GameStatus, TurnOwner

router = APIRouter()


def _get_game(request: Request) -> GameState:
    """Get the current game from app state."""
    return request.app.state.game


def _map_exit_handler(app: FastAPI) -> MapExitHandler:
    """Swap in a fresh game for the target map, keeping the protagonist."""

    async def handoff(game_state: GameState, map_name: str) -> None:
        app.state.game = create_game(game_state.game_id, map_name, player=game_state.player)
        await notify_map_exit(map_name)

    return handoff


@router.get("/state")
def get_game_state(request: Request) -> dict:
    """Get the current map, actors and turn state."""
    game_state = _get_game(request)
    turn = game_state.turn

    return {
        "game_id": game_state.game_id,
        "map_name": game_state.map_name,
        "status": game_state.status.value,
        "round_number": turn.round_number,
        "current_turn": turn.current_turn.value,
        "is_moving": turn.is_moving,
        "is_your_turn": (
            game_state.status == GameStatus.ACTIVE
            and turn.current_turn == TurnOwner.PLAYER
            and not turn.is_moving
        ),
        "player": game_state.player.model_dump(mode="json"),
        "enemies": [
            actor.model_dump(mode="json")
            for actor in game_state.actors.values()
            if not actor.is_player
        ],
        "grid": [[cell.terrain for cell in row] for row in game_state.grid],
        "pending_exit": game_state.pending_exit,
    }


@router.post("/path", response_model=PathPreview)
def preview_path(body: PathPreviewRequest, request: Request) -> PathPreview:
    """Preview the player's path to a tile and whether it fits the budget."""
    game_state = _get_game(request)
    return preview_player_path(game_state, body.goal)


@router.post("/action", response_model=ActionResult)
async def submit_action(action: ActionRequest, request: Request) -> ActionResult:
    """Submit the player's one action for this turn.

    The response returns once the enemy sweep has finished and it is the
    player's turn again.
    """
    game_state = _get_game(request)

    if game_state.status != GameStatus.ACTIVE:
        raise HTTPException(
            status_code=400,
            detail=f"Game is not active (status: {game_state.status.value})",
        )
    if game_state.turn.is_moving or game_state.turn.current_turn != TurnOwner.PLAYER:
        raise HTTPException(status_code=409, detail="It's not your turn")

    history_start = len(game_state.turn.turn_history)

    if action.action_type == ActionType.MOVE:
        goal = action.target_position
        if goal is None and action.target_id in game_state.actors:
            goal = game_state.actors[action.target_id].tile()
        if goal is None:
            raise HTTPException(status_code=400, detail="Move action requires a target_position")
        preview = preview_player_path(game_state, goal)
        if action.target_id is not None and preview.path is not None and len(preview.path) == 1:
            # Already beside the target: nothing to walk, just attack
            _, result = await player_attack(game_state, action.target_id)
        else:
            _, result = await player_move(
                game_state,
                preview.path,
                target_id=action.target_id,
                on_map_exit=_map_exit_handler(request.app),
            )
    elif action.action_type == ActionType.ATTACK:
        _, result = await player_attack(game_state, action.target_id)
    elif action.action_type == ActionType.SKIP_TURN:
        _, result = await player_skip(game_state)
    else:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported action type: {action.action_type.value}",
        )

    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)

    await notify_history(game_state.turn.turn_history[history_start:])
    await notify_turn_start(game_state)
    return result


@router.get("/history")
def get_turn_history(request: Request) -> list[dict]:
    """Get the turn log for the current map."""
    game_state = _get_game(request)
    return [entry.model_dump(mode="json") for entry in game_state.turn.turn_history]


@router.post("/reset")
def reset_game(request: Request) -> dict:
    """Start over on the initial map."""
    request.app.state.game = create_game(GAME_ID, INITIAL_MAP)
    return {"map_name": INITIAL_MAP}
