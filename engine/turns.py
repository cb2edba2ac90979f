"""Turn orchestration: player actions, the enemy sweep, and turn handoff.

Every operation takes the caller-owned GameState, mutates it, and returns it
together with an ActionResult.  Sequences suspend only at the Pacing points;
``turn.is_moving`` guards against a second action being accepted while one is
suspended.  Rejected requests never mutate state or touch the history.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from pydantic import BaseModel

from config import (
    ENEMY_DAMAGE,
    ENEMY_HEALTH,
    ENEMY_MAX_HEALTH,
    ENEMY_MOVE_POINTS,
    ENEMY_SIGHT_RANGE,
    INITIAL_MAP,
    MOVEMENT_MODE,
    PLAYER_DAMAGE,
    PLAYER_DEATH_POLICY,
    PLAYER_HEALTH,
    PLAYER_MAX_HEALTH,
    PLAYER_MOVE_POINTS,
)
from engine.budget import is_path_in_range
from engine.costs import MovementMode, is_valid_step, path_cost
from engine.grid import actor_at, is_adjacent, path_to_adjacent, walkable_for
from engine.maps import load_map
from engine.npc import plan_enemy_move, sync_patrol
from engine.pacing import Pacing
from engine.pathfinding import find_path
from engine.rules import apply_damage, resolve_death, validate_action
from models.actions import ActionResult, ActionType, PathPreview
from models.characters import Actor, ActorKind, ActorState, DeathPolicy
from models.game_state import GameState, GameStatus, TurnOwner

logger = logging.getLogger(__name__)

MapExitHandler = Callable[[GameState, str], Awaitable[None]]

# Keeps scheduled map-exit handoffs alive until they finish
_background_tasks: set[asyncio.Task] = set()


class TurnSettings(BaseModel):
    """Rules that vary per game rather than per action."""
    mode: MovementMode = MovementMode(MOVEMENT_MODE)
    death_policy: DeathPolicy = DeathPolicy(PLAYER_DEATH_POLICY)


# ---------------------------------------------------------------------------
# Game setup
# ---------------------------------------------------------------------------


def create_game(
    game_id: str,
    map_name: str = INITIAL_MAP,
    player: Actor | None = None,
) -> GameState:
    """Build a fresh game on a built-in map.

    Args:
        game_id: Unique identifier for the game.
        map_name: Key of the map to load.
        player: Protagonist carried over from a previous map.  Keeps its
            health; position and spawn move to the new map's spawn tile.

    Returns:
        A GameState with a new TurnState, player to move.
    """
    loaded = load_map(map_name)

    if player is None:
        player = Actor(
            id="player",
            name="Player",
            kind=ActorKind.PLAYER,
            health=PLAYER_HEALTH,
            max_health=PLAYER_MAX_HEALTH,
            damage=PLAYER_DAMAGE,
            move_points=PLAYER_MOVE_POINTS,
            base_move_points=PLAYER_MOVE_POINTS,
        )
    else:
        player = player.model_copy(deep=True)
    player.spawn = loaded.player_spawn
    player.place(loaded.player_spawn)
    player.state = ActorState.IDLE
    player.reset_move_points()

    actors: dict[str, Actor] = {player.id: player}
    for index, spawn in enumerate(loaded.enemy_spawns):
        enemy = Actor(
            id=f"enemy-{index + 1}",
            name=f"Orc {index + 1}",
            kind=ActorKind.ENEMY,
            health=ENEMY_HEALTH,
            max_health=ENEMY_MAX_HEALTH,
            damage=ENEMY_DAMAGE,
            move_points=ENEMY_MOVE_POINTS,
            base_move_points=ENEMY_MOVE_POINTS,
            spawn=spawn,
            patrol=loaded.patrols[index] if index < len(loaded.patrols) else [],
            sight_range=ENEMY_SIGHT_RANGE,
        )
        enemy.place(spawn)
        actors[enemy.id] = enemy

    logger.info("Game %s created on map %s with %d enemies", game_id, map_name, len(actors) - 1)
    return GameState(
        game_id=game_id,
        map_name=map_name,
        grid=loaded.grid,
        player_id=player.id,
        actors=actors,
    )


def preview_player_path(
    game_state: GameState,
    goal: tuple[int, int],
    settings: TurnSettings | None = None,
) -> PathPreview:
    """Path the player would walk to reach ``goal``, and whether it's affordable.

    If an active enemy stands on the goal the path ends beside it instead.
    """
    settings = settings or TurnSettings()
    player = game_state.player
    start = player.tile()
    is_walkable = walkable_for(game_state, player)
    path = find_path(start[0], start[1], goal[0], goal[1], is_walkable, settings.mode)
    if path is None:
        occupant = actor_at(game_state, goal)
        if occupant is not None and occupant is not player:
            path = path_to_adjacent(game_state, player, occupant, settings.mode)
    return PathPreview(
        path=path,
        cost=path_cost(path) if path is not None else None,
        in_range=is_path_in_range(path, player.move_points),
    )


# ---------------------------------------------------------------------------
# Shared sequences
# ---------------------------------------------------------------------------


def _reject(action_type: ActionType, error: str) -> ActionResult:
    logger.debug("Rejected %s: %s", action_type.value, error)
    return ActionResult(
        success=False,
        action_type=action_type,
        description=error,
        error=error,
    )


def _check_path(
    game_state: GameState,
    actor: Actor,
    path: Sequence[tuple[int, int]] | None,
    mode: MovementMode,
) -> tuple[bool, str]:
    """Check a submitted path is walkable from where the actor stands and affordable."""
    if not path:
        return False, "No path"
    tiles = [tuple(tile) for tile in path]
    if tiles[0] != actor.tile():
        return False, "Path must start on the actor's tile"
    if len(tiles) < 2:
        return False, "Path has no steps"
    for a, b in zip(tiles, tiles[1:]):
        if not is_valid_step(a, b, mode):
            return False, f"Invalid step {a} -> {b}"
    is_walkable = walkable_for(game_state, actor)
    for x, y in tiles[1:]:
        if not is_walkable(x, y):
            return False, f"Tile ({x}, {y}) is blocked"
    if not is_path_in_range(tiles, actor.move_points):
        return False, "Path exceeds movement points"
    return True, ""


async def _play_path(
    game_state: GameState,
    actor: Actor,
    path: list[tuple[int, int]],
    pacing: Pacing,
) -> None:
    """Walk an actor through every waypoint after the first, pausing per step."""
    game_state.turn.is_moving = True
    actor.state = ActorState.RUN
    for tile in path[1:]:
        actor.place(tile)
        await pacing.step()
    actor.state = ActorState.IDLE
    actor.move_points -= path_cost(path)
    game_state.turn.is_moving = False


async def _resolve_attack(
    game_state: GameState,
    attacker: Actor,
    defender: Actor,
    pacing: Pacing,
    settings: TurnSettings,
) -> ActionResult:
    """Play an attack, apply damage and death, then log it."""
    game_state.turn.is_moving = True
    attacker.state = ActorState.ATTACK
    defender.state = ActorState.HIT
    await pacing.attack()

    health_before = defender.health
    killed = apply_damage(attacker, defender)
    remaining = defender.health
    attacker.state = ActorState.IDLE
    defender.state = ActorState.IDLE

    if killed:
        defender.state = ActorState.DEAD
        await pacing.death()
        resolve_death(defender, settings.death_policy, game_state)
        if defender.is_player and not defender.is_active:
            game_state.status = GameStatus.GAME_OVER
            logger.info("Game %s is over", game_state.game_id)
    game_state.turn.is_moving = False

    dealt = health_before - remaining
    game_state.turn.record(
        attacker.id,
        ActionType.ATTACK,
        target=defender.id,
        position=attacker.tile(),
        damage=dealt,
        target_health=remaining,
        killed=killed,
    )

    description = f"{attacker.name} hits {defender.name} for {dealt}. {defender.name} has {remaining} HP remaining."
    if killed:
        description += f" {defender.name} has been slain!"
    return ActionResult(
        success=True,
        action_type=ActionType.ATTACK,
        description=description,
        damage_dealt=dealt,
        target_hp_remaining=remaining,
    )


def _check_tile_events(
    game_state: GameState,
    actor: Actor,
    on_map_exit: MapExitHandler | None,
) -> None:
    """Fire side effects of the tile the actor settled on.

    A map exit is logged and handed to ``on_map_exit`` as a background task;
    the turn carries on without waiting for it.
    """
    x, y = actor.tile()
    cell = game_state.grid[y][x]
    if cell.terrain != "exit" or cell.exit_target is None:
        return

    game_state.pending_exit = cell.exit_target
    game_state.turn.record(
        actor.id,
        ActionType.EXIT,
        position=(x, y),
        destination=cell.exit_target,
    )
    logger.info("%s reached the exit to %s", actor.name, cell.exit_target)

    if on_map_exit is not None:
        task = asyncio.get_running_loop().create_task(on_map_exit(game_state, cell.exit_target))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)


# ---------------------------------------------------------------------------
# Player turn
# ---------------------------------------------------------------------------


def start_player_turn(game_state: GameState) -> GameState:
    """Hand control to the player with a full movement budget."""
    game_state.turn.current_turn = TurnOwner.PLAYER
    game_state.player.reset_move_points()
    return game_state


async def player_move(
    game_state: GameState,
    path: Sequence[tuple[int, int]] | None,
    *,
    target_id: str | None = None,
    pacing: Pacing | None = None,
    settings: TurnSettings | None = None,
    on_map_exit: MapExitHandler | None = None,
) -> tuple[GameState, ActionResult]:
    """Walk the player along a previewed path, then end the turn.

    If ``target_id`` names an active actor adjacent to the destination, it is
    attacked once movement has finished.

    Args:
        game_state: Current game state.
        path: Path from the player's tile, as returned by the pathfinder.
        target_id: Optional actor to attack on arrival.
        pacing: Suspension delays.
        settings: Movement mode and death policy.
        on_map_exit: Called (not awaited) when the player lands on an exit.

    Returns:
        (updated_game_state, action_result) tuple.
    """
    pacing = pacing or Pacing()
    settings = settings or TurnSettings()
    player = game_state.player

    valid, error = validate_action(ActionType.MOVE, player, game_state)
    if valid:
        valid, error = _check_path(game_state, player, path, settings.mode)
    if not valid:
        return game_state, _reject(ActionType.MOVE, error)

    tiles = [tuple(tile) for tile in path]
    await _play_path(game_state, player, tiles, pacing)
    game_state.turn.record(player.id, ActionType.MOVE, path=tiles, position=player.tile())

    result = ActionResult(
        success=True,
        action_type=ActionType.MOVE,
        description=f"{player.name} moves to {player.tile()}.",
        movement_path=tiles,
    )

    if target_id is not None:
        target = game_state.actors.get(target_id)
        if (
            target is not None
            and target is not player
            and target.is_active
            and is_adjacent(player, target)
        ):
            attack_result = await _resolve_attack(game_state, player, target, pacing, settings)
            result.description += " " + attack_result.description
            result.damage_dealt = attack_result.damage_dealt
            result.target_hp_remaining = attack_result.target_hp_remaining

    _check_tile_events(game_state, player, on_map_exit)
    await end_player_turn(game_state, pacing=pacing, settings=settings)
    return game_state, result


async def player_attack(
    game_state: GameState,
    target_id: str | None,
    *,
    pacing: Pacing | None = None,
    settings: TurnSettings | None = None,
) -> tuple[GameState, ActionResult]:
    """Attack an adjacent actor, then end the turn."""
    pacing = pacing or Pacing()
    settings = settings or TurnSettings()
    player = game_state.player

    valid, error = validate_action(ActionType.ATTACK, player, game_state, target_id=target_id)
    if not valid:
        return game_state, _reject(ActionType.ATTACK, error)

    target = game_state.actors[target_id]
    result = await _resolve_attack(game_state, player, target, pacing, settings)
    await end_player_turn(game_state, pacing=pacing, settings=settings)
    return game_state, result


async def player_skip(
    game_state: GameState,
    *,
    pacing: Pacing | None = None,
    settings: TurnSettings | None = None,
) -> tuple[GameState, ActionResult]:
    """Pass the turn without acting."""
    pacing = pacing or Pacing()
    settings = settings or TurnSettings()
    player = game_state.player

    valid, error = validate_action(ActionType.SKIP_TURN, player, game_state)
    if not valid:
        return game_state, _reject(ActionType.SKIP_TURN, error)

    game_state.turn.record(player.id, ActionType.SKIP_TURN, position=player.tile())
    await end_player_turn(game_state, pacing=pacing, settings=settings)
    return game_state, ActionResult(
        success=True,
        action_type=ActionType.SKIP_TURN,
        description=f"{player.name} skips their turn.",
    )


async def end_player_turn(
    game_state: GameState,
    *,
    pacing: Pacing | None = None,
    settings: TurnSettings | None = None,
) -> GameState:
    """Close the player's turn, run every enemy, and give control back."""
    pacing = pacing or Pacing()
    settings = settings or TurnSettings()

    game_state.turn.record(game_state.player_id, ActionType.END_TURN)
    game_state.turn.current_turn = TurnOwner.ENEMIES
    logger.info("Round %d: enemies' turn", game_state.turn.round_number)

    await pacing.handoff()
    await run_enemy_sweep(game_state, pacing=pacing, settings=settings)

    game_state.turn.round_number += 1
    start_player_turn(game_state)
    logger.info("Round %d: player's turn", game_state.turn.round_number)
    return game_state


# ---------------------------------------------------------------------------
# Enemy turn
# ---------------------------------------------------------------------------


async def run_enemy_sweep(
    game_state: GameState,
    *,
    pacing: Pacing | None = None,
    settings: TurnSettings | None = None,
) -> GameState:
    """Give each active enemy one turn, in declaration order, one at a time."""
    pacing = pacing or Pacing()
    settings = settings or TurnSettings()

    for enemy in game_state.enemies():
        if game_state.status == GameStatus.GAME_OVER:
            break
        if not enemy.is_active:
            continue
        await _run_enemy_turn(game_state, enemy, pacing, settings)
    return game_state


async def _run_enemy_turn(
    game_state: GameState,
    enemy: Actor,
    pacing: Pacing,
    settings: TurnSettings,
) -> None:
    """Attack if adjacent; otherwise move (chase or patrol) and attack if now adjacent."""
    enemy.reset_move_points()
    player = game_state.player

    valid, _ = validate_action(ActionType.ATTACK, enemy, game_state, target_id=player.id)
    if valid:
        await _resolve_attack(game_state, enemy, player, pacing, settings)
        return

    path = plan_enemy_move(game_state, enemy, settings.mode)
    if path is None:
        return

    await _play_path(game_state, enemy, path, pacing)
    game_state.turn.record(enemy.id, ActionType.MOVE, path=path, position=enemy.tile())
    sync_patrol(enemy)

    valid, _ = validate_action(ActionType.ATTACK, enemy, game_state, target_id=player.id)
    if valid:
        await _resolve_attack(game_state, enemy, player, pacing, settings)
