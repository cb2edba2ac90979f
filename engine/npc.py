"""Enemy AI: chase the player when reachable, otherwise walk a patrol route."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from engine.budget import drop_occupied_goal, truncate_path
from engine.costs import MovementMode, path_cost
from engine.grid import path_to_adjacent, walkable_for
from engine.pathfinding import find_path

if TYPE_CHECKING:
    from models.characters import Actor
    from models.game_state import GameState

logger = logging.getLogger(__name__)


def sync_patrol(enemy: Actor) -> bool:
    """Advance the patrol index if the enemy stands on its current patrol point.

    Returns:
        True if the index advanced.
    """
    if not enemy.patrol:
        return False
    if enemy.tile() != tuple(enemy.patrol[enemy.patrol_index]):
        return False
    enemy.patrol_index = (enemy.patrol_index + 1) % len(enemy.patrol)
    return True


def _chase_path(
    game_state: GameState,
    enemy: Actor,
    mode: MovementMode,
) -> list[tuple[int, int]] | None:
    player = game_state.player
    if not player.is_active:
        return None
    # Aim beside the player: a diagonal approach in 8-way mode is out of reach
    path = path_to_adjacent(game_state, enemy, player, mode)
    if path is None:
        return None
    if enemy.sight_range is not None and path_cost(path) > enemy.sight_range:
        return None
    return path


def _patrol_path(
    game_state: GameState,
    enemy: Actor,
    mode: MovementMode,
) -> list[tuple[int, int]] | None:
    if not enemy.patrol:
        return None
    sync_patrol(enemy)
    start = enemy.tile()
    goal = tuple(enemy.patrol[enemy.patrol_index])
    return find_path(start[0], start[1], goal[0], goal[1], walkable_for(game_state, enemy), mode)


def plan_enemy_move(
    game_state: GameState,
    enemy: Actor,
    mode: MovementMode = MovementMode.FOUR_WAY,
) -> list[tuple[int, int]] | None:
    """Decide where an enemy walks this turn.

    Chases the player when a path exists (and is within sight range),
    otherwise heads for the next patrol point.  The path is cut to the
    enemy's movement points and never ends on the player's tile.

    Args:
        game_state: Current game state.
        enemy: The enemy whose turn it is.
        mode: Neighbor topology.

    Returns:
        A path of at least two tiles, or None if the enemy stays put.
    """
    path = _chase_path(game_state, enemy, mode)
    intent = "chase"
    if path is None:
        path = _patrol_path(game_state, enemy, mode)
        intent = "patrol"
    if path is None:
        logger.debug("%s has nowhere to go", enemy.name)
        return None

    path = truncate_path(path, enemy.move_points)
    player = game_state.player
    if player.is_active:
        path = drop_occupied_goal(path, player.tile())
    if len(path) < 2:
        return None

    logger.debug("%s plans to %s along %s", enemy.name, intent, path)
    return path
