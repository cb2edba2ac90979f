"""2D grid, walkability, and adjacency logic for Mini Medieval Tactics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable

from config import TILE_SIZE
from engine.costs import MovementMode, path_cost
from engine.pathfinding import find_path
from models.game_state import GridCell

if TYPE_CHECKING:
    from models.characters import Actor
    from models.game_state import GameState

BLOCKING_TERRAIN = frozenset({"wall", "water", "stone"})

_ORTHOGONAL = ((1, 0), (-1, 0), (0, 1), (0, -1))


def create_grid(width: int, height: int) -> list[list[GridCell]]:
    """Initialize an empty grid of GridCells.

    Args:
        width: Number of columns.
        height: Number of rows.

    Returns:
        A 2D list indexed as grid[y][x].
    """
    return [
        [GridCell(x=x, y=y) for x in range(width)]
        for y in range(height)
    ]


def in_bounds(x: int, y: int, grid: list[list[GridCell]]) -> bool:
    """Check if coordinates are within grid bounds."""
    if not grid:
        return False
    return 0 <= y < len(grid) and 0 <= x < len(grid[0])


def is_terrain_walkable(x: int, y: int, grid: list[list[GridCell]]) -> bool:
    """Static collision only: in bounds and not blocking terrain."""
    if not in_bounds(x, y, grid):
        return False
    return grid[y][x].terrain not in BLOCKING_TERRAIN


def is_adjacent(a: Actor, b: Actor, tile_size: int = TILE_SIZE) -> bool:
    """Check if two actors stand on orthogonally adjacent tiles.

    Diagonal neighbors are never in melee range, even when 8-way movement
    is enabled.
    """
    ax, ay = a.tile(tile_size)
    bx, by = b.tile(tile_size)
    return abs(ax - bx) + abs(ay - by) == 1


def occupied_tiles(
    game_state: GameState,
    exclude: str | None = None,
) -> set[tuple[int, int]]:
    """Tiles held by active actors, optionally ignoring one actor."""
    return {
        actor.tile()
        for actor in game_state.actors.values()
        if actor.is_active and actor.id != exclude
    }


def actor_at(game_state: GameState, tile: tuple[int, int]) -> Actor | None:
    """The active actor standing on a tile, if any."""
    for actor in game_state.actors.values():
        if actor.is_active and actor.tile() == tuple(tile):
            return actor
    return None


def walkable_for(
    game_state: GameState,
    mover: Actor,
    passable: Iterable[tuple[int, int]] = (),
) -> Callable[[int, int], bool]:
    """Build the walkability predicate for one search by ``mover``.

    Terrain collision plus occupancy by other active actors.  Tiles listed in
    ``passable`` ignore occupancy (used when chasing onto the player's tile).
    The occupancy snapshot is taken once, so the predicate is stable for the
    duration of a search.
    """
    blocked = occupied_tiles(game_state, exclude=mover.id) - set(passable)
    grid = game_state.grid

    def is_walkable(x: int, y: int) -> bool:
        return is_terrain_walkable(x, y, grid) and (x, y) not in blocked

    return is_walkable


def path_to_adjacent(
    game_state: GameState,
    mover: Actor,
    target: Actor,
    mode: MovementMode = MovementMode.FOUR_WAY,
) -> list[tuple[int, int]] | None:
    """Cheapest path ending on a tile orthogonally adjacent to ``target``.

    Used when the target's own tile is occupied and so unreachable.  Ties go
    to the first neighbor in (right, left, down, up) order.
    """
    start = mover.tile()
    tx, ty = target.tile()
    is_walkable = walkable_for(game_state, mover)

    best: list[tuple[int, int]] | None = None
    best_cost = 0.0
    for dx, dy in _ORTHOGONAL:
        goal = (tx + dx, ty + dy)
        if goal == start:
            return [start]
        path = find_path(start[0], start[1], goal[0], goal[1], is_walkable, mode)
        if path is None:
            continue
        cost = path_cost(path)
        if best is None or cost < best_cost:
            best, best_cost = path, cost
    return best


def nearest_free_tile(
    game_state: GameState,
    mover: Actor,
    tile: tuple[int, int],
) -> tuple[int, int] | None:
    """Closest tile to ``tile`` that ``mover`` can stand on, in orthogonal steps.

    Spreads outward over open terrain only, so the result is never walled off
    from ``tile``.  Ties go to (right, left, down, up) order.

    Returns:
        ``tile`` itself if free, the nearest free tile otherwise, or None if
        every tile in that region is occupied.
    """
    is_free = walkable_for(game_state, mover)
    grid = game_state.grid
    start = tuple(tile)
    # BFS outward from the requested tile
    visited = {start}
    queue = [start]

    while queue:
        x, y = queue.pop(0)
        if is_free(x, y):
            return (x, y)
        for dx, dy in _ORTHOGONAL:
            neighbor = (x + dx, y + dy)
            if neighbor in visited or not is_terrain_walkable(neighbor[0], neighbor[1], grid):
                continue
            visited.add(neighbor)
            queue.append(neighbor)
    return None
