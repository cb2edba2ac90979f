"""Built-in map layouts.

Each map is an ASCII layout read row by row (row index = y):

    #  wall        ~  water       ^  stone
    .  open        >  exit        P  player spawn
    E  enemy spawn (enemies are declared in reading order)

Spawn and exit tiles are open ground.
"""

from __future__ import annotations

from pydantic import BaseModel

from engine.grid import create_grid
from models.game_state import GridCell

_TERRAIN = {
    "#": "wall",
    "~": "water",
    "^": "stone",
    ".": "open",
    ">": "exit",
    "P": "open",
    "E": "open",
}


class MapDefinition(BaseModel):
    """A map layout plus the data the layout can't express."""
    name: str
    layout: list[str]
    exit_target: str | None = None
    patrols: list[list[tuple[int, int]]] = []  # Per enemy, in declaration order


class LoadedMap(BaseModel):
    """A parsed map ready to be turned into a game."""
    name: str
    grid: list[list[GridCell]]
    player_spawn: tuple[int, int]
    enemy_spawns: list[tuple[int, int]]
    patrols: list[list[tuple[int, int]]]


MAPS: dict[str, MapDefinition] = {
    "forest-0": MapDefinition(
        name="forest-0",
        layout=[
            "####################",
            "#.....#............#",
            "#.P...#............#",
            "#.....#...~~~......#",
            "#.........~~~......#",
            "#...^..........#...#",
            "#...^^.........#...#",
            "#..........E...#...#",
            "#..................#",
            "#..................>",
            "#....#........^....#",
            "#....#.......^^....#",
            "#....#.............#",
            "#.........E........#",
            "####################",
        ],
        exit_target="forest-1",
        patrols=[
            [(11, 7), (11, 9), (14, 9)],
            [(10, 13), (16, 13)],
        ],
    ),
    "forest-1": MapDefinition(
        name="forest-1",
        layout=[
            "############",
            "#P.........#",
            "#..~~......#",
            ">..~~...E..#",
            "#..........#",
            "#.....^....#",
            "#.......E..#",
            "############",
        ],
        exit_target="forest-0",
    ),
}


def load_map(name: str) -> LoadedMap:
    """Parse a built-in map.

    Args:
        name: Key in MAPS.

    Returns:
        The parsed LoadedMap.

    Raises:
        ValueError: If the map is unknown or malformed.
    """
    definition = MAPS.get(name)
    if definition is None:
        raise ValueError(f"Unknown map '{name}'")

    layout = definition.layout
    width = len(layout[0])
    if any(len(row) != width for row in layout):
        raise ValueError(f"Map '{name}' has rows of different widths")

    grid = create_grid(width, len(layout))
    player_spawn: tuple[int, int] | None = None
    enemy_spawns: list[tuple[int, int]] = []

    for y, row in enumerate(layout):
        for x, symbol in enumerate(row):
            terrain = _TERRAIN.get(symbol)
            if terrain is None:
                raise ValueError(f"Map '{name}' has unknown symbol {symbol!r} at ({x}, {y})")
            cell = grid[y][x]
            cell.terrain = terrain
            if terrain == "exit":
                cell.exit_target = definition.exit_target
            if symbol == "P":
                player_spawn = (x, y)
            elif symbol == "E":
                enemy_spawns.append((x, y))

    if player_spawn is None:
        raise ValueError(f"Map '{name}' has no player spawn")

    return LoadedMap(
        name=name,
        grid=grid,
        player_spawn=player_spawn,
        enemy_spawns=enemy_spawns,
        patrols=definition.patrols,
    )
