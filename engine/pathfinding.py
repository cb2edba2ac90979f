"""A* pathfinding over the tile grid."""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from engine.costs import MovementMode, heuristic, neighbor_offsets, step_cost

logger = logging.getLogger(__name__)

IsWalkable = Callable[[int, int], bool]


@dataclass(slots=True)
class _Node:
    """Search node. Lives only for the duration of one find_path call."""
    x: int
    y: int
    g: float = 0.0
    h: float = 0.0
    f: float = 0.0
    parent: Optional[_Node] = None


def _reconstruct_path(node: _Node) -> list[tuple[int, int]]:
    path: list[tuple[int, int]] = []
    current: Optional[_Node] = node
    while current is not None:
        path.append((current.x, current.y))
        current = current.parent
    path.reverse()
    return path


def find_path(
    start_x: int,
    start_y: int,
    goal_x: int,
    goal_y: int,
    is_walkable: IsWalkable,
    mode: MovementMode = MovementMode.FOUR_WAY,
) -> list[tuple[int, int]] | None:
    """Find a minimal-cost path from start to goal.

    The start tile is never checked against ``is_walkable``; the goal tile is
    treated like any other, so an occupied goal yields no path.  Among nodes
    with equal ``f`` the one inserted first is expanded first, which makes the
    result reproducible for identical inputs.

    Args:
        start_x: Start column.
        start_y: Start row.
        goal_x: Goal column.
        goal_y: Goal row.
        is_walkable: Predicate ``(x, y) -> bool`` covering terrain, bounds and
            occupancy.
        mode: Neighbor topology.

    Returns:
        List of (x, y) tiles from start to goal inclusive, or None if the goal
        is unreachable.
    """
    goal = (goal_x, goal_y)
    offsets = neighbor_offsets(mode)
    counter = itertools.count()

    start = _Node(start_x, start_y)
    start.h = heuristic((start_x, start_y), goal, mode)
    start.f = start.h

    open_heap: list[tuple[float, int, _Node]] = [(start.f, next(counter), start)]
    open_nodes: dict[tuple[int, int], _Node] = {(start_x, start_y): start}
    closed: set[tuple[int, int]] = set()

    while open_heap:
        f, _, current = heapq.heappop(open_heap)
        coord = (current.x, current.y)
        # Skip heap entries superseded by a cheaper route
        if coord in closed or open_nodes.get(coord) is not current or f != current.f:
            continue

        if coord == goal:
            path = _reconstruct_path(current)
            logger.debug(
                "Path %s -> %s found: %d tiles, %d expanded",
                (start_x, start_y), goal, len(path), len(closed),
            )
            return path

        del open_nodes[coord]
        closed.add(coord)

        for dx, dy in offsets:
            nx, ny = current.x + dx, current.y + dy
            neighbor_coord = (nx, ny)
            if neighbor_coord in closed:
                continue
            if not is_walkable(nx, ny):
                continue

            tentative_g = current.g + step_cost(coord, neighbor_coord)
            existing = open_nodes.get(neighbor_coord)
            if existing is None:
                node = _Node(nx, ny, g=tentative_g, h=heuristic(neighbor_coord, goal, mode))
                node.f = node.g + node.h
                node.parent = current
                open_nodes[neighbor_coord] = node
                heapq.heappush(open_heap, (node.f, next(counter), node))
            elif tentative_g < existing.g:
                existing.g = tentative_g
                existing.f = existing.g + existing.h
                existing.parent = current
                heapq.heappush(open_heap, (existing.f, next(counter), existing))

    logger.debug("No path %s -> %s (%d expanded)", (start_x, start_y), goal, len(closed))
    return None
