"""Movement cost model shared by the pathfinder and the budget validator."""

from __future__ import annotations

import math
from enum import Enum
from typing import Sequence

ORTHOGONAL_COST = 1.0
DIAGONAL_COST = 1.414  # Fixed-precision sqrt(2); never use math.sqrt(2) for step costs

_ORTHOGONAL_OFFSETS = ((1, 0), (-1, 0), (0, 1), (0, -1))
_DIAGONAL_OFFSETS = ((1, 1), (1, -1), (-1, 1), (-1, -1))


class MovementMode(str, Enum):
    """Permitted neighbor topology for movement."""
    FOUR_WAY = "four_way"
    EIGHT_WAY = "eight_way"


def neighbor_offsets(mode: MovementMode) -> tuple[tuple[int, int], ...]:
    """Return the (dx, dy) offsets a mover may step by, in a fixed order.

    Orthogonal offsets always come first so that equal-cost searches expand
    them before diagonals.
    """
    if mode == MovementMode.EIGHT_WAY:
        return _ORTHOGONAL_OFFSETS + _DIAGONAL_OFFSETS
    return _ORTHOGONAL_OFFSETS


def is_valid_step(
    a: tuple[int, int],
    b: tuple[int, int],
    mode: MovementMode = MovementMode.FOUR_WAY,
) -> bool:
    """Check whether b is a single permitted step away from a."""
    return (b[0] - a[0], b[1] - a[1]) in neighbor_offsets(mode)


def step_cost(a: tuple[int, int], b: tuple[int, int]) -> float:
    """Cost of moving one step from a to b.

    Args:
        a: (x, y) of the tile being left.
        b: (x, y) of the tile being entered.

    Returns:
        ORTHOGONAL_COST or DIAGONAL_COST.

    Raises:
        ValueError: If the tiles are not a single step apart.
    """
    dx = abs(b[0] - a[0])
    dy = abs(b[1] - a[1])
    if (dx, dy) in ((1, 0), (0, 1)):
        return ORTHOGONAL_COST
    if (dx, dy) == (1, 1):
        return DIAGONAL_COST
    raise ValueError(f"Tiles {a} and {b} are not a single step apart")


def heuristic(
    a: tuple[int, int],
    b: tuple[int, int],
    mode: MovementMode = MovementMode.FOUR_WAY,
) -> float:
    """Estimate the remaining cost from a to b.

    Manhattan distance for 4-way movement, Euclidean distance for 8-way.
    """
    dx = abs(a[0] - b[0])
    dy = abs(a[1] - b[1])
    if mode == MovementMode.EIGHT_WAY:
        return math.sqrt(dx * dx + dy * dy)
    return float(dx + dy)


def path_cost(path: Sequence[tuple[int, int]]) -> float:
    """Total traversal cost of a path.

    Accumulates step costs in path order, the same way the pathfinder builds
    up its g values, so both agree exactly at floating-point boundaries.
    """
    total = 0.0
    for a, b in zip(path, path[1:]):
        total += step_cost(a, b)
    return total
