"""Movement budget checks for paths produced by the pathfinder."""

from __future__ import annotations

from typing import Sequence

from engine.costs import path_cost, step_cost


def is_path_in_range(
    path: Sequence[tuple[int, int]] | None,
    move_points: float,
) -> bool:
    """Check whether a path is affordable with the given movement points.

    Args:
        path: Path from start to goal inclusive, or None.
        move_points: Remaining movement budget.

    Returns:
        True if the path exists, is made of single steps, and its cost is at
        most move_points.
    """
    if not path:
        return False
    try:
        cost = path_cost(path)
    except ValueError:
        return False
    return cost <= move_points


def truncate_path(
    path: Sequence[tuple[int, int]],
    move_points: float,
) -> list[tuple[int, int]]:
    """Return the longest prefix of path that fits in the budget.

    The start tile is always kept, so the result has at least one element
    for a non-empty path.
    """
    if not path:
        return []
    kept = [path[0]]
    total = 0.0
    for a, b in zip(path, path[1:]):
        total += step_cost(a, b)
        if total > move_points:
            break
        kept.append(b)
    return kept


def drop_occupied_goal(
    path: Sequence[tuple[int, int]] | None,
    occupied: tuple[int, int],
) -> list[tuple[int, int]] | None:
    """Pop the final waypoint if it is the occupied tile.

    Used when approaching a target: the mover should stop beside it, not on
    it.  Call before is_path_in_range so the dropped step is not charged.
    """
    if path is None:
        return None
    if len(path) > 1 and tuple(path[-1]) == tuple(occupied):
        return list(path[:-1])
    return list(path)
