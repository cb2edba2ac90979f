"""Action request and response models for Mini Medieval Tactics."""

from enum import Enum

from pydantic import BaseModel


class ActionType(str, Enum):
    """Turn history actions. The client may request MOVE, ATTACK and SKIP_TURN."""
    MOVE = "move"
    ATTACK = "attack"
    SKIP_TURN = "skip_turn"
    END_TURN = "end_turn"
    EXIT = "exit"                   # Stepped onto a map-exit tile


class ActionRequest(BaseModel):
    """A client's requested player action."""
    action_type: ActionType
    target_id: str | None = None        # For attacks (and move-then-attack)
    target_position: tuple[int, int] | None = None  # For movement


class ActionResult(BaseModel):
    """The engine's response after processing an action."""
    success: bool
    action_type: ActionType
    description: str                    # Human-readable narrative
    damage_dealt: int | None = None
    target_hp_remaining: int | None = None
    movement_path: list[tuple[int, int]] | None = None
    error: str | None = None            # If action was rejected


class PathPreviewRequest(BaseModel):
    """Goal tile for a path preview."""
    goal: tuple[int, int]


class PathPreview(BaseModel):
    """A previewed path for the player and whether it is affordable."""
    path: list[tuple[int, int]] | None
    cost: float | None
    in_range: bool
