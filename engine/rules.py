"""Combat rules: action validation, damage, and death handling."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from engine.grid import is_adjacent, nearest_free_tile
from models.actions import ActionType
from models.characters import ActorState, DeathPolicy
from models.game_state import TurnOwner

if TYPE_CHECKING:
    from models.characters import Actor
    from models.game_state import GameState

logger = logging.getLogger(__name__)


def validate_action(
    action_type: ActionType,
    actor: Actor,
    game_state: GameState,
    target_id: str | None = None,
) -> tuple[bool, str]:
    """Check if an action is legal for the given actor right now.

    Covers turn ownership, the in-progress guard, and attack targeting.
    Path checks for MOVE live in the turn orchestrator.

    Args:
        action_type: The type of action being attempted.
        actor: The actor attempting the action.
        game_state: Current game state.
        target_id: Target actor ID (for attacks).

    Returns:
        (valid, error_message) tuple.
    """
    if not actor.is_active:
        return False, "Actor is not active"

    owner = TurnOwner.PLAYER if actor.is_player else TurnOwner.ENEMIES
    if game_state.turn.current_turn != owner:
        return False, "It's not your turn"

    if game_state.turn.is_moving:
        return False, "Another action is still resolving"

    if action_type in (ActionType.SKIP_TURN, ActionType.MOVE):
        return True, ""

    if action_type == ActionType.ATTACK:
        if target_id is None:
            return False, "Attack action requires a target_id"
        target = game_state.actors.get(target_id)
        if target is None:
            return False, f"Target '{target_id}' not found"
        if not target.is_active:
            return False, "Target is not active"
        if not is_adjacent(actor, target):
            return False, "Target is not adjacent"
        return True, ""

    return False, f"Unknown action type: {action_type}"


def apply_damage(attacker: Actor, defender: Actor) -> bool:
    """Deal the attacker's damage to the defender.

    Args:
        attacker: The attacking actor.
        defender: The actor taking damage.

    Returns:
        True if the hit was lethal. Hitting yourself is never lethal-flagged.
    """
    defender.health = max(0, defender.health - attacker.damage)
    return defender.health == 0 and defender is not attacker


def resolve_death(
    actor: Actor,
    policy: DeathPolicy = DeathPolicy.DEACTIVATE,
    game_state: GameState | None = None,
) -> None:
    """Take a dead actor out of play.

    Enemies are always deactivated, permanently.  The protagonist follows
    ``policy``: deactivate, or reset to the spawn tile with full health.
    Given ``game_state``, a reset never lands on another active actor: if the
    spawn tile is taken the nearest free tile is used instead.
    """
    if actor.is_player and policy == DeathPolicy.RESET:
        respawn = actor.spawn
        if game_state is not None:
            respawn = nearest_free_tile(game_state, actor, actor.spawn) or actor.spawn
        actor.place(respawn)
        actor.health = actor.max_health
        actor.state = ActorState.IDLE
        actor.reset_move_points()
        logger.info("%s was defeated and respawns at %s", actor.name, respawn)
        return

    actor.is_active = False
    actor.state = ActorState.DEAD
    logger.info("%s has been slain", actor.name)


def attack(
    attacker: Actor,
    defender: Actor,
    policy: DeathPolicy = DeathPolicy.DEACTIVATE,
    game_state: GameState | None = None,
) -> bool:
    """Resolve a melee hit immediately, including death.

    Returns:
        True if the defender died.
    """
    killed = apply_damage(attacker, defender)
    if killed:
        resolve_death(defender, policy, game_state)
    return killed
