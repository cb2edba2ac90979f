"""Tests for turn orchestration: player actions, enemy sweep, and turn handoff."""

import asyncio

import pytest
from pydantic import ValidationError

from engine.costs import DIAGONAL_COST, MovementMode
from engine.grid import create_grid
from engine.pacing import Pacing
from engine.pathfinding import find_path
from engine.turns import (
    TurnSettings,
    create_game,
    end_player_turn,
    player_attack,
    player_move,
    player_skip,
    preview_player_path,
    run_enemy_sweep,
    start_player_turn,
)
from models.actions import ActionType
from models.characters import Actor, ActorKind, ActorState, DeathPolicy
from models.game_state import GameState, GameStatus, TurnOwner

SETTINGS = TurnSettings(mode=MovementMode.FOUR_WAY, death_policy=DeathPolicy.RESET)
DEACTIVATE = TurnSettings(mode=MovementMode.FOUR_WAY, death_policy=DeathPolicy.DEACTIVATE)
WALL_COLUMN = {(5, y) for y in range(10)}


def _make_enemy(
    enemy_id: str,
    tile: tuple[int, int],
    health: int = 5,
    move_points: float = 3,
    patrol: list[tuple[int, int]] | None = None,
) -> Actor:
    """Helper to create a test enemy."""
    enemy = Actor(
        id=enemy_id,
        name=enemy_id.title(),
        kind=ActorKind.ENEMY,
        health=health,
        max_health=5,
        damage=2,
        move_points=move_points,
        base_move_points=move_points,
        spawn=tile,
        patrol=patrol or [],
    )
    enemy.place(tile)
    return enemy


def _make_game_state(
    player_tile: tuple[int, int] = (0, 0),
    *enemies: Actor,
    walls: set[tuple[int, int]] = frozenset(),
    player_health: int = 10,
    move_points: float = 25,
) -> GameState:
    """Helper to create a 10x10 test game state, player to move."""
    grid = create_grid(10, 10)
    for x, y in walls:
        grid[y][x].terrain = "wall"
    player = Actor(
        id="player",
        name="Player",
        kind=ActorKind.PLAYER,
        health=player_health,
        max_health=10,
        damage=3,
        move_points=move_points,
        base_move_points=move_points,
        spawn=player_tile,
    )
    player.place(player_tile)
    actors = {player.id: player}
    for enemy in enemies:
        actors[enemy.id] = enemy
    return GameState(
        game_id="test",
        map_name="test",
        grid=grid,
        player_id=player.id,
        actors=actors,
    )


def _actions(game_state: GameState) -> list[ActionType]:
    return [entry.action for entry in game_state.turn.turn_history]


class RecordingPacing(Pacing):
    """Instant pacing that records every suspension point."""

    def __init__(self, game_state: GameState):
        super().__init__(step_delay=0.0, attack_delay=0.0, death_delay=0.0, handoff_delay=0.0)
        self.game_state = game_state
        self.events: list[tuple[str, bool, tuple[int, int], int]] = []

    def _record(self, kind: str) -> None:
        turn = self.game_state.turn
        self.events.append(
            (kind, turn.is_moving, self.game_state.player.tile(), len(turn.turn_history))
        )

    async def step(self) -> None:
        self._record("step")
        await super().step()

    async def attack(self) -> None:
        self._record("attack")
        await super().attack()

    async def death(self) -> None:
        self._record("death")
        await super().death()

    async def handoff(self) -> None:
        self._record("handoff")
        await super().handoff()


# ---------------------------------------------------------------------------
# Game setup
# ---------------------------------------------------------------------------


class TestCreateGame:
    def test_builds_map_actors_in_declaration_order(self):
        gs = create_game("g1", "forest-0")
        assert gs.map_name == "forest-0"
        assert gs.player.tile() == (2, 2)
        assert gs.player.spawn == (2, 2)
        assert list(gs.actors) == ["player", "enemy-1", "enemy-2"]
        assert gs.actors["enemy-1"].tile() == (11, 7)
        assert gs.actors["enemy-1"].patrol == [(11, 7), (11, 9), (14, 9)]
        assert gs.actors["enemy-2"].tile() == (10, 13)

    def test_fresh_turn_state(self):
        first = create_game("g1", "forest-0")
        second = create_game("g2", "forest-0")
        first.turn.record("player", ActionType.SKIP_TURN)
        assert second.turn.turn_history == []
        assert second.turn.current_turn == TurnOwner.PLAYER
        assert not second.turn.is_moving

    def test_carries_player_over(self):
        old = create_game("g1", "forest-0")
        old.player.health = 4
        gs = create_game("g1", "forest-1", player=old.player)
        assert gs.player.health == 4
        assert gs.player.tile() == (1, 1)
        assert gs.player.spawn == (1, 1)
        assert old.player.tile() == (2, 2)

    def test_unknown_map(self):
        with pytest.raises(ValueError):
            create_game("g1", "nowhere")


class TestPreviewPlayerPath:
    def test_in_range(self):
        gs = _make_game_state((0, 0))
        preview = preview_player_path(gs, (3, 0), SETTINGS)
        assert preview.path == [(0, 0), (1, 0), (2, 0), (3, 0)]
        assert preview.cost == 3
        assert preview.in_range

    def test_out_of_range(self):
        gs = _make_game_state((0, 0), move_points=2)
        preview = preview_player_path(gs, (3, 0), SETTINGS)
        assert preview.path is not None
        assert not preview.in_range

    def test_occupied_goal_stops_beside(self):
        enemy = _make_enemy("e", (4, 0))
        gs = _make_game_state((0, 0), enemy)
        preview = preview_player_path(gs, (4, 0), SETTINGS)
        assert preview.path == [(0, 0), (1, 0), (2, 0), (3, 0)]
        assert preview.in_range

    def test_unreachable(self):
        gs = _make_game_state((0, 0), walls=WALL_COLUMN)
        preview = preview_player_path(gs, (8, 8), SETTINGS)
        assert preview.path is None
        assert preview.cost is None
        assert not preview.in_range


# ---------------------------------------------------------------------------
# Player actions
# ---------------------------------------------------------------------------


class TestPlayerMove:
    @pytest.mark.asyncio
    async def test_move_and_handoff(self):
        gs = _make_game_state((0, 0))
        path = find_path(0, 0, 3, 0, lambda x, y: 0 <= x < 10 and 0 <= y < 10)
        _, result = await player_move(gs, path, pacing=Pacing.instant(), settings=SETTINGS)

        assert result.success
        assert result.movement_path == [(0, 0), (1, 0), (2, 0), (3, 0)]
        assert gs.player.tile() == (3, 0)
        assert gs.player.state == ActorState.IDLE
        assert _actions(gs) == [ActionType.MOVE, ActionType.END_TURN]
        assert gs.turn.turn_history[0].path == path
        assert gs.turn.turn_history[0].position == (3, 0)
        assert gs.turn.current_turn == TurnOwner.PLAYER
        assert gs.turn.round_number == 2
        assert gs.player.move_points == 25
        assert not gs.turn.is_moving

    @pytest.mark.asyncio
    async def test_steps_in_order_before_logging(self):
        gs = _make_game_state((0, 0))
        pacing = RecordingPacing(gs)
        await player_move(gs, [(0, 0), (1, 0), (2, 0)], pacing=pacing, settings=SETTINGS)
        assert pacing.events == [
            ("step", True, (1, 0), 0),
            ("step", True, (2, 0), 0),
            ("handoff", False, (2, 0), 2),
        ]

    @pytest.mark.asyncio
    async def test_over_budget_rejected(self):
        gs = _make_game_state((0, 0), move_points=3)
        path = [(0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]
        _, result = await player_move(gs, path, pacing=Pacing.instant(), settings=SETTINGS)
        assert not result.success
        assert "movement points" in result.error
        assert gs.player.tile() == (0, 0)
        assert gs.turn.turn_history == []
        assert gs.turn.current_turn == TurnOwner.PLAYER

    @pytest.mark.asyncio
    async def test_exact_budget_accepted(self):
        gs = _make_game_state((0, 0), move_points=4)
        path = [(0, 0), (1, 0), (2, 0), (3, 0), (4, 0)]
        _, result = await player_move(gs, path, pacing=Pacing.instant(), settings=SETTINGS)
        assert result.success
        assert gs.player.tile() == (4, 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", [
        None,
        [],
        [(0, 0)],
        [(1, 0), (2, 0)],                 # doesn't start on the player
        [(0, 0), (2, 0)],                 # not a single step
        [(0, 0), (1, 1)],                 # diagonal in 4-way mode
    ])
    async def test_malformed_paths_rejected(self, path):
        gs = _make_game_state((0, 0))
        _, result = await player_move(gs, path, pacing=Pacing.instant(), settings=SETTINGS)
        assert not result.success
        assert gs.player.tile() == (0, 0)
        assert gs.turn.turn_history == []

    @pytest.mark.asyncio
    async def test_blocked_tile_rejected(self):
        enemy = _make_enemy("e", (1, 0))
        gs = _make_game_state((0, 0), enemy)
        _, result = await player_move(
            gs, [(0, 0), (1, 0), (2, 0)], pacing=Pacing.instant(), settings=SETTINGS,
        )
        assert not result.success
        assert "blocked" in result.error

    @pytest.mark.asyncio
    async def test_wrong_turn_rejected(self):
        gs = _make_game_state((0, 0))
        gs.turn.current_turn = TurnOwner.ENEMIES
        _, result = await player_move(gs, [(0, 0), (1, 0)], pacing=Pacing.instant(), settings=SETTINGS)
        assert not result.success
        assert gs.player.tile() == (0, 0)
        assert gs.turn.current_turn == TurnOwner.ENEMIES

    @pytest.mark.asyncio
    async def test_eight_way_diagonal_at_exact_budget(self):
        settings = TurnSettings(mode=MovementMode.EIGHT_WAY, death_policy=DeathPolicy.RESET)
        gs = _make_game_state((0, 0), move_points=DIAGONAL_COST)
        _, result = await player_move(gs, [(0, 0), (1, 1)], pacing=Pacing.instant(), settings=settings)
        assert result.success
        assert gs.player.tile() == (1, 1)

        gs = _make_game_state((0, 0), move_points=1.4)
        _, result = await player_move(gs, [(0, 0), (1, 1)], pacing=Pacing.instant(), settings=settings)
        assert not result.success

    @pytest.mark.asyncio
    async def test_move_then_attack(self):
        enemy = _make_enemy("e", (4, 0), health=2)
        gs = _make_game_state((0, 0), enemy)
        pacing = RecordingPacing(gs)
        path = [(0, 0), (1, 0), (2, 0), (3, 0)]
        _, result = await player_move(gs, path, target_id="e", pacing=pacing, settings=SETTINGS)

        assert result.success
        assert result.damage_dealt == 2
        assert result.target_hp_remaining == 0
        assert enemy.health == 0
        assert not enemy.is_active
        assert enemy.state == ActorState.DEAD
        assert _actions(gs) == [ActionType.MOVE, ActionType.ATTACK, ActionType.END_TURN]
        attack_entry = gs.turn.turn_history[1]
        assert attack_entry.character == "player"
        assert attack_entry.target == "e"
        assert attack_entry.killed
        assert pacing.events == [
            ("step", True, (1, 0), 0),
            ("step", True, (2, 0), 0),
            ("step", True, (3, 0), 0),
            ("attack", True, (3, 0), 1),
            ("death", True, (3, 0), 1),
            ("handoff", False, (3, 0), 3),
        ]

    @pytest.mark.asyncio
    async def test_move_with_target_out_of_reach_does_not_attack(self):
        enemy = _make_enemy("e", (9, 9), move_points=0)
        gs = _make_game_state((0, 0), enemy)
        _, result = await player_move(
            gs, [(0, 0), (1, 0)], target_id="e", pacing=Pacing.instant(), settings=SETTINGS,
        )
        assert result.success
        assert enemy.health == 5
        assert _actions(gs) == [ActionType.MOVE, ActionType.END_TURN]

    @pytest.mark.asyncio
    async def test_exit_tile_hands_off(self):
        gs = _make_game_state((0, 0))
        gs.grid[0][3].terrain = "exit"
        gs.grid[0][3].exit_target = "forest-1"
        calls = []

        async def on_exit(game_state, map_name):
            calls.append((game_state.game_id, map_name))

        _, result = await player_move(
            gs, [(0, 0), (1, 0), (2, 0), (3, 0)],
            pacing=Pacing.instant(), settings=SETTINGS, on_map_exit=on_exit,
        )
        await asyncio.sleep(0)

        assert result.success
        assert calls == [("test", "forest-1")]
        assert gs.pending_exit == "forest-1"
        assert _actions(gs) == [ActionType.MOVE, ActionType.EXIT, ActionType.END_TURN]
        exit_entry = gs.turn.turn_history[1]
        assert exit_entry.destination == "forest-1"
        assert exit_entry.position == (3, 0)

    @pytest.mark.asyncio
    async def test_second_action_rejected_while_moving(self):
        gs = _make_game_state((0, 0))
        task = asyncio.create_task(
            player_move(gs, [(0, 0), (1, 0), (2, 0)], pacing=Pacing.instant(), settings=SETTINGS)
        )
        await asyncio.sleep(0)
        assert gs.turn.is_moving

        _, rejected = await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)
        assert not rejected.success

        _, result = await task
        assert result.success
        assert _actions(gs) == [ActionType.MOVE, ActionType.END_TURN]


class TestPlayerAttack:
    @pytest.mark.asyncio
    async def test_attack_adjacent_then_enemy_retaliates(self):
        enemy = _make_enemy("e", (1, 0))
        gs = _make_game_state((0, 0), enemy)
        _, result = await player_attack(gs, "e", pacing=Pacing.instant(), settings=SETTINGS)

        assert result.success
        assert enemy.health == 2
        assert gs.player.health == 8
        assert _actions(gs) == [ActionType.ATTACK, ActionType.END_TURN, ActionType.ATTACK]
        assert [e.character for e in gs.turn.turn_history] == ["player", "player", "e"]
        assert gs.turn.current_turn == TurnOwner.PLAYER

    @pytest.mark.asyncio
    async def test_non_adjacent_rejected(self):
        enemy = _make_enemy("e", (2, 0))
        gs = _make_game_state((0, 0), enemy)
        _, result = await player_attack(gs, "e", pacing=Pacing.instant(), settings=SETTINGS)
        assert not result.success
        assert enemy.health == 5
        assert gs.turn.turn_history == []

    @pytest.mark.asyncio
    async def test_diagonal_rejected(self):
        enemy = _make_enemy("e", (1, 1))
        gs = _make_game_state((0, 0), enemy)
        _, result = await player_attack(gs, "e", pacing=Pacing.instant(), settings=SETTINGS)
        assert not result.success

    @pytest.mark.asyncio
    async def test_inactive_target_rejected(self):
        enemy = _make_enemy("e", (1, 0))
        enemy.is_active = False
        gs = _make_game_state((0, 0), enemy)
        _, result = await player_attack(gs, "e", pacing=Pacing.instant(), settings=SETTINGS)
        assert not result.success
        assert gs.turn.turn_history == []


class TestPlayerSkip:
    @pytest.mark.asyncio
    async def test_skip_logs_and_hands_off(self):
        gs = _make_game_state((0, 0))
        _, result = await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)
        assert result.success
        assert _actions(gs) == [ActionType.SKIP_TURN, ActionType.END_TURN]
        assert gs.turn.current_turn == TurnOwner.PLAYER

    @pytest.mark.asyncio
    async def test_history_is_timestamped_and_frozen(self):
        gs = _make_game_state((0, 0))
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)
        first, second = gs.turn.turn_history
        assert first.timestamp.tzinfo is not None
        assert first.timestamp <= second.timestamp
        with pytest.raises(ValidationError):
            first.character = "someone"


# ---------------------------------------------------------------------------
# Enemy sweep
# ---------------------------------------------------------------------------


class TestEnemySweep:
    @pytest.mark.asyncio
    async def test_enemy_moves_toward_player(self):
        enemy = _make_enemy("e", (9, 0))
        gs = _make_game_state((0, 0), enemy)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)

        assert enemy.tile() == (6, 0)
        assert _actions(gs) == [ActionType.SKIP_TURN, ActionType.END_TURN, ActionType.MOVE]
        move_entry = gs.turn.turn_history[2]
        assert move_entry.character == "e"
        assert move_entry.path == [(9, 0), (8, 0), (7, 0), (6, 0)]

    @pytest.mark.asyncio
    async def test_enemy_moves_then_attacks(self):
        enemy = _make_enemy("e", (4, 0))
        gs = _make_game_state((0, 0), enemy)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)

        assert enemy.tile() == (1, 0)
        assert gs.player.health == 8
        assert _actions(gs) == [
            ActionType.SKIP_TURN, ActionType.END_TURN, ActionType.MOVE, ActionType.ATTACK,
        ]

    @pytest.mark.asyncio
    async def test_declaration_order(self):
        zed = _make_enemy("zed", (5, 6))
        abe = _make_enemy("abe", (5, 4))
        gs = _make_game_state((5, 5), zed, abe)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)

        attackers = [e.character for e in gs.turn.turn_history if e.action == ActionType.ATTACK]
        assert attackers == ["zed", "abe"]
        assert gs.player.health == 6

    @pytest.mark.asyncio
    async def test_second_enemy_routes_around_first(self):
        first = _make_enemy("first", (3, 0))
        second = _make_enemy("second", (4, 0), move_points=10)
        gs = _make_game_state((0, 0), first, second)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)

        assert first.tile() == (1, 0)
        assert second.tile() != first.tile()
        end = second.tile()
        assert abs(end[0]) + abs(end[1]) == 1

    @pytest.mark.asyncio
    async def test_stranded_enemy_without_patrol_does_nothing(self):
        enemy = _make_enemy("e", (8, 8))
        gs = _make_game_state((0, 0), enemy, walls=WALL_COLUMN)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)

        assert enemy.tile() == (8, 8)
        assert _actions(gs) == [ActionType.SKIP_TURN, ActionType.END_TURN]

    @pytest.mark.asyncio
    async def test_patrol_advances_on_arrival(self):
        enemy = _make_enemy("e", (8, 8), patrol=[(8, 6), (8, 8)])
        gs = _make_game_state((0, 0), enemy, walls=WALL_COLUMN)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)

        assert enemy.tile() == (8, 6)
        assert enemy.patrol_index == 1

        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)
        assert enemy.tile() == (8, 8)
        assert enemy.patrol_index == 0

    @pytest.mark.asyncio
    async def test_enemy_move_points_reset_each_turn(self):
        enemy = _make_enemy("e", (9, 9), patrol=[(9, 0)])
        gs = _make_game_state((0, 0), enemy, walls=WALL_COLUMN)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)
        assert enemy.tile() == (9, 6)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)
        assert enemy.tile() == (9, 3)

    @pytest.mark.asyncio
    async def test_player_reset_on_death(self):
        enemy = _make_enemy("e", (3, 4))
        gs = _make_game_state((3, 3), enemy, player_health=2)
        gs.player.spawn = (0, 0)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)

        player = gs.player
        assert player.is_active
        assert player.health == player.max_health
        assert player.tile() == (0, 0)
        assert gs.status == GameStatus.ACTIVE
        attack_entry = gs.turn.turn_history[-1]
        assert attack_entry.action == ActionType.ATTACK
        assert attack_entry.killed
        assert attack_entry.target_health == 0

    @pytest.mark.asyncio
    async def test_player_reset_onto_occupied_spawn(self):
        enemy = _make_enemy("e", (0, 0))
        gs = _make_game_state((0, 1), enemy, player_health=2)
        gs.player.spawn = (0, 0)
        await player_skip(gs, pacing=Pacing.instant(), settings=SETTINGS)

        assert gs.player.is_active
        assert gs.player.health == gs.player.max_health
        assert gs.player.tile() == (1, 0)
        assert gs.player.tile() != enemy.tile()

    @pytest.mark.asyncio
    async def test_eight_way_chase_reaches_melee_range(self):
        settings = TurnSettings(mode=MovementMode.EIGHT_WAY, death_policy=DeathPolicy.RESET)
        enemy = _make_enemy("e", (0, 0))
        gs = _make_game_state((3, 3), enemy)

        await player_skip(gs, pacing=Pacing.instant(), settings=settings)
        assert gs.player.health == 10

        await player_skip(gs, pacing=Pacing.instant(), settings=settings)
        ex, ey = enemy.tile()
        assert abs(ex - 3) + abs(ey - 3) == 1
        attackers = [e.character for e in gs.turn.turn_history if e.action == ActionType.ATTACK]
        assert attackers == ["e"]
        assert gs.player.health == 8

    @pytest.mark.asyncio
    async def test_player_deactivated_ends_game(self):
        zed = _make_enemy("zed", (0, 1))
        abe = _make_enemy("abe", (1, 0))
        gs = _make_game_state((0, 0), zed, abe, player_health=2)
        await player_skip(gs, pacing=Pacing.instant(), settings=DEACTIVATE)

        assert not gs.player.is_active
        assert gs.player.state == ActorState.DEAD
        assert gs.status == GameStatus.GAME_OVER
        attackers = [e.character for e in gs.turn.turn_history if e.action == ActionType.ATTACK]
        assert attackers == ["zed"]

        _, result = await player_skip(gs, pacing=Pacing.instant(), settings=DEACTIVATE)
        assert not result.success

    @pytest.mark.asyncio
    async def test_sweep_skips_inactive_enemies(self):
        dead = _make_enemy("dead", (1, 0))
        dead.is_active = False
        gs = _make_game_state((0, 0), dead)
        gs.turn.current_turn = TurnOwner.ENEMIES
        await run_enemy_sweep(gs, pacing=Pacing.instant(), settings=SETTINGS)
        assert gs.turn.turn_history == []
        assert gs.player.health == 10


class TestTurnHandoff:
    def test_start_player_turn_resets_budget(self):
        gs = _make_game_state((0, 0))
        gs.player.move_points = 0
        gs.turn.current_turn = TurnOwner.ENEMIES
        start_player_turn(gs)
        assert gs.turn.current_turn == TurnOwner.PLAYER
        assert gs.player.move_points == 25

    @pytest.mark.asyncio
    async def test_end_player_turn(self):
        gs = _make_game_state((0, 0))
        await end_player_turn(gs, pacing=Pacing.instant(), settings=SETTINGS)
        assert _actions(gs) == [ActionType.END_TURN]
        assert gs.turn.current_turn == TurnOwner.PLAYER
        assert gs.turn.round_number == 2
