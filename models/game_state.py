"""Game state, grid, turn state and history models for Mini Medieval Tactics."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from models.actions import ActionType
from models.characters import Actor


class GameStatus(str, Enum):
    """Possible states for a game."""
    ACTIVE = "active"               # Turns are being played
    GAME_OVER = "game_over"         # The protagonist was deactivated


class TurnOwner(str, Enum):
    """Which side may act."""
    PLAYER = "player"
    ENEMIES = "enemies"


class GridCell(BaseModel):
    """A single cell on the map."""
    x: int
    y: int
    terrain: str = "open"           # "open", "wall", "water", "stone", "exit"
    exit_target: str | None = None  # Map loaded when an exit tile is entered


class TurnHistoryEntry(BaseModel):
    """An immutable logged turn event."""
    model_config = ConfigDict(frozen=True)

    character: str
    action: ActionType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    path: list[tuple[int, int]] | None = None
    target: str | None = None
    position: tuple[int, int] | None = None
    damage: int | None = None
    target_health: int | None = None
    killed: bool | None = None
    destination: str | None = None


class TurnState(BaseModel):
    """Whose turn it is, whether a sequence is running, and the turn log."""
    current_turn: TurnOwner = TurnOwner.PLAYER
    is_moving: bool = False
    round_number: int = 1
    turn_history: list[TurnHistoryEntry] = []

    def record(self, character: str, action: ActionType, **details) -> TurnHistoryEntry:
        """Append an entry to the turn history."""
        entry = TurnHistoryEntry(character=character, action=action, **details)
        self.turn_history.append(entry)
        return entry


class GameState(BaseModel):
    """The full state of one loaded map."""
    game_id: str
    map_name: str
    status: GameStatus = GameStatus.ACTIVE
    grid: list[list[GridCell]]      # 2D grid [y][x]
    player_id: str
    actors: dict[str, Actor] = {}   # Insertion order is declaration (map) order
    turn: TurnState = Field(default_factory=TurnState)
    pending_exit: str | None = None

    @property
    def player(self) -> Actor:
        return self.actors[self.player_id]

    def enemies(self) -> list[Actor]:
        """Active enemies in declaration order."""
        return [a for a in self.actors.values() if not a.is_player and a.is_active]
