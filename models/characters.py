"""Actor data models for Mini Medieval Tactics."""

from enum import Enum

from pydantic import BaseModel

from config import TILE_SIZE


class ActorKind(str, Enum):
    """Who controls an actor. Drives death handling and turn membership."""
    PLAYER = "player"               # Controlled by the client
    ENEMY = "enemy"                 # Chase/patrol AI


class ActorState(str, Enum):
    """Animation intent exposed to the renderer. Never read by turn logic."""
    IDLE = "idle"
    RUN = "run"
    ATTACK = "attack"
    HIT = "hit"
    DEAD = "dead"


class DeathPolicy(str, Enum):
    """What happens to the protagonist at 0 health."""
    DEACTIVATE = "deactivate"       # Removed from play like an enemy
    RESET = "reset"                 # Respawn on the spawn tile with full health


class Actor(BaseModel):
    """A combatant on the map."""
    id: str
    name: str
    kind: ActorKind = ActorKind.ENEMY
    x: int = 0                      # Pixels, always a multiple of the tile size
    y: int = 0
    health: int
    max_health: int
    damage: int
    move_points: float              # Remaining budget this turn
    base_move_points: float         # Budget restored at the start of each turn
    is_active: bool = True
    state: ActorState = ActorState.IDLE
    spawn: tuple[int, int] = (0, 0) # Tile used by DeathPolicy.RESET
    patrol: list[tuple[int, int]] = []
    patrol_index: int = 0
    sight_range: float | None = None  # Max path cost to chase the player

    @property
    def is_player(self) -> bool:
        return self.kind == ActorKind.PLAYER

    def tile(self, tile_size: int = TILE_SIZE) -> tuple[int, int]:
        """Current (x, y) tile coordinate."""
        return (self.x // tile_size, self.y // tile_size)

    def place(self, tile: tuple[int, int], tile_size: int = TILE_SIZE) -> None:
        """Move the actor onto a tile."""
        self.x = tile[0] * tile_size
        self.y = tile[1] * tile_size

    def reset_move_points(self) -> None:
        self.move_points = self.base_move_points
