"""Server-wide configuration constants for Mini Medieval Tactics."""

import os

# Map configuration
TILE_SIZE = 8                  # Pixels per tile; actor x/y are stored in pixels
INITIAL_MAP = os.environ.get("INITIAL_MAP", "forest-0")
MOVEMENT_MODE = os.environ.get("MOVEMENT_MODE", "four_way")  # or "eight_way"

# Pacing, in seconds
MOVEMENT_STEP_DELAY = float(os.environ.get("MOVEMENT_STEP_DELAY", "0.2"))
ATTACK_DELAY = float(os.environ.get("ATTACK_DELAY", "0.5"))
DEATH_DELAY = float(os.environ.get("DEATH_DELAY", "0.8"))
TURN_HANDOFF_DELAY = float(os.environ.get("TURN_HANDOFF_DELAY", "0.3"))

# Player settings
PLAYER_HEALTH = 10
PLAYER_MAX_HEALTH = 10
PLAYER_DAMAGE = 3
PLAYER_MOVE_POINTS = 25
PLAYER_DEATH_POLICY = os.environ.get("PLAYER_DEATH_POLICY", "reset")  # or "deactivate"

# Enemy settings
ENEMY_HEALTH = 5
ENEMY_MAX_HEALTH = 5
ENEMY_DAMAGE = 2
ENEMY_MOVE_POINTS = 3
ENEMY_SIGHT_RANGE = None       # Max path cost at which enemies chase; None = unlimited

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

GAME_NAME = "Mini Medieval"
GAME_ID = "medieval"
