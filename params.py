"""
Game parameters (table units, seconds).

Table space has its origin at the table center and spans
[-W/2, W/2] x [-H/2, H/2].
"""

import numpy as np

# ──────────────────────────────────────────────
# System
# ──────────────────────────────────────────────
TARGET_FPS: int = 60
ACCURACY: float = 0.01          # convergence tolerance for speeds and distances

# ──────────────────────────────────────────────
# Table
# ──────────────────────────────────────────────
TABLE_WIDTH: float = 15.0
TABLE_HEIGHT: float = 8.0
POCKET_RADIUS: float = 0.4

BALL_RADIUS: float = 0.3
BALL_COUNT: int = 7
POCKET_COUNT: int = 6
CUE_BALL: int = 0

# Parking spot for pocketed balls, well outside the table
INFINITY: float = 2 * (TABLE_HEIGHT + TABLE_WIDTH)

POCKET_POSITIONS = np.array([
    [-0.5 * TABLE_WIDTH, -0.5 * TABLE_HEIGHT],
    [0.0,                -0.5 * TABLE_HEIGHT],
    [0.5 * TABLE_WIDTH,  -0.5 * TABLE_HEIGHT],
    [-0.5 * TABLE_WIDTH,  0.5 * TABLE_HEIGHT],
    [0.0,                 0.5 * TABLE_HEIGHT],
    [0.5 * TABLE_WIDTH,   0.5 * TABLE_HEIGHT],
])

BALL_POSITIONS = np.array([
    # cue ball
    [-0.3 * TABLE_WIDTH, 0.0],
    # object balls
    [0.2 * TABLE_WIDTH,  0.0],
    [0.25 * TABLE_WIDTH, 0.05 * TABLE_HEIGHT],
    [0.25 * TABLE_WIDTH, -0.05 * TABLE_HEIGHT],
    [0.3 * TABLE_WIDTH,  0.1 * TABLE_HEIGHT],
    [0.3 * TABLE_WIDTH,  0.0],
    [0.3 * TABLE_WIDTH,  -0.1 * TABLE_HEIGHT],
])

# ── Runtime-editable behavior constants ───────────────────────────────────────
# These are read by name every call, so a front end can mutate them live via:
#   import params;  params.FRICTION = 0.05
SHOT_CHARGE_TIME: float = 1.0   # seconds of holding for a full-power shot
SHOT_IMPULSE: float = 6.0       # cue speed at full charge
FRICTION: float = 0.03          # per-axis rolling friction coefficient
GRAVITY: float = 9.81

# A new shot needs the cue ball below this speed
LAUNCH_THRESHOLD: float = 0.01
