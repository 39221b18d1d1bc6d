"""
PoolController — Layer 2 (Game Logic)

Owns the table, the physics state and the charge-and-release shot state
machine.  Layer 3 (driver.py / main.py / server.py) calls:
  ctrl.init() / ctrl.deinit()       — rack / clear the table meshes
  ctrl.update(dt)                   — advance physics + shot charging
  ctrl.mouse_button_pressed(x, y)   — start charging
  ctrl.mouse_button_released(x, y)  — launch the cue ball toward (x, y)
  ctrl.physics_events               — what happened during the last tick
"""

import csv

import numpy as np

import params
from physics import PhysicsEngine
from scene import Scene
from table import Table
from vector import length, normalize


class PoolController:
    """Layer 2: game state + physics orchestration."""

    # ── Class-level constants ─────────────────────────────────────────────────
    SIM_DT        = 1.0 / params.TARGET_FPS
    MAX_SIM_TICKS = 3600

    def __init__(self, scene: Scene):
        self.scene = scene
        self.table = Table(scene)
        self.engine = PhysicsEngine(self.table)

        # Shot state
        self.is_charging_shot = False
        self.shot_charge_progress = 0.0

        # Statistics
        self.rack_count = 0
        self.physics_events: list[dict] = []

        # Session recording
        self._session_recording = False
        self._session_rows: list = []
        self._session_file = ""
        self._session_t = 0.0

    # ──────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────────

    def init(self) -> None:
        self.table.init()
        self.engine.reset()
        self.rack_count += 1

    def deinit(self) -> None:
        self.table.deinit()

    @property
    def positions(self) -> np.ndarray:
        return self.engine.positions

    @property
    def velocities(self) -> np.ndarray:
        return self.engine.velocities

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def update(self, dt: float) -> None:
        """Advance physics + shot charging. Called every tick by L3."""
        reracked = self.engine.update(dt)
        self.physics_events = list(self.engine.events)
        if reracked:
            self.rack_count += 1
            print(f"[RACK] cue ball pocketed, table re-racked (rack #{self.rack_count})")
        else:
            for ev in self.physics_events:
                if ev["type"] == "pocket":
                    print(f"[POCKET] ball {ev['ball']} -> pocket {ev['pocket']}")

        if self.is_charging_shot:
            self.shot_charge_progress = min(
                self.shot_charge_progress + dt / params.SHOT_CHARGE_TIME, 1.0)

        if self._session_recording:
            self._session_record_frame(dt)

    # ──────────────────────────────────────────────────────────────────────────
    # Shot input
    # ──────────────────────────────────────────────────────────────────────────

    def mouse_button_pressed(self, x: float, y: float) -> None:
        self.is_charging_shot = True

    def mouse_button_released(self, x: float, y: float) -> None:
        # New shot can't be done while the cue ball is still rolling
        cue = params.CUE_BALL
        if length(self.velocities[cue]) < params.LAUNCH_THRESHOLD:
            direction = np.array([x, y], dtype=float) - self.positions[cue]
            if length(direction) >= params.ACCURACY:
                normalize(direction)
                self.velocities[cue] = direction * (params.SHOT_IMPULSE * self.shot_charge_progress)

        self.is_charging_shot = False
        self.shot_charge_progress = 0.0

    # ──────────────────────────────────────────────────────────────────────────
    # Headless helpers
    # ──────────────────────────────────────────────────────────────────────────

    def reset(self) -> np.ndarray:
        """Re-rack the table and return the observation vector."""
        if self.table.is_initialized:
            self.engine.rack()
        else:
            self.table.init()
            self.engine.reset()
        self.rack_count += 1
        self.is_charging_shot = False
        self.shot_charge_progress = 0.0
        self.physics_events = []
        return self.get_obs()

    def get_obs(self) -> np.ndarray:
        """Flat float32 vector: [x, y, vx, vy] for each ball in index order."""
        return np.hstack([self.positions, self.velocities]).astype(np.float32).ravel()

    def set_balls(self, balls_info: dict) -> "PoolController":
        """Place balls by index without firing a shot.

        ::

            ctrl.set_balls({
                0: {"pos": [-2.0, 1.0], "vel": [3.0, 0.0]},
                4: {"pos": [ 0.0, 3.5]},
            })

        Balls absent from the mapping are left unchanged.  Returns ``self``.
        """
        for i, bd in balls_info.items():
            i = int(i)
            if not 0 <= i < params.BALL_COUNT:
                raise IndexError(f"set_balls: ball index {i} out of range")
            pos = bd.get("pos")
            if pos is not None:
                self.positions[i] = [float(pos[0]), float(pos[1])]
                handle = self.table.balls()[i]
                if handle is not None:
                    self.scene.place_mesh(handle, float(pos[0]), float(pos[1]), 0.0)
            vel = bd.get("vel", [0.0, 0.0])
            self.velocities[i] = [float(vel[0]), float(vel[1])]
        return self

    def simulate_shot(self, target, charge: float = 1.0,
                      dt: float | None = None, max_ticks: int | None = None) -> dict:
        """Charge, release toward ``target`` and run until the table is at rest.

        Args:
            target: Release point ``(x, y)`` in table coordinates.
            charge: Seconds the button is held (clamped by the charge time).
            dt: Tick length, default ``SIM_DT``.
            max_ticks: Safety cap on ticks after the release.

        Returns:
            dict with ``ticks``, ``sim_time``, ``pocketed``, ``touched``,
            ``cushion_hits``, ``reracked``, ``balls`` and ``obs``.
        """
        if dt is None:
            dt = self.SIM_DT
        if max_ticks is None:
            max_ticks = self.MAX_SIM_TICKS
        if dt <= 0:
            raise ValueError(f"simulate_shot: tick length must be positive, got {dt}")
        if charge < 0:
            raise ValueError(f"simulate_shot: negative charge {charge}")
        if len(target) != 2:
            raise ValueError(f"simulate_shot: target must be (x, y), got {target!r}")

        cue = params.CUE_BALL
        self.mouse_button_pressed(*target)
        for _ in range(int(round(charge / dt))):
            self.update(dt)
        self.mouse_button_released(float(target[0]), float(target[1]))

        pocketed: set = set()
        touched: set = set()
        cushion_hits = 0
        reracked = False
        ticks = 0
        while ticks < max_ticks and not self.engine.is_frozen():
            self.update(dt)
            ticks += 1
            for ev in self.physics_events:
                if ev["type"] == "pocket":
                    pocketed.add(ev["ball"])
                elif ev["type"] == "cushion" and ev["ball"] == cue:
                    cushion_hits += 1
                elif ev["type"] == "ball_ball":
                    if ev["ball1"] == cue:
                        touched.add(ev["ball2"])
                    elif ev["ball2"] == cue:
                        touched.add(ev["ball1"])
                elif ev["type"] == "rack":
                    reracked = True
            if reracked:
                break

        balls_out = {}
        for i in range(params.BALL_COUNT):
            balls_out[i] = {
                "pos": [round(float(self.positions[i, 0]), 6),
                        round(float(self.positions[i, 1]), 6)],
                "vel": [round(float(self.velocities[i, 0]), 6),
                        round(float(self.velocities[i, 1]), 6)],
                "pocketed": self.engine.is_pocketed(i),
            }

        return {
            "ticks":        ticks,
            "sim_time":     round(ticks * dt, 4),
            "pocketed":     sorted(pocketed),
            "touched":      sorted(touched),
            "cushion_hits": cushion_hits,
            "reracked":     reracked,
            "balls":        balls_out,
            "obs":          self.get_obs(),
        }

    # ──────────────────────────────────────────────────────────────────────────
    # Session recording
    # ──────────────────────────────────────────────────────────────────────────

    @staticmethod
    def _session_make_header() -> list:
        cols = ["t"]
        for i in range(params.BALL_COUNT):
            cols += [f"b{i}_px", f"b{i}_py", f"b{i}_vx", f"b{i}_vy"]
        return cols

    def start_recording(self, path: str) -> None:
        fname = path if path.endswith(".csv") else path + ".csv"
        self._session_recording = True
        self._session_rows = []
        self._session_t = 0.0
        self._session_file = fname
        print(f"[REC] Recording started → {fname}")

    def _session_record_frame(self, dt: float) -> None:
        self._session_t += dt
        row = [f"{self._session_t:.4f}"]
        for (px, py), (vx, vy) in zip(self.positions, self.velocities):
            row += [f"{px:.6f}", f"{py:.6f}", f"{vx:.6f}", f"{vy:.6f}"]
        self._session_rows.append(row)

    def stop_recording(self) -> str:
        """Write the recorded frames and return the file name ('' on failure)."""
        path = self._session_file
        try:
            with open(path, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(self._session_make_header())
                writer.writerows(self._session_rows)
            print(f"[REC] Saved {len(self._session_rows)} frames → {path}")
        except OSError as e:
            print(f"[REC] Write failed: {e}")
            path = ""
        self._session_recording = False
        self._session_rows = []
        self._session_file = ""
        self._session_t = 0.0
        return path
