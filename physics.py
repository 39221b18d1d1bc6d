"""
Top-down pool physics step.
Euler integration, single-pair collision approximation, pockets and friction.
"""

import numpy as np

import params
from table import Table
from vector import dot, length, normalize, perpendicular, vec2


class PhysicsEngine:
    """Ball state arrays plus the per-tick update.

    ``positions`` and ``velocities`` are ``(BALL_COUNT, 2)`` float arrays
    indexed by ball id; ball 0 is the cue ball.  After every ``update`` the
    ``events`` list holds what happened during that tick.
    """

    def __init__(self, table: Table):
        self.table = table
        self.positions = params.BALL_POSITIONS.astype(float)
        self.velocities = np.zeros((params.BALL_COUNT, 2))
        self.events: list = []

    def reset(self) -> None:
        """Reseed positions from the rack template and stop every ball."""
        self.positions = params.BALL_POSITIONS.astype(float)
        self.velocities = np.zeros((params.BALL_COUNT, 2))

    def rack(self) -> None:
        """Rebuild the table meshes and the ball state."""
        self.table.deinit()
        self.table.init()
        self.reset()

    # ──────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────
    def speed(self, i: int) -> float:
        return length(self.velocities[i])

    def is_pocketed(self, i: int) -> bool:
        return (bool(np.all(self.positions[i] == params.INFINITY))
                and not np.any(self.velocities[i]))

    def is_frozen(self) -> bool:
        """True when every ball is at rest."""
        return all(self.speed(i) < params.ACCURACY for i in range(params.BALL_COUNT))

    @staticmethod
    def in_pocket(end_pos: np.ndarray) -> int | None:
        """Index of the pocket capturing ``end_pos``, or None."""
        capture = params.POCKET_RADIUS + params.BALL_RADIUS / 4.0
        for k, pocket in enumerate(params.POCKET_POSITIONS):
            if length(end_pos - pocket) <= capture:
                return k
        return None

    def find_closest_ball(self, end_pos: np.ndarray, subject: int) -> int:
        """Closest ball (by current separation) that ``end_pos`` would overlap.

        Returns ``subject`` itself when nothing is in the way.
        """
        index = subject
        distance = params.INFINITY
        for i in range(params.BALL_COUNT):
            if i == subject:
                continue
            if length(end_pos - self.positions[i]) < 2 * params.BALL_RADIUS:
                curr_distance = length(self.positions[subject] - self.positions[i])
                if curr_distance < distance:
                    distance = curr_distance
                    index = i
        return index

    # ──────────────────────────────────────────
    # Collisions
    # ──────────────────────────────────────────
    def _check_border_collision(self, end_pos: np.ndarray, i: int) -> bool:
        """Flip the velocity components of ball ``i`` whose border band ``end_pos`` enters."""
        band = params.BALL_RADIUS + params.ACCURACY
        axes = []
        if abs(abs(end_pos[0]) - params.TABLE_WIDTH / 2) <= band:
            self.velocities[i, 0] = -self.velocities[i, 0]
            axes.append("x")
        if abs(abs(end_pos[1]) - params.TABLE_HEIGHT / 2) <= band:
            self.velocities[i, 1] = -self.velocities[i, 1]
            axes.append("y")
        if axes:
            self.events.append({"type": "cushion", "ball": i,
                                "speed": self.speed(i), "axes": axes})
        return bool(axes)

    def _recalculate_velocities(self, subject: int, target: int) -> None:
        """Equal-mass elastic exchange of the velocity components along the line of centers."""
        normal = normalize(self.positions[target] - self.positions[subject])
        tangent = perpendicular(normal)

        v_s = self.velocities[subject]
        v_t = self.velocities[target]
        normal_s = dot(v_s, normal)
        normal_t = dot(v_t, normal)
        tangent_s = tangent * dot(v_s, tangent)
        tangent_t = tangent * dot(v_t, tangent)

        self.velocities[subject] = tangent_s + normal * normal_t
        self.velocities[target] = tangent_t + normal * normal_s

    @staticmethod
    def _time_of_impact(distance: float, speed: float) -> float:
        return (distance - 2 * params.BALL_RADIUS) / speed

    def _resolve_pair(self, i: int, j: int, dt: float) -> None:
        # approximated [dt << 1] subject position at contact
        distance = length(self.positions[i] - self.positions[j])
        dtau = self._time_of_impact(distance, self.speed(i))
        contact_pos = self.positions[i] + self.velocities[i] * dtau

        rel_speed = length(self.velocities[i] - self.velocities[j])
        self._recalculate_velocities(i, j)
        self.positions[i] = contact_pos + self.velocities[i] * (dt - dtau)
        self.positions[j] = self.positions[j] + self.velocities[j] * (dt - dtau)
        self._place(i)
        self._place(j)
        self.events.append({"type": "ball_ball", "ball1": i, "ball2": j, "speed": rel_speed})

    # ──────────────────────────────────────────
    # Friction
    # ──────────────────────────────────────────
    def _apply_friction(self, dt: float) -> None:
        """Per-axis Coulomb deceleration; never reverses a component."""
        step = params.FRICTION * params.GRAVITY * dt
        for velocity in self.velocities:
            if length(velocity) < params.ACCURACY:
                continue
            for axis in (0, 1):
                positive = velocity[axis] >= 0.0
                velocity[axis] -= step if positive else -step
                if (velocity[axis] < 0.0 and positive) or (velocity[axis] > 0.0 and not positive):
                    velocity[axis] = 0.0

    # ──────────────────────────────────────────
    # Main Update Loop
    # ──────────────────────────────────────────
    def _place(self, i: int) -> None:
        handle = self.table.balls()[i]
        x, y = self.positions[i]
        self.table.scene.place_mesh(handle, float(x), float(y), 0.0)

    def _pocket_ball(self, i: int, pocket: int) -> None:
        self.positions[i] = vec2(params.INFINITY, params.INFINITY)
        self.velocities[i] = vec2()
        self._place(i)
        self.events.append({"type": "pocket", "ball": i, "pocket": pocket})

    def update(self, dt: float) -> bool:
        """Advance the simulation by ``dt`` seconds.

        Returns True if the cue ball was pocketed and the table re-racked;
        the rest of that tick is abandoned.
        """
        self.events.clear()
        if self.is_frozen():
            return False

        done: set = set()
        for i in range(params.BALL_COUNT):
            if self.speed(i) <= params.ACCURACY or i in done:
                continue

            end_pos = self.positions[i] + self.velocities[i] * dt

            pocket = self.in_pocket(end_pos)
            if pocket is not None:
                if i == params.CUE_BALL:
                    self.events.append({"type": "pocket", "ball": i, "pocket": pocket})
                    self.rack()
                    self.events.append({"type": "rack"})
                    return True
                self._pocket_ball(i, pocket)
                continue

            if self._check_border_collision(end_pos, i):
                continue

            j = self.find_closest_ball(end_pos, i)
            if j == i:
                self.positions[i] = end_pos
                self._place(i)
                continue

            self._resolve_pair(i, j, dt)
            done.update((i, j))

        self._apply_friction(dt)
        return False
