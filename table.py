"""
Table: owns the pocket and ball meshes created through the scene.
"""

import params
from scene import Scene


class Table:
    """Six pockets and seven balls as scene meshes.

    Meshes are owned exclusively by the table; the physics step only moves
    the ball meshes it gets from ``balls()``.
    """

    def __init__(self, scene: Scene):
        self.scene = scene
        self._pockets: list = [None] * params.POCKET_COUNT
        self._balls: list = [None] * params.BALL_COUNT

    @property
    def is_initialized(self) -> bool:
        return any(h is not None for h in self._pockets + self._balls)

    def init(self) -> None:
        for i, (x, y) in enumerate(params.POCKET_POSITIONS):
            assert self._pockets[i] is None, "Table.init() called twice without deinit()"
            self._pockets[i] = self.scene.create_pocket_mesh(params.POCKET_RADIUS)
            self.scene.place_mesh(self._pockets[i], float(x), float(y), 0.0)

        for i, (x, y) in enumerate(params.BALL_POSITIONS):
            assert self._balls[i] is None, "Table.init() called twice without deinit()"
            self._balls[i] = self.scene.create_ball_mesh(params.BALL_RADIUS)
            self.scene.place_mesh(self._balls[i], float(x), float(y), 0.0)

    def deinit(self) -> None:
        for handle in self._pockets + self._balls:
            if handle is not None:
                self.scene.destroy_mesh(handle)
        self._pockets = [None] * params.POCKET_COUNT
        self._balls = [None] * params.BALL_COUNT

    def balls(self) -> list:
        return list(self._balls)

    def pockets(self) -> list:
        return list(self._pockets)
