"""
FrameDriver — the game surface handed to an engine.

Forwards engine callbacks to the controller and keeps the progress bar in
sync with the shot charge.  No game logic lives here.
"""

import params
from controller import PoolController
from scene import Engine, Scene


class FrameDriver:
    def __init__(self, scene: Scene, engine: Engine, controller: PoolController | None = None):
        self.scene = scene
        self.engine = engine
        self.controller = controller or PoolController(scene)

    def init(self) -> None:
        self.engine.set_target_fps(params.TARGET_FPS)
        self.scene.setup_background(params.TABLE_WIDTH, params.TABLE_HEIGHT)
        self.controller.init()

    def deinit(self) -> None:
        self.controller.deinit()

    def update(self, dt: float) -> None:
        self.controller.update(dt)
        self.scene.update_progress_bar(self.controller.shot_charge_progress)

    def mouse_button_pressed(self, x: float, y: float) -> None:
        self.controller.mouse_button_pressed(x, y)

    def mouse_button_released(self, x: float, y: float) -> None:
        self.controller.mouse_button_released(x, y)
