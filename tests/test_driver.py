"""
Frame driver tests — engine/scene wiring and input forwarding.
"""

import params
from driver import FrameDriver
from scene import EventEngine, EventScene

DT = 1.0 / params.TARGET_FPS


def make_driver():
    scene, engine = EventScene(), EventEngine()
    driver = FrameDriver(scene, engine)
    driver.init()
    return scene, engine, driver


class TestInit:

    def test_sets_fps_and_background(self):
        scene, engine, _ = make_driver()
        assert engine.target_fps == 60
        assert scene.background == (params.TABLE_WIDTH, params.TABLE_HEIGHT)

    def test_racks_table(self):
        scene, _, driver = make_driver()
        assert len(scene.meshes) == 13
        assert driver.controller.rack_count == 1

    def test_deinit_clears_meshes(self):
        scene, _, driver = make_driver()
        driver.deinit()
        assert scene.meshes == {}


class TestForwarding:

    def test_progress_bar_follows_charge(self):
        scene, _, driver = make_driver()
        driver.mouse_button_pressed(0.0, 0.0)
        for _ in range(15):
            driver.update(DT)
        assert scene.progress == driver.controller.shot_charge_progress
        assert 0.0 < scene.progress < 1.0

    def test_release_launches_and_resets_bar(self):
        scene, _, driver = make_driver()
        driver.mouse_button_pressed(0.0, 0.0)
        for _ in range(60):
            driver.update(DT)
        driver.mouse_button_released(0.0, 0.0)
        driver.update(DT)
        assert scene.progress == 0.0
        assert driver.controller.velocities[0, 0] > 0.0

    def test_ball_meshes_follow_physics(self):
        scene, _, driver = make_driver()
        driver.mouse_button_pressed(0.0, 0.0)
        for _ in range(60):
            driver.update(DT)
        driver.mouse_button_released(0.0, 2.0)
        for _ in range(5):
            driver.update(DT)
        ctrl = driver.controller
        x, y, _z = scene.meshes[ctrl.table.balls()[0]]["pos"]
        assert (x, y) == (ctrl.positions[0, 0], ctrl.positions[0, 1])
