"""
Top-down Pocket Billiards -- desktop front end (Ursina)
Layer 3: Ursina scene, sounds, mouse input.
Layer 2: controller.py (PoolController), driven through driver.py (FrameDriver)
Layer 1: physics.py (PhysicsEngine)

Hold the left mouse button to charge, release to shoot the cue ball toward
the cursor.  R re-racks.
"""

import os
import tempfile
import wave
from pathlib import Path

import numpy as np
from ursina import (
    Ursina, Entity, Text, Audio, Texture, camera, color, mouse, destroy,
    time as ursina_time,
)
from PIL import Image, ImageDraw
from panda3d.core import ClockObject

import params
from driver import FrameDriver
from scene import Engine, Scene

# ──────────────────────────────────────────
# Felt texture generation (PIL)
# ──────────────────────────────────────────

_asset_dir = tempfile.mkdtemp(prefix="pool_assets_")


def _make_felt_texture(width, height, px_per_unit=40):
    """Cloth with head string and spots, so the rack layout is readable."""
    w, h = int(width * px_per_unit), int(height * px_per_unit)
    img = Image.new("RGB", (w, h), (30, 120, 60))
    draw = ImageDraw.Draw(img)
    head_x = int((0.5 - 0.3) * w)
    draw.line([(head_x, 0), (head_x, h)], fill=(60, 150, 85), width=2)
    spot_r = max(2, px_per_unit // 10)
    for x, y in params.BALL_POSITIONS[:2]:
        cx = int((x / width + 0.5) * w)
        cy = int((0.5 - y / height) * h)
        draw.ellipse([cx - spot_r, cy - spot_r, cx + spot_r, cy + spot_r], fill=(220, 220, 220))
    path = os.path.join(_asset_dir, "felt.png")
    img.save(path)
    return path


# ──────────────────────────────────────────
# Synthesized Sound Effects (numpy + wave)
# ──────────────────────────────────────────

SAMPLE_RATE = 22050


def _synth_tone(filename, dur, freq, decay, gain, sweep=0.0, wobble=0.0):
    """Decaying sine (optionally pitch-swept or FM-wobbled) saved as 16-bit mono WAV."""
    t = np.arange(int(SAMPLE_RATE * dur)) / SAMPLE_RATE
    phase = 2 * np.pi * (freq + sweep * t) * t
    if wobble:
        phase += wobble * np.sin(2 * np.pi * freq / 4 * t)
    pcm = np.clip(gain * np.exp(-decay * t) * np.sin(phase), -1.0, 1.0)

    path = Path(_asset_dir) / filename
    with wave.open(str(path), "w") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes((pcm * 32767).astype(np.int16).tobytes())
    return path


# ball-ball clack, cushion thud, pocket drop
SOUND_SPECS = {
    "ball_ball": ("clack.wav", 0.06, 1100.0, 75.0, 0.8, 0.0, 3.0),
    "cushion":   ("thud.wav",  0.12, 320.0,  35.0, 0.6),
    "pocket":    ("drop.wav",  0.25, 180.0,  15.0, 0.7, -300.0),
}


# ──────────────────────────────────────────
# Scene / engine adapters
# ──────────────────────────────────────────

BALL_COLORS = [
    color.white, color.yellow, color.azure, color.red,
    color.violet, color.orange, color.lime,
]

# Draw order: lower z is nearer the camera
POCKET_DEPTH = 0.01
TABLE_DEPTH = 0.02


class UrsinaScene(Scene):
    """Ursina entities behind the scene interface; handles are ints."""

    def __init__(self):
        self.entities: dict[int, Entity] = {}
        self.depths: dict[int, float] = {}
        self._next_handle = 1
        self._balls_created = 0
        self.table_surface = None
        self.power_bar_fill = None

    def setup_background(self, width, height):
        self.table_surface = Entity(
            model="quad",
            texture=Texture(_make_felt_texture(width, height)),
            scale=(width, height),
            z=TABLE_DEPTH,
            collider="box",
        )
        rail = 0.4
        for pos, scl in [
            ((0, height / 2 + rail / 2), (width + 2 * rail, rail)),
            ((0, -height / 2 - rail / 2), (width + 2 * rail, rail)),
            ((width / 2 + rail / 2, 0), (rail, height)),
            ((-width / 2 - rail / 2, 0), (rail, height)),
        ]:
            Entity(model="quad", color=color.hsv(25, 0.6, 0.35),
                   position=(pos[0], pos[1], TABLE_DEPTH), scale=scl)

        Entity(parent=camera.ui, model="quad", color=color.dark_gray,
               scale=(0.4, 0.02), position=(0, -0.45))
        self.power_bar_fill = Entity(parent=camera.ui, model="quad", color=color.orange,
                                     scale=(0.001, 0.02), position=(-0.2, -0.45, -0.01))

        camera.orthographic = True
        camera.fov = height + 2.0

    def _spawn(self, ent, depth):
        handle = self._next_handle
        self._next_handle += 1
        self.entities[handle] = ent
        self.depths[handle] = depth
        return handle

    def create_pocket_mesh(self, radius):
        ent = Entity(model="circle", color=color.black, scale=radius * 2)
        return self._spawn(ent, POCKET_DEPTH)

    def create_ball_mesh(self, radius):
        clr = BALL_COLORS[self._balls_created % len(BALL_COLORS)]
        self._balls_created += 1
        ent = Entity(model="circle", color=clr, scale=radius * 2)
        return self._spawn(ent, 0.0)

    def place_mesh(self, handle, x, y, z):
        ent = self.entities[handle]
        ent.position = (x, y, z + self.depths[handle])

    def destroy_mesh(self, handle):
        destroy(self.entities.pop(handle))
        self.depths.pop(handle, None)

    def update_progress_bar(self, progress):
        if not self.power_bar_fill:
            return
        w = progress * 0.4
        self.power_bar_fill.scale_x = max(w, 0.001)
        self.power_bar_fill.x = -0.2 + w / 2
        self.power_bar_fill.color = color.hsv(30 - progress * 30, 1.0, 1.0)


class UrsinaEngine(Engine):
    def set_target_fps(self, fps):
        clock = ClockObject.getGlobalClock()
        clock.setMode(ClockObject.MLimited)
        clock.setFrameRate(fps)


# ──────────────────────────────────────────
# App
# ──────────────────────────────────────────

app = Ursina(borderless=False, title="Pocket Billiards", size=(1280, 720))

scene = UrsinaScene()
driver = FrameDriver(scene, UrsinaEngine())
ctrl = driver.controller
driver.init()

status_text = Text(
    text="Hold left mouse to charge, release to shoot.  [R] Re-rack",
    position=(-0.85, 0.47),
    scale=1.0,
    color=color.light_gray,
)

sound_paths = {kind: _synth_tone(*spec) for kind, spec in SOUND_SPECS.items()}
sounds: dict[str, Audio] = {}


def _load_sounds():
    # Audio needs the running app, so load on the first frame
    if sounds:
        return
    for kind, path in sound_paths.items():
        sounds[kind] = Audio(str(path), autoplay=False, loop=False)


def _play_collision_sounds(events):
    for ev in events:
        snd = sounds.get(ev["type"])
        if snd is None:
            continue
        snd.volume = min(1.0, 0.2 + ev.get("speed", params.SHOT_IMPULSE) / params.SHOT_IMPULSE)
        snd.play()


# ──────────────────────────────────────────
# Input handler
# ──────────────────────────────────────────

_last_table_pos = (0.0, 0.0)


def _get_mouse_table_pos():
    global _last_table_pos
    if mouse.hovered_entity == scene.table_surface and mouse.world_point is not None:
        _last_table_pos = (mouse.world_point.x, mouse.world_point.y)
    return _last_table_pos


def input(key):
    if key == "left mouse down":
        driver.mouse_button_pressed(*_get_mouse_table_pos())
    elif key == "left mouse up":
        driver.mouse_button_released(*_get_mouse_table_pos())
    elif key == "r":
        ctrl.reset()


# ──────────────────────────────────────────
# Update loop
# ──────────────────────────────────────────

def update():
    _load_sounds()
    _get_mouse_table_pos()
    driver.update(ursina_time.dt)
    _play_collision_sounds(ctrl.physics_events)
    if ctrl.is_charging_shot:
        status_text.text = f"Power: {int(ctrl.shot_charge_progress * 100)}%"
    elif ctrl.engine.is_frozen():
        status_text.text = f"Rack #{ctrl.rack_count}: hold left mouse to charge, release to shoot."


# ──────────────────────────────────────────
# Run
# ──────────────────────────────────────────

if __name__ == "__main__":
    app.run()
