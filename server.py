"""
Pool Web Server — Layer 3 (FastAPI + WebSocket)

Runs the frame driver against a headless EventScene and streams the mesh
commands to browser clients, which draw them on a canvas.
"""

import asyncio
import json
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

import params
from driver import FrameDriver
from scene import EventEngine, EventScene

STATIC_DIR = Path(__file__).parent / "static"

# ── Driver ──────────────────────────────────────────────────────────────────

scene = EventScene()
engine = EventEngine()
driver = FrameDriver(scene, engine)
driver.init()
ctrl = driver.controller


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(game_loop())
    yield
    task.cancel()


app = FastAPI(lifespan=lifespan)

clients: list[WebSocket] = []

# ── Physics params (live-editable attributes of params.py) ──────────────────

PHYSICS_PARAMS = [
    ("FRICTION",         "Friction",     0.0,  0.2,  0.005),
    ("GRAVITY",          "Gravity",      1.0, 20.0,  0.2),
    ("SHOT_IMPULSE",     "Impulse",      1.0, 20.0,  0.5),
    ("SHOT_CHARGE_TIME", "Charge Time",  0.2,  5.0,  0.1),
]

PARAM_DEFAULTS = {attr: getattr(params, attr) for attr, *_ in PHYSICS_PARAMS}

# ── Async game loop ─────────────────────────────────────────────────────────

FRAME_DT = 1.0 / params.TARGET_FPS


async def game_loop():
    """Main game loop running at the engine's target fps."""
    last_time = time.perf_counter()

    while True:
        now = time.perf_counter()
        dt = now - last_time
        last_time = now

        # Clamp dt to avoid spiral-of-death
        if dt > 0.05:
            dt = 0.05

        driver.update(dt)

        frame_msg = _build_frame_message()
        if clients:
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)

        target_dt = 1.0 / (engine.target_fps or params.TARGET_FPS)
        sleep_time = target_dt - (time.perf_counter() - now)
        if sleep_time > 0:
            await asyncio.sleep(sleep_time)
        else:
            await asyncio.sleep(0)


def _build_frame_message() -> str:
    """Serialize current state into a JSON frame message, draining scene commands."""
    sounds = []
    for ev in ctrl.physics_events:
        sounds.append({
            "type": ev["type"],
            "speed": round(float(ev.get("speed", 0.0)), 3),
        })

    frame = {
        "type": "frame",
        "events": scene.drain(),
        "sounds": sounds,
        "progress": round(scene.progress, 4),
        "charging": ctrl.is_charging_shot,
        "balls": [[round(float(x), 5), round(float(y), 5)] for x, y in ctrl.positions],
    }
    return json.dumps(frame, separators=(',', ':'))


def _init_message() -> str:
    return json.dumps({
        "type": "init",
        "table_width": params.TABLE_WIDTH,
        "table_height": params.TABLE_HEIGHT,
        "ball_radius": params.BALL_RADIUS,
        "pocket_radius": params.POCKET_RADIUS,
        "target_fps": engine.target_fps,
    })


def _snapshot_message() -> str:
    return json.dumps({
        "type": "frame",
        "events": scene.snapshot_events(),
        "sounds": [],
        "progress": round(scene.progress, 4),
        "charging": ctrl.is_charging_shot,
        "balls": [[round(float(x), 5), round(float(y), 5)] for x, y in ctrl.positions],
    })


# ── Physics params helpers ──────────────────────────────────────────────────

def _get_params_data() -> list:
    """Return all physics params with current values."""
    result = []
    for attr, label, mn, mx, step in PHYSICS_PARAMS:
        result.append({
            "attr": attr, "label": label,
            "value": round(getattr(params, attr), 6),
            "min": mn, "max": mx, "step": step,
        })
    return result


def _handle_command(msg: dict) -> dict | None:
    """Apply one client command; return a reply message or None."""
    cmd = msg.get("cmd", "")
    if cmd == "mouse_down":
        driver.mouse_button_pressed(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)))
    elif cmd == "mouse_up":
        driver.mouse_button_released(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)))
    elif cmd == "reset":
        ctrl.reset()
    elif cmd == "get_params":
        return {"type": "params", "data": _get_params_data()}
    elif cmd == "adjust_param":
        idx = int(msg.get("index", 0))
        direction = int(msg.get("direction", 0))
        fine = msg.get("fine", False)
        if 0 <= idx < len(PHYSICS_PARAMS):
            attr, label, mn, mx, step = PHYSICS_PARAMS[idx]
            s = step / 10.0 if fine else step
            cur = getattr(params, attr)
            new_val = max(mn, min(mx, cur + direction * s))
            setattr(params, attr, new_val)
            return {"type": "param_update", "index": idx, "value": round(new_val, 6)}
    elif cmd == "reset_params":
        for attr, dflt in PARAM_DEFAULTS.items():
            setattr(params, attr, dflt)
        return {"type": "params", "data": _get_params_data()}
    return None


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)
    print(f"[WS] client connected ({len(clients)} total)")

    await ws.send_text(_init_message())
    await ws.send_text(_snapshot_message())

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue
            reply = _handle_command(msg)
            if reply is not None:
                await ws.send_text(json.dumps(reply))
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)
        print(f"[WS] client disconnected ({len(clients)} left)")


# ── Static files + root route ───────────────────────────────────────────────

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/")
async def root():
    return FileResponse(STATIC_DIR / "index.html")


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
