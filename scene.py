"""
Scene and engine capability interfaces.

The core never touches a renderer directly: it creates, places and destroys
meshes through a ``Scene`` and sets the frame rate through an ``Engine``.
``EventScene`` / ``EventEngine`` are the headless implementations used by the
tests and the WebSocket server; every call becomes a rendering-command dict in
``pending_events`` that a front end drains each frame.
"""

from abc import ABC, abstractmethod


class Scene(ABC):
    """Rendering collaborator consumed by the table and the frame driver."""

    @abstractmethod
    def setup_background(self, width: float, height: float) -> None: ...

    @abstractmethod
    def create_pocket_mesh(self, radius: float): ...

    @abstractmethod
    def create_ball_mesh(self, radius: float): ...

    @abstractmethod
    def place_mesh(self, handle, x: float, y: float, z: float) -> None: ...

    @abstractmethod
    def destroy_mesh(self, handle) -> None: ...

    @abstractmethod
    def update_progress_bar(self, progress: float) -> None: ...


class Engine(ABC):
    """Main-loop collaborator."""

    @abstractmethod
    def set_target_fps(self, fps: int) -> None: ...


class EventScene(Scene):
    """Headless scene: integer handles plus a queue of rendering commands.

    The queue holds at most one pending ``place`` per handle, and a mesh
    created and destroyed between two drains leaves nothing behind, so it
    stays bounded by the number of meshes however long nobody drains it.
    """

    def __init__(self):
        self.meshes: dict[int, dict] = {}
        self.pending_events: list[dict] = []
        self.background: tuple[float, float] | None = None
        self.progress: float = 0.0
        self._next_handle = 1
        self._pending_spawn: dict[int, dict] = {}
        self._pending_place: dict[int, dict] = {}

    def setup_background(self, width: float, height: float) -> None:
        self.background = (width, height)
        self.pending_events = [ev for ev in self.pending_events if ev["type"] != "background"]
        self.pending_events.append({"type": "background", "width": width, "height": height})

    def _create(self, kind: str, radius: float) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self.meshes[handle] = {"kind": kind, "radius": radius, "pos": (0.0, 0.0, 0.0)}
        ev = {"type": "spawn", "id": handle, "kind": kind, "radius": radius}
        self._pending_spawn[handle] = ev
        self.pending_events.append(ev)
        return handle

    def create_pocket_mesh(self, radius: float) -> int:
        return self._create("pocket", radius)

    def create_ball_mesh(self, radius: float) -> int:
        return self._create("ball", radius)

    def place_mesh(self, handle, x: float, y: float, z: float) -> None:
        assert handle in self.meshes, f"place_mesh: unknown handle {handle!r}"
        pos = (float(x), float(y), float(z))
        self.meshes[handle]["pos"] = pos
        ev = self._pending_place.get(handle)
        if ev is not None:
            ev["pos"] = list(pos)
            return
        ev = {"type": "place", "id": handle, "pos": list(pos)}
        self._pending_place[handle] = ev
        self.pending_events.append(ev)

    def destroy_mesh(self, handle) -> None:
        assert handle in self.meshes, f"destroy_mesh: unknown handle {handle!r}"
        del self.meshes[handle]
        spawn = self._pending_spawn.pop(handle, None)
        place = self._pending_place.pop(handle, None)
        self.pending_events = [ev for ev in self.pending_events
                               if ev is not spawn and ev is not place]
        if spawn is not None:
            return  # spawned since the last drain, clients never saw it
        self.pending_events.append({"type": "destroy", "id": handle})

    def update_progress_bar(self, progress: float) -> None:
        # Called every tick; kept as state rather than queued.
        self.progress = float(progress)

    def snapshot_events(self) -> list[dict]:
        """Spawn + place commands that rebuild the current scene from scratch."""
        events = []
        if self.background is not None:
            w, h = self.background
            events.append({"type": "background", "width": w, "height": h})
        for handle, mesh in self.meshes.items():
            events.append({"type": "spawn", "id": handle,
                           "kind": mesh["kind"], "radius": mesh["radius"]})
            events.append({"type": "place", "id": handle, "pos": list(mesh["pos"])})
        return events

    def drain(self) -> list[dict]:
        events = self.pending_events
        self.pending_events = []
        self._pending_spawn.clear()
        self._pending_place.clear()
        return events


class EventEngine(Engine):
    def __init__(self):
        self.target_fps: int | None = None

    def set_target_fps(self, fps: int) -> None:
        self.target_fps = int(fps)
