"""Interactive matplotlib viewer for a smoothing scene.

Space starts smoothing (one generation every ``frame_interval_ms``; there is
no stop), ``w/a/s/d`` walk the camera in the xz-plane, ``t`` toggles
wireframe and ``q`` closes the window. Dragging with the left button rotates
the scene through the arcball; the right button turns the view.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, Optional

import numpy as np

from .arcball import ArcBall
from .config import ViewerConfig
from .errors import SolverSingularError
from .pipeline import SceneObject, smooth_all
from .render import draw_frame, render_objects
from .scene import Scene

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def pan_camera(position: np.ndarray, direction: str, step: float, yaw_deg: float) -> np.ndarray:
    """Camera position after one step ``forward|left|back|right`` at the given view yaw."""
    x_view = math.radians(yaw_deg)
    s, c = step * math.sin(x_view), step * math.cos(x_view)
    dx, dz = {
        "forward": (s, -c),
        "left": (-c, -s),
        "back": (-s, c),
        "right": (c, s),
    }[direction]
    out = np.array(position, dtype=float)
    out[0] += dx
    out[2] += dz
    return out


class Viewer:
    """Owns the figure, the camera state and the smoothing timer for one scene."""

    def __init__(
        self,
        scene: Scene,
        objects: Dict[str, SceneObject],
        h: float,
        config: Optional[ViewerConfig] = None,
        *,
        log: Optional[logging.Logger] = None,
    ):
        self.scene = scene
        self.objects = objects
        self.h = h
        self.config = config or ViewerConfig()
        self.log = log or logger
        self.arcball = ArcBall(self.config.xres, self.config.yres)
        self.yaw = 0.0
        self.pitch = 0.0
        self.wireframe = False
        self.smoothing = False
        self.fig = None
        self.ax = None
        self._timer = None
        self._turn_from = None
        self._pan = dict(zip(self.config.pan_keys, ("forward", "left", "back", "right")))

    # ------------------------------------------------------------------
    def generation(self) -> bool:
        """Smooth every object once; on a solver failure, log it and stop smoothing."""
        try:
            smooth_all(self.objects, self.h)
        except SolverSingularError as e:
            self.log.error("Smoothing stopped: %s", e)
            self.smoothing = False
            return False
        return True

    def frame(self):
        return render_objects(
            self.objects,
            self.scene.camera,
            self.scene.lights,
            scene_rotation=self.arcball.matrix(),
            yaw_deg=self.yaw,
            pitch_deg=self.pitch,
        )

    def redraw(self) -> None:
        if self.ax is None:
            return
        draw_frame(self.ax, self.frame(), wireframe=self.wireframe)
        self.fig.canvas.draw_idle()

    # ------------------------------------------------------------------
    def on_key(self, event) -> None:
        key = event.key
        cfg = self.config
        if key == cfg.quit_key:
            self.close()
            return
        if key == cfg.wireframe_key:
            self.wireframe = not self.wireframe
        elif key == cfg.smoothing_key or (cfg.smoothing_key == " " and key == "space"):
            if not self.smoothing:
                self.log.info("Smoothing started (h=%g)", self.h)
            self.smoothing = True
        elif key in self._pan:
            cam = self.scene.camera
            cam.position = pan_camera(cam.position, self._pan[key], cfg.step_size, self.yaw)
        else:
            return
        self.redraw()

    def _pixel(self, event):
        # matplotlib puts the origin at the bottom-left corner
        return event.x, self.arcball.height - event.y

    def on_press(self, event) -> None:
        if event.x is None or event.y is None:
            return
        if event.button == 1:
            self.arcball.press(*self._pixel(event))
        elif event.button == 3:
            self._turn_from = (event.x, event.y, self.yaw, self.pitch)

    def on_motion(self, event) -> None:
        if event.x is None or event.y is None:
            return
        if self.arcball.dragging:
            self.arcball.drag(*self._pixel(event))
            self.redraw()
        elif self._turn_from is not None:
            x0, y0, yaw0, pitch0 = self._turn_from
            scale = self.config.drag_degrees
            self.yaw = yaw0 + scale * (event.x - x0) / self.arcball.width
            self.pitch = pitch0 - scale * (event.y - y0) / self.arcball.height
            self.redraw()

    def on_release(self, event) -> None:
        if event.button == 1 and self.arcball.dragging:
            self.arcball.release()
            self.redraw()
        elif event.button == 3:
            self._turn_from = None

    def on_resize(self, event) -> None:
        self.arcball.resize(event.width, event.height)

    def on_timer(self) -> None:
        if self.smoothing and self.generation():
            self.redraw()

    # ------------------------------------------------------------------
    def open(self):
        """Create the figure, hook up the callbacks and start the timer."""
        import matplotlib.pyplot as plt

        taken = set(self.config.pan_keys) | {
            self.config.quit_key, self.config.wireframe_key, self.config.smoothing_key
        }
        for name in [k for k in plt.rcParams if k.startswith("keymap.")]:
            plt.rcParams[name] = [k for k in plt.rcParams[name] if k not in taken]

        dpi = 100
        self.fig = plt.figure(figsize=(self.config.xres / dpi, self.config.yres / dpi), dpi=dpi)
        self.fig.patch.set_facecolor("black")
        self.ax = self.fig.add_axes([0, 0, 1, 1])
        self.ax.set_facecolor("black")
        canvas = self.fig.canvas
        canvas.mpl_connect("key_press_event", self.on_key)
        canvas.mpl_connect("button_press_event", self.on_press)
        canvas.mpl_connect("motion_notify_event", self.on_motion)
        canvas.mpl_connect("button_release_event", self.on_release)
        canvas.mpl_connect("resize_event", self.on_resize)
        self._timer = canvas.new_timer(interval=self.config.frame_interval_ms)
        self._timer.add_callback(self.on_timer)
        self._timer.start()
        self.redraw()
        return self.fig

    def close(self) -> None:
        import matplotlib.pyplot as plt

        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        if self.fig is not None:
            plt.close(self.fig)
            self.fig = None
            self.ax = None

    def show(self) -> None:
        """Open the window and block until it is closed."""
        import matplotlib.pyplot as plt

        self.open()
        plt.show()
        self.close()
