"""Run-time settings for the smoothing pipeline and the viewer."""
from __future__ import annotations

from dataclasses import dataclass

from .laplacian import DEGENERATE_EPS

# milliseconds between smoothing generations once smoothing has started
FRAME_INTERVAL_MS = 1000


@dataclass
class FairingConfig:
    h: float = 1e-2
    degenerate_eps: float = DEGENERATE_EPS
    reuse_pattern: bool = True

    def __post_init__(self):
        if not self.h > 0:
            raise ValueError(f"time step h must be positive, got {self.h!r}")
        if not self.degenerate_eps >= 0:
            raise ValueError(f"degenerate_eps must be non-negative, got {self.degenerate_eps!r}")


@dataclass
class ViewerConfig:
    xres: int = 800
    yres: int = 800
    frame_interval_ms: int = FRAME_INTERVAL_MS
    smoothing_key: str = " "
    wireframe_key: str = "t"
    quit_key: str = "q"
    pan_keys: str = "wasd"  # forward, left, back, right
    step_size: float = 0.2
    drag_degrees: float = 90.0  # yaw/pitch for a full-width right-button drag

    def __post_init__(self):
        if self.xres <= 0 or self.yres <= 0:
            raise ValueError("xres and yres must be positive integers")
        if self.frame_interval_ms <= 0:
            raise ValueError("frame_interval_ms must be positive")
        if len(self.pan_keys) != 4:
            raise ValueError("pan_keys must name exactly four keys")
