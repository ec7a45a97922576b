"""Arcball rotation with unit quaternions stored as ``(w, x, y, z)`` arrays."""
from __future__ import annotations

import math

import numpy as np

IDENTITY = np.array([1.0, 0.0, 0.0, 0.0])


def multiply(qa: np.ndarray, qb: np.ndarray) -> np.ndarray:
    """Hamilton product ``qa * qb``."""
    wa, va = qa[0], qa[1:]
    wb, vb = qb[0], qb[1:]
    w = wa * wb - va.dot(vb)
    v = wa * vb + wb * va + np.cross(va, vb)
    return np.concatenate([[w], v])


def rotation_matrix(q: np.ndarray) -> np.ndarray:
    """4x4 homogeneous rotation matrix of a unit quaternion."""
    w, x, y, z = q
    R = np.eye(4)
    R[:3, :3] = [
        [1 - 2 * y * y - 2 * z * z, 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * x * x - 2 * z * z, 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * x * x - 2 * y * y],
    ]
    return R


def screen_to_ndc(x: float, y: float, width: int, height: int) -> tuple[float, float]:
    """Pixel coordinates (origin top-left) to [-1, 1] with y up."""
    return 2.0 * x / width - 1.0, 1.0 - 2.0 * y / height


def sphere_point(nx: float, ny: float) -> np.ndarray:
    """Lift an NDC point onto the unit hemisphere facing the viewer (z = 0 outside it)."""
    squared = nx * nx + ny * ny
    nz = 0.0 if squared > 1.0 else math.sqrt(1.0 - squared)
    return np.array([nx, ny, nz])


def rotation_between(start: np.ndarray, curr: np.ndarray) -> np.ndarray:
    """Quaternion rotating direction ``start`` onto ``curr``."""
    ns, nc = np.linalg.norm(start), np.linalg.norm(curr)
    if ns == 0.0 or nc == 0.0:
        return IDENTITY.copy()
    theta = math.acos(min(1.0, float(start.dot(curr)) / (ns * nc)))
    axis = np.cross(start, curr)
    na = np.linalg.norm(axis)
    if na < 1e-12:
        return IDENTITY.copy()
    u = axis / na
    return np.concatenate([[math.cos(0.5 * theta)], u * math.sin(0.5 * theta)])


class ArcBall:
    """Mouse-driven rotation: press, drag, release.

    The rotation shown while dragging is ``last * curr``; on release it is
    folded into ``last``.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.last = IDENTITY.copy()
        self.curr = IDENTITY.copy()
        self._start: np.ndarray | None = None

    def resize(self, width: int, height: int) -> None:
        self.width = max(1, int(width))
        self.height = max(1, int(height))

    def press(self, x: float, y: float) -> None:
        self._start = sphere_point(*screen_to_ndc(x, y, self.width, self.height))

    def drag(self, x: float, y: float) -> None:
        if self._start is None:
            return
        curr = sphere_point(*screen_to_ndc(x, y, self.width, self.height))
        self.curr = rotation_between(self._start, curr)

    def release(self) -> None:
        self.last = multiply(self.last, self.curr)
        self.last /= np.linalg.norm(self.last)
        self.curr = IDENTITY.copy()
        self._start = None

    @property
    def dragging(self) -> bool:
        return self._start is not None

    def matrix(self) -> np.ndarray:
        return rotation_matrix(multiply(self.last, self.curr))
