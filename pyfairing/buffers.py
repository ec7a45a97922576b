"""Face-by-face draw arrays consumed by the renderer."""
from __future__ import annotations

import numpy as np


def allocate_draw_buffers(n_faces: int) -> tuple[np.ndarray, np.ndarray]:
    """Empty ``(3*n_faces, 3)`` vertex and normal buffers."""
    return np.zeros((3 * n_faces, 3), dtype=np.float64), np.zeros((3 * n_faces, 3), dtype=np.float64)


def fill_draw_buffers(
    positions: np.ndarray,
    normals: np.ndarray,
    faces: np.ndarray,
    vertex_buffer: np.ndarray,
    normal_buffer: np.ndarray,
) -> None:
    """Rewrite both buffers in place.

    Row ``3f + k`` holds vertex ``faces[f, k]``, so the buffers follow the
    input face order exactly.
    """
    idx = np.asarray(faces).reshape(-1)
    if vertex_buffer.shape != (idx.shape[0], 3) or normal_buffer.shape != (idx.shape[0], 3):
        raise ValueError(f"draw buffers must have shape ({idx.shape[0]}, 3)")
    np.take(positions, idx, axis=0, out=vertex_buffer)
    np.take(normals, idx, axis=0, out=normal_buffer)
