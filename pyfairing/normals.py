"""Area-weighted vertex normals."""
from __future__ import annotations

import logging

import numpy as np

from .halfedge import HalfEdgeMesh

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def vertex_normals(hem: HalfEdgeMesh) -> np.ndarray:
    """Unit vertex normals from area-weighted face normals.

    For every outgoing half-edge (v -> v_j) with apex v_a, the unnormalized
    face normal n = (v_j - v) x (v_a - v) is accumulated with weight
    0.5 * |n| (the triangle area), then the sum is normalized. Degenerate
    triangles contribute nothing; a vertex whose sum vanishes keeps a zero normal.

    Returns
    -------
    (n,3) float array
    """
    P = hem.positions
    v = P[hem.he_vertex]
    n_tri = np.cross(P[hem.he_head] - v, P[hem.he_apex] - v)
    area = 0.5 * np.linalg.norm(n_tri, axis=1)
    weighted = n_tri * area[:, None]

    acc = np.zeros_like(P)
    np.add.at(acc, hem.he_vertex, weighted)

    norms = np.linalg.norm(acc, axis=1)
    out = np.zeros_like(acc)
    ok = norms > 0.0
    out[ok] = acc[ok] / norms[ok, None]
    if not ok.all():
        logger.debug("Normals: %d vertices with vanishing normal sum", int(np.count_nonzero(~ok)))
    return out


def update_normals(hem: HalfEdgeMesh) -> np.ndarray:
    """Recompute ``hem.normals`` in place and return them."""
    hem.normals[:] = vertex_normals(hem)
    return hem.normals
