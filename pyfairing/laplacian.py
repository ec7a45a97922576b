from __future__ import annotations

import logging
import numpy as np
import scipy.sparse as sp

from .halfedge import HalfEdgeMesh

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# Incident area (and neighbour distance) below which a vertex is pinned.
DEGENERATE_EPS = 1e-4


def _face_areas(V: np.ndarray, F: np.ndarray) -> np.ndarray:
    v0 = V[F[:, 0]]
    v1 = V[F[:, 1]]
    v2 = V[F[:, 2]]
    return 0.5 * np.linalg.norm(np.cross(v1 - v0, v2 - v0), axis=1)


def cotangent(P: np.ndarray, Q: np.ndarray, R: np.ndarray) -> np.ndarray:
    """Cotangent of the angle at P between the rays to Q and R.

    cot = ((Q-P)·(R-P)) / |(Q-P) x (R-P)|, row-wise over (k,3) arrays.
    Zero-area triangles (vanishing cross product) give 0 instead of inf/nan.
    """
    u = np.atleast_2d(Q - P)
    v = np.atleast_2d(R - P)
    dot = np.einsum("ij,ij->i", u, v)
    cross = np.linalg.norm(np.cross(u, v), axis=1)
    out = np.zeros_like(dot)
    np.divide(dot, cross, out=out, where=cross > 0.0)
    return out


def halfedge_cotangents(hem: HalfEdgeMesh) -> np.ndarray:
    """cot of the angle opposite every half-edge inside its own face."""
    P = hem.positions
    return cotangent(P[hem.he_apex], P[hem.he_vertex], P[hem.he_head])


def cotangent_weights(hem: HalfEdgeMesh) -> np.ndarray:
    """Per half-edge weight ``cot(alpha) + cot(beta)``; equal on both halves of an edge."""
    c = halfedge_cotangents(hem)
    return c + c[hem.he_flip]


def incident_areas(hem: HalfEdgeMesh) -> np.ndarray:
    """A_i: summed area of the triangles around each vertex."""
    areas = _face_areas(hem.positions, hem.faces())
    return np.bincount(hem.he_vertex, weights=areas[hem.he_face], minlength=hem.n_vertices)


def degenerate_vertices(
    hem: HalfEdgeMesh, eps: float = DEGENERATE_EPS, *, areas: np.ndarray | None = None
) -> np.ndarray:
    """Boolean mask of vertices to pin.

    A vertex is degenerate when its incident area is below ``eps`` or when it
    lies within ``eps`` of one of its one-ring neighbours.
    """
    if areas is None:
        areas = incident_areas(hem)
    P = hem.positions
    lengths = np.linalg.norm(P[hem.he_head] - P[hem.he_vertex], axis=1)
    mask = areas < eps
    mask[hem.he_vertex[lengths < eps]] = True
    return mask


def cotangent_laplacian(
    hem: HalfEdgeMesh,
    *,
    eps: float = DEGENERATE_EPS,
    return_pinned: bool = False,
    verbose: bool = False,
) -> sp.csr_matrix | tuple[sp.csr_matrix, np.ndarray]:
    """Build the discrete Laplace-Beltrami operator L of a half-edge mesh.

    L(i,j) = (cot alpha_ij + cot beta_ij) / (2 A_i) for each one-ring neighbour j,
    L(i,i) = -sum_{j!=i} L(i,j),

    where A_i is the incident triangle area of vertex i. Rows of degenerate
    vertices (see :func:`degenerate_vertices`) are all zero. L is not
    symmetric; ``L[i,j] * A_i == L[j,i] * A_j`` holds for non-degenerate rows.

    Parameters
    ----------
    hem : HalfEdgeMesh
    eps : float, default 1e-4
        Degeneracy threshold.
    return_pinned : bool, default False
        Also return the boolean mask of degenerate (zero-row) vertices.

    Returns
    -------
    L : (n,n) csr_matrix
    pinned : (n,) bool array, only when ``return_pinned`` is True
    """
    n = hem.n_vertices
    if verbose:
        logger.info("Building cotangent Laplacian for %d vertices, %d faces", n, hem.n_faces)

    A = incident_areas(hem)
    pinned = degenerate_vertices(hem, eps, areas=A)
    scale = np.zeros(n, dtype=float)
    scale[~pinned] = 1.0 / (2.0 * A[~pinned])

    # Walking every one-ring visits each half-edge once as (i -> j), so the
    # off-diagonal pattern is exactly the half-edge list: nnz = H + n.
    i = hem.he_vertex
    j = hem.he_head
    off = cotangent_weights(hem) * scale[i]
    diag = -np.bincount(i, weights=off, minlength=n)

    rows = np.concatenate([i, np.arange(n)])
    cols = np.concatenate([j, np.arange(n)])
    data = np.concatenate([off, diag])
    L = sp.coo_matrix((data, (rows, cols)), shape=(n, n)).tocsr()

    if pinned.any():
        logger.debug("Laplacian: %d degenerate vertices pinned", int(pinned.sum()))
    if verbose:
        logger.info("Laplacian built: nnz=%d", L.nnz)
    if return_pinned:
        return L, pinned
    return L
