"""Half-edge connectivity for closed, orientable triangle meshes.

The structure is stored as index arenas rather than linked objects:

    - per vertex: ``positions``, ``normals`` and ``vertex_out`` (one outgoing half-edge),
    - per face: ``face_halfedge`` (one bounding half-edge),
    - per half-edge: ``he_vertex`` (tail), ``he_next``, ``he_flip`` and ``he_face``.

Half-edges of face ``f`` are ``3f``, ``3f+1`` and ``3f+2``, in the winding
order of the input triangle. Connectivity is fixed after construction; only
``positions`` and ``normals`` are mutated by smoothing.
"""
from __future__ import annotations

import logging
from typing import Iterator

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import connected_components

from .errors import MeshBadWindingError, MeshNotManifoldError
from .mesh import Mesh

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _edge_str(key: int, n: int) -> str:
    return f"({key // n}, {key % n})"


class HalfEdgeMesh:
    """Half-edge view of a closed manifold triangle mesh.

    Use :meth:`from_mesh` to build one from an indexed triangle list.

    Raises
    ------
    MeshNotManifoldError
        When a face repeats a vertex or points past the vertex list, when an
        edge belongs to one face or to more than two faces, when a vertex is
        referenced by no face, or when the faces around a vertex do not form
        a single fan.
    MeshBadWindingError
        When two faces traverse their shared edge in the same direction.
    """

    def __init__(
        self,
        positions: np.ndarray,
        he_vertex: np.ndarray,
        he_next: np.ndarray,
        he_flip: np.ndarray,
        he_face: np.ndarray,
        vertex_out: np.ndarray,
        face_halfedge: np.ndarray,
    ):
        self.positions = np.asarray(positions, dtype=np.float64)
        self.normals = np.zeros_like(self.positions)
        self.he_vertex = he_vertex
        self.he_next = he_next
        self.he_flip = he_flip
        self.he_face = he_face
        self.vertex_out = vertex_out
        self.face_halfedge = face_halfedge

    @classmethod
    def from_mesh(cls, mesh: Mesh, *, verbose: bool = False) -> "HalfEdgeMesh":
        V = np.asarray(mesh.vertices, dtype=np.float64)
        F = np.asarray(mesh.faces, dtype=np.int64)
        n = V.shape[0]
        m = F.shape[0]

        if m == 0:
            raise MeshNotManifoldError("mesh has no faces")
        if F.min() < 0 or F.max() >= n:
            raise MeshNotManifoldError(f"face indices must lie in [0, {n})")
        if np.any((F[:, 0] == F[:, 1]) | (F[:, 1] == F[:, 2]) | (F[:, 2] == F[:, 0])):
            bad = int(np.flatnonzero((F[:, 0] == F[:, 1]) | (F[:, 1] == F[:, 2]) | (F[:, 2] == F[:, 0]))[0])
            raise MeshNotManifoldError(f"face #{bad} contains duplicate vertices")

        H = 3 * m
        ids = np.arange(H, dtype=np.int64).reshape(m, 3)
        he_vertex = F.reshape(-1).copy()
        he_head = F[:, [1, 2, 0]].reshape(-1)
        he_next = ids[:, [1, 2, 0]].reshape(-1)
        he_face = np.repeat(np.arange(m, dtype=np.int64), 3)
        face_halfedge = ids[:, 0].copy()

        # Pair flips through the unordered vertex pair of each half-edge.
        lo = np.minimum(he_vertex, he_head)
        hi = np.maximum(he_vertex, he_head)
        ukey = lo * n + hi
        uniq, counts = np.unique(ukey, return_counts=True)
        if np.any(counts > 2):
            k = int(np.flatnonzero(counts > 2)[0])
            raise MeshNotManifoldError(f"edge {_edge_str(int(uniq[k]), n)} is shared by {counts[k]} faces")

        dkey = he_vertex * n + he_head
        duniq, dcounts = np.unique(dkey, return_counts=True)
        if np.any(dcounts > 1):
            k = int(np.flatnonzero(dcounts > 1)[0])
            raise MeshBadWindingError(
                f"edge {_edge_str(int(duniq[k]), n)} is traversed twice in the same direction"
            )
        if np.any(counts == 1):
            k = int(np.flatnonzero(counts == 1)[0])
            raise MeshNotManifoldError(
                f"edge {_edge_str(int(uniq[k]), n)} belongs to a single face; the mesh is not closed"
            )

        # every key occurs exactly twice, so sorted keys come in adjacent pairs
        order = np.argsort(ukey, kind="stable")
        first, second = order[0::2], order[1::2]
        he_flip = np.empty(H, dtype=np.int64)
        he_flip[first] = second
        he_flip[second] = first

        vertex_out = np.full(n, -1, dtype=np.int64)
        vertex_out[he_vertex] = np.arange(H, dtype=np.int64)
        if np.any(vertex_out < 0):
            v = int(np.flatnonzero(vertex_out < 0)[0])
            raise MeshNotManifoldError(f"vertex #{v} is not referenced by any face")

        hem = cls(V.copy(), he_vertex, he_next, he_flip, he_face, vertex_out, face_halfedge)
        hem._check_vertex_fans()
        if verbose:
            logger.info("Half-edge mesh built: %d vertices, %d faces, %d half-edges", n, m, H)
        return hem

    def _check_vertex_fans(self) -> None:
        """Each vertex's outgoing half-edges must form one cycle of ``h -> next[flip[h]]``."""
        H = self.n_halfedges
        rotate = self.he_next[self.he_flip]
        graph = sp.csr_matrix((np.ones(H), (np.arange(H), rotate)), shape=(H, H))
        ncomp, labels = connected_components(graph, directed=True, connection="weak")
        if ncomp == self.n_vertices:
            return
        pairs = np.unique(np.stack([self.he_vertex, labels], axis=1), axis=0)
        fans = np.bincount(pairs[:, 0], minlength=self.n_vertices)
        v = int(np.flatnonzero(fans > 1)[0])
        raise MeshNotManifoldError(f"vertex #{v} is non-manifold ({fans[v]} separate fans)")

    # ------------------------------------------------------------------
    # sizes and derived arrays
    # ------------------------------------------------------------------

    @property
    def n_vertices(self) -> int:
        return int(self.positions.shape[0])

    @property
    def n_faces(self) -> int:
        return int(self.face_halfedge.shape[0])

    @property
    def n_halfedges(self) -> int:
        return int(self.he_vertex.shape[0])

    @property
    def vertex_index(self) -> np.ndarray:
        """Sequential vertex indices ``0..n-1``."""
        return np.arange(self.n_vertices, dtype=np.int64)

    @property
    def he_head(self) -> np.ndarray:
        """Destination vertex of every half-edge."""
        return self.he_vertex[self.he_next]

    @property
    def he_apex(self) -> np.ndarray:
        """Vertex opposite every half-edge within its own face."""
        return self.he_vertex[self.he_next[self.he_next]]

    def faces(self) -> np.ndarray:
        """(m,3) vertex triples in face order, read back from the half-edges."""
        h0 = self.face_halfedge
        h1 = self.he_next[h0]
        h2 = self.he_next[h1]
        return np.stack([self.he_vertex[h0], self.he_vertex[h1], self.he_vertex[h2]], axis=1)

    def valences(self) -> np.ndarray:
        return np.bincount(self.he_vertex, minlength=self.n_vertices)

    # ------------------------------------------------------------------
    # one-ring traversal
    # ------------------------------------------------------------------

    def one_ring(self, v: int) -> Iterator[int]:
        """Yield the outgoing half-edges of vertex ``v``, starting at ``vertex_out[v]``."""
        start = int(self.vertex_out[v])
        h = start
        for _ in range(self.n_halfedges):
            yield h
            h = int(self.he_next[self.he_flip[h]])
            if h == start:
                return
        raise RuntimeError(f"halfedge structure seems corrupt: one-ring of vertex #{v} does not close")

    def neighbors(self, v: int) -> np.ndarray:
        return np.array([self.he_vertex[self.he_next[h]] for h in self.one_ring(v)], dtype=np.int64)

    def valence(self, v: int) -> int:
        return sum(1 for _ in self.one_ring(v))

    # ------------------------------------------------------------------
    # housekeeping
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check the connectivity invariants.

        Raises
        ------
        RuntimeError
            If any invariant is violated.
        """
        h = np.arange(self.n_halfedges)
        nxt = self.he_next
        flip = self.he_flip
        if not np.array_equal(nxt[nxt[nxt]], h):
            raise RuntimeError("halfedge structure seems corrupt: face cycles are not triangles")
        if not np.array_equal(flip[flip], h):
            raise RuntimeError("halfedge structure seems corrupt: flip is not an involution")
        if not np.array_equal(self.he_vertex[flip], self.he_vertex[nxt]):
            raise RuntimeError("halfedge structure seems corrupt: flip does not reverse its edge")
        if not np.array_equal(self.he_vertex[self.vertex_out], self.vertex_index):
            raise RuntimeError("halfedge structure seems corrupt: vertex_out does not leave its vertex")
        if not np.array_equal(self.he_face[self.face_halfedge], np.arange(self.n_faces)):
            raise RuntimeError("halfedge structure seems corrupt: face_halfedge does not bound its face")
        if not np.array_equal(self.he_face[nxt], self.he_face):
            raise RuntimeError("halfedge structure seems corrupt: next leaves the face")

    def copy(self) -> "HalfEdgeMesh":
        other = HalfEdgeMesh(
            self.positions.copy(),
            self.he_vertex.copy(),
            self.he_next.copy(),
            self.he_flip.copy(),
            self.he_face.copy(),
            self.vertex_out.copy(),
            self.face_halfedge.copy(),
        )
        other.normals = self.normals.copy()
        return other

    def to_mesh(self) -> Mesh:
        return Mesh(self.positions.copy(), self.faces())
