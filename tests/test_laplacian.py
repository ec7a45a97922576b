import numpy as np
import scipy.sparse as sp
import trimesh as tm

from pyfairing.halfedge import HalfEdgeMesh
from pyfairing.laplacian import (
    cotangent,
    cotangent_laplacian,
    cotangent_weights,
    degenerate_vertices,
    incident_areas,
)
from pyfairing.mesh import Mesh, example_mesh


def _degenerate_cube():
    mesh = example_mesh("cube")
    V = mesh.vertices.copy()
    V[3] = V[2]
    return Mesh(V, mesh.faces)


def test_cotangent_values():
    P = np.zeros((3, 3))
    Q = np.array([[1.0, 0, 0], [1.0, 0, 0], [1.0, 0, 0]])
    R = np.array([[0.0, 1, 0], [1.0, 1, 0], [2.0, 0, 0]])
    c = cotangent(P, Q, R)
    # right angle, 45 degrees, collinear
    assert np.allclose(c, [0.0, 1.0, 0.0])
    assert np.all(np.isfinite(c))


def test_laplacian_basic_properties():
    mesh = tm.creation.icosphere(subdivisions=2)
    hem = HalfEdgeMesh.from_mesh(Mesh.from_trimesh(mesh))

    L = cotangent_laplacian(hem)
    assert sp.isspmatrix_csr(L)
    assert L.shape == (hem.n_vertices, hem.n_vertices)

    # Row-sum should be ~0
    rowsum = np.array(L.sum(axis=1)).ravel()
    assert np.allclose(rowsum, 0.0, atol=1e-8)

    # L * A is symmetric
    A = incident_areas(hem)
    S = sp.diags(A) @ L
    assert abs(S - S.T).max() < 1e-10

    # weights agree on both halves of each edge
    w = cotangent_weights(hem)
    assert np.allclose(w, w[hem.he_flip])


def test_cube_laplacian_entries():
    hem = HalfEdgeMesh.from_mesh(example_mesh("cube"))
    A = incident_areas(hem)
    assert np.allclose(A[[1, 2, 4, 7]], 12.0)
    assert np.allclose(A[[0, 3, 5, 6]], 6.0)

    L = cotangent_laplacian(hem).toarray()
    # cube edge 0-1: weight 2, scaled by 1/(2 A_i)
    assert np.isclose(L[1, 0], 1.0 / 12.0)
    assert np.isclose(L[0, 1], 1.0 / 6.0)
    # face diagonal 1-2 is opposite two right angles
    assert np.isclose(L[1, 2], 0.0)
    assert np.isclose(L[1, 1], -0.25)
    assert np.isclose(L[0, 0], -0.5)
    # no entries between vertices that share no edge
    assert L[0, 7] == 0.0


def test_degenerate_rows_are_zero():
    hem = HalfEdgeMesh.from_mesh(_degenerate_cube())
    mask = degenerate_vertices(hem)
    assert mask.tolist() == [False, False, True, True, False, False, False, False]

    L, pinned = cotangent_laplacian(hem, return_pinned=True)
    assert np.array_equal(pinned, mask)
    dense = L.toarray()
    assert np.all(dense[2] == 0.0)
    assert np.all(dense[3] == 0.0)
    assert np.all(np.isfinite(dense))
    rowsum = dense.sum(axis=1)
    assert np.allclose(rowsum, 0.0, atol=1e-12)


def test_small_area_vertex_is_degenerate():
    mesh = example_mesh("tetrahedron")
    hem = HalfEdgeMesh.from_mesh(Mesh(mesh.vertices * 1e-3, mesh.faces))
    # every triangle now has area ~1e-5, so A_i < 1e-4 everywhere
    assert degenerate_vertices(hem).all()
    L = cotangent_laplacian(hem)
    assert L.count_nonzero() == 0
