import numpy as np
import trimesh as tm

from pyfairing.halfedge import HalfEdgeMesh
from pyfairing.mesh import Mesh, example_mesh
from pyfairing.normals import update_normals, vertex_normals


def test_normals_unit_length_and_radial_on_sphere():
    mesh = tm.creation.icosphere(subdivisions=2)
    hem = HalfEdgeMesh.from_mesh(Mesh.from_trimesh(mesh))
    N = vertex_normals(hem)

    assert N.shape == (hem.n_vertices, 3)
    assert np.allclose(np.linalg.norm(N, axis=1), 1.0, atol=1e-5)
    radial = hem.positions / np.linalg.norm(hem.positions, axis=1, keepdims=True)
    assert np.all(np.einsum("ij,ij->i", N, radial) > 0.99)


def test_tetrahedron_normals_point_at_vertices():
    mesh = example_mesh("tetrahedron")
    hem = HalfEdgeMesh.from_mesh(mesh)
    N = update_normals(hem)
    assert N is hem.normals
    assert np.allclose(N, mesh.vertices / np.sqrt(3.0))


def test_update_normals_follows_positions():
    hem = HalfEdgeMesh.from_mesh(example_mesh("cube"))
    update_normals(hem)
    before = hem.normals.copy()
    hem.positions[:] = hem.positions * np.array([1.0, 1.0, -1.0])
    # mirroring flips orientation, so normals now point inward
    update_normals(hem)
    assert np.allclose(hem.normals[:, :2], -before[:, :2])
    assert np.allclose(hem.normals[:, 2], before[:, 2])
