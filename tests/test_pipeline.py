import threading

import numpy as np
import pytest
import trimesh as tm

from pyfairing.errors import SolverSingularError
from pyfairing.mesh import Mesh, example_mesh
from pyfairing.obj import write_obj
from pyfairing.pipeline import (
    build_object,
    destroy,
    draw_buffers,
    load_scene_objects,
    smooth_all,
    smooth_one_generation,
)
from pyfairing.scene import read_scene


def test_draw_buffers_follow_face_order():
    mesh = Mesh.from_trimesh(tm.creation.icosphere(subdivisions=1))
    obj = build_object(mesh)
    vb, nb = draw_buffers(obj)

    assert vb.shape == (3 * mesh.face_count, 3)
    assert nb.shape == (3 * mesh.face_count, 3)
    for k in range(3):
        assert np.array_equal(vb[k::3], mesh.vertices[mesh.faces[:, k]])
    assert np.allclose(np.linalg.norm(nb, axis=1), 1.0)

    smooth_one_generation(obj, 0.1)
    vb, nb = draw_buffers(obj)
    for k in range(3):
        assert np.array_equal(vb[k::3], obj.halfedge.positions[mesh.faces[:, k]])
        assert np.array_equal(nb[k::3], obj.halfedge.normals[mesh.faces[:, k]])
    assert np.array_equal(obj.mesh.vertices, obj.halfedge.positions)


def test_build_object_copies_input():
    mesh = example_mesh("tetrahedron")
    V0 = mesh.vertices.copy()
    obj = build_object(mesh, name="tet")
    assert obj.mesh is not mesh
    assert not np.shares_memory(obj.mesh.vertices, mesh.vertices)
    smooth_one_generation(obj, 0.5)
    assert np.array_equal(mesh.vertices, V0)
    assert obj.generation == 1
    assert obj.name == "tet"


def test_draw_buffers_returns_snapshot():
    obj = build_object(example_mesh("cube"))
    vb, _ = draw_buffers(obj)
    vb[:] = 0.0
    assert not np.all(obj.vertex_buffer == 0.0)


def test_negative_step_rejected_without_changes():
    obj = build_object(example_mesh("cube"))
    vb0 = obj.vertex_buffer.copy()
    with pytest.raises(ValueError):
        smooth_one_generation(obj, -1.0)
    assert np.array_equal(obj.vertex_buffer, vb0)
    assert obj.generation == 0


def test_destroyed_object_rejects_calls():
    obj = build_object(example_mesh("tetrahedron"))
    destroy(obj)
    with pytest.raises(ValueError, match="destroyed"):
        draw_buffers(obj)
    with pytest.raises(ValueError, match="destroyed"):
        smooth_one_generation(obj, 0.1)


def test_concurrent_readers_see_whole_generations():
    mesh = Mesh.from_trimesh(tm.creation.icosphere(subdivisions=2))
    obj = build_object(mesh)
    snapshots = []

    def read():
        for _ in range(20):
            snapshots.append(draw_buffers(obj)[0])

    reader = threading.Thread(target=read)
    reader.start()
    for _ in range(5):
        smooth_one_generation(obj, 0.05)
    reader.join()

    # every snapshot is consistent: shared vertices appear identically in all faces
    F = mesh.faces
    for vb in snapshots:
        V = np.empty((mesh.vertex_count, 3))
        V[F.reshape(-1)] = vb
        for k in range(3):
            assert np.array_equal(vb[k::3], V[F[:, k]])


def _write_scene(tmp_path):
    write_obj(example_mesh("tetrahedron"), tmp_path / "tet.obj")
    write_obj(example_mesh("cube"), tmp_path / "cube.obj")
    text = "\n".join(
        [
            "camera:",
            "position 0 0 5",
            "orientation 0 1 0 0",
            "near 1",
            "far 10",
            "left -0.5",
            "right 0.5",
            "top 0.5",
            "bottom -0.5",
            "",
            "light -0.8 0 1 , 1 0 1 , 0.2",
            "",
            "objects:",
            "tet tet.obj",
            "cube cube.obj",
            "",
            "tet",
            "ambient 0.2 0.2 0.2",
            "diffuse 0.6 0.6 0.6",
            "specular 1 1 1",
            "shininess 5",
            "t 1 0 0",
            "",
            "tet",
            "ambient 0.1 0.1 0.1",
            "diffuse 0.5 0.5 0.5",
            "specular 0 0 0",
            "shininess 1",
            "t -1 0 0",
            "",
        ]
    )
    path = tmp_path / "scene.txt"
    path.write_text(text)
    return path


def test_load_scene_objects_and_smooth_all(tmp_path):
    scene = read_scene(_write_scene(tmp_path))
    objects = load_scene_objects(scene)

    assert sorted(objects) == ["cube", "tet"]
    assert len(objects["tet"].instances) == 2
    assert objects["cube"].instances == []

    smooth_all(objects, 0.1)
    assert objects["tet"].generation == 1
    assert objects["cube"].generation == 1


def test_smooth_all_stops_at_failing_object(monkeypatch):
    a = build_object(example_mesh("tetrahedron"), name="a")
    b = build_object(example_mesh("cube"), name="b")
    c = build_object(example_mesh("icosahedron"), name="c")
    vb0 = b.vertex_buffer.copy()

    def singular(h):
        raise SolverSingularError("Factor is exactly singular")

    monkeypatch.setattr(b.smoother, "step", singular)
    with pytest.raises(SolverSingularError):
        smooth_all({"c": c, "b": b, "a": a}, 0.1)

    assert (a.generation, b.generation, c.generation) == (1, 0, 0)
    assert np.array_equal(b.vertex_buffer, vb0)
