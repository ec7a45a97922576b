import matplotlib.pyplot as plt
import numpy as np

from pyfairing.mesh import example_mesh
from pyfairing.pipeline import build_object
from pyfairing.render import (
    draw_frame,
    frustum_matrix,
    merge_frames,
    model_matrix,
    phong_colors,
    project_instance,
    render_objects,
    rotation_matrix,
    view_matrix,
)
from pyfairing.scene import Camera, Instance, PointLight, Transform


def _camera():
    return Camera(position=np.array([0.0, 0.0, 5.0]), left=-0.5, right=0.5, top=0.5, bottom=-0.5)


def _instance(*transforms):
    return Instance(
        ambient=np.array([0.2, 0.2, 0.2]),
        diffuse=np.array([0.6, 0.6, 0.6]),
        specular=np.array([1.0, 1.0, 1.0]),
        shininess=5.0,
        transforms=list(transforms),
    )


def test_model_matrix_applies_transforms_in_file_order():
    M = model_matrix([Transform("translation", np.array([1.0, 0, 0])), Transform("scaling", np.array([2.0, 2, 2]))])
    assert np.allclose(M @ [0, 0, 0, 1], [2, 0, 0, 1])

    R = model_matrix([Transform("rotation", np.array([0, 0, 1.0]), 90.0)])
    assert np.allclose(R @ [1, 0, 0, 1], [0, 1, 0, 1])
    assert np.allclose(rotation_matrix([0, 0, 0], 45.0), np.eye(4))


def test_camera_looks_down_negative_z():
    cam = _camera()
    V = view_matrix(cam)
    assert np.allclose(V @ [0, 0, 0, 1], [0, 0, -5, 1])

    clip = frustum_matrix(cam) @ np.array([0.0, 0.0, -1.0, 1.0])
    assert np.isclose(clip[2] / clip[3], -1.0)  # near plane
    clip = frustum_matrix(cam) @ np.array([0.0, 0.0, -10.0, 1.0])
    assert np.isclose(clip[2] / clip[3], 1.0)  # far plane


def test_phong_attenuation_and_range():
    pts = np.zeros((1, 3))
    nrm = np.array([[0.0, 0.0, 1.0]])
    eye = np.array([0.0, 0.0, 5.0])
    mat = _instance()
    near = phong_colors(pts, nrm, eye, [PointLight(np.array([0, 0, 1.0]), np.ones(3), 1.0)], mat)
    far = phong_colors(pts, nrm, eye, [PointLight(np.array([0, 0, 3.0]), np.ones(3), 1.0)], mat)
    assert np.all(near >= far)
    assert np.all((near >= 0) & (near <= 1))
    unlit = phong_colors(pts, nrm, eye, [], mat)
    assert np.allclose(unlit, 0.2)


def test_project_instance_culls_back_faces():
    obj = build_object(example_mesh("tetrahedron"))
    lights = [PointLight(np.array([0, 0, 5.0]), np.ones(3), 0.0)]
    frame = project_instance(obj.vertex_buffer, obj.normal_buffer, _instance(), _camera(), lights)

    # a convex solid seen from outside shows some but not all faces
    assert 1 <= frame.polygons.shape[0] < 4
    assert frame.polygons.shape[1:] == (3, 2)
    assert frame.colors.shape == (frame.polygons.shape[0], 3)
    assert np.all(np.diff(frame.depth) <= 0)


def test_render_objects_and_draw(tmp_path):
    a = build_object(example_mesh("cube"), name="a")
    b = build_object(example_mesh("tetrahedron"), name="b")
    a.instances.append(_instance(Transform("scaling", np.array([0.5, 0.5, 0.5]))))
    b.instances.append(_instance(Transform("translation", np.array([2.0, 0, 0]))))
    b.instances.append(_instance(Transform("translation", np.array([-2.0, 0, 0]))))
    lights = [PointLight(np.array([0, 0, 5.0]), np.ones(3), 0.1)]

    frame = render_objects({"a": a, "b": b}, _camera(), lights)
    assert frame.polygons.shape[0] > 0
    assert np.all(np.diff(frame.depth) <= 0)

    empty = merge_frames([])
    assert empty.polygons.shape == (0, 3, 2)

    fig, ax = plt.subplots()
    draw_frame(ax, frame)
    assert len(ax.collections) == 1
    draw_frame(ax, frame, wireframe=True)
    assert len(ax.collections) == 1
    fig.savefig(tmp_path / "frame.png")
    plt.close(fig)
