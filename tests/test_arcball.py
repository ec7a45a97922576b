import numpy as np

from pyfairing.arcball import (
    IDENTITY,
    ArcBall,
    multiply,
    rotation_between,
    rotation_matrix,
    screen_to_ndc,
    sphere_point,
)


def test_screen_to_ndc_and_sphere():
    assert screen_to_ndc(0, 0, 200, 100) == (-1.0, 1.0)
    assert screen_to_ndc(100, 50, 200, 100) == (0.0, 0.0)
    assert np.allclose(sphere_point(0.0, 0.0), [0, 0, 1])
    assert np.allclose(sphere_point(0.6, 0.0), [0.6, 0, 0.8])
    # outside the unit disc the point stays on the z = 0 plane
    assert np.allclose(sphere_point(1.0, 1.0), [1, 1, 0])


def test_rotation_between_has_positive_real_part():
    start = np.array([0.0, 0.0, 1.0])
    curr = np.array([np.sin(0.4), 0.0, np.cos(0.4)])
    q = rotation_between(start, curr)
    assert q[0] > 0
    assert np.isclose(np.linalg.norm(q), 1.0)
    R = rotation_matrix(q)[:3, :3]
    assert np.allclose(R @ start, curr)
    assert np.isclose(np.linalg.det(R), 1.0)


def test_rotation_between_degenerate_inputs():
    v = np.array([0.0, 0.0, 1.0])
    assert np.array_equal(rotation_between(v, v), IDENTITY)
    assert np.array_equal(rotation_between(np.zeros(3), v), IDENTITY)


def test_multiply_composes_rotations():
    qa = rotation_between(np.array([0, 0, 1.0]), np.array([1.0, 0, 0]))
    qb = rotation_between(np.array([1.0, 0, 0]), np.array([0, 1.0, 0]))
    composed = rotation_matrix(multiply(qb, qa))
    assert np.allclose(composed, rotation_matrix(qb) @ rotation_matrix(qa))
    assert np.allclose(multiply(IDENTITY, qa), qa)


def test_arcball_drag_and_release():
    ball = ArcBall(200, 200)
    assert np.allclose(ball.matrix(), np.eye(4))

    ball.press(100, 100)
    assert ball.dragging
    ball.drag(140, 100)
    during = ball.matrix()
    assert not np.allclose(during, np.eye(4))
    # dragging right turns the front of the sphere towards +x
    assert (during[:3, :3] @ [0, 0, 1])[0] > 0

    ball.release()
    assert not ball.dragging
    assert np.allclose(ball.matrix(), during)
    assert np.isclose(np.linalg.norm(ball.last), 1.0)

    # drag without press is ignored
    ball.drag(10, 10)
    assert np.allclose(ball.matrix(), during)
