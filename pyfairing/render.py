"""Software rasterisation of draw buffers onto a matplotlib axes.

Each instance is transformed by its model matrix (transforms applied in file
order), the arcball rotation and the inverse camera transform, then projected
through the camera frustum. Back faces and faces crossing the near/far planes
are culled, the rest are painted far to near with Phong vertex lighting
averaged per face.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from .pipeline import SceneObject, draw_buffers
from .scene import Camera, Instance, PointLight, Transform

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def rotation_matrix(axis: np.ndarray, angle_deg: float) -> np.ndarray:
    """4x4 rotation about ``axis`` by ``angle_deg`` degrees (Rodrigues' formula)."""
    axis = np.asarray(axis, dtype=float)
    norm = np.linalg.norm(axis)
    R = np.eye(4)
    if norm == 0.0:
        return R
    a = axis / norm
    K = np.array([[0, -a[2], a[1]], [a[2], 0, -a[0]], [-a[1], a[0], 0]])
    angle = math.radians(angle_deg)
    R[:3, :3] = np.eye(3) + np.sin(angle) * K + (1 - np.cos(angle)) * K @ K
    return R


def translation_matrix(t: np.ndarray) -> np.ndarray:
    T = np.eye(4)
    T[:3, 3] = t
    return T


def scaling_matrix(s: np.ndarray) -> np.ndarray:
    return np.diag([s[0], s[1], s[2], 1.0])


def transform_matrix(t: Transform) -> np.ndarray:
    if t.kind == "translation":
        return translation_matrix(t.data)
    if t.kind == "rotation":
        return rotation_matrix(t.data, t.angle)
    if t.kind == "scaling":
        return scaling_matrix(t.data)
    raise ValueError(f"Unknown transform kind: {t.kind}")


def model_matrix(transforms: Sequence[Transform]) -> np.ndarray:
    M = np.eye(4)
    for t in transforms:
        M = transform_matrix(t) @ M
    return M


def view_matrix(camera: Camera, yaw_deg: float = 0.0, pitch_deg: float = 0.0) -> np.ndarray:
    """World to camera: pitch, yaw, inverse orientation, inverse translation."""
    return (
        rotation_matrix([1, 0, 0], pitch_deg)
        @ rotation_matrix([0, 1, 0], yaw_deg)
        @ rotation_matrix(camera.orientation_axis, -camera.orientation_angle)
        @ translation_matrix(-np.asarray(camera.position, dtype=float))
    )


def frustum_matrix(camera: Camera) -> np.ndarray:
    l, r, b, t, n, f = camera.left, camera.right, camera.bottom, camera.top, camera.near, camera.far
    return np.array(
        [
            [2 * n / (r - l), 0, (r + l) / (r - l), 0],
            [0, 2 * n / (t - b), (t + b) / (t - b), 0],
            [0, 0, -(f + n) / (f - n), -2 * f * n / (f - n)],
            [0, 0, -1, 0],
        ]
    )


def _apply(M: np.ndarray, P: np.ndarray) -> np.ndarray:
    return P @ M[:3, :3].T + M[:3, 3]


def phong_colors(
    points: np.ndarray,
    normals: np.ndarray,
    eye: np.ndarray,
    lights: Iterable[PointLight],
    material: Instance,
) -> np.ndarray:
    """Per-point RGB in [0, 1]: ambient + attenuated diffuse and specular terms."""
    color = np.tile(np.asarray(material.ambient, dtype=float), (points.shape[0], 1))
    view = eye - points
    view /= np.maximum(np.linalg.norm(view, axis=1, keepdims=True), 1e-12)
    for light in lights:
        to_light = np.asarray(light.position, dtype=float) - points
        dist = np.linalg.norm(to_light, axis=1, keepdims=True)
        L = to_light / np.maximum(dist, 1e-12)
        att = 1.0 / (1.0 + light.attenuation * dist * dist)
        diffuse = np.maximum(np.einsum("ij,ij->i", normals, L), 0.0)[:, None]
        half = L + view
        half /= np.maximum(np.linalg.norm(half, axis=1, keepdims=True), 1e-12)
        spec = np.maximum(np.einsum("ij,ij->i", normals, half), 0.0)[:, None] ** material.shininess
        lc = np.asarray(light.color, dtype=float)
        color += att * lc * (np.asarray(material.diffuse) * diffuse + np.asarray(material.specular) * spec)
    return np.clip(color, 0.0, 1.0)


@dataclass
class Frame:
    polygons: np.ndarray  # (k,3,2) NDC triangles, painter's order
    colors: np.ndarray  # (k,3) RGB
    depth: np.ndarray  # (k,) mean NDC depth


def project_instance(
    vertex_buffer: np.ndarray,
    normal_buffer: np.ndarray,
    instance: Instance,
    camera: Camera,
    lights: Sequence[PointLight],
    *,
    scene_rotation: Optional[np.ndarray] = None,
    yaw_deg: float = 0.0,
    pitch_deg: float = 0.0,
) -> Frame:
    """Shade and project one instance of an object's draw buffers."""
    A = np.eye(4) if scene_rotation is None else scene_rotation
    M = A @ model_matrix(instance.transforms)
    world = _apply(M, vertex_buffer)
    normal_m = np.linalg.inv(M[:3, :3]).T
    nrm = normal_buffer @ normal_m.T
    nrm /= np.maximum(np.linalg.norm(nrm, axis=1, keepdims=True), 1e-12)

    lit = [PointLight(_apply(A, np.atleast_2d(l.position))[0], l.color, l.attenuation) for l in lights]
    colors = phong_colors(world, nrm, np.asarray(camera.position, dtype=float), lit, instance)

    clip = np.hstack([world, np.ones((world.shape[0], 1))]) @ (
        frustum_matrix(camera) @ view_matrix(camera, yaw_deg, pitch_deg)
    ).T
    w = clip[:, 3:4]
    safe_w = np.where(np.abs(w) > 1e-12, w, 1e-12)
    ndc = (clip[:, :3] / safe_w).reshape(-1, 3, 3)
    visible = np.all(w.reshape(-1, 3) > 0, axis=1) & np.all(np.abs(ndc[:, :, 2]) <= 1.0, axis=1)

    xy = ndc[:, :, :2]
    e1 = xy[:, 1] - xy[:, 0]
    e2 = xy[:, 2] - xy[:, 0]
    front = (e1[:, 0] * e2[:, 1] - e1[:, 1] * e2[:, 0]) > 0.0
    keep = visible & front

    depth = ndc[keep, :, 2].mean(axis=1)
    order = np.argsort(-depth, kind="stable")
    face_colors = colors.reshape(-1, 3, 3)[keep].mean(axis=1)
    return Frame(polygons=xy[keep][order], colors=face_colors[order], depth=depth[order])


def merge_frames(frames: Sequence[Frame]) -> Frame:
    """Combine frames of several instances into one painter's ordering."""
    if not frames:
        return Frame(np.empty((0, 3, 2)), np.empty((0, 3)), np.empty(0))
    depth = np.concatenate([f.depth for f in frames])
    order = np.argsort(-depth, kind="stable")
    return Frame(
        polygons=np.concatenate([f.polygons for f in frames])[order],
        colors=np.concatenate([f.colors for f in frames])[order],
        depth=depth[order],
    )


def draw_frame(ax, frame: Frame, *, wireframe: bool = False) -> None:
    """Replace the contents of a matplotlib axes with ``frame``."""
    from matplotlib.collections import PolyCollection

    ax.clear()
    ax.set_xlim(-1, 1)
    ax.set_ylim(-1, 1)
    ax.set_axis_off()
    if wireframe:
        coll = PolyCollection(list(frame.polygons), facecolors="none", edgecolors=list(frame.colors), linewidths=0.5)
    else:
        coll = PolyCollection(list(frame.polygons), facecolors=list(frame.colors), edgecolors="face", linewidths=0.2)
    ax.add_collection(coll)


def render_objects(objects: Dict[str, SceneObject], camera: Camera, lights: List[PointLight], **kwargs) -> Frame:
    """Frame of every instance of every object, from their current draw buffers."""
    frames = []
    for name in sorted(objects):
        obj = objects[name]
        vb, nb = draw_buffers(obj)
        for inst in obj.instances:
            frames.append(project_instance(vb, nb, inst, camera, lights, **kwargs))
    return merge_frames(frames)
