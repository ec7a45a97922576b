"""Per-object smoothing pipeline.

A :class:`SceneObject` owns an input mesh, its half-edge view and the flat
draw buffers. :func:`smooth_one_generation` runs, in order, the implicit
step, the normal update and the buffer refresh while holding the object's
lock, so a reader using :func:`draw_buffers` never sees a partial generation.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from .buffers import allocate_draw_buffers, fill_draw_buffers
from .fairing import ImplicitSmoother
from .halfedge import HalfEdgeMesh
from .laplacian import DEGENERATE_EPS
from .mesh import Mesh
from .normals import update_normals
from .obj import read_obj
from .scene import Scene

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass
class SceneObject:
    mesh: Mesh
    halfedge: HalfEdgeMesh
    vertex_buffer: np.ndarray  # (3m,3) positions, face by face
    normal_buffer: np.ndarray  # (3m,3) unit normals, face by face
    smoother: ImplicitSmoother = field(repr=False)
    name: str = ""
    instances: List[Any] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    destroyed: bool = False

    @property
    def generation(self) -> int:
        return self.smoother.generation


def build_object(
    mesh: Mesh,
    *,
    name: str = "",
    eps: float = DEGENERATE_EPS,
    reuse_pattern: bool = True,
    verbose: bool = False,
) -> SceneObject:
    """Build the half-edge view, initial normals and draw buffers of a mesh.

    Raises
    ------
    MeshNotManifoldError, MeshBadWindingError
        If the mesh is not a closed, consistently wound manifold.
    """
    hem = HalfEdgeMesh.from_mesh(mesh, verbose=verbose)
    update_normals(hem)
    vb, nb = allocate_draw_buffers(hem.n_faces)
    fill_draw_buffers(hem.positions, hem.normals, mesh.faces, vb, nb)
    smoother = ImplicitSmoother(hem, eps=eps, reuse_pattern=reuse_pattern, verbose=verbose)
    obj = SceneObject(
        mesh=mesh.copy(),
        halfedge=hem,
        vertex_buffer=vb,
        normal_buffer=nb,
        smoother=smoother,
        name=name,
    )
    if verbose:
        logger.info("Built object %r: %d vertices, %d faces", name, hem.n_vertices, hem.n_faces)
    return obj


def _check_alive(obj: SceneObject) -> None:
    if obj.destroyed:
        raise ValueError(f"object {obj.name!r} has been destroyed")


def smooth_one_generation(obj: SceneObject, h: float) -> None:
    """Smooth, recompute normals and refresh the draw buffers of ``obj``.

    Raises
    ------
    SolverSingularError
        If the factorization fails; the object keeps its previous generation.
    ValueError
        If ``h`` is negative or not finite, or the object was destroyed.
    """
    with obj.lock:
        _check_alive(obj)
        hem = obj.halfedge
        obj.smoother.step(h)
        update_normals(hem)
        obj.mesh.vertices[:] = hem.positions
        fill_draw_buffers(hem.positions, hem.normals, obj.mesh.faces, obj.vertex_buffer, obj.normal_buffer)
    logger.debug("Object %r: generation %d", obj.name, obj.generation)


def draw_buffers(obj: SceneObject) -> tuple[np.ndarray, np.ndarray]:
    """Snapshot of ``(vertex_buffer, normal_buffer)``, each of shape (3m,3)."""
    with obj.lock:
        _check_alive(obj)
        return obj.vertex_buffer.copy(), obj.normal_buffer.copy()


def destroy(obj: SceneObject) -> None:
    """Drop the object's arrays; later pipeline calls raise ``ValueError``."""
    with obj.lock:
        obj.destroyed = True
        obj.vertex_buffer = np.empty((0, 3))
        obj.normal_buffer = np.empty((0, 3))
        obj.instances.clear()


def smooth_all(objects: Dict[str, SceneObject], h: float) -> None:
    """One generation for every object, in name order.

    Each object steps atomically, the scene as a whole does not: if an object
    raises ``SolverSingularError``, the objects before it in name order have
    already advanced and the failing object and those after it have not.
    Compare ``obj.generation`` to see where it stopped.
    """
    for name in sorted(objects):
        smooth_one_generation(objects[name], h)


def load_scene_objects(
    scene: Scene,
    *,
    eps: float = DEGENERATE_EPS,
    reuse_pattern: bool = True,
    verbose: bool = False,
) -> Dict[str, SceneObject]:
    """Read every mesh file of a scene and build its object with its instances attached.

    Raises
    ------
    IOUnavailableError, InputMalformedError, MeshTopologyError
        From reading or building any of the meshes.
    """
    objects: Dict[str, SceneObject] = {}
    for name, path in scene.object_files.items():
        obj = build_object(read_obj(path), name=name, eps=eps, reuse_pattern=reuse_pattern, verbose=verbose)
        obj.instances.extend(scene.instances.get(name, []))
        objects[name] = obj
    return objects
