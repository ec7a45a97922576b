"""pyfairing: implicit fairing of closed triangle meshes.

Public API:
- read_obj(path), parse_obj(lines), write_obj(mesh, path)
- Mesh(vertices, faces), example_mesh(kind)
- HalfEdgeMesh.from_mesh(mesh)
- cotangent_laplacian(hem, eps=1e-4)
- vertex_normals(hem), update_normals(hem)
- ImplicitSmoother(hem).step(h), implicit_fairing(mesh, h=1e-2, iterations=10)
- build_object(mesh), smooth_one_generation(obj, h), draw_buffers(obj), destroy(obj)
- read_scene(path), load_scene_objects(scene)

"""
from .errors import (
    FairingError,
    InputMalformedError,
    IOUnavailableError,
    MeshTopologyError,
    MeshNotManifoldError,
    MeshBadWindingError,
    SolverSingularError,
)
from .mesh import Mesh, example_mesh
from .obj import parse_obj, read_obj, write_obj
from .halfedge import HalfEdgeMesh
from .laplacian import DEGENERATE_EPS, cotangent_laplacian
from .normals import vertex_normals, update_normals
from .fairing import FairingResult, ImplicitSmoother, implicit_fairing
from .pipeline import SceneObject, build_object, smooth_one_generation, draw_buffers, destroy, load_scene_objects
from .scene import Scene, read_scene
from .config import FairingConfig, ViewerConfig

__all__ = [
    "FairingError",
    "InputMalformedError",
    "IOUnavailableError",
    "MeshTopologyError",
    "MeshNotManifoldError",
    "MeshBadWindingError",
    "SolverSingularError",
    "Mesh",
    "example_mesh",
    "parse_obj",
    "read_obj",
    "write_obj",
    "HalfEdgeMesh",
    "DEGENERATE_EPS",
    "cotangent_laplacian",
    "vertex_normals",
    "update_normals",
    "FairingResult",
    "ImplicitSmoother",
    "implicit_fairing",
    "SceneObject",
    "build_object",
    "smooth_one_generation",
    "draw_buffers",
    "destroy",
    "load_scene_objects",
    "Scene",
    "read_scene",
    "FairingConfig",
    "ViewerConfig",
]
