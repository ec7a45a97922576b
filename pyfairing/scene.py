"""Scene-description files.

A scene file is a sequence of blocks separated by blank lines::

    camera:
    position 0 0 5
    orientation 0 1 0 0
    near 1
    far 10
    left -0.5
    right 0.5
    top 0.5
    bottom -0.5

    light -0.8 0 1 , 1 0 1 , 0.2
    light 0.8 0 1 , 0 1 1 , 0.2

    objects:
    bunny bunny.obj

    bunny
    ambient 0.2 0.2 0.2
    diffuse 0.6 0.6 0.6
    specular 1 1 1
    shininess 5
    t 0 0 0
    r 0 1 0 0.5
    s 1 1 1

The first block is the camera, the second the lights, the third maps object
names to mesh files relative to the scene file, and every further block is
one instance of a named object. Angles are radians on disk and are stored
in degrees.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

import numpy as np

from .errors import InputMalformedError, IOUnavailableError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

_CAMERA_SCALARS = ("near", "far", "left", "right", "top", "bottom")


@dataclass
class Camera:
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation_axis: np.ndarray = field(default_factory=lambda: np.array([0.0, 1.0, 0.0]))
    orientation_angle: float = 0.0  # degrees
    near: float = 1.0
    far: float = 10.0
    left: float = -1.0
    right: float = 1.0
    top: float = 1.0
    bottom: float = -1.0


@dataclass
class PointLight:
    position: np.ndarray
    color: np.ndarray
    attenuation: float


@dataclass
class Transform:
    kind: str  # "translation", "rotation" or "scaling"
    data: np.ndarray  # xyz (axis for rotations)
    angle: float = 0.0  # degrees, rotations only


@dataclass
class Instance:
    ambient: np.ndarray = field(default_factory=lambda: np.zeros(3))
    diffuse: np.ndarray = field(default_factory=lambda: np.zeros(3))
    specular: np.ndarray = field(default_factory=lambda: np.zeros(3))
    shininess: float = 0.0
    transforms: List[Transform] = field(default_factory=list)


@dataclass
class Scene:
    camera: Camera
    lights: List[PointLight]
    object_files: Dict[str, Path]
    instances: Dict[str, List[Instance]]


Line = Tuple[int, List[str]]


def _blocks(lines: Iterable[str]) -> List[List[Line]]:
    blocks: List[List[Line]] = []
    current: List[Line] = []
    for lineno, raw in enumerate(lines, start=1):
        tokens = raw.split()
        if not tokens:
            if current:
                blocks.append(current)
                current = []
            continue
        current.append((lineno, tokens))
    if current:
        blocks.append(current)
    return blocks


def _floats(tokens: List[str], count: int, *, source: str, lineno: int) -> np.ndarray:
    if len(tokens) != count:
        raise InputMalformedError(
            f"'{' '.join(tokens)}' needs {count} numeric fields, got {len(tokens)}", source=source, lineno=lineno
        )
    try:
        return np.array([float(t) for t in tokens], dtype=float)
    except ValueError:
        raise InputMalformedError(f"non-numeric field in '{' '.join(tokens)}'", source=source, lineno=lineno) from None


def _parse_camera(block: List[Line], source: str) -> Camera:
    cam = Camera()
    for lineno, tokens in block:
        key = tokens[0]
        if key == "position":
            cam.position = _floats(tokens[1:], 3, source=source, lineno=lineno)
        elif key == "orientation":
            vals = _floats(tokens[1:], 4, source=source, lineno=lineno)
            cam.orientation_axis = vals[:3]
            cam.orientation_angle = math.degrees(vals[3])
        elif key in _CAMERA_SCALARS:
            setattr(cam, key, float(_floats(tokens[1:], 1, source=source, lineno=lineno)[0]))
        elif not key.endswith(":"):
            logger.debug("%s:%d: ignoring camera key %r", source, lineno, key)
    return cam


def _parse_lights(block: List[Line], source: str) -> List[PointLight]:
    lights = []
    for lineno, tokens in block:
        if tokens[0].endswith(":"):
            continue
        fields = " ".join(tokens[1:]).replace(",", " ").split()
        vals = _floats(fields, 7, source=source, lineno=lineno)
        lights.append(PointLight(position=vals[:3], color=vals[3:6], attenuation=float(vals[6])))
    return lights


def _parse_objects(block: List[Line], source: str, directory: Path) -> Dict[str, Path]:
    files: Dict[str, Path] = {}
    for lineno, tokens in block:
        if tokens[0] == "objects:":
            continue
        if len(tokens) != 2:
            raise InputMalformedError("object line needs a name and a file name", source=source, lineno=lineno)
        files[tokens[0]] = directory / tokens[1]
    return files


def _parse_instance(block: List[Line], source: str) -> Instance:
    inst = Instance()
    for lineno, tokens in block[1:]:
        key = tokens[0]
        if key in ("ambient", "diffuse", "specular"):
            setattr(inst, key, _floats(tokens[1:], 3, source=source, lineno=lineno))
        elif key == "shininess":
            inst.shininess = float(_floats(tokens[1:], 1, source=source, lineno=lineno)[0])
        elif key[0] == "t":
            inst.transforms.append(Transform("translation", _floats(tokens[1:], 3, source=source, lineno=lineno)))
        elif key[0] == "r":
            vals = _floats(tokens[1:], 4, source=source, lineno=lineno)
            inst.transforms.append(Transform("rotation", vals[:3], math.degrees(vals[3])))
        elif key[0] == "s":
            inst.transforms.append(Transform("scaling", _floats(tokens[1:], 3, source=source, lineno=lineno)))
        else:
            raise InputMalformedError(f"unknown instance key {key!r}", source=source, lineno=lineno)
    return inst


def parse_scene(lines: Iterable[str], *, name: str = "<string>", directory: str | Path = ".") -> Scene:
    """Parse scene-description text.

    Raises
    ------
    InputMalformedError
        On missing blocks, wrong field counts, non-numeric values, unknown
        instance keys or instances of undeclared objects.
    """
    blocks = _blocks(lines)
    if len(blocks) < 3:
        raise InputMalformedError("expected camera, lights and objects blocks", source=name)

    camera = _parse_camera(blocks[0], name)
    lights = _parse_lights(blocks[1], name)
    files = _parse_objects(blocks[2], name, Path(directory))

    instances: Dict[str, List[Instance]] = {key: [] for key in files}
    for block in blocks[3:]:
        lineno, tokens = block[0]
        obj_name = tokens[0]
        if obj_name not in files:
            raise InputMalformedError(f"instance of undeclared object {obj_name!r}", source=name, lineno=lineno)
        instances[obj_name].append(_parse_instance(block, name))

    return Scene(camera=camera, lights=lights, object_files=files, instances=instances)


def read_scene(filename: str | Path) -> Scene:
    """Read a scene-description file; mesh paths resolve against its directory."""
    path = Path(filename)
    try:
        with path.open("r", encoding="utf-8") as fh:
            scene = parse_scene(fh, name=str(path), directory=path.parent)
    except UnicodeDecodeError as e:
        raise InputMalformedError(f"not valid UTF-8 text: {e.reason}", source=str(path)) from e
    except OSError as e:
        raise IOUnavailableError(f"Could not read scene file '{path}': {e.strerror or e}") from e
    logger.info(
        "Loaded scene %s: %d lights, %d objects, %d instances",
        path.name, len(scene.lights), len(scene.object_files),
        sum(len(v) for v in scene.instances.values()),
    )
    return scene
