"""OBJ-like mesh file I/O.

Only two directives are honored: ``v x y z`` and ``f i j k`` with 1-based
vertex indices. Face tokens of the form ``i/t/n`` use the leading index.
Comments (``#``), blank lines and every other directive are skipped.
Indices are shifted to 0-based at this boundary.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import numpy as np

from .errors import InputMalformedError, IOUnavailableError
from .mesh import Mesh

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _parse_index(token: str, *, source: str, lineno: int) -> int:
    head = token.split("/", 1)[0]
    try:
        idx = int(head)
    except ValueError:
        raise InputMalformedError(f"face index {token!r} is not an integer", source=source, lineno=lineno) from None
    if idx < 1:
        raise InputMalformedError(f"face index {idx} must be >= 1", source=source, lineno=lineno)
    return idx - 1


def parse_obj(lines: Iterable[str], *, name: str = "<string>") -> Mesh:
    """Parse OBJ-like text into a :class:`Mesh`.

    Raises
    ------
    InputMalformedError
        On a ``v`` line without exactly three floats, an ``f`` line without
        exactly three distinct positive integer indices, or an index past the
        last vertex.
    """
    verts: list[tuple[float, float, float]] = []
    faces: list[tuple[int, int, int]] = []
    face_lines: list[int] = []

    for lineno, raw in enumerate(lines, start=1):
        tokens = raw.split()
        if not tokens or tokens[0].startswith("#"):
            continue
        tag = tokens[0]
        if tag == "v":
            if len(tokens) != 4:
                raise InputMalformedError(
                    f"vertex line needs 3 coordinates, got {len(tokens) - 1}", source=name, lineno=lineno
                )
            try:
                verts.append((float(tokens[1]), float(tokens[2]), float(tokens[3])))
            except ValueError:
                raise InputMalformedError(f"non-numeric vertex coordinate in {raw.strip()!r}", source=name, lineno=lineno) from None
        elif tag == "f":
            if len(tokens) != 4:
                raise InputMalformedError(
                    f"face line needs 3 indices, got {len(tokens) - 1}", source=name, lineno=lineno
                )
            face = tuple(_parse_index(t, source=name, lineno=lineno) for t in tokens[1:])
            if len(set(face)) != 3:
                raise InputMalformedError(
                    f"face repeats a vertex index in {raw.strip()!r}", source=name, lineno=lineno
                )
            faces.append(face)
            face_lines.append(lineno)

    n = len(verts)
    for (i, j, k), lineno in zip(faces, face_lines):
        if max(i, j, k) >= n:
            raise InputMalformedError(
                f"face index {max(i, j, k) + 1} exceeds vertex count {n}", source=name, lineno=lineno
            )

    V = np.array(verts, dtype=np.float64).reshape(-1, 3)
    F = np.array(faces, dtype=np.int64).reshape(-1, 3)
    logger.debug("Parsed %s: %d vertices, %d faces", name, V.shape[0], F.shape[0])
    return Mesh(V, F)


def read_obj(filename: str | Path) -> Mesh:
    """Read an OBJ-like file.

    Raises
    ------
    IOUnavailableError
        If the file cannot be opened.
    InputMalformedError
        If a ``v`` or ``f`` line is malformed or the file is not UTF-8 text.
    """
    path = Path(filename)
    try:
        with path.open("r", encoding="utf-8") as fh:
            mesh = parse_obj(fh, name=str(path))
    except UnicodeDecodeError as e:
        raise InputMalformedError(f"not valid UTF-8 text: {e.reason}", source=str(path)) from e
    except OSError as e:
        raise IOUnavailableError(f"Could not read obj file '{path}': {e.strerror or e}") from e
    logger.info("Loaded mesh %s: %d vertices, %d faces", path.name, mesh.vertex_count, mesh.face_count)
    return mesh


def write_obj(mesh: Mesh, filename: str | Path, *, precision: int = 8) -> None:
    """Write ``v``/``f`` lines with 1-based indices."""
    path = Path(filename)
    fmt = f"v %.{precision}g %.{precision}g %.{precision}g\n"
    with path.open("w", encoding="utf-8") as fh:
        for p in mesh.vertices:
            fh.write(fmt % (p[0], p[1], p[2]))
        for f in mesh.faces + 1:
            fh.write("f %d %d %d\n" % (f[0], f[1], f[2]))
