"""Exceptions raised by pyfairing.

Parse and build errors abort startup; ``SolverSingularError`` aborts a single
smoothing generation and leaves the object at its previous state.
"""
from __future__ import annotations


class FairingError(Exception):
    """Base class for all pyfairing errors."""


class InputMalformedError(FairingError, ValueError):
    """A mesh or scene line does not match the expected grammar."""

    def __init__(self, message: str, *, source: str | None = None, lineno: int | None = None):
        where = ""
        if source is not None and lineno is not None:
            where = f"{source}:{lineno}: "
        elif source is not None:
            where = f"{source}: "
        super().__init__(where + message)
        self.source = source
        self.lineno = lineno


class IOUnavailableError(FairingError, OSError):
    """An input file cannot be opened."""


class MeshTopologyError(FairingError, ValueError):
    """The triangle list cannot be represented as a closed half-edge mesh."""


class MeshNotManifoldError(MeshTopologyError):
    """An edge is shared by one or more than two faces, or a vertex is not a single fan."""


class MeshBadWindingError(MeshTopologyError):
    """Two faces sharing an edge traverse it in the same direction."""


class SolverSingularError(FairingError, RuntimeError):
    """The sparse LU factorization of ``I - h*L`` failed."""
