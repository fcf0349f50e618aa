"""
Error kinds
===========

Two families:

    Programmer / build-logic errors (always surfaced, never retried):
        InvalidId        - identifier not issued by this structure instance
        CorruptTopology  - invariant broken at traversal time (builder bug)
        FrozenStoreError - write attempted after construction finished

    Input defects (collected during construction, reported together):
        DegenerateTriangle, NonManifoldEdge, InconsistentOrientation,
        NonManifoldVertex, DisconnectedVertex, OpenBoundary

MissingGeometry is recoverable: the caller can choose a geometry-free path.

Build failures subclass ValueError, lookups subclass KeyError/LookupError,
so callers that only know the builtin hierarchy still catch them.
"""

from typing import List, Optional, Sequence, Tuple, Type


class MeshError(Exception):
    """Base class for every error raised by halfedge_core."""


class InvalidId(MeshError, KeyError):
    """Identifier was never issued by this store (wrong kind, foreign mesh, out of range)."""

    def __str__(self):
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class CorruptTopology(MeshError, RuntimeError):
    """A connectivity invariant does not hold. Indicates a builder defect."""

    def __init__(self, message: str, violations: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.violations = list(violations or [])


class MissingGeometry(MeshError, LookupError):
    """Geometric payload requested from a mesh built without positions."""


class FrozenStoreError(MeshError, RuntimeError):
    """Insert or update attempted on a store that has been frozen."""


# =============================================================================
# Input defects
# =============================================================================

class InputDefect(MeshError, ValueError):
    """One malformed-input finding. Collected, then raised inside MeshBuildError."""


class DegenerateTriangle(InputDefect):
    """Zero-area face, or a face that uses the same welded vertex twice."""

    def __init__(self, triangle: int, reason: str):
        super().__init__(f"Degenerate triangle {triangle}: {reason}")
        self.triangle = triangle
        self.reason = reason


class NonManifoldEdge(InputDefect):
    """An oriented edge (a -> b) is claimed by more than one face."""

    def __init__(self, edge: Tuple[int, int], triangles: Sequence[int], message: Optional[str] = None):
        if message is None:
            message = (f"NOT MANIFOLD: oriented edge {edge} claimed by "
                       f"{len(triangles)} faces {list(triangles)}")
        super().__init__(message)
        self.edge = tuple(edge)
        self.triangles = list(triangles)


class InconsistentOrientation(NonManifoldEdge):
    """Exactly two faces share an edge and both traverse it in the same direction."""

    def __init__(self, edge: Tuple[int, int], triangles: Sequence[int]):
        super().__init__(
            edge, triangles,
            message=(f"INCONSISTENT ORIENTATION: faces {list(triangles)} both "
                     f"traverse edge {tuple(edge)} in the same direction"),
        )


class NonManifoldVertex(InputDefect):
    """
    Faces around a vertex form more than one fan (bowtie).

    Attributes:
        vertex:    input vertex index (soup input: weld cluster index)
        n_fans:    number of separate fans meeting at the vertex
        triangles: input indices of the faces around the vertex
        position:  (3,) welded position, or None for geometry-free input
    """

    def __init__(self, vertex: int, n_fans: int, triangles: Sequence[int] = (), position=None):
        self.vertex = vertex
        self.n_fans = n_fans
        self.triangles = list(triangles)
        self.position = None if position is None else tuple(float(c) for c in position)
        where = f" at {self.position}" if self.position is not None else ""
        super().__init__(f"NOT MANIFOLD: vertex {vertex}{where} joins {n_fans} separate fans "
                         f"(faces {self.triangles})")


class DisconnectedVertex(InputDefect):
    """A vertex is not used by any face."""

    def __init__(self, vertex: int):
        super().__init__(f"Vertex {vertex} is not referenced by any face")
        self.vertex = vertex


class OpenBoundary(InputDefect):
    """An edge has no opposite half-edge while a closed surface was required."""

    def __init__(self, edge: Tuple[int, int], triangles: Sequence[int] = ()):
        self.edge = tuple(edge)
        self.triangles = list(triangles)
        owner = f" (face {self.triangles[0]})" if self.triangles else ""
        super().__init__(f"NOT WATERTIGHT: edge {self.edge}{owner} has no twin")


class MeshBuildError(MeshError, ValueError):
    """
    Construction aborted. Carries the full list of defects found in one pass.

    Attributes:
        defects: list of InputDefect instances, in detection order
    """

    def __init__(self, defects: Sequence[InputDefect]):
        self.defects: List[InputDefect] = list(defects)
        lines = [str(d) for d in self.defects[:10]]
        if len(self.defects) > 10:
            lines.append(f"... and {len(self.defects) - 10} more")
        super().__init__(
            f"Mesh construction failed with {len(self.defects)} defect(s):\n  "
            + "\n  ".join(lines)
        )

    def of_kind(self, kind: Type[InputDefect]) -> List[InputDefect]:
        """Defects that are instances of `kind` (subclasses included)."""
        return [d for d in self.defects if isinstance(d, kind)]
