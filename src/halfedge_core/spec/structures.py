"""
Mesh Records - THE critical piece
=================================

Identifier types, entity records, build options and build report.

All relations between entities are identifiers, never object references.
The Entity Store owns every record; records only name each other.

Identifier contract:
    - one id type per entity kind (VertexId, HalfEdgeId, FaceId)
    - each id carries the token of the store that issued it
    - ids are hashable and totally ordered (store token, then index)
    - an id from another mesh is rejected with InvalidId, never misread

Boundary contract:
    A half-edge on the hole side of an open edge is a real half-edge whose
    face is the BOUNDARY sentinel. twin() is therefore total: there is no
    null twin anywhere in a finished mesh.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

import numpy as np

from .constants import DEFAULT_WELD_TOL, MODE_STRICT, VALID_MODES


# =============================================================================
# Identifiers
# =============================================================================

@dataclass(frozen=True, order=True)
class VertexId:
    store: int
    index: int

    def __repr__(self):
        return f"V:{self.index}"


@dataclass(frozen=True, order=True)
class HalfEdgeId:
    store: int
    index: int

    def __repr__(self):
        return f"H:{self.index}"


@dataclass(frozen=True, order=True)
class FaceId:
    store: int
    index: int

    def __repr__(self):
        return f"F:{self.index}"


EntityId = Union[VertexId, HalfEdgeId, FaceId]


class _BoundaryFace:
    """Incident-face sentinel for half-edges that bound a hole."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "BOUNDARY"

    def __reduce__(self):
        return (_BoundaryFace, ())


BOUNDARY = _BoundaryFace()

FaceRef = Union[FaceId, _BoundaryFace]


# =============================================================================
# Records
# =============================================================================
#
# Records are immutable. EntityStore.update() swaps in a modified copy, so a
# record handed out by get() can never change a frozen mesh.

@dataclass(frozen=True)
class VertexRecord:
    """
    Vertex payload.

    outgoing: anchor half-edge originating here (None only for isolated vertices)
    position: (3,) float64 or None for geometry-free meshes
    normal:   (3,) float64 unit vector or None when not supplied
    degree:   number of outgoing half-edges, bound for the umbrella walk
    """
    outgoing: Optional[HalfEdgeId] = None
    position: Optional[np.ndarray] = None
    normal: Optional[np.ndarray] = None
    degree: int = 0


@dataclass(frozen=True)
class HalfEdgeRecord:
    """
    Half-edge payload.

    twin/next/prev are None only while the builder is running.
    face is a FaceId or BOUNDARY.
    """
    origin: VertexId
    face: FaceRef = BOUNDARY
    twin: Optional[HalfEdgeId] = None
    next: Optional[HalfEdgeId] = None
    prev: Optional[HalfEdgeId] = None


@dataclass(frozen=True)
class FaceRecord:
    """
    Face payload.

    half_edge: anchor on the face loop
    degree:    side count, bound for the face-loop walk
    """
    half_edge: Optional[HalfEdgeId] = None
    degree: int = 0


# =============================================================================
# Build configuration and report
# =============================================================================

@dataclass
class BuildOptions:
    """
    Knobs for one construction.

    Attributes:
        tolerance: welding distance ε (0.0 = exact match only)
        mode: "strict" (abort on any defect) or "lenient" (drop offending
              triangles, never repair them)
        allow_isolated: keep vertices that no face uses
        require_closed: treat every boundary edge as a defect (watertight input)
    """
    tolerance: float = DEFAULT_WELD_TOL
    mode: str = MODE_STRICT
    allow_isolated: bool = False
    require_closed: bool = False

    def __post_init__(self):
        if self.mode not in VALID_MODES:
            raise ValueError(f"Invalid mode: {self.mode!r}, expected one of {VALID_MODES}")
        if not np.isfinite(self.tolerance) or self.tolerance < 0:
            raise ValueError(f"tolerance must be finite and >= 0, got {self.tolerance}")


@dataclass
class BuildReport:
    """
    What the builder did with its input.

    Attributes:
        vertex_map: input vertex index -> VertexId (None if never materialised)
                    (soup input: corner index 3*t + k)
        face_map:   input face index -> FaceId (None if dropped in lenient mode)
        dropped:    input face indices dropped in lenient mode (sorted)
        defects:    the findings that caused the drops
        n_input_vertices: corners (soup) or vertex rows (indexed) received
        n_welded:   input vertices merged into an earlier vertex
    """
    vertex_map: List[Optional[VertexId]] = field(default_factory=list)
    face_map: List[Optional[FaceId]] = field(default_factory=list)
    dropped: List[int] = field(default_factory=list)
    defects: list = field(default_factory=list)
    n_input_vertices: int = 0
    n_welded: int = 0
