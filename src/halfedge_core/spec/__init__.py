"""Constants, error kinds, identifiers and records shared by every layer."""

from .constants import (
    FLOAT_DTYPE,
    EPS_ZERO,
    EPS_CLOSE,
    DEFAULT_WELD_TOL,
    DEGENERATE_RATIO,
    ZERO_VECTOR,
    MODE_STRICT,
    MODE_LENIENT,
    KIND_VERTEX,
    KIND_HALF_EDGE,
    KIND_FACE,
)

from .errors import (
    MeshError,
    InvalidId,
    CorruptTopology,
    MissingGeometry,
    FrozenStoreError,
    InputDefect,
    DegenerateTriangle,
    NonManifoldEdge,
    InconsistentOrientation,
    NonManifoldVertex,
    DisconnectedVertex,
    OpenBoundary,
    MeshBuildError,
)

from .structures import (
    VertexId,
    HalfEdgeId,
    FaceId,
    BOUNDARY,
    VertexRecord,
    HalfEdgeRecord,
    FaceRecord,
    BuildOptions,
    BuildReport,
)
