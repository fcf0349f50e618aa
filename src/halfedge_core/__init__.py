"""
halfedge_core
=============

Half-edge (DCEL) surface mesh: build from triangle soup or indexed polygons,
validate, then query connectivity and geometry through stable typed ids.

Modules:
    spec       - constants, error kinds, ids and records
    store      - arena of typed records (EntityStore)
    topology   - ConnectivityGraph: twin/next/prev, walks, validation
    geometry   - positions, normals, areas, angles
    builders   - MeshBuilder, welding, reference polyhedra
    operators  - sparse incidence matrices, graph export
    analysis   - Euler characteristic, genus, Gauss-Bonnet

Requirements:
    Python >= 3.9
    numpy >= 1.20
    scipy >= 1.11
"""

import logging
import sys

# Python version check
if sys.version_info < (3, 9):
    raise ImportError(f"halfedge_core requires Python >= 3.9, got {sys.version}")

# scipy version check (sparse matrix @ semantics)
import scipy
_scipy_version = tuple(int(p) for p in scipy.__version__.split('.')[:2] if p.isdigit())
if _scipy_version < (1, 11):
    raise ImportError(f"halfedge_core requires scipy >= 1.11, got {scipy.__version__}")

# numpy version check
import numpy as np
_numpy_version = tuple(int(p) for p in np.__version__.split('.')[:2] if p.isdigit())
if _numpy_version < (1, 20):
    raise ImportError(f"halfedge_core requires numpy >= 1.20, got {np.__version__}")

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

from .spec import (
    BOUNDARY,
    BuildOptions,
    BuildReport,
    VertexId,
    HalfEdgeId,
    FaceId,
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
from .mesh import HalfEdgeMesh
from .builders import MeshBuilder, build_from_triangles, build_from_faces
from .logging_config import setup_logging
