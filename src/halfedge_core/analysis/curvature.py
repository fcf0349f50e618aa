"""
Curvature - Discrete Gauss-Bonnet on Half-Edge Meshes
=====================================================

Standard discrete differential geometry (Descartes 1630, Gauss-Bonnet).

Functions:
  compute_vertex_deficits - angular deficit per vertex
  gauss_bonnet_total      - sum of deficits
  vertex_normals          - unit normal per vertex, (V, 3)
  face_normals            - unit normal per face, (F, 3)

Standard properties used:
  - Angular deficit at an interior vertex = 2*pi - Sum(corner angles)
  - At a boundary vertex the reference is pi (geodesic turning angle)
  - Gauss-Bonnet: Sum(deficits) = 2*pi*chi
    closed genus-0 surface: 4*pi; flat disc: 2*pi
"""

import numpy as np

from ..spec.constants import FLOAT_DTYPE


def compute_vertex_deficits(mesh) -> dict:
    """
    Angular deficit at each vertex.

    Isolated vertices are skipped (no corner, no curvature).

    Returns:
        dict: VertexId -> angular deficit (radians)
    """
    return {v: mesh.angular_defect(v) for v in mesh.vertices() if not mesh.is_isolated(v)}


def gauss_bonnet_total(mesh) -> float:
    """
    Total discrete curvature.

    Equals 2*pi*chi for any mesh built by halfedge_core (boundary vertices
    contribute their turning angle). Use as a cross-check against
    analysis.topology.euler_characteristic.
    """
    return float(sum(compute_vertex_deficits(mesh).values()))


def face_normals(mesh) -> np.ndarray:
    """(F, 3) unit face normals, zero rows for degenerate faces."""
    return np.array([mesh.face_normal(f) for f in mesh.faces()], dtype=FLOAT_DTYPE).reshape(-1, 3)


def vertex_normals(mesh) -> np.ndarray:
    """(V, 3) unit vertex normals (supplied or area-weighted)."""
    return np.array([mesh.normal(v) for v in mesh.vertices()], dtype=FLOAT_DTYPE).reshape(-1, 3)
