"""
Geometry Layer
==============

Derived quantities from per-vertex positions. Read-only, no hidden state:
every query is a pure function of the frozen positions and connectivity.

CONVENTIONS:
    - float64 throughout (constants.FLOAT_DTYPE)
    - face_normal follows the right-hand rule over the face loop:
      counter-clockwise corners seen from outside -> outward normal
    - polygon normal via Newell cross-sum, so the result does not depend
      on which half-edge anchors the face
    - degenerate faces (area <= DEGENERATE_RATIO * longest side^2):
      face_normal returns the zero vector, face_area returns 0.0. Never NaN.

MISSING GEOMETRY:
    A mesh built from indices only (no positions) raises MissingGeometry
    on every positional query. Topology queries keep working.
"""

import numpy as np

from ..spec.constants import DEGENERATE_RATIO, EPS_ZERO, FLOAT_DTYPE, ZERO_VECTOR
from ..spec.errors import MissingGeometry


def polygon_area(pts: np.ndarray) -> float:
    """
    Area of the polygon with (k, 3) corners `pts`, via the Newell cross-sum.

    Returns 0.0 when area <= DEGENERATE_RATIO * (longest side)^2.
    """
    sides = np.roll(pts, -1, axis=0) - pts
    area = 0.5 * float(np.linalg.norm(np.cross(pts, np.roll(pts, -1, axis=0)).sum(axis=0)))
    longest = float(np.max(np.linalg.norm(sides, axis=1))) if len(pts) else 0.0
    return area if area > DEGENERATE_RATIO * longest * longest else 0.0


class GeometryMixin:
    """
    Positional queries on top of ConnectivityGraph.

    Expects the host class to provide the connectivity API and the flags
    `has_positions` / `has_normals`.
    """

    has_positions = False
    has_normals = False

    # -------------------------------------------------------------------------
    # Per-vertex payload
    # -------------------------------------------------------------------------

    def position(self, v) -> np.ndarray:
        record = self.vertex_store.get(v)
        if record.position is None:
            raise MissingGeometry(f"{v!r} has no position: mesh was built without geometry")
        return record.position

    def normal(self, v) -> np.ndarray:
        """
        Unit normal at v.

        Supplied normals (welded and renormalised by the builder) win;
        otherwise the area-weighted mean of the incident face normals.
        """
        record = self.vertex_store.get(v)
        if record.normal is not None:
            return record.normal
        if record.position is None:
            raise MissingGeometry(f"{v!r} has no normal: mesh was built without geometry")
        total = np.zeros(3, dtype=FLOAT_DTYPE)
        for f in self.vertex_faces(v):
            total += self._newell(f)
        return _unit_or_zero(total)

    # -------------------------------------------------------------------------
    # Faces
    # -------------------------------------------------------------------------

    def _newell(self, f) -> np.ndarray:
        """Newell cross-sum over the loop. |result| = 2 * area."""
        pts = self.face_positions(f)
        return np.cross(pts, np.roll(pts, -1, axis=0)).sum(axis=0)

    def face_positions(self, f) -> np.ndarray:
        """(k, 3) corner positions in loop order."""
        return np.array([self.position(v) for v in self.face_vertices(f)], dtype=FLOAT_DTYPE)

    def face_area(self, f) -> float:
        return polygon_area(self.face_positions(f))

    def is_degenerate(self, f) -> bool:
        return self.face_area(f) == 0.0

    def face_normal(self, f) -> np.ndarray:
        """Unit normal of f, or the zero vector for a degenerate face."""
        if self.is_degenerate(f):
            return ZERO_VECTOR.copy()
        n = self._newell(f)
        return n / float(np.linalg.norm(n))

    def face_centroid(self, f) -> np.ndarray:
        """Vertex average. For concave faces this can lie outside the face."""
        return self.face_positions(f).mean(axis=0)

    def surface_area(self) -> float:
        return float(sum(self.face_area(f) for f in self.faces()))

    # -------------------------------------------------------------------------
    # Vertices
    # -------------------------------------------------------------------------

    def vertex_valence(self, v) -> int:
        """Number of edges at v (== size of the vertex star)."""
        return self.vertex_star(v).count()

    def corner_angle(self, h) -> float:
        """Interior angle of face(h) at origin(h), between h and the reversed prev(h)."""
        return _angle_between(self.edge_vector(h), -self.edge_vector(self.prev(h)))

    def angular_defect(self, v) -> float:
        """
        Discrete Gaussian curvature at v.

        Interior vertex: 2*pi - sum of corner angles.
        Boundary vertex: pi - sum of corner angles (geodesic turning angle),
        so that sum over all vertices = 2*pi*chi (Gauss-Bonnet).
        """
        total = 0.0
        on_boundary = False
        for h in self.vertex_star(v):
            if self.is_boundary(h):
                on_boundary = True
                continue
            total += self.corner_angle(h)
        return (np.pi if on_boundary else 2 * np.pi) - total

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def edge_vector(self, h) -> np.ndarray:
        u, v = self.endpoints(h)
        return self.position(v) - self.position(u)

    def edge_length(self, h) -> float:
        return float(np.linalg.norm(self.edge_vector(h)))

    def edge_midpoint(self, h, offset: float = 0.5) -> np.ndarray:
        """Point at `offset` along h (0 = origin, 1 = target)."""
        return self.position(self.origin(h)) + offset * self.edge_vector(h)

    def edge_normal(self, h) -> np.ndarray:
        """Mean of the face normals on both sides of h (hole side ignored)."""
        total = np.zeros(3, dtype=FLOAT_DTYPE)
        for g in (h, self.twin(h)):
            if not self.is_boundary(g):
                total += self.face_normal(self.incident_face(g))
        return _unit_or_zero(total)

    def distance(self, u, v) -> float:
        return float(np.linalg.norm(self.position(v) - self.position(u)))

    def angle(self, h1, h2) -> float:
        """Angle (radians) between the direction vectors of two half-edges."""
        return _angle_between(self.edge_vector(h1), self.edge_vector(h2))

    # -------------------------------------------------------------------------
    # Flat arrays for export / drawing consumers
    # -------------------------------------------------------------------------

    def positions_array(self) -> np.ndarray:
        """(V, 3) positions, row i = vertex with index i."""
        if not self.has_positions:
            raise MissingGeometry("mesh was built without geometry")
        return np.array([self.position(v) for v in self.vertices()], dtype=FLOAT_DTYPE).reshape(-1, 3)

    def faces_array(self) -> np.ndarray:
        """(F, 3) vertex indices. Triangle meshes only."""
        rows = [[v.index for v in self.face_vertices(f)] for f in self.faces()]
        if any(len(r) != 3 for r in rows):
            raise ValueError("faces_array() needs an all-triangle mesh; use face_vertices()")
        return np.array(rows, dtype=np.int64).reshape(-1, 3)

    def triangles_array(self) -> np.ndarray:
        """(F, 3, 3) corner positions per face. Triangle meshes only."""
        return self.positions_array()[self.faces_array()]


def _unit_or_zero(vec: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vec))
    if norm < EPS_ZERO:
        return ZERO_VECTOR.copy()
    return vec / norm


def _angle_between(a: np.ndarray, b: np.ndarray) -> float:
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na < EPS_ZERO or nb < EPS_ZERO:
        return 0.0
    cos_a = np.clip(np.dot(a, b) / (na * nb), -1.0, 1.0)
    return float(np.arccos(cos_a))
