"""
Reference Surfaces
==================

Small closed polyhedra and open patches with known topology, as indexed
polygons or triangle soups. Used to exercise the builder and the read API.

SURFACES INCLUDED:
    - Tetrahedron (V=4, E=6,  F=4,  χ=2) triangles
    - Octahedron  (V=6, E=12, F=8,  χ=2) triangles
    - Cube        (V=8, E=12, F=6,  χ=2) quads (triangulated: F=12, E=18)
    - Grid        (nx × ny quads split into triangles, open, χ=1)

All closed faces are ordered counter-clockwise seen from outside, so face
normals point away from the origin.
"""

import numpy as np
from typing import List, Tuple

from ..spec.constants import FLOAT_DTYPE


def _order_ccw(vertices_arr: np.ndarray, face: List[int]) -> List[int]:
    """
    Order the corners of a convex face counter-clockwise around its outward
    normal (outward = away from the origin).
    """
    coords = vertices_arr[face]
    centroid = coords.mean(axis=0)
    normal = centroid / np.linalg.norm(centroid)

    # Build local frame
    if abs(normal[0]) < 0.9:
        u = np.cross(normal, [1, 0, 0])
    else:
        u = np.cross(normal, [0, 1, 0])
    u = u / np.linalg.norm(u)
    v = np.cross(normal, u)

    angles = [np.arctan2(np.dot(coords[k] - centroid, v),
                         np.dot(coords[k] - centroid, u))
              for k in range(len(face))]
    order = np.argsort(angles)
    return [face[o] for o in order]


def build_tetrahedron() -> Tuple[np.ndarray, List[List[int]]]:
    """
    Regular tetrahedron centered at origin (alternating cube corners).

    Returns:
        vertices: (4, 3) array
        faces: 4 triangles, CCW from outside
    """
    vertices = np.array([
        (1, 1, 1), (1, -1, -1), (-1, 1, -1), (-1, -1, 1)
    ], dtype=FLOAT_DTYPE)
    faces = [[0, 1, 2], [0, 1, 3], [0, 2, 3], [1, 2, 3]]
    return vertices, [_order_ccw(vertices, f) for f in faces]


def build_octahedron() -> Tuple[np.ndarray, List[List[int]]]:
    """
    Regular octahedron, vertices on the axes at ±1.

    Returns:
        vertices: (6, 3) array
        faces: 8 triangles (one per octant), CCW from outside
    """
    vertices = np.array([
        (1, 0, 0), (-1, 0, 0),
        (0, 1, 0), (0, -1, 0),
        (0, 0, 1), (0, 0, -1)
    ], dtype=FLOAT_DTYPE)

    faces = []
    for x in (0, 1):
        for y in (2, 3):
            for z in (4, 5):
                faces.append(_order_ccw(vertices, [x, y, z]))

    if len(faces) != 8:
        raise ValueError(f"Expected 8 faces, got {len(faces)}")
    return vertices, faces


def build_cube() -> Tuple[np.ndarray, List[List[int]]]:
    """
    Cube with corners at (±1, ±1, ±1).

    Returns:
        vertices: (8, 3) array
        faces: 6 quads, CCW from outside
    """
    vertices = np.array([(x, y, z) for x in (-1, 1) for y in (-1, 1) for z in (-1, 1)],
                        dtype=FLOAT_DTYPE)

    faces = []
    for axis in range(3):
        for sign in (-1, 1):
            face = [i for i, v in enumerate(vertices) if v[axis] == sign]
            faces.append(_order_ccw(vertices, face))

    if len(faces) != 6:
        raise ValueError(f"Expected 6 faces, got {len(faces)}")
    return vertices, faces


def build_grid(nx: int = 2, ny: int = 2) -> Tuple[np.ndarray, List[List[int]]]:
    """
    Flat open patch in the z=0 plane: nx × ny unit squares, each split into
    two CCW triangles (normals along +z).

    TOPOLOGY:
        V = (nx+1)(ny+1), F = 2·nx·ny, one boundary loop, χ = 1
    """
    if nx < 1 or ny < 1:
        raise ValueError(f"Grid needs nx, ny >= 1, got ({nx}, {ny})")

    vertices = np.array([(i, j, 0) for j in range(ny + 1) for i in range(nx + 1)],
                        dtype=FLOAT_DTYPE)

    def idx(i, j):
        return j * (nx + 1) + i

    faces = []
    for j in range(ny):
        for i in range(nx):
            a, b, c, d = idx(i, j), idx(i + 1, j), idx(i + 1, j + 1), idx(i, j + 1)
            faces.append([a, b, c])
            faces.append([a, c, d])
    return vertices, faces


def triangulate(faces: List[List[int]]) -> List[List[int]]:
    """Fan-triangulate convex polygons from their first corner."""
    triangles = []
    for face in faces:
        for k in range(1, len(face) - 1):
            triangles.append([face[0], face[k], face[k + 1]])
    return triangles


def to_triangle_soup(vertices: np.ndarray, faces: List[List[int]]) -> np.ndarray:
    """
    Drop the shared indices: (T, 3, 3) corner positions, as a file-format
    reader (STL) would deliver them. Polygons are fan-triangulated.
    """
    tris = triangulate(faces)
    return np.asarray(vertices, dtype=FLOAT_DTYPE)[np.array(tris, dtype=np.int64).reshape(-1, 3)]
