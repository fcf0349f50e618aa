"""
Mesh construction - triangle soup / indexed polygons -> HalfEdgeMesh.

EXPORTS:
- Builders: MeshBuilder, build_from_triangles, build_from_faces
- Welding: weld_positions
- Reference surfaces: build_tetrahedron, build_octahedron, build_cube,
  build_grid, triangulate, to_triangle_soup
"""

from .triangle_soup import MeshBuilder, build_from_triangles, build_from_faces
from .welding import weld_positions
from .polyhedra import (
    build_tetrahedron,
    build_octahedron,
    build_cube,
    build_grid,
    triangulate,
    to_triangle_soup,
)
