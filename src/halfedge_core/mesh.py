"""
HalfEdgeMesh
============

The object builders return: connectivity plus the optional geometry layer.

Construct it through halfedge_core.builders (build_from_triangles,
build_from_faces, MeshBuilder). A mesh handed out by a builder is validated
and frozen; all reads are pure and safe from concurrent readers.
"""

from .geometry.embedding import GeometryMixin
from .topology.connectivity import ConnectivityGraph


class HalfEdgeMesh(GeometryMixin, ConnectivityGraph):

    def __init__(self, allow_isolated: bool = False, has_positions: bool = False,
                 has_normals: bool = False):
        super().__init__(allow_isolated=allow_isolated)
        self.has_positions = has_positions
        self.has_normals = has_normals
