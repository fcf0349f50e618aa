"""Sparse incidence operators and graph export over a HalfEdgeMesh."""

from .incidence import (
    edge_index,
    build_d0,
    build_d1,
    build_hodge_laplacian,
    vertex_adjacency,
    dual_adjacency,
    count_connected_components,
    build_operators_from_mesh,
)
