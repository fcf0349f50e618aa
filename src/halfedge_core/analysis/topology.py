"""
Topology Summary
================

Combinatorial invariants of a finished mesh, read through the traversal API.

    χ = V - E + F
    closed orientable surface, c components: χ = 2c - 2g
    surface with b boundary loops:           χ = 2c - 2g - b

These functions are in analysis/ because they only read; nothing here can
change or repair a mesh.
"""

from typing import Dict

from ..operators.incidence import count_connected_components


def euler_characteristic(mesh) -> int:
    return mesh.n_vertices - mesh.n_edges + mesh.n_faces


def count_boundary_loops(mesh) -> int:
    return len(mesh.boundary_loops())


def genus(mesh) -> int:
    """
    Genus from χ = 2c - 2g - b (c components, b boundary loops).

    Isolated vertices are not surface components and are excluded from c and V.
    """
    n_isolated = sum(1 for v in mesh.vertices() if mesh.is_isolated(v))
    c = count_connected_components(mesh) - n_isolated
    b = count_boundary_loops(mesh)
    chi = euler_characteristic(mesh) - n_isolated
    return (2 * c - b - chi) // 2


def degree_histogram(mesh) -> Dict[int, int]:
    """Vertex valence -> number of vertices with that valence."""
    hist: Dict[int, int] = {}
    for v in mesh.vertices():
        k = mesh.vertex_star(v).count()
        hist[k] = hist.get(k, 0) + 1
    return dict(sorted(hist.items()))


def summarize_topology(mesh) -> Dict:
    """
    One-call summary.

    Returns:
        dict with n_V, n_E, n_F, chi, n_boundary_loops, is_closed,
        n_components, genus, valence_histogram
    """
    return {
        'n_V': mesh.n_vertices,
        'n_E': mesh.n_edges,
        'n_F': mesh.n_faces,
        'chi': euler_characteristic(mesh),
        'n_boundary_loops': count_boundary_loops(mesh),
        'is_closed': mesh.is_closed,
        'n_components': count_connected_components(mesh),
        'genus': genus(mesh),
        'valence_histogram': degree_histogram(mesh),
    }
