"""
Incidence Matrices and Graph Export
===================================

Sparse matrices read off a finished HalfEdgeMesh. Pure consumers of the
read API - they own no connectivity invariant.

DEFINITIONS:
    d₀: E × V  oriented edge-vertex incidence
        d₀[e, origin(rep)] = -1, d₀[e, target(rep)] = +1
    d₁: F × E  oriented face-edge incidence
        d₁[f, e] = +1 if face f traverses the representative of e,
                   -1 if it traverses the twin

    rep(e) = smaller half-edge id of the pair (ConnectivityGraph.edges()).
    Row/column order: vertex index, face index, edge enumeration order.

    L₁ = d₀d₀ᵀ + d₁ᵀd₁  (Hodge Laplacian on edges)

IDENTITIES (checked by build_operators_from_mesh):
    1. d₁d₀ = 0                        (every face loop is closed)
    2. Tr(d₀d₀ᵀ) = 2E                  (each edge has 2 endpoints)
    3. Tr(d₁ᵀd₁) = 2·E_int + E_bnd     (interior edges bound 2 faces,
                                        boundary edges 1)

GRAPH EXPORT:
    vertex_adjacency  symmetric V × V, 1 or Euclidean edge length
    dual_adjacency    symmetric F × F across interior edges,
                      1 or centroid-to-centroid distance

REFERENCE: Discrete Exterior Calculus (Desbrun et al., 2005)
"""

from typing import Dict, Tuple

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import connected_components

from ..spec.constants import EPS_CLOSE, FLOAT_DTYPE


def edge_index(mesh) -> Dict:
    """
    Map every half-edge to the row of its undirected edge.

    Returns:
        dict HalfEdgeId -> edge row (both half-edges of a pair share a row)
    """
    index = {}
    for e, h in enumerate(mesh.edges()):
        index[h] = e
        index[mesh.twin(h)] = e
    return index


def build_d0(mesh) -> sp.csr_matrix:
    """
    Gradient operator d₀: C⁰ → C¹ as an (E, V) sparse matrix.

    PROPERTY:
        Each row has exactly one -1 and one +1.
    """
    rows, cols, vals = [], [], []
    for e, h in enumerate(mesh.edges()):
        u, v = mesh.endpoints(h)
        rows += [e, e]
        cols += [u.index, v.index]
        vals += [-1.0, 1.0]
    return sp.csr_matrix((vals, (rows, cols)), shape=(mesh.n_edges, mesh.n_vertices), dtype=FLOAT_DTYPE)


def build_d1(mesh, index: Dict = None) -> sp.csr_matrix:
    """
    Curl operator d₁: C¹ → C² as an (F, E) sparse matrix.

    PROPERTY:
        Column of an interior edge has two non-zeros of opposite sign
        (consistent orientation); a boundary edge column has one.
    """
    if index is None:
        index = edge_index(mesh)
    rows, cols, vals = [], [], []
    for f in mesh.faces():
        for h in mesh.face_loop(f):
            rows.append(f.index)
            cols.append(index[h])
            vals.append(1.0 if h < mesh.twin(h) else -1.0)
    return sp.csr_matrix((vals, (rows, cols)), shape=(mesh.n_faces, mesh.n_edges), dtype=FLOAT_DTYPE)


def build_hodge_laplacian(d0: sp.spmatrix, d1: sp.spmatrix) -> Tuple[sp.csr_matrix, sp.csr_matrix, sp.csr_matrix]:
    """
    Build Hodge Laplacian L₁ = d₀d₀ᵀ + d₁ᵀd₁ on edges.

    Returns:
        L1, d0d0t, d1td1: (E, E) sparse matrices
    """
    d0d0t = (d0 @ d0.T).tocsr()
    d1td1 = (d1.T @ d1).tocsr()
    return (d0d0t + d1td1).tocsr(), d0d0t, d1td1


def vertex_adjacency(mesh, weighted: bool = False) -> sp.csr_matrix:
    """
    Symmetric (V, V) adjacency of the 1-skeleton.

    Args:
        weighted: entries are edge lengths instead of 1 (needs positions)
    """
    rows, cols, vals = [], [], []
    for h in mesh.edges():
        u, v = mesh.endpoints(h)
        w = mesh.edge_length(h) if weighted else 1.0
        rows += [u.index, v.index]
        cols += [v.index, u.index]
        vals += [w, w]
    return sp.csr_matrix((vals, (rows, cols)), shape=(mesh.n_vertices, mesh.n_vertices), dtype=FLOAT_DTYPE)


def dual_adjacency(mesh, weighted: bool = False) -> sp.csr_matrix:
    """
    Symmetric (F, F) adjacency of the dual graph (faces sharing an edge).

    Args:
        weighted: entries are centroid distances instead of 1 (needs positions)
    """
    rows, cols, vals = [], [], []
    for h in mesh.edges():
        g = mesh.twin(h)
        if mesh.is_boundary(h) or mesh.is_boundary(g):
            continue
        f1, f2 = mesh.incident_face(h), mesh.incident_face(g)
        if weighted:
            w = float(np.linalg.norm(mesh.face_centroid(f1) - mesh.face_centroid(f2)))
        else:
            w = 1.0
        rows += [f1.index, f2.index]
        cols += [f2.index, f1.index]
        vals += [w, w]
    return sp.csr_matrix((vals, (rows, cols)), shape=(mesh.n_faces, mesh.n_faces), dtype=FLOAT_DTYPE)


def count_connected_components(mesh) -> int:
    """Connected components of the vertex graph (isolated vertices count)."""
    if mesh.n_vertices == 0:
        return 0
    n, _ = connected_components(vertex_adjacency(mesh), directed=False)
    return int(n)


def build_operators_from_mesh(mesh) -> dict:
    """
    Build all incidence operators of a HalfEdgeMesh and verify the identities.

    Returns:
        dict with:
            d0, d1: incidence matrices
            L1, d0d0t, d1td1: Hodge Laplacian components
            edge_index: HalfEdgeId -> edge row
            traces: dict of trace values and their expected values
            n_boundary_edges: edges with a BOUNDARY side

    Raises:
        ValueError: an identity fails (the mesh is not what it claims)
    """
    index = edge_index(mesh)
    d0 = build_d0(mesh)
    d1 = build_d1(mesh, index)

    d1d0 = d1 @ d0
    if d1d0.nnz and np.abs(d1d0.data).max() > EPS_CLOSE:
        raise ValueError(f"Exactness failed: max|d₁d₀| = {np.abs(d1d0.data).max()}")

    L1, d0d0t, d1td1 = build_hodge_laplacian(d0, d1)

    n_E = mesh.n_edges
    n_bnd = sum(1 for _ in mesh.boundary_half_edges())
    expected_d1td1 = 2 * (n_E - n_bnd) + n_bnd

    tr_d0d0t = float(d0d0t.diagonal().sum())
    tr_d1td1 = float(d1td1.diagonal().sum())

    if abs(tr_d0d0t - 2 * n_E) >= EPS_CLOSE:
        raise ValueError(f"Tr(d₀d₀ᵀ) = {tr_d0d0t}, expected 2E = {2 * n_E}")
    if abs(tr_d1td1 - expected_d1td1) >= EPS_CLOSE:
        raise ValueError(f"Tr(d₁ᵀd₁) = {tr_d1td1}, expected 2E_int + E_bnd = {expected_d1td1}")

    return {
        'd0': d0,
        'd1': d1,
        'L1': L1,
        'd0d0t': d0d0t,
        'd1td1': d1td1,
        'edge_index': index,
        'n_boundary_edges': n_bnd,
        'traces': {
            'Tr_d0d0t': tr_d0d0t,
            'Tr_d1td1': tr_d1td1,
            'Tr_L1': float(L1.diagonal().sum()),
            'expected_d0d0t': 2 * n_E,
            'expected_d1td1': expected_d1td1,
            'expected_L1': 2 * n_E + expected_d1td1,
        },
    }
