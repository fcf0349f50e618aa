"""
Mesh Builder
============

Triangle soup (or indexed polygons) -> validated, frozen HalfEdgeMesh.

PHASES (explicit, communicating through plain maps):
    0. weld        corners within ε become one vertex (soup input only)
    1. inspect     degenerate faces, oriented-edge claims, fans per vertex,
                   unused vertices, open edges -> list of defects
    2. create      one vertex per used input vertex; per face, one half-edge
                   per side in the given order, linked into a next-cycle
    3. twins       oriented-edge map (a, b) -> half-edge; pair (a, b) with
                   (b, a); an unmatched edge gets a BOUNDARY half-edge as twin
    4. boundary    link BOUNDARY half-edges into hole loops
    5. anchors     first-seen outgoing half-edge per vertex, degree counts
    6. validate    any violation here is a builder bug -> CorruptTopology

DEFECT POLICY:
    strict   every defect found in phase 1 is collected, then construction
             aborts with one MeshBuildError listing all of them.
    lenient  faces that are degenerate, or that claim an oriented edge an
             earlier face already claimed, are dropped (greedy, input order)
             and logged. Nothing is repaired or invented. Defects that
             dropping cannot resolve (bowtie vertices, unused vertices,
             open edges under require_closed) still abort.

Callers get a fully consistent structure or an exception, never a partial mesh.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..mesh import HalfEdgeMesh
from ..geometry.embedding import polygon_area
from ..spec.constants import EPS_ZERO, FLOAT_DTYPE, MODE_LENIENT
from ..spec.errors import (
    CorruptTopology,
    DegenerateTriangle,
    DisconnectedVertex,
    InconsistentOrientation,
    InputDefect,
    MeshBuildError,
    NonManifoldEdge,
    NonManifoldVertex,
    OpenBoundary,
)
from ..spec.structures import (
    BOUNDARY,
    BuildOptions,
    BuildReport,
    FaceRecord,
    HalfEdgeId,
    HalfEdgeRecord,
    VertexId,
    VertexRecord,
)
from .welding import weld_positions

logger = logging.getLogger(__name__)

Edge = Tuple[int, int]


class MeshBuilder:
    """
    Builds HalfEdgeMesh instances with fixed options.

    Args:
        options: BuildOptions (defaults: ε = DEFAULT_WELD_TOL, strict mode)

    Example:
        builder = MeshBuilder(BuildOptions(tolerance=1e-5))
        mesh, report = builder.from_triangles(tris)
    """

    def __init__(self, options: Optional[BuildOptions] = None):
        self.options = options or BuildOptions()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def from_triangles(self, triangles, normals=None) -> Tuple[HalfEdgeMesh, BuildReport]:
        """
        Weld a triangle soup into a half-edge mesh.

        Args:
            triangles: (T, 3, 3) corner positions, one row of three corners per triangle
            normals: optional (T, 3) per-face or (T, 3, 3) per-corner normals

        Returns:
            (mesh, report). report.vertex_map is indexed by corner 3*t + k.
        """
        tris = np.asarray(triangles, dtype=FLOAT_DTYPE)
        if tris.size == 0:
            tris = tris.reshape(0, 3, 3)
        if tris.ndim != 3 or tris.shape[1:] != (3, 3):
            raise ValueError(f"triangles must have shape (T, 3, 3), got {tris.shape}")
        if not np.all(np.isfinite(tris)):
            raise ValueError("triangles contain non-finite coordinates")

        corners = tris.reshape(-1, 3)
        labels, reps = weld_positions(corners, self.options.tolerance)
        n_welded = len(corners) - len(reps)
        logger.debug("weld: %d corners -> %d vertices (eps=%g)",
                     len(corners), len(reps), self.options.tolerance)

        vertex_normals = None
        if normals is not None:
            vertex_normals = _weld_normals(normals, labels, len(tris), len(reps))

        faces = labels.reshape(-1, 3).tolist()
        mesh, report, index_map = self._assemble(faces, len(reps), reps, vertex_normals,
                                                 unused_is_defect=False)
        report.n_input_vertices = len(corners)
        report.n_welded = n_welded
        report.vertex_map = [index_map.get(int(c)) for c in labels]
        return mesh, report

    def from_faces(self, faces: Sequence[Sequence[int]], positions=None, normals=None,
                   n_vertices: Optional[int] = None) -> Tuple[HalfEdgeMesh, BuildReport]:
        """
        Build from indexed polygons (any side count >= 3). No welding.

        Args:
            faces: list of vertex index cycles
            positions: optional (N, 3); None builds a geometry-free mesh
            normals: optional (N, 3) per-vertex normals (requires positions)
            n_vertices: vertex count when positions is None
                        (default: max index + 1)

        Returns:
            (mesh, report). report.vertex_map is indexed by input vertex.
        """
        faces = [[int(v) for v in face] for face in faces]
        max_index = max((v for face in faces for v in face), default=-1)

        pos = None
        if positions is not None:
            pos = _as_rows(positions, "positions")
            if not np.all(np.isfinite(pos)):
                raise ValueError("positions contain non-finite coordinates")
            n = len(pos)
        elif n_vertices is not None:
            n = int(n_vertices)
        else:
            n = max_index + 1

        bad = [(i, v) for i, face in enumerate(faces) for v in face if v < 0 or v >= n]
        if bad:
            f_idx, v = bad[0]
            raise ValueError(f"Face {f_idx} uses vertex {v}, index out of bounds [0, {n - 1}]")

        vertex_normals = None
        if normals is not None:
            if pos is None:
                raise ValueError("normals given without positions")
            vertex_normals = _as_rows(normals, "normals")
            if len(vertex_normals) != n:
                raise ValueError(f"Expected {n} normals, got {len(vertex_normals)}")
            vertex_normals = _normalize_rows(vertex_normals)

        mesh, report, index_map = self._assemble(faces, n, pos, vertex_normals,
                                                 unused_is_defect=True)
        report.n_input_vertices = n
        report.vertex_map = [index_map.get(i) for i in range(n)]
        return mesh, report

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _assemble(self, faces: List[List[int]], n_vertices: int, positions, normals,
                  unused_is_defect: bool):
        options = self.options
        lenient = options.mode == MODE_LENIENT

        # Phase 1: inspect
        t0 = time.time()
        degenerate = find_degenerate_faces(faces, positions)
        if lenient:
            accepted, dropped = select_faces_lenient(faces, degenerate)
            defects: List[InputDefect] = []
        else:
            accepted = [i for i in range(len(faces)) if i not in degenerate]
            dropped = []
            defects = list(degenerate.values())
            defects += classify_edge_claims(claim_edges(faces, accepted))

        used = np.zeros(n_vertices, dtype=bool)
        for face in faces:
            for v in face:
                used[v] = True
        if unused_is_defect and not options.allow_isolated:
            defects += [DisconnectedVertex(int(v)) for v in np.flatnonzero(~used)]

        for v, n_fans in count_fans(faces, accepted).items():
            if n_fans > 1:
                around = [i for i in accepted if v in faces[i]]
                where = None if positions is None else positions[v]
                defects.append(NonManifoldVertex(v, n_fans, around, where))

        if options.require_closed:
            claims = claim_edges(faces, accepted)
            defects += [OpenBoundary(e, owners) for e, owners in claims.items()
                        if (e[1], e[0]) not in claims]

        if defects:
            logger.info("construction aborted: %d defect(s)", len(defects))
            raise MeshBuildError(defects)

        for defect in dropped:
            logger.warning("lenient build dropped face: %s", defect)

        # Phase 2: vertices
        mesh = HalfEdgeMesh(allow_isolated=options.allow_isolated,
                            has_positions=positions is not None,
                            has_normals=normals is not None)
        referenced = np.zeros(n_vertices, dtype=bool)
        for i in accepted:
            referenced[faces[i]] = True
        keep = referenced | (~used & options.allow_isolated)

        index_map: Dict[int, VertexId] = {}
        for v in np.flatnonzero(keep):
            v = int(v)
            record = VertexRecord(
                position=None if positions is None else _frozen_row(positions[v]),
                normal=None if normals is None else _frozen_row(normals[v]),
            )
            index_map[v] = mesh.vertex_store.insert(record)

        logger.debug("inspect + vertices: %d faces, %d accepted (%.3fs)", len(faces), len(accepted), time.time() - t0)

        # Phase 2-5: connectivity
        t0 = time.time()
        face_ids, edge_map = create_half_edges(mesh, faces, accepted, index_map)
        boundary = resolve_twins(mesh, edge_map)
        link_boundary(mesh, boundary)
        assign_anchors(mesh)

        logger.debug("connectivity: %d half-edges (%.3fs)", mesh.n_half_edges, time.time() - t0)

        # Phase 6: validate
        t0 = time.time()
        ok, violations = mesh.validate()
        if not ok:
            raise CorruptTopology(
                f"Builder produced an inconsistent mesh ({len(violations)} violations): "
                f"{violations[:5]}",
                violations,
            )
        logger.debug("validate: ok (%.3fs)", time.time() - t0)
        mesh.freeze()

        report = BuildReport(
            face_map=[face_ids.get(i) for i in range(len(faces))],
            dropped=sorted(d.triangle for d in dropped),
            defects=dropped,
        )
        logger.info("built mesh: V=%d E=%d F=%d (boundary half-edges=%d, dropped faces=%d)",
                    mesh.n_vertices, mesh.n_edges, mesh.n_faces, len(boundary), len(dropped))
        return mesh, report, index_map


# =============================================================================
# Phase 1: inspection
# =============================================================================

def find_degenerate_faces(faces: List[List[int]], positions) -> Dict[int, DegenerateTriangle]:
    """
    Faces with fewer than 3 corners, a repeated vertex, or (with positions)
    a zero polygon_area (area <= DEGENERATE_RATIO * longest side^2).
    """
    degenerate = {}
    for i, face in enumerate(faces):
        if len(face) < 3:
            degenerate[i] = DegenerateTriangle(i, f"{len(face)} corners")
        elif len(set(face)) != len(face):
            degenerate[i] = DegenerateTriangle(i, f"repeated vertex in {face}")
        elif positions is not None:
            if polygon_area(positions[face]) == 0.0:
                degenerate[i] = DegenerateTriangle(i, "zero area")
    return degenerate


def face_edges(face: List[int]) -> List[Edge]:
    """Oriented sides (a, b) of a face cycle."""
    n = len(face)
    return [(face[k], face[(k + 1) % n]) for k in range(n)]


def claim_edges(faces: List[List[int]], accepted: List[int]) -> Dict[Edge, List[int]]:
    """Oriented edge -> faces that traverse it, in input order."""
    claims: Dict[Edge, List[int]] = defaultdict(list)
    for i in accepted:
        for edge in face_edges(faces[i]):
            claims[edge].append(i)
    return dict(claims)


def classify_edge_claims(claims: Dict[Edge, List[int]]) -> List[NonManifoldEdge]:
    """
    One defect per oriented edge claimed more than once.

    Exactly two faces on the undirected edge, both in the same direction:
    InconsistentOrientation. Anything else: NonManifoldEdge.
    """
    defects = []
    for edge, owners in claims.items():
        if len(owners) < 2:
            continue
        reverse = claims.get((edge[1], edge[0]), [])
        if len(owners) == 2 and not reverse:
            defects.append(InconsistentOrientation(edge, owners))
        else:
            defects.append(NonManifoldEdge(edge, owners + reverse))
    return defects


def select_faces_lenient(faces: List[List[int]],
                         degenerate: Dict[int, DegenerateTriangle]) -> Tuple[List[int], List[InputDefect]]:
    """
    Greedy selection in input order.

    A face is kept if it is not degenerate and none of its oriented edges was
    claimed by a face kept before it.

    Returns:
        (accepted face indices, defects of the dropped faces)
    """
    claimed: Dict[Edge, int] = {}
    accepted, dropped = [], []
    for i, face in enumerate(faces):
        if i in degenerate:
            dropped.append(degenerate[i])
            continue
        edges = face_edges(face)
        clash = [e for e in edges if e in claimed]
        if clash:
            edge = clash[0]
            owners = [claimed[edge], i]
            if (edge[1], edge[0]) in claimed:
                defect = NonManifoldEdge(edge, owners + [claimed[(edge[1], edge[0])]])
            else:
                defect = InconsistentOrientation(edge, owners)
            defect.triangle = i
            dropped.append(defect)
            continue
        for e in edges:
            claimed[e] = i
        accepted.append(i)
    return accepted, dropped


def count_fans(faces: List[List[int]], accepted: List[int]) -> Dict[int, int]:
    """
    Number of face fans around each used vertex.

    Around v, every corner of a face links its two neighbours (prev, next);
    fans are the connected components of that link graph. A manifold vertex
    has exactly one.
    """
    parent: Dict[Tuple[int, int], Tuple[int, int]] = {}

    def find(key):
        while parent[key] != key:
            parent[key] = parent[parent[key]]
            key = parent[key]
        return key

    def union(a, b):
        parent.setdefault(a, a)
        parent.setdefault(b, b)
        ra, rb = find(a), find(b)
        if ra != rb:
            parent[rb] = ra

    for i in accepted:
        face = faces[i]
        n = len(face)
        for k, v in enumerate(face):
            union((v, face[k - 1]), (v, face[(k + 1) % n]))

    fans: Dict[int, set] = defaultdict(set)
    for key in parent:
        fans[key[0]].add(find(key))
    return {v: len(roots) for v, roots in fans.items()}


# =============================================================================
# Phases 2-5: connectivity
# =============================================================================

def create_half_edges(mesh: HalfEdgeMesh, faces: List[List[int]], accepted: List[int],
                      index_map: Dict[int, VertexId]):
    """
    One face record and one next-cycle of half-edges per accepted face.

    Returns:
        face_ids: input face index -> FaceId
        edge_map: oriented input edge (a, b) -> HalfEdgeId
    """
    faces_store = mesh.face_store
    he_store = mesh.half_edge_store
    face_ids = {}
    edge_map: Dict[Edge, HalfEdgeId] = {}

    for i in accepted:
        face = faces[i]
        f = faces_store.insert(FaceRecord(degree=len(face)))
        loop = [he_store.insert(HalfEdgeRecord(origin=index_map[v], face=f)) for v in face]
        n = len(loop)
        for k, h in enumerate(loop):
            he_store.update(h, next=loop[(k + 1) % n], prev=loop[k - 1])
        faces_store.update(f, half_edge=loop[0])
        for edge, h in zip(face_edges(face), loop):
            edge_map[edge] = h
        face_ids[i] = f

    logger.debug("create: %d faces, %d half-edges", len(face_ids), len(he_store))
    return face_ids, edge_map


def resolve_twins(mesh: HalfEdgeMesh, edge_map: Dict[Edge, HalfEdgeId]) -> List[HalfEdgeId]:
    """
    Pair (a, b) with (b, a). An unmatched edge gets a new BOUNDARY half-edge
    (origin b) as its twin.

    Returns:
        the BOUNDARY half-edges created, in creation order
    """
    store = mesh.half_edge_store
    boundary = []
    for (a, b), h in edge_map.items():
        record = store.get(h)
        if record.twin is not None:
            continue
        g = edge_map.get((b, a))
        if g is None:
            origin = store.get(record.next).origin
            g = store.insert(HalfEdgeRecord(origin=origin, face=BOUNDARY))
            boundary.append(g)
        store.update(h, twin=g)
        store.update(g, twin=h)

    logger.debug("twins: %d edges, %d on the boundary", len(store) // 2, len(boundary))
    return boundary


def link_boundary(mesh: HalfEdgeMesh, boundary: List[HalfEdgeId]) -> None:
    """
    Set next/prev on BOUNDARY half-edges.

    For t = (b -> a) on a hole, next(t) is the BOUNDARY half-edge leaving a
    in the same fan: rotate around a from twin(t) through interior faces
    (g -> twin(prev(g))) until the rotation crosses the hole.
    """
    store = mesh.half_edge_store
    limit = len(store)
    for t in boundary:
        g = store.get(t).twin
        for _ in range(limit):
            candidate = store.get(store.get(g).prev).twin
            if store.get(candidate).face is BOUNDARY:
                break
            g = candidate
        else:
            raise CorruptTopology(f"boundary rotation from {t!r} did not reach the hole")
        store.update(t, next=candidate)
        store.update(candidate, prev=t)


def assign_anchors(mesh: HalfEdgeMesh) -> None:
    """First-seen outgoing half-edge per vertex; count outgoing half-edges."""
    anchors: Dict[VertexId, HalfEdgeId] = {}
    degrees: Dict[VertexId, int] = defaultdict(int)
    for h, record in mesh.half_edge_store.items():
        anchors.setdefault(record.origin, h)
        degrees[record.origin] += 1
    for v, h in anchors.items():
        mesh.vertex_store.update(v, outgoing=h, degree=degrees[v])


# =============================================================================
# Helpers
# =============================================================================

def _as_rows(values, name: str) -> np.ndarray:
    """(N, 3) float64 rows. ValueError on any other shape."""
    arr = np.asarray(values, dtype=FLOAT_DTYPE)
    if arr.size == 0:
        arr = arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"{name} must have shape (N, 3), got {arr.shape}")
    return arr


def _weld_normals(normals, labels: np.ndarray, n_tris: int, n_vertices: int) -> np.ndarray:
    """Per-vertex unit normals: normalised sum of the input normals of merged corners."""
    arr = np.asarray(normals, dtype=FLOAT_DTYPE)
    if arr.shape == (n_tris, 3):
        arr = np.repeat(arr, 3, axis=0)
    elif arr.shape == (n_tris, 3, 3):
        arr = arr.reshape(-1, 3)
    else:
        raise ValueError(f"normals must have shape ({n_tris}, 3) or ({n_tris}, 3, 3), got {arr.shape}")
    total = np.zeros((n_vertices, 3), dtype=FLOAT_DTYPE)
    np.add.at(total, labels, arr)
    return _normalize_rows(total)


def _normalize_rows(arr: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(arr, axis=1, keepdims=True)
    return np.where(norms > EPS_ZERO, arr / np.where(norms > EPS_ZERO, norms, 1.0), 0.0)


def _frozen_row(row: np.ndarray) -> np.ndarray:
    out = np.array(row, dtype=FLOAT_DTYPE)
    out.flags.writeable = False
    return out


def build_from_triangles(triangles, normals=None, options: Optional[BuildOptions] = None,
                         **overrides) -> HalfEdgeMesh:
    """
    Weld a triangle soup into a validated, frozen HalfEdgeMesh.

    Args:
        triangles: (T, 3, 3) corner positions
        normals: optional (T, 3) or (T, 3, 3)
        options: BuildOptions; keyword overrides (tolerance=..., mode=...)
                 are applied on top

    Raises:
        MeshBuildError: input defects (all of them, in one report)
    """
    return MeshBuilder(_merge_options(options, overrides)).from_triangles(triangles, normals)[0]


def build_from_faces(faces, positions=None, normals=None, options: Optional[BuildOptions] = None,
                     n_vertices: Optional[int] = None, **overrides) -> HalfEdgeMesh:
    """
    Build a validated, frozen HalfEdgeMesh from indexed polygons.

    positions=None gives a geometry-free mesh (MissingGeometry on positional queries).
    """
    builder = MeshBuilder(_merge_options(options, overrides))
    return builder.from_faces(faces, positions, normals, n_vertices=n_vertices)[0]


def _merge_options(options: Optional[BuildOptions], overrides) -> BuildOptions:
    base = options or BuildOptions()
    if not overrides:
        return base
    fields = dict(vars(base))
    unknown = set(overrides) - set(fields)
    if unknown:
        raise TypeError(f"Unknown build option(s): {sorted(unknown)}")
    fields.update(overrides)
    return BuildOptions(**fields)
