"""
Connectivity Graph
==================

Half-edge relations and traversal on top of three Entity Stores.

RELATIONS (all O(1), InvalidId on a foreign/dead id):
    twin(h)           oppositely oriented half-edge of the same edge
    next(h), prev(h)  neighbours on the same face loop
    origin(h)         vertex h starts at
    incident_face(h)  FaceId, or BOUNDARY on the hole side of an open edge
    outgoing(v)       anchor half-edge leaving v (None for an isolated vertex)

WALKS (lazy, finite, restartable):
    face_loop(f)      h, next(h), next(next(h)), ... back to the anchor
    vertex_star(v)    h, next(twin(h)), ... back to the anchor (umbrella walk)

    A walk that has not closed after (degree + 1) steps raises
    CorruptTopology: a builder defect, never a silent infinite loop.

INVARIANTS (validate):
    I1  twin(twin(h)) == h, twin(h) != h
    I2  next(prev(h)) == h, prev(next(h)) == h
    I3  face loops close after exactly degree(f) steps, all on face f
    I4  one twin pair per undirected edge
    I5  origin(next(h)) == origin(twin(h))
    I6  outgoing(v) originates at v
    I7  vertex_star(v) reaches all degree(v) outgoing half-edges
    I8  boundary half-edges form closed loops

validate() is O(entities). Run it after construction and in tests,
not on every query.
"""

from collections import defaultdict
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..spec.constants import KIND_FACE, KIND_HALF_EDGE, KIND_VERTEX
from ..spec.errors import CorruptTopology
from ..spec.structures import (
    BOUNDARY,
    FaceId,
    FaceRecord,
    FaceRef,
    HalfEdgeId,
    HalfEdgeRecord,
    VertexId,
    VertexRecord,
)
from ..store.entity_store import EntityStore


class Walk:
    """
    Cyclic walk over half-edges.

    Iterable any number of times; each iteration restarts at the anchor.
    Nothing is computed until iteration begins.
    """

    def __init__(self, start: Optional[HalfEdgeId], step: Callable, bound: int, label: str):
        self._start = start
        self._step = step
        self._bound = bound
        self._label = label

    def __iter__(self) -> Iterator[HalfEdgeId]:
        start = self._start
        if start is None:
            return
        current = start
        for _ in range(self._bound + 1):
            yield current
            current = self._step(current)
            if current == start:
                return
        raise CorruptTopology(
            f"{self._label}: walk from {start!r} did not close within {self._bound + 1} steps"
        )

    def count(self) -> int:
        """Number of half-edges on the walk (one full traversal)."""
        return sum(1 for _ in self)

    def __repr__(self):
        return f"Walk({self._label}, start={self._start!r})"


class ConnectivityGraph:
    """
    Half-edge connectivity. Populated by the builder, then frozen.

    Attributes:
        vertex_store, half_edge_store, face_store: the owning arenas
        allow_isolated: construction permitted vertices without half-edges
    """

    def __init__(self, allow_isolated: bool = False):
        self.vertex_store: EntityStore[VertexRecord] = EntityStore(KIND_VERTEX, VertexId)
        self.half_edge_store: EntityStore[HalfEdgeRecord] = EntityStore(KIND_HALF_EDGE, HalfEdgeId)
        self.face_store: EntityStore[FaceRecord] = EntityStore(KIND_FACE, FaceId)
        self.allow_isolated = allow_isolated

    def __repr__(self):
        return (f"{type(self).__name__}(V={self.n_vertices}, E={self.n_edges}, "
                f"F={self.n_faces}, H={self.n_half_edges})")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def freeze(self) -> None:
        """End of construction. Every store becomes read-only."""
        self.vertex_store.freeze()
        self.half_edge_store.freeze()
        self.face_store.freeze()

    @property
    def frozen(self) -> bool:
        return self.half_edge_store.frozen

    # -------------------------------------------------------------------------
    # Counts
    # -------------------------------------------------------------------------

    @property
    def n_vertices(self) -> int:
        return len(self.vertex_store)

    @property
    def n_half_edges(self) -> int:
        return len(self.half_edge_store)

    @property
    def n_faces(self) -> int:
        return len(self.face_store)

    @property
    def n_edges(self) -> int:
        # Boundary sides are materialised, so half-edges always pair up
        return len(self.half_edge_store) // 2

    # -------------------------------------------------------------------------
    # Relations
    # -------------------------------------------------------------------------

    def twin(self, h: HalfEdgeId) -> HalfEdgeId:
        return self.half_edge_store.get(h).twin

    def next(self, h: HalfEdgeId) -> HalfEdgeId:
        return self.half_edge_store.get(h).next

    def prev(self, h: HalfEdgeId) -> HalfEdgeId:
        return self.half_edge_store.get(h).prev

    def origin(self, h: HalfEdgeId) -> VertexId:
        return self.half_edge_store.get(h).origin

    def incident_face(self, h: HalfEdgeId) -> FaceRef:
        return self.half_edge_store.get(h).face

    def outgoing(self, v: VertexId) -> Optional[HalfEdgeId]:
        return self.vertex_store.get(v).outgoing

    def anchor(self, f: FaceId) -> HalfEdgeId:
        """Half-edge the face loop starts from."""
        return self.face_store.get(f).half_edge

    def target(self, h: HalfEdgeId) -> VertexId:
        """Vertex h points to (= origin of its twin)."""
        return self.origin(self.twin(h))

    def endpoints(self, h: HalfEdgeId) -> Tuple[VertexId, VertexId]:
        return self.origin(h), self.target(h)

    def is_boundary(self, h: HalfEdgeId) -> bool:
        """h lies on the hole side of an open edge."""
        return self.incident_face(h) is BOUNDARY

    def is_boundary_edge(self, h: HalfEdgeId) -> bool:
        """Either side of h's edge is a hole."""
        return self.is_boundary(h) or self.is_boundary(self.twin(h))

    def is_boundary_vertex(self, v: VertexId) -> bool:
        return any(self.is_boundary(h) for h in self.vertex_star(v))

    def is_isolated(self, v: VertexId) -> bool:
        return self.outgoing(v) is None

    # -------------------------------------------------------------------------
    # Walks
    # -------------------------------------------------------------------------

    def face_loop(self, f: FaceId) -> Walk:
        """Half-edges bounding f, starting at its anchor, following next."""
        record = self.face_store.get(f)
        return Walk(record.half_edge, self.next, record.degree, f"face loop {f!r}")

    def vertex_star(self, v: VertexId) -> Walk:
        """Outgoing half-edges around v (umbrella walk: next(twin(h)))."""
        record = self.vertex_store.get(v)
        return Walk(record.outgoing, self._rotate, record.degree, f"vertex star {v!r}")

    def _rotate(self, h: HalfEdgeId) -> HalfEdgeId:
        return self.next(self.twin(h))

    def face_half_edges(self, f: FaceId) -> List[HalfEdgeId]:
        return list(self.face_loop(f))

    def face_vertices(self, f: FaceId) -> List[VertexId]:
        """Corners of f in loop order."""
        return [self.origin(h) for h in self.face_loop(f)]

    def face_degree(self, f: FaceId) -> int:
        return self.face_store.get(f).degree

    def vertex_faces(self, v: VertexId) -> List[FaceId]:
        """Faces around v in umbrella order (BOUNDARY excluded)."""
        return [self.incident_face(h) for h in self.vertex_star(v) if not self.is_boundary(h)]

    def vertex_neighbors(self, v: VertexId) -> List[VertexId]:
        """One-ring vertices in umbrella order."""
        return [self.target(h) for h in self.vertex_star(v)]

    def face_neighbors(self, f: FaceId) -> List[FaceId]:
        """Faces across each non-boundary edge of f, in loop order."""
        neighbors = []
        for h in self.face_loop(f):
            g = self.twin(h)
            if not self.is_boundary(g):
                neighbors.append(self.incident_face(g))
        return neighbors

    def find_half_edge(self, u: VertexId, v: VertexId) -> Optional[HalfEdgeId]:
        """Half-edge u -> v, or None if u and v are not adjacent."""
        for h in self.vertex_star(u):
            if self.target(h) == v:
                return h
        return None

    # -------------------------------------------------------------------------
    # Global iteration
    # -------------------------------------------------------------------------

    def vertices(self) -> Iterator[VertexId]:
        return self.vertex_store.ids()

    def half_edges(self) -> Iterator[HalfEdgeId]:
        return self.half_edge_store.ids()

    def faces(self) -> Iterator[FaceId]:
        return self.face_store.ids()

    def edges(self) -> Iterator[HalfEdgeId]:
        """One representative half-edge per undirected edge (the smaller id)."""
        for h, record in self.half_edge_store.items():
            if h < record.twin:
                yield h

    def boundary_half_edges(self) -> Iterator[HalfEdgeId]:
        for h, record in self.half_edge_store.items():
            if record.face is BOUNDARY:
                yield h

    def boundary_loops(self) -> List[List[HalfEdgeId]]:
        """Each hole as the cycle of its BOUNDARY half-edges, in next order."""
        loops = []
        seen = set()
        bound = self.n_half_edges
        for h in self.boundary_half_edges():
            if h in seen:
                continue
            loop = list(Walk(h, self.next, bound, f"boundary loop {h!r}"))
            seen.update(loop)
            loops.append(loop)
        return loops

    @property
    def is_closed(self) -> bool:
        """No boundary half-edges (watertight)."""
        return next(self.boundary_half_edges(), None) is None

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Check every invariant over the whole structure.

        Returns:
            (is_valid, list of violation messages)
        """
        violations: List[str] = []
        violations += self._check_half_edges()
        violations += self._check_faces()
        violations += self._check_vertices()
        violations += self._check_boundary_loops()
        return len(violations) == 0, violations

    def _check_half_edges(self) -> List[str]:
        errors = []
        store = self.half_edge_store
        pairs: Dict[Tuple[VertexId, VertexId], List[HalfEdgeId]] = defaultdict(list)

        for h, record in store.items():
            links = {'twin': record.twin, 'next': record.next, 'prev': record.prev}
            missing = [name for name, g in links.items() if g not in store]
            if missing:
                errors.append(f"I1/I2: {h!r} has invalid {', '.join(missing)}")
                continue

            twin = store.get(record.twin)
            if record.twin == h:
                errors.append(f"I1: {h!r} is its own twin")
            elif twin.twin != h:
                errors.append(f"I1: twin(twin({h!r})) = {twin.twin!r}")
            if record.origin == twin.origin:
                errors.append(f"I1: {h!r} and its twin share origin {record.origin!r}")

            if store.get(record.prev).next != h:
                errors.append(f"I2: next(prev({h!r})) = {store.get(record.prev).next!r}")
            if store.get(record.next).prev != h:
                errors.append(f"I2: prev(next({h!r})) = {store.get(record.next).prev!r}")

            if store.get(record.next).origin != twin.origin:
                errors.append(f"I5: origin(next({h!r})) != origin(twin({h!r}))")

            if store.get(record.next).face != record.face:
                errors.append(f"I3: {h!r} and next({h!r}) lie on different faces")

            if record.face is not BOUNDARY and record.face not in self.face_store:
                errors.append(f"I3: {h!r} has invalid face {record.face!r}")

            if record.origin not in self.vertex_store:
                errors.append(f"I6: {h!r} has invalid origin {record.origin!r}")
                continue
            pairs[(record.origin, twin.origin)].append(h)

        for (u, v), hs in pairs.items():
            if len(hs) > 1:
                errors.append(f"I4: edge ({u!r} -> {v!r}) carried by {len(hs)} half-edges {hs}")

        return errors

    def _check_faces(self) -> List[str]:
        errors = []
        counts: Dict[FaceId, int] = defaultdict(int)
        for h, record in self.half_edge_store.items():
            if record.face is not BOUNDARY:
                counts[record.face] += 1

        for f, record in self.face_store.items():
            if record.half_edge not in self.half_edge_store:
                errors.append(f"I3: {f!r} has invalid anchor {record.half_edge!r}")
                continue
            if record.degree < 3:
                errors.append(f"I3: {f!r} has degree {record.degree} < 3")
            try:
                loop = list(self.face_loop(f))
            except CorruptTopology as exc:
                errors.append(f"I3: {exc}")
                continue
            if len(loop) != record.degree:
                errors.append(f"I3: loop of {f!r} has {len(loop)} half-edges, degree is {record.degree}")
            stray = [h for h in loop if self.incident_face(h) != f]
            if stray:
                errors.append(f"I3: loop of {f!r} passes through foreign half-edges {stray}")
            if counts.get(f, 0) != record.degree:
                errors.append(f"I3: {f!r} owns {counts.get(f, 0)} half-edges, degree is {record.degree}")

        return errors

    def _check_vertices(self) -> List[str]:
        errors = []
        out_degree: Dict[VertexId, int] = defaultdict(int)
        for h, record in self.half_edge_store.items():
            out_degree[record.origin] += 1

        for v, record in self.vertex_store.items():
            if record.outgoing is None:
                if not self.allow_isolated:
                    errors.append(f"I6: {v!r} is isolated")
                if out_degree.get(v, 0) != 0:
                    errors.append(f"I6: {v!r} has no anchor but {out_degree[v]} outgoing half-edges")
                continue
            if record.outgoing not in self.half_edge_store:
                errors.append(f"I6: {v!r} has invalid anchor {record.outgoing!r}")
                continue
            if self.origin(record.outgoing) != v:
                errors.append(f"I6: anchor of {v!r} originates at {self.origin(record.outgoing)!r}")
                continue
            if record.degree != out_degree.get(v, 0):
                errors.append(f"I7: {v!r} degree {record.degree} != {out_degree.get(v, 0)} outgoing")
            try:
                star = list(self.vertex_star(v))
            except CorruptTopology as exc:
                errors.append(f"I7: {exc}")
                continue
            if len(star) != out_degree.get(v, 0):
                errors.append(f"I7: star of {v!r} reaches {len(star)} of {out_degree[v]} outgoing half-edges")

        return errors

    def _check_boundary_loops(self) -> List[str]:
        try:
            self.boundary_loops()
        except CorruptTopology as exc:
            return [f"I8: {exc}"]
        return []
