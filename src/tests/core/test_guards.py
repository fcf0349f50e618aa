"""
Guard and Edge Case Tests for halfedge_core
===========================================

Tests for option guards, frozen records, error messages and imports.
Separated from test_builder.py to keep the main suite focused on invariants.

Run: python -m pytest tests/core/test_guards.py -v
"""

import dataclasses
import logging

import numpy as np
import pytest
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from halfedge_core.builders import build_from_faces, build_tetrahedron
from halfedge_core.spec import (
    BOUNDARY,
    BuildOptions,
    DegenerateTriangle,
    FaceId,
    FaceRecord,
    HalfEdgeId,
    InconsistentOrientation,
    InputDefect,
    KIND_FACE,
    MeshBuildError,
    MeshError,
    NonManifoldEdge,
)
from halfedge_core.store import EntityStore


# =============================================================================
# P1: CRITICAL - Option guards
# =============================================================================

def test_invalid_mode_raises():
    """P1.1: Unknown build mode is rejected up front."""
    with pytest.raises(ValueError, match="Invalid mode"):
        BuildOptions(mode="forgiving")


def test_negative_tolerance_raises():
    """P1.2: Welding tolerance must be >= 0."""
    with pytest.raises(ValueError, match="tolerance"):
        BuildOptions(tolerance=-1e-6)


def test_non_finite_tolerance_raises():
    """P1.3: NaN / inf tolerance would weld everything or nothing."""
    for bad in (np.nan, np.inf):
        with pytest.raises(ValueError, match="tolerance"):
            BuildOptions(tolerance=bad)


def test_default_options():
    options = BuildOptions()
    assert options.tolerance == 1e-6
    assert options.mode == "strict"
    assert not options.allow_isolated
    assert not options.require_closed


# =============================================================================
# P2: IMPORTANT - Frozen meshes stay frozen
# =============================================================================

def test_records_are_immutable():
    """P2.1: A record handed out by get() cannot be written through."""
    vertices, faces = build_tetrahedron()
    mesh = build_from_faces(faces, vertices)
    v = next(mesh.vertices())
    record = mesh.vertex_store.get(v)

    with pytest.raises(dataclasses.FrozenInstanceError):
        record.outgoing = None
    with pytest.raises(AttributeError):
        mesh.half_edge_store.get(mesh.outgoing(v)).twin = None
    assert mesh.outgoing(v) is not None
    assert mesh.validate()[0]


def test_update_swaps_in_a_copy():
    """P2.2: update() replaces the record; earlier references keep the old values."""
    store = EntityStore(KIND_FACE, FaceId)
    f = store.insert(FaceRecord(degree=3))
    before = store.get(f)
    store.update(f, degree=4)

    assert before.degree == 3
    assert store.get(f).degree == 4
    assert store.get(f) is not before


# =============================================================================
# P3: Error hierarchy and messages
# =============================================================================

def test_defects_share_base():
    """P3.1: Every input defect is a MeshError and a ValueError."""
    defect = DegenerateTriangle(4, "repeated vertex")
    assert isinstance(defect, InputDefect)
    assert isinstance(defect, MeshError)
    assert isinstance(defect, ValueError)


def test_inconsistent_orientation_is_non_manifold_edge():
    """P3.2: Same-direction pair is caught by an `except NonManifoldEdge`."""
    defect = InconsistentOrientation((1, 2), [0, 5])
    assert isinstance(defect, NonManifoldEdge)
    assert defect.edge == (1, 2)
    assert "INCONSISTENT ORIENTATION" in str(defect)


def test_build_error_message_truncates():
    """P3.3: Long defect lists are summarised, full list kept on the exception."""
    defects = [DegenerateTriangle(i, "zero area") for i in range(25)]
    err = MeshBuildError(defects)

    assert len(err.defects) == 25
    assert "25 defect(s)" in str(err)
    assert "... and 15 more" in str(err)
    assert err.of_kind(NonManifoldEdge) == []


def test_id_and_sentinel_repr():
    assert repr(HalfEdgeId(1, 12)) == "H:12"
    assert repr(BOUNDARY) == "BOUNDARY"


# =============================================================================
# P4: Import smoke tests
# =============================================================================

def test_import_smoke_package():
    """P4.1: Top-level package exposes the construction API."""
    import halfedge_core
    assert hasattr(halfedge_core, 'HalfEdgeMesh')
    assert hasattr(halfedge_core, 'build_from_triangles')
    assert hasattr(halfedge_core, 'MeshBuildError')


def test_import_smoke_operators():
    """P4.2: Import operators module works."""
    from halfedge_core import operators
    assert hasattr(operators, 'build_d0')
    assert hasattr(operators, 'build_operators_from_mesh')


def test_import_smoke_analysis():
    """P4.3: Import analysis module works."""
    from halfedge_core import analysis
    assert hasattr(analysis, 'summarize_topology')


def test_setup_logging_idempotent(tmp_path):
    """P4.4: Repeated setup replaces handlers instead of stacking them."""
    from halfedge_core import setup_logging

    log_file = tmp_path / "build.log"
    logger = setup_logging(logging.DEBUG)
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))
    try:
        assert logger.name == "halfedge_core"
        assert len(logger.handlers) == 2
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
