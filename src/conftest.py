"""
Pytest Configuration
====================

Automatically loaded by pytest. Adds src/ to sys.path
so halfedge_core is importable without installation.

Usage:
    cd src
    pytest tests/ -v
"""

import logging
import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    """Add src/ to path before any imports happen."""
    src_root = Path(__file__).parent
    if str(src_root) not in sys.path:
        sys.path.insert(0, str(src_root))


# Also do it at module level for non-pytest usage
src_root = Path(__file__).parent
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))


@pytest.fixture
def builder_log(caplog):
    """Capture halfedge_core log records down to DEBUG."""
    caplog.set_level(logging.DEBUG, logger="halfedge_core")
    return caplog
