"""
Analysis functions - depend on the read API and operators layer.

Separated from builders to maintain clean layering:
    builders → topology/geometry → store → spec
    analysis → operators → topology/geometry

Includes:
- curvature: angular deficits, Gauss-Bonnet total, normal arrays
- topology: Euler characteristic, boundary loops, genus, summaries
"""

from .curvature import compute_vertex_deficits, gauss_bonnet_total, face_normals, vertex_normals
from .topology import (
    euler_characteristic,
    count_boundary_loops,
    genus,
    degree_histogram,
    summarize_topology,
)
