"""Positions, normals and derived measures on a finished mesh."""

from .embedding import GeometryMixin, polygon_area
