"""
Vertex Welding
==============

Merge input positions that represent the same point within tolerance ε.

ALGORITHM (spatial hash, sub-quadratic):
    1. Quantize every position to an integer cell key floor(p / ε).
    2. Visit positions in input order. Candidate clusters are those whose
       representative lies in one of the 27 cells around the key.
    3. Join the first-seen candidate with |p - representative| <= ε,
       otherwise open a new cluster with p as its representative.

The representative of a cluster is its first-seen position, so the result
is deterministic and stable under input order. With ε = 0 only exactly
equal coordinates merge (plain dictionary lookup, no quantization).

NOTE: distances are measured to the representative, not to every member.
Two members of one cluster can therefore be up to 2ε apart.
"""

import itertools
from typing import Dict, List, Tuple

import numpy as np

from ..spec.constants import FLOAT_DTYPE

_NEIGHBOR_OFFSETS = np.array(list(itertools.product((-1, 0, 1), repeat=3)), dtype=np.int64)


def weld_positions(points: np.ndarray, tolerance: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cluster positions within `tolerance`.

    Args:
        points: (N, 3) positions
        tolerance: welding distance ε >= 0

    Returns:
        labels: (N,) int array, cluster index per input position
                (clusters numbered in first-seen order)
        representatives: (K, 3) float64, first-seen position per cluster
    """
    points = np.asarray(points, dtype=FLOAT_DTYPE).reshape(-1, 3)
    if tolerance < 0:
        raise ValueError(f"tolerance must be >= 0, got {tolerance}")
    if tolerance == 0:
        return _weld_exact(points)

    keys = np.floor(points / tolerance).astype(np.int64)
    tol2 = tolerance * tolerance

    grid: Dict[Tuple[int, int, int], List[int]] = {}
    reps: List[np.ndarray] = []
    labels = np.empty(len(points), dtype=np.int64)

    for i, (p, key) in enumerate(zip(points, keys)):
        match = -1
        for offset in _NEIGHBOR_OFFSETS:
            for c in grid.get(tuple(key + offset), ()):
                if (match == -1 or c < match) and np.sum((reps[c] - p) ** 2) <= tol2:
                    match = c
        if match == -1:
            match = len(reps)
            reps.append(p)
            grid.setdefault(tuple(key), []).append(match)
        labels[i] = match

    return labels, np.array(reps, dtype=FLOAT_DTYPE).reshape(-1, 3)


def _weld_exact(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    index: Dict[tuple, int] = {}
    reps: List[np.ndarray] = []
    labels = np.empty(len(points), dtype=np.int64)
    for i, p in enumerate(points):
        key = tuple(p.tolist())
        c = index.get(key)
        if c is None:
            c = len(reps)
            index[key] = c
            reps.append(p)
        labels[i] = c
    return labels, np.array(reps, dtype=FLOAT_DTYPE).reshape(-1, 3)
