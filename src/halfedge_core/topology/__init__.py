"""Half-edge relations, walks and invariant checking."""

from .connectivity import ConnectivityGraph, Walk
