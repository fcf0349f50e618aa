"""Indexed entity storage - no half-edge semantics."""

from .entity_store import EntityStore
