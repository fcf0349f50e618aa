"""
Entity Store
============

Indexed arena for one entity kind. Pure storage - NO half-edge semantics.

CONTRACT:
    insert(record) -> id     allocate a fresh id, never reused
    get(id) -> record        O(1); InvalidId unless issued by THIS store
    update(id, **fields)     swap in dataclasses.replace(record, **fields)
    len(store)               O(1)

Every store instance draws a unique token; ids carry the token of the store
that issued them. An id from another mesh (or of another kind) fails the
token/type check instead of silently indexing into the wrong list.

LIFECYCLE:
    append-only while the builder runs, then freeze().
    After freeze() both insert() and update() raise FrozenStoreError;
    records are frozen dataclasses, so get() never hands out a writable
    view. Reads stay valid and can run from any number of threads.
"""

import dataclasses
import itertools
from typing import Generic, Iterator, List, Tuple, Type, TypeVar

from ..spec.constants import KIND_LABELS
from ..spec.errors import FrozenStoreError, InvalidId

R = TypeVar("R")

# Process-wide source of store tokens
_tokens = itertools.count(1)


class EntityStore(Generic[R]):
    """
    Arena of records of one kind.

    Args:
        kind: entity kind name (constants.KIND_*), used in messages
        id_type: identifier class issued by this store (VertexId, ...)
    """

    def __init__(self, kind: str, id_type: Type):
        self.kind = kind
        self.id_type = id_type
        self.token = next(_tokens)
        self._records: List[R] = []
        self._frozen = False

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, entity_id) -> bool:
        return (type(entity_id) is self.id_type
                and entity_id.store == self.token
                and 0 <= entity_id.index < len(self._records))

    def __repr__(self):
        state = "frozen" if self._frozen else "open"
        return f"EntityStore({self.kind}, n={len(self)}, {state})"

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Refuse every later insert/update."""
        self._frozen = True

    def insert(self, record: R):
        """Store `record`, return its new id."""
        if self._frozen:
            raise FrozenStoreError(f"Cannot insert into frozen {self.kind} store")
        entity_id = self.id_type(self.token, len(self._records))
        self._records.append(record)
        return entity_id

    def get(self, entity_id) -> R:
        """Record for `entity_id`. InvalidId if this store never issued it."""
        if entity_id not in self:
            raise InvalidId(self._describe_invalid(entity_id))
        return self._records[entity_id.index]

    def update(self, entity_id, **fields) -> None:
        """Replace the record with a copy carrying `fields`. Refused once frozen."""
        if self._frozen:
            raise FrozenStoreError(f"Cannot update frozen {self.kind} store")
        record = self.get(entity_id)
        for name in fields:
            if not hasattr(record, name):
                raise AttributeError(f"{type(record).__name__} has no field {name!r}")
        self._records[entity_id.index] = dataclasses.replace(record, **fields)

    def ids(self) -> Iterator:
        """All ids in issue order."""
        for index in range(len(self._records)):
            yield self.id_type(self.token, index)

    def items(self) -> Iterator[Tuple[object, R]]:
        """(id, record) pairs in issue order."""
        for index, record in enumerate(self._records):
            yield self.id_type(self.token, index), record

    def _describe_invalid(self, entity_id) -> str:
        label = KIND_LABELS.get(self.kind, self.kind)
        if type(entity_id) is not self.id_type:
            return (f"{label}: expected {self.id_type.__name__}, "
                    f"got {type(entity_id).__name__} {entity_id!r}")
        if entity_id.store != self.token:
            return f"{label}: {entity_id!r} was issued by another mesh (store {entity_id.store})"
        return f"{label}: {entity_id!r} out of range [0, {len(self._records)})"
