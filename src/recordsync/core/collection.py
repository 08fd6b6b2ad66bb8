"""
Identity-keyed collection of serialized records.
"""

from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set

from .exceptions import InvalidInputError, RecordNotFoundError
from .models import SerializedRecord


class RecordCollection:
    """
    Insertion-ordered set of SerializedRecords keyed by uuid.

    Lookups by uuid are O(1). Iteration yields records in insertion order,
    which for collections produced by discovery is a dependency-respecting
    order.
    """

    def __init__(self, records: Optional[Iterable[SerializedRecord]] = None):
        self._items: Dict[str, SerializedRecord] = {}
        for record in records or []:
            self.add(record)

    @staticmethod
    def _check(value: object) -> SerializedRecord:
        if not isinstance(value, SerializedRecord):
            raise InvalidInputError(
                "Only SerializedRecord instances can be added to a RecordCollection, "
                f'"{type(value).__name__}" given instead.'
            )
        return value

    def __iter__(self) -> Iterator[SerializedRecord]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, uuid: object) -> bool:
        return uuid in self._items

    def __repr__(self) -> str:
        return f"RecordCollection({self.uuids()!r})"

    def has(self, uuid: str) -> bool:
        return uuid in self._items

    def get(self, uuid: str) -> Optional[SerializedRecord]:
        return self._items.get(uuid)

    def set(self, uuid: str, record: SerializedRecord) -> None:
        self._check(record)
        if record.uuid != uuid:
            raise InvalidInputError(
                f"Record {record.uuid} cannot be stored under key {uuid}."
            )
        self._items[uuid] = record

    def add(self, record: SerializedRecord) -> None:
        self._check(record)
        self.set(record.uuid, record)

    def remove(self, uuid: str) -> None:
        self._items.pop(uuid, None)

    def uuids(self) -> List[str]:
        return list(self._items.keys())

    def filter(self, predicate: Callable[[SerializedRecord], bool]) -> "RecordCollection":
        """New collection with the records for which ``predicate`` is true."""
        return RecordCollection(r for r in self._items.values() if predicate(r))

    def map(self, callback: Callable[[SerializedRecord], SerializedRecord]) -> "RecordCollection":
        """New collection of ``callback(record)`` for every record."""
        return RecordCollection(callback(r) for r in self._items.values())

    def diff(self, other: "RecordCollection") -> "RecordCollection":
        """Records of this collection whose uuid is not in ``other``."""
        return self.filter(lambda r: not other.has(r.uuid))

    def with_dependencies(self, uuid: str) -> "RecordCollection":
        """
        The record with the given uuid plus everything it depends on,
        transitively.

        Dependencies come before the records that need them and the requested
        record comes last. Dependencies that are not part of this collection
        are ignored; cycles are cut at the first revisit.

        Raises:
            RecordNotFoundError: If the uuid is not in the collection
        """
        if uuid not in self._items:
            raise RecordNotFoundError(f"Export with UUID {uuid} not found.", uuid=uuid)

        ordered: List[str] = []
        seen: Set[str] = {uuid}
        # Iterative post-order walk: (uuid, remaining dependency uuids)
        stack = [(uuid, iter(sorted(self._items[uuid].dependencies)))]
        while stack:
            current, pending = stack[-1]
            for dependency_uuid in pending:
                if dependency_uuid in self._items and dependency_uuid not in seen:
                    seen.add(dependency_uuid)
                    stack.append(
                        (dependency_uuid, iter(sorted(self._items[dependency_uuid].dependencies)))
                    )
                    break
            else:
                stack.pop()
                ordered.append(current)

        return RecordCollection(self._items[u] for u in ordered)

    def dependents_of(self, uuid: str) -> "RecordCollection":
        """Records in this collection that directly depend on ``uuid``."""
        return self.filter(lambda r: r.has_dependency(uuid))

    def root_records(self) -> "RecordCollection":
        """Records that no other record in this collection depends on."""
        depended_on: Set[str] = set()
        for record in self._items.values():
            depended_on.update(record.dependencies)
        return self.filter(lambda r: r.uuid not in depended_on)
