"""
Dependency graph and cycle-tolerant topological sort.

Edges point from a dependency to its dependents (if A depends on B the graph
has B -> A), so a depth-first walk finishes dependents before the records
they need and the reverse post-order lists dependencies first.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from ..core.models import SerializedRecord


@dataclass
class DependencyNode:
    """
    Attributes:
        uuid: Identity of the node
        edges: Identities of the records that depend on this one
        weight: Position in the sorted order (set by DependencyGraph.sort)
    """
    uuid: str
    edges: Set[str] = field(default_factory=set)
    weight: int = 0


class DependencyGraph:
    """
    One node per identity mentioned anywhere, as a record or as a dependency.

    Dependencies whose record was never found still get a node ("ghost"
    nodes); they take part in ordering and are dropped by the caller.
    """

    def __init__(self):
        self.nodes: Dict[str, DependencyNode] = {}

    @classmethod
    def from_records(cls, records: Iterable[SerializedRecord]) -> "DependencyGraph":
        graph = cls()
        for record in records:
            graph.add_record(record)
        return graph

    def __contains__(self, uuid: object) -> bool:
        return uuid in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def add_node(self, uuid: str) -> DependencyNode:
        if uuid not in self.nodes:
            self.nodes[uuid] = DependencyNode(uuid=uuid)
        return self.nodes[uuid]

    def add_dependency(self, dependent: str, dependency: str) -> None:
        """Record that ``dependent`` must come after ``dependency``."""
        self.add_node(dependent)
        self.add_node(dependency).edges.add(dependent)

    def add_record(self, record: SerializedRecord) -> None:
        self.add_node(record.uuid)
        for dependency_uuid in record.dependencies:
            self.add_dependency(record.uuid, dependency_uuid)

    def sort(self) -> List[str]:
        """
        Topologically sort every identity, dependencies first.

        Nodes are started in identity order and edges are followed in
        identity order, so the result only depends on the graph's contents.
        An edge back to a node still on the current path closes a cycle and is
        skipped; the cycle is therefore broken at the edge that reaches its
        lexically first member.

        Each node's ``weight`` is set to its index in the returned list.
        """
        post_order: List[str] = []
        visited: Set[str] = set()
        visiting: Set[str] = set()

        for start in sorted(self.nodes):
            if start in visited:
                continue

            visiting.add(start)
            stack: List[Tuple[str, Iterator[str]]] = [
                (start, iter(sorted(self.nodes[start].edges)))
            ]
            while stack:
                current, pending = stack[-1]
                for dependent in pending:
                    if dependent in visited or dependent in visiting:
                        continue
                    visiting.add(dependent)
                    stack.append((dependent, iter(sorted(self.nodes[dependent].edges))))
                    break
                else:
                    stack.pop()
                    visiting.discard(current)
                    visited.add(current)
                    post_order.append(current)

        ordered = list(reversed(post_order))
        for weight, uuid in enumerate(ordered):
            self.nodes[uuid].weight = weight
        return ordered
