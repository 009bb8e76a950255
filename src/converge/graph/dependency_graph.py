"""Build the directed dependency graph and derive create/destroy orderings."""

import networkx as nx
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set
from ..descriptors.models import ResourceDescriptor
from ..utils.errors import CycleDetectedError, GraphConstructionError, UnknownDependencyError
from ..utils.logging import get_logger

logger = get_logger("graph.dependency_graph")


class Direction(str, Enum):
    """Traversal direction for an ordering."""
    CREATE = "create"
    DESTROY = "destroy"


class DependencyGraph:
    """Directed dependency graph: nodes=descriptor ids, edges=dependency -> dependent."""

    def __init__(self):
        self.graph = nx.DiGraph()
        self._descriptor_map: Dict[str, ResourceDescriptor] = {}

    def add_descriptor(self, descriptor: ResourceDescriptor) -> None:
        """Add a descriptor node; edges are wired in build_from_descriptors."""
        if descriptor.id in self._descriptor_map:
            raise GraphConstructionError(f"Duplicate descriptor id: {descriptor.id}")
        self.graph.add_node(descriptor.id, descriptor=descriptor)
        self._descriptor_map[descriptor.id] = descriptor

    def build_from_descriptors(
        self,
        descriptors: Iterable[ResourceDescriptor],
        resolvable: Optional[Iterable[ResourceDescriptor]] = None
    ) -> None:
        """
        Build the complete graph and validate it.

        Args:
            descriptors: Descriptors to order
            resolvable: Extra descriptors that dependencies may point at without
                being ordered themselves (used for removal candidates whose
                dependencies are still desired)

        Raises:
            UnknownDependencyError: If a depends_on id does not resolve
            CycleDetectedError: If the dependency relation is cyclic
        """
        for descriptor in sorted(descriptors, key=lambda d: d.id):
            self.add_descriptor(descriptor)

        external = {d.id for d in resolvable or []}

        for node_id in sorted(self._descriptor_map):
            descriptor = self._descriptor_map[node_id]
            for dep_id in sorted(descriptor.depends_on):
                if dep_id in self._descriptor_map:
                    self.graph.add_edge(dep_id, node_id)
                    logger.debug(f"Added dependency edge: {dep_id} -> {node_id}")
                elif dep_id not in external:
                    raise UnknownDependencyError(dep_id, node_id)

        cycle = self.find_cycle()
        if cycle:
            raise CycleDetectedError(cycle)

        logger.debug(
            f"Built dependency graph with {self.graph.number_of_nodes()} nodes "
            f"and {self.graph.number_of_edges()} edges"
        )

    def find_cycle(self) -> List[str]:
        """
        Return the ids on one dependency cycle, or an empty list.

        Depth-first search with an on-stack set; nodes and successors are
        visited in ascending id order so the reported cycle is deterministic.
        """
        visited: Set[str] = set()
        on_stack: Set[str] = set()
        path: List[str] = []

        def visit(node_id: str) -> List[str]:
            visited.add(node_id)
            on_stack.add(node_id)
            path.append(node_id)
            for successor in sorted(self.graph.successors(node_id)):
                if successor in on_stack:
                    return path[path.index(successor):] + [successor]
                if successor not in visited:
                    found = visit(successor)
                    if found:
                        return found
            on_stack.discard(node_id)
            path.pop()
            return []

        for node_id in sorted(self.graph.nodes):
            if node_id not in visited:
                found = visit(node_id)
                if found:
                    return found
        return []

    def creation_order(self) -> List[ResourceDescriptor]:
        """Dependencies before dependents, ties broken by ascending id."""
        return [
            self._descriptor_map[node_id]
            for node_id in nx.lexicographical_topological_sort(self.graph)
        ]

    def destruction_order(self) -> List[ResourceDescriptor]:
        """Exact reverse of the creation order."""
        return list(reversed(self.creation_order()))

    def dependencies_of(self, resource_id: str) -> Set[str]:
        """All resources the given resource depends on (upstream, transitive)."""
        if resource_id not in self.graph:
            return set()
        return set(nx.ancestors(self.graph, resource_id))

    def dependents_of(self, resource_id: str) -> Set[str]:
        """All resources that depend on the given resource (downstream, transitive)."""
        if resource_id not in self.graph:
            return set()
        return set(nx.descendants(self.graph, resource_id))

    def get_descriptor(self, resource_id: str) -> Optional[ResourceDescriptor]:
        """Get descriptor by id."""
        return self._descriptor_map.get(resource_id)

    def get_all_descriptors(self) -> List[ResourceDescriptor]:
        """Get all descriptors in the graph."""
        return list(self._descriptor_map.values())


def order(
    descriptors: Iterable[ResourceDescriptor],
    direction: Direction = Direction.CREATE
) -> List[ResourceDescriptor]:
    """
    Order descriptors for creation or teardown.

    Args:
        descriptors: Descriptor set; every depends_on id must resolve within it
        direction: CREATE (dependencies first) or DESTROY (dependents first)

    Returns:
        Ordered list of descriptors

    Raises:
        UnknownDependencyError: If a dependency does not resolve
        CycleDetectedError: If the dependency relation is cyclic
    """
    graph = DependencyGraph()
    graph.build_from_descriptors(descriptors)
    if Direction(direction) == Direction.DESTROY:
        return graph.destruction_order()
    return graph.creation_order()
