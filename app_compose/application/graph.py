"""
Dependency graph engine.

Builds a directed graph of strict and optional edges over containers, or
over domains by collapsing the containers that share one, and computes
for every node its direct relations and its transitive closure with the
path that explains each optional reachability.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import (Any, Callable, Dict, Iterable, Iterator, List, Optional,
                    Sequence, Set, Tuple, Union)

from loguru import logger

from ..core.domain.container import Container
from ..infrastructure.config.models import GraphConfig
from . import relations


class GraphView(str, Enum):
    """Node universe of a graph."""
    CONTAINERS = "containers"
    DOMAINS = "domains"


@dataclass(frozen=True)
class OptionalPath:
    """A node reachable only through a path with an optional edge."""
    id: str
    path: str

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'path': self.path}


@dataclass
class TransitiveRelations:
    """Nodes reachable beyond the direct neighbours."""
    strict: List[str] = field(default_factory=list)
    optional: List[OptionalPath] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strict': list(self.strict),
            'optional': [entry.to_dict() for entry in self.optional],
        }


@dataclass
class RelationEntry:
    """Direct and transitive relations of a single node."""
    strict: List[str] = field(default_factory=list)
    optional: List[str] = field(default_factory=list)
    transitive: TransitiveRelations = field(default_factory=TransitiveRelations)

    def reachable_ids(self) -> List[str]:
        """Every node this one depends on, directly or transitively."""
        return (self.strict + self.optional + self.transitive.strict
                + [entry.id for entry in self.transitive.optional])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'strict': list(self.strict),
            'optional': list(self.optional),
            'transitive': self.transitive.to_dict(),
        }


@dataclass
class _Edges:
    strict: List[str] = field(default_factory=list)
    optional: List[str] = field(default_factory=list)

    def outgoing(self) -> Iterator[Tuple[str, bool]]:
        """Yield ``(target, is_optional)``, strict edges first."""
        for target in self.strict:
            yield target, False
        for target in self.optional:
            yield target, True


GraphNode = Union[Container[Any], str]


class DependencyGraph:
    """
    Computed relations for one view of a container set.

    ``data`` maps every node key to its ``RelationEntry`` in declaration
    order. The graph is immutable once built.
    """

    def __init__(self, view: GraphView, data: Dict[str, RelationEntry]) -> None:
        self._view = view
        self._data = data

    @property
    def view(self) -> GraphView:
        return self._view

    @property
    def data(self) -> Dict[str, RelationEntry]:
        return self._data

    @property
    def nodes(self) -> List[str]:
        return list(self._data)

    def key_of(self, node: GraphNode) -> str:
        """Get the node key for a container or a plain key."""
        if isinstance(node, Container):
            return node.domain if self._view is GraphView.DOMAINS else node.id
        if isinstance(node, str):
            return node
        raise TypeError(f"Graph nodes must be containers or strings, got {node!r}")

    def depends_on(self, nodes: Sequence[GraphNode]) -> Dict[str, RelationEntry]:
        """What the given nodes depend on, keyed in the order given."""
        return relations.depends_on(self, nodes)

    def required_by(self, nodes: Sequence[GraphNode]) -> Dict[str, RelationEntry]:
        """Every node that depends on any of the given nodes."""
        return relations.required_by(self, nodes)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {key: entry.to_dict() for key, entry in self._data.items()}

    def __contains__(self, node: object) -> bool:
        if not isinstance(node, (Container, str)):
            return False
        return self.key_of(node) in self._data

    def __len__(self) -> int:
        return len(self._data)


def build_graph(containers: Iterable[Container[Any]],
                options: Optional[GraphConfig] = None
                ) -> Callable[[Union[GraphView, str]], DependencyGraph]:
    """
    Prepare dependency graphs for a container set.

    Args:
        containers: Containers in declaration order
        options: Graph configuration

    Returns:
        Function building the graph for a view, ``'containers'`` or ``'domains'``
    """
    container_list = list(containers)
    config = options or GraphConfig()
    graphs: Dict[GraphView, DependencyGraph] = {}

    def graph_for(view: Union[GraphView, str] = GraphView.CONTAINERS) -> DependencyGraph:
        try:
            resolved = GraphView(view)
        except ValueError:
            raise ValueError(
                f"Unknown graph view: {view!r}, expected one of "
                f"{', '.join(v.value for v in GraphView)}") from None

        if resolved not in graphs:
            if resolved is GraphView.DOMAINS:
                edges = _domain_edges(container_list)
            else:
                edges = _container_edges(container_list)
            graphs[resolved] = DependencyGraph(
                resolved, _compute_relations(edges, config.path_separator))
            logger.debug(
                f"Built {resolved.value} graph with {len(edges)} nodes")

        return graphs[resolved]

    return graph_for


def _container_edges(containers: List[Container[Any]]) -> Dict[str, _Edges]:
    edges: Dict[str, _Edges] = {}
    for container in containers:
        edges[container.id] = _Edges(
            strict=[dep.id for dep in container.depends_on],
            optional=[dep.id for dep in container.optional_depends_on]
        )
    return edges


def _domain_edges(containers: List[Container[Any]]) -> Dict[str, _Edges]:
    edges: Dict[str, _Edges] = {}
    for container in containers:
        domain_edges = edges.setdefault(container.domain, _Edges())
        _add_domain_targets(domain_edges.strict, container.domain, container.depends_on)
        _add_domain_targets(domain_edges.optional, container.domain,
                            container.optional_depends_on)

    # A domain reached by a strict edge is not an optional neighbour too
    for domain_edges in edges.values():
        domain_edges.optional = [
            target for target in domain_edges.optional
            if target not in domain_edges.strict
        ]
    return edges


def _add_domain_targets(targets: List[str], own_domain: str,
                        dependencies: Sequence[Container[Any]]) -> None:
    for dependency in dependencies:
        if dependency.domain != own_domain and dependency.domain not in targets:
            targets.append(dependency.domain)


def _compute_relations(edges: Dict[str, _Edges],
                       separator: str) -> Dict[str, RelationEntry]:
    data: Dict[str, RelationEntry] = {}

    for node, node_edges in edges.items():
        direct = set(node_edges.strict) | set(node_edges.optional)
        strict_reach = _strict_closure(node, edges)
        strict_reach_set = set(strict_reach)

        transitive = TransitiveRelations(
            strict=[target for target in strict_reach if target not in direct],
            optional=[
                OptionalPath(id=target, path=separator.join(path))
                for target, path in _shortest_paths(
                    node, edges, direct | strict_reach_set)
            ]
        )

        data[node] = RelationEntry(
            strict=list(node_edges.strict),
            optional=list(node_edges.optional),
            transitive=transitive
        )

    return data


def _strict_closure(origin: str, edges: Dict[str, _Edges]) -> List[str]:
    """Nodes reachable from ``origin`` over strict edges only, in BFS order."""
    visited = {origin}
    order: List[str] = []
    queue = [origin]

    while queue:
        node = queue.pop(0)
        node_edges = edges.get(node)
        if node_edges is None:
            continue
        for target in node_edges.strict:
            if target not in visited:
                visited.add(target)
                order.append(target)
                queue.append(target)

    return order


def _shortest_paths(origin: str, edges: Dict[str, _Edges],
                    skip: Set[str]) -> List[Tuple[str, List[str]]]:
    """
    Shortest path from ``origin`` to every reachable node not in ``skip``.

    The traversal goes level by level over all edges. Within a level, a
    node keeps the candidate path with the fewest optional hops; ties keep
    the first candidate found, visiting strict edges before optional ones.
    A node whose path is replaced moves to where its kept path was found,
    so the next level expands in kept-path order.
    """
    parents: Dict[str, str] = {}
    visited = {origin}
    frontier: List[Tuple[str, int]] = [(origin, 0)]
    order: List[str] = []

    while frontier:
        level: Dict[str, Tuple[str, int]] = {}

        for node, optional_hops in frontier:
            node_edges = edges.get(node)
            if node_edges is None:
                continue
            for target, is_optional in node_edges.outgoing():
                if target in visited:
                    continue
                hops = optional_hops + (1 if is_optional else 0)
                best = level.get(target)
                if best is None:
                    level[target] = (node, hops)
                elif hops < best[1]:
                    del level[target]
                    level[target] = (node, hops)

        visited.update(level)
        for target, (parent, _) in level.items():
            parents[target] = parent
        frontier = [(target, hops) for target, (_, hops) in level.items()]
        order.extend(level)

    found: List[Tuple[str, List[str]]] = []
    for target in order:
        if target in skip:
            continue
        path = [target]
        while path[-1] != origin:
            path.append(parents[path[-1]])
        found.append((target, path[::-1]))
    return found
