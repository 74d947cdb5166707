"""
Relation queries over a built dependency graph.

Both queries are projections of the relations the graph engine already
computed; neither traverses the graph again.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Sequence, Union

from ..core.domain.container import Container
from ..core.domain.errors import UnknownNodeError

if TYPE_CHECKING:
    from .graph import DependencyGraph, RelationEntry


def _keys(graph: 'DependencyGraph',
          nodes: Sequence[Union[Container[Any], str]]) -> List[str]:
    keys: List[str] = []
    for node in nodes:
        key = graph.key_of(node)
        if key not in graph.data:
            raise UnknownNodeError(key)
        if key not in keys:
            keys.append(key)
    return keys


def depends_on(graph: 'DependencyGraph',
               nodes: Sequence[Union[Container[Any], str]]) -> Dict[str, 'RelationEntry']:
    """
    Relations of the given nodes.

    Args:
        graph: Graph to query
        nodes: Containers or node keys

    Returns:
        Mapping of node key to relation entry, in the order given

    Raises:
        UnknownNodeError: If a node is not part of the graph
    """
    return {key: graph.data[key] for key in _keys(graph, nodes)}


def required_by(graph: 'DependencyGraph',
                nodes: Sequence[Union[Container[Any], str]]) -> Dict[str, 'RelationEntry']:
    """
    Every node that depends on any of the given nodes.

    Strict and optional, direct and transitive relations all count. Result
    keys follow the graph's declaration order and appear once each.

    Raises:
        UnknownNodeError: If a node is not part of the graph
    """
    targets = set(_keys(graph, nodes))

    return {
        key: entry
        for key, entry in graph.data.items()
        if targets.intersection(entry.reachable_ids()) - {key}
    }
