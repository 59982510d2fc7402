"""
Dependency graph analysis.

Topological leveling (Kahn's algorithm), critical path, and bottleneck
detection. Every function tolerates cycles already present in the source
documents: cyclic nodes are reported as unresolved and get no level.
"""

import logging
from collections import deque
from dataclasses import dataclass, field

from workgraph.graph.builder import DependencyGraph
from workgraph.lib.constants import DEFAULT_BOTTLENECK_THRESHOLD

logger = logging.getLogger(__name__)


@dataclass
class GraphAnalysis:
    """Result of analyze_graph()."""
    levels: dict[str, int] = field(default_factory=dict)
    unresolved: list[str] = field(default_factory=list)   # Nodes on or behind a cycle
    critical_path: list[str] = field(default_factory=list)
    bottlenecks: list[str] = field(default_factory=list)

    @property
    def critical_length(self) -> int:
        return len(self.critical_path)


def compute_levels(graph: DependencyGraph) -> tuple[dict[str, int], list[str]]:
    """Assign topological levels with Kahn's algorithm.

    In-degree counts only in-graph dependencies. Roots get level 0; a
    dependent's level is the max over its prerequisites' levels plus one.

    Returns:
        (levels, unresolved) where unresolved lists, sorted, the nodes
        left with nonzero in-degree once the queue drains
    """
    in_degree = {node_id: len(graph.in_graph_dependencies(node_id)) for node_id in graph.nodes}
    levels: dict[str, int] = {}
    queue = deque()

    for node_id, degree in in_degree.items():
        if degree == 0:
            levels[node_id] = 0
            queue.append(node_id)

    while queue:
        node_id = queue.popleft()
        for dependent_id in graph.nodes[node_id].dependents:
            levels[dependent_id] = max(levels.get(dependent_id, 0), levels[node_id] + 1)
            in_degree[dependent_id] -= 1
            if in_degree[dependent_id] == 0:
                queue.append(dependent_id)

    unresolved = sorted(node_id for node_id, degree in in_degree.items() if degree > 0)
    for node_id in unresolved:
        levels.pop(node_id, None)
    if unresolved:
        logger.warning(f"Dependency cycle among {len(unresolved)} tasks: {', '.join(unresolved)}")
    return levels, unresolved


def _topological_order(levels: dict[str, int]) -> list[str]:
    return sorted(levels, key=lambda node_id: (levels[node_id], node_id))


def find_critical_path(graph: DependencyGraph, levels: dict[str, int]) -> list[str]:
    """Longest dependency chain by node count that ends at a sink.

    Only leveled (acyclic) nodes take part. Among chains of equal length
    the lexicographically smallest id sequence wins.

    Returns:
        Chain of ids from root to sink, empty for an empty graph
    """
    best: dict[str, tuple[str, ...]] = {}
    for node_id in _topological_order(levels):
        candidates = [best[dep_id] for dep_id in graph.in_graph_dependencies(node_id) if dep_id in best]
        if candidates:
            chain = min(candidates, key=lambda c: (-len(c), c))
            best[node_id] = chain + (node_id,)
        else:
            best[node_id] = (node_id,)

    sinks = [best[node_id] for node_id in best if not graph.nodes[node_id].dependents]
    if not sinks:
        return []
    return list(min(sinks, key=lambda c: (-len(c), c)))


def find_bottlenecks(graph: DependencyGraph, threshold: int = DEFAULT_BOTTLENECK_THRESHOLD) -> list[str]:
    """Ids of nodes with at least `threshold` dependents, sorted."""
    return sorted(node.id for node in graph.nodes.values() if len(node.dependents) >= threshold)


def analyze_graph(graph: DependencyGraph,
                  bottleneck_threshold: int = DEFAULT_BOTTLENECK_THRESHOLD) -> GraphAnalysis:
    """Run leveling, critical path and bottleneck detection.

    Stamps level, is_critical and is_bottleneck on the graph's nodes and
    is_critical on its edges.
    """
    levels, unresolved = compute_levels(graph)
    critical_path = find_critical_path(graph, levels)
    bottlenecks = find_bottlenecks(graph, bottleneck_threshold)

    critical = set(critical_path)
    bottleneck_set = set(bottlenecks)
    for node in graph.nodes.values():
        node.level = levels.get(node.id)
        node.is_critical = node.id in critical
        node.is_bottleneck = node.id in bottleneck_set
    for edge in graph.edges:
        edge.is_critical = edge.source in critical and edge.target in critical

    return GraphAnalysis(
        levels=levels,
        unresolved=unresolved,
        critical_path=critical_path,
        bottlenecks=bottlenecks,
    )


def graph_summary(graph: DependencyGraph) -> dict[str, int]:
    """Headline counts for an analyzed graph.

    A task is blocked when at least one of its in-graph dependencies is
    not completed.
    """
    nodes = list(graph.nodes.values())
    blocked = sum(
        1 for node in nodes
        if any(graph.nodes[d].status != "completed" for d in graph.in_graph_dependencies(node.id))
    )
    return {
        "tasks": len(nodes),
        "critical": sum(1 for n in nodes if n.is_critical),
        "bottlenecks": sum(1 for n in nodes if n.is_bottleneck),
        "blocked": blocked,
        "unresolved": sum(1 for n in nodes if n.level is None),
    }
