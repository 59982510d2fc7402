"""
Dependency graph engine for workgraph.

Builds the task dependency graph from the entity index and analyzes it:
topological levels, critical path, bottlenecks, cycle-safe insertion.
"""

from workgraph.graph.builder import (
    CycleError,
    DependencyGraph,
    GraphEdge,
    GraphNode,
    build_dependency_graph,
)
from workgraph.graph.analyzer import (
    GraphAnalysis,
    analyze_graph,
    compute_levels,
    find_bottlenecks,
    find_critical_path,
    graph_summary,
)

__all__ = [
    "CycleError",
    "DependencyGraph",
    "GraphEdge",
    "GraphNode",
    "build_dependency_graph",
    "GraphAnalysis",
    "analyze_graph",
    "compute_levels",
    "find_bottlenecks",
    "find_critical_path",
    "graph_summary",
]
