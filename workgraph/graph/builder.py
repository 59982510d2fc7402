"""
Dependency graph builder.

Projects Task entities into an id-keyed graph: one GraphNode per task,
with forward (dependencies) and reverse (dependents) adjacency lists.
Edges point from the prerequisite to the dependent task, i.e. for
"T2 depends on T1" the edge is T1 -> T2.

Nodes reference each other only by id, so cycles in the source data can
be represented and analyzed without special handling. New edges are
checked for cycles at insertion time with propose_edge().
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from workgraph.index.models import Dependency, Task
from workgraph.lib.constants import DEFAULT_DEPENDENCY_TYPE

logger = logging.getLogger(__name__)


class CycleError(Exception):
    """Adding a dependency would make a task (transitively) depend on itself."""

    def __init__(self, from_id: str, to_id: str, path: Optional[list[str]] = None):
        self.from_id = from_id
        self.to_id = to_id
        self.path = path or []
        if from_id == to_id:
            message = f"Task '{from_id}' cannot depend on itself"
        else:
            message = f"'{from_id}' depending on '{to_id}' would create a cycle"
            if self.path:
                message += f" ({' -> '.join(self.path)})"
        super().__init__(message)


@dataclass
class GraphNode:
    id: str
    title: str
    status: str
    progress: int
    project_id: Optional[str] = None
    dependencies: list[str] = field(default_factory=list)  # Ids this task waits on, as written
    dependents: list[str] = field(default_factory=list)    # In-graph tasks waiting on this one
    level: Optional[int] = None                            # None until leveled, or if cyclic
    is_critical: bool = False
    is_bottleneck: bool = False


@dataclass
class GraphEdge:
    source: str                          # Prerequisite
    target: str                          # Dependent
    type: str = DEFAULT_DEPENDENCY_TYPE
    lag: Optional[int] = None
    is_critical: bool = False


class DependencyGraph:
    """Arena of GraphNodes keyed by task id, plus the in-graph edges."""

    def __init__(self):
        self.nodes: dict[str, GraphNode] = {}
        self.edges: list[GraphEdge] = []

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self.nodes

    def get_node(self, task_id: str) -> Optional[GraphNode]:
        return self.nodes.get(task_id)

    def in_graph_dependencies(self, task_id: str) -> list[str]:
        """Dependencies of a node that are themselves nodes of this graph."""
        node = self.nodes.get(task_id)
        if node is None:
            return []
        return [d for d in node.dependencies if d in self.nodes]

    def find_path(self, start_id: str, goal_id: str) -> Optional[list[str]]:
        """Follow dependency links from start_id looking for goal_id.

        Iterative DFS, so deep chains can't hit the recursion limit.

        Returns:
            The id path from start_id to goal_id, or None if unreachable
        """
        if start_id == goal_id:
            return [start_id]
        parents: dict[str, str] = {}
        visited = {start_id}
        stack = [start_id]
        while stack:
            current = stack.pop()
            for dep_id in self.in_graph_dependencies(current):
                if dep_id in visited:
                    continue
                parents[dep_id] = current
                if dep_id == goal_id:
                    path = [dep_id]
                    while path[-1] != start_id:
                        path.append(parents[path[-1]])
                    return list(reversed(path))
                visited.add(dep_id)
                stack.append(dep_id)
        return None

    def reaches(self, start_id: str, goal_id: str) -> bool:
        """True if goal_id is in start_id's transitive dependency chain."""
        return self.find_path(start_id, goal_id) is not None

    def propose_edge(self, from_id: str, to_id: str) -> None:
        """Check that "from_id depends on to_id" keeps the graph acyclic.

        The graph itself is not modified; on acceptance the caller
        persists the dependency and rebuilds.

        Raises:
            CycleError: If from_id == to_id, or if to_id already depends
                (transitively) on from_id
        """
        if from_id == to_id:
            raise CycleError(from_id, to_id)
        path = self.find_path(to_id, from_id)
        if path is not None:
            raise CycleError(from_id, to_id, [from_id] + path)


def _unique_dependencies(dependencies: Iterable[Dependency]) -> list[Dependency]:
    seen = set()
    unique = []
    for dep in dependencies:
        if dep.task_id in seen:
            continue
        seen.add(dep.task_id)
        unique.append(dep)
    return unique


def build_dependency_graph(tasks: Iterable[Task]) -> DependencyGraph:
    """Build the dependency graph for a set of tasks.

    Dependencies on ids outside the task set stay in the node's
    `dependencies` list but produce no edge and no dependent.
    """
    graph = DependencyGraph()
    task_list = list(tasks)
    records: dict[str, list[Dependency]] = {}

    for task in task_list:
        if task.id in graph.nodes:
            continue
        deps = _unique_dependencies(task.dependencies)
        records[task.id] = deps
        graph.nodes[task.id] = GraphNode(
            id=task.id,
            title=task.title,
            status=task.status,
            progress=task.progress,
            project_id=task.project_id,
            dependencies=[d.task_id for d in deps],
        )

    for task_id, deps in records.items():
        for dep in deps:
            prerequisite = graph.nodes.get(dep.task_id)
            if prerequisite is None:
                logger.debug(f"Ignoring dependency of {task_id} on unknown task {dep.task_id}")
                continue
            prerequisite.dependents.append(task_id)
            graph.edges.append(GraphEdge(source=dep.task_id, target=task_id, type=dep.type, lag=dep.lag))

    return graph
