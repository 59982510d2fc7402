"""
wg graph - Dependency graph report: levels, critical path, bottlenecks.
"""

from workgraph.graph.analyzer import analyze_graph, graph_summary
from workgraph.graph.builder import build_dependency_graph
from workgraph.lib.workspace import Workspace


def cmd_graph(args, workspace: Workspace) -> int:
    """Print the dependency graph grouped by topological level."""
    tasks = workspace.index.get_all_tasks()
    if args.project:
        tasks = [t for t in tasks if t.project_id == args.project]

    graph = build_dependency_graph(tasks)
    if not graph.nodes:
        print("No tasks")
        return 0

    threshold = args.threshold or workspace.settings.bottleneck_threshold
    analysis = analyze_graph(graph, threshold)
    summary = graph_summary(graph)

    print(
        f"Dependency graph: {summary['tasks']} tasks, {summary['critical']} critical, "
        f"{summary['bottlenecks']} bottlenecks, {summary['blocked']} blocked"
    )
    print()

    by_level: dict[int, list[str]] = {}
    for node_id, level in analysis.levels.items():
        by_level.setdefault(level, []).append(node_id)

    for level in sorted(by_level):
        print(f"Level {level}")
        for node_id in sorted(by_level[level]):
            node = graph.nodes[node_id]
            flags = []
            if node.is_critical:
                flags.append("critical")
            if node.is_bottleneck:
                flags.append(f"bottleneck:{len(node.dependents)}")
            flag_text = f"  ({', '.join(flags)})" if flags else ""
            print(f"  {node.id:<26} {node.status:<12} {node.progress:>3}%  {node.title}{flag_text}")
        print()

    if analysis.critical_path:
        print(f"Critical path ({analysis.critical_length}): {' -> '.join(analysis.critical_path)}")
    if analysis.unresolved:
        print(f"WARNING: {len(analysis.unresolved)} task(s) in a dependency cycle:")
        for node_id in analysis.unresolved:
            print(f"  {node_id}")
        return 1
    return 0
