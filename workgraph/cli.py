#!/usr/bin/env python3
"""workgraph CLI entrypoint."""

import argparse
import logging
import sys

from workgraph.commands import edit as cmd_edit_module
from workgraph.commands import graph as cmd_graph_module
from workgraph.commands import link as cmd_link_module
from workgraph.commands import list as cmd_list_module
from workgraph.commands import new as cmd_new_module
from workgraph.commands import show as cmd_show_module
from workgraph.commands import tree as cmd_tree_module
from workgraph.commands import watch as cmd_watch_module
from workgraph.lib.constants import DEPENDENCY_TYPES, DEFAULT_DEPENDENCY_TYPE, ENTITY_TYPES, STATUSES
from workgraph.lib.validate import ValidationError
from workgraph.lib.workspace import Workspace, open_workspace, resolve_root


def get_workspace(args) -> Workspace:
    """Open the workspace from --root (or $WORKGRAPH_ROOT, or cwd)."""
    root = resolve_root(args.root)
    try:
        return open_workspace(root)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        sys.exit(2)
    except ValidationError as e:
        print(f"ERROR: Invalid workgraph.yaml: {e}")
        sys.exit(2)


def cmd_list(args):
    return cmd_list_module.cmd_list(args, get_workspace(args))


def cmd_tasks(args):
    return cmd_list_module.cmd_tasks(args, get_workspace(args))


def cmd_show(args):
    return cmd_show_module.cmd_show(args, get_workspace(args))


def cmd_new(args):
    return cmd_new_module.cmd_new(args, get_workspace(args))


def cmd_set(args):
    return cmd_edit_module.cmd_set(args, get_workspace(args))


def cmd_status(args):
    return cmd_edit_module.cmd_status(args, get_workspace(args))


def cmd_move(args):
    return cmd_edit_module.cmd_move(args, get_workspace(args))


def cmd_delete(args):
    return cmd_edit_module.cmd_delete(args, get_workspace(args))


def cmd_link(args):
    return cmd_link_module.cmd_link(args, get_workspace(args))


def cmd_unlink(args):
    return cmd_link_module.cmd_unlink(args, get_workspace(args))


def cmd_graph(args):
    return cmd_graph_module.cmd_graph(args, get_workspace(args))


def cmd_tree(args):
    return cmd_tree_module.cmd_tree(args, get_workspace(args))


def cmd_timeline(args):
    return cmd_tree_module.cmd_timeline(args, get_workspace(args))


def cmd_watch(args):
    return cmd_watch_module.cmd_watch(args, get_workspace(args))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='wg', description='Goals, projects and task dependencies from Markdown')
    parser.add_argument('--root', '-r', help='Workspace directory (default: $WORKGRAPH_ROOT or cwd)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # wg list
    p_list = subparsers.add_parser('list', help='List entities')
    p_list.add_argument('--type', '-t', choices=ENTITY_TYPES, help='Only this entity type')
    p_list.add_argument('--status', '-s', choices=STATUSES, help='Only this status')
    p_list.set_defaults(func=cmd_list)

    # wg show
    p_show = subparsers.add_parser('show', help='Show an entity and its relationships')
    p_show.add_argument('id', help='Entity ID')
    p_show.set_defaults(func=cmd_show)

    # wg new
    p_new = subparsers.add_parser('new', help='Create an entity')
    p_new.add_argument('type', choices=ENTITY_TYPES, help='Entity type')
    p_new.add_argument('title', help='Title (also the file name)')
    p_new.add_argument('--parent', '-p', help='Parent entity ID')
    p_new.set_defaults(func=cmd_new)

    # wg set
    p_set = subparsers.add_parser('set', help='Set attributes (key=value, empty value removes)')
    p_set.add_argument('id', help='Entity ID')
    p_set.add_argument('assignments', nargs='+', metavar='key=value')
    p_set.set_defaults(func=cmd_set)

    # wg status
    p_status = subparsers.add_parser('status', help='Change status')
    p_status.add_argument('id', help='Entity ID')
    p_status.add_argument('status', choices=STATUSES)
    p_status.set_defaults(func=cmd_status)

    # wg move
    p_move = subparsers.add_parser('move', help='Move a task to a project')
    p_move.add_argument('id', help='Task ID')
    p_move.add_argument('--project', help='Target project ID (omit to detach)')
    p_move.set_defaults(func=cmd_move)

    # wg delete
    p_delete = subparsers.add_parser('delete', help='Delete or archive an entity')
    p_delete.add_argument('id', help='Entity ID')
    p_delete.set_defaults(func=cmd_delete)

    # wg link
    p_link = subparsers.add_parser('link', help='Make a task depend on another')
    p_link.add_argument('task', help='Dependent task ID')
    p_link.add_argument('depends_on', help='Prerequisite task ID')
    p_link.add_argument('--type', choices=DEPENDENCY_TYPES, default=DEFAULT_DEPENDENCY_TYPE)
    p_link.add_argument('--lag', type=int, help='Lag in days (may be negative)')
    p_link.set_defaults(func=cmd_link)

    # wg unlink
    p_unlink = subparsers.add_parser('unlink', help='Remove a dependency')
    p_unlink.add_argument('task', help='Dependent task ID')
    p_unlink.add_argument('depends_on', help='Prerequisite task ID')
    p_unlink.set_defaults(func=cmd_unlink)

    # wg graph
    p_graph = subparsers.add_parser('graph', help='Dependency levels, critical path, bottlenecks')
    p_graph.add_argument('--project', help='Only tasks of this project')
    p_graph.add_argument('--threshold', type=int, help='Bottleneck threshold (default from config)')
    p_graph.set_defaults(func=cmd_graph)

    # wg tree
    p_tree = subparsers.add_parser('tree', help='Work breakdown tree')
    p_tree.add_argument('--depth', type=int, default=0, help='Levels to show (0 = all)')
    p_tree.set_defaults(func=cmd_tree)

    # wg timeline
    p_timeline = subparsers.add_parser('timeline', help='Dated projects and tasks')
    p_timeline.add_argument('--all', '-a', action='store_true', help='Include completed items')
    p_timeline.set_defaults(func=cmd_timeline)

    # wg tasks
    p_tasks = subparsers.add_parser('tasks', help='Task views')
    p_tasks.add_argument('view', choices=['overdue', 'today', 'blocked', 'blockers'])
    p_tasks.add_argument('--assignee', help='Only tasks assigned to this person')
    p_tasks.add_argument('--today', help='Reference date (YYYY-MM-DD)')
    p_tasks.set_defaults(func=cmd_tasks)

    # wg watch
    p_watch = subparsers.add_parser('watch', help='Rebuild the index as documents change')
    p_watch.add_argument('--interval', type=float, help='Poll interval in seconds')
    p_watch.set_defaults(func=cmd_watch)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
