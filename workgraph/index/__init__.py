"""
Entity relationship index for workgraph.

Parses documents into typed entities, keeps the current snapshot, and
derives the timeline and work breakdown projections from it.
"""

from workgraph.index.models import (
    Dependency,
    Entity,
    Goal,
    Portfolio,
    Project,
    Task,
    TimelineItem,
    WBSNode,
)
from workgraph.index.parser import ParseError, extract_link_id, parse_document
from workgraph.index.entity_index import EntityIndex, IndexSnapshot
from workgraph.index.projections import aggregate_progress, get_timeline_items, get_wbs_tree
from workgraph.index.triggers import RebuildTrigger

__all__ = [
    "Dependency",
    "Entity",
    "Goal",
    "Portfolio",
    "Project",
    "Task",
    "TimelineItem",
    "WBSNode",
    "ParseError",
    "extract_link_id",
    "parse_document",
    "EntityIndex",
    "IndexSnapshot",
    "aggregate_progress",
    "get_timeline_items",
    "get_wbs_tree",
    "RebuildTrigger",
]
