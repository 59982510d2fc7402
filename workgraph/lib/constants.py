"""Shared constants for workgraph."""

import re

# Entity types, in hierarchy order (parent before child)
ENTITY_TYPES = ("goal", "portfolio", "project", "task")

STATUSES = ("not-started", "in-progress", "completed", "on-hold", "cancelled")
DEFAULT_STATUS = "not-started"

PRIORITIES = ("low", "medium", "high", "critical")
DEFAULT_PRIORITY = "medium"

DEPENDENCY_TYPES = ("finish-to-start", "start-to-start", "finish-to-finish", "start-to-finish")
DEFAULT_DEPENDENCY_TYPE = "finish-to-start"

# A task gating at least this many dependents is flagged as a bottleneck
DEFAULT_BOTTLENECK_THRESHOLD = 3

# [[Target]] or [[Target|Alias]]
LINK_PATTERN = re.compile(r'\[\[([^\]|]+)(?:\|[^\]]+)?\]\]')

DOCUMENT_SUFFIX = ".md"
