"""
YAML frontmatter helpers.

A document is an optional frontmatter block delimited by `---` lines,
followed by a Markdown body:

    ---
    type: task
    id: 1700000000000-k3j9x0a2b
    parent: '[[Website]]'
    ---

    # Draft copy
"""

import logging
import re
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r'^---[ \t]*\r?\n(.*?)\r?\n?^---[ \t]*\r?$', re.DOTALL | re.MULTILINE)
TOP_LEVEL_KEY_RE = re.compile(r'^([^\s#:][^:]*?)\s*:(\s|$)')


def split_frontmatter(text: str) -> tuple[Optional[dict[str, Any]], str]:
    """Split a document into (attributes, body).

    Returns None for attributes when there is no frontmatter block, or
    when the block is not valid YAML or not a mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None, text

    body = text[match.end():].lstrip("\r\n")
    try:
        parsed = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.debug(f"Unparsable frontmatter: {e}")
        return None, body

    if parsed is None:
        return {}, body
    if not isinstance(parsed, dict):
        return None, body
    return {str(k): v for k, v in parsed.items()}, body


def dump_attributes(attributes: dict[str, Any]) -> str:
    """Render attributes as YAML lines (no delimiters), keeping insertion order."""
    if not attributes:
        return ""
    return yaml.safe_dump(
        attributes,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def render_document(attributes: dict[str, Any], body: str = "") -> str:
    """Build document text from attributes and a Markdown body."""
    return f"---\n{dump_attributes(attributes)}---\n\n{body}"


def update_frontmatter(text: str, updates: dict[str, Any]) -> Optional[str]:
    """Rewrite only the given top-level keys in a document's frontmatter.

    Each updated key's lines (the key line plus any indented continuation)
    are replaced in place; keys not yet present are appended to the block;
    a value of None removes the key. All other lines are kept verbatim.

    Returns the new text, or None if the document has no frontmatter block.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None

    lines = match.group(1).splitlines()
    spans = _key_spans(lines)

    remaining = dict(updates)
    new_lines: list[str] = []
    i = 0
    while i < len(lines):
        span = spans.get(i)
        if span is None:
            new_lines.append(lines[i])
            i += 1
            continue
        key, end = span
        if key in remaining:
            value = remaining.pop(key)
            if value is not None:
                new_lines.extend(dump_attributes({key: value}).splitlines())
        else:
            new_lines.extend(lines[i:end])
        i = end

    for key, value in remaining.items():
        if value is not None:
            new_lines.extend(dump_attributes({key: value}).splitlines())

    block = "\n".join(new_lines)
    return f"---\n{block}\n---" + text[match.end():]


def _key_spans(lines: list[str]) -> dict[int, tuple[str, int]]:
    """Map start line -> (key, end line exclusive) for each top-level key."""
    starts: list[tuple[int, str]] = []
    for idx, line in enumerate(lines):
        m = TOP_LEVEL_KEY_RE.match(line)
        if m and not line.startswith("- "):
            starts.append((idx, m.group(1).strip().strip("'\"")))

    spans = {}
    for n, (idx, key) in enumerate(starts):
        end = starts[n + 1][0] if n + 1 < len(starts) else len(lines)
        spans[idx] = (key, end)
    return spans
