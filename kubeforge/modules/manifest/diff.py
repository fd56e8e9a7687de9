"""
Structural diff engine for manifest documents.

Produces change plans for dry-run previews:

- deep_diff() compares a live document with a desired one
- summarize() lists every field of a document that would be created

Documents are the plain values produced by the YAML codec or the
Kubernetes client: mappings, sequences and scalars, nested freely.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

MAX_RENDER_WIDTH = 80
MAX_SUMMARY_DEPTH = 4

_MISSING = object()


class ChangeOp(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    MODIFY = "modify"


_MARKERS = {ChangeOp.ADD: "+", ChangeOp.REMOVE: "-", ChangeOp.MODIFY: "~"}


@dataclass(frozen=True)
class Change:
    """One line of a change plan."""

    op: ChangeOp
    path: str
    old: Any = None
    new: Any = None

    def render(self) -> str:
        marker = _MARKERS[self.op]
        if self.op == ChangeOp.ADD:
            return f"{marker} {self.path}: {render_value(self.new)}"
        if self.op == ChangeOp.REMOVE:
            return f"{marker} {self.path}: {render_value(self.old)}"
        return f"{marker} {self.path}: {render_value(self.old)} → {render_value(self.new)}"

    def __str__(self) -> str:
        return self.render()


def render_value(value: Any) -> str:
    """
    Render a value for a single change line.

    Long strings are truncated, collections whose compact JSON form is
    too wide collapse to an item or field count, and empty collections
    render as ``[]`` or ``{}``.
    """
    if isinstance(value, str):
        if len(value) > MAX_RENDER_WIDTH:
            return value[:MAX_RENDER_WIDTH] + "..."
        return value

    if isinstance(value, dict):
        if not value:
            return "{}"
        rendered = _compact(value)
        if len(rendered) > MAX_RENDER_WIDTH:
            return f"{{{len(value)} fields}}"
        return rendered

    if isinstance(value, list):
        if not value:
            return "[]"
        rendered = _compact(value)
        if len(rendered) > MAX_RENDER_WIDTH:
            return f"[{len(value)} items]"
        return rendered

    return _compact(value)


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str, ensure_ascii=False)


def join_path(path: str, key: Any) -> str:
    """Extend a dotted path with a mapping key."""
    return f"{path}.{key}" if path else str(key)


def index_path(path: str, index: int) -> str:
    """Extend a path with a sequence index."""
    return f"{path}[{index}]"


def _same(old: Any, new: Any) -> bool:
    # bool is an int subclass; keep true and 1 apart at any depth
    if isinstance(old, bool) != isinstance(new, bool):
        return False
    if isinstance(old, dict) and isinstance(new, dict):
        return old.keys() == new.keys() and all(_same(old[key], new[key]) for key in old)
    if isinstance(old, list) and isinstance(new, list):
        return len(old) == len(new) and all(_same(a, b) for a, b in zip(old, new))
    return old == new


def deep_diff(old: Any, new: Any, path: str = "") -> List[Change]:
    """
    Compute the change plan turning ``old`` into ``new``.

    Args:
        old: Current value (usually the cleaned live resource)
        new: Desired value (usually the cleaned manifest)
        path: Path of the compared values from the document root

    Returns:
        Ordered list of changes; empty when both values are equal
    """
    changes: List[Change] = []
    _diff_into(old, new, path, changes)
    return changes


def _diff_into(old: Any, new: Any, path: str, changes: List[Change]) -> None:
    if _same(old, new):
        return

    if isinstance(old, dict) and isinstance(new, dict):
        keys = list(old)
        keys.extend(key for key in new if key not in old)
        for key in keys:
            child = join_path(path, key)
            old_value = old.get(key, _MISSING)
            new_value = new.get(key, _MISSING)
            if old_value is _MISSING:
                changes.append(Change(ChangeOp.ADD, child, new=new_value))
            elif new_value is _MISSING:
                changes.append(Change(ChangeOp.REMOVE, child, old=old_value))
            else:
                _diff_into(old_value, new_value, child, changes)
        return

    if isinstance(old, list) and isinstance(new, list):
        for index in range(max(len(old), len(new))):
            child = index_path(path, index)
            if index >= len(old):
                changes.append(Change(ChangeOp.ADD, child, new=new[index]))
            elif index >= len(new):
                changes.append(Change(ChangeOp.REMOVE, child, old=old[index]))
            else:
                _diff_into(old[index], new[index], child, changes)
        return

    changes.append(Change(ChangeOp.MODIFY, path, old=old, new=new))


def summarize(document: Any, path: str = "", depth: int = 0,
              max_depth: int = MAX_SUMMARY_DEPTH) -> List[Change]:
    """
    List the fields of a document that is about to be created.

    Every leaf becomes an ``add`` line. Mappings are expanded until
    ``max_depth`` levels below the root; past that a whole subtree is
    reported as one line. Sequences with more than one item get a line
    carrying their count and only their first item is expanded.

    Args:
        document: Value to summarize
        path: Path of ``document`` from the root
        depth: Nesting level of ``document``
        max_depth: Deepest level whose mappings are still expanded

    Returns:
        Ordered list of add changes
    """
    changes: List[Change] = []
    _summarize_into(document, path, depth, max_depth, changes)
    return changes


def _summarize_into(value: Any, path: str, depth: int, max_depth: int,
                    changes: List[Change]) -> None:
    expandable = isinstance(value, (dict, list)) and bool(value)
    if not expandable or depth > max_depth:
        changes.append(Change(ChangeOp.ADD, path, new=value))
        return

    if isinstance(value, dict):
        for key, child in value.items():
            _summarize_into(child, join_path(path, key), depth + 1, max_depth, changes)
        return

    if len(value) > 1:
        changes.append(Change(ChangeOp.ADD, path, new=_count_label(len(value))))
    _summarize_into(value[0], index_path(path, 0), depth + 1, max_depth, changes)


def _count_label(count: int) -> str:
    return f"[{count} items]"


def render_changes(changes: List[Change], indent: Optional[str] = None) -> List[str]:
    """Render a change plan as text lines."""
    prefix = indent or ""
    return [f"{prefix}{change.render()}" for change in changes]
