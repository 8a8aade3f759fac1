"""Tree navigator over an arbitrary JSON value.

The visible node list is derived on every access from the value and the set
of collapsed paths, so it never goes stale. Paths look like
``root.items[2].name``; ``to_lookup_path`` turns them into the index-free
lookup path syntax (``items[].name``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .consts import CAPTURE_PREVIEW, TREE_ROOT, TREE_STRING_PREVIEW
from .enums import KeyName, TreeMode
from .keys import Key
from .utils import to_text, truncate

logger = logging.getLogger(__name__)

_INDEX_RE = re.compile(r"\[\d+\]")


@dataclass(frozen=True)
class TreeNode:
    path: str
    key: str
    value: Any
    depth: int
    is_expandable: bool
    child_count: int


class VariableSink(Protocol):
    def set_variable(self, name: str, value: str) -> None: ...


def build_visible(
    value: Any,
    key: str = TREE_ROOT,
    depth: int = 0,
    path: str = TREE_ROOT,
    collapsed: frozenset[str] | set[str] = frozenset(),
) -> list[TreeNode]:
    """Pre-order flattening, skipping children of collapsed paths."""
    if isinstance(value, list):
        child_count = len(value)
    elif isinstance(value, dict):
        child_count = len(value)
    else:
        child_count = 0
    is_expandable = child_count > 0

    result = [TreeNode(path, key, value, depth, is_expandable, child_count)]

    if is_expandable and path not in collapsed:
        if isinstance(value, list):
            for i, item in enumerate(value):
                result.extend(build_visible(item, f"[{i}]", depth + 1, f"{path}[{i}]", collapsed))
        else:
            for k, item in value.items():
                result.extend(build_visible(item, str(k), depth + 1, f"{path}.{k}", collapsed))

    return result


def node_value_to_string(value: Any) -> str:
    """Primitives as-is, containers as compact JSON."""
    return to_text(value)


def node_matches(node: TreeNode, query: str) -> bool:
    """Case-insensitive match on the key, or on the value of primitive leaves."""
    if not query:
        return False
    q = query.lower()
    if q in node.key.lower():
        return True
    if node.is_expandable or node.value is None:
        return False
    if isinstance(node.value, (str, int, float, bool)):
        return q in to_text(node.value).lower()
    return False


def to_lookup_path(path: str) -> str:
    """``root.fields[1].id`` -> ``fields[].id``; ``root[0].id`` -> ``[].id``."""
    if path == TREE_ROOT:
        return ""
    if path.startswith(TREE_ROOT):
        path = path[len(TREE_ROOT):]
    path = path.removeprefix(".")
    return _INDEX_RE.sub("[]", path)


def value_label(node: TreeNode, collapsed: bool) -> str:
    value = node.value
    if not node.is_expandable:
        if isinstance(value, str):
            return '"' + truncate(value, TREE_STRING_PREVIEW) + '"'
        return to_text(value)
    if collapsed:
        unit = "items" if isinstance(value, list) else "keys"
        opener, closer = ("[", "]") if isinstance(value, list) else ("{", "}")
        return f"{opener} {node.child_count} {unit} {closer}"
    return "[" if isinstance(value, list) else "{"


class JsonTree:
    """Cursor, collapse, search and capture state over one JSON document."""

    def __init__(self, body: Any, viewport: int = 20):
        self.body = body
        self.viewport = max(1, viewport)
        self.collapsed: set[str] = set()
        self.cursor = 0
        self.scroll = 0
        self.mode = TreeMode.BROWSE
        self.query = ""
        self.matches: list[int] = []
        self.match_index = -1
        self.capture_name = ""
        self.status = ""
        self.closed = False

    @property
    def nodes(self) -> list[TreeNode]:
        return build_visible(self.body, collapsed=frozenset(self.collapsed))

    @property
    def current(self) -> TreeNode | None:
        nodes = self.nodes
        return nodes[self.cursor] if 0 <= self.cursor < len(nodes) else None

    # ---- movement ---------------------------------------------------------

    def move_to(self, index: int) -> None:
        count = len(self.nodes)
        self.cursor = max(0, min(count - 1, index))
        if self.cursor < self.scroll:
            self.scroll = self.cursor
        elif self.cursor >= self.scroll + self.viewport:
            self.scroll = self.cursor - self.viewport + 1

    def move(self, delta: int) -> None:
        self.move_to(self.cursor + delta)

    def visible_window(self) -> list[TreeNode]:
        return self.nodes[self.scroll : self.scroll + self.viewport]

    # ---- collapse ---------------------------------------------------------

    def toggle(self) -> None:
        node = self.current
        if node is None or not node.is_expandable:
            return
        if node.path in self.collapsed:
            self.collapsed.discard(node.path)
        else:
            self.collapsed.add(node.path)
        self._refresh_matches()

    def expand(self) -> None:
        node = self.current
        if node is not None and node.is_expandable and node.path in self.collapsed:
            self.toggle()

    def collapse_or_parent(self) -> None:
        """Collapse an expanded node, otherwise step out to the parent."""
        node = self.current
        if node is None:
            return
        if node.is_expandable and node.path not in self.collapsed:
            self.toggle()
            return
        if node.depth == 0:
            return
        nodes = self.nodes
        for i in range(self.cursor - 1, -1, -1):
            if nodes[i].depth < node.depth:
                self.move_to(i)
                return

    # ---- search -----------------------------------------------------------

    def _refresh_matches(self) -> None:
        self.matches = [i for i, n in enumerate(self.nodes) if node_matches(n, self.query)]
        if self.match_index >= len(self.matches):
            self.match_index = len(self.matches) - 1

    def set_query(self, query: str) -> None:
        self.query = query
        self.match_index = -1
        self._refresh_matches()

    def confirm_search(self) -> bool:
        """Jump to the first match; returns False when nothing matched."""
        self.mode = TreeMode.BROWSE
        self._refresh_matches()
        if not self.matches:
            self.status = f"No match for '{self.query}'" if self.query else ""
            return False
        self.match_index = 0
        self.move_to(self.matches[0])
        self.status = f"Match 1/{len(self.matches)}"
        return True

    def cycle_match(self, step: int) -> None:
        if not self.matches:
            return
        self.match_index = (self.match_index + step) % len(self.matches)
        self.move_to(self.matches[self.match_index])
        self.status = f"Match {self.match_index + 1}/{len(self.matches)}"

    def next_match(self) -> None:
        self.cycle_match(1)

    def prev_match(self) -> None:
        self.cycle_match(-1)

    # ---- capture ----------------------------------------------------------

    def capture(self, name: str, sink: VariableSink) -> str | None:
        """Bind the selected node's value to variable ``name``."""
        name = name.strip()
        node = self.current
        if not name or node is None:
            return None
        value = node_value_to_string(node.value)
        sink.set_variable(name, value)
        self.status = f'✓ {{{{{name}}}}} = "{truncate(value, CAPTURE_PREVIEW)}"'
        logger.info(f"Captured {node.path} into variable {name}")
        return value

    def lookup_path(self) -> str:
        node = self.current
        return to_lookup_path(node.path) if node else ""

    # ---- input ------------------------------------------------------------

    def handle_key(self, key: Key, sink: Optional[VariableSink] = None) -> None:
        match self.mode:
            case TreeMode.SEARCH:
                self._handle_search(key)
            case TreeMode.CAPTURE:
                self._handle_capture(key, sink)
            case _:
                self._handle_browse(key, sink)

    def _handle_search(self, key: Key) -> None:
        if key.is_(KeyName.ESCAPE):
            self.mode = TreeMode.BROWSE
            self.set_query("")
        elif key.is_(KeyName.ENTER):
            self.confirm_search()
        elif key.is_delete:
            self.set_query(self.query[:-1])
        elif key.is_char:
            self.set_query(self.query + key.char)

    def _handle_capture(self, key: Key, sink: Optional[VariableSink]) -> None:
        if key.is_(KeyName.ESCAPE):
            self.mode = TreeMode.BROWSE
            self.capture_name = ""
        elif key.is_(KeyName.ENTER):
            if sink is not None and self.capture(self.capture_name, sink) is not None:
                self.mode = TreeMode.BROWSE
                self.capture_name = ""
        elif key.is_delete:
            self.capture_name = self.capture_name[:-1]
        elif key.is_char:
            self.capture_name += key.char

    def _handle_browse(self, key: Key, sink: Optional[VariableSink]) -> None:
        match key:
            case Key(name=KeyName.ESCAPE):
                self.closed = True
            case Key(name=KeyName.UP):
                self.move(-1)
            case Key(name=KeyName.DOWN):
                self.move(1)
            case Key(name=KeyName.ENTER) | Key(char=" ", name=None):
                self.toggle()
            case Key(name=KeyName.LEFT):
                self.collapse_or_parent()
            case Key(name=KeyName.RIGHT):
                self.expand()
            case Key(char="/", name=None):
                self.mode = TreeMode.SEARCH
                self.set_query("")
            case Key(char="n", name=None):
                self.next_match()
            case Key(char="N", name=None):
                self.prev_match()
            case Key(char="v", name=None) if sink is not None:
                self.mode = TreeMode.CAPTURE
                self.capture_name = ""

    # ---- rendering --------------------------------------------------------

    def render(self) -> list[str]:
        lines = []
        for offset, node in enumerate(self.visible_window()):
            selected = self.scroll + offset == self.cursor
            is_collapsed = node.path in self.collapsed
            arrow = ("▶ " if is_collapsed else "▼ ") if node.is_expandable else "  "
            marker = "> " if selected else "  "
            label = value_label(node, is_collapsed)
            lines.append(f"{marker}{'  ' * node.depth}{arrow}{node.key}: {label}")
        return lines
