"""
Tree Renderer
=============
Formats B+ Tree level-order dumps for the console.

Features:
  - Modes: keys (one line per level, nodes split by "||"), pairs
    (leaves as [(k, v), ...], internal nodes as <k1, k2>)
  - Optional rule line after each tree
  - Operation and error message rendering
  - Works only through BPlusTree.dump(); never touches nodes directly
"""

import sys
from typing import Any, List, Optional, TextIO

RULE = "------------------------------------"


class TreeRenderer:
    """
    Console renderer for B+ Tree dumps with configurable display modes.
    """

    def __init__(self, output: TextIO = None):
        self.output = output or sys.stdout
        self.mode: str = "keys"          # keys, pairs
        self.show_separator: bool = True
        self.value_limit: Optional[int] = None  # None = no truncation

    # ─── Public API ─────────────────────────────────────────────────

    def render_tree(self, tree) -> int:
        """
        Render a tree level by level.
        Returns number of levels rendered.
        """
        if self.mode == "pairs":
            levels = tree.dump(with_values=True)
        else:
            levels = tree.dump()

        if not levels:
            self._print("The tree is empty.")
        elif self.mode == "pairs":
            self._render_pairs(levels)
        else:
            self._render_keys(levels)

        if self.show_separator:
            self._print(RULE)
        return len(levels)

    def render_operation(self, op: str, key: Any):
        """Render a workload step header, e.g. 'INSERTING: 42'."""
        self._print(f"{op}: {key}")

    def render_message(self, message: str):
        if message:
            self._print(message)

    def render_error(self, error: Exception):
        """Render an error with classification prefix."""
        error_type = type(error).__name__
        prefix = self._classify_error(error_type)
        self._print(f"{prefix}: {error}")

    # ─── Keys Mode ──────────────────────────────────────────────────

    def _render_keys(self, levels: List[List[List[Any]]]):
        """Each node's keys space-separated, nodes terminated by '|| '."""
        for level in levels:
            parts = []
            for node_keys in level:
                for key in node_keys:
                    parts.append(f"{self._format_value(key)} ")
                parts.append("|| ")
            self._print("".join(parts))

    # ─── Pairs Mode ─────────────────────────────────────────────────

    def _render_pairs(self, levels: List[List[List[Any]]]):
        last = len(levels) - 1
        for depth, level in enumerate(levels):
            if depth == last:
                reprs = [self._format_leaf(entries) for entries in level]
            else:
                reprs = [self._format_internal(keys) for keys in level]
            self._print("  ".join(reprs) + "  ")

    def _format_leaf(self, entries) -> str:
        pairs = ", ".join(
            f"({self._format_value(k)}, {self._format_value(v)})" for k, v in entries)
        return f"[{pairs}]"

    def _format_internal(self, keys) -> str:
        return "<" + ", ".join(self._format_value(k) for k in keys) + ">"

    # ─── Helpers ────────────────────────────────────────────────────

    def _format_value(self, value) -> str:
        """Format a single key or value for display."""
        if value is None:
            return "NULL"
        text = str(value)
        if self.value_limit is not None and len(text) > self.value_limit:
            return text[:max(self.value_limit - 3, 0)] + "..."
        return text

    def _classify_error(self, error_type: str) -> str:
        """Map error class name to user-friendly prefix."""
        mapping = {
            "BTreeConfigError": "ConfigError",
            "ValueError": "ExecutionError",
            "AssertionError": "InvariantError",
            "KeyError": "ExecutionError",
            "TypeError": "ExecutionError",
            "KeyboardInterrupt": "Interrupted",
        }
        return mapping.get(error_type, f"Error[{error_type}]")

    def _print(self, text: str):
        """Print a line to the output stream."""
        print(text, file=self.output)
