"""Explicit visitor over Tree-sitter nodes.

Subclasses implement ``visit_<node type>`` only for the node kinds they
consume; every other named node is walked through ``generic_visit``.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class SyntaxVisitor:
    """Dispatch on ``node.type`` the way ``ast.NodeVisitor`` dispatches on class."""

    def visit(self, node: Any) -> None:
        method = getattr(self, f"visit_{node.type}", None)
        if method is None:
            self.generic_visit(node)
        else:
            method(node)

    def generic_visit(self, node: Any) -> None:
        for child in node.named_children:
            self.visit(child)


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

def node_text(node: Optional[Any]) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def field_text(node: Any, field: str) -> Optional[str]:
    child = node.child_by_field_name(field)
    return node_text(child) if child is not None else None


def has_token(node: Any, *tokens: str) -> bool:
    """Return True if *node* has a direct child whose type is one of *tokens*."""
    return any(child.type in tokens for child in node.children)


def first_child_of_type(node: Any, *types: str) -> Optional[Any]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def children_of_type(node: Any, *types: str) -> Iterable[Any]:
    return (child for child in node.children if child.type in types)


def line_of(node: Any) -> int:
    return node.start_point[0] + 1


def end_line_of(node: Any) -> int:
    return node.end_point[0] + 1


def strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text


def type_annotation_text(node: Optional[Any]) -> Optional[str]:
    """Text of a ``type_annotation`` without its leading colon."""
    if node is None:
        return None
    text = node_text(node).strip()
    if text.startswith(":"):
        text = text[1:].strip()
    return text or None
