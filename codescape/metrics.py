"""Per-file code metrics: LOC, entity counts, complexity and nesting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

DECISION_NODES = frozenset({
    "if_statement",
    "while_statement",
    "for_statement",
    "for_in_statement",
    "do_statement",
    "switch_case",
    "catch_clause",
    "ternary_expression",
})

LOGICAL_OPERATORS = frozenset({"&&", "||"})

NESTING_NODES = frozenset({
    "if_statement",
    "while_statement",
    "for_statement",
    "for_in_statement",
    "do_statement",
    "try_statement",
    "function_declaration",
    "arrow_function",
    "class_declaration",
})

FUNCTION_NODES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
})


@dataclass
class CodeMetrics:
    loc: int = 0
    class_count: int = 0
    function_count: int = 0
    average_complexity: int = 0
    max_complexity: int = 0
    max_nesting_depth: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "loc": self.loc,
            "class_count": self.class_count,
            "function_count": self.function_count,
            "average_complexity": self.average_complexity,
            "max_complexity": self.max_complexity,
            "max_nesting_depth": self.max_nesting_depth,
        }


def count_loc(content: str) -> int:
    """Number of lines, or 0 for blank content."""
    if not content.strip():
        return 0
    return len(content.split("\n"))


def function_complexity(node: Any) -> int:
    """Cyclomatic complexity of a function node: 1 + decision points."""
    complexity = 1
    stack = list(node.children)
    while stack:
        current = stack.pop()
        if current.type in DECISION_NODES:
            complexity += 1
        elif current.type == "binary_expression":
            operator = current.child_by_field_name("operator")
            if operator is not None and operator.type in LOGICAL_OPERATORS:
                complexity += 1
        stack.extend(current.children)
    return complexity


def collect_complexities(root: Any) -> List[int]:
    """Complexity of every function-like node under *root*."""
    complexities: List[int] = []
    stack = [root]
    while stack:
        current = stack.pop()
        if current.type in FUNCTION_NODES:
            complexities.append(function_complexity(current))
        stack.extend(current.children)
    return complexities


def max_nesting_depth(root: Any) -> int:
    deepest = 0
    stack = [(root, 0)]
    while stack:
        current, depth = stack.pop()
        if current.type in NESTING_NODES:
            depth += 1
        deepest = max(deepest, depth)
        stack.extend((child, depth) for child in current.children)
    return deepest


def calculate_metrics(
    root: Optional[Any],
    content: str,
    class_count: int = 0,
    function_count: int = 0,
) -> CodeMetrics:
    """Compute metrics for one file.

    *class_count* and *function_count* come from the extractors so that the
    counts agree with the entities that end up in the graph.
    """
    metrics = CodeMetrics(
        loc=count_loc(content),
        class_count=class_count,
        function_count=function_count,
    )
    if root is None:
        return metrics

    complexities = collect_complexities(root)
    if complexities:
        metrics.average_complexity = round(sum(complexities) / len(complexities))
        metrics.max_complexity = max(complexities)
    metrics.max_nesting_depth = max_nesting_depth(root)
    return metrics
