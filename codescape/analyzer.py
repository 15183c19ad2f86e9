"""Compose the extractors into one per-file analysis record."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from .extractors import (
    extract_calls,
    extract_classes,
    extract_enums,
    extract_exports,
    extract_functions,
    extract_imports,
    extract_inheritance,
    extract_interfaces,
    extract_variables,
)
from .metrics import CodeMetrics, calculate_metrics
from .models import (
    CallInfo,
    ClassInfo,
    EnumInfo,
    ExportInfo,
    FunctionInfo,
    ImportInfo,
    InheritanceInfo,
    InterfaceInfo,
    VariableInfo,
)
from .parser import SourceParser

logger = logging.getLogger(__name__)


@dataclass
class FileAnalysis:
    """Everything the extractors found in a single file."""

    path: str
    language: str
    classes: List[ClassInfo] = field(default_factory=list)
    interfaces: List[InterfaceInfo] = field(default_factory=list)
    enums: List[EnumInfo] = field(default_factory=list)
    functions: List[FunctionInfo] = field(default_factory=list)
    variables: List[VariableInfo] = field(default_factory=list)
    imports: List[ImportInfo] = field(default_factory=list)
    exports: List[ExportInfo] = field(default_factory=list)
    calls: List[CallInfo] = field(default_factory=list)
    inheritance: List[InheritanceInfo] = field(default_factory=list)
    metrics: CodeMetrics = field(default_factory=CodeMetrics)
    has_errors: bool = False
    error_locations: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def top_level_functions(self) -> List[FunctionInfo]:
        return [fn for fn in self.functions if fn.is_top_level]


def analyze_content(
    parser: SourceParser,
    content: str,
    language: str,
    file_path: str,
) -> FileAnalysis:
    """Parse *content* and run every extractor over the tree.

    Syntax errors do not stop extraction: whatever Tree-sitter recovered is
    still walked and ``has_errors`` is set on the result.
    """
    result = parser.parse_content(content, language, file_path)
    if result.is_empty:
        logger.debug("%s produced no syntax tree; recording metrics only", file_path)
        return FileAnalysis(path=file_path, language=language, metrics=calculate_metrics(None, content))
    root = result.root

    classes = extract_classes(root)
    interfaces = extract_interfaces(root)
    functions = extract_functions(root)

    analysis = FileAnalysis(
        path=file_path,
        language=language,
        classes=classes,
        interfaces=interfaces,
        enums=extract_enums(root),
        functions=functions,
        variables=extract_variables(root),
        imports=extract_imports(root),
        exports=extract_exports(root),
        calls=extract_calls(root),
        inheritance=extract_inheritance(root, classes, interfaces),
        metrics=calculate_metrics(root, content, len(classes), len(functions)),
        has_errors=result.has_errors,
        error_locations=result.error_locations,
    )
    if analysis.has_errors:
        logger.debug("%s parsed with %d syntax error(s)", file_path, len(analysis.error_locations))
    logger.debug(
        "%s: %d classes, %d functions, %d imports",
        file_path, len(classes), len(functions), len(analysis.imports),
    )
    return analysis

