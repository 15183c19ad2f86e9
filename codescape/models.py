"""Entity records produced by the extractors for a single file."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ParameterInfo:
    name: str
    type: Optional[str] = None
    optional: bool = False
    default: Optional[str] = None


@dataclass
class MethodInfo:
    name: str
    parameters: List[ParameterInfo] = field(default_factory=list)
    return_type: Optional[str] = None
    visibility: str = "public"
    is_async: bool = False
    is_static: bool = False
    is_generator: bool = False
    is_abstract: bool = False
    kind: str = "method"
    start_line: int = 0
    end_line: int = 0
    complexity: int = 1


@dataclass
class PropertyInfo:
    name: str
    type: Optional[str] = None
    visibility: str = "public"
    is_static: bool = False
    is_readonly: bool = False
    line: int = 0


@dataclass
class ClassInfo:
    name: str
    extends: Optional[str] = None
    implements: List[str] = field(default_factory=list)
    methods: List[MethodInfo] = field(default_factory=list)
    properties: List[PropertyInfo] = field(default_factory=list)
    is_abstract: bool = False
    is_exported: bool = False
    parent: Optional[str] = None
    start_line: int = 0
    end_line: int = 0

    @property
    def qualname(self) -> str:
        return f"{self.parent}.{self.name}" if self.parent else self.name


@dataclass
class InterfaceInfo:
    name: str
    extends: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)
    is_exported: bool = False
    start_line: int = 0
    end_line: int = 0


@dataclass
class EnumInfo:
    name: str
    members: List[str] = field(default_factory=list)
    is_const: bool = False
    is_exported: bool = False
    start_line: int = 0
    end_line: int = 0


@dataclass
class FunctionInfo:
    name: str
    parameters: List[ParameterInfo] = field(default_factory=list)
    return_type: Optional[str] = None
    is_async: bool = False
    is_generator: bool = False
    is_arrow: bool = False
    is_top_level: bool = True
    is_exported: bool = False
    line: int = 0
    end_line: int = 0
    complexity: int = 1


@dataclass
class VariableInfo:
    name: str
    kind: str = "const"
    type: Optional[str] = None
    is_exported: bool = False
    line: int = 0


@dataclass
class ImportSpecifier:
    imported: str
    local: str


@dataclass
class ImportInfo:
    source: str
    specifiers: List[ImportSpecifier] = field(default_factory=list)
    default_import: Optional[str] = None
    namespace_import: Optional[str] = None
    is_type_only: bool = False
    line: int = 0

    @property
    def is_side_effect(self) -> bool:
        """``import './polyfill'``: no bindings at all."""
        return (
            not self.specifiers
            and self.default_import is None
            and self.namespace_import is None
        )

    def local_names(self) -> List[str]:
        names = [specifier.local for specifier in self.specifiers]
        if self.default_import:
            names.append(self.default_import)
        if self.namespace_import:
            names.append(self.namespace_import)
        return names


@dataclass
class ExportSpecifier:
    local: str
    exported: str


@dataclass
class ExportInfo:
    specifiers: List[ExportSpecifier] = field(default_factory=list)
    source: Optional[str] = None
    is_default: bool = False
    export_all: bool = False
    namespace: Optional[str] = None
    line: int = 0


@dataclass
class CallInfo:
    callee: str
    receiver: Optional[str] = None
    argument_count: int = 0
    is_member_call: bool = False
    is_constructor: bool = False
    caller: Optional[str] = None
    line: int = 0
    column: int = 0


@dataclass
class InheritanceInfo:
    child: str
    parent: str
    kind: str = "extends"
    line: int = 0
