"""Entity extractors over a Tree-sitter syntax tree.

Each ``extract_*`` function is independent: it takes the root node of a
parsed file and returns plain records from :mod:`codescape.models`.  They
share a scope-tracking visitor that knows which class, method or top-level
function encloses the node being visited.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .metrics import function_complexity
from .models import (
    CallInfo,
    ClassInfo,
    EnumInfo,
    ExportInfo,
    ExportSpecifier,
    FunctionInfo,
    ImportInfo,
    ImportSpecifier,
    InheritanceInfo,
    InterfaceInfo,
    MethodInfo,
    ParameterInfo,
    PropertyInfo,
    VariableInfo,
)
from .visitor import (
    SyntaxVisitor,
    children_of_type,
    end_line_of,
    field_text,
    first_child_of_type,
    has_token,
    line_of,
    node_text,
    strip_quotes,
    type_annotation_text,
)

logger = logging.getLogger(__name__)

FUNCTION_VALUE_TYPES = frozenset({
    "arrow_function",
    "function_expression",
    "function",
    "generator_function",
})

PROPERTY_TYPES = frozenset({
    "public_field_definition",
    "field_definition",
    "property_declaration",
})

DECLARATION_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
    "interface_declaration",
    "enum_declaration",
    "type_alias_declaration",
})


# ===================================================================
# Shared helpers
# ===================================================================

def _parameters(params: Optional[Any]) -> List[ParameterInfo]:
    if params is None:
        return []
    if params.type == "identifier":
        # single unparenthesised arrow parameter
        return [ParameterInfo(name=node_text(params))]

    result: List[ParameterInfo] = []
    for child in params.named_children:
        if child.type == "comment":
            continue
        if child.type in ("required_parameter", "optional_parameter"):
            pattern = child.child_by_field_name("pattern")
            value = child.child_by_field_name("value")
            result.append(ParameterInfo(
                name=node_text(pattern) if pattern is not None else node_text(child),
                type=type_annotation_text(child.child_by_field_name("type")),
                optional=child.type == "optional_parameter" or value is not None,
                default=node_text(value) if value is not None else None,
            ))
        elif child.type == "assignment_pattern":
            right = child.child_by_field_name("right")
            result.append(ParameterInfo(
                name=field_text(child, "left") or node_text(child),
                optional=True,
                default=node_text(right) if right is not None else None,
            ))
        else:
            result.append(ParameterInfo(name=node_text(child)))
    return result


def _visibility(node: Any, name_node: Optional[Any]) -> str:
    modifier = first_child_of_type(node, "accessibility_modifier")
    if modifier is not None:
        return node_text(modifier)
    if name_node is not None and name_node.type == "private_property_identifier":
        return "private"
    return "public"


def _type_name(node: Any) -> str:
    """Referenced type name without type arguments (``Base<T>`` -> ``Base``)."""
    if node.type == "generic_type":
        name = node.child_by_field_name("name")
        if name is not None:
            return node_text(name)
    return node_text(node).split("<", 1)[0].strip()


def _heritage(node: Any) -> Tuple[Optional[str], List[str]]:
    heritage = first_child_of_type(node, "class_heritage")
    if heritage is None:
        return None, []

    extends: Optional[str] = None
    implements: List[str] = []
    for child in heritage.named_children:
        if child.type == "comment":
            continue
        if child.type == "extends_clause":
            value = child.child_by_field_name("value")
            if value is None:
                value = next(
                    (c for c in child.named_children if c.type != "type_arguments"), None
                )
            if value is not None:
                extends = _type_name(value)
        elif child.type == "implements_clause":
            implements.extend(
                _type_name(t) for t in child.named_children if t.type != "comment"
            )
        elif extends is None:
            # JavaScript: class_heritage wraps the superclass expression directly
            extends = _type_name(child)
    return extends, implements


def _is_exported(node: Any) -> bool:
    parent = node.parent
    if parent is not None and parent.type == "variable_declarator":
        declaration = parent.parent
        parent = declaration.parent if declaration is not None else None
    return parent is not None and parent.type == "export_statement"


def _is_top_level_declaration(declarator: Any) -> bool:
    declaration = declarator.parent
    if declaration is None or declaration.type not in ("lexical_declaration", "variable_declaration"):
        return False
    container = declaration.parent
    return container is not None and container.type in ("program", "export_statement")


# ===================================================================
# Scope-tracking visitor
# ===================================================================

class _ScopeVisitor(SyntaxVisitor):
    """Tracks enclosing classes, nesting depth and the current caller.

    ``depth`` counts enclosing function and class bodies, so ``depth == 0``
    means module level.  The caller is the qualified name of the innermost
    method or top-level function, the entities that become graph nodes.
    """

    def __init__(self) -> None:
        self._classes: List[Optional[str]] = []
        self._callers: List[Optional[str]] = [None]
        self.depth = 0

    @property
    def current_class(self) -> Optional[str]:
        return self._classes[-1] if self._classes else None

    @property
    def caller(self) -> Optional[str]:
        return self._callers[-1]

    # -- hooks ---------------------------------------------------------

    def on_class(self, node: Any, name: str, qualname: str) -> None:
        pass

    def on_method(self, node: Any, owner: str, name: str) -> None:
        pass

    def on_function(self, node: Any, name: Optional[str], top_level: bool) -> None:
        pass

    def on_variable(self, declarator: Any, name: str) -> None:
        pass

    # -- classes -------------------------------------------------------

    def visit_class_declaration(self, node: Any) -> None:
        self._visit_class(node, field_text(node, "name"))

    visit_class = visit_class_declaration
    visit_abstract_class_declaration = visit_class_declaration

    def _visit_class(self, node: Any, name: Optional[str]) -> None:
        qualname: Optional[str] = None
        if name:
            parent = self.current_class
            qualname = f"{parent}.{name}" if parent else name
            self.on_class(node, name, qualname)
        self._classes.append(qualname)
        self.depth += 1
        self.generic_visit(node)
        self.depth -= 1
        self._classes.pop()

    def visit_method_definition(self, node: Any) -> None:
        if node.parent is None or node.parent.type != "class_body":
            # object literal shorthand method
            self._enter_scope(node, self.caller)
            return
        owner = self.current_class
        name = field_text(node, "name")
        caller = self.caller
        if owner and name:
            self.on_method(node, owner, name)
            caller = f"{owner}.{name}"
        self._enter_scope(node, caller)

    def visit_abstract_method_signature(self, node: Any) -> None:
        owner = self.current_class
        name = field_text(node, "name")
        if owner and name:
            self.on_method(node, owner, name)

    # -- functions -----------------------------------------------------

    def visit_function_declaration(self, node: Any) -> None:
        self._visit_function(node, field_text(node, "name"))

    visit_generator_function_declaration = visit_function_declaration
    visit_function_expression = visit_function_declaration
    visit_function = visit_function_declaration
    visit_generator_function = visit_function_declaration

    def visit_arrow_function(self, node: Any) -> None:
        self._visit_function(node, None)

    def _visit_function(self, node: Any, name: Optional[str]) -> None:
        top_level = self.depth == 0
        self.on_function(node, name, top_level)
        caller = name if (top_level and name) else self.caller
        self._enter_scope(node, caller)

    def visit_public_field_definition(self, node: Any) -> None:
        owner = self.current_class
        name_node = node.child_by_field_name("name") or node.child_by_field_name("property")
        value = node.child_by_field_name("value")
        if owner and name_node is not None and value is not None and value.type in FUNCTION_VALUE_TYPES:
            # handle = () => {...} runs with the instance as this
            self.on_function(value, None, False)
            self._enter_scope(value, f"{owner}.{node_text(name_node)}")
            return
        self.generic_visit(node)

    visit_field_definition = visit_public_field_definition

    def _enter_scope(self, node: Any, caller: Optional[str]) -> None:
        self._callers.append(caller)
        self.depth += 1
        self.generic_visit(node)
        self.depth -= 1
        self._callers.pop()

    # -- variables -----------------------------------------------------

    def visit_variable_declarator(self, node: Any) -> None:
        name_node = node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        name = node_text(name_node) if name_node is not None and name_node.type == "identifier" else None

        if name and value is not None:
            if value.type in FUNCTION_VALUE_TYPES:
                self._visit_function(value, name)
                return
            if value.type == "class":
                self._visit_class(value, name)
                return
        if name and self.depth == 0 and _is_top_level_declaration(node):
            self.on_variable(node, name)
        self.generic_visit(node)


# ===================================================================
# Classes
# ===================================================================

class _ClassCollector(_ScopeVisitor):
    def __init__(self) -> None:
        super().__init__()
        self.classes: List[ClassInfo] = []
        self._open: Dict[str, ClassInfo] = {}

    def on_class(self, node: Any, name: str, qualname: str) -> None:
        extends, implements = _heritage(node)
        parent = qualname[: -len(name) - 1] if qualname != name else None
        info = ClassInfo(
            name=name,
            extends=extends,
            implements=implements,
            is_abstract=node.type == "abstract_class_declaration" or has_token(node, "abstract"),
            is_exported=_is_exported(node),
            parent=parent,
            start_line=line_of(node),
            end_line=end_line_of(node),
        )
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                if member.type in PROPERTY_TYPES:
                    prop = _property_info(member)
                    if prop is not None:
                        info.properties.append(prop)
        self.classes.append(info)
        self._open[qualname] = info

    def on_method(self, node: Any, owner: str, name: str) -> None:
        info = self._open.get(owner)
        if info is not None:
            info.methods.append(_method_info(node, name))


def _property_info(node: Any) -> Optional[PropertyInfo]:
    name_node = node.child_by_field_name("name") or node.child_by_field_name("property")
    if name_node is None:
        return None
    return PropertyInfo(
        name=node_text(name_node),
        type=type_annotation_text(node.child_by_field_name("type")),
        visibility=_visibility(node, name_node),
        is_static=has_token(node, "static"),
        is_readonly=has_token(node, "readonly"),
        line=line_of(node),
    )


def _method_info(node: Any, name: str) -> MethodInfo:
    if name == "constructor":
        kind = "constructor"
    elif has_token(node, "get", "static get"):
        kind = "get"
    elif has_token(node, "set"):
        kind = "set"
    else:
        kind = "method"
    return MethodInfo(
        name=name,
        parameters=_parameters(node.child_by_field_name("parameters")),
        return_type=type_annotation_text(node.child_by_field_name("return_type")),
        visibility=_visibility(node, node.child_by_field_name("name")),
        is_async=has_token(node, "async"),
        is_static=has_token(node, "static", "static get"),
        is_generator=has_token(node, "*"),
        is_abstract=node.type == "abstract_method_signature" or has_token(node, "abstract"),
        kind=kind,
        start_line=line_of(node),
        end_line=end_line_of(node),
        complexity=function_complexity(node),
    )


def extract_classes(root: Optional[Any]) -> List[ClassInfo]:
    """Return every named class in the file, nested classes included.

    Anonymous class expressions assigned to a variable take the variable's
    name; other anonymous classes are skipped.
    """
    if root is None:
        return []
    collector = _ClassCollector()
    collector.visit(root)
    return collector.classes


# ===================================================================
# Interfaces and enums (TypeScript)
# ===================================================================

class _DeclarationCollector(SyntaxVisitor):
    def __init__(self) -> None:
        self.interfaces: List[InterfaceInfo] = []
        self.enums: List[EnumInfo] = []

    def visit_interface_declaration(self, node: Any) -> None:
        name = field_text(node, "name")
        if not name:
            return
        extends: List[str] = []
        clause = first_child_of_type(node, "extends_type_clause", "extends_clause")
        if clause is not None:
            extends = [_type_name(t) for t in clause.named_children if t.type != "comment"]
        members: List[str] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                member_name = field_text(member, "name")
                if member_name:
                    members.append(member_name)
        self.interfaces.append(InterfaceInfo(
            name=name,
            extends=extends,
            members=members,
            is_exported=_is_exported(node),
            start_line=line_of(node),
            end_line=end_line_of(node),
        ))

    def visit_enum_declaration(self, node: Any) -> None:
        name = field_text(node, "name")
        if not name:
            return
        members: List[str] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in body.named_children:
                if member.type == "enum_assignment":
                    members.append(field_text(member, "name") or node_text(member))
                elif member.type != "comment":
                    members.append(node_text(member))
        self.enums.append(EnumInfo(
            name=name,
            members=members,
            is_const=has_token(node, "const"),
            is_exported=_is_exported(node),
            start_line=line_of(node),
            end_line=end_line_of(node),
        ))


def _collect_declarations(root: Optional[Any]) -> _DeclarationCollector:
    collector = _DeclarationCollector()
    if root is not None:
        collector.visit(root)
    return collector


def extract_interfaces(root: Optional[Any]) -> List[InterfaceInfo]:
    return _collect_declarations(root).interfaces


def extract_enums(root: Optional[Any]) -> List[EnumInfo]:
    return _collect_declarations(root).enums


# ===================================================================
# Functions and variables
# ===================================================================

class _FunctionCollector(_ScopeVisitor):
    def __init__(self) -> None:
        super().__init__()
        self.functions: List[FunctionInfo] = []
        self.variables: List[VariableInfo] = []

    def on_function(self, node: Any, name: Optional[str], top_level: bool) -> None:
        if not name:
            return
        params = node.child_by_field_name("parameters") or node.child_by_field_name("parameter")
        self.functions.append(FunctionInfo(
            name=name,
            parameters=_parameters(params),
            return_type=type_annotation_text(node.child_by_field_name("return_type")),
            is_async=has_token(node, "async"),
            is_generator=node.type.startswith("generator_") or has_token(node, "*"),
            is_arrow=node.type == "arrow_function",
            is_top_level=top_level,
            is_exported=_is_exported(node),
            line=line_of(node),
            end_line=end_line_of(node),
            complexity=function_complexity(node),
        ))

    def on_variable(self, declarator: Any, name: str) -> None:
        declaration = declarator.parent
        kind = field_text(declaration, "kind") or "var"
        self.variables.append(VariableInfo(
            name=name,
            kind=kind,
            type=type_annotation_text(declarator.child_by_field_name("type")),
            is_exported=_is_exported(declaration),
            line=line_of(declarator),
        ))


def _collect_functions(root: Optional[Any]) -> _FunctionCollector:
    collector = _FunctionCollector()
    if root is not None:
        collector.visit(root)
    return collector


def extract_functions(root: Optional[Any]) -> List[FunctionInfo]:
    """Return all named functions; ``is_top_level`` marks module-level ones.

    Arrow functions and function expressions are named after the variable
    they are assigned to. Anonymous callbacks are skipped.
    """
    return _collect_functions(root).functions


def extract_variables(root: Optional[Any]) -> List[VariableInfo]:
    """Return module-level variables whose value is not a function or class."""
    return _collect_functions(root).variables


# ===================================================================
# Imports and exports
# ===================================================================

class _ModuleInterfaceCollector(SyntaxVisitor):
    def __init__(self) -> None:
        self.imports: List[ImportInfo] = []
        self.exports: List[ExportInfo] = []

    def visit_import_statement(self, node: Any) -> None:
        source = node.child_by_field_name("source")
        require = first_child_of_type(node, "import_require_clause")
        if source is None and require is not None:
            source = require.child_by_field_name("source")
        if source is None:
            return

        info = ImportInfo(
            source=strip_quotes(node_text(source)),
            is_type_only=has_token(node, "type"),
            line=line_of(node),
        )
        if require is not None:
            info.default_import = node_text(first_child_of_type(require, "identifier")) or None

        clause = first_child_of_type(node, "import_clause")
        if clause is not None:
            for child in clause.named_children:
                if child.type == "identifier":
                    info.default_import = node_text(child)
                elif child.type == "namespace_import":
                    ident = first_child_of_type(child, "identifier")
                    info.namespace_import = node_text(ident) or None
                elif child.type == "named_imports":
                    for specifier in children_of_type(child, "import_specifier"):
                        imported = strip_quotes(field_text(specifier, "name") or "")
                        alias = field_text(specifier, "alias")
                        info.specifiers.append(ImportSpecifier(imported=imported, local=alias or imported))
        self.imports.append(info)

    def visit_call_expression(self, node: Any) -> None:
        # CommonJS require('x') and dynamic import('x')
        fn = node.child_by_field_name("function")
        args = node.child_by_field_name("arguments")
        if fn is not None and args is not None and (
            fn.type == "import" or (fn.type == "identifier" and node_text(fn) == "require")
        ):
            literal = [c for c in args.named_children if c.type == "string"]
            if len(literal) == 1:
                info = ImportInfo(source=strip_quotes(node_text(literal[0])), line=line_of(node))
                parent = node.parent
                if fn.type != "import" and parent is not None and parent.type == "variable_declarator":
                    target = parent.child_by_field_name("name")
                    if target is not None and target.type == "identifier":
                        info.default_import = node_text(target)
                self.imports.append(info)
        self.generic_visit(node)

    def visit_export_statement(self, node: Any) -> None:
        info = ExportInfo(is_default=has_token(node, "default"), line=line_of(node))
        source = node.child_by_field_name("source")
        if source is not None:
            info.source = strip_quotes(node_text(source))

        namespace = first_child_of_type(node, "namespace_export")
        if has_token(node, "*") or namespace is not None:
            info.export_all = True
            if namespace is not None:
                info.namespace = strip_quotes(node_text(namespace.named_children[-1])) if namespace.named_children else None
            self.exports.append(info)
            return

        clause = first_child_of_type(node, "export_clause")
        if clause is not None:
            for specifier in children_of_type(clause, "export_specifier"):
                local = strip_quotes(field_text(specifier, "name") or "")
                alias = field_text(specifier, "alias")
                info.specifiers.append(ExportSpecifier(local=local, exported=strip_quotes(alias) if alias else local))

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            for name in _declared_names(declaration):
                info.specifiers.append(ExportSpecifier(
                    local=name, exported="default" if info.is_default else name,
                ))
            self.generic_visit(declaration)

        value = node.child_by_field_name("value")
        if value is not None and info.is_default:
            local = node_text(value) if value.type == "identifier" else "default"
            info.specifiers.append(ExportSpecifier(local=local, exported="default"))
            self.generic_visit(value)

        self.exports.append(info)


def _declared_names(declaration: Any) -> Iterable[str]:
    if declaration.type in DECLARATION_TYPES:
        name = field_text(declaration, "name")
        if name:
            yield name
    elif declaration.type in ("lexical_declaration", "variable_declaration"):
        for declarator in children_of_type(declaration, "variable_declarator"):
            name_node = declarator.child_by_field_name("name")
            if name_node is not None and name_node.type == "identifier":
                yield node_text(name_node)


def _collect_module_interface(root: Optional[Any]) -> _ModuleInterfaceCollector:
    collector = _ModuleInterfaceCollector()
    if root is not None:
        collector.visit(root)
    return collector


def extract_imports(root: Optional[Any]) -> List[ImportInfo]:
    """Static imports, ``require()`` calls and dynamic ``import()`` calls."""
    return _collect_module_interface(root).imports


def extract_exports(root: Optional[Any]) -> List[ExportInfo]:
    return _collect_module_interface(root).exports


# ===================================================================
# Calls
# ===================================================================

class _CallCollector(_ScopeVisitor):
    def __init__(self) -> None:
        super().__init__()
        self.calls: List[CallInfo] = []

    def visit_call_expression(self, node: Any) -> None:
        self._record(node, node.child_by_field_name("function"), is_constructor=False)
        self.generic_visit(node)

    def visit_new_expression(self, node: Any) -> None:
        self._record(node, node.child_by_field_name("constructor"), is_constructor=True)
        self.generic_visit(node)

    def _record(self, node: Any, target: Optional[Any], is_constructor: bool) -> None:
        if target is None:
            return
        receiver: Optional[str] = None
        if target.type == "identifier":
            callee = node_text(target)
        elif target.type == "member_expression":
            callee = field_text(target, "property") or ""
            receiver = field_text(target, "object")
        else:
            return
        if not callee:
            return

        args = node.child_by_field_name("arguments")
        count = 0
        if args is not None and args.type == "arguments":
            count = sum(1 for c in args.named_children if c.type != "comment")

        row, col = node.start_point
        self.calls.append(CallInfo(
            callee=callee,
            receiver=receiver,
            argument_count=count,
            is_member_call=target.type == "member_expression",
            is_constructor=is_constructor,
            caller=self.caller,
            line=row + 1,
            column=col + 1,
        ))


def extract_calls(root: Optional[Any]) -> List[CallInfo]:
    """Call and ``new`` expressions with their enclosing caller.

    ``caller`` is ``"Class.method"`` inside a method, the function name
    inside a module-level function, and ``None`` at module level.
    """
    if root is None:
        return []
    collector = _CallCollector()
    collector.visit(root)
    return collector.calls


# ===================================================================
# Inheritance
# ===================================================================

def extract_inheritance(
    root: Optional[Any],
    classes: Optional[List[ClassInfo]] = None,
    interfaces: Optional[List[InterfaceInfo]] = None,
) -> List[InheritanceInfo]:
    """Class ``extends``/``implements`` and interface ``extends`` relations."""
    if classes is None:
        classes = extract_classes(root)
    if interfaces is None:
        interfaces = extract_interfaces(root)

    relations: List[InheritanceInfo] = []
    for cls in classes:
        if cls.extends:
            relations.append(InheritanceInfo(cls.qualname, cls.extends, "extends", cls.start_line))
        for iface in cls.implements:
            relations.append(InheritanceInfo(cls.qualname, iface, "implements", cls.start_line))
    for iface in interfaces:
        for parent in iface.extends:
            relations.append(InheritanceInfo(iface.name, parent, "extends", iface.start_line))
    return relations
