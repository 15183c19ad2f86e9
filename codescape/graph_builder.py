"""Fold per-file analyses into one dependency graph.

Build phases, each over the input files in order:

1. parse every file and add its file and entity nodes with ``contains`` edges
2. resolve imports to file nodes (or ``external:`` module nodes)
3. resolve ``extends``/``implements`` targets
4. resolve calls by name (best effort, no type inference)
5. optional directory nodes
6. abstraction depth over file-level nodes
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .analyzer import FileAnalysis, analyze_content
from .depth import DepthResult, calculate_abstraction_depth
from .external import describe_external, extract_package_name, external_node_id, is_external_import
from .graph import DependencyEdge, DependencyGraph, DependencyNode
from .models import CallInfo
from .parser import SourceParser, detect_language

logger = logging.getLogger(__name__)

# Order in which extensions are tried for an extension-less specifier.
CANDIDATE_EXTENSIONS: Tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts")

# ESM TypeScript imports name the emitted ``.js`` file.
_COMPILED_TO_SOURCE: Dict[str, Tuple[str, ...]] = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}

TYPE_KINDS = ("class", "abstract_class", "interface")
CLASS_KINDS = ("class", "abstract_class")
FILE_LEVEL_KINDS = ("file", "module")


def normalize_path(path: Union[str, PurePosixPath]) -> str:
    text = str(path).replace("\\", "/")
    normalized = posixpath.normpath(text)
    return "" if normalized == "." else normalized


def import_candidates(importer: str, specifier: str) -> List[str]:
    """Paths tried, in order, when resolving *specifier* from *importer*."""
    if specifier.startswith("/"):
        bases = [normalize_path(specifier), normalize_path(specifier.lstrip("/"))]
    else:
        bases = [normalize_path(posixpath.join(posixpath.dirname(importer), specifier))]

    candidates: List[str] = []
    for base in bases:
        candidates.append(base)
        stem, ext = posixpath.splitext(base)
        for replacement in _COMPILED_TO_SOURCE.get(ext, ()):
            candidates.append(stem + replacement)
        candidates.extend(base + ext for ext in CANDIDATE_EXTENSIONS)
        candidates.extend(posixpath.join(base, "index" + ext) for ext in CANDIDATE_EXTENSIONS)
    return candidates


def resolve_import_path(importer: str, specifier: str, known_paths: Mapping[str, Any]) -> Optional[str]:
    """Resolve a relative or absolute specifier to one of *known_paths*.

    Returns None for bare package specifiers and for paths that match no
    known file.
    """
    if is_external_import(specifier):
        return None
    for candidate in import_candidates(importer, specifier):
        if candidate in known_paths:
            return candidate
    return None


@dataclass
class SourceFile:
    path: str
    content: str
    language: Optional[str] = None


@dataclass
class BuildOptions:
    include_external: bool = True
    include_directories: bool = False
    include_variables: bool = True
    # parsed package.json, used to tag external dependency versions
    manifest: Optional[Mapping[str, Any]] = None


@dataclass
class BuildResult:
    graph: DependencyGraph
    analyses: Dict[str, FileAnalysis] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    depth: DepthResult = field(default_factory=DepthResult)


SourceInput = Union[SourceFile, Tuple[str, str], Tuple[str, str, Optional[str]]]


class _BuildState:
    """Lookup tables for a single build; discarded afterwards."""

    def __init__(self) -> None:
        self.graph = DependencyGraph()
        self.analyses: Dict[str, FileAnalysis] = {}
        self.errors: Dict[str, str] = {}
        self.file_ids: Dict[str, str] = {}
        # path -> name -> node ids (classes, interfaces, enums, functions, variables)
        self.symbols: Dict[str, Dict[str, List[str]]] = {}
        # class node id -> method name -> method node id
        self.class_methods: Dict[str, Dict[str, str]] = {}
        # path -> method name -> method node ids
        self.methods_by_name: Dict[str, Dict[str, List[str]]] = {}
        # path -> local binding -> (resolved path, imported name | "default" | "*")
        self.bindings: Dict[str, Dict[str, Tuple[str, str]]] = {}
        # simple name -> type node ids across the whole build
        self.types_by_name: Dict[str, List[str]] = {}


class GraphBuilder:
    """Builds a :class:`DependencyGraph` from an ordered batch of files.

    The parser is an explicit handle; pass one in to share loaded grammars
    between builds.
    """

    def __init__(
        self,
        parser: Optional[SourceParser] = None,
        options: Optional[BuildOptions] = None,
    ) -> None:
        self.parser = parser or SourceParser()
        self.options = options or BuildOptions()

    def build(self, files: Iterable[SourceInput]) -> BuildResult:
        state = _BuildState()
        sources = self._normalize_inputs(files)

        for source in sources:
            self._add_file(state, source)
        for path in state.analyses:
            self._resolve_imports(state, path)
        for path in state.analyses:
            self._resolve_inheritance(state, path)
        for path in state.analyses:
            self._resolve_calls(state, path)
        if self.options.include_directories:
            self._add_directories(state)
        depth = self._assign_depth(state)

        logger.info(
            "Built dependency graph: %d nodes, %d edges, %d file error(s)",
            state.graph.node_count, state.graph.edge_count, len(state.errors),
        )
        return BuildResult(
            graph=state.graph,
            analyses=state.analyses,
            errors=state.errors,
            depth=depth,
        )

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_inputs(files: Iterable[SourceInput]) -> List[SourceFile]:
        seen: Dict[str, None] = {}
        result: List[SourceFile] = []
        for item in files:
            if isinstance(item, SourceFile):
                source = item
            else:
                source = SourceFile(*item)
            path = normalize_path(source.path)
            if path in seen:
                logger.warning("Duplicate input path %s ignored", path)
                continue
            seen[path] = None
            result.append(SourceFile(path, source.content, source.language))
        return result

    # ------------------------------------------------------------------
    # Phase 1: files and entities
    # ------------------------------------------------------------------

    def _add_file(self, state: _BuildState, source: SourceFile) -> None:
        path = source.path
        file_id = f"file:{path}"
        file_node = state.graph.add_node(DependencyNode(
            id=file_id,
            kind="file",
            name=PurePosixPath(path).name,
            path=path,
            metadata={"language": source.language or "unknown"},
        ))
        state.file_ids[path] = file_id
        state.symbols[path] = {}
        state.methods_by_name[path] = {}
        state.bindings[path] = {}

        try:
            language = source.language or detect_language(path)
            file_node.metadata["language"] = language
            analysis = analyze_content(self.parser, source.content, language, path)
        except Exception as exc:
            logger.warning("Failed to parse %s: %s", path, exc)
            state.errors[path] = str(exc)
            file_node.metadata["parse_error"] = str(exc)
            return

        state.analyses[path] = analysis
        metrics = analysis.metrics
        file_node.metadata.update({
            "loc": metrics.loc,
            "complexity": metrics.average_complexity,
            "metrics": metrics.to_dict(),
            "has_errors": analysis.has_errors,
            "import_count": len(analysis.imports),
            "export_count": len(analysis.exports),
        })
        if analysis.error_locations:
            file_node.metadata["error_locations"] = [
                {"line": line, "column": column} for line, column in analysis.error_locations
            ]
        self._add_entities(state, analysis, file_id)

    def _add_entity(
        self,
        state: _BuildState,
        parent_id: str,
        node: DependencyNode,
        symbol: Optional[str] = None,
    ) -> bool:
        if state.graph.has_node(node.id):
            logger.debug("Skipping duplicate entity %s", node.id)
            return False
        state.graph.add_node(node)
        state.graph.connect(parent_id, node.id, "contains")
        if symbol is not None:
            state.symbols[node.path].setdefault(symbol, []).append(node.id)
        return True

    def _add_entities(self, state: _BuildState, analysis: FileAnalysis, file_id: str) -> None:
        path = analysis.path
        language = analysis.language

        for cls in analysis.classes:
            class_id = f"class:{path}:{cls.qualname}"
            parent_id = file_id
            if cls.parent and state.graph.has_node(f"class:{path}:{cls.parent}"):
                parent_id = f"class:{path}:{cls.parent}"
            added = self._add_entity(state, parent_id, DependencyNode(
                id=class_id,
                kind="abstract_class" if cls.is_abstract else "class",
                name=cls.name,
                path=path,
                metadata={
                    "language": language,
                    "start_line": cls.start_line,
                    "end_line": cls.end_line,
                    "loc": cls.end_line - cls.start_line + 1,
                    "extends": cls.extends,
                    "implements": list(cls.implements),
                    "is_abstract": cls.is_abstract,
                    "is_exported": cls.is_exported,
                    "method_count": len(cls.methods),
                    "property_count": len(cls.properties),
                },
            ), symbol=cls.qualname)
            if not added:
                continue
            state.types_by_name.setdefault(cls.name, []).append(class_id)
            methods = state.class_methods.setdefault(class_id, {})

            for method in cls.methods:
                method_id = f"method:{path}:{cls.qualname}.{method.name}"
                if self._add_entity(state, class_id, DependencyNode(
                    id=method_id,
                    kind="method",
                    name=method.name,
                    path=path,
                    metadata={
                        "language": language,
                        "start_line": method.start_line,
                        "end_line": method.end_line,
                        "loc": method.end_line - method.start_line + 1,
                        "complexity": method.complexity,
                        "parameters": [p.name for p in method.parameters],
                        "return_type": method.return_type,
                        "visibility": method.visibility,
                        "is_async": method.is_async,
                        "is_static": method.is_static,
                        "is_generator": method.is_generator,
                        "is_abstract": method.is_abstract,
                        "method_kind": method.kind,
                    },
                )):
                    methods[method.name] = method_id
                    state.methods_by_name[path].setdefault(method.name, []).append(method_id)

            if not self.options.include_variables:
                continue
            for prop in cls.properties:
                self._add_entity(state, class_id, DependencyNode(
                    id=f"variable:{path}:{cls.qualname}.{prop.name}",
                    kind="variable",
                    name=prop.name,
                    path=path,
                    metadata={
                        "language": language,
                        "start_line": prop.line,
                        "type": prop.type,
                        "visibility": prop.visibility,
                        "is_static": prop.is_static,
                        "is_readonly": prop.is_readonly,
                        "is_property": True,
                    },
                ))

        for iface in analysis.interfaces:
            iface_id = f"interface:{path}:{iface.name}"
            if self._add_entity(state, file_id, DependencyNode(
                id=iface_id,
                kind="interface",
                name=iface.name,
                path=path,
                metadata={
                    "language": language,
                    "start_line": iface.start_line,
                    "end_line": iface.end_line,
                    "loc": iface.end_line - iface.start_line + 1,
                    "extends": list(iface.extends),
                    "members": list(iface.members),
                    "is_exported": iface.is_exported,
                },
            ), symbol=iface.name):
                state.types_by_name.setdefault(iface.name, []).append(iface_id)

        for enum in analysis.enums:
            self._add_entity(state, file_id, DependencyNode(
                id=f"enum:{path}:{enum.name}",
                kind="enum",
                name=enum.name,
                path=path,
                metadata={
                    "language": language,
                    "start_line": enum.start_line,
                    "end_line": enum.end_line,
                    "members": list(enum.members),
                    "is_const": enum.is_const,
                    "is_exported": enum.is_exported,
                },
            ), symbol=enum.name)

        for fn in analysis.top_level_functions:
            self._add_entity(state, file_id, DependencyNode(
                id=f"function:{path}:{fn.name}",
                kind="function",
                name=fn.name,
                path=path,
                metadata={
                    "language": language,
                    "start_line": fn.line,
                    "end_line": fn.end_line,
                    "loc": fn.end_line - fn.line + 1,
                    "complexity": fn.complexity,
                    "parameters": [p.name for p in fn.parameters],
                    "return_type": fn.return_type,
                    "is_async": fn.is_async,
                    "is_generator": fn.is_generator,
                    "is_arrow": fn.is_arrow,
                    "is_exported": fn.is_exported,
                },
            ), symbol=fn.name)

        if self.options.include_variables:
            for var in analysis.variables:
                self._add_entity(state, file_id, DependencyNode(
                    id=f"variable:{path}:{var.name}",
                    kind="variable",
                    name=var.name,
                    path=path,
                    metadata={
                        "language": language,
                        "start_line": var.line,
                        "declaration_kind": var.kind,
                        "type": var.type,
                        "is_exported": var.is_exported,
                    },
                ), symbol=var.name)

    # ------------------------------------------------------------------
    # Phase 2: imports
    # ------------------------------------------------------------------

    def _resolve_imports(self, state: _BuildState, path: str) -> None:
        file_id = state.file_ids[path]
        bindings = state.bindings[path]
        unresolved: List[str] = []

        for imp in state.analyses[path].imports:
            if is_external_import(imp.source):
                if self.options.include_external:
                    target_id = self._ensure_external(state, imp.source)
                    state.graph.connect(
                        file_id, target_id, "imports",
                        is_external=True, import_path=imp.source,
                    )
                continue

            target = resolve_import_path(path, imp.source, state.file_ids)
            if target is None:
                unresolved.append(imp.source)
                continue
            if target != path:
                state.graph.connect(
                    file_id, state.file_ids[target], "imports",
                    import_path=imp.source,
                    specifiers=[s.imported for s in imp.specifiers],
                )
            for specifier in imp.specifiers:
                bindings[specifier.local] = (target, specifier.imported)
            if imp.default_import:
                bindings[imp.default_import] = (target, "default")
            if imp.namespace_import:
                bindings[imp.namespace_import] = (target, "*")

        if unresolved:
            logger.warning("Unresolved imports in %s: %s", path, ", ".join(unresolved))
            state.graph.get_node(file_id).metadata["unresolved_imports"] = unresolved

    def _ensure_external(self, state: _BuildState, specifier: str) -> str:
        package = extract_package_name(specifier)
        node_id = external_node_id(package)
        if not state.graph.has_node(node_id):
            state.graph.add_node(DependencyNode(
                id=node_id,
                kind="module",
                name=package,
                path=package,
                metadata=describe_external(specifier, self.options.manifest),
            ))
        return node_id

    # ------------------------------------------------------------------
    # Symbol lookup
    # ------------------------------------------------------------------

    def _exported_symbol(
        self,
        state: _BuildState,
        path: str,
        name: str,
        seen: Optional[set] = None,
    ) -> List[str]:
        """Node ids that *path* exports under *name*, following re-exports."""
        seen = seen if seen is not None else set()
        if (path, name) in seen:
            return []
        seen.add((path, name))

        analysis = state.analyses.get(path)
        if analysis is None:
            return []

        for export in analysis.exports:
            if export.export_all:
                continue
            for specifier in export.specifiers:
                if specifier.exported != name:
                    continue
                if export.source:
                    target = resolve_import_path(path, export.source, state.file_ids)
                    return self._exported_symbol(state, target, specifier.local, seen) if target else []
                local = state.symbols[path].get(specifier.local)
                if local:
                    return list(local)
                binding = state.bindings[path].get(specifier.local)
                if binding is not None and binding[1] != "*":
                    return self._exported_symbol(state, binding[0], binding[1], seen)
                return []

        for export in analysis.exports:
            if export.export_all and export.source and not export.namespace:
                target = resolve_import_path(path, export.source, state.file_ids)
                if target:
                    ids = self._exported_symbol(state, target, name, seen)
                    if ids:
                        return ids

        # CommonJS and files without export statements
        if name == "default":
            return []
        return list(state.symbols[path].get(name, []))

    def _resolve_binding(self, state: _BuildState, path: str, local: str) -> List[str]:
        binding = state.bindings[path].get(local)
        if binding is None or binding[1] == "*":
            return []
        target_path, imported = binding
        if imported == "default":
            ids = self._exported_symbol(state, target_path, "default")
            return ids or self._exported_symbol(state, target_path, local)
        return self._exported_symbol(state, target_path, imported)

    def _lookup(self, state: _BuildState, path: str, name: str, kinds: Sequence[str]) -> List[str]:
        """Resolve a referenced name to local or imported nodes of *kinds*."""
        graph = state.graph

        def _of_kind(ids: Iterable[str]) -> List[str]:
            return [i for i in ids if graph.get_node(i).kind in kinds]

        if "." in name:
            head, _, tail = name.rpartition(".")
            binding = state.bindings[path].get(head)
            if binding is not None and binding[1] == "*":
                return _of_kind(self._exported_symbol(state, binding[0], tail))
            return _of_kind(state.symbols[path].get(name, []))

        local = _of_kind(state.symbols[path].get(name, []))
        if local:
            return local
        return _of_kind(self._resolve_binding(state, path, name))

    # ------------------------------------------------------------------
    # Phase 3: inheritance
    # ------------------------------------------------------------------

    def _resolve_inheritance(self, state: _BuildState, path: str) -> None:
        graph = state.graph
        for relation in state.analyses[path].inheritance:
            child_id = f"class:{path}:{relation.child}"
            if not graph.has_node(child_id):
                child_id = f"interface:{path}:{relation.child}"
                if not graph.has_node(child_id):
                    continue

            targets = self._lookup(state, path, relation.parent, TYPE_KINDS)
            if not targets:
                candidates = state.types_by_name.get(relation.parent.rsplit(".", 1)[-1], [])
                if len(candidates) == 1:
                    targets = candidates
            for target in targets:
                if target != child_id:
                    graph.connect(child_id, target, relation.kind)

    # ------------------------------------------------------------------
    # Phase 4: calls
    # ------------------------------------------------------------------

    def _caller_id(self, state: _BuildState, path: str, caller: Optional[str]) -> str:
        if caller:
            candidates = [
                f"method:{path}:{caller}",
                f"function:{path}:{caller}",
                f"variable:{path}:{caller}",
            ]
            if "." in caller:
                candidates.append(f"class:{path}:{caller.rpartition('.')[0]}")
            for candidate in candidates:
                if state.graph.has_node(candidate):
                    return candidate
        return state.file_ids[path]

    def _inherited_method(self, state: _BuildState, class_id: str, name: str) -> Optional[str]:
        seen = set()
        current: Optional[str] = class_id
        while current is not None and current not in seen:
            seen.add(current)
            method = state.class_methods.get(current, {}).get(name)
            if method is not None:
                return method
            parents = state.graph.outgoing(current, "extends")
            current = parents[0].target if parents else None
        return None

    def _call_targets(self, state: _BuildState, path: str, call: CallInfo) -> List[str]:
        if call.is_constructor:
            name = f"{call.receiver}.{call.callee}" if call.receiver else call.callee
            return self._lookup(state, path, name, CLASS_KINDS)

        if not call.is_member_call:
            return self._lookup(state, path, call.callee, ("function",))

        receiver = call.receiver or ""
        if receiver in ("this", "super"):
            if not call.caller or "." not in call.caller:
                return []
            owner_id = f"class:{path}:{call.caller.rpartition('.')[0]}"
            if not state.graph.has_node(owner_id):
                return []
            if receiver == "super":
                parents = state.graph.outgoing(owner_id, "extends")
                if not parents:
                    return []
                owner_id = parents[0].target
            method = self._inherited_method(state, owner_id, call.callee)
            return [method] if method else []

        classes = self._lookup(state, path, receiver, CLASS_KINDS)
        if classes:
            found = [state.class_methods.get(cid, {}).get(call.callee) for cid in classes]
            return [m for m in found if m]

        binding = state.bindings[path].get(receiver)
        if binding is not None and binding[1] == "*":
            ids = self._exported_symbol(state, binding[0], call.callee)
            return [i for i in ids if state.graph.get_node(i).kind == "function"]

        return list(state.methods_by_name[path].get(call.callee, []))

    def _resolve_calls(self, state: _BuildState, path: str) -> None:
        for call in state.analyses[path].calls:
            targets = self._call_targets(state, path, call)
            if not targets:
                continue
            source_id = self._caller_id(state, path, call.caller)
            for target in targets:
                state.graph.connect(
                    source_id, target, "calls",
                    line=call.line, is_constructor=call.is_constructor,
                )

    # ------------------------------------------------------------------
    # Phase 5: directories
    # ------------------------------------------------------------------

    def _add_directories(self, state: _BuildState) -> None:
        graph = state.graph
        for path, file_id in state.file_ids.items():
            child_id = file_id
            directory = posixpath.dirname(path)
            while directory and directory != "/":
                dir_id = f"directory:{directory}"
                if not graph.has_node(dir_id):
                    graph.add_node(DependencyNode(
                        id=dir_id,
                        kind="directory",
                        name=posixpath.basename(directory),
                        path=directory,
                    ))
                graph.connect(dir_id, child_id, "contains")
                child_id = dir_id
                directory = posixpath.dirname(directory)

    # ------------------------------------------------------------------
    # Phase 6: depth
    # ------------------------------------------------------------------

    def _assign_depth(self, state: _BuildState) -> DepthResult:
        graph = state.graph
        file_level = graph.nodes_of_kind(*FILE_LEVEL_KINDS)
        imports: List[DependencyEdge] = graph.edges_of_kind("imports")
        result = calculate_abstraction_depth(file_level, imports)

        entry_points = set(result.entry_points)
        for node in file_level:
            node.metadata["depth"] = result.depths[node.id]
            node.metadata["is_entry_point"] = node.id in entry_points
        for node in graph:
            if node.kind in FILE_LEVEL_KINDS or node.kind == "directory":
                continue
            file_id = state.file_ids.get(node.path)
            if file_id is not None:
                node.metadata["depth"] = result.depths.get(file_id, 0)
        return result


def build_dependency_graph(
    files: Iterable[SourceInput],
    parser: Optional[SourceParser] = None,
    options: Optional[BuildOptions] = None,
) -> BuildResult:
    """Convenience wrapper around :class:`GraphBuilder`."""
    return GraphBuilder(parser, options).build(files)
