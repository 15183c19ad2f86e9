"""Source parsing on top of Tree-sitter.

Tree-sitter produces a concrete syntax tree even when the input is broken,
so malformed files come back flagged (``has_errors``) rather than raising.
Only JavaScript, TypeScript and TSX carry a grammar; the other recognised
languages are accepted and yield an empty result.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from tree_sitter import Language, Parser as TSParser

from .errors import (
    ParseError,
    ParserInitError,
    UnsupportedFileExtensionError,
    UnsupportedLanguageError,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".py": "python",
    ".java": "java",
    ".go": "go",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
}

SUPPORTED_LANGUAGES: Tuple[str, ...] = ("javascript", "typescript", "tsx")

SKIP_DIRS: Set[str] = {
    "node_modules", ".git", "dist", "build", "coverage", ".next",
    ".turbo", ".cache", "out", ".venv", "venv", "__pycache__",
    ".codescape",
}

# Cap on error locations recorded per file.
MAX_ERROR_LOCATIONS = 20


def detect_language(file_path: Union[str, Path]) -> str:
    """Map a file path to a language name by extension.

    Raises:
        UnsupportedFileExtensionError: the extension is not recognised.
    """
    suffix = PurePosixPath(str(file_path)).suffix.lower()
    language = LANGUAGE_MAP.get(suffix)
    if language is None:
        raise UnsupportedFileExtensionError(str(file_path), suffix or "(none)")
    return language


def is_supported_file(file_path: Union[str, Path]) -> bool:
    """Return True if *file_path* has a grammar-backed extension."""
    suffix = PurePosixPath(str(file_path)).suffix.lower()
    return LANGUAGE_MAP.get(suffix) in SUPPORTED_LANGUAGES


@dataclass
class ParseResult:
    """Syntax tree for one file plus its error flag."""

    language: str
    tree: Optional[Any] = None
    has_errors: bool = False
    error_locations: List[Tuple[int, int]] = field(default_factory=list)
    file_path: Optional[str] = None

    @property
    def root(self) -> Optional[Any]:
        return self.tree.root_node if self.tree is not None else None

    @property
    def is_empty(self) -> bool:
        return self.tree is None

    def first_error(self) -> Optional[ParseError]:
        """Build a ``ParseError`` for the first recorded error location."""
        if not self.has_errors:
            return None
        line, column = self.error_locations[0] if self.error_locations else (None, None)
        return ParseError("Syntax error", self.file_path, line, column)


class SourceParser:
    """Owns one Tree-sitter parser per grammar language.

    Grammars are loaded on first use; each ``SourceParser`` is an explicit
    handle and nothing is shared between instances.
    """

    # language -> (grammar module, function returning the Language capsule)
    _GRAMMAR_MODULES: Dict[str, Tuple[str, str]] = {
        "javascript": ("tree_sitter_javascript", "language"),
        "typescript": ("tree_sitter_typescript", "language_typescript"),
        "tsx": ("tree_sitter_typescript", "language_tsx"),
    }

    def __init__(self) -> None:
        self._parsers: Dict[str, TSParser] = {}

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def _parser_for(self, language: str) -> TSParser:
        parser = self._parsers.get(language)
        if parser is not None:
            return parser

        mod_name, func_name = self._GRAMMAR_MODULES[language]
        try:
            mod = importlib.import_module(mod_name)
            ts_lang = Language(getattr(mod, func_name)())
            parser = TSParser(ts_lang)
        except (ImportError, AttributeError, TypeError, ValueError) as exc:
            logger.warning("Could not load tree-sitter grammar for %s: %s", language, exc)
            raise ParserInitError(language, exc) from exc

        logger.debug("Loaded tree-sitter parser for %s", language)
        self._parsers[language] = parser
        return parser

    def supports_language(self, language: str) -> bool:
        return language in self._GRAMMAR_MODULES

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_content(
        self,
        content: str,
        language: str,
        file_path: Optional[str] = None,
    ) -> ParseResult:
        """Parse *content* as *language*.

        Malformed syntax never raises: the result is returned with
        ``has_errors`` set and the partial tree attached.

        Raises:
            UnsupportedLanguageError: *language* is not a recognised language.
            ParserInitError: the grammar could not be loaded.
        """
        if language not in self._GRAMMAR_MODULES:
            if language in LANGUAGE_MAP.values():
                logger.debug("No grammar for %s, returning empty result", language)
                return ParseResult(language=language, file_path=file_path)
            raise UnsupportedLanguageError(language, SUPPORTED_LANGUAGES)

        if "\x00" in content:
            logger.debug("Skipping binary content in %s", file_path or "<memory>")
            return ParseResult(language=language, file_path=file_path)

        parser = self._parser_for(language)
        tree = parser.parse(content.encode("utf-8"))
        root = tree.root_node
        locations = _collect_error_locations(root) if root.has_error else []

        return ParseResult(
            language=language,
            tree=tree,
            has_errors=root.has_error,
            error_locations=locations,
            file_path=file_path,
        )

    def parse_file(
        self,
        file_path: Path,
        language: Optional[str] = None,
        strict: bool = False,
    ) -> ParseResult:
        """Read and parse a file from disk.

        ``OSError`` from reading propagates to the caller. With *strict*,
        a syntax error raises ``ParseError`` at its first location.
        """
        lang = language or detect_language(file_path)
        content = file_path.read_text(encoding="utf-8", errors="replace")
        result = self.parse_content(content, lang, str(file_path))
        if strict and result.has_errors:
            error = result.first_error()
            if error is not None:
                raise error
        return result


def _collect_error_locations(root: Any) -> List[Tuple[int, int]]:
    """Return 1-based (line, column) pairs for ERROR and MISSING nodes."""
    locations: List[Tuple[int, int]] = []
    stack = [root]
    while stack and len(locations) < MAX_ERROR_LOCATIONS:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            row, col = node.start_point
            locations.append((row + 1, col + 1))
            continue
        if node.has_error:
            stack.extend(reversed(node.children))
    return locations
