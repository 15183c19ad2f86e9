"""Exception hierarchy shared by the parsing, graph and layout layers."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from .validator import ValidationResult


class CodescapeError(Exception):
    """Root of every error raised by codescape."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class ParserError(CodescapeError):
    """Base class for failures while turning source text into a syntax tree."""


class ParserInitError(ParserError):
    """A grammar or parser engine could not be set up."""

    def __init__(self, language: str, cause: Optional[BaseException] = None) -> None:
        self.language = language
        self.cause = cause
        message = f"Failed to initialize parser for language '{language}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ParseError(ParserError):
    """A syntax error localized to a file position."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.file_path = file_path
        self.line = line
        self.column = column
        self.cause = cause
        self.reason = message

        full = message
        if file_path:
            full += f" at {file_path}"
            if line is not None:
                full += f":{line}"
                if column is not None:
                    full += f":{column}"
        if cause is not None:
            full += f": {cause}"
        super().__init__(full)


class UnsupportedLanguageError(ParserError):
    """The requested language has no grammar."""

    def __init__(self, language: str, supported: Sequence[str]) -> None:
        self.language = language
        self.supported: List[str] = list(supported)
        super().__init__(
            f"Unsupported language: '{language}'. "
            f"Supported languages: {', '.join(self.supported)}"
        )


class UnsupportedFileExtensionError(ParserError):
    """The file extension does not map to any known language."""

    def __init__(self, file_path: str, extension: str) -> None:
        self.file_path = file_path
        self.extension = extension
        super().__init__(f"Unsupported file extension '{extension}' for file: {file_path}")


# ---------------------------------------------------------------------------
# Model / layout / config
# ---------------------------------------------------------------------------

class GraphValidationError(CodescapeError):
    """Raised by ``assert_valid_graph`` when a visualization graph is invalid."""

    def __init__(self, result: "ValidationResult") -> None:
        self.result = result
        lines = [f"{err.path}: {err.message}" for err in result.errors]
        super().__init__(
            f"Invalid visualization graph ({len(lines)} error(s)):\n" + "\n".join(lines)
        )


class LayoutError(CodescapeError):
    """A layout engine was requested that is not registered."""


class ConfigError(CodescapeError):
    """The configuration file exists but cannot be decoded."""
