"""Tests for the Tree-sitter source parser."""

from pathlib import Path

import pytest

from codescape.analyzer import analyze_content
from codescape.errors import ParseError, UnsupportedFileExtensionError, UnsupportedLanguageError
from codescape.parser import SourceParser, detect_language, is_supported_file


@pytest.mark.parametrize(
    "path, language",
    [
        ("src/app.js", "javascript"),
        ("src/App.jsx", "javascript"),
        ("lib/mod.mjs", "javascript"),
        ("lib/mod.cjs", "javascript"),
        ("src/index.ts", "typescript"),
        ("src/index.mts", "typescript"),
        ("src/View.tsx", "tsx"),
        ("tool.py", "python"),
        ("Main.java", "java"),
        ("main.go", "go"),
        ("lib.h", "c"),
        ("engine.cpp", "cpp"),
        ("SRC/UPPER.TS", "typescript"),
    ],
)
def test_detect_language(path: str, language: str):
    """Test extension-based language detection."""
    assert detect_language(path) == language


def test_detect_language_unknown_extension():
    """Test that unknown extensions raise with the extension attached."""
    with pytest.raises(UnsupportedFileExtensionError) as excinfo:
        detect_language("notes/readme.md")
    assert excinfo.value.extension == ".md"
    assert "readme.md" in str(excinfo.value)


def test_is_supported_file_only_for_grammar_languages():
    """Test that only grammar-backed languages count as supported files."""
    assert is_supported_file("a.ts")
    assert is_supported_file("a.tsx")
    assert is_supported_file("a.js")
    assert not is_supported_file("a.py")
    assert not is_supported_file("a.txt")


def test_parse_valid_typescript(parser: SourceParser):
    """Test parsing well-formed TypeScript."""
    result = parser.parse_content("export const x: number = 1;\n", "typescript", "x.ts")
    assert not result.is_empty
    assert result.root.type == "program"
    assert result.has_errors is False
    assert result.error_locations == []


def test_parse_malformed_code_sets_error_flag(parser: SourceParser):
    """Test that broken syntax is flagged, not raised."""
    result = parser.parse_content("function broken( {\n  return 1;\n", "javascript", "broken.js")
    assert result.has_errors is True
    assert result.root is not None
    assert result.error_locations
    line, column = result.error_locations[0]
    assert line >= 1 and column >= 1


def test_first_error_builds_parse_error(parser: SourceParser):
    """Test that the first error location becomes a ParseError."""
    result = parser.parse_content("class {", "javascript", "bad.js")
    error = result.first_error()
    assert isinstance(error, ParseError)
    assert error.file_path == "bad.js"
    assert "bad.js" in str(error)


def test_first_error_is_none_for_clean_parse(parser: SourceParser):
    """Test that a clean parse has no first error."""
    assert parser.parse_content("let a = 1;", "javascript").first_error() is None


def test_unknown_language_raises(parser: SourceParser):
    """Test that an unrecognised language raises UnsupportedLanguageError."""
    with pytest.raises(UnsupportedLanguageError) as excinfo:
        parser.parse_content("x", "cobol")
    assert "typescript" in excinfo.value.supported


def test_recognised_language_without_grammar_is_empty(parser: SourceParser):
    """Test that languages without a grammar parse to an empty result."""
    result = parser.parse_content("def f():\n    pass\n", "python", "f.py")
    assert result.is_empty
    assert result.root is None
    assert result.has_errors is False


def test_binary_content_is_empty(parser: SourceParser):
    """Test that content with NUL bytes is treated as binary."""
    result = parser.parse_content("abc\x00def", "javascript", "blob.js")
    assert result.is_empty
    assert result.has_errors is False


def test_empty_content_parses(parser: SourceParser):
    """Test that an empty file gives an empty program, not an error."""
    result = parser.parse_content("", "typescript")
    assert result.root.type == "program"
    assert result.root.named_child_count == 0
    assert not result.has_errors


def test_tsx_grammar(parser: SourceParser):
    """Test that TSX content parses with the tsx grammar."""
    result = parser.parse_content("export const View = () => <div>hi</div>;\n", "tsx", "View.tsx")
    assert not result.has_errors


def test_supports_language():
    """Test grammar availability checks."""
    parser = SourceParser()
    assert parser.supports_language("javascript")
    assert parser.supports_language("tsx")
    assert not parser.supports_language("python")


def test_parse_file_reads_from_disk(parser: SourceParser, temp_dir: Path):
    """Test parsing a file from disk with language detection."""
    source = temp_dir / "mod.ts"
    source.write_text("export function f(): void {}\n")
    result = parser.parse_file(source)
    assert result.language == "typescript"
    assert result.file_path == str(source)
    assert not result.has_errors


def test_parse_file_strict_raises(parser: SourceParser, temp_dir: Path):
    """Test that strict mode raises ParseError with a location."""
    source = temp_dir / "bad.js"
    source.write_text("const = ;\n")
    with pytest.raises(ParseError) as excinfo:
        parser.parse_file(source, strict=True)
    assert excinfo.value.line == 1


def test_parse_file_missing_propagates_oserror(parser: SourceParser, temp_dir: Path):
    """Test that unreadable files raise OSError to the caller."""
    with pytest.raises(OSError):
        parser.parse_file(temp_dir / "missing.ts")


# ── Analysis over empty trees ────────────────────────────────────


def test_analyze_binary_content_keeps_only_metrics(parser: SourceParser):
    """Test that a file without a syntax tree yields metrics and no entities."""
    analysis = analyze_content(parser, "abc\x00def\nghi", "javascript", "blob.js")
    assert analysis.classes == []
    assert analysis.imports == []
    assert analysis.calls == []
    assert analysis.has_errors is False
    assert analysis.metrics.loc == 2
    assert analysis.metrics.max_complexity == 0
