"""Tests for external-package detection and classification."""

import pytest

from codescape.external import (
    classify_package,
    describe_external,
    extract_package_name,
    is_external_import,
    is_node_builtin,
)


@pytest.mark.parametrize(
    "specifier, external",
    [("react", True), ("@scope/pkg", True), ("node:fs", True), ("./a", False), ("../b", False), ("/abs", False)],
)
def test_is_external_import(specifier: str, external: bool):
    """Test that only bare specifiers are external."""
    assert is_external_import(specifier) is external


@pytest.mark.parametrize(
    "specifier, package",
    [
        ("lodash", "lodash"),
        ("lodash/merge", "lodash"),
        ("@scope/pkg", "@scope/pkg"),
        ("@scope/pkg/deep/path", "@scope/pkg"),
        ("node:fs", "fs"),
        ("node:fs/promises", "fs"),
    ],
)
def test_extract_package_name(specifier: str, package: str):
    """Test package-name extraction for plain, scoped and node: specifiers."""
    assert extract_package_name(specifier) == package


def test_node_builtins():
    """Test builtin detection with and without the node: prefix."""
    assert is_node_builtin("fs")
    assert is_node_builtin("node:path")
    assert not is_node_builtin("express")


@pytest.mark.parametrize(
    "package, kind",
    [
        ("pg", "database"),
        ("@prisma/client", "database"),
        ("axios", "api"),
        ("kafkajs", "queue"),
        ("ioredis", "cache"),
        ("@acme/redis", "cache"),
        ("fs", "filesystem"),
        ("https", "api"),
        ("jsonwebtoken", "auth"),
        ("pino", "logging"),
        ("left-pad", "general"),
    ],
)
def test_classify_package(package: str, kind: str):
    """Test infrastructure classification."""
    assert classify_package(package) == kind


def test_describe_external_with_manifest():
    """Test that manifest versions and dev flags are recorded."""
    manifest = {"dependencies": {"express": "^4.0.0"}, "devDependencies": {"jest": "^29.0.0"}}
    express = describe_external("express/lib/router", manifest)
    assert express["package_name"] == "express"
    assert express["package_version"] == "^4.0.0"
    assert express["is_dev_dependency"] is False
    assert describe_external("jest", manifest)["is_dev_dependency"] is True


def test_describe_builtin_ignores_manifest():
    """Test that builtins never pick up manifest versions."""
    info = describe_external("node:fs", {"dependencies": {"fs": "0.0.1"}})
    assert info["is_builtin"] is True
    assert info["infrastructure_type"] == "filesystem"
    assert "package_version" not in info
