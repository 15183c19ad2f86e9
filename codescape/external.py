"""External-package detection and infrastructure classification."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

NODE_BUILTINS = frozenset({
    "assert", "async_hooks", "buffer", "child_process", "cluster",
    "console", "constants", "crypto", "dgram", "diagnostics_channel",
    "dns", "domain", "events", "fs", "http", "http2", "https",
    "inspector", "module", "net", "os", "path", "perf_hooks",
    "process", "punycode", "querystring", "readline", "repl",
    "stream", "string_decoder", "sys", "timers", "tls", "trace_events",
    "tty", "url", "util", "v8", "vm", "wasi", "worker_threads", "zlib",
})

INFRASTRUCTURE_TYPES = (
    "database", "api", "queue", "cache", "filesystem", "auth", "logging", "general",
)

PACKAGE_TYPE_MAP: Dict[str, str] = {
    # database
    "pg": "database", "mysql": "database", "mysql2": "database",
    "mongoose": "database", "prisma": "database", "@prisma/client": "database",
    "sequelize": "database", "typeorm": "database", "knex": "database",
    "better-sqlite3": "database", "sqlite3": "database", "mongodb": "database",
    "neo4j": "database", "neo4j-driver": "database", "drizzle": "database",
    "drizzle-orm": "database",
    # api / http
    "axios": "api", "node-fetch": "api", "got": "api", "superagent": "api",
    "request": "api", "cross-fetch": "api", "ky": "api", "undici": "api",
    "express": "api", "fastify": "api", "koa": "api", "hapi": "api",
    "@hapi/hapi": "api", "restify": "api",
    # queue / messaging
    "bull": "queue", "bullmq": "queue", "amqplib": "queue", "kafkajs": "queue",
    "rhea-promise": "queue", "bee-queue": "queue", "agenda": "queue",
    "node-cron": "queue",
    # cache
    "redis": "cache", "ioredis": "cache", "memcached": "cache",
    "lru-cache": "cache", "node-cache": "cache", "keyv": "cache",
    # filesystem
    "fs-extra": "filesystem", "glob": "filesystem", "chokidar": "filesystem",
    "rimraf": "filesystem", "mkdirp": "filesystem", "globby": "filesystem",
    # auth
    "passport": "auth", "jsonwebtoken": "auth", "bcrypt": "auth",
    "bcryptjs": "auth", "oauth": "auth", "passport-jwt": "auth",
    "passport-local": "auth", "jose": "auth",
    # logging
    "winston": "logging", "pino": "logging", "bunyan": "logging",
    "morgan": "logging", "log4js": "logging", "debug": "logging",
}

BUILTIN_TYPE_MAP: Dict[str, str] = {
    "fs": "filesystem",
    "fs/promises": "filesystem",
    "path": "filesystem",
    "stream": "filesystem",
    "http": "api",
    "https": "api",
    "http2": "api",
    "net": "api",
    "crypto": "auth",
}


def is_external_import(specifier: str) -> bool:
    """Bare package specifiers are external; ``.``/``/`` prefixed paths are not."""
    return not specifier.startswith(".") and not specifier.startswith("/")


def strip_node_prefix(specifier: str) -> str:
    return specifier[len("node:"):] if specifier.startswith("node:") else specifier


def extract_package_name(specifier: str) -> str:
    """``lodash/merge`` -> ``lodash``, ``@scope/pkg/sub`` -> ``@scope/pkg``, ``node:fs`` -> ``fs``."""
    cleaned = strip_node_prefix(specifier)
    parts = cleaned.split("/")
    if cleaned.startswith("@"):
        return "/".join(parts[:2])
    return parts[0]


def is_node_builtin(specifier: str) -> bool:
    return extract_package_name(specifier) in NODE_BUILTINS


def classify_package(package_name: str) -> str:
    """Map a package name to an infrastructure type.

    Order: exact table match, scoped base name (``@x/redis`` -> ``redis``),
    Node builtin table, then ``general``.
    """
    cleaned = strip_node_prefix(package_name)
    exact = PACKAGE_TYPE_MAP.get(cleaned)
    if exact:
        return exact
    if cleaned.startswith("@"):
        parts = cleaned.split("/")
        if len(parts) > 1 and parts[1] in PACKAGE_TYPE_MAP:
            return PACKAGE_TYPE_MAP[parts[1]]
    return BUILTIN_TYPE_MAP.get(cleaned, "general")


def external_node_id(package_name: str) -> str:
    return f"external:{package_name}"


def describe_external(
    specifier: str,
    manifest: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Metadata for the ``module`` node that stands for an external package.

    *manifest* is a parsed ``package.json``; when given, the declared version
    and dev-dependency flag are recorded.
    """
    package = extract_package_name(specifier)
    builtin = package in NODE_BUILTINS
    metadata: Dict[str, Any] = {
        "is_external": True,
        "is_builtin": builtin,
        "package_name": package,
        "infrastructure_type": classify_package(package),
    }
    if manifest and not builtin:
        deps = manifest.get("dependencies") or {}
        dev_deps = manifest.get("devDependencies") or {}
        if package in deps:
            metadata["package_version"] = deps[package]
            metadata["is_dev_dependency"] = False
        elif package in dev_deps:
            metadata["package_version"] = dev_deps[package]
            metadata["is_dev_dependency"] = True
    return metadata
