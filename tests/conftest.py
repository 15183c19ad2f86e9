"""Pytest configuration and fixtures for codescape tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator, List, Tuple

import pytest

from codescape.graph_builder import BuildOptions, BuildResult, build_dependency_graph
from codescape.ivm import NodeMetadata, VisualizationGraph, VisualizationNode, convert_dependency_graph
from codescape.parser import SourceParser
from codescape.pipeline import collect_sources, load_manifest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def _isolated_home(temp_dir: Path, monkeypatch):
    """Point the config file at a temp location so no test reads ~/.codescape."""
    monkeypatch.setattr("codescape.config.BASE_DIR", temp_dir / "home")
    monkeypatch.setattr("codescape.config.CONFIG_FILE", temp_dir / "home" / "config.toml")


@pytest.fixture(scope="session")
def parser() -> SourceParser:
    """One parser for the whole session; grammars load once."""
    return SourceParser()


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_build(parser: SourceParser, sample_project_path: Path) -> BuildResult:
    """Dependency graph of the sample project, externals included."""
    options = BuildOptions(manifest=load_manifest(sample_project_path))
    return build_dependency_graph(collect_sources(sample_project_path), parser, options)


@pytest.fixture
def sample_visual_graph(sample_build: BuildResult) -> VisualizationGraph:
    return convert_dependency_graph(sample_build.graph, name="sample", root_path="sample_project")


@pytest.fixture
def three_file_project() -> List[Tuple[str, str]]:
    """A minimal project: an entry point, a service and a helper."""
    return [
        ("src/index.ts", (
            "import { Service } from './service';\n"
            "\n"
            "export function start(): void {\n"
            "  const svc = new Service();\n"
            "  svc.run();\n"
            "}\n"
        )),
        ("src/service.ts", (
            "import { helper } from './helper';\n"
            "\n"
            "export class Service {\n"
            "  private count = 0;\n"
            "\n"
            "  run(): number {\n"
            "    this.count += 1;\n"
            "    return helper(this.count);\n"
            "  }\n"
            "}\n"
        )),
        ("src/helper.ts", (
            "export function helper(value: number): number {\n"
            "  return value > 1 ? value * 2 : value;\n"
            "}\n"
        )),
    ]


@pytest.fixture
def sample_ts_code() -> str:
    """Sample TypeScript code for testing extractors."""
    return '''import { Base } from './base';
import type { Options } from './options';

export abstract class Shape extends Base implements Drawable, Sized {
  private readonly id: string;
  static count: number = 0;

  constructor(id: string) {
    super();
    this.id = id;
  }

  abstract area(): number;

  public describe(prefix?: string): string {
    if (prefix) {
      return `${prefix} ${this.id}`;
    }
    return this.id;
  }

  protected static async *walk(items: string[]): AsyncGenerator<string> {
    for (const item of items) {
      yield item;
    }
  }
}

export interface Drawable extends Renderable {
  draw(ctx: unknown): void;
}

export enum Color {
  Red,
  Green = 'green',
}

export const DEFAULT_SIZE = 10;

export const scale = (value: number, factor = 2): number => value * factor;
'''


@pytest.fixture
def sample_js_code() -> str:
    """Sample JavaScript code for testing extractors."""
    return '''const path = require('path');
import defaultThing, { named as alias, other } from './things.js';
import * as utils from '../utils';
import './polyfill';

class Animal {
  #secret = 1;

  speak(sound) {
    return utils.format(sound) || this.name;
  }
}

class Dog extends Animal {
  speak() {
    return super.speak('woof');
  }
}

function* counter() {
  yield 1;
}

async function load() {
  const mod = await import('./lazy.js');
  return new Dog(mod);
}

export { Dog, load as loader };
export * from './reexported';
export default Animal;
'''


def make_node(node_id: str, kind: str = "file", parent_id=None, lod: int = 3, label=None, **properties):
    """Build a visualization node with just enough metadata to validate."""
    return VisualizationNode(
        id=node_id,
        kind=kind,
        lod=lod,
        parent_id=parent_id,
        metadata=NodeMetadata(label=label or node_id, path=node_id, properties=dict(properties)),
    )


@pytest.fixture
def node_factory():
    """Factory for hand-built visualization nodes."""
    return make_node
