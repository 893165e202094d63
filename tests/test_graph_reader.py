from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from metapackage_tools.graph import (
    GraphReadError,
    GraphReader,
    ManifestLoadError,
    load_manifest,
    parse_graph,
)
from metapackage_tools.process import CommandFailedError, ExecutionResult, FakeCommandRunner

from conftest import graph_document, graph_writer, write_manifest


def test_list_project_roots_runs_graph_tool(settings) -> None:
    document = graph_document({"@diplodoc/cli": "packages/cli", "@diplodoc/transform": "packages/transform"})
    runner = FakeCommandRunner(handler=graph_writer(document))
    reader = GraphReader(runner, settings)

    roots = asyncio.run(reader.list_project_roots())

    assert sorted(roots) == ["packages/cli", "packages/transform"]
    assert runner.invocations == [
        (("npx", "nx", "graph", f"--file={settings.workspace_root / 'graph.json'}"), str(settings.workspace_root))
    ]
    assert not reader.graph_file.exists()


def test_dependency_lists_are_flattened(settings) -> None:
    document = graph_document(
        {"@diplodoc/cli": "packages/cli", "@diplodoc/transform": "packages/transform"},
        edges=[("@diplodoc/cli", "@diplodoc/transform")],
    )
    runner = FakeCommandRunner(handler=graph_writer(document))

    graph = asyncio.run(GraphReader(runner, settings).read_graph())

    assert [(edge.source, edge.target) for edge in graph.dependencies] == [
        ("@diplodoc/cli", "@diplodoc/transform")
    ]
    assert graph.nodes["@diplodoc/cli"].data.root == "packages/cli"


def test_unparseable_graph_file_is_removed(settings) -> None:
    def handler(args, cwd):
        Path(args[-1].split("=", 1)[1]).write_text("{not json", encoding="utf-8")
        return None

    reader = GraphReader(FakeCommandRunner(handler=handler), settings)

    with pytest.raises(GraphReadError):
        asyncio.run(reader.read_graph())
    assert not reader.graph_file.exists()


def test_missing_graph_file_is_reported(settings) -> None:
    reader = GraphReader(FakeCommandRunner(), settings)

    with pytest.raises(GraphReadError, match="did not write"):
        asyncio.run(reader.read_graph())


def test_graph_tool_failure_propagates(settings) -> None:
    def handler(args, cwd):
        Path(args[-1].split("=", 1)[1]).write_text("{}", encoding="utf-8")
        return ExecutionResult(args=args, returncode=1, stdout="", stderr="nx: not a workspace", cwd=cwd)

    reader = GraphReader(FakeCommandRunner(handler=handler), settings)

    with pytest.raises(CommandFailedError):
        asyncio.run(reader.read_graph())
    assert not reader.graph_file.exists()


def test_parse_graph_requires_graph_object() -> None:
    with pytest.raises(GraphReadError):
        parse_graph({"nodes": {}})
    with pytest.raises(GraphReadError):
        parse_graph({"graph": {"nodes": {"cli": {"data": {}}}}})


def test_load_manifest_defaults_missing_maps(tmp_path: Path) -> None:
    path = write_manifest(tmp_path / "cli", name="@diplodoc/cli", devDependencies={"@diplodoc/lint": "^1.0.0"})

    manifest = load_manifest(path)

    assert manifest.name == "@diplodoc/cli"
    assert manifest.dependencies == {}
    assert manifest.dev_dependencies == {"@diplodoc/lint": "^1.0.0"}


def test_load_manifest_errors(tmp_path: Path) -> None:
    with pytest.raises(ManifestLoadError):
        load_manifest(tmp_path / "missing" / "package.json")

    broken = tmp_path / "package.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ManifestLoadError):
        load_manifest(broken)

    broken.write_text(json.dumps({"dependencies": ["lib"]}), encoding="utf-8")
    with pytest.raises(ManifestLoadError):
        load_manifest(broken)
