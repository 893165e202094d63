from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from metapackage_tools.config import MetapackageSettings
from metapackage_tools.process import ExecutionResult


@pytest.fixture
def settings(tmp_path: Path) -> MetapackageSettings:
    return MetapackageSettings(_env_file=None, workspace_root=tmp_path)


def write_manifest(root: Path, **document: Any) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    path = root / "package.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def graph_document(roots: dict[str, str], edges: list[tuple[str, str]] | None = None) -> dict[str, Any]:
    dependencies: dict[str, list[dict[str, str]]] = {name: [] for name in roots}
    for source, target in edges or []:
        dependencies[source].append({"source": source, "target": target, "type": "static"})
    return {
        "graph": {
            "nodes": {
                name: {"name": name, "type": "lib", "data": {"root": root}}
                for name, root in roots.items()
            },
            "dependencies": dependencies,
        }
    }


def graph_writer(document: dict[str, Any]):
    """FakeCommandRunner handler that emulates ``nx graph --file=<path>``."""

    def handler(args: tuple[str, ...], cwd: str | None) -> ExecutionResult | None:
        if "graph" not in args:
            return None
        target = next(arg.split("=", 1)[1] for arg in args if arg.startswith("--file="))
        Path(target).write_text(json.dumps(document), encoding="utf-8")
        return ExecutionResult(args=args, returncode=0, stdout="", stderr="", cwd=cwd)

    return handler
