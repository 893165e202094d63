from __future__ import annotations

import argparse
import importlib.util
from pathlib import Path

import pytest

from metapackage_tools.config import MetapackageSettings
from metapackage_tools.devloop import RoleFailedError
from metapackage_tools.graph import GraphReadError
from metapackage_tools.process import CommandFailedError, ExecutionResult


def _load_script(name: str):
    module_path = Path(__file__).resolve().parents[1] / "scripts" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(f"{name}_script_test_module", module_path)
    assert spec and spec.loader
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def isolated_settings(monkeypatch, tmp_path):
    settings = MetapackageSettings(_env_file=None, workspace_root=tmp_path)

    def patch(module):
        monkeypatch.setattr(module, "get_settings", lambda: settings)
        return settings

    return patch


class StubUpdater:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls = []
        self._error = error

    async def update(self, specs, *, dry_run, commit):
        self.calls.append(([str(spec) for spec in specs], dry_run, commit))
        if self._error is not None:
            raise self._error
        return []


def test_deps_update_parses_specifiers(monkeypatch, isolated_settings) -> None:
    module = _load_script("deps")
    isolated_settings(module)
    updater = StubUpdater()
    monkeypatch.setattr(module, "load_updater", lambda settings: updater)

    args = module.build_parser().parse_args(["update", "lib@2.0.0", "@scope/pkg", "--dry-run"])
    exit_code = args.func(args)

    assert exit_code == 0
    assert updater.calls == [(["lib@2.0.0", "@scope/pkg@latest"], True, False)]


def test_deps_update_rejects_malformed_specifier(monkeypatch, isolated_settings, capsys) -> None:
    module = _load_script("deps")
    isolated_settings(module)
    updater = StubUpdater()
    monkeypatch.setattr(module, "load_updater", lambda settings: updater)

    exit_code = module.cmd_update(argparse.Namespace(deps=["lib@"], dry_run=False, commit=False))

    assert exit_code == 2
    assert updater.calls == []
    assert "Malformed dependency specifier" in capsys.readouterr().err


def test_deps_update_reports_command_failure(monkeypatch, isolated_settings, capsys) -> None:
    module = _load_script("deps")
    isolated_settings(module)
    failure = CommandFailedError(
        ExecutionResult(args=("npm", "i", "lib@2.0.0"), returncode=1, stdout="", stderr="ERESOLVE")
    )
    monkeypatch.setattr(module, "load_updater", lambda settings: StubUpdater(failure))

    exit_code = module.cmd_update(argparse.Namespace(deps=["lib@2.0.0"], dry_run=False, commit=True))

    assert exit_code == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "ERESOLVE" in err


def test_deps_requires_known_subcommand() -> None:
    module = _load_script("deps")

    with pytest.raises(SystemExit) as info:
        module.build_parser().parse_args(["upgrade", "lib"])
    assert info.value.code == 2
    with pytest.raises(SystemExit):
        module.build_parser().parse_args([])


class StubGenerator:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls = []
        self._error = error

    async def generate(self, *, include_graph):
        self.calls.append(("generate", include_graph))
        return "# Pulse\n"

    async def write(self, output=None, *, include_graph):
        self.calls.append(("write", output, include_graph))
        if self._error is not None:
            raise self._error
        return Path("/ws/PULSE.md")


def test_pulse_writes_dashboard(monkeypatch, isolated_settings, capsys) -> None:
    module = _load_script("pulse")
    isolated_settings(module)
    generator = StubGenerator()
    monkeypatch.setattr(module, "load_generator", lambda settings: generator)

    args = module.build_parser().parse_args(["--no-graph", "--output", "STATUS.md"])
    exit_code = args.func(args)

    assert exit_code == 0
    assert generator.calls == [("write", Path("STATUS.md"), False)]
    assert capsys.readouterr().out == "Wrote /ws/PULSE.md\n"


def test_pulse_stdout_mode(monkeypatch, isolated_settings, capsys) -> None:
    module = _load_script("pulse")
    isolated_settings(module)
    generator = StubGenerator()
    monkeypatch.setattr(module, "load_generator", lambda settings: generator)

    args = module.build_parser().parse_args(["--stdout"])

    assert args.func(args) == 0
    assert generator.calls == [("generate", True)]
    assert capsys.readouterr().out == "# Pulse\n"


def test_pulse_graph_failure_is_fatal(monkeypatch, isolated_settings, capsys) -> None:
    module = _load_script("pulse")
    isolated_settings(module)
    monkeypatch.setattr(
        module, "load_generator", lambda settings: StubGenerator(GraphReadError("Graph tool did not write graph.json"))
    )

    args = module.build_parser().parse_args([])

    assert args.func(args) == 1
    assert "Graph tool did not write" in capsys.readouterr().err


class StubReader:
    async def list_project_roots(self):
        return ["packages/cli"]


class StubWorkspace:
    def __init__(self) -> None:
        self.calls = []

    async def reset(self, roots, *, metapackage, quick, dry_run):
        self.calls.append((roots, metapackage, quick, dry_run))


def test_reset_passes_flags(monkeypatch, isolated_settings) -> None:
    module = _load_script("reset")
    isolated_settings(module)
    workspace = StubWorkspace()
    monkeypatch.setattr(module, "load_services", lambda settings: (StubReader(), workspace))

    args = module.build_parser().parse_args(["-u", "-q"])

    assert args.func(args) == 0
    assert workspace.calls == [(["packages/cli"], True, True, False)]


class StubLoop:
    def __init__(self, error: BaseException | None = None) -> None:
        self._error = error

    async def run(self) -> None:
        if self._error is not None:
            raise self._error


def test_watch_applies_project_overrides(monkeypatch, isolated_settings) -> None:
    module = _load_script("watch")
    isolated_settings(module)
    seen = []

    def load_loop(settings):
        seen.append((settings.watch_project, settings.build_project))
        return StubLoop()

    monkeypatch.setattr(module, "load_loop", load_loop)

    args = module.build_parser().parse_args(["--project", "@diplodoc/cut-extension"])

    assert args.func(args) == 0
    assert seen == [("@diplodoc/cut-extension", "@diplodoc/cli")]


def test_watch_reports_role_failure(monkeypatch, isolated_settings, capsys) -> None:
    module = _load_script("watch")
    isolated_settings(module)
    error = RoleFailedError("build", 1, ["TS2304: Cannot find name 'Foo'"])
    monkeypatch.setattr(module, "load_loop", lambda settings: StubLoop(error))

    args = module.build_parser().parse_args([])

    assert args.func(args) == 1
    err = capsys.readouterr().err
    assert "build exited unexpectedly with code 1" in err
    assert "TS2304" in err


def test_watch_interrupt_exit_code(monkeypatch, isolated_settings) -> None:
    module = _load_script("watch")
    isolated_settings(module)
    monkeypatch.setattr(module, "load_loop", lambda settings: StubLoop(KeyboardInterrupt()))

    args = module.build_parser().parse_args([])

    assert args.func(args) == 130
