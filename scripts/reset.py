"""Delete and reinstall node_modules across the workspace.

    python scripts/reset.py [-u/--metapackage] [-q/--quick] [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio

from metapackage_tools.app import bootstrap, create_graph_reader, create_runner, report_error
from metapackage_tools.config import MetapackageSettings, get_settings
from metapackage_tools.graph import GraphReadError, GraphReader
from metapackage_tools.process import CommandError
from metapackage_tools.workspace import WorkspaceReset


def load_services(settings: MetapackageSettings) -> tuple[GraphReader, WorkspaceReset]:
    runner = create_runner()
    return create_graph_reader(settings, runner), WorkspaceReset(runner, settings)


async def _reset(reader: GraphReader, workspace: WorkspaceReset, args: argparse.Namespace) -> None:
    roots = await reader.list_project_roots()
    await workspace.reset(roots, metapackage=args.metapackage, quick=args.quick, dry_run=args.dry_run)


def cmd_reset(args: argparse.Namespace) -> int:
    reader, workspace = load_services(get_settings())
    try:
        asyncio.run(_reset(reader, workspace, args))
    except (CommandError, GraphReadError, OSError) as exc:
        report_error(exc)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reinstall dependency trees of every project")
    parser.add_argument(
        "-u",
        "--metapackage",
        action="store_true",
        help="Reinstall as one unified workspace instead of isolated per-project installs",
    )
    parser.add_argument(
        "-q",
        "--quick",
        action="store_true",
        help="Skip deleting node_modules and reuse existing installs",
    )
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", help="Log the plan only")
    parser.set_defaults(func=cmd_reset)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    bootstrap("reset")
    exit_code = args.func(args)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
